"""
NIH Clinical Tables Conditions API lookup.

Maps consumer condition names ("heart attack", "sugar") to a curated primary
name plus direct ICD-10-CM codes. Used as the first tier of ICD-10 search.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

import httpx

from . import http_client
from .cache import DAY, TTLCache

logger = logging.getLogger(__name__)

CONDITIONS_API_URL = "https://clinicaltables.nlm.nih.gov/api/conditions/v3/search"
CONDITIONS_TIMEOUT_SECONDS = 3.0
CONDITIONS_MAX_RESULTS = 10
EXTRA_FIELDS = "icd10cm_codes,icd10cm,primary_name,synonyms,consumer_name"

_ICD10_PATTERN = re.compile(r"^[A-Za-z]\d{1,2}(\.[\dA-Za-z]+)?$")
# HCPCS Level II: A-V followed by exactly four digits
_HCPCS_PATTERN = re.compile(r"^[A-Va-v]\d{4}$")

_cache: TTLCache["ConditionsResult"] = TTLCache(ttl_seconds=DAY, max_size=500, lru=True)
_api_calls = 0
_api_errors = 0


@dataclass
class ConditionsResult:
    found: bool
    primary_name: Optional[str] = None
    consumer_name: Optional[str] = None
    synonyms: list[str] = field(default_factory=list)
    icd_codes: list[dict] = field(default_factory=list)
    search_terms_to_use: list[str] = field(default_factory=list)
    related_conditions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "found": self.found,
            "primaryName": self.primary_name,
            "consumerName": self.consumer_name,
            "synonyms": self.synonyms,
            "icdCodes": self.icd_codes,
            "searchTermsToUse": self.search_terms_to_use,
            "relatedConditions": self.related_conditions,
        }


# ---------------------------------------------------------------------------
# Code type detection
# ---------------------------------------------------------------------------


def is_icd10_code(query: str) -> bool:
    return bool(_ICD10_PATTERN.match(query.strip()))


def is_hcpcs_code(query: str) -> bool:
    return bool(_HCPCS_PATTERN.match(query.strip()))


def detect_code_type(query: str) -> str:
    """Classify input as ``hcpcs``, ``icd10`` or free-text ``condition``."""
    trimmed = query.strip()
    if not trimmed:
        return "condition"
    if is_hcpcs_code(trimmed):
        return "hcpcs"
    if is_icd10_code(trimmed):
        return "icd10"
    return "condition"


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _empty_result(query: str) -> ConditionsResult:
    return ConditionsResult(found=False, search_terms_to_use=[query] if query else [])


def _parse_response(data: list, query: str) -> ConditionsResult:
    total = data[0] if data else 0
    extra = (data[2] if len(data) > 2 else None) or {}
    if not total:
        return _empty_result(query)

    primary_names = extra.get("primary_name") or []
    consumer_names = extra.get("consumer_name") or []
    primary_name = primary_names[0] if primary_names else None
    consumer_name = consumer_names[0] if consumer_names else None

    synonyms: list[str] = []
    for synonym_list in extra.get("synonyms") or []:
        for synonym in synonym_list or []:
            if isinstance(synonym, str) and synonym and synonym.lower() not in synonyms:
                synonyms.append(synonym.lower())

    icd_codes: dict[str, str] = {}
    for icd_list in extra.get("icd10cm") or []:
        for icd in icd_list or []:
            if isinstance(icd, dict) and icd.get("code") and icd.get("name"):
                icd_codes.setdefault(icd["code"], icd["name"])

    search_terms = [primary_name] if primary_name else []
    if (primary_name or "").lower() != query.lower():
        search_terms.append(query)

    return ConditionsResult(
        found=True,
        primary_name=primary_name,
        consumer_name=consumer_name,
        synonyms=synonyms,
        icd_codes=[{"code": code, "name": name} for code, name in icd_codes.items()],
        search_terms_to_use=search_terms,
        related_conditions=primary_names[1:5],
    )


def _cache_key(query: str) -> str:
    return " ".join(query.lower().split())


async def search_conditions(query: str) -> ConditionsResult:
    """Look up a condition; failures and timeouts return a not-found result."""
    global _api_calls, _api_errors

    normalized = query.strip()
    if not normalized:
        return _empty_result("")

    key = _cache_key(normalized)
    cached = _cache.get(key)
    if cached is not None:
        logger.debug("Conditions cache hit: %s", key)
        return cached

    params = {"terms": normalized, "maxList": CONDITIONS_MAX_RESULTS, "ef": EXTRA_FIELDS}
    _api_calls += 1
    try:
        async with http_client.async_client(timeout=CONDITIONS_TIMEOUT_SECONDS) as client:
            response = await client.get(CONDITIONS_API_URL, params=params, headers={"Accept": "application/json"})
            response.raise_for_status()
            data = response.json()
    except httpx.TimeoutException:
        _api_errors += 1
        logger.warning("Conditions API timed out after %.0fs for %r", CONDITIONS_TIMEOUT_SECONDS, normalized)
        return _empty_result(normalized)
    except (httpx.HTTPError, ValueError) as e:
        _api_errors += 1
        logger.warning("Conditions API error for %r: %s", normalized, e)
        return _empty_result(normalized)

    result = _parse_response(data, normalized)
    _cache.set(key, result)
    return result


def clear_conditions_cache() -> int:
    return _cache.clear()


def get_conditions_cache_stats() -> dict:
    return {**_cache.stats(), "api_calls": _api_calls, "api_errors": _api_errors}

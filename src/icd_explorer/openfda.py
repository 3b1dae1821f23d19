"""OpenFDA drug label search by indication."""

import logging
import re
from typing import Optional
from urllib.parse import quote

from . import http_client
from .errors import RateLimitError
from .icd10_tools import extract_search_terms

logger = logging.getLogger(__name__)

OPENFDA_BASE_URL = "https://api.fda.gov/drug/label.json"
DEFAULT_LIMIT = 15

_MANUFACTURER_SUFFIX = re.compile(r",?\s*(Inc\.?|LLC|Ltd\.?|Corp\.?|Corporation|Company|Co\.?)$", re.IGNORECASE)


def truncate_text(text: str, max_length: int) -> str:
    """Cut at a word boundary when one falls in the last 30% of the limit."""
    if len(text) <= max_length:
        return text
    last_space = text[:max_length].rfind(" ")
    break_point = last_space if last_space > max_length * 0.7 else max_length
    return text[:break_point].strip() + "..."


def format_drug_name(name: str) -> str:
    if name == name.upper():
        return " ".join(word[:1].upper() + word[1:] for word in name.lower().split(" "))
    return name


def format_manufacturer(name: str) -> str:
    return _MANUFACTURER_SUFFIX.sub("", name).strip()


def _first(values: Optional[list], default: str) -> str:
    return values[0] if values else default


def parse_label_results(data: dict) -> list[dict]:
    drugs = []
    for result in data.get("results") or []:
        openfda = result.get("openfda") or {}
        warnings = _first(result.get("warnings"), "")
        drugs.append(
            {
                "brandName": format_drug_name(_first(openfda.get("brand_name"), "Unknown Brand")),
                "genericName": format_drug_name(_first(openfda.get("generic_name"), "Unknown Generic")),
                "manufacturer": format_manufacturer(
                    _first(openfda.get("manufacturer_name"), "Unknown Manufacturer")
                ),
                "indication": truncate_text(
                    _first(result.get("indications_and_usage"), "No indication information available"), 200
                ),
                "warnings": truncate_text(warnings, 150) if warnings else None,
            }
        )
    return drugs


async def search_drugs_for_condition(condition_name: str, limit: int = DEFAULT_LIMIT) -> list[dict]:
    """Search drug labels whose indications mention the condition.

    404 means no matching labels. 429 raises RateLimitError; other HTTP
    errors propagate.
    """
    search_terms = extract_search_terms(condition_name)
    if not search_terms:
        return []

    # OpenFDA wants the raw search expression, not form-encoded params
    url = f"{OPENFDA_BASE_URL}?search=indications_and_usage:{quote(search_terms)}&limit={limit}"
    async with http_client.async_client() as client:
        response = await client.get(url)

    if response.status_code == 404:
        return []
    if response.status_code == 429:
        raise RateLimitError("Rate limit exceeded. Please wait a moment and try again.")
    response.raise_for_status()

    drugs = parse_label_results(response.json())
    logger.info("OpenFDA returned %d labels for %r", len(drugs), search_terms)
    return drugs

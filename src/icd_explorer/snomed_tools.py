"""
SNOMED CT procedures for an ICD-10-CM diagnosis via the UMLS REST API.

Authentication is CAS-style: the API key buys a ticket-granting ticket (TGT,
reused for 7 hours) and every REST call spends a fresh single-use service
ticket from it.

Lookup path:
  1. Crosswalk ICD10CM -> SNOMEDCT_US (following replaced_by for obsolete ids)
  2. Fallback: ICD-10 code -> UMLS CUI -> SNOMED atoms
  3. Procedure-like relations of the first 3 SNOMED concepts
  4. Keyword + suffix search ("diabetes screening") when relations are sparse
"""

import logging
import re
import time
from typing import Optional

import httpx

from . import http_client
from .cache import DAY, HOUR, TTLCache
from .config import UMLSConfig
from .errors import ConfigurationError
from .procedure_mappings import get_curated_procedures
from .procedures import ProcedureResult

logger = logging.getLogger(__name__)

UMLS_AUTH_URL = "https://utslogin.nlm.nih.gov/cas/v1/api-key"
UMLS_API_BASE = "https://uts-ws.nlm.nih.gov/rest"
UMLS_SERVICE = "http://umlsks.nlm.nih.gov"
TGT_TTL_SECONDS = 7 * HOUR
REQUEST_TIMEOUT_SECONDS = 8.0
MAX_PROCEDURE_RESULTS = 30
MAX_CONCEPTS = 3
MIN_RELATION_PROCEDURES = 5

PROCEDURE_RELATION_LABELS = (
    "associated_procedure",
    "method",
    "procedure_site",
    "finding_site",
    "interprets",
    "focus_of",
    "has_realization",
    "treated_by",
    "may_be_treated_by",
    "may_be_prevented_by",
    "has_procedure_context",
)

PROCEDURE_SUFFIXES = ("screening", "management", "therapy", "monitoring", "education", "test")

CORE_KEYWORD_STOP_WORDS = frozenset(
    {
        "type", "1", "2", "ii", "i", "mellitus", "essential", "primary",
        "secondary", "chronic", "acute", "unspecified", "without",
        "complication", "complications", "with", "the", "of", "and", "or",
        "non", "insulin", "dependent",
    }
)

# Checked in order; first category with a matching keyword wins
CATEGORY_KEYWORDS = (
    ("diagnostic", ("test", "imaging", "x-ray", "scan", "biopsy", "examination", "screening",
                    "laboratory", "assay", "culture", "pathology")),
    ("monitoring", ("monitor", "measurement", "assessment", "surveillance", "follow-up", "tracking",
                    "evaluation", "education", "counseling", "management program")),
    ("equipment", ("device", "prosthe", "orthotic", "implant", "pump", "equipment")),
    ("therapeutic", ("therapy", "surgery", "operation", "procedure", "injection", "infusion", "transplant",
                     "repair", "removal", "insertion", "treatment", "excision", "drainage")),
)

_procedure_cache: TTLCache[list[dict]] = TTLCache(ttl_seconds=7 * DAY)
_tgt_url: Optional[str] = None
_tgt_obtained_at = 0.0


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def _api_key() -> str:
    config = UMLSConfig.from_env()
    if not config.is_configured:
        raise ConfigurationError("UMLS API key not configured. SNOMED procedure lookup unavailable.")
    return config.api_key


def reset_umls_auth() -> None:
    global _tgt_url, _tgt_obtained_at
    _tgt_url = None
    _tgt_obtained_at = 0.0


async def _get_tgt(client: httpx.AsyncClient) -> str:
    global _tgt_url, _tgt_obtained_at
    if _tgt_url and time.time() - _tgt_obtained_at < TGT_TTL_SECONDS:
        return _tgt_url

    try:
        response = await client.post(UMLS_AUTH_URL, data={"apikey": _api_key()})
        response.raise_for_status()
    except httpx.HTTPError:
        reset_umls_auth()
        raise

    # The TGT URL is the action attribute of the returned HTML form
    match = re.search(r'action="([^"]+)"', response.text)
    if not match:
        reset_umls_auth()
        raise httpx.DecodingError("Could not parse TGT URL from UMLS response")
    _tgt_url = match.group(1)
    _tgt_obtained_at = time.time()
    logger.info("Obtained UMLS ticket-granting ticket")
    return _tgt_url


async def _get_service_ticket(client: httpx.AsyncClient) -> str:
    tgt_url = await _get_tgt(client)
    response = await client.post(tgt_url, data={"service": UMLS_SERVICE})
    if not response.is_success:
        # Likely an expired TGT; force a fresh one next time
        reset_umls_auth()
        response.raise_for_status()
    return response.text.strip()


async def _umls_get(client: httpx.AsyncClient, endpoint: str, params: Optional[dict] = None) -> Optional[dict]:
    """GET a UMLS REST endpoint; None on non-2xx, non-JSON, or transport failure."""
    ticket = await _get_service_ticket(client)
    try:
        response = await client.get(f"{UMLS_API_BASE}/{endpoint}", params={**(params or {}), "ticket": ticket})
    except httpx.HTTPError as e:
        logger.warning("UMLS request failed for %s: %s", endpoint, e)
        return None
    if not response.is_success:
        logger.warning("UMLS API returned %d for %s", response.status_code, endpoint)
        return None
    try:
        return response.json()
    except ValueError:
        logger.warning("UMLS API returned non-JSON body for %s", endpoint)
        return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _last_segment(uri: str) -> str:
    return uri.rstrip("/").split("/")[-1]


def categorize_procedure(name: str, relation_label: str = "") -> str:
    text = f"{name} {relation_label}".lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return "other"


def extract_core_keyword(concept_name: str) -> str:
    """'Type 2 diabetes mellitus' -> 'diabetes'"""
    words = [
        w
        for w in re.sub(r"[(),]", "", concept_name.lower()).split()
        if len(w) > 1 and w not in CORE_KEYWORD_STOP_WORDS
    ]
    if not words:
        return concept_name.split(" ")[0]
    return " ".join(words[:2])


def _is_diagnosis_name(name: str) -> bool:
    lower = name.lower()
    if "disorder" in lower or "disease" in lower:
        return True
    return "mellitus" in lower and not any(k in lower for k in ("management", "education", "screening"))


def _procedure(code: str, description: str, relation_label: str = "") -> ProcedureResult:
    return ProcedureResult(
        code=code,
        code_system="SNOMED",
        description=description,
        category=categorize_procedure(description, relation_label),
    )


# ---------------------------------------------------------------------------
# Concept resolution
# ---------------------------------------------------------------------------


async def _find_concepts_via_crosswalk(client: httpx.AsyncClient, icd10_code: str) -> list[str]:
    data = await _umls_get(
        client,
        f"crosswalk/current/source/ICD10CM/{icd10_code}",
        {"targetSource": "SNOMEDCT_US", "pageSize": 10},
    )
    entries = (data or {}).get("result") or []
    active: list[str] = []
    obsolete: list[str] = []
    for entry in entries:
        ui = entry.get("ui")
        if not ui or ui == "NONE":
            continue
        if entry.get("obsolete") in (True, "true"):
            obsolete.append(ui)
        else:
            active.append(ui)
    if active:
        return active

    replacements: list[str] = []
    for obsolete_id in obsolete[:MAX_CONCEPTS]:
        relations = await _umls_get(
            client, f"content/current/source/SNOMEDCT_US/{obsolete_id}/relations", {"pageSize": 10}
        )
        for rel in (relations or {}).get("result") or []:
            label = (rel.get("additionalRelationLabel") or rel.get("relationLabel") or "").lower()
            if "replaced_by" in label and rel.get("relatedId"):
                replacement = _last_segment(rel["relatedId"])
                if replacement not in replacements:
                    replacements.append(replacement)
    # Obsolete ids still carry useful relations
    return replacements or obsolete


async def _find_concepts_via_cui(client: httpx.AsyncClient, icd10_code: str) -> list[str]:
    search = await _umls_get(
        client,
        "search/current",
        {"string": icd10_code, "inputType": "sourceUi", "sabs": "ICD10CM", "returnIdType": "concept", "pageSize": 1},
    )
    results = ((search or {}).get("result") or {}).get("results") or []
    cui = results[0].get("ui") if results else None
    if not cui or cui == "NONE":
        logger.warning("No CUI found for ICD-10 code %s", icd10_code)
        return []

    atoms = await _umls_get(
        client, f"content/current/CUI/{cui}/atoms", {"sabs": "SNOMEDCT_US", "ttys": "PT,FN", "pageSize": 10}
    )
    return [_last_segment(a["sourceConcept"]) for a in (atoms or {}).get("result") or [] if a.get("sourceConcept")]


async def _procedures_for_concept(client: httpx.AsyncClient, snomed_id: str) -> list[ProcedureResult]:
    procedures: list[ProcedureResult] = []
    seen: set[str] = set()

    relations = await _umls_get(
        client, f"content/current/source/SNOMEDCT_US/{snomed_id}/relations", {"pageSize": 50}
    )
    for rel in (relations or {}).get("result") or []:
        label = (rel.get("additionalRelationLabel") or rel.get("relationLabel") or "").lower()
        if not rel.get("relatedId") or not any(p in label for p in PROCEDURE_RELATION_LABELS):
            continue
        code = _last_segment(rel["relatedId"])
        if code not in seen:
            seen.add(code)
            procedures.append(_procedure(code, rel.get("relatedIdName") or "", label))

    if len(procedures) < MIN_RELATION_PROCEDURES:
        concept = await _umls_get(client, f"content/current/source/SNOMEDCT_US/{snomed_id}")
        concept_name = ((concept or {}).get("result") or {}).get("name")
        if concept_name:
            keyword = extract_core_keyword(concept_name)
            for suffix in PROCEDURE_SUFFIXES:
                if len(procedures) >= MAX_PROCEDURE_RESULTS:
                    break
                search = await _umls_get(client, "search/current", {"string": f"{keyword} {suffix}", "pageSize": 15})
                for result in ((search or {}).get("result") or {}).get("results") or []:
                    name = result.get("name") or ""
                    code = result.get("ui") or ""
                    if "SNOMEDCT" not in (result.get("rootSource") or "") or _is_diagnosis_name(name):
                        continue
                    if code and code not in seen:
                        seen.add(code)
                        procedures.append(_procedure(code, name))

    return procedures[:MAX_PROCEDURE_RESULTS]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def get_snomed_procedures(icd10_code: str) -> list[dict]:
    """SNOMED CT procedures related to a diagnosis, at most MAX_PROCEDURE_RESULTS.

    Raises ConfigurationError when UMLS_API_KEY is unset. Upstream failures
    count as an empty UMLS result. When UMLS yields nothing the curated
    procedures for the code (possibly none) are returned instead, and either
    way the result is cached.
    """
    if not icd10_code or not icd10_code.strip():
        return []
    _api_key()

    code = icd10_code.strip().upper()
    key = f"snomed-proc:{code}"
    cached = _procedure_cache.get(key)
    if cached is not None:
        return cached

    try:
        async with http_client.async_client(timeout=REQUEST_TIMEOUT_SECONDS) as client:
            concept_ids = await _find_concepts_via_crosswalk(client, code)
            if not concept_ids:
                concept_ids = await _find_concepts_via_cui(client, code)

            procedures: list[dict] = []
            seen: set[str] = set()
            for snomed_id in concept_ids[:MAX_CONCEPTS]:
                if len(procedures) >= MAX_PROCEDURE_RESULTS:
                    break
                for procedure in await _procedures_for_concept(client, snomed_id):
                    if procedure.code not in seen:
                        seen.add(procedure.code)
                        procedures.append(procedure.to_dict())
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("SNOMED procedure lookup failed for %s: %s", code, e)
        procedures = []

    procedures = procedures[:MAX_PROCEDURE_RESULTS]
    if not procedures:
        procedures = get_curated_procedures(code)
        if procedures:
            logger.info("Using %d curated procedures for %s", len(procedures), code)

    _procedure_cache.set(key, procedures)
    logger.info("Found %d SNOMED procedures for %s", len(procedures), code)
    return procedures


def clear_snomed_cache() -> int:
    return _procedure_cache.clear()


def get_snomed_cache_stats() -> dict:
    return {
        "procedureCacheSize": len(_procedure_cache),
        "hasTgt": _tgt_url is not None,
        "tgtAgeMinutes": round((time.time() - _tgt_obtained_at) / 60) if _tgt_obtained_at else 0,
    }


TOOLS = [
    {
        "name": "get_snomed_procedures",
        "description": "Find SNOMED CT procedures (diagnostic, therapeutic, monitoring, equipment) related to an ICD-10-CM diagnosis using the UMLS crosswalk. Requires UMLS_API_KEY.",
        "inputSchema": {
            "type": "object",
            "properties": {"icd10_code": {"type": "string", "description": "ICD-10-CM code (e.g., 'E11.9')"}},
            "required": ["icd10_code"],
        },
    },
]


async def _snomed_tool(icd10_code: str) -> dict:
    procedures = await get_snomed_procedures(icd10_code)
    return {"icd10Code": icd10_code.strip().upper(), "resultCount": len(procedures), "procedures": procedures}


HANDLERS = {
    "get_snomed_procedures": lambda args: _snomed_tool(args.get("icd10_code", "")),
}

"""
Drug tools: candidate drugs for an ICD-10 condition, validated by AI.

Pipeline for get_validated_drugs:
  1. Candidate names from curated mappings (or AI-generated fallback)
  2. RxNorm resolution of the first FETCH_LIMIT names
  3. Azure OpenAI relevance scoring (0-10)
  4. Keep scores >= OFF_LABEL_THRESHOLD, sort, cap at MAX_RESULTS

Results are cached per ICD-10 code. When scoring fails the unfiltered list is
returned with relevanceScore -1 and nothing is cached.
"""

import logging
import re
from typing import Optional

import openai

from .cache import DAY, TTLCache
from .drug_ai import score_drug_relevance
from .drug_mappings import get_drugs_for_condition
from .openfda import search_drugs_for_condition
from .rxnorm import get_full_drug_enrichment, search_multiple, search_rxnorm

logger = logging.getLogger(__name__)

FDA_APPROVED_THRESHOLD = 7
OFF_LABEL_THRESHOLD = 4
MAX_RESULTS = 8
FETCH_LIMIT = 10
CACHE_MAX_SIZE = 500
CACHE_STATS_LOG_INTERVAL = 100

DRUG_SCORE_THRESHOLDS = {"FDA_APPROVED": FDA_APPROVED_THRESHOLD, "OFF_LABEL": OFF_LABEL_THRESHOLD}

_validation_cache: TTLCache[list[dict]] = TTLCache(ttl_seconds=DAY, max_size=CACHE_MAX_SIZE)
_cache_operations = 0


TOOLS = [
    {
        "name": "get_validated_drugs",
        "description": "Find drugs that treat a condition. Candidates are resolved in RxNorm and scored 0-10 for clinical relevance by Azure OpenAI; only FDA-approved (7+) and common off-label (4-6) drugs are returned.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "condition_name": {
                    "type": "string",
                    "description": "Condition description (e.g., 'Type 2 diabetes mellitus without complications')",
                },
                "icd_code": {"type": "string", "description": "ICD-10-CM code used as the cache key (e.g., 'E11.9')"},
            },
            "required": ["condition_name", "icd_code"],
        },
    },
    {
        "name": "search_drug_labels",
        "description": "Search OpenFDA drug labels whose indications mention a condition.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "condition_name": {"type": "string", "description": "Condition name or ICD-10 description"},
                "limit": {"type": "integer", "description": "Maximum labels (default: 15)", "default": 15},
            },
            "required": ["condition_name"],
        },
    },
    {
        "name": "lookup_rxnorm_drug",
        "description": "Resolve a drug name in RxNorm and enrich it with pharmacologic classes, ingredients, and related products.",
        "inputSchema": {
            "type": "object",
            "properties": {"drug_name": {"type": "string", "description": "Brand or generic drug name (e.g., 'metformin')"}},
            "required": ["drug_name"],
        },
    },
    {
        "name": "list_candidate_drugs",
        "description": "List RxNorm-resolved candidate drugs for a condition without AI relevance scoring.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "condition_name": {"type": "string", "description": "Condition name"},
                "icd_code": {"type": "string", "description": "ICD-10-CM code", "default": ""},
            },
            "required": ["condition_name"],
        },
    },
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_drug_result(rx_drug: dict) -> dict:
    if rx_drug.get("dosageForm"):
        indication = rx_drug["dosageForm"]
        if rx_drug.get("strength"):
            indication += f" - {rx_drug['strength']}"
    else:
        indication = "Prescription medication"
    return {
        "brandName": rx_drug["brandName"],
        "genericName": rx_drug["genericName"],
        "manufacturer": "Various",
        "indication": indication,
        "warnings": None,
        "rxcui": rx_drug.get("rxcui"),
    }


def build_score_map(scores: list[dict]) -> dict[str, dict]:
    score_map: dict[str, dict] = {}
    for score in scores:
        name = score["drugName"].lower()
        score_map[name] = score
        match = re.match(r"^(.+?)\s*\((.+?)\)$", score["drugName"])
        if match:
            score_map[match.group(1).lower().strip()] = score
            score_map[match.group(2).lower().strip()] = score
        score_map[re.sub(r"\s+", "", name)] = score
    return score_map


def find_matching_score(drug: dict, score_map: dict[str, dict]) -> Optional[dict]:
    brand = drug["brandName"].lower()
    generic = drug["genericName"].lower()
    candidates = (
        f"{brand} ({generic})",
        brand,
        generic,
        re.sub(r"\s+", "", brand),
        re.sub(r"\s+", "", generic),
    )
    for key in candidates:
        if key in score_map:
            return score_map[key]
    for key, score in score_map.items():
        if brand in key or key in brand:
            return score
    logger.warning("No relevance score matched %s (%s)", drug["brandName"], drug["genericName"])
    return None


def _unscored(drugs: list[dict]) -> list[dict]:
    return [{**drug, "relevanceScore": -1} for drug in drugs]


def _store(cache_key: str, drugs: list[dict]) -> None:
    _validation_cache.set(cache_key, drugs)
    logger.debug("Cached %d validated drugs for %s", len(drugs), cache_key)


def _log_cache_stats() -> None:
    global _cache_operations
    _cache_operations += 1
    if _cache_operations % CACHE_STATS_LOG_INTERVAL == 0:
        stats = _validation_cache.stats()
        logger.info(
            "Drug validation cache after %d ops: %d valid, %d expired, %d total",
            _cache_operations,
            stats["valid_entries"],
            stats["expired_entries"],
            stats["size"],
        )


# ---------------------------------------------------------------------------
# Tool implementations
# ---------------------------------------------------------------------------


async def get_validated_drugs(condition_name: str, icd_code: str) -> list[dict]:
    """Run the validation pipeline for one condition.

    ConfigurationError (no Azure OpenAI credentials) propagates so callers can
    answer 503; model/API failures degrade to unscored results.
    """
    cache_key = icd_code.upper().strip()
    _log_cache_stats()

    cached = _validation_cache.get(cache_key)
    if cached is not None:
        logger.info("Drug cache hit for %s (%d drugs)", cache_key, len(cached))
        return cached

    candidates = await get_drugs_for_condition(condition_name)
    if not candidates:
        logger.info("No candidate drugs for %r", condition_name)
        _store(cache_key, [])
        return []

    rx_drugs = await search_multiple(candidates[:FETCH_LIMIT])
    if not rx_drugs:
        _store(cache_key, [])
        return []
    raw_drugs = [_to_drug_result(d) for d in rx_drugs]

    try:
        scores = await score_drug_relevance(
            condition_name,
            [{"brandName": d["brandName"], "genericName": d["genericName"]} for d in raw_drugs],
            icd_code=cache_key,
        )
    except openai.OpenAIError as e:
        logger.warning("AI scoring failed for %s, returning unfiltered results: %s", cache_key, e)
        return _unscored(raw_drugs)

    if not scores:
        logger.warning("AI returned no scores for %s, returning unfiltered results", cache_key)
        return _unscored(raw_drugs)

    score_map = build_score_map(scores)
    scored = []
    for drug in raw_drugs:
        match = find_matching_score(drug, score_map)
        scored.append(
            {
                **drug,
                "relevanceScore": match["score"] if match else -1,
                "relevanceReasoning": match["reasoning"] if match else None,
            }
        )

    relevant = [d for d in scored if d["relevanceScore"] >= OFF_LABEL_THRESHOLD]
    approved = sum(1 for d in relevant if d["relevanceScore"] >= FDA_APPROVED_THRESHOLD)
    logger.info(
        "%s: %d FDA-approved, %d off-label of %d scored", cache_key, approved, len(relevant) - approved, len(scored)
    )

    final = sorted(relevant, key=lambda d: d["relevanceScore"], reverse=True)[:MAX_RESULTS]
    _store(cache_key, final)
    return final


async def fetch_drugs_without_validation(condition_name: str, icd_code: str = "") -> list[dict]:
    """RxNorm-resolved candidates with relevanceScore -1 (no AI call)."""
    candidates = await get_drugs_for_condition(condition_name)
    if not candidates:
        return []
    rx_drugs = await search_multiple(candidates[:MAX_RESULTS])
    logger.info("Fetched %d unscored drugs for %s", len(rx_drugs), icd_code or condition_name)
    return _unscored([_to_drug_result(d) for d in rx_drugs])


async def search_drug_labels(condition_name: str, limit: int = 15) -> dict:
    drugs = await search_drugs_for_condition(condition_name, limit)
    return {"condition": condition_name, "count": len(drugs), "drugs": drugs}


async def lookup_rxnorm_drug(drug_name: str) -> dict:
    drug = await search_rxnorm(drug_name)
    if drug is None:
        return {"query": drug_name, "found": False}
    enrichment = await get_full_drug_enrichment(drug["rxcui"])
    return {"query": drug_name, "found": True, "drug": drug, **enrichment}


def clear_validation_cache() -> int:
    global _cache_operations
    _cache_operations = 0
    return _validation_cache.clear()


def get_validation_cache_stats() -> dict:
    stats = _validation_cache.stats()
    return {"total": stats["size"], "valid": stats["valid_entries"], "expired": stats["expired_entries"]}


async def _validated_drugs_tool(condition_name: str, icd_code: str) -> dict:
    drugs = await get_validated_drugs(condition_name, icd_code)
    return {"drugs": drugs, "icdCode": icd_code.upper(), "count": len(drugs)}


async def _candidate_drugs_tool(condition_name: str, icd_code: str) -> dict:
    drugs = await fetch_drugs_without_validation(condition_name, icd_code)
    return {"drugs": drugs, "count": len(drugs)}


HANDLERS = {
    "get_validated_drugs": lambda args: _validated_drugs_tool(args.get("condition_name", ""), args.get("icd_code", "")),
    "search_drug_labels": lambda args: search_drug_labels(args.get("condition_name", ""), int(args.get("limit", 15))),
    "lookup_rxnorm_drug": lambda args: lookup_rxnorm_drug(args.get("drug_name", "")),
    "list_candidate_drugs": lambda args: _candidate_drugs_tool(args.get("condition_name", ""), args.get("icd_code", "")),
}

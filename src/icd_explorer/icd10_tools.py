"""
ICD-10-CM tools: ranked search, code validation, lookup, and chapter grouping
via NLM Clinical Tables.

Search runs in tiers:
  1. Direct code input ("E11.9") goes straight to Clinical Tables.
  2. NIH Conditions API maps the query to a primary name and direct codes.
  3. Fallback: lay-term translation / organ normalization, then Clinical Tables.
Every tier ends with dedupe + multi-factor scoring.
"""

import logging
import re
from typing import Optional

import httpx

from . import http_client
from .chapters import get_chapter
from .conditions_api import detect_code_type, is_icd10_code, search_conditions
from .errors import SearchError
from .grouping import group_by_chapter, get_grouping_summary
from .scoring import deduplicate_results, score_and_rank_results
from .term_mapper import get_example_terms, translate_query

logger = logging.getLogger(__name__)

ICD10_API_URL = "https://clinicaltables.nlm.nih.gov/api/icd10cm/v3/search"

FETCH_LIMIT = 150
DISPLAY_LIMIT = 100
MAX_FETCH_LIMIT = 500

STOP_WORDS = frozenset(
    {
        "without", "with", "unspecified", "specified", "other",
        "mellitus", "complications", "complication", "type",
        "acute", "chronic", "primary", "secondary",
        "nos", "nec", "due", "to", "the", "a", "an", "and", "or",
        "left", "right", "bilateral", "initial", "subsequent",
        "episode", "encounter", "sequela",
    }
)

TOOLS = [
    {
        "name": "search_icd10",
        "description": (
            "Search ICD-10-CM codes by condition name, lay term, or code. Lay terms are translated "
            "(e.g. 'heart attack' -> 'myocardial infarction') and results are ranked by relevance."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search term (e.g., 'diabetes', 'heart attack', 'pancreas cancer', 'E11.9')",
                },
                "group": {
                    "type": "boolean",
                    "description": "Also return results grouped by ICD-10 chapter",
                    "default": False,
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": "search_icd10_more",
        "description": "Load the next page of ranked ICD-10-CM results for a query already searched.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The original search term"},
                "current_count": {
                    "type": "integer",
                    "description": "Number of results already displayed",
                    "minimum": 0,
                },
            },
            "required": ["query", "current_count"],
        },
    },
    {
        "name": "validate_icd10",
        "description": "Validate an ICD-10-CM diagnosis code. Checks format and verifies the code exists in the official code set.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "code": {"type": "string", "description": "The ICD-10-CM code to validate (e.g., 'E11.9', 'J18.9')"}
            },
            "required": ["code"],
        },
    },
    {
        "name": "lookup_icd10",
        "description": "Look up an ICD-10-CM code and return its description, chapter, and billability.",
        "inputSchema": {
            "type": "object",
            "properties": {"code": {"type": "string", "description": "The ICD-10-CM code to look up"}},
            "required": ["code"],
        },
    },
    {
        "name": "get_icd10_chapter",
        "description": "Get the ICD-10-CM chapter for a code prefix, with example codes.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "code_prefix": {
                    "type": "string",
                    "description": "ICD-10 code prefix (e.g., 'E11' for Type 2 diabetes, 'D55' for blood disorders)",
                }
            },
            "required": ["code_prefix"],
        },
    },
    {
        "name": "translate_medical_term",
        "description": "Translate a lay health term into the medical term used by ICD-10-CM.",
        "inputSchema": {
            "type": "object",
            "properties": {"term": {"type": "string", "description": "Lay term (e.g., 'heartburn', 'uti')"}},
            "required": ["term"],
        },
    },
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _empty_search_response() -> dict:
    return {"results": [], "totalCount": 0, "displayedCount": 0, "hasMore": False}


def _validate_icd10_format(code: str) -> tuple[bool, str]:
    clean_code = code.upper().replace(".", "")
    if not re.match(r"^[A-Z][0-9][0-9A-Z]{0,5}$", clean_code):
        return False, "Invalid format. ICD-10-CM codes start with a letter followed by 2-6 alphanumeric characters"
    if get_chapter(clean_code).id == 0 and clean_code[0] != "U":
        return False, f"Invalid category letter: {clean_code[0]}"
    return True, "Format valid"


def _parse_search_response(data: list) -> list[dict]:
    """Clinical Tables rows: [total, codes, extra, [[code, name], ...]]."""
    if not data or not data[0]:
        return []
    codes = data[1] or []
    names = data[3] if len(data) > 3 and data[3] else []
    results = []
    for i, code in enumerate(codes):
        row = names[i] if i < len(names) else None
        name = row[1] if row and len(row) > 1 and row[1] else "Unknown condition"
        results.append({"code": code, "name": name})
    return results


def extract_search_terms(condition_name: str) -> str:
    """Reduce an ICD description to a short keyword query for downstream APIs.

    "Type 2 diabetes mellitus without complications" -> "diabetes"
    """
    cleaned = re.sub(r"[,()]", "", condition_name.lower())
    words = cleaned.split()
    meaningful = [w for w in words if len(w) > 2 and w not in STOP_WORDS]
    terms = " ".join(meaningful[:4])
    if len(terms) < 3:
        return " ".join(condition_name.lower().split(" ")[:3])
    return terms


async def _search_single_term(client: httpx.AsyncClient, term: str, limit: int) -> tuple[list[dict], int]:
    response = await client.get(
        ICD10_API_URL,
        params={"sf": "code,name", "df": "code,name", "terms": term, "maxList": limit},
    )
    response.raise_for_status()
    data = response.json()
    return _parse_search_response(data), data[0] if data else 0


async def _search_with_fallback(query: str) -> dict:
    translation = translate_query(query)
    if translation.was_translated:
        logger.info("Translated %r -> %r (%s)", query, translation.medical_term, translation.source)

    all_results: list[dict] = []
    max_total = 0
    async with http_client.async_client() as client:
        for term in translation.search_terms:
            results, total = await _search_single_term(client, term, FETCH_LIMIT)
            all_results.extend(results)
            max_total = max(max_total, total)

    primary_term = translation.medical_term if translation.was_translated else query
    scored = score_and_rank_results(deduplicate_results(all_results), primary_term)
    displayed = scored[:DISPLAY_LIMIT]
    return {
        "results": displayed,
        "totalCount": max_total,
        "displayedCount": len(displayed),
        "hasMore": max_total > len(displayed),
        "translation": translation.to_dict() if translation.was_translated else None,
    }


async def _search_with_conditions(query: str) -> Optional[dict]:
    """Tier 1: Conditions API hit expands into a full search, else None."""
    conditions = await search_conditions(query)
    if not conditions.found or not conditions.icd_codes:
        return None

    primary = conditions.primary_name or query
    differs = primary.lower() != query.lower()
    logger.info("Conditions API hit: %r -> %r (%d direct codes)", query, primary, len(conditions.icd_codes))

    all_results = [dict(c) for c in conditions.icd_codes]
    try:
        async with http_client.async_client() as client:
            expanded, total = await _search_single_term(client, primary, FETCH_LIMIT)
            if differs:
                original, _ = await _search_single_term(client, query, FETCH_LIMIT)
                all_results.extend(original)
    except httpx.HTTPError as e:
        logger.warning("Conditions-based search failed for %r, using fallback: %s", query, e)
        return None
    all_results.extend(expanded)

    unique = deduplicate_results(all_results)
    scored = score_and_rank_results(unique, primary)
    displayed = scored[:DISPLAY_LIMIT]

    translation = None
    if conditions.primary_name and differs:
        translation = {
            "originalTerm": query,
            "searchTerms": [primary, query],
            "wasTranslated": True,
            "medicalTerm": primary,
            "message": f'Showing results for "{primary}"',
            "source": "conditions-api",
        }

    return {
        "results": displayed,
        "totalCount": max(total, len(unique)),
        "displayedCount": len(displayed),
        "hasMore": total > len(displayed),
        "translation": translation,
    }


# ---------------------------------------------------------------------------
# Tool implementations
# ---------------------------------------------------------------------------


async def search_icd10(query: str, group: bool = False) -> dict:
    trimmed = query.strip()
    if not trimmed:
        return _empty_search_response()

    try:
        response = None
        if is_icd10_code(trimmed):
            logger.debug("Direct ICD code %r, skipping Conditions API", trimmed)
        else:
            response = await _search_with_conditions(trimmed)
        if response is None:
            response = await _search_with_fallback(trimmed)
    except (httpx.HTTPError, ValueError) as e:
        raise SearchError(f"Failed to search ICD-10 codes: {e}") from e

    if group:
        grouped = group_by_chapter(response["results"])
        response["grouped"] = grouped
        response["groupingSummary"] = get_grouping_summary(grouped)
    return response


async def search_icd10_more(query: str, current_count: int) -> dict:
    """Re-run the fallback search with a larger window for "load more"."""
    trimmed = query.strip()
    if not trimmed:
        return _empty_search_response()

    translation = translate_query(trimmed)
    fetch_limit = min(current_count + DISPLAY_LIMIT + 25, MAX_FETCH_LIMIT)

    all_results: list[dict] = []
    max_total = 0
    try:
        async with http_client.async_client() as client:
            for term in translation.search_terms:
                results, total = await _search_single_term(client, term, fetch_limit)
                all_results.extend(results)
                max_total = max(max_total, total)
    except (httpx.HTTPError, ValueError) as e:
        raise SearchError(f"Failed to load more results: {e}") from e

    primary_term = translation.medical_term if translation.was_translated else trimmed
    scored = score_and_rank_results(deduplicate_results(all_results), primary_term)
    displayed = scored[: current_count + DISPLAY_LIMIT]
    return {
        "results": displayed,
        "totalCount": max_total,
        "displayedCount": len(displayed),
        "hasMore": max_total > len(displayed) and len(scored) > len(displayed),
        "translation": translation.to_dict() if translation.was_translated else None,
    }


async def validate_icd10(code: str) -> dict:
    format_valid, format_msg = _validate_icd10_format(code)
    if not format_valid:
        return {"valid": False, "code": code, "reason": format_msg}

    clean_code = code.upper().replace(".", "")
    async with http_client.async_client() as client:
        response = await client.get(
            ICD10_API_URL, params={"terms": clean_code, "maxList": 10, "sf": "code", "df": "code,name"}
        )
        response.raise_for_status()
        results = _parse_search_response(response.json())

    for result in results:
        if result["code"].replace(".", "") == clean_code:
            return {"valid": True, "code": result["code"], "description": result["name"]}

    return {"valid": False, "code": code, "reason": "Code not found in ICD-10-CM code set"}


async def lookup_icd10(code: str) -> dict:
    clean_code = code.upper().replace(".", "")

    async with http_client.async_client() as client:
        response = await client.get(
            ICD10_API_URL, params={"terms": clean_code, "maxList": 10, "sf": "code", "df": "code,name"}
        )
        response.raise_for_status()
        results = _parse_search_response(response.json())

    if not results:
        return {"found": False, "code": code, "message": "Code not found"}

    for result in results:
        if result["code"].replace(".", "") == clean_code:
            return {
                "found": True,
                "code": result["code"],
                "description": result["name"],
                "chapter": get_chapter(result["code"]).to_dict(),
                "category": clean_code[:3],
                "is_billable": len(clean_code) >= 4,
            }

    return {
        "found": False,
        "code": code,
        "message": "Exact code not found",
        "similar_codes": [{"code": r["code"], "description": r["name"]} for r in results[:5]],
    }


async def get_icd10_chapter(code_prefix: str) -> dict:
    prefix = code_prefix.upper().replace(".", "")
    if not prefix:
        return {"error": "Code prefix required"}

    chapter = get_chapter(prefix)
    if chapter.id == 0:
        return {"prefix": code_prefix, "found": False, "message": f"Unknown chapter for prefix: {code_prefix}"}

    async with http_client.async_client() as client:
        response = await client.get(
            ICD10_API_URL, params={"terms": prefix, "maxList": 5, "sf": "code", "df": "code,name"}
        )
        response.raise_for_status()
        examples = [{"code": r["code"], "description": r["name"]} for r in _parse_search_response(response.json())]

    return {"prefix": code_prefix, "found": True, "chapter": chapter.to_dict(), "example_codes": examples}


async def translate_medical_term(term: str) -> dict:
    translation = translate_query(term)
    return {
        **translation.to_dict(),
        "codeType": detect_code_type(term),
        "examples": get_example_terms(),
    }


HANDLERS = {
    "search_icd10": lambda args: search_icd10(args.get("query", ""), args.get("group", False)),
    "search_icd10_more": lambda args: search_icd10_more(args.get("query", ""), int(args.get("current_count", 0))),
    "validate_icd10": lambda args: validate_icd10(args.get("code", "")),
    "lookup_icd10": lambda args: lookup_icd10(args.get("code", "")),
    "get_icd10_chapter": lambda args: get_icd10_chapter(args.get("code_prefix", "")),
    "translate_medical_term": lambda args: translate_medical_term(args.get("term", "")),
}

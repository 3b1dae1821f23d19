"""
ICD-10-PCS inpatient procedure code search via NLM Clinical Tables.

PCS codes are 7 characters; the first is the section (0 Medical and Surgical,
B Imaging, 4 Measurement and Monitoring, ...), which decides the category.
"""

import logging
from typing import Optional

import httpx

from . import http_client
from .cache import DAY, TTLCache
from .procedures import ProcedureResult

logger = logging.getLogger(__name__)

ICD10PCS_API_URL = "https://clinicaltables.nlm.nih.gov/api/icd10pcs/v3/search"
MAX_RESULTS = 50
REQUEST_TIMEOUT_SECONDS = 5.0

_cache: TTLCache[list[dict]] = TTLCache(ttl_seconds=DAY)

# Section character -> procedure category; osteopathic, other and chiropractic fall to "other"
_SECTION_CATEGORIES = {
    **dict.fromkeys("BC", "diagnostic"),
    "4": "monitoring",
    **dict.fromkeys("0123456DFGHX", "therapeutic"),
}

TOOLS = [
    {
        "name": "search_icd10pcs",
        "description": "Search ICD-10-PCS inpatient procedure codes (surgeries, insertions, imaging, administration) by code or keyword.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Code or keyword (e.g., 'appendectomy', '0DTJ4ZZ')"},
                "max_results": {"type": "integer", "description": "Maximum results (default 50)", "default": 50},
            },
            "required": ["query"],
        },
    },
    {
        "name": "lookup_icd10pcs",
        "description": "Look up a single 7-character ICD-10-PCS code (exact match).",
        "inputSchema": {
            "type": "object",
            "properties": {"code": {"type": "string", "description": "ICD-10-PCS code (e.g., '0DTJ4ZZ')"}},
            "required": ["code"],
        },
    },
]


def categorize_icd10pcs_code(code: str) -> str:
    if not code:
        return "other"
    return _SECTION_CATEGORIES.get(code[0].upper(), "other")


def _parse_response(data: list) -> list[dict]:
    """Rows are [total, codes, extra, [[code, description], ...]]."""
    total = data[0] if data else 0
    codes = (data[1] if len(data) > 1 else None) or []
    if not total or not codes:
        return []

    displays = (data[3] if len(data) > 3 else None) or []
    results = []
    for i, code in enumerate(codes):
        pair = displays[i] if i < len(displays) and displays[i] else []
        description = (pair[1] if len(pair) > 1 else None) or (pair[0] if pair else None) or "No description available"
        results.append(
            ProcedureResult(
                code=code.strip(),
                code_system="ICD10PCS",
                description=description.strip(),
                category=categorize_icd10pcs_code(code),
                source="clinicaltables",
                setting="inpatient",
            ).to_dict()
        )
    return results


async def search_icd10pcs(query: str, max_results: int = MAX_RESULTS) -> list[dict]:
    """Search ICD-10-PCS codes; empty hits are cached, upstream failures are not."""
    if not query or not query.strip():
        return []
    key = f"pcs:{query.lower().strip()}:{max_results}"
    cached = _cache.get(key)
    if cached is not None:
        return cached

    try:
        async with http_client.async_client(timeout=REQUEST_TIMEOUT_SECONDS) as client:
            response = await client.get(ICD10PCS_API_URL, params={"terms": query.strip(), "maxList": max_results})
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("ICD-10-PCS search failed for %r: %s", query, e)
        return []

    results = _parse_response(data)
    _cache.set(key, results)
    return results


async def lookup_icd10pcs_code(code: str) -> Optional[dict]:
    if not code or not code.strip():
        return None
    target = code.strip().upper()
    for result in await search_icd10pcs(target, 5):
        if result["code"].upper() == target:
            return result
    return None


def clear_icd10pcs_cache() -> int:
    return _cache.clear()


async def _search_tool(query: str, max_results: int) -> dict:
    results = await search_icd10pcs(query, max_results)
    return {"query": query, "count": len(results), "results": results}


async def _lookup_tool(code: str) -> dict:
    result = await lookup_icd10pcs_code(code)
    if result is None:
        return {"found": False, "code": code.strip().upper()}
    return {"found": True, **result}


HANDLERS = {
    "search_icd10pcs": lambda args: _search_tool(args.get("query", ""), int(args.get("max_results", MAX_RESULTS))),
    "lookup_icd10pcs": lambda args: _lookup_tool(args.get("code", "")),
}

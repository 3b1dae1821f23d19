"""HCPCS Level II code search via NLM Clinical Tables."""

import logging
from typing import Optional

import httpx

from . import http_client
from .cache import DAY, TTLCache
from .procedures import ProcedureResult

logger = logging.getLogger(__name__)

HCPCS_API_URL = "https://clinicaltables.nlm.nih.gov/api/hcpcs/v3/search"
MAX_RESULTS = 50
REQUEST_TIMEOUT_SECONDS = 5.0

_cache: TTLCache[list[dict]] = TTLCache(ttl_seconds=DAY)

# First letter of the code -> procedure category
_PREFIX_CATEGORIES = {
    **dict.fromkeys("AEKL", "equipment"),
    **dict.fromkeys("PR", "diagnostic"),
    **dict.fromkeys("JCGHST", "therapeutic"),
    **dict.fromkeys("MV", "monitoring"),
}

HCPCS_CATEGORIES = {
    "A": {"name": "Transportation & Supplies", "description": "Transportation, medical/surgical supplies, and miscellaneous"},
    "B": {"name": "Enteral & Parenteral", "description": "Enteral and parenteral therapy supplies and equipment"},
    "C": {"name": "Outpatient PPS", "description": "Temporary outpatient prospective payment system codes"},
    "D": {"name": "Dental Procedures", "description": "Dental procedures and services"},
    "E": {"name": "Durable Medical Equipment", "description": "Durable medical equipment such as wheelchairs and hospital beds"},
    "G": {"name": "Procedures & Services", "description": "Temporary procedures and professional services"},
    "H": {"name": "Behavioral Health", "description": "Behavioral health and substance abuse treatment services"},
    "J": {"name": "Drugs (Provider-Administered)", "description": "Drugs administered by healthcare providers"},
    "K": {"name": "DME (Temporary)", "description": "Temporary codes for durable medical equipment"},
    "L": {"name": "Orthotics & Prosthetics", "description": "Orthotic and prosthetic procedures and devices"},
    "M": {"name": "Medical Services", "description": "Medical services including quality measures"},
    "P": {"name": "Pathology & Laboratory", "description": "Pathology and laboratory services"},
    "Q": {"name": "Miscellaneous (Temporary)", "description": "Temporary miscellaneous codes"},
    "R": {"name": "Diagnostic Radiology", "description": "Diagnostic radiology services"},
    "S": {"name": "Private Payer Codes", "description": "Temporary codes for private payer use"},
    "T": {"name": "State Medicaid Codes", "description": "Codes established by state Medicaid agencies"},
    "U": {"name": "Coronavirus Codes", "description": "Coronavirus diagnostic and treatment codes"},
    "V": {"name": "Vision & Hearing", "description": "Vision and hearing services and supplies"},
}

TOOLS = [
    {
        "name": "search_hcpcs",
        "description": "Search HCPCS Level II codes (supplies, equipment, provider-administered drugs, services) by code or keyword.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Code or keyword (e.g., 'wheelchair', 'J1100')"},
                "max_results": {"type": "integer", "description": "Maximum results (default 50)", "default": 50},
            },
            "required": ["query"],
        },
    },
    {
        "name": "lookup_hcpcs",
        "description": "Look up a single HCPCS Level II code (exact match).",
        "inputSchema": {
            "type": "object",
            "properties": {"code": {"type": "string", "description": "HCPCS code (e.g., 'E0601')"}},
            "required": ["code"],
        },
    },
    {
        "name": "get_hcpcs_categories",
        "description": "List HCPCS Level II code categories by first letter.",
        "inputSchema": {"type": "object", "properties": {}},
    },
]


def categorize_hcpcs_code(code: str) -> str:
    if not code:
        return "other"
    return _PREFIX_CATEGORIES.get(code[0].upper(), "other")


def _parse_response(data: list) -> list[dict]:
    """Rows are [total, codes, {field: [values]}, display]."""
    total = data[0] if data else 0
    codes = (data[1] if len(data) > 1 else None) or []
    if not total or not codes:
        return []

    extra = (data[2] if len(data) > 2 else None) or {}
    short_descs = extra.get("short_desc") or []
    long_descs = extra.get("long_desc") or []
    term_dates = extra.get("term_dt") or []

    def field(values: list, i: int) -> Optional[str]:
        return values[i] if i < len(values) else None

    results = []
    for i, code in enumerate(codes):
        description = field(long_descs, i) or field(short_descs, i) or "No description available"
        results.append(
            ProcedureResult(
                code=code.strip(),
                code_system="HCPCS",
                description=description.strip(),
                category=categorize_hcpcs_code(code),
                source="clinicaltables",
                setting="outpatient",
                is_active=not field(term_dates, i),
            ).to_dict()
        )
    return results


async def search_hcpcs(query: str, max_results: int = MAX_RESULTS) -> list[dict]:
    """Search HCPCS codes; upstream failures return [] without caching."""
    if not query or not query.strip():
        return []
    key = f"hcpcs:{query.lower().strip()}:{max_results}"
    cached = _cache.get(key)
    if cached is not None:
        return cached

    params = {"terms": query.strip(), "maxList": max_results, "ef": "short_desc,long_desc,add_dt,term_dt"}
    try:
        async with http_client.async_client(timeout=REQUEST_TIMEOUT_SECONDS) as client:
            response = await client.get(HCPCS_API_URL, params=params)
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("HCPCS search failed for %r: %s", query, e)
        return []

    results = _parse_response(data)
    _cache.set(key, results)
    return results


async def lookup_hcpcs_code(code: str) -> Optional[dict]:
    if not code or not code.strip():
        return None
    target = code.strip().upper()
    for result in await search_hcpcs(target, 5):
        if result["code"].upper() == target:
            return result
    return None


def get_hcpcs_categories() -> dict:
    return HCPCS_CATEGORIES


def clear_hcpcs_cache() -> int:
    return _cache.clear()


def get_hcpcs_cache_stats() -> dict:
    return {"size": len(_cache), "entries": _cache.keys()}


async def _search_tool(query: str, max_results: int) -> dict:
    results = await search_hcpcs(query, max_results)
    return {"query": query, "count": len(results), "results": results}


async def _lookup_tool(code: str) -> dict:
    result = await lookup_hcpcs_code(code)
    if result is None:
        return {"found": False, "code": code.strip().upper()}
    return {"found": True, **result}


async def _categories_tool() -> dict:
    return {"categories": get_hcpcs_categories()}


HANDLERS = {
    "search_hcpcs": lambda args: _search_tool(args.get("query", ""), int(args.get("max_results", MAX_RESULTS))),
    "lookup_hcpcs": lambda args: _lookup_tool(args.get("code", "")),
    "get_hcpcs_categories": lambda args: _categories_tool(),
}

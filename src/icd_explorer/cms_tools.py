"""
CMS Coverage tools: Medicare National and Local Coverage Determinations.

The CMS Coverage API (no key required) serves the full NCD and LCD report
lists; each list is cached whole for 24h and filtered locally by title.
"""

import asyncio
import html
import logging
import re
from typing import Optional

from . import http_client
from .cache import DAY, TTLCache
from .icd10_tools import lookup_icd10

logger = logging.getLogger(__name__)

CMS_API_BASE = "https://api.coverage.cms.gov/v1"
MCD_BASE_URL = "https://www.cms.gov/medicare-coverage-database"
REPORT_TIMEOUT_SECONDS = 15.0
DETAIL_TIMEOUT_SECONDS = 10.0
COVERAGE_TYPES = ("all", "ncd", "lcd")

_report_cache: TTLCache[list] = TTLCache(ttl_seconds=DAY)
_detail_cache: TTLCache[dict] = TTLCache(ttl_seconds=DAY)

_ICD_QUALIFIERS = re.compile(r"\b(type\s*[12]|unspecified|without complications|with .+|essential)\b", re.IGNORECASE)

TOOLS = [
    {
        "name": "search_coverage",
        "description": "Search Medicare coverage determinations (NCD national, LCD local) whose titles match a condition or procedure.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Condition or procedure (e.g., 'diabetes', 'knee arthroplasty')",
                },
                "coverage_type": {
                    "type": "string",
                    "enum": list(COVERAGE_TYPES),
                    "description": "'ncd' (National), 'lcd' (Local), or 'all'",
                    "default": "all",
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": "get_ncd_details",
        "description": "Get the full text of a National Coverage Determination by document ID.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "ncd_id": {"type": "integer", "description": "NCD document ID"},
                "version": {"type": "integer", "description": "Document version (default 1)", "default": 1},
            },
            "required": ["ncd_id"],
        },
    },
    {
        "name": "get_coverage_by_icd10",
        "description": "Find Medicare coverage policies for an ICD-10-CM diagnosis code, searching by the code's description.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "icd10_code": {"type": "string", "description": "ICD-10-CM diagnosis code (e.g., 'E11.9', 'M54.5')"}
            },
            "required": ["icd10_code"],
        },
    },
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def clean_title(title: str) -> str:
    unescaped = html.unescape(title).replace("\\u0026", "&").replace("\\u0027", "'")
    return " ".join(unescaped.split())


def extract_condition_for_coverage(icd_description: str) -> str:
    """'Type 2 diabetes mellitus without complications' -> 'diabetes mellitus'"""
    stripped = _ICD_QUALIFIERS.sub("", icd_description)
    stripped = re.sub(r"\([^)]*\)", "", stripped)
    return " ".join(stripped.split())


def _mcd_url(path: Optional[str]) -> str:
    if not path:
        return ""
    return path if path.startswith("http") else f"{MCD_BASE_URL}{path}"


def _title_matches(title: str, terms: list[str]) -> bool:
    lowered = title.lower()
    return any(term in lowered for term in terms)


async def _fetch_report(report: str) -> list[dict]:
    """Whole report list, cached; non-2xx responses yield [] and are not cached."""
    cached = _report_cache.get(report)
    if cached is not None:
        return cached

    url = f"{CMS_API_BASE}/reports/{report}/"
    logger.info("Fetching CMS report %s", url)
    async with http_client.async_client(timeout=REPORT_TIMEOUT_SECONDS) as client:
        response = await client.get(url, headers={"Accept": "application/json"})
    if not response.is_success:
        logger.error("CMS report %s returned %d", report, response.status_code)
        return []

    data = response.json().get("data")
    if not isinstance(data, list):
        logger.error("Unexpected CMS report format for %s", report)
        return []
    _report_cache.set(report, data)
    logger.info("Cached %d %s entries", len(data), report)
    return data


async def fetch_ncds(keyword: str) -> list[dict]:
    terms = keyword.lower().split()
    ncds = []
    for item in await _fetch_report("national-coverage-ncd"):
        title = item.get("title") or ""
        if not _title_matches(title, terms) or "RETIRED" in title.upper():
            continue
        ncds.append(
            {
                "id": item.get("document_id"),
                "version": item.get("document_version"),
                "displayId": item.get("document_display_id"),
                "title": clean_title(title),
                "type": "ncd",
                "chapter": item.get("chapter"),
                "lastUpdated": item.get("last_updated"),
                "url": _mcd_url(item.get("url")),
            }
        )
    return sorted(ncds, key=lambda ncd: ncd["title"])


async def fetch_lcds(keyword: str) -> list[dict]:
    terms = keyword.lower().split()
    lcds = [
        {
            "id": item.get("document_id"),
            "title": clean_title(item.get("title") or "Untitled LCD"),
            "type": "lcd",
            # The report endpoint does not carry the contractor
            "contractor": "",
            "lastUpdated": item.get("last_updated") or "",
            "url": _mcd_url(item.get("url")),
        }
        for item in await _fetch_report("local-coverage-final-lcds")
        if _title_matches(item.get("title") or "", terms)
    ]
    return sorted(lcds, key=lambda lcd: lcd["title"])


# ---------------------------------------------------------------------------
# Tool implementations
# ---------------------------------------------------------------------------


async def search_coverage(condition: str, coverage_type: str = "all") -> dict:
    """NCDs and/or LCDs for a condition, fetched in parallel."""
    coverage_type = (coverage_type or "all").lower()
    results = {"ncds": [], "lcds": [], "totalResults": 0, "searchTerm": condition}

    tasks = {}
    if coverage_type in ("ncd", "all"):
        tasks["ncds"] = fetch_ncds(condition)
    if coverage_type in ("lcd", "all"):
        tasks["lcds"] = fetch_lcds(condition)
    for key, value in zip(tasks, await asyncio.gather(*tasks.values())):
        results[key] = value

    results["totalResults"] = len(results["ncds"]) + len(results["lcds"])
    return results


async def get_ncd_details(ncd_id: int, version: Optional[int] = None) -> Optional[dict]:
    version = version or 1
    key = f"{ncd_id}-{version}"
    cached = _detail_cache.get(key)
    if cached is not None:
        return cached

    async with http_client.async_client(timeout=DETAIL_TIMEOUT_SECONDS) as client:
        response = await client.get(
            f"{CMS_API_BASE}/data/ncd/",
            params={"ncdid": ncd_id, "ncdver": version},
            headers={"Accept": "application/json"},
        )
    if not response.is_success:
        logger.error("NCD detail %s returned %d", key, response.status_code)
        return None

    detail = response.json()
    _detail_cache.set(key, detail)
    return detail


async def get_coverage_by_icd10(icd10_code: str) -> dict:
    lookup = await lookup_icd10(icd10_code)
    if not lookup.get("found"):
        return {"code": icd10_code, "found": False, "message": "ICD-10 code not found"}

    condition = extract_condition_for_coverage(lookup["description"])
    coverage = await search_coverage(condition)
    return {"code": lookup["code"], "found": True, "description": lookup["description"], **coverage}


def clear_coverage_cache() -> None:
    _report_cache.clear()
    _detail_cache.clear()


async def _ncd_details_tool(ncd_id: int, version: Optional[int]) -> dict:
    return {"detail": await get_ncd_details(ncd_id, version)}


HANDLERS = {
    "search_coverage": lambda args: search_coverage(args.get("query", ""), args.get("coverage_type", "all")),
    "get_ncd_details": lambda args: _ncd_details_tool(int(args.get("ncd_id", 0)), args.get("version")),
    "get_coverage_by_icd10": lambda args: get_coverage_by_icd10(args.get("icd10_code", "")),
}

"""Clinical trials tools: ClinicalTrials.gov API v2.

search_trials_for_condition backs the per-code trial panel (camelCase
ClinicalTrialResult records); the remaining tools expose the general
search and per-study views.
"""

import logging
import os
import re
from typing import Optional

from . import http_client
from .icd10_tools import extract_search_terms

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CT_API_BASE = "https://clinicaltrials.gov/api/v2"
CT_STUDY_URL = "https://clinicaltrials.gov/study"
DEFAULT_PAGE_SIZE = 5
SUMMARY_MAX_LENGTH = 250
ELIGIBILITY_MAX_LENGTH = 200
MAX_LOCATIONS = 3
DEMO_MODE = os.environ.get("DEMO_MODE", "false").lower() in ("true", "1", "yes")

_STATUS_MAP = {
    "RECRUITING": "RECRUITING",
    "ACTIVE_NOT_RECRUITING": "ACTIVE_NOT_RECRUITING",
    "ACTIVE,_NOT_RECRUITING": "ACTIVE_NOT_RECRUITING",
    "COMPLETED": "COMPLETED",
    "TERMINATED": "TERMINATED",
}

STATUS_VALUES = [
    "RECRUITING",
    "NOT_YET_RECRUITING",
    "ACTIVE_NOT_RECRUITING",
    "COMPLETED",
    "ENROLLING_BY_INVITATION",
    "SUSPENDED",
    "TERMINATED",
    "WITHDRAWN",
]

PHASE_VALUES = ["EARLY_PHASE1", "PHASE1", "PHASE2", "PHASE3", "PHASE4", "NA"]

# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

_NCT_ID = {"nct_id": {"type": "string", "description": "NCT identifier (e.g., 'NCT04280705')"}}

TOOLS = [
    {
        "name": "search_trials_for_condition",
        "description": "Find clinical trials for an ICD-10 condition description. Returns up to 5 trials with status, summary, sponsor, eligibility excerpt, and up to 3 locations.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "condition": {"type": "string", "description": "Condition name or ICD-10 description"},
                "recruiting_only": {
                    "type": "boolean",
                    "description": "Only return currently recruiting trials",
                    "default": True,
                },
            },
            "required": ["condition"],
        },
    },
    {
        "name": "search_clinical_trials",
        "description": "Search clinical trials by keywords, condition, intervention, status, phase, or location.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Free-text search (condition, drug, device, or keywords)"},
                "condition": {"type": "string", "description": "Filter by condition/disease"},
                "intervention": {"type": "string", "description": "Filter by drug, device, or procedure name"},
                "status": {
                    "type": "array",
                    "items": {"type": "string", "enum": STATUS_VALUES},
                    "description": "Filter by recruitment status",
                },
                "phase": {
                    "type": "array",
                    "items": {"type": "string", "enum": PHASE_VALUES},
                    "description": "Filter by trial phase",
                },
                "location_country": {"type": "string", "description": "Country (e.g., 'United States')"},
                "location_state": {"type": "string", "description": "US state (e.g., 'California')"},
                "location_city": {"type": "string", "description": "City"},
                "max_results": {
                    "type": "integer",
                    "description": "Number of results (1-100, default 10)",
                    "minimum": 1,
                    "maximum": 100,
                    "default": 10,
                },
            },
        },
    },
    {
        "name": "get_trial_details",
        "description": "Get full details for a clinical trial by NCT ID.",
        "inputSchema": {"type": "object", "properties": dict(_NCT_ID), "required": ["nct_id"]},
    },
    {
        "name": "get_trial_eligibility",
        "description": "Get eligibility criteria for a clinical trial.",
        "inputSchema": {"type": "object", "properties": dict(_NCT_ID), "required": ["nct_id"]},
    },
    {
        "name": "get_trial_locations",
        "description": "Get sites for a clinical trial, optionally filtered by site recruitment status.",
        "inputSchema": {
            "type": "object",
            "properties": {
                **_NCT_ID,
                "status": {"type": "string", "description": "Site recruitment status (e.g., 'RECRUITING')"},
            },
            "required": ["nct_id"],
        },
    },
    {
        "name": "get_trial_results",
        "description": "Get the posted results summary for a completed trial, if any.",
        "inputSchema": {"type": "object", "properties": dict(_NCT_ID), "required": ["nct_id"]},
    },
]

# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def normalize_status(status: Optional[str]) -> str:
    if not status:
        return "OTHER"
    return _STATUS_MAP.get(re.sub(r"\s+", "_", status.upper()), "OTHER")


def truncate_text(text: str, max_length: int) -> str:
    """Collapse whitespace, then cut at a late word boundary."""
    cleaned = " ".join(text.split())
    if len(cleaned) <= max_length:
        return cleaned
    last_space = cleaned[:max_length].rfind(" ")
    break_point = last_space if last_space > max_length * 0.7 else max_length
    return cleaned[:break_point].strip() + "..."


def get_trial_url(nct_id: str) -> str:
    return f"{CT_STUDY_URL}/{nct_id}"


def _parse_condition_trial(study: dict) -> Optional[dict]:
    protocol = study.get("protocolSection")
    if not protocol:
        return None
    ident = protocol.get("identificationModule") or {}
    nct_id = ident.get("nctId")
    if not nct_id:
        return None

    status = protocol.get("statusModule") or {}
    summary = (protocol.get("descriptionModule") or {}).get("briefSummary") or "No summary available"
    criteria = (protocol.get("eligibilityModule") or {}).get("eligibilityCriteria")
    sponsor = (
        ((protocol.get("sponsorCollaboratorsModule") or {}).get("leadSponsor") or {}).get("name")
        or (ident.get("organization") or {}).get("fullName")
        or "Unknown Sponsor"
    )
    raw_locations = (protocol.get("contactsLocationsModule") or {}).get("locations") or []
    locations = [
        {
            "facility": loc.get("facility") or "Unknown Facility",
            "city": loc.get("city") or "",
            "state": loc.get("state") or "",
            "country": loc.get("country") or "",
        }
        for loc in raw_locations[:MAX_LOCATIONS]
    ]

    return {
        "nctId": nct_id,
        "title": ident.get("briefTitle") or "Untitled Study",
        "status": normalize_status(status.get("overallStatus")),
        "summary": truncate_text(summary, SUMMARY_MAX_LENGTH),
        "sponsor": sponsor,
        "eligibility": truncate_text(criteria, ELIGIBILITY_MAX_LENGTH) if criteria else None,
        "locations": locations or None,
        "startDate": (status.get("startDateStruct") or {}).get("date"),
        "url": get_trial_url(nct_id),
    }


def _format_trial_summary(study: dict) -> dict:
    protocol = study.get("protocolSection", {})
    ident = protocol.get("identificationModule", {})
    design = protocol.get("designModule", {})
    interventions = protocol.get("armsInterventionsModule", {}).get("interventions", [])
    locations = protocol.get("contactsLocationsModule", {}).get("locations", [])

    preview = [
        ", ".join(part for part in (loc.get("city"), loc.get("state"), loc.get("country")) if part)
        for loc in locations[:MAX_LOCATIONS]
    ]
    return {
        "nct_id": ident.get("nctId"),
        "title": ident.get("briefTitle"),
        "status": protocol.get("statusModule", {}).get("overallStatus"),
        "phase": design.get("phases", ["N/A"]),
        "study_type": design.get("studyType"),
        "conditions": protocol.get("conditionsModule", {}).get("conditions", [])[:5],
        "interventions": [i.get("name") for i in interventions][:5],
        "enrollment": design.get("enrollmentInfo", {}).get("count"),
        "sponsor": protocol.get("sponsorCollaboratorsModule", {}).get("leadSponsor", {}).get("name"),
        "locations_preview": preview or ["See trial for locations"],
        "url": get_trial_url(ident.get("nctId", "")),
    }


def _format_trial_detail(data: dict) -> dict:
    protocol = data.get("protocolSection", {})
    ident = protocol.get("identificationModule", {})
    status = protocol.get("statusModule", {})
    description = protocol.get("descriptionModule", {})
    design = protocol.get("designModule", {})
    eligibility = protocol.get("eligibilityModule", {})
    sponsor = protocol.get("sponsorCollaboratorsModule", {})

    return {
        "nct_id": ident.get("nctId"),
        "title": ident.get("briefTitle"),
        "official_title": ident.get("officialTitle"),
        "status": status.get("overallStatus"),
        "start_date": status.get("startDateStruct", {}).get("date"),
        "completion_date": status.get("completionDateStruct", {}).get("date"),
        "description": description.get("briefSummary"),
        "detailed_description": description.get("detailedDescription"),
        "study_type": design.get("studyType"),
        "phase": design.get("phases", []),
        "enrollment": design.get("enrollmentInfo", {}).get("count"),
        "conditions": protocol.get("conditionsModule", {}).get("conditions", []),
        "interventions": [
            {"type": i.get("type"), "name": i.get("name"), "description": i.get("description")}
            for i in protocol.get("armsInterventionsModule", {}).get("interventions", [])
        ],
        "eligibility": {
            "criteria": eligibility.get("eligibilityCriteria"),
            "gender": eligibility.get("sex"),
            "min_age": eligibility.get("minimumAge"),
            "max_age": eligibility.get("maximumAge"),
            "healthy_volunteers": eligibility.get("healthyVolunteers"),
        },
        "primary_outcomes": [
            {"measure": o.get("measure"), "time_frame": o.get("timeFrame")}
            for o in protocol.get("outcomesModule", {}).get("primaryOutcomes", [])
        ],
        "sponsor": sponsor.get("leadSponsor", {}).get("name"),
        "collaborators": [c.get("name") for c in sponsor.get("collaborators", [])],
        "url": get_trial_url(ident.get("nctId", "")),
    }


def _format_site(loc: dict) -> dict:
    contact = (loc.get("contacts") or [{}])[0]
    return {
        "facility": loc.get("facility"),
        "city": loc.get("city"),
        "state": loc.get("state"),
        "country": loc.get("country"),
        "status": loc.get("status"),
        "contact": {"name": contact.get("name"), "phone": contact.get("phone"), "email": contact.get("email")},
    }


def _demo_condition_trials(condition: str) -> list[dict]:
    return [
        {
            "nctId": "NCT00000000",
            "title": f"[DEMO] Sample Trial for {condition}",
            "status": "RECRUITING",
            "summary": "This is a demo trial record.",
            "sponsor": "Demo Sponsor",
            "eligibility": "Ages 18-65, confirmed diagnosis",
            "locations": [{"facility": "Demo Medical Center", "city": "New York", "state": "New York", "country": "United States"}],
            "startDate": "2025-01-01",
            "url": get_trial_url("NCT00000000"),
        }
    ]


async def _get_study(nct_id: str, fields: Optional[str] = None) -> Optional[dict]:
    """Fetch one study; None when ClinicalTrials.gov answers 404."""
    params = {"fields": fields} if fields else None
    async with http_client.async_client() as client:
        response = await client.get(f"{CT_API_BASE}/studies/{nct_id}", params=params)
    if response.status_code == 404:
        return None
    response.raise_for_status()
    return response.json()


# ---------------------------------------------------------------------------
# Tool implementations
# ---------------------------------------------------------------------------


async def search_trials_for_condition(
    condition: str,
    recruiting_only: bool = True,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> list[dict]:
    """Trials for a condition name; 400 from the API means no usable query."""
    search_terms = extract_search_terms(condition)
    if not search_terms:
        return []
    if DEMO_MODE:
        return _demo_condition_trials(search_terms)

    params = {"query.cond": search_terms, "pageSize": page_size}
    if recruiting_only:
        params["filter.overallStatus"] = "RECRUITING"

    async with http_client.async_client() as client:
        response = await client.get(f"{CT_API_BASE}/studies", params=params)
    if response.status_code == 400:
        logger.info("ClinicalTrials.gov rejected query %r", search_terms)
        return []
    response.raise_for_status()

    trials = [t for t in map(_parse_condition_trial, response.json().get("studies") or []) if t]
    logger.info("Found %d trials for %r", len(trials), search_terms)
    return trials


async def search_clinical_trials(
    query: Optional[str] = None,
    condition: Optional[str] = None,
    intervention: Optional[str] = None,
    status: Optional[list[str] | str] = None,
    phase: Optional[list[str] | str] = None,
    max_results: int = 10,
    location_country: Optional[str] = None,
    location_state: Optional[str] = None,
    location_city: Optional[str] = None,
) -> dict:
    if DEMO_MODE:
        trials = _demo_condition_trials(condition or query or "demo")
        return {"total_count": 1, "returned_count": 1, "trials": trials}

    params: dict = {"format": "json", "pageSize": min(max_results, 100)}
    if query:
        params["query.term"] = query
    if condition:
        params["query.cond"] = condition
    if intervention:
        params["query.intr"] = intervention
    if status:
        params["filter.overallStatus"] = ",".join(status) if isinstance(status, list) else status
    if phase:
        params["filter.phase"] = ",".join(phase) if isinstance(phase, list) else phase

    if location_city:
        params["query.locn"] = ", ".join(p for p in (location_city, location_state, location_country) if p)
    elif location_state:
        params["query.locn"] = f"{location_state}, {location_country or 'United States'}"
    elif location_country:
        params["query.locn"] = location_country

    async with http_client.async_client() as client:
        response = await client.get(f"{CT_API_BASE}/studies", params=params)
        response.raise_for_status()
        data = response.json()

    studies = data.get("studies", [])
    return {
        "total_count": data.get("totalCount", 0),
        "returned_count": len(studies),
        "trials": [_format_trial_summary(s) for s in studies],
    }


async def get_trial_details(nct_id: str) -> dict:
    nct_id = nct_id.upper().strip()
    data = await _get_study(nct_id)
    if data is None:
        return {"found": False, "nct_id": nct_id}
    return {"found": True, "trial": _format_trial_detail(data)}


async def get_trial_eligibility(nct_id: str) -> dict:
    result = await get_trial_details(nct_id)
    if not result.get("found"):
        return result
    trial = result["trial"]
    return {
        "nct_id": trial["nct_id"],
        "title": trial.get("title"),
        "eligibility": trial["eligibility"],
        "healthy_volunteers": trial["eligibility"].get("healthy_volunteers"),
    }


async def get_trial_locations(nct_id: str, status: Optional[str] = None) -> dict:
    nct_id = nct_id.upper().strip()
    data = await _get_study(
        nct_id,
        "NCTId,BriefTitle,LocationFacility,LocationCity,LocationState,LocationCountry,"
        "LocationStatus,LocationContactName,LocationContactPhone,LocationContactEMail",
    )
    if data is None:
        return {"found": False, "nct_id": nct_id}

    protocol = data.get("protocolSection", {})
    sites = protocol.get("contactsLocationsModule", {}).get("locations", [])
    if status:
        sites = [site for site in sites if site.get("status") == status]
    return {
        "nct_id": nct_id,
        "title": protocol.get("identificationModule", {}).get("briefTitle"),
        "location_count": len(sites),
        "locations": [_format_site(site) for site in sites],
    }


async def get_trial_results(nct_id: str) -> dict:
    nct_id = nct_id.upper().strip()
    data = await _get_study(nct_id)
    if data is None:
        return {"found": False, "nct_id": nct_id}

    protocol = data.get("protocolSection", {})
    results = data.get("resultsSection", {})
    status = protocol.get("statusModule", {})
    if not results:
        return {
            "nct_id": nct_id,
            "title": protocol.get("identificationModule", {}).get("briefTitle"),
            "status": status.get("overallStatus"),
            "has_results": False,
            "results_posted_date": None,
            "primary_outcomes": "Results not yet posted",
        }

    measures = results.get("outcomeMeasuresModule", {}).get("outcomeMeasures", [])
    return {
        "nct_id": nct_id,
        "title": protocol.get("identificationModule", {}).get("briefTitle"),
        "status": status.get("overallStatus"),
        "has_results": True,
        "results_posted_date": status.get("resultsFirstPostDateStruct", {}).get("date"),
        "primary_outcomes": [
            {"title": m.get("title"), "description": m.get("description"), "time_frame": m.get("timeFrame")}
            for m in measures
            if m.get("type") == "PRIMARY"
        ][:5],
    }


async def _condition_trials_tool(condition: str, recruiting_only: bool) -> dict:
    trials = await search_trials_for_condition(condition, recruiting_only)
    return {"condition": condition, "count": len(trials), "trials": trials}


HANDLERS = {
    "search_trials_for_condition": lambda args: _condition_trials_tool(
        args.get("condition", ""), args.get("recruiting_only", True)
    ),
    "search_clinical_trials": lambda args: search_clinical_trials(
        args.get("query"),
        args.get("condition"),
        args.get("intervention"),
        args.get("status"),
        args.get("phase"),
        int(args.get("max_results", 10)),
        args.get("location_country"),
        args.get("location_state"),
        args.get("location_city"),
    ),
    "get_trial_details": lambda args: get_trial_details(args.get("nct_id", "")),
    "get_trial_eligibility": lambda args: get_trial_eligibility(args.get("nct_id", "")),
    "get_trial_locations": lambda args: get_trial_locations(args.get("nct_id", ""), args.get("status")),
    "get_trial_results": lambda args: get_trial_results(args.get("nct_id", "")),
}

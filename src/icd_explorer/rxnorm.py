"""
RxNorm and RxClass lookups (NLM RxNav REST).

RxNorm resolves a drug name to a concept (brand, generic, form, strength);
RxClass enriches an RxCUI with pharmacologic classes, ingredients, and
related branded/clinical products. Lookups never raise: failures are logged,
cached as empty, and returned as None / [].
"""

import asyncio
import logging
import re
from typing import Optional

import httpx

from . import http_client
from .cache import DAY, TTLCache

logger = logging.getLogger(__name__)

RXNORM_BASE_URL = "https://rxnav.nlm.nih.gov/REST"
RXCLASS_BASE_URL = f"{RXNORM_BASE_URL}/rxclass"

_drug_cache: TTLCache[Optional[dict]] = TTLCache(ttl_seconds=DAY)
_class_cache: TTLCache[list] = TTLCache(ttl_seconds=7 * DAY)
_ingredient_cache: TTLCache[list] = TTLCache(ttl_seconds=DAY)
_related_cache: TTLCache[list] = TTLCache(ttl_seconds=DAY)

DOSAGE_FORMS = (
    "Auto-Injector",
    "Pen Injector",
    "Prefilled Syringe",
    "Extended Release Oral Tablet",
    "Extended Release Oral Capsule",
    "Oral Tablet",
    "Oral Capsule",
    "Oral Solution",
    "Tablet",
    "Capsule",
    "Injection",
    "Solution",
    "Suspension",
    "Inhaler",
    "Nasal Spray",
    "Topical",
    "Patch",
    "Cream",
    "Ointment",
)

RELATED_DOSAGE_FORMS = (
    "Tablet", "Capsule", "Solution", "Suspension", "Injection",
    "Pen Injector", "Auto-Injector", "Patch", "Cream", "Gel",
    "Ointment", "Oral Powder", "Oral Liquid", "Inhalant",
    "Nasal Spray", "Eye Drops", "Ear Drops", "Suppository",
)

# EPC is the most clinically useful class type
CLASS_TYPE_PRIORITY = {"EPC": 1, "MOA": 2, "ATC": 3, "PE": 4, "DISEASE": 5}

_BRAND = re.compile(r"\[([^\]]+)\]")
_GENERIC = re.compile(r"\b([a-z]+(?:\s*/\s*[a-z]+)?)\s+\d", re.IGNORECASE)
_STRENGTH = re.compile(
    r"(\d+(?:\.\d+)?\s*(?:MG|ML|MCG|G|UNT)(?:\s*(?:per|/)\s*\d+(?:\.\d+)?\s*(?:MG|ML|MCG|G))?)",
    re.IGNORECASE,
)
_RELATED_STRENGTH = re.compile(
    r"(\d+(?:\.\d+)?)\s*(MG/ML|MCG/ML|MG|MCG|G|ML)(?:\s*/\s*(\d+(?:\.\d+)?)\s*(ML))?", re.IGNORECASE
)
_UNIT_WORDS = {"ml", "mg", "mcg", "g", "hr", "per", "dose"}


# ---------------------------------------------------------------------------
# Name parsing
# ---------------------------------------------------------------------------


def to_title_case(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in re.split(r"[\s/]+", value.lower()) if word)


def extract_brand_name(full_name: str, fallback: str) -> str:
    match = _BRAND.search(full_name)
    if match:
        return match.group(1)
    return to_title_case(fallback)


def extract_generic_name(full_name: str, fallback: str) -> str:
    match = _GENERIC.search(full_name)
    if match:
        return match.group(1).lower()
    for word in full_name.split():
        cleaned = re.sub(r"[^a-z/]", "", word.lower())
        if len(cleaned) > 2 and cleaned not in _UNIT_WORDS and cleaned[0].isalpha():
            return cleaned
    return fallback.lower()


def extract_dosage_form(full_name: str) -> Optional[str]:
    lower = full_name.lower()
    for form in DOSAGE_FORMS:
        if form.lower() in lower:
            return form
    return None


def extract_strength(full_name: str) -> Optional[str]:
    match = _STRENGTH.search(full_name)
    return match.group(1) if match else None


def _parse_concept(concept: dict, original_name: str) -> dict:
    full_name = concept.get("name", "")
    return {
        "rxcui": concept.get("rxcui"),
        "brandName": extract_brand_name(full_name, original_name),
        "genericName": extract_generic_name(full_name, original_name),
        "fullName": full_name,
        "dosageForm": extract_dosage_form(full_name),
        "strength": extract_strength(full_name),
    }


def _parse_drugs_response(data: dict, original_name: str) -> Optional[dict]:
    """Prefer a branded (SBD) concept, then clinical (SCD), then anything."""
    groups = (data.get("drugGroup") or {}).get("conceptGroup") or []
    for tty in ("SBD", "SCD"):
        for group in groups:
            if group.get("tty") == tty and group.get("conceptProperties"):
                return _parse_concept(group["conceptProperties"][0], original_name)
    for group in groups:
        if group.get("conceptProperties"):
            return _parse_concept(group["conceptProperties"][0], original_name)
    return None


# ---------------------------------------------------------------------------
# RxNorm drug search
# ---------------------------------------------------------------------------


async def search_rxnorm(drug_name: str) -> Optional[dict]:
    key = drug_name.lower().strip()
    if key in _drug_cache:
        return _drug_cache.get(key)

    drug = None
    try:
        async with http_client.async_client() as client:
            response = await client.get(f"{RXNORM_BASE_URL}/drugs.json", params={"name": drug_name})
            response.raise_for_status()
            drug = _parse_drugs_response(response.json(), drug_name)
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("RxNorm lookup failed for %r: %s", drug_name, e)

    _drug_cache.set(key, drug)
    if drug:
        logger.debug("RxNorm %r -> %s (%s)", drug_name, drug["brandName"], drug["genericName"])
    return drug


async def search_multiple(drug_names: list[str]) -> list[dict]:
    """Resolve names in parallel, dropping those RxNorm does not know."""
    results = await asyncio.gather(*(search_rxnorm(name) for name in drug_names))
    found = [drug for drug in results if drug is not None]
    logger.info("RxNorm resolved %d/%d drugs", len(found), len(drug_names))
    return found


# ---------------------------------------------------------------------------
# RxClass enrichment
# ---------------------------------------------------------------------------


async def _fetch_json(url: str, params: dict) -> Optional[dict]:
    try:
        async with http_client.async_client() as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("RxNav request to %s failed: %s", url, e)
        return None


def _parse_classes(data: dict) -> list[dict]:
    infos = (data.get("rxclassDrugInfoList") or {}).get("rxclassDrugInfo") or []
    classes: dict[str, dict] = {}
    for info in infos:
        concept = info.get("rxclassMinConceptItem") or {}
        class_id = concept.get("classId")
        if class_id and concept.get("className") and class_id not in classes:
            classes[class_id] = {
                "classId": class_id,
                "className": concept["className"],
                "classType": concept.get("classType"),
            }
    return sorted(classes.values(), key=lambda c: CLASS_TYPE_PRIORITY.get(c["classType"], 99))


def _parse_related_name(name: str) -> tuple[str, str]:
    lower = name.lower()
    dosage_form = next((f for f in RELATED_DOSAGE_FORMS if f.lower() in lower), "Unknown")
    match = _RELATED_STRENGTH.search(name)
    return dosage_form, match.group(0) if match else ""


async def get_drug_classes(rxcui: str) -> list[dict]:
    if not rxcui:
        return []
    key = f"class:{rxcui}"
    if key in _class_cache:
        return _class_cache.get(key)

    data = await _fetch_json(f"{RXCLASS_BASE_URL}/class/byRxcui.json", {"rxcui": rxcui})
    classes = _parse_classes(data) if data else []
    _class_cache.set(key, classes)
    return classes


async def get_drug_ingredients(rxcui: str) -> list[str]:
    if not rxcui:
        return []
    key = f"ingredients:{rxcui}"
    if key in _ingredient_cache:
        return _ingredient_cache.get(key)

    data = await _fetch_json(f"{RXNORM_BASE_URL}/rxcui/{rxcui}/related.json", {"tty": "IN"})
    ingredients = []
    for group in ((data or {}).get("relatedGroup") or {}).get("conceptGroup") or []:
        if group.get("tty") != "IN":
            continue
        for concept in group.get("conceptProperties") or []:
            if concept.get("name"):
                ingredients.append(concept["name"].capitalize())
    _ingredient_cache.set(key, ingredients)
    return ingredients


async def get_related_drugs(rxcui: str, limit: int = 5) -> list[dict]:
    if not rxcui:
        return []
    key = f"related:{rxcui}"
    if key in _related_cache:
        return _related_cache.get(key)[:limit]

    data = await _fetch_json(f"{RXNORM_BASE_URL}/rxcui/{rxcui}/related.json", {"tty": "SBD SCD"})
    seen = {rxcui}
    drugs = []
    for group in ((data or {}).get("relatedGroup") or {}).get("conceptGroup") or []:
        if group.get("tty") not in ("SBD", "SCD"):
            continue
        for concept in group.get("conceptProperties") or []:
            if concept.get("rxcui") in seen:
                continue
            seen.add(concept.get("rxcui"))
            dosage_form, strength = _parse_related_name(concept.get("name", ""))
            drugs.append(
                {
                    "rxcui": concept.get("rxcui"),
                    "name": concept.get("name"),
                    "dosageForm": dosage_form,
                    "strength": strength,
                }
            )
    _related_cache.set(key, drugs)
    return drugs[:limit]


async def get_full_drug_enrichment(rxcui: str) -> dict:
    if not rxcui:
        return {"classes": [], "ingredients": [], "relatedDrugs": []}
    classes, ingredients, related = await asyncio.gather(
        get_drug_classes(rxcui), get_drug_ingredients(rxcui), get_related_drugs(rxcui)
    )
    return {"classes": classes, "ingredients": ingredients, "relatedDrugs": related}


def clear_caches() -> None:
    for cache in (_drug_cache, _class_cache, _ingredient_cache, _related_cache):
        cache.clear()


def get_cache_stats() -> dict:
    return {
        "drugs": _drug_cache.stats(),
        "classes": len(_class_cache),
        "ingredients": len(_ingredient_cache),
        "related": len(_related_cache),
    }

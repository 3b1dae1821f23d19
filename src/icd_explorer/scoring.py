"""
Multi-factor relevance scoring for ICD-10 search results.

Score (0-100) = keyword (35) + popularity (40) + specificity (15) + exactness (10).
ClinicalTables returns matches in code order; these scores reorder them so the
codes clinicians actually use come first.
"""

import re
from collections.abc import Iterable

from .common_codes import COMMON_CODE_FAMILIES, TOP_COMMON_CODES, get_code_family


_CODE_LIKE = re.compile(r"^[A-Z]\d", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Component scores
# ---------------------------------------------------------------------------


def get_keyword_score(name: str, search_term: str) -> int:
    name_lower = name.lower()
    term = search_term.lower().strip()
    if not term:
        return 5

    if name_lower.startswith(term):
        return 35
    if term in name_lower:
        return 30

    words = [w for w in term.split() if len(w) > 1]
    if len(words) > 1 and all(w in name_lower for w in words):
        return 25
    if words and words[0] in name_lower:
        return 15
    return 5


def get_popularity_score(code: str) -> int:
    frequency = TOP_COMMON_CODES.get(code)
    if frequency is not None:
        return round(frequency / 100 * 40)
    if get_code_family(code) in COMMON_CODE_FAMILIES:
        return 20
    return 5


def get_specificity_score(code: str) -> int:
    """One decimal digit is the billable sweet spot; deeper codes are niche."""
    parts = code.split(".")
    if len(parts) == 1:
        return 5
    decimals = len(parts[1])
    if decimals == 1:
        return 15
    if decimals == 2:
        return 12
    if decimals >= 3:
        return 8
    return 10


def get_exactness_score(code: str, search_term: str) -> int:
    term = search_term.upper().strip()
    if not _CODE_LIKE.match(term):
        return 0
    code_upper = code.upper()
    if code_upper.startswith(term):
        return 10
    if term in code_upper:
        return 5
    return 0


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


def get_relevance_label(score: int) -> str:
    if score >= 75:
        return "Highly Relevant"
    if score >= 55:
        return "Relevant"
    if score >= 35:
        return "Related"
    return "Possible Match"


def score_result(result: dict, search_term: str) -> dict:
    breakdown = {
        "keyword": get_keyword_score(result["name"], search_term),
        "popularity": get_popularity_score(result["code"]),
        "specificity": get_specificity_score(result["code"]),
        "exactness": get_exactness_score(result["code"], search_term),
    }
    score = sum(breakdown.values())
    return {
        **result,
        "score": score,
        "relevance": get_relevance_label(score),
        "scoreBreakdown": breakdown,
    }


def score_and_rank_results(results: Iterable[dict], search_term: str) -> list[dict]:
    """Score every result and sort by score, shorter (broader) codes winning ties."""
    scored = [score_result(r, search_term) for r in results]
    scored.sort(key=lambda r: (-r["score"], len(r["code"])))
    return scored


def deduplicate_results(results: Iterable[dict]) -> list[dict]:
    """Drop repeated codes, keeping the first occurrence."""
    seen: set[str] = set()
    unique = []
    for result in results:
        if result["code"] in seen:
            continue
        seen.add(result["code"])
        unique.append(result)
    return unique

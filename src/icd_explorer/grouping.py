"""
Group scored ICD-10 results by chapter.

Grouped output shape::

    {"categories": [{"chapter": {...}, "results": [...], "count": n,
                     "topScore": s, "isExpanded": bool}, ...],
     "totalResults": n, "totalCategories": n}

All helpers return new structures and leave their input untouched.
"""

from typing import Optional

from .chapters import get_chapter


def _empty() -> dict:
    return {"categories": [], "totalResults": 0, "totalCategories": 0}


def get_default_expanded_state(category: dict, index: int) -> bool:
    """The top category and any small one (3 results or fewer) start open."""
    return index == 0 or len(category["results"]) <= 3


def sort_categories_by_relevance(categories: list[dict]) -> list[dict]:
    return sorted(categories, key=lambda c: (-c["topScore"], -len(c["results"])))


def group_by_chapter(results: list[dict]) -> dict:
    if not results:
        return _empty()

    buckets: dict[int, dict] = {}
    for result in results:
        chapter = get_chapter(result["code"])
        bucket = buckets.setdefault(chapter.id, {"chapter": chapter.to_dict(), "results": []})
        bucket["results"].append(result)

    categories = [
        {
            "chapter": bucket["chapter"],
            "results": bucket["results"],
            "count": len(bucket["results"]),
            "topScore": max(r.get("score", 0) for r in bucket["results"]),
            "isExpanded": False,
        }
        for bucket in buckets.values()
    ]
    categories = sort_categories_by_relevance(categories)
    for index, category in enumerate(categories):
        category["isExpanded"] = get_default_expanded_state(category, index)

    return {
        "categories": categories,
        "totalResults": len(results),
        "totalCategories": len(categories),
    }


def regroup_with_new_results(existing: dict, new_results: list[dict]) -> dict:
    """Merge a "load more" page into existing groups, keeping expansion state."""
    if existing["totalResults"] == 0:
        return group_by_chapter(new_results)
    if not new_results:
        return existing

    current = [r for category in existing["categories"] for r in category["results"]]
    seen = {r["code"] for r in current}
    combined = current + [r for r in new_results if r["code"] not in seen]
    combined.sort(key=lambda r: -r.get("score", 0))

    regrouped = group_by_chapter(combined)
    previous = {c["chapter"]["id"]: c["isExpanded"] for c in existing["categories"]}
    for index, category in enumerate(regrouped["categories"]):
        chapter_id = category["chapter"]["id"]
        if chapter_id in previous:
            category["isExpanded"] = previous[chapter_id]
        else:
            category["isExpanded"] = get_default_expanded_state(category, index)
    return regrouped


def _with_expansion(grouped: dict, decide) -> dict:
    return {
        **grouped,
        "categories": [{**c, "isExpanded": decide(c)} for c in grouped["categories"]],
    }


def toggle_category(grouped: dict, chapter_id: int) -> dict:
    return _with_expansion(
        grouped,
        lambda c: not c["isExpanded"] if c["chapter"]["id"] == chapter_id else c["isExpanded"],
    )


def expand_all(grouped: dict) -> dict:
    return _with_expansion(grouped, lambda c: True)


def collapse_all(grouped: dict) -> dict:
    return _with_expansion(grouped, lambda c: False)


def is_single_category(grouped: dict) -> bool:
    return grouped["totalCategories"] == 1


def find_category_by_code(grouped: dict, code: str) -> Optional[dict]:
    chapter_id = get_chapter(code).id
    for category in grouped["categories"]:
        if category["chapter"]["id"] == chapter_id:
            return category
    return None


def get_grouping_summary(grouped: dict) -> dict:
    expanded = sum(1 for c in grouped["categories"] if c["isExpanded"])
    largest_name, largest_count = "", 0
    for category in grouped["categories"]:
        if len(category["results"]) > largest_count:
            largest_count = len(category["results"])
            largest_name = category["chapter"]["shortName"]
    return {
        "totalResults": grouped["totalResults"],
        "totalCategories": grouped["totalCategories"],
        "expandedCount": expanded,
        "collapsedCount": grouped["totalCategories"] - expanded,
        "largestCategory": largest_name,
        "largestCategoryCount": largest_count,
    }

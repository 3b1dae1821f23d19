"""MCP tools over the local favorites / search-history / view-mode store."""

from typing import Optional

from .storage import VIEW_MODES, JSONStorage, format_relative_time

_storage: Optional[JSONStorage] = None


def get_storage() -> JSONStorage:
    global _storage
    if _storage is None:
        _storage = JSONStorage()
    return _storage


def set_storage(storage: Optional[JSONStorage]) -> None:
    """Point the tools at another store (None re-reads the configured path)."""
    global _storage
    _storage = storage


def _with_relative_time(entries: list[dict], field: str) -> list[dict]:
    return [{**entry, "relativeTime": format_relative_time(entry[field])} for entry in entries]


async def _list_favorites() -> dict:
    favorites = get_storage().get_favorites()
    return {"count": len(favorites), "favorites": _with_relative_time(favorites, "favoritedAt")}


async def _add_favorite(code: str, name: str) -> dict:
    favorites = get_storage().add_favorite(code.strip().upper(), name)
    return {"count": len(favorites), "favorites": favorites}


async def _remove_favorite(code: str) -> dict:
    favorites = get_storage().remove_favorite(code.strip().upper())
    return {"count": len(favorites), "favorites": favorites}


async def _is_favorite(code: str) -> dict:
    code = code.strip().upper()
    return {"code": code, "isFavorite": get_storage().is_favorite(code)}


async def _clear_favorites() -> dict:
    get_storage().clear_favorites()
    return {"cleared": True}


async def _list_history() -> dict:
    history = get_storage().get_history()
    return {"count": len(history), "history": _with_relative_time(history, "searchedAt")}


async def _add_history(query: str, result_count: int) -> dict:
    history = get_storage().add_to_history(query.strip(), result_count)
    return {"count": len(history), "history": history}


async def _remove_history(query: str) -> dict:
    history = get_storage().remove_from_history(query)
    return {"count": len(history), "history": history}


async def _clear_history() -> dict:
    get_storage().clear_history()
    return {"cleared": True}


async def _get_view_mode() -> dict:
    return {"viewMode": get_storage().get_view_mode()}


async def _set_view_mode(mode: str) -> dict:
    return {"viewMode": get_storage().set_view_mode(mode)}


_CODE_SCHEMA = {"type": "string", "description": "ICD-10-CM code (e.g., 'E11.9')"}
_QUERY_SCHEMA = {"type": "string", "description": "Search query text"}
_NO_ARGS = {"type": "object", "properties": {}}

TOOLS = [
    {
        "name": "list_favorites",
        "description": "List favorited ICD-10 codes, newest first.",
        "inputSchema": _NO_ARGS,
    },
    {
        "name": "add_favorite",
        "description": "Favorite an ICD-10 code. Already-favorited codes are left unchanged.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "code": _CODE_SCHEMA,
                "name": {"type": "string", "description": "Code description"},
            },
            "required": ["code", "name"],
        },
    },
    {
        "name": "remove_favorite",
        "description": "Remove an ICD-10 code from favorites.",
        "inputSchema": {"type": "object", "properties": {"code": _CODE_SCHEMA}, "required": ["code"]},
    },
    {
        "name": "is_favorite",
        "description": "Check whether an ICD-10 code is favorited.",
        "inputSchema": {"type": "object", "properties": {"code": _CODE_SCHEMA}, "required": ["code"]},
    },
    {
        "name": "clear_favorites",
        "description": "Remove all favorites.",
        "inputSchema": _NO_ARGS,
    },
    {
        "name": "list_search_history",
        "description": "List recent searches, newest first.",
        "inputSchema": _NO_ARGS,
    },
    {
        "name": "add_search_history",
        "description": "Record a search. Repeating a query moves it to the top.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": _QUERY_SCHEMA,
                "result_count": {"type": "integer", "description": "Number of results the search returned", "default": 0},
            },
            "required": ["query"],
        },
    },
    {
        "name": "remove_search_history",
        "description": "Remove a query from search history (case-insensitive).",
        "inputSchema": {"type": "object", "properties": {"query": _QUERY_SCHEMA}, "required": ["query"]},
    },
    {
        "name": "clear_search_history",
        "description": "Remove all search history.",
        "inputSchema": _NO_ARGS,
    },
    {
        "name": "get_view_mode",
        "description": "Get the preferred results view ('list' or 'mindmap').",
        "inputSchema": _NO_ARGS,
    },
    {
        "name": "set_view_mode",
        "description": "Set the preferred results view.",
        "inputSchema": {
            "type": "object",
            "properties": {"mode": {"type": "string", "enum": list(VIEW_MODES)}},
            "required": ["mode"],
        },
    },
]

HANDLERS = {
    "list_favorites": lambda args: _list_favorites(),
    "add_favorite": lambda args: _add_favorite(args.get("code", ""), args.get("name", "")),
    "remove_favorite": lambda args: _remove_favorite(args.get("code", "")),
    "is_favorite": lambda args: _is_favorite(args.get("code", "")),
    "clear_favorites": lambda args: _clear_favorites(),
    "list_search_history": lambda args: _list_history(),
    "add_search_history": lambda args: _add_history(args.get("query", ""), int(args.get("result_count", 0))),
    "remove_search_history": lambda args: _remove_history(args.get("query", "")),
    "clear_search_history": lambda args: _clear_history(),
    "get_view_mode": lambda args: _get_view_mode(),
    "set_view_mode": lambda args: _set_view_mode(args.get("mode", "")),
}

"""
Local persistence for favorites, search history, and the preferred view mode.

Everything lives in one JSON document (default ~/.icd-explorer/storage.json)
keyed like the browser build's localStorage:

  icd-favorites       [{code, name, favoritedAt}]       newest first, max 500
  icd-search-history  [{query, searchedAt, resultCount}] newest first, max 50
  icd-view-mode       "list" | "mindmap"

Unreadable or corrupt documents load as empty; malformed entries are dropped.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Optional

from .config import StorageConfig
from .errors import ValidationError

logger = logging.getLogger(__name__)

FAVORITES_KEY = "icd-favorites"
HISTORY_KEY = "icd-search-history"
VIEW_MODE_KEY = "icd-view-mode"
MAX_FAVORITES = 500
MAX_HISTORY = 50
VIEW_MODES = ("list", "mindmap")
DEFAULT_VIEW_MODE = "list"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def format_relative_time(timestamp: str, now: Optional[datetime] = None) -> str:
    """'Just now', '5 minutes ago', 'Yesterday', ... or 'Mar 4' past a week."""
    try:
        then = _parse_iso(timestamp)
    except (TypeError, ValueError):
        return "Unknown"
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = (now - then).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'' if minutes == 1 else 's'} ago"
    if hours < 24:
        return f"{hours} hour{'' if hours == 1 else 's'} ago"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    return f"{then.strftime('%b')} {then.day}"


def _valid_favorite(item: Any) -> bool:
    return isinstance(item, dict) and all(k in item for k in ("code", "name", "favoritedAt"))


def _valid_history(item: Any) -> bool:
    return isinstance(item, dict) and isinstance(item.get("query"), str) and "searchedAt" in item


class JSONStorage:
    """Favorites, history, and view mode backed by a single JSON file."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or StorageConfig.from_env().path

    # -- document I/O -------------------------------------------------------

    def _load(self) -> dict:
        try:
            with open(self.path, encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, e)
            return {}
        return document if isinstance(document, dict) else {}

    def _save(self, document: dict) -> None:
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            os.unlink(tmp_path)
            raise

    def _update(self, key: str, value: Any) -> None:
        document = self._load()
        if value is None:
            document.pop(key, None)
        else:
            document[key] = value
        self._save(document)

    # -- favorites ----------------------------------------------------------

    def get_favorites(self) -> list[dict]:
        items = self._load().get(FAVORITES_KEY)
        if not isinstance(items, list):
            return []
        return [item for item in items if _valid_favorite(item)]

    def add_favorite(self, code: str, name: str, favorited_at: Optional[str] = None) -> list[dict]:
        current = self.get_favorites()
        if any(f["code"] == code for f in current):
            return current
        updated = [{"code": code, "name": name, "favoritedAt": favorited_at or _now_iso()}, *current]
        updated = updated[:MAX_FAVORITES]
        self._update(FAVORITES_KEY, updated)
        return updated

    def remove_favorite(self, code: str) -> list[dict]:
        updated = [f for f in self.get_favorites() if f["code"] != code]
        self._update(FAVORITES_KEY, updated)
        return updated

    def is_favorite(self, code: str) -> bool:
        return any(f["code"] == code for f in self.get_favorites())

    def clear_favorites(self) -> None:
        self._update(FAVORITES_KEY, None)

    def favorites_by_code(self) -> dict[str, dict]:
        return {f["code"]: f for f in self.get_favorites()}

    # -- search history -----------------------------------------------------

    def get_history(self) -> list[dict]:
        items = self._load().get(HISTORY_KEY)
        if not isinstance(items, list):
            return []
        return [item for item in items if _valid_history(item)]

    def add_to_history(self, query: str, result_count: int = 0, searched_at: Optional[str] = None) -> list[dict]:
        entry = {"query": query, "searchedAt": searched_at or _now_iso(), "resultCount": result_count}
        remaining = [h for h in self.get_history() if h["query"].lower() != query.lower()]
        updated = [entry, *remaining][:MAX_HISTORY]
        self._update(HISTORY_KEY, updated)
        return updated

    def remove_from_history(self, query: str) -> list[dict]:
        updated = [h for h in self.get_history() if h["query"].lower() != query.lower()]
        self._update(HISTORY_KEY, updated)
        return updated

    def clear_history(self) -> None:
        self._update(HISTORY_KEY, None)

    # -- view mode ----------------------------------------------------------

    def get_view_mode(self) -> str:
        mode = self._load().get(VIEW_MODE_KEY)
        return mode if mode in VIEW_MODES else DEFAULT_VIEW_MODE

    def set_view_mode(self, mode: str) -> str:
        if mode not in VIEW_MODES:
            raise ValidationError(f"View mode must be one of {', '.join(VIEW_MODES)}")
        self._update(VIEW_MODE_KEY, mode)
        return mode

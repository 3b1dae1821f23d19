"""Unit tests for JSON-file persistence and the storage MCP tools."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from icd_explorer import storage, storage_tools
from icd_explorer.errors import ValidationError
from icd_explorer.storage import (
    FAVORITES_KEY,
    HISTORY_KEY,
    MAX_FAVORITES,
    MAX_HISTORY,
    JSONStorage,
    format_relative_time,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path) -> JSONStorage:
    return JSONStorage(str(tmp_path / "storage.json"))


class TestFavorites:
    def test_add_newest_first(self, store):
        store.add_favorite("E11.9", "Type 2 diabetes")
        store.add_favorite("I10", "Hypertension")
        assert [f["code"] for f in store.get_favorites()] == ["I10", "E11.9"]
        assert store.is_favorite("E11.9")

    def test_duplicate_is_noop(self, store):
        store.add_favorite("E11.9", "Type 2 diabetes", favorited_at="2026-01-01T00:00:00+00:00")
        store.add_favorite("E11.9", "Renamed")
        favorites = store.get_favorites()
        assert len(favorites) == 1
        assert favorites[0]["name"] == "Type 2 diabetes"

    def test_capped(self, store):
        for i in range(MAX_FAVORITES + 5):
            store.add_favorite(f"Z{i:04d}", "code")
        favorites = store.get_favorites()
        assert len(favorites) == MAX_FAVORITES
        assert favorites[0]["code"] == f"Z{MAX_FAVORITES + 4:04d}"

    def test_remove_and_clear(self, store):
        store.add_favorite("E11.9", "Type 2 diabetes")
        store.add_favorite("I10", "Hypertension")
        assert [f["code"] for f in store.remove_favorite("I10")] == ["E11.9"]
        assert set(store.favorites_by_code()) == {"E11.9"}
        store.clear_favorites()
        assert store.get_favorites() == []

    def test_malformed_entries_dropped(self, store, tmp_path):
        (tmp_path / "storage.json").write_text(
            json.dumps({FAVORITES_KEY: [{"code": "I10"}, {"code": "E11.9", "name": "x", "favoritedAt": "t"}, "junk"]})
        )
        assert [f["code"] for f in store.get_favorites()] == ["E11.9"]

    def test_failed_write_leaves_no_temp_file(self, store, tmp_path, monkeypatch):
        store.add_favorite("E11.9", "Type 2 diabetes")

        def fail(*args, **kwargs):
            raise TypeError("not serializable")

        monkeypatch.setattr(storage.json, "dump", fail)
        with pytest.raises(TypeError):
            store.add_favorite("I10", "Hypertension")
        monkeypatch.undo()

        assert list(tmp_path.glob("*.tmp")) == []
        assert [f["code"] for f in store.get_favorites()] == ["E11.9"]


class TestHistory:
    def test_dedupes_case_insensitively(self, store):
        store.add_to_history("Diabetes", 10)
        store.add_to_history("asthma", 5)
        history = store.add_to_history("diabetes", 12)
        assert [h["query"] for h in history] == ["diabetes", "asthma"]
        assert history[0]["resultCount"] == 12

    def test_capped(self, store):
        for i in range(MAX_HISTORY + 3):
            store.add_to_history(f"query {i}")
        assert len(store.get_history()) == MAX_HISTORY

    def test_remove_and_clear(self, store):
        store.add_to_history("Diabetes")
        store.add_to_history("asthma")
        assert [h["query"] for h in store.remove_from_history("DIABETES")] == ["asthma"]
        store.clear_history()
        assert store.get_history() == []

    def test_corrupt_file_loads_empty(self, store, tmp_path):
        (tmp_path / "storage.json").write_text("{not json")
        assert store.get_history() == []
        store.add_to_history("asthma")
        assert json.loads((tmp_path / "storage.json").read_text())[HISTORY_KEY][0]["query"] == "asthma"


class TestViewMode:
    def test_default_and_set(self, store):
        assert store.get_view_mode() == "list"
        assert store.set_view_mode("mindmap") == "mindmap"
        assert store.get_view_mode() == "mindmap"

    def test_invalid_mode(self, store):
        with pytest.raises(ValidationError):
            store.set_view_mode("grid")


class TestRelativeTime:
    @pytest.mark.parametrize(
        "delta, expected",
        [
            (timedelta(seconds=30), "Just now"),
            (timedelta(minutes=1), "1 minute ago"),
            (timedelta(minutes=5), "5 minutes ago"),
            (timedelta(hours=1), "1 hour ago"),
            (timedelta(hours=3), "3 hours ago"),
            (timedelta(days=1, hours=2), "Yesterday"),
            (timedelta(days=4), "4 days ago"),
            (timedelta(days=10), "Mar 5"),
        ],
    )
    def test_ranges(self, delta, expected):
        assert format_relative_time((NOW - delta).isoformat(), now=NOW) == expected

    def test_z_suffix(self):
        assert format_relative_time("2026-03-15T11:58:00Z", now=NOW) == "2 minutes ago"

    def test_unparseable(self):
        assert format_relative_time("yesterday-ish", now=NOW) == "Unknown"


class TestStorageTools:
    @pytest.fixture(autouse=True)
    def _store(self, store):
        storage_tools.set_storage(store)
        yield
        storage_tools.set_storage(None)

    @pytest.mark.asyncio
    async def test_favorite_round_trip(self):
        await storage_tools.HANDLERS["add_favorite"]({"code": "e11.9", "name": "Type 2 diabetes"})
        checked = await storage_tools.HANDLERS["is_favorite"]({"code": "E11.9"})
        assert checked == {"code": "E11.9", "isFavorite": True}
        listed = await storage_tools.HANDLERS["list_favorites"]({})
        assert listed["count"] == 1
        assert listed["favorites"][0]["relativeTime"] == "Just now"

    @pytest.mark.asyncio
    async def test_history_tools(self):
        await storage_tools.HANDLERS["add_search_history"]({"query": " asthma ", "result_count": 7})
        listed = await storage_tools.HANDLERS["list_search_history"]({})
        assert listed["history"][0]["query"] == "asthma"
        assert listed["history"][0]["resultCount"] == 7
        await storage_tools.HANDLERS["clear_search_history"]({})
        assert (await storage_tools.HANDLERS["list_search_history"]({}))["count"] == 0

    @pytest.mark.asyncio
    async def test_view_mode_tools(self):
        assert await storage_tools.HANDLERS["set_view_mode"]({"mode": "mindmap"}) == {"viewMode": "mindmap"}
        assert await storage_tools.HANDLERS["get_view_mode"]({}) == {"viewMode": "mindmap"}

    def test_every_tool_has_a_handler(self):
        assert {t["name"] for t in storage_tools.TOOLS} == set(storage_tools.HANDLERS)

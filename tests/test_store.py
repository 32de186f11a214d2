"""
tests/test_store.py — JsonStore & GameBook
===========================================

Covers the session commit/discard semantics, corrupt-file quarantine and
the partial write-back of untouched games.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from spotwheel.storage.store import GameBook, JsonStore, run_store


def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


class TestJsonStore:
    def test_ensure_file_creates_parent_dirs(self, tmp_path):
        s = JsonStore(tmp_path / "nested" / "data.json")
        s.ensure_file()
        assert json.loads(s.path.read_text()) == {}

    def test_session_saves_on_success(self, store):
        with store.session() as book:
            book.game(1, "7").task_spots["1"] = 50

        raw = json.loads(store.path.read_text(encoding="utf-8"))
        assert raw["1"]["7"]["task_spots"]["1"] == 50

    def test_session_discards_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.session() as book:
                book.game(1, "7").task_spots["1"] = 50
                raise RuntimeError("boom")

        assert store.read_game(1, "7") is None

    def test_snapshot_is_not_written_back(self, store):
        book = store.snapshot()
        book.game(1, "3").closed = True
        assert store.read_game(1, "3") is None

    def test_corrupt_file_is_quarantined(self, store):
        store.path.write_text("{not json", encoding="utf-8")

        assert store.load() == {}

        backups = list(store.path.parent.glob("gamedata.json.corrupt-*"))
        assert len(backups) == 1
        assert backups[0].read_text(encoding="utf-8") == "{not json"

    def test_non_object_document_is_quarantined(self, store):
        store.path.write_text("[1, 2, 3]", encoding="utf-8")
        assert store.load() == {}
        assert list(store.path.parent.glob("gamedata.json.corrupt-*"))

    def test_save_leaves_no_temp_file(self, store):
        store.save({"1": {}})
        assert not store.path.with_name("gamedata.json.tmp").exists()

    def test_unicode_kept_readable(self, store):
        store.save({"note": "Rad van StreApp \U0001f3a1"})
        assert "\U0001f3a1" in store.path.read_text(encoding="utf-8")

    def test_run_store_runs_in_thread(self, store):
        def _write(s, value):
            with s.session() as book:
                book.game(9, "1").task_spots["2"] = value
            return value

        assert run_async(run_store(_write, store, 33)) == 33
        assert store.read_game(9, "1").task_spots["2"] == 33


class TestGameBook:
    def test_untouched_games_kept_verbatim(self):
        raw = {"1": {"7": {"legacy": True}}, "2": {"1": {"closed": True}}}
        book = GameBook(raw)
        book.game(1, "8")

        doc = book.to_dict()
        assert doc["1"]["7"] == {"legacy": True}
        assert doc["2"]["1"] == {"closed": True}
        assert doc["1"]["8"]["closed"] is False

    def test_find_does_not_create(self):
        book = GameBook({})
        assert book.find(1, "7") is None
        assert not book.has_game(1, "7")
        assert book.to_dict() == {}

    def test_game_numbers_sorted_numerically(self):
        book = GameBook({"1": {"10": {}, "2": {}, "1": {}}})
        assert book.game_numbers(1) == ["1", "2", "10"]

    def test_guild_ids_skip_non_dict_entries(self):
        book = GameBook({"1": {}, "junk": 5})
        assert book.guild_ids() == ["1"]

    def test_games_iterates_guild(self):
        book = GameBook({"1": {"2": {"closed": True}, "1": {}}})
        assert [(n, g.closed) for n, g in book.games(1)] == [("1", False), ("2", True)]


def test_nan_in_data_file_is_repaired(store):
    store.path.write_text(
        '{"1": {"7": {"participants": {"5": {"total_spots": NaN}}, '
        '"task_counts": {"1": Infinity}}}}',
        encoding="utf-8",
    )
    game = store.read_game(1, "7")
    assert game.participants["5"].total_spots == 0
    assert game.task_counts["1"] == 0

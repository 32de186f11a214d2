"""
tests/test_ledger.py — Unit Tests for Spots Bookkeeping
========================================================

Tests the pure ledger functions (no I/O, no Discord).
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from spotwheel.engine import ledger
from spotwheel.engine.errors import (
    GameClosedError,
    GameStateError,
    InsufficientCompletionsError,
)
from spotwheel.storage.models import GameState, Participant


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def game() -> GameState:
    """A game where Task 1 is worth 50 and Task 2 is worth 10 Spots."""
    g = GameState.new()
    g.task_spots["1"] = 50
    g.task_spots["2"] = 10
    return g


class TestTaskSpots:
    def test_set_spots(self, game):
        ledger.set_task_spots(game, 3, 25)
        assert game.task_spots["3"] == 25

    @pytest.mark.parametrize("task", [0, 10, "x", ""])
    def test_invalid_task(self, game, task):
        with pytest.raises(ValueError):
            ledger.set_task_spots(game, task, 5)

    @pytest.mark.parametrize("spots", [-1, 100_001])
    def test_spots_out_of_range(self, game, spots):
        with pytest.raises(ValueError):
            ledger.set_task_spots(game, 1, spots)

    def test_closed_game_rejects_change(self, game):
        ledger.close(game)
        with pytest.raises(GameClosedError):
            ledger.set_task_spots(game, 1, 5)
        assert game.task_spots["1"] == 50


class TestGrant:
    def test_approve_books_current_value(self, game):
        assert ledger.approve(game, 111, "1") == 50
        p = game.participants["111"]
        assert p.total_spots == 50
        assert p.tasks["1"] == 1
        assert game.task_counts["1"] == 1

    def test_later_value_change_does_not_rewrite_history(self, game):
        ledger.approve(game, 111, 1)
        ledger.set_task_spots(game, 1, 80)
        ledger.approve(game, 111, 1)
        assert game.participants["111"].total_spots == 130

    def test_approve_on_zero_value_task(self, game):
        assert ledger.approve(game, 111, 9) == 0
        assert game.participants["111"].tasks["9"] == 1

    def test_grant_multiple(self, game):
        result = ledger.grant(game, 111, 2, 3)
        assert result.spots_delta == 30
        assert result.spots_per_task == 10
        assert game.task_counts["2"] == 3

    def test_revoke(self, game):
        ledger.grant(game, 111, 1, 3)
        result = ledger.grant(game, 111, 1, -2)
        assert result.spots_delta == -100
        p = game.participants["111"]
        assert p.tasks["1"] == 1
        assert p.total_spots == 50
        assert game.task_counts["1"] == 1

    def test_revoke_more_than_completed(self, game):
        ledger.grant(game, 111, 1, 1)
        with pytest.raises(InsufficientCompletionsError) as exc_info:
            ledger.grant(game, 111, 1, -2)
        assert exc_info.value.have == 1
        assert exc_info.value.requested == 2
        assert game.participants["111"].tasks["1"] == 1

    def test_revoke_never_goes_negative(self, game):
        ledger.grant(game, 111, 1, 2)
        game.participants["111"].total_spots = 20  # hand-edited file
        ledger.grant(game, 111, 1, -2)
        assert game.participants["111"].total_spots == 0

    @pytest.mark.parametrize("count", [0, 1001, -1001])
    def test_count_out_of_range(self, game, count):
        with pytest.raises(ValueError):
            ledger.grant(game, 111, 1, count)

    def test_grant_allowed_on_closed_game(self, game):
        ledger.close(game)
        assert ledger.approve(game, 111, 1) == 50


class TestMaintenance:
    def test_reset_keeps_task_values_and_closed_flag(self, game):
        ledger.approve(game, 111, 1)
        ledger.close(game)
        ledger.reset_progress(game)
        assert game.participants == {}
        assert sum(game.task_counts.values()) == 0
        assert game.task_spots["1"] == 50
        assert game.closed

    def test_prune_empty(self, game):
        ledger.approve(game, 111, 1)
        game.participant(222)
        game.participants["333"] = Participant(total_spots=0, tasks={"1": 0})

        removed = ledger.prune_empty(game)

        assert removed == 2
        assert list(game.participants) == ["111"]

    def test_prune_keeps_task_only_participant(self, game):
        ledger.approve(game, 111, 9)  # 0 Spots but one task
        assert ledger.prune_empty(game) == 0


class TestOpenClose:
    def test_close_records_timestamp(self, game):
        when = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        stamp = ledger.close(game, when)
        assert game.closed
        assert stamp == when.isoformat()
        assert game.closed_at == stamp

    def test_close_keeps_task_spots(self, game):
        before = dict(game.task_spots)
        ledger.close(game)
        assert game.task_spots == before

    def test_close_twice(self, game):
        ledger.close(game)
        with pytest.raises(GameStateError):
            ledger.close(game)

    def test_reopen_clears_timestamp(self, game):
        ledger.close(game)
        ledger.reopen(game)
        assert not game.closed
        assert game.closed_at is None

    def test_reopen_open_game(self, game):
        with pytest.raises(GameStateError):
            ledger.reopen(game)


class TestStandings:
    def test_sorted_by_spots(self, game):
        ledger.approve(game, 1, 2)
        ledger.approve(game, 2, 1)
        ledger.grant(game, 3, 2, 2)

        rows = ledger.standings(game)

        assert [r.user_id for r in rows] == ["2", "3", "1"]
        assert [r.rank for r in rows] == [1, 2, 3]
        assert rows[0].total_tasks == 1

    def test_ties_keep_insertion_order(self, game):
        for uid in (5, 4, 6):
            ledger.approve(game, uid, 2)
        assert [r.user_id for r in ledger.standings(game)] == ["5", "4", "6"]

    def test_limit(self, game):
        for uid in range(10):
            ledger.approve(game, uid, 1)
        assert len(ledger.standings(game, limit=3)) == 3

"""
spotwheel.engine.ledger — Spots Bookkeeping
============================================

Pure functions over :class:`~spotwheel.storage.models.GameState`.  Nothing
here touches disk or Discord; services wrap these in a store session.

Rules:

- An approved ticket adds one completion of a task and the task's current
  Spots value to the participant's total.
- A manual grant may be negative (a revoke).  A revoke never takes more
  completions than the participant has, and totals never go below zero.
- Resetting a game clears scores and counts but keeps the Spots per task.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from spotwheel.constants import MAX_GRANT_COUNT, MAX_TASK_SPOTS, TASK_IDS
from spotwheel.engine.errors import (
    GameClosedError,
    GameStateError,
    InsufficientCompletionsError,
)
from spotwheel.storage.models import GameState, Participant, empty_task_map

__all__ = [
    "GrantResult",
    "Standing",
    "approve",
    "close",
    "grant",
    "normalize_task",
    "prune_empty",
    "reopen",
    "reset_progress",
    "set_task_spots",
    "standings",
]


@dataclass(frozen=True, slots=True)
class GrantResult:
    """Outcome of a manual grant or revoke."""
    task: str
    count: int
    spots_per_task: int
    spots_delta: int  # signed: negative for a revoke


@dataclass(frozen=True, slots=True)
class Standing:
    rank: int
    user_id: str
    total_spots: int
    total_tasks: int
    tasks: dict[str, int]


def normalize_task(task: int | str) -> str:
    key = str(task).strip()
    if key not in TASK_IDS:
        raise ValueError(f"Task must be between 1 and {len(TASK_IDS)}, got {task!r}.")
    return key


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
def set_task_spots(game: GameState, task: int | str, spots: int) -> None:
    """Set how many Spots one approved completion of *task* is worth."""
    key = normalize_task(task)
    if game.closed:
        raise GameClosedError()
    if not 0 <= spots <= MAX_TASK_SPOTS:
        raise ValueError(f"Spots must be between 0 and {MAX_TASK_SPOTS}.")
    game.task_spots[key] = spots


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------
def grant(game: GameState, user_id: int | str, task: int | str, count: int = 1) -> GrantResult:
    """Add (or, with a negative *count*, remove) completions of *task*."""
    key = normalize_task(task)
    if count == 0 or abs(count) > MAX_GRANT_COUNT:
        raise ValueError(
            f"Count must be non-zero and between -{MAX_GRANT_COUNT} and {MAX_GRANT_COUNT}."
        )

    participant = game.participant(user_id)
    per_task = game.spots_for(key)

    if count > 0:
        participant.tasks[key] += count
        participant.total_spots += per_task * count
        game.task_counts[key] += count
        return GrantResult(key, count, per_task, per_task * count)

    remove = -count
    have = participant.tasks[key]
    if have < remove:
        raise InsufficientCompletionsError(key, have, remove)

    taken = per_task * remove
    participant.tasks[key] = have - remove
    participant.total_spots = max(0, participant.total_spots - taken)
    game.task_counts[key] = max(0, game.task_counts[key] - remove)
    return GrantResult(key, count, per_task, -taken)


def approve(game: GameState, user_id: int | str, task: int | str) -> int:
    """Record one approved ticket and return the Spots it earned."""
    return grant(game, user_id, task, 1).spots_delta


def reset_progress(game: GameState) -> None:
    """Wipe scores and completion counts; Spots per task stay configured."""
    game.participants = {}
    game.task_counts = empty_task_map()


def prune_empty(game: GameState) -> int:
    """Drop participants with neither Spots nor completed tasks.

    Participant records are rebuilt first so malformed entries are
    normalised rather than silently dropped.
    """
    repaired = {
        uid: Participant.from_dict(p.to_dict()) for uid, p in game.participants.items()
    }
    kept = {uid: p for uid, p in repaired.items() if not p.is_empty}
    removed = len(repaired) - len(kept)
    game.participants = kept
    return removed


# ---------------------------------------------------------------------------
# Open / closed
# ---------------------------------------------------------------------------
def close(game: GameState, now: datetime | None = None) -> str:
    """Close the game and return the ISO timestamp stored in ``closed_at``."""
    if game.closed:
        raise GameStateError("Game is already closed.")
    game.closed = True
    game.closed_at = (now or datetime.now(UTC)).isoformat()
    return game.closed_at


def reopen(game: GameState) -> None:
    if not game.closed:
        raise GameStateError("Game is already open.")
    game.closed = False
    game.closed_at = None


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------
def standings(game: GameState, limit: int | None = None) -> list[Standing]:
    """Participants ordered by total Spots, highest first.

    Ties keep the order in which participants first appeared.
    """
    ordered = sorted(
        game.participants.items(), key=lambda item: item[1].total_spots, reverse=True,
    )
    if limit is not None:
        ordered = ordered[:limit]
    return [
        Standing(
            rank=idx,
            user_id=uid,
            total_spots=p.total_spots,
            total_tasks=p.total_tasks,
            tasks=dict(p.tasks),
        )
        for idx, (uid, p) in enumerate(ordered, start=1)
    ]

"""
spotwheel.services.game_service — Store-Backed Game Mutations
==============================================================

Every function here is **synchronous** and meant to be called through
``run_store()``.  Each one opens a single store session, applies one
ledger operation, and returns a detached copy of what the caller needs to
re-render (usually the updated :class:`GameState`).

Errors from :mod:`spotwheel.engine.ledger` propagate unchanged; the
session discards the document when that happens, so a rejected command
never leaves a half-applied change on disk.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal

from spotwheel.engine import ledger
from spotwheel.engine.errors import GameClosedError
from spotwheel.engine.ledger import GrantResult
from spotwheel.engine.tickets import Ticket
from spotwheel.storage.models import GameState, MessageRef
from spotwheel.storage.store import JsonStore

logger = logging.getLogger(__name__)

MessageSlot = Literal["dashboard", "tasks_message", "signup_message", "admin_dashboard"]


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_game(store: JsonStore, guild_id: int, number: str) -> GameState:
    """Return the game, or a blank one if it was never created (not saved)."""
    return store.read_game(guild_id, number) or GameState.new()


def list_open_games(store: JsonStore) -> list[tuple[int, str]]:
    """``(guild_id, number)`` of every game that is not closed."""
    book = store.snapshot()
    return [
        (int(guild_id), number)
        for guild_id in book.guild_ids()
        for number, game in book.games(guild_id)
        if not game.closed
    ]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------
def create_game(store: JsonStore, guild_id: int, number: str) -> bool:
    """Make sure a record exists.  Returns True if it was newly created."""
    with store.session() as book:
        existed = book.has_game(guild_id, number)
        book.game(guild_id, number)
    if not existed:
        logger.info("Created game %s in guild %d", number, guild_id)
    return not existed


def close_game(
    store: JsonStore, guild_id: int, number: str, now: datetime | None = None,
) -> GameState:
    with store.session() as book:
        game = book.game(guild_id, number)
        ledger.close(game, now)
    logger.info("Closed game %s in guild %d", number, guild_id)
    return game


def reopen_game(store: JsonStore, guild_id: int, number: str) -> GameState:
    with store.session() as book:
        game = book.game(guild_id, number)
        ledger.reopen(game)
    logger.info("Reopened game %s in guild %d", number, guild_id)
    return game


def reset_game(store: JsonStore, guild_id: int, number: str) -> GameState:
    with store.session() as book:
        game = book.game(guild_id, number)
        ledger.reset_progress(game)
    logger.info("Reset progress of game %s in guild %d", number, guild_id)
    return game


def clean_game(store: JsonStore, guild_id: int, number: str) -> int:
    """Repair participant records and drop the empty ones."""
    with store.session() as book:
        removed = ledger.prune_empty(book.game(guild_id, number))
    logger.info("Cleaned game %s in guild %d: %d removed", number, guild_id, removed)
    return removed


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------
def set_task_spots(
    store: JsonStore, guild_id: int, number: str, task: int, spots: int,
) -> GameState:
    with store.session() as book:
        game = book.game(guild_id, number)
        try:
            ledger.set_task_spots(game, task, spots)
        except GameClosedError:
            raise GameClosedError(number) from None
    return game


def grant_task(
    store: JsonStore,
    guild_id: int,
    number: str,
    user_id: int,
    task: int,
    count: int = 1,
) -> GrantResult:
    """Manual admin grant (negative *count* revokes)."""
    with store.session() as book:
        result = ledger.grant(book.game(guild_id, number), user_id, task, count)
    logger.info(
        "Manual grant in game %s: user=%d task=%s count=%d spots=%+d",
        number, user_id, result.task, result.count, result.spots_delta,
    )
    return result


def approve_ticket(store: JsonStore, guild_id: int, ticket: Ticket) -> int:
    """Book an approved ticket and return the Spots awarded."""
    with store.session() as book:
        spots = ledger.approve(book.game(guild_id, ticket.game), ticket.user_id, ticket.task)
    logger.info(
        "Ticket approved in game %s: user=%d task=%s spots=%d",
        ticket.game, ticket.user_id, ticket.task, spots,
    )
    return spots


# ---------------------------------------------------------------------------
# UI bookkeeping
# ---------------------------------------------------------------------------
def record_message(
    store: JsonStore,
    guild_id: int,
    number: str,
    slot: MessageSlot,
    channel_id: int,
    message_id: int,
) -> None:
    """Remember where a dashboard/button message was posted."""
    with store.session() as book:
        setattr(book.game(guild_id, number), slot, MessageRef(channel_id, message_id))


def set_admin_channel(store: JsonStore, guild_id: int, number: str, channel_id: int) -> None:
    with store.session() as book:
        book.game(guild_id, number).admin_channel_id = channel_id

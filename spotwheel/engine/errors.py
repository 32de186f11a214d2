"""
spotwheel.engine.errors — Domain Exceptions
============================================

Raised by the ledger and ticket engine; cogs and views catch these and
turn them into ephemeral replies.
"""

from __future__ import annotations


class SpotwheelError(Exception):
    """Base class for every error the bot reports back to a user."""


class LedgerError(SpotwheelError):
    """A scoring operation was rejected."""


class GameClosedError(LedgerError):
    def __init__(self, number: str | int | None = None) -> None:
        self.number = number
        label = f"Game {number}" if number is not None else "This game"
        super().__init__(f"{label} is closed.")


class GameStateError(LedgerError):
    """Open/close requested for a game that is already in that state."""


class InsufficientCompletionsError(LedgerError):
    def __init__(self, task: str | int, have: int, requested: int) -> None:
        self.task = str(task)
        self.have = have
        self.requested = requested
        super().__init__(
            f"Cannot remove {requested}x Task {task}: only {have}x completed."
        )


class TicketStateError(SpotwheelError):
    """Illegal ticket lifecycle transition."""

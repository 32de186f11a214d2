"""
spotwheel.engine.tickets — Ticket Metadata & Lifecycle
=======================================================

A ticket is never stored in the data file.  Everything the bot needs to
adjudicate it is encoded in the ticket channel itself:

- **name**  ``ticket-game7-task3-alice``
- **topic** ``Rad van StreApp | Game 7 | Task 3 | User 123456789``

The topic survives bot restarts, so the persistent Approve/Reject buttons
can recover the game, task and participant from ``interaction.channel``.

Lifecycle::

    PENDING ──approve──▶ APPROVED ──┐
       │                            ├──▶ CLOSED  (channel deleted after a delay)
       └────reject────▶ REJECTED ───┘
"""

from __future__ import annotations

import enum
import re
import threading
from dataclasses import dataclass, replace

from spotwheel.constants import TASK_IDS, safe_slug
from spotwheel.engine.errors import TicketStateError

_GAME_RE = re.compile(r"Game\s+(\d+)", re.IGNORECASE)
_TASK_RE = re.compile(r"Task\s+(\d+)", re.IGNORECASE)
_USER_RE = re.compile(r"User\s+(\d+)", re.IGNORECASE)


class TicketStatus(enum.StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CLOSED = "closed"


_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.PENDING: frozenset({TicketStatus.APPROVED, TicketStatus.REJECTED}),
    TicketStatus.APPROVED: frozenset({TicketStatus.CLOSED}),
    TicketStatus.REJECTED: frozenset({TicketStatus.CLOSED}),
    TicketStatus.CLOSED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class Ticket:
    """Proof submission for one completion of one task."""

    game: str
    task: str
    user_id: int
    status: TicketStatus = TicketStatus.PENDING

    def topic(self, brand: str) -> str:
        return f"{brand} | Game {self.game} | Task {self.task} | User {self.user_id}"

    def channel_name(self, username: str | None) -> str:
        return f"ticket-game{self.game}-task{self.task}-{safe_slug(username, 12, 'user')}"

    def can_transition(self, target: TicketStatus) -> bool:
        return target in _TRANSITIONS[self.status]

    def transition(self, target: TicketStatus) -> Ticket:
        """Return a copy in *target* state or raise :class:`TicketStateError`."""
        if not self.can_transition(target):
            raise TicketStateError(
                f"Ticket cannot go from {self.status.value} to {target.value}."
            )
        return replace(self, status=target)

    @classmethod
    def from_topic(cls, topic: str | None) -> Ticket | None:
        """Parse a ticket channel topic; ``None`` if it isn't a ticket."""
        if not topic:
            return None
        game = _GAME_RE.search(topic)
        task = _TASK_RE.search(topic)
        user = _USER_RE.search(topic)
        if not (game and task and user) or task.group(1) not in TASK_IDS:
            return None
        return cls(game=game.group(1), task=task.group(1), user_id=int(user.group(1)))


class TicketRegistry:
    """Remembers which ticket channels already received a verdict.

    Ticket channels linger for a few seconds after a decision, and the
    buttons stay clickable until the message edit lands.  The registry makes
    the verdict a one-shot per channel for the lifetime of the process.
    """

    def __init__(self) -> None:
        self._decided: dict[int, TicketStatus] = {}
        self._lock = threading.Lock()

    def claim(self, channel_id: int, ticket: Ticket, verdict: TicketStatus) -> Ticket:
        """Move *ticket* to *verdict*, unless the channel was already decided."""
        with self._lock:
            current = self._decided.get(channel_id)
            if current is not None:
                ticket = replace(ticket, status=current)
            decided = ticket.transition(verdict)
            self._decided[channel_id] = decided.status
            return decided

    def release(self, channel_id: int) -> None:
        """Forget a claim, e.g. when recording the verdict failed."""
        with self._lock:
            self._decided.pop(channel_id, None)

    def close(self, channel_id: int) -> None:
        with self._lock:
            self._decided[channel_id] = TicketStatus.CLOSED

    def status_of(self, channel_id: int) -> TicketStatus:
        return self._decided.get(channel_id, TicketStatus.PENDING)

"""
spotwheel.storage.models — Game Records
========================================

Plain dataclasses for everything that ends up in the JSON document.
The on-disk layout is::

    {
      "<guild_id>": {
        "<game_number>": {
          "task_spots":   {"1": 0, …, "9": 0},
          "participants": {"<user_id>": {"total_spots": 0, "tasks": {…}}},
          "task_counts":  {"1": 0, …, "9": 0},
          "dashboard":       {"channel_id": …, "message_id": …},
          "tasks_message":   {"channel_id": …, "message_id": …},
          "signup_message":  {"channel_id": …, "message_id": …},
          "admin_dashboard": {"channel_id": …, "message_id": …},
          "admin_channel_id": …,
          "closed": false,
          "closed_at": null
        }
      }
    }

``from_dict`` is forgiving: hand-edited or older files with missing keys,
strings where numbers belong, or negative counters are repaired on load
instead of crashing a command halfway through.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from spotwheel.constants import TASK_IDS


def _count(value: Any) -> int:
    """Coerce a stored counter to a non-negative int (bad data → 0)."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        return max(0, int(value)) if math.isfinite(value) else 0
    return 0


def _snowflake(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def empty_task_map() -> dict[str, int]:
    return {t: 0 for t in TASK_IDS}


def _task_map(raw: Any) -> dict[str, int]:
    raw = raw if isinstance(raw, dict) else {}
    return {t: _count(raw.get(t)) for t in TASK_IDS}


@dataclass
class MessageRef:
    """Where a bot-owned message lives, so it can be edited later."""
    channel_id: int | None = None
    message_id: int | None = None

    @property
    def is_set(self) -> bool:
        return self.channel_id is not None and self.message_id is not None

    def to_dict(self) -> dict:
        return {"channel_id": self.channel_id, "message_id": self.message_id}

    @classmethod
    def from_dict(cls, raw: Any) -> MessageRef:
        if not isinstance(raw, dict):
            return cls()
        return cls(
            channel_id=_snowflake(raw.get("channel_id")),
            message_id=_snowflake(raw.get("message_id")),
        )


@dataclass
class Participant:
    total_spots: int = 0
    tasks: dict[str, int] = field(default_factory=empty_task_map)

    @property
    def total_tasks(self) -> int:
        return sum(self.tasks.values())

    @property
    def is_empty(self) -> bool:
        return self.total_spots == 0 and self.total_tasks == 0

    def to_dict(self) -> dict:
        return {"total_spots": self.total_spots, "tasks": dict(self.tasks)}

    @classmethod
    def from_dict(cls, raw: Any) -> Participant:
        raw = raw if isinstance(raw, dict) else {}
        return cls(
            total_spots=_count(raw.get("total_spots")),
            tasks=_task_map(raw.get("tasks")),
        )


@dataclass
class GameState:
    """The full scoring ledger and UI bookkeeping of one game."""

    task_spots: dict[str, int] = field(default_factory=empty_task_map)
    participants: dict[str, Participant] = field(default_factory=dict)
    task_counts: dict[str, int] = field(default_factory=empty_task_map)
    dashboard: MessageRef = field(default_factory=MessageRef)
    tasks_message: MessageRef = field(default_factory=MessageRef)
    signup_message: MessageRef = field(default_factory=MessageRef)
    admin_dashboard: MessageRef = field(default_factory=MessageRef)
    admin_channel_id: int | None = None
    closed: bool = False
    closed_at: str | None = None

    @classmethod
    def new(cls) -> GameState:
        return cls()

    def participant(self, user_id: int | str) -> Participant:
        """Return the participant record for *user_id*, creating it if needed."""
        key = str(user_id)
        if key not in self.participants:
            self.participants[key] = Participant()
        return self.participants[key]

    def spots_for(self, task: int | str) -> int:
        return self.task_spots.get(str(task), 0)

    def to_dict(self) -> dict:
        return {
            "task_spots": dict(self.task_spots),
            "participants": {
                uid: p.to_dict() for uid, p in self.participants.items()
            },
            "task_counts": dict(self.task_counts),
            "dashboard": self.dashboard.to_dict(),
            "tasks_message": self.tasks_message.to_dict(),
            "signup_message": self.signup_message.to_dict(),
            "admin_dashboard": self.admin_dashboard.to_dict(),
            "admin_channel_id": self.admin_channel_id,
            "closed": self.closed,
            "closed_at": self.closed_at,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> GameState:
        raw = raw if isinstance(raw, dict) else {}
        participants_raw = raw.get("participants")
        if not isinstance(participants_raw, dict):
            participants_raw = {}
        closed_at = raw.get("closed_at")
        return cls(
            task_spots=_task_map(raw.get("task_spots")),
            participants={
                str(uid): Participant.from_dict(info)
                for uid, info in participants_raw.items()
            },
            task_counts=_task_map(raw.get("task_counts")),
            dashboard=MessageRef.from_dict(raw.get("dashboard")),
            tasks_message=MessageRef.from_dict(raw.get("tasks_message")),
            signup_message=MessageRef.from_dict(raw.get("signup_message")),
            admin_dashboard=MessageRef.from_dict(raw.get("admin_dashboard")),
            admin_channel_id=_snowflake(raw.get("admin_channel_id")),
            closed=raw.get("closed") is True,
            closed_at=closed_at if isinstance(closed_at, str) else None,
        )

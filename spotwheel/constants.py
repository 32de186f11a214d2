"""
spotwheel.constants — Shared Constants & Naming Helpers
========================================================

Single source of truth for task ids, component custom ids and the
channel/role naming scheme.  Cogs, views and services import from here so
a rename only happens in one place.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------
TASK_COUNT = 9
TASK_IDS: tuple[str, ...] = tuple(str(t) for t in range(1, TASK_COUNT + 1))

MAX_TASK_SPOTS = 100_000
MAX_GRANT_COUNT = 1_000

# ---------------------------------------------------------------------------
# Component custom ids (persistent views must keep these stable)
# ---------------------------------------------------------------------------
SIGNUP_CUSTOM_ID = "signup_game"
TASK_CUSTOM_ID_PREFIX = "task_"
TICKET_APPROVE_CUSTOM_ID = "ticket_approve"
TICKET_REJECT_CUSTOM_ID = "ticket_reject"
REJECT_MODAL_CUSTOM_ID_PREFIX = "reject_reason:"

REJECT_REASON_MIN = 2
REJECT_REASON_MAX = 800

# ---------------------------------------------------------------------------
# Naming scheme
# ---------------------------------------------------------------------------
GAME_CHANNEL_PREFIX = "\U0001f3a1"        # 🎡
ADMIN_CHANNEL_PREFIX = "\U0001f39b\ufe0f"  # control knobs
DEFAULT_GAME_STATUS = "active"

GAME_CHANNEL_RE = re.compile(r"game-(\d+)", re.IGNORECASE)
_UNSAFE_NAME_RE = re.compile(r"[^a-z0-9\-]")


def task_custom_id(task: str | int) -> str:
    return f"{TASK_CUSTOM_ID_PREFIX}{task}"


def game_role_name(number: str | int) -> str:
    return f"Game {number}"


def game_channel_name(number: str | int, status: str = DEFAULT_GAME_STATUS) -> str:
    return f"{GAME_CHANNEL_PREFIX}game-{number}-{status}"


def admin_channel_name(number: str | int) -> str:
    return f"{ADMIN_CHANNEL_PREFIX}game-{number}-admin"


def safe_slug(text: str | None, max_len: int, default: str) -> str:
    """Lowercase *text* and keep only ``[a-z0-9-]``, truncated to *max_len*."""
    if not text:
        return default
    return _UNSAFE_NAME_RE.sub("", text.lower())[:max_len] or default


def sanitize_status(status: str | None) -> str:
    """Normalise the free-form status suffix used in game channel names."""
    return safe_slug(status, 20, DEFAULT_GAME_STATUS)


def game_number_from_channel(channel_name: str | None) -> str | None:
    """Extract the game number from a ``…game-<n>…`` channel name."""
    match = GAME_CHANNEL_RE.search(channel_name or "")
    return match.group(1) if match else None


def game_role_candidates(number: str | int) -> list[str]:
    """Role names accepted as "the role of game *number*", in priority order."""
    return [f"Game {number}", f"Game-{number}", f"game {number}", f"game-{number}"]

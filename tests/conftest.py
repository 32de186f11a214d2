"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from spotwheel.engine.tickets import TicketRegistry
from spotwheel.storage.store import JsonStore


@pytest.fixture
def store(tmp_path) -> JsonStore:
    """A JsonStore backed by a fresh file in the pytest temp dir."""
    s = JsonStore(tmp_path / "gamedata.json")
    s.ensure_file()
    return s


@pytest.fixture
def cfg() -> SimpleNamespace:
    """Config stand-in with the same attribute names as SpotwheelConfig."""
    return SimpleNamespace(
        brand_name="Rad van StreApp",
        tickets_category_id=900,
        game_category_id=901,
        admin_category_id=902,
        log_channel_id=None,
        admin_role_id=None,
        guild_id=None,
        data_file="unused.json",
        ticket_close_delay=0,
        dashboard_refresh_minutes=15,
        admin_dashboard_limit=150,
    )


@pytest.fixture
def bot(store, cfg) -> MagicMock:
    """Lightweight mock SpotwheelBot wired to a real store."""
    b = MagicMock()
    b.store = store
    b.cfg = cfg
    b.tickets = TicketRegistry()
    b.user = SimpleNamespace(id=4242)
    return b

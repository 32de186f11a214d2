"""
spotwheel.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for the soft settings of a deployment: which
categories games, admin panels and tickets live under, where the audit
log goes, and where the JSON data file is kept.  Secrets (the bot token)
stay in ``.env``.

Usage::

    from spotwheel.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.brand_name)        # "Rad van StreApp"
    print(cfg.tickets_category_id)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SpotwheelConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    brand_name: str

    # Discord layout
    tickets_category_id: int
    game_category_id: int | None = None
    admin_category_id: int | None = None
    log_channel_id: int | None = None  # Audit trail; skipped when unset
    admin_role_id: int | None = None   # Alternative to Manage Server
    guild_id: int | None = None        # Guild-scoped command sync

    # Storage
    data_file: str = "data/gamedata.json"

    # Behaviour
    ticket_close_delay: float = 10.0
    dashboard_refresh_minutes: int = 15
    admin_dashboard_limit: int = 150


def _optional_int(raw: dict, key: str) -> int | None:
    value = raw.get(key)
    return int(value) if value else None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> SpotwheelConfig:
    """Read *path* and return a :class:`SpotwheelConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return SpotwheelConfig(
        brand_name=raw["brand_name"],
        tickets_category_id=int(raw["tickets_category_id"]),
        game_category_id=_optional_int(raw, "game_category_id"),
        admin_category_id=_optional_int(raw, "admin_category_id"),
        log_channel_id=_optional_int(raw, "log_channel_id"),
        admin_role_id=_optional_int(raw, "admin_role_id"),
        guild_id=_optional_int(raw, "guild_id"),
        data_file=str(raw.get("data_file") or "data/gamedata.json"),
        ticket_close_delay=float(raw.get("ticket_close_delay", 10.0)),
        dashboard_refresh_minutes=int(raw.get("dashboard_refresh_minutes", 15)),
        admin_dashboard_limit=int(raw.get("admin_dashboard_limit", 150)),
    )

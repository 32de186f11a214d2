"""
spotwheel.bot.cogs.tasks — Periodic Background Tasks
=====================================================

Scheduled jobs that run on ``discord.ext.tasks`` loops:

- **Dashboard refresh**: every ``dashboard_refresh_minutes`` (default 15),
  re-renders the public and admin dashboards of every open game so a
  message edited or deleted by hand heals itself.  ``0`` disables it.

Store reads go through ``run_store()`` to avoid blocking the event loop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands, tasks

from spotwheel.services import game_service
from spotwheel.services.dashboard_service import refresh_dashboards
from spotwheel.storage.store import run_store

if TYPE_CHECKING:
    from spotwheel.bot.core import SpotwheelBot

logger = logging.getLogger(__name__)


class PeriodicTasks(commands.Cog):
    """Cog for scheduled background maintenance tasks."""

    def __init__(self, bot: SpotwheelBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        minutes = self.bot.cfg.dashboard_refresh_minutes
        if minutes <= 0:
            logger.info("Dashboard refresh loop disabled")
            return
        self.refresh_loop.change_interval(minutes=minutes)
        self.refresh_loop.start()

    async def cog_unload(self) -> None:
        self.refresh_loop.cancel()

    # -------------------------------------------------------------------
    # Dashboard refresh
    # -------------------------------------------------------------------
    @tasks.loop(minutes=15)
    async def refresh_loop(self):
        """Re-render the dashboards of every open game the bot can see."""
        try:
            games = await run_store(game_service.list_open_games, self.bot.store)
        except Exception:
            logger.exception("Dashboard refresh failed", extra={"task": "refresh"})
            return

        refreshed = 0
        for guild_id, number in games:
            guild = self.bot.get_guild(guild_id)
            if guild is None:
                continue
            try:
                await refresh_dashboards(self.bot, guild, number)
                refreshed += 1
            except Exception:
                logger.exception("Dashboard refresh failed for game %s in %d", number, guild_id)

        logger.info("Dashboard refresh complete: %d/%d games", refreshed, len(games))

    @refresh_loop.before_loop
    async def _wait_refresh(self):
        await self.bot.wait_until_ready()


async def setup(bot: SpotwheelBot) -> None:
    await bot.add_cog(PeriodicTasks(bot))

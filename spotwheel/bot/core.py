"""
spotwheel.bot.core — Bot Instance & Cog Loader
===============================================

Defines :class:`SpotwheelBot`, a ``commands.Bot`` subclass that:

1. Stores the shared config (``bot.cfg``), the JSON store (``bot.store``)
   and the ticket registry (``bot.tickets``) so cogs, views and services
   reach them via the interaction's client.
2. Loads every cog listed in :data:`EXTENSIONS`.
3. Registers the persistent views (sign-up, task board, ticket review)
   so buttons posted before a restart keep working.
4. Syncs the slash-command tree on startup (guild-scoped when
   ``DEV_GUILD_ID`` or ``guild_id`` is set, global otherwise).
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Coroutine
from typing import Any

import discord
from discord import app_commands
from discord.ext import commands

from spotwheel.bot.views import SignupView, TaskBoardView, TicketActionsView
from spotwheel.config import SpotwheelConfig
from spotwheel.engine.tickets import TicketRegistry
from spotwheel.storage.store import JsonStore

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "spotwheel.bot.cogs.games",
    "spotwheel.bot.cogs.tasks",
]


class SpotwheelBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`SpotwheelConfig` from ``config.yaml``.
    store:
        The :class:`JsonStore` holding every game.
    """

    def __init__(self, cfg: SpotwheelConfig, store: JsonStore) -> None:
        # GUILD_MEMBERS is privileged (enable it in the Developer Portal);
        # it keeps role membership in the member cache for sign-up checks.
        intents = discord.Intents.default()
        intents.members = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            description=f"{cfg.brand_name} game bot",
        )

        self.cfg = cfg
        self.store = store
        self.tickets = TicketRegistry()
        self._background: set[asyncio.Task] = set()

        self.tree.error(self.on_app_command_error)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task:
        """Run *coro* in the background, keeping a reference until it finishes."""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Called once before the bot connects to Discord.

        An extension that fails to load is logged and skipped.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

        self.add_view(SignupView())
        self.add_view(TaskBoardView())
        self.add_view(TicketActionsView())
        logger.info("Persistent views registered")

        self.store.ensure_file()
        logger.info("Data file: %s", self.store.path.resolve())

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        # --- Slash-command sync ---------------------------------------------
        guild_id = os.getenv("DEV_GUILD_ID") or self.cfg.guild_id
        if guild_id:
            guild = discord.Object(id=int(guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("Synced %d commands to guild %s", len(synced), guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("Synced %d commands globally", len(synced))

    async def close(self) -> None:
        """Wait for pending ticket deletions, then disconnect."""
        logger.info("Bot shutting down…")
        if self._background:
            logger.info("Waiting for %d background task(s)", len(self._background))
            await asyncio.gather(*self._background, return_exceptions=True)
        await super().close()

    # -----------------------------------------------------------------------
    # Error reporting
    # -----------------------------------------------------------------------
    async def on_error(self, event_method: str, /, *args: Any, **kwargs: Any) -> None:
        logger.exception("Unhandled error in %s", event_method)

    async def on_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError,
    ) -> None:
        """Last-resort handler for slash commands without their own error hook."""
        if isinstance(error, app_commands.CheckFailure):
            return  # answered by the cog
        command = interaction.command.qualified_name if interaction.command else "?"
        logger.error("Command /%s failed", command, exc_info=error)
        message = "❌ Something went wrong. The error has been logged."
        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)

"""
spotwheel.services.dashboard_service — Keep Display Surfaces in Sync
=====================================================================

A game has four bot-owned messages whose locations are stored in its
:class:`GameState`:

- ``dashboard``        public scores, in the game channel
- ``tasks_message``    the 3×3 task button board, in the game channel
- ``signup_message``   the Sign up button, in the game channel
- ``admin_dashboard``  the per-task breakdown, in the admin channel

After every mutation the caller re-renders the affected surfaces here.
Surfaces whose message was deleted by hand are skipped (and reported as
``False``) rather than raising, so a missing dashboard never blocks an
approval.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.abc import Messageable

from spotwheel.bot.views import SignupView, TaskBoardView
from spotwheel.constants import SIGNUP_CUSTOM_ID
from spotwheel.services import game_service
from spotwheel.services.provisioning import ensure_admin_channel, find_game_channel
from spotwheel.services.render import (
    build_admin_dashboard_text,
    build_dashboard_text,
    build_signup_text,
    build_tasks_text,
)
from spotwheel.storage.models import GameState, MessageRef
from spotwheel.storage.store import run_store

if TYPE_CHECKING:
    from spotwheel.bot.core import SpotwheelBot

logger = logging.getLogger(__name__)

# How far back to look for a Sign up button posted before its location was tracked.
SIGNUP_SCAN_LIMIT = 50


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
async def _resolve_channel(guild: discord.Guild, channel_id: int | None) -> Messageable | None:
    if not channel_id:
        return None
    channel = guild.get_channel(channel_id)
    if channel is None:
        try:
            channel = await guild.fetch_channel(channel_id)
        except (discord.NotFound, discord.Forbidden, discord.HTTPException):
            return None
    return channel if isinstance(channel, Messageable) else None


async def fetch_message(guild: discord.Guild, ref: MessageRef) -> discord.Message | None:
    """Return the tracked message, or ``None`` if it (or its channel) is gone."""
    if not ref.is_set:
        return None
    channel = await _resolve_channel(guild, ref.channel_id)
    if channel is None:
        return None
    try:
        return await channel.fetch_message(ref.message_id)
    except (discord.NotFound, discord.Forbidden, discord.HTTPException):
        return None


async def _edit(message: discord.Message, **fields) -> bool:
    try:
        await message.edit(**fields)
    except (discord.Forbidden, discord.HTTPException):
        logger.exception("Failed to edit message %d", message.id)
        return False
    return True


async def _load(bot: SpotwheelBot, guild: discord.Guild, number: str) -> GameState:
    return await run_store(game_service.get_game, bot.store, guild.id, number)


# ---------------------------------------------------------------------------
# Public dashboard
# ---------------------------------------------------------------------------
async def ensure_dashboard(
    bot: SpotwheelBot, guild: discord.Guild, channel: Messageable, number: str,
) -> discord.Message:
    """Edit the existing dashboard in place, or post a new one in *channel*."""
    game = await _load(bot, guild, number)
    text = build_dashboard_text(game, number)

    message = await fetch_message(guild, game.dashboard)
    if message is not None:
        await _edit(message, content=text)
        return message

    message = await channel.send(text)
    await run_store(
        game_service.record_message, bot.store, guild.id, number,
        "dashboard", message.channel.id, message.id,
    )
    return message


async def update_dashboard(bot: SpotwheelBot, guild: discord.Guild, number: str) -> bool:
    game = await _load(bot, guild, number)
    message = await fetch_message(guild, game.dashboard)
    if message is None:
        return False
    return await _edit(message, content=build_dashboard_text(game, number))


# ---------------------------------------------------------------------------
# Admin dashboard
# ---------------------------------------------------------------------------
async def update_admin_dashboard(bot: SpotwheelBot, guild: discord.Guild, number: str) -> bool:
    game = await _load(bot, guild, number)
    message = await fetch_message(guild, game.admin_dashboard)
    if message is None:
        return False
    text = build_admin_dashboard_text(game, number, bot.cfg.admin_dashboard_limit)
    return await _edit(message, content=text)


async def ensure_admin_dashboard(bot: SpotwheelBot, guild: discord.Guild, number: str) -> discord.TextChannel:
    """Make sure the admin channel exists and holds an up-to-date admin dashboard."""
    admin_channel = await ensure_admin_channel(bot, guild, number)
    game = await _load(bot, guild, number)
    text = build_admin_dashboard_text(game, number, bot.cfg.admin_dashboard_limit)

    message = await fetch_message(guild, game.admin_dashboard)
    if message is not None:
        await _edit(message, content=text)
        return admin_channel

    message = await admin_channel.send(text)
    await run_store(
        game_service.record_message, bot.store, guild.id, number,
        "admin_dashboard", admin_channel.id, message.id,
    )
    return admin_channel


async def force_refresh_admin_dashboard(bot: SpotwheelBot, guild: discord.Guild, number: str) -> bool:
    """Post a brand-new admin dashboard message and track it from now on."""
    admin_channel = await ensure_admin_channel(bot, guild, number)
    game = await _load(bot, guild, number)
    try:
        message = await admin_channel.send(
            build_admin_dashboard_text(game, number, bot.cfg.admin_dashboard_limit)
        )
    except (discord.Forbidden, discord.HTTPException):
        logger.exception("Could not post admin dashboard for game %s", number)
        return False
    await run_store(
        game_service.record_message, bot.store, guild.id, number,
        "admin_dashboard", admin_channel.id, message.id,
    )
    return True


async def refresh_dashboards(bot: SpotwheelBot, guild: discord.Guild, number: str) -> tuple[bool, bool]:
    """Re-render both dashboards.  Returns ``(public_ok, admin_ok)``."""
    return (
        await update_dashboard(bot, guild, number),
        await update_admin_dashboard(bot, guild, number),
    )


# ---------------------------------------------------------------------------
# Task board + sign-up button
# ---------------------------------------------------------------------------
async def ensure_tasks_message(
    bot: SpotwheelBot, guild: discord.Guild, channel: Messageable, number: str,
) -> discord.Message:
    game = await _load(bot, guild, number)
    text = build_tasks_text(number)
    view = TaskBoardView(disabled=game.closed)

    message = await fetch_message(guild, game.tasks_message)
    if message is not None:
        await _edit(message, content=text, view=view)
        return message

    message = await channel.send(text, view=view)
    await run_store(
        game_service.record_message, bot.store, guild.id, number,
        "tasks_message", message.channel.id, message.id,
    )
    return message


async def post_signup_message(
    bot: SpotwheelBot, guild: discord.Guild, channel: Messageable, number: str,
) -> discord.Message:
    game = await _load(bot, guild, number)
    message = await channel.send(
        build_signup_text(bot.cfg.brand_name), view=SignupView(disabled=game.closed),
    )
    await run_store(
        game_service.record_message, bot.store, guild.id, number,
        "signup_message", message.channel.id, message.id,
    )
    return message


async def set_task_buttons(bot: SpotwheelBot, guild: discord.Guild, number: str, disabled: bool) -> bool:
    game = await _load(bot, guild, number)
    message = await fetch_message(guild, game.tasks_message)
    if message is None:
        return False
    return await _edit(message, view=TaskBoardView(disabled=disabled))


def _has_signup_button(message: discord.Message) -> bool:
    return any(
        getattr(child, "custom_id", None) == SIGNUP_CUSTOM_ID
        for row in message.components
        for child in getattr(row, "children", [])
    )


async def _scan_for_signup(bot: SpotwheelBot, guild: discord.Guild, number: str) -> discord.Message | None:
    channel = find_game_channel(guild, number)
    if channel is None:
        return None
    try:
        async for message in channel.history(limit=SIGNUP_SCAN_LIMIT):
            if bot.user and message.author.id == bot.user.id and _has_signup_button(message):
                return message
    except (discord.Forbidden, discord.HTTPException):
        logger.warning("Cannot read history of #%s", channel.name)
    return None


async def set_signup_button(bot: SpotwheelBot, guild: discord.Guild, number: str, disabled: bool) -> bool:
    """Enable or disable the Sign up button of a game."""
    game = await _load(bot, guild, number)
    message = await fetch_message(guild, game.signup_message)
    if message is None:
        message = await _scan_for_signup(bot, guild, number)
        if message is None:
            return False
        await run_store(
            game_service.record_message, bot.store, guild.id, number,
            "signup_message", message.channel.id, message.id,
        )
    return await _edit(message, view=SignupView(disabled=disabled))

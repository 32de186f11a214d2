"""
spotwheel.services.provisioning — Roles & Channels
===================================================

Creates or finds the Discord objects a game needs: its role, its public
channel, its admin channel and its private ticket channels.  Everything
is find-first so re-running a command never duplicates a channel.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import discord

from spotwheel.constants import (
    admin_channel_name,
    game_number_from_channel,
    game_role_candidates,
)
from spotwheel.engine.tickets import Ticket
from spotwheel.services import game_service
from spotwheel.storage.store import run_store

if TYPE_CHECKING:
    from spotwheel.bot.core import SpotwheelBot

logger = logging.getLogger(__name__)


class ProvisioningError(RuntimeError):
    """A configured category is missing or the bot lacks permissions."""


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
def find_game_role(guild: discord.Guild, number: str) -> discord.Role | None:
    """Find the role of game *number*, tolerating small naming variations."""
    candidates = game_role_candidates(number)
    for name in candidates:
        role = discord.utils.get(guild.roles, name=name)
        if role is not None:
            return role
    lowered = {c.lower() for c in candidates}
    return next((r for r in guild.roles if r.name.lower() in lowered), None)


def find_game_channel(
    guild: discord.Guild, number: str, exclude: set[int] | None = None,
) -> discord.TextChannel | None:
    """The public channel of game *number* (admin and ticket channels excluded)."""
    exclude = exclude or set()
    for ch in guild.text_channels:
        if ch.id in exclude or ch.name.endswith("-admin") or ch.name.startswith("ticket-"):
            continue
        if game_number_from_channel(ch.name) == number:
            return ch
    return None


async def _category(guild: discord.Guild, category_id: int | None, label: str) -> discord.CategoryChannel | None:
    if not category_id:
        return None
    category = guild.get_channel(category_id)
    if category is None:
        try:
            category = await guild.fetch_channel(category_id)
        except (discord.NotFound, discord.Forbidden):
            category = None
    if not isinstance(category, discord.CategoryChannel):
        raise ProvisioningError(f"{label} ({category_id}) is missing or not a category.")
    return category


# ---------------------------------------------------------------------------
# Game role + channel
# ---------------------------------------------------------------------------
async def ensure_role(guild: discord.Guild, name: str, brand: str) -> discord.Role:
    role = discord.utils.get(guild.roles, name=name)
    if role is not None:
        return role
    role = await guild.create_role(name=name, reason=f"{brand}: new game")
    logger.info("Created role %s in guild %d", name, guild.id)
    return role


async def ensure_text_channel(
    guild: discord.Guild,
    name: str,
    category_id: int | None,
    *,
    reason: str,
    category_label: str = "game_category_id",
) -> discord.TextChannel:
    existing = discord.utils.get(guild.text_channels, name=name)
    if existing is not None:
        return existing
    category = await _category(guild, category_id, category_label)
    channel = await guild.create_text_channel(name=name, category=category, reason=reason)
    logger.info("Created channel #%s (ID: %d) in guild %d", name, channel.id, guild.id)
    return channel


async def ensure_admin_channel(bot: SpotwheelBot, guild: discord.Guild, number: str) -> discord.TextChannel:
    """Return the admin channel of a game, creating and recording it if needed."""
    game = await run_store(game_service.get_game, bot.store, guild.id, number)
    if game.admin_channel_id:
        existing = guild.get_channel(game.admin_channel_id)
        if isinstance(existing, discord.TextChannel):
            return existing

    if not bot.cfg.admin_category_id:
        raise ProvisioningError("admin_category_id is not configured.")

    channel = await ensure_text_channel(
        guild,
        admin_channel_name(number),
        bot.cfg.admin_category_id,
        reason=f"Admin channel for Game {number}",
        category_label="admin_category_id",
    )
    await run_store(game_service.set_admin_channel, bot.store, guild.id, number, channel.id)
    return channel


# ---------------------------------------------------------------------------
# Ticket channels
# ---------------------------------------------------------------------------
def ticket_overwrites(
    guild: discord.Guild, member: discord.abc.Snowflake,
) -> dict[discord.abc.Snowflake, discord.PermissionOverwrite]:
    """Private to the participant and the bot; admins see it via their role perms."""
    return {
        guild.default_role: discord.PermissionOverwrite(view_channel=False),
        member: discord.PermissionOverwrite(
            view_channel=True,
            send_messages=True,
            read_message_history=True,
            attach_files=True,
            embed_links=True,
        ),
        guild.me: discord.PermissionOverwrite(
            view_channel=True,
            send_messages=True,
            read_message_history=True,
            manage_channels=True,
            attach_files=True,
            embed_links=True,
        ),
    }


async def create_ticket_channel(
    bot: SpotwheelBot, guild: discord.Guild, user: discord.abc.User, ticket: Ticket,
) -> discord.TextChannel:
    category = await _category(guild, bot.cfg.tickets_category_id, "tickets_category_id")
    channel = await guild.create_text_channel(
        name=ticket.channel_name(user.name),
        category=category,
        overwrites=ticket_overwrites(guild, user),
        topic=ticket.topic(bot.cfg.brand_name),
        reason=f"Ticket for Game {ticket.game} Task {ticket.task}",
    )
    logger.info(
        "Opened ticket #%s for user %d (game %s, task %s)",
        channel.name, user.id, ticket.game, ticket.task,
    )
    return channel


async def close_ticket_channel(channel: discord.abc.GuildChannel, reason: str, delay: float) -> bool:
    """Announce the closure, wait *delay* seconds, then delete the channel.

    Returns True once the channel is gone.
    """
    try:
        await channel.send(f"\U0001f512 Closing ticket… ({reason})")
    except (discord.Forbidden, discord.HTTPException):
        logger.warning("Could not post closing notice in #%s", channel.name)

    await asyncio.sleep(delay)
    try:
        await channel.delete(reason=f"Ticket closed: {reason}")
        logger.info("Deleted ticket channel #%s (%s)", channel.name, reason)
    except discord.NotFound:
        logger.info("Ticket channel #%s already gone", channel.name)
        return True
    except (discord.Forbidden, discord.HTTPException):
        logger.exception("Could not delete ticket channel #%s", channel.name)
        return False
    return True

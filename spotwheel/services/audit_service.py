"""
spotwheel.services.audit_service — Audit Log Channel & Direct Messages
=======================================================================

Human-readable audit entries go to the configured log channel so admins
can see who approved, rejected, granted or reset what.  The Python logger
receives the same events for operators.

Both helpers are best-effort: a missing log channel or a member with DMs
disabled must never break the command that triggered them.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import discord
from discord.abc import Messageable

from spotwheel.services.render import format_timestamp

if TYPE_CHECKING:
    from spotwheel.bot.core import SpotwheelBot

logger = logging.getLogger(__name__)


def actor_line(user: discord.abc.User) -> str:
    return f"\U0001f6e0️ Admin: {user.mention} (`{user.id}`)"


def now_line() -> str:
    return f"\U0001f552 {format_timestamp(datetime.now(UTC))}"


async def resolve_log_channel(bot: SpotwheelBot, guild: discord.Guild) -> Messageable | None:
    channel_id = bot.cfg.log_channel_id
    if not channel_id:
        return None
    channel = guild.get_channel(channel_id)
    if channel is None:
        try:
            channel = await guild.fetch_channel(channel_id)
        except (discord.NotFound, discord.Forbidden, discord.HTTPException):
            logger.warning("Log channel %d not reachable in guild %d", channel_id, guild.id)
            return None
    if not isinstance(channel, Messageable):
        return None
    return channel


async def log_to_channel(bot: SpotwheelBot, guild: discord.Guild, message: str) -> bool:
    """Post *message* to the audit log channel.  Returns True if sent."""
    logger.info("Audit [%s]: %s", guild.id, message.splitlines()[0] if message else "")
    channel = await resolve_log_channel(bot, guild)
    if channel is None:
        return False
    try:
        await channel.send(message)
    except (discord.Forbidden, discord.HTTPException):
        logger.exception("Failed to write audit entry to channel %s", getattr(channel, "id", "?"))
        return False
    return True


async def dm_user_safe(user: discord.abc.User, message: str) -> bool:
    """DM *user*; returns False when their DMs are closed."""
    try:
        await user.send(message)
    except (discord.Forbidden, discord.HTTPException):
        logger.info("Could not DM user %s", user.id)
        return False
    return True

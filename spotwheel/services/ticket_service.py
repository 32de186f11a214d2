"""
spotwheel.services.ticket_service — Ticket Workflow
====================================================

Orchestrates one ticket from creation to deletion:

1. ``open_ticket``    — private channel + intro message with review buttons.
2. ``approve_ticket`` — book Spots, refresh dashboards, DM, audit, close.
3. ``reject_ticket``  — DM the reason, audit, refresh admin view, close.

The verdict is claimed in the bot's :class:`TicketRegistry` before any
side effect, so a double click (or two reviewers at once) results in a
single booking.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord

from spotwheel.bot.views import TicketActionsView
from spotwheel.engine.errors import SpotwheelError
from spotwheel.engine.tickets import Ticket, TicketStatus
from spotwheel.services import game_service
from spotwheel.services.audit_service import (
    actor_line,
    dm_user_safe,
    log_to_channel,
    now_line,
)
from spotwheel.services.dashboard_service import refresh_dashboards, update_admin_dashboard
from spotwheel.services.provisioning import close_ticket_channel, create_ticket_channel
from spotwheel.services.render import build_ticket_intro
from spotwheel.storage.store import run_store

if TYPE_CHECKING:
    from spotwheel.bot.core import SpotwheelBot

logger = logging.getLogger(__name__)


class NotATicketError(SpotwheelError):
    def __init__(self) -> None:
        super().__init__("Ticket info is missing from this channel's topic.")


def ticket_from_channel(channel: discord.abc.GuildChannel | None) -> Ticket:
    ticket = Ticket.from_topic(getattr(channel, "topic", None))
    if ticket is None:
        raise NotATicketError()
    return ticket


# ---------------------------------------------------------------------------
# Open
# ---------------------------------------------------------------------------
async def open_ticket(
    bot: SpotwheelBot,
    guild: discord.Guild,
    user: discord.abc.User,
    number: str,
    task: str,
) -> discord.TextChannel:
    ticket = Ticket(game=number, task=task, user_id=user.id)
    channel = await create_ticket_channel(bot, guild, user, ticket)
    await channel.send(
        build_ticket_intro(ticket.game, ticket.task, user.mention),
        view=TicketActionsView(),
    )
    return channel


# ---------------------------------------------------------------------------
# Verdicts
# ---------------------------------------------------------------------------
async def _lock_buttons(bot: SpotwheelBot, interaction: discord.Interaction) -> None:
    """Grey out Approve/Reject on the ticket message once a verdict is in."""
    disabled = TicketActionsView(disabled=True)
    try:
        if interaction.message is not None:
            await interaction.message.edit(view=disabled)
            return
        # Modal submits may arrive without the message; find the intro post.
        async for message in interaction.channel.history(limit=10, oldest_first=True):
            if bot.user and message.author.id == bot.user.id and message.components:
                await message.edit(view=disabled)
                return
    except (discord.Forbidden, discord.HTTPException):
        logger.warning("Could not disable ticket buttons in channel %s", interaction.channel_id)


async def _resolve_participant(bot: SpotwheelBot, guild: discord.Guild, user_id: int) -> discord.abc.User:
    member = guild.get_member(user_id)
    if member is not None:
        return member
    try:
        return await bot.fetch_user(user_id)
    except discord.NotFound:
        raise SpotwheelError("Cannot find the participant of this ticket.") from None


async def _close_and_forget(bot: SpotwheelBot, channel: discord.abc.GuildChannel, reason: str) -> None:
    if await close_ticket_channel(channel, reason, bot.cfg.ticket_close_delay):
        bot.tickets.release(channel.id)


def _schedule_close(bot: SpotwheelBot, channel: discord.abc.GuildChannel, reason: str) -> None:
    bot.tickets.close(channel.id)
    bot.spawn(_close_and_forget(bot, channel, reason), name=f"close-ticket-{channel.id}")


def _dm_note(dm_ok: bool) -> str:
    return "\U0001f4e9 DM sent." if dm_ok else "⚠️ Could not send a DM."


def _ticket_context(interaction: discord.Interaction) -> tuple[discord.Guild, discord.TextChannel, Ticket]:
    channel = interaction.channel
    guild = interaction.guild
    if guild is None or channel is None:
        raise NotATicketError()
    return guild, channel, ticket_from_channel(channel)


async def approve_ticket(bot: SpotwheelBot, interaction: discord.Interaction) -> str:
    """Approve the ticket the interaction was clicked in.  Returns the reply text."""
    guild, channel, ticket = _ticket_context(interaction)
    participant = await _resolve_participant(bot, guild, ticket.user_id)

    decided = bot.tickets.claim(channel.id, ticket, TicketStatus.APPROVED)
    try:
        spots = await run_store(game_service.approve_ticket, bot.store, guild.id, decided)
    except Exception:
        bot.tickets.release(channel.id)
        raise

    # The verdict is booked; the channel closes even if a display step fails.
    try:
        await _lock_buttons(bot, interaction)
        await refresh_dashboards(bot, guild, decided.game)

        dm_ok = await dm_user_safe(
            participant,
            f"✅ Your proof for **Game {decided.game} – Task {decided.task}** was approved.\n"
            f"You received **{spots} Spots**. \U0001f3a1",
        )

        try:
            await channel.send(
                f"✅ Ticket approved by {interaction.user.mention}.\n"
                f"➕ **{spots} Spots** awarded.\n"
                f"{_dm_note(dm_ok)}"
            )
        except (discord.Forbidden, discord.HTTPException):
            logger.warning("Could not post approval notice in %s", channel.id)

        await log_to_channel(
            bot,
            guild,
            "✅ **Ticket approved**\n"
            f"\U0001f464 Participant: <@{decided.user_id}> (`{decided.user_id}`)\n"
            f"{actor_line(interaction.user)}\n"
            f"\U0001f3a1 Game: **{decided.game}** | \U0001f4cc Task: **{decided.task}**\n"
            f"➕ Spots: **{spots}**\n"
            f"{now_line()}\n"
            f"\U0001f4cd Ticket: {channel.mention}",
        )
    finally:
        _schedule_close(bot, channel, "approved")
    return "✅ Approved and dashboards updated."


async def reject_ticket(bot: SpotwheelBot, interaction: discord.Interaction, reason: str) -> str:
    """Reject the ticket the modal was submitted from.  Returns the reply text."""
    guild, channel, ticket = _ticket_context(interaction)
    decided = bot.tickets.claim(channel.id, ticket, TicketStatus.REJECTED)

    try:
        dm_ok = False
        try:
            participant = await _resolve_participant(bot, guild, decided.user_id)
        except SpotwheelError:
            logger.info("Rejected ticket of unknown user %d", decided.user_id)
        else:
            dm_ok = await dm_user_safe(
                participant,
                f"❌ Your proof for **Game {decided.game} – Task {decided.task}** was **rejected**.\n\n"
                f"**Reason:** {reason}",
            )

        await _lock_buttons(bot, interaction)

        try:
            await channel.send(
                f"❌ Ticket rejected by {interaction.user.mention}.\n"
                f"**Reason:** {reason}\n"
                f"{_dm_note(dm_ok)}"
            )
        except (discord.Forbidden, discord.HTTPException):
            logger.warning("Could not post rejection notice in %s", channel.id)

        await log_to_channel(
            bot,
            guild,
            "❌ **Ticket rejected**\n"
            f"\U0001f464 Participant: <@{decided.user_id}> (`{decided.user_id}`)\n"
            f"{actor_line(interaction.user)}\n"
            f"\U0001f3a1 Game: **{decided.game}** | \U0001f4cc Task: **{decided.task}**\n"
            f"{now_line()}\n"
            f"\U0001f4dd Reason: {reason}\n"
            f"\U0001f4cd Ticket: {channel.mention}",
        )

        await update_admin_dashboard(bot, guild, decided.game)
    finally:
        _schedule_close(bot, channel, "rejected")
    return "✅ Rejected and logged."

"""
spotwheel.bot.views — Buttons and Modals
=========================================

SignupView:        persistent "Sign up" button in a game channel.
TaskBoardView:     persistent 3×3 board of Task 1..9 buttons.
TaskConfirmView:   ephemeral "Open ticket / Cancel" prompt after a task click.
TicketActionsView: persistent Approve/Reject buttons inside a ticket.
RejectReasonModal: asks the reviewer why a ticket is rejected.

Persistent views use fixed ``custom_id`` values and carry no state; the
game number comes from the channel name, the ticket from the channel
topic.  They are registered once in ``SpotwheelBot.setup_hook`` so clicks
keep working after a restart.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord

from spotwheel.bot.checks import member_can_review
from spotwheel.constants import (
    REJECT_MODAL_CUSTOM_ID_PREFIX,
    REJECT_REASON_MAX,
    REJECT_REASON_MIN,
    SIGNUP_CUSTOM_ID,
    TASK_IDS,
    TICKET_APPROVE_CUSTOM_ID,
    TICKET_REJECT_CUSTOM_ID,
    game_number_from_channel,
    task_custom_id,
)
from spotwheel.engine.errors import SpotwheelError
from spotwheel.services import game_service
from spotwheel.services.provisioning import ProvisioningError, find_game_role
from spotwheel.services.render import build_task_confirm_text
from spotwheel.storage.store import run_store

if TYPE_CHECKING:
    from spotwheel.bot.core import SpotwheelBot

logger = logging.getLogger(__name__)

TASKS_PER_ROW = 3


def _channel_game(interaction: discord.Interaction) -> str | None:
    return game_number_from_channel(getattr(interaction.channel, "name", None))


# ---------------------------------------------------------------------------
# Sign up
# ---------------------------------------------------------------------------
class SignupView(discord.ui.View):
    def __init__(self, *, disabled: bool = False) -> None:
        super().__init__(timeout=None)
        self.signup.disabled = disabled

    @discord.ui.button(
        label="Sign up",
        style=discord.ButtonStyle.success,
        custom_id=SIGNUP_CUSTOM_ID,
    )
    async def signup(
        self,
        interaction: discord.Interaction,
        button: discord.ui.Button,  # noqa: ARG002
    ) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        bot: SpotwheelBot = interaction.client  # type: ignore[assignment]

        number = _channel_game(interaction)
        if number is None or interaction.guild is None:
            await interaction.followup.send("❌ This channel is not a `game-<number>` channel.", ephemeral=True)
            return

        game = await run_store(game_service.get_game, bot.store, interaction.guild.id, number)
        if game.closed:
            await interaction.followup.send(
                f"\U0001f512 Game {number} is closed. Sign-ups are no longer possible.", ephemeral=True,
            )
            return

        role = find_game_role(interaction.guild, number)
        if role is None:
            await interaction.followup.send(f"❌ I can't find a role for Game {number}.", ephemeral=True)
            return

        member = interaction.user
        if not isinstance(member, discord.Member):
            await interaction.followup.send("❌ Sign up from inside the server.", ephemeral=True)
            return
        if role in member.roles:
            await interaction.followup.send(
                f"ℹ️ You are already signed up (role **{role.name}**).", ephemeral=True,
            )
            return

        try:
            await member.add_roles(role, reason=f"Signed up for Game {number}")
        except (discord.Forbidden, discord.HTTPException):
            logger.exception("Could not add role %s to %d", role.name, member.id)
            await interaction.followup.send(
                "❌ I can't give you this role. An admin needs to place my role above "
                "the game role and grant me Manage Roles.",
                ephemeral=True,
            )
            return

        logger.info("User %d signed up for game %s", member.id, number)
        await interaction.followup.send(
            f"✅ Signed up! You now have the role **{role.name}**.\n"
            "You can use the **Task** buttons now.",
            ephemeral=True,
        )


# ---------------------------------------------------------------------------
# Task board
# ---------------------------------------------------------------------------
class TaskButton(discord.ui.Button["TaskBoardView"]):
    def __init__(self, task: str, *, disabled: bool = False) -> None:
        super().__init__(
            label=f"Task {task}",
            style=discord.ButtonStyle.primary,
            custom_id=task_custom_id(task),
            disabled=disabled,
            row=(int(task) - 1) // TASKS_PER_ROW,
        )
        self.task = task

    async def callback(self, interaction: discord.Interaction) -> None:
        bot: SpotwheelBot = interaction.client  # type: ignore[assignment]

        number = _channel_game(interaction)
        if number is None or interaction.guild is None:
            await interaction.response.send_message(
                "❌ This channel is not a `game-<number>` channel.", ephemeral=True,
            )
            return

        game = await run_store(game_service.get_game, bot.store, interaction.guild.id, number)
        if game.closed:
            await interaction.response.send_message(
                f"\U0001f512 Game {number} is closed. You can't submit tasks anymore.",
                ephemeral=True,
            )
            return

        role = find_game_role(interaction.guild, number)
        if role is None:
            await interaction.response.send_message(
                f"❌ I can't find a role for Game {number}.", ephemeral=True,
            )
            return

        if role not in getattr(interaction.user, "roles", []):
            await interaction.response.send_message(
                f"❌ You are not signed up for Game {number} yet. Click **Sign up** first.",
                ephemeral=True,
            )
            return

        await interaction.response.send_message(
            build_task_confirm_text(self.task),
            view=TaskConfirmView(number=number, task=self.task, user_id=interaction.user.id),
            ephemeral=True,
        )


class TaskBoardView(discord.ui.View):
    def __init__(self, *, disabled: bool = False) -> None:
        super().__init__(timeout=None)
        for task in TASK_IDS:
            self.add_item(TaskButton(task, disabled=disabled))


class TaskConfirmView(discord.ui.View):
    """Confirm/Cancel before a ticket channel is created."""

    def __init__(self, *, number: str, task: str, user_id: int) -> None:
        super().__init__(timeout=300)
        self.number = number
        self.task = task
        self.user_id = user_id

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self.user_id

    @discord.ui.button(label="Open ticket", style=discord.ButtonStyle.success, emoji="✅")
    async def confirm(
        self,
        interaction: discord.Interaction,
        button: discord.ui.Button,  # noqa: ARG002
    ) -> None:
        from spotwheel.services.ticket_service import open_ticket

        self.stop()
        await interaction.response.defer()
        bot: SpotwheelBot = interaction.client  # type: ignore[assignment]
        try:
            channel = await open_ticket(bot, interaction.guild, interaction.user, self.number, self.task)
        except (ProvisioningError, discord.HTTPException):
            logger.exception("ticket_open_failed game=%s task=%s", self.number, self.task)
            await interaction.edit_original_response(
                content="❌ The ticket could not be created. Ask an admin to check the "
                        "tickets category and my permissions.",
                view=None,
            )
            return
        await interaction.edit_original_response(content=f"✅ Ticket created: {channel.mention}", view=None)

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary, emoji="❌")
    async def cancel(
        self,
        interaction: discord.Interaction,
        button: discord.ui.Button,  # noqa: ARG002
    ) -> None:
        self.stop()
        await interaction.response.edit_message(
            content="❌ Cancelled. No ticket was created.", view=None,
        )


# ---------------------------------------------------------------------------
# Ticket review
# ---------------------------------------------------------------------------
class TicketActionsView(discord.ui.View):
    def __init__(self, *, disabled: bool = False) -> None:
        super().__init__(timeout=None)
        self.approve.disabled = disabled
        self.reject.disabled = disabled

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if member_can_review(interaction):
            return True
        await interaction.response.send_message("❌ Only admins can do this.", ephemeral=True)
        return False

    @discord.ui.button(
        label="Approve",
        style=discord.ButtonStyle.success,
        custom_id=TICKET_APPROVE_CUSTOM_ID,
    )
    async def approve(
        self,
        interaction: discord.Interaction,
        button: discord.ui.Button,  # noqa: ARG002
    ) -> None:
        from spotwheel.services.ticket_service import approve_ticket

        await interaction.response.defer(ephemeral=True, thinking=True)
        bot: SpotwheelBot = interaction.client  # type: ignore[assignment]
        try:
            reply = await approve_ticket(bot, interaction)
        except SpotwheelError as exc:
            reply = f"❌ {exc}"
        await interaction.followup.send(reply, ephemeral=True)

    @discord.ui.button(
        label="Reject",
        style=discord.ButtonStyle.danger,
        custom_id=TICKET_REJECT_CUSTOM_ID,
    )
    async def reject(
        self,
        interaction: discord.Interaction,
        button: discord.ui.Button,  # noqa: ARG002
    ) -> None:
        await interaction.response.send_modal(RejectReasonModal(channel_id=interaction.channel_id or 0))


class RejectReasonModal(discord.ui.Modal, title="Reject ticket"):
    reason = discord.ui.TextInput(
        label="Reason (sent by DM and logged)",
        style=discord.TextStyle.paragraph,
        min_length=REJECT_REASON_MIN,
        max_length=REJECT_REASON_MAX,
        placeholder="e.g. proof is unclear / no URL or screenshot / task not visible…",
        required=True,
    )

    def __init__(self, *, channel_id: int) -> None:
        super().__init__(custom_id=f"{REJECT_MODAL_CUSTOM_ID_PREFIX}{channel_id}")
        self.channel_id = channel_id

    async def on_submit(self, interaction: discord.Interaction) -> None:
        from spotwheel.services.ticket_service import reject_ticket

        await interaction.response.defer(ephemeral=True, thinking=True)
        bot: SpotwheelBot = interaction.client  # type: ignore[assignment]
        if not member_can_review(interaction):
            await interaction.followup.send("❌ Only admins can do this.", ephemeral=True)
            return
        reason = self.reason.value.strip() or "No reason given."
        try:
            reply = await reject_ticket(bot, interaction, reason)
        except SpotwheelError as exc:
            reply = f"❌ {exc}"
        await interaction.followup.send(reply, ephemeral=True)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        logger.exception("reject_modal_failed", exc_info=error)
        if not interaction.response.is_done():
            await interaction.response.send_message("❌ Something went wrong.", ephemeral=True)
        else:
            await interaction.followup.send("❌ Something went wrong.", ephemeral=True)

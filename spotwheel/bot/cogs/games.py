"""
spotwheel.bot.cogs.games — Game Admin Slash Commands
=====================================================

Discord slash commands for running a game:
- /newgame    — create the role + channel of a new game
- /setupgame  — post dashboard, sign-up button and task board (in a game channel)
- /setspots   — set the Spots a task is worth (in a game channel)
- /setupadmin — create the admin channel + admin dashboard
- /closegame  — lock the game: buttons off, dashboards show the closed banner
- /opengame   — unlock a closed game
- /resetgame  — wipe scores and counts (Spots per task stay)
- /givetask   — manually grant or revoke task completions
- /cleangame  — drop 0-Spot/0-task participants and repost the admin dashboard

All commands require Manage Server or the configured admin role.  Replies
are ephemeral; the audit trail goes to the log channel.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from spotwheel.bot.checks import is_game_admin
from spotwheel.constants import (
    MAX_GRANT_COUNT,
    MAX_TASK_SPOTS,
    TASK_COUNT,
    game_channel_name,
    game_number_from_channel,
    game_role_name,
    sanitize_status,
)
from spotwheel.engine.errors import GameClosedError, GameStateError, SpotwheelError
from spotwheel.services import dashboard_service, game_service
from spotwheel.services.audit_service import actor_line, log_to_channel, now_line
from spotwheel.services.provisioning import (
    ProvisioningError,
    ensure_role,
    ensure_text_channel,
    find_game_channel,
)
from spotwheel.storage.store import run_store

if TYPE_CHECKING:
    from spotwheel.bot.core import SpotwheelBot

logger = logging.getLogger(__name__)

GameNumber = app_commands.Range[int, 1, 1_000_000]
TaskNumber = app_commands.Range[int, 1, TASK_COUNT]


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


async def _reply(interaction: discord.Interaction, content: str) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(content, ephemeral=True)
    else:
        await interaction.response.send_message(content, ephemeral=True)


class Games(commands.Cog, name="Games"):
    """Create, configure, lock and score games."""

    def __init__(self, bot: SpotwheelBot) -> None:
        self.bot = bot

    def _channel_game(self, interaction: discord.Interaction) -> str | None:
        return game_number_from_channel(getattr(interaction.channel, "name", None))

    # -------------------------------------------------------------------
    # /newgame
    # -------------------------------------------------------------------
    @app_commands.command(name="newgame", description="Create a new game (role + channel).")
    @app_commands.describe(
        game="Game number, e.g. 7",
        status="Channel suffix, e.g. active or finished",
    )
    @app_commands.guild_only()
    @is_game_admin()
    async def new_game(
        self,
        interaction: discord.Interaction,
        game: GameNumber,
        status: str | None = None,
    ) -> None:
        """Create the role and channel of a game and its empty record."""
        await interaction.response.defer(ephemeral=True, thinking=True)
        guild = interaction.guild
        number = str(game)
        brand = self.bot.cfg.brand_name

        try:
            role = await ensure_role(guild, game_role_name(number), brand)
            channel = find_game_channel(guild, number) or await ensure_text_channel(
                guild,
                game_channel_name(number, sanitize_status(status)),
                self.bot.cfg.game_category_id,
                reason=f"{brand}: new game",
            )
            await run_store(game_service.create_game, self.bot.store, guild.id, number)
            await channel.send(
                f"\U0001f3a1 **New game created: Game {number}**\n"
                "➡️ Run **/setupgame** here."
            )
        except (ProvisioningError, discord.Forbidden, discord.HTTPException) as exc:
            logger.exception("newgame failed for game %s", number)
            await _reply(
                interaction,
                "❌ Failed. Check my permissions (**Manage Roles** + **Manage Channels**) "
                f"and `game_category_id`.\n`{exc}`",
            )
            return

        await _reply(
            interaction,
            f"✅ New game ready:\n• Role: **{role.name}**\n• Channel: {channel.mention}",
        )

    # -------------------------------------------------------------------
    # /setupgame
    # -------------------------------------------------------------------
    @app_commands.command(
        name="setupgame",
        description="Post dashboard + sign-up + task buttons in this game channel.",
    )
    @app_commands.guild_only()
    @is_game_admin()
    async def setup_game(self, interaction: discord.Interaction) -> None:
        number = self._channel_game(interaction)
        if number is None:
            await _reply(interaction, "❌ No `game-<number>` in this channel's name.")
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        guild = interaction.guild
        game = await run_store(game_service.get_game, self.bot.store, guild.id, number)
        if game.closed:
            await _reply(interaction, f"\U0001f512 Game {number} is closed. Setup is not posted again.")
            return

        await run_store(game_service.create_game, self.bot.store, guild.id, number)
        channel = interaction.channel
        await dashboard_service.ensure_dashboard(self.bot, guild, channel, number)
        await dashboard_service.post_signup_message(self.bot, guild, channel, number)
        await dashboard_service.ensure_tasks_message(self.bot, guild, channel, number)

        await _reply(interaction, "✅ Setup done: dashboard, sign-up and tasks posted.")

    # -------------------------------------------------------------------
    # /setspots
    # -------------------------------------------------------------------
    @app_commands.command(name="setspots", description="Set the Spots per task for this game.")
    @app_commands.describe(task="Task number 1 to 9", spots="Spots for this task")
    @app_commands.guild_only()
    @is_game_admin()
    async def set_spots(
        self,
        interaction: discord.Interaction,
        task: TaskNumber,
        spots: app_commands.Range[int, 0, MAX_TASK_SPOTS],
    ) -> None:
        number = self._channel_game(interaction)
        if number is None:
            await _reply(interaction, "❌ No `game-<number>` in this channel's name.")
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            await run_store(
                game_service.set_task_spots, self.bot.store,
                interaction.guild.id, number, task, spots,
            )
        except GameClosedError:
            await _reply(interaction, f"\U0001f512 Game {number} is closed. Spots can no longer be changed.")
            return

        await dashboard_service.refresh_dashboards(self.bot, interaction.guild, number)
        await _reply(interaction, f"✅ Game {number}: Task {task} = {spots} Spots.")

    # -------------------------------------------------------------------
    # /setupadmin
    # -------------------------------------------------------------------
    @app_commands.command(
        name="setupadmin",
        description="Create/post the admin dashboard for a game (in its admin channel).",
    )
    @app_commands.describe(game="Game number, e.g. 7")
    @app_commands.guild_only()
    @is_game_admin()
    async def setup_admin(self, interaction: discord.Interaction, game: GameNumber) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        number = str(game)
        try:
            await run_store(game_service.create_game, self.bot.store, interaction.guild.id, number)
            channel = await dashboard_service.ensure_admin_dashboard(self.bot, interaction.guild, number)
        except (ProvisioningError, discord.Forbidden, discord.HTTPException) as exc:
            logger.exception("setupadmin failed for game %s", number)
            await _reply(
                interaction,
                "❌ Could not create the admin channel/dashboard. Check `admin_category_id` "
                f"and my **Manage Channels** permission.\n`{exc}`",
            )
            return

        await _reply(interaction, f"✅ Admin dashboard posted for Game {number} in {channel.mention}")

    # -------------------------------------------------------------------
    # /closegame + /opengame
    # -------------------------------------------------------------------
    @app_commands.command(name="closegame", description="Close a game: tasks off + dashboards locked.")
    @app_commands.describe(game="Game number, e.g. 7")
    @app_commands.guild_only()
    @is_game_admin()
    async def close_game(self, interaction: discord.Interaction, game: GameNumber) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        guild = interaction.guild
        number = str(game)
        try:
            await run_store(game_service.close_game, self.bot.store, guild.id, number)
        except GameStateError:
            await _reply(interaction, f"\U0001f512 Game {number} is already closed.")
            return

        tasks_locked = await dashboard_service.set_task_buttons(self.bot, guild, number, disabled=True)
        signup_locked = await dashboard_service.set_signup_button(self.bot, guild, number, disabled=True)
        await dashboard_service.refresh_dashboards(self.bot, guild, number)

        await log_to_channel(
            self.bot,
            guild,
            "\U0001f512 **Game closed**\n"
            f"\U0001f3a1 Game: **{number}**\n"
            f"{actor_line(interaction.user)}\n"
            f"{now_line()}\n"
            f"✅ Tasks locked: {_yes_no(tasks_locked)} | "
            f"✅ Sign-up locked: {_yes_no(signup_locked)}",
        )
        await _reply(
            interaction,
            f"\U0001f512 Game **{number}** is closed.\n"
            f"• Task buttons: {'✅ disabled' if tasks_locked else '⚠️ not found'}\n"
            f"• Sign-up button: {'✅ disabled' if signup_locked else '⚠️ not found'}\n"
            "Dashboards updated.",
        )

    @app_commands.command(name="opengame", description="Reopen a game: tasks + sign-up back on.")
    @app_commands.describe(game="Game number, e.g. 7")
    @app_commands.guild_only()
    @is_game_admin()
    async def open_game(self, interaction: discord.Interaction, game: GameNumber) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        guild = interaction.guild
        number = str(game)
        try:
            await run_store(game_service.reopen_game, self.bot.store, guild.id, number)
        except GameStateError:
            await _reply(interaction, f"✅ Game {number} is already active (not closed).")
            return

        tasks_unlocked = await dashboard_service.set_task_buttons(self.bot, guild, number, disabled=False)
        signup_unlocked = await dashboard_service.set_signup_button(self.bot, guild, number, disabled=False)
        await dashboard_service.refresh_dashboards(self.bot, guild, number)

        await log_to_channel(
            self.bot,
            guild,
            "\U0001f513 **Game reopened**\n"
            f"\U0001f3a1 Game: **{number}**\n"
            f"{actor_line(interaction.user)}\n"
            f"{now_line()}\n"
            f"✅ Tasks unlocked: {_yes_no(tasks_unlocked)} | "
            f"✅ Sign-up unlocked: {_yes_no(signup_unlocked)}",
        )
        await _reply(
            interaction,
            f"\U0001f513 Game **{number}** is active again.\n"
            f"• Task buttons: {'✅ enabled' if tasks_unlocked else '⚠️ not found'}\n"
            f"• Sign-up button: {'✅ enabled' if signup_unlocked else '⚠️ not found'}\n"
            "Dashboards updated.",
        )

    # -------------------------------------------------------------------
    # /resetgame
    # -------------------------------------------------------------------
    @app_commands.command(
        name="resetgame",
        description="Reset all scores/counts of a game (Spots per task stay).",
    )
    @app_commands.describe(game="Game number, e.g. 7", confirm="Set to True to really reset")
    @app_commands.guild_only()
    @is_game_admin()
    async def reset_game(self, interaction: discord.Interaction, game: GameNumber, confirm: bool) -> None:
        number = str(game)
        if not confirm:
            await _reply(interaction, "⚠️ Reset aborted. Set `confirm` to True to really reset.")
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        guild = interaction.guild
        await run_store(game_service.reset_game, self.bot.store, guild.id, number)
        await dashboard_service.refresh_dashboards(self.bot, guild, number)

        await log_to_channel(
            self.bot,
            guild,
            "\U0001f9e8 **Game reset**\n"
            f"\U0001f3a1 Game: **{number}**\n"
            f"{actor_line(interaction.user)}\n"
            f"{now_line()}\n"
            "ℹ️ Scores/counts cleared (Spots per task kept).",
        )
        await _reply(interaction, f"\U0001f9e8 Game {number} has been reset. Dashboards updated.")

    # -------------------------------------------------------------------
    # /givetask
    # -------------------------------------------------------------------
    @app_commands.command(
        name="givetask",
        description="Manually grant a task to a member (Spots + dashboards included).",
    )
    @app_commands.describe(
        game="Game number, e.g. 7",
        member="The member who gets the task",
        task="Task number 1 to 9",
        count="How many times (default 1); negative to take away",
    )
    @app_commands.guild_only()
    @is_game_admin()
    async def give_task(
        self,
        interaction: discord.Interaction,
        game: GameNumber,
        member: discord.Member,
        task: TaskNumber,
        count: app_commands.Range[int, -MAX_GRANT_COUNT, MAX_GRANT_COUNT] = 1,
    ) -> None:
        number = str(game)
        if count == 0:
            await _reply(interaction, "⚠️ Count 0 changes nothing.")
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        guild = interaction.guild
        try:
            result = await run_store(
                game_service.grant_task, self.bot.store,
                guild.id, number, member.id, task, count,
            )
        except SpotwheelError as exc:
            await _reply(interaction, f"❌ {member.mention}: {exc}")
            return

        await dashboard_service.refresh_dashboards(self.bot, guild, number)

        revoke = result.count < 0
        times = abs(result.count)
        spots = abs(result.spots_delta)
        await log_to_channel(
            self.bot,
            guild,
            f"\U0001f6e0️ **Manual {'revoke' if revoke else 'grant'}**\n"
            f"\U0001f3a1 Game: **{number}**\n"
            f"\U0001f464 Member: {member.mention} (`{member.id}`)\n"
            f"\U0001f4cc Task: **{task}** | \U0001f501 Count: **{result.count:+d}**\n"
            f"{'➖' if revoke else '➕'} Spots: **{spots}** (={result.spots_per_task} × {times})\n"
            f"{actor_line(interaction.user)}\n"
            f"{now_line()}",
        )
        verb = "Taken from" if revoke else "Granted to"
        sign = "removed" if revoke else "added"
        await _reply(
            interaction,
            f"✅ {verb} {member.mention}:\n"
            f"• Game {number} — Task {task} × {result.count}\n"
            f"• Spots {sign}: {spots} (={result.spots_per_task}×{times})\n"
            "Dashboards updated.",
        )

    # -------------------------------------------------------------------
    # /cleangame
    # -------------------------------------------------------------------
    @app_commands.command(
        name="cleangame",
        description="Clean the participant list (only 0-Spots/0-tasks) + force refresh dashboards.",
    )
    @app_commands.describe(game="Game number, e.g. 7")
    @app_commands.guild_only()
    @is_game_admin()
    async def clean_game(self, interaction: discord.Interaction, game: GameNumber) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        guild = interaction.guild
        number = str(game)

        removed = await run_store(game_service.clean_game, self.bot.store, guild.id, number)
        await dashboard_service.refresh_dashboards(self.bot, guild, number)
        try:
            forced = await dashboard_service.force_refresh_admin_dashboard(self.bot, guild, number)
        except (ProvisioningError, discord.Forbidden, discord.HTTPException):
            logger.exception("Admin dashboard refresh failed for game %s", number)
            forced = False

        await log_to_channel(
            self.bot,
            guild,
            "\U0001f9f9 **Game cleaned**\n"
            f"\U0001f3a1 Game: **{number}**\n"
            f"\U0001f9fd Removed (0/0): **{removed}**\n"
            f"\U0001f501 Admin dashboard reposted: {_yes_no(forced)}\n"
            f"{actor_line(interaction.user)}\n"
            f"{now_line()}",
        )
        await _reply(
            interaction,
            f"\U0001f9f9 Cleanup done for Game {number}.\n"
            f"• Removed (0 Spots/0 tasks): {removed}\n"
            f"• Admin dashboard reposted: {'✅' if forced else '⚠️'}",
        )

    # -------------------------------------------------------------------
    # Error handler for missing permissions
    # -------------------------------------------------------------------
    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError,
    ) -> None:
        if isinstance(error, app_commands.NoPrivateMessage):
            await _reply(interaction, "❌ This command only works inside a server.")
        elif isinstance(error, app_commands.CheckFailure):
            await _reply(interaction, "\U0001f512 You need Manage Server (or the game admin role) to use this command.")


async def setup(bot: SpotwheelBot) -> None:
    await bot.add_cog(Games(bot))

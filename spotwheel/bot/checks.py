"""
spotwheel.bot.checks — Permission Checks
=========================================

Two tiers of staff:

- **Game admins** run the game: Manage Server, or the optional
  ``admin_role_id`` from ``config.yaml``.
- **Reviewers** approve or reject tickets: Manage Messages in the ticket
  channel.  Game admins normally have this too.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands

if TYPE_CHECKING:
    from spotwheel.bot.core import SpotwheelBot


def member_is_game_admin(interaction: discord.Interaction) -> bool:
    perms = interaction.permissions
    if perms.manage_guild or perms.administrator:
        return True
    bot: SpotwheelBot = interaction.client  # type: ignore[assignment]
    admin_role_id = bot.cfg.admin_role_id
    roles = getattr(interaction.user, "roles", None)
    if not admin_role_id or not roles:
        return False
    return any(role.id == admin_role_id for role in roles)


def member_can_review(interaction: discord.Interaction) -> bool:
    perms = interaction.permissions
    return perms.manage_messages or perms.administrator


def is_game_admin():
    """Decorator restricting a slash command to game admins."""
    async def predicate(interaction: discord.Interaction) -> bool:
        return member_is_game_admin(interaction)
    return app_commands.check(predicate)

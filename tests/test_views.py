"""
tests/test_views.py — Buttons and Modals
=========================================

Views need a running event loop to be constructed, so every test builds
them inside ``run_async``.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord

from spotwheel.bot.views import (
    RejectReasonModal,
    SignupView,
    TaskBoardView,
    TaskConfirmView,
    TicketActionsView,
)
from spotwheel.services import game_service

GUILD = 100


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


def _make_interaction(bot, *, channel_name="\U0001f3a1game-7-active", roles=()) -> MagicMock:
    role = SimpleNamespace(id=70, name="Game 7")
    guild = MagicMock()
    guild.id = GUILD
    guild.roles = [role]

    member = MagicMock(spec=discord.Member)
    member.id = 9
    member.roles = list(roles)
    member.add_roles = AsyncMock()

    inter = MagicMock()
    inter.client = bot
    inter.guild = guild
    inter.user = member
    inter.channel.name = channel_name
    inter.response.defer = AsyncMock()
    inter.response.send_message = AsyncMock()
    inter.followup.send = AsyncMock()
    inter.game_role = role
    return inter


class TestLayout:
    def test_task_board_grid(self):
        async def _build():
            return TaskBoardView()

        view = run_async(_build())
        assert view.timeout is None
        assert [c.custom_id for c in view.children] == [f"task_{n}" for n in range(1, 10)]
        assert [c.row for c in view.children] == [0, 0, 0, 1, 1, 1, 2, 2, 2]

    def test_persistent_ids(self):
        async def _build():
            return SignupView(), TicketActionsView()

        signup, actions = run_async(_build())
        assert signup.is_persistent()
        assert actions.is_persistent()
        assert signup.children[0].custom_id == "signup_game"

    def test_disabled_flag(self):
        async def _build():
            return TicketActionsView(disabled=True)

        assert all(c.disabled for c in run_async(_build()).children)

    def test_reject_modal_limits(self):
        async def _build():
            return RejectReasonModal(channel_id=555)

        modal = run_async(_build())
        assert modal.custom_id == "reject_reason:555"
        assert modal.reason.min_length == 2
        assert modal.reason.max_length == 800


class TestSignup:
    def test_adds_role(self, bot, store):
        inter = _make_interaction(bot)

        async def _click():
            view = SignupView()
            await view.signup.callback(inter)

        run_async(_click())
        inter.user.add_roles.assert_awaited_once()
        assert "Signed up" in inter.followup.send.await_args.args[0]

    def test_already_signed_up(self, bot):
        inter = _make_interaction(bot)
        inter.user.roles = [inter.game_role]

        async def _click():
            await SignupView().signup.callback(inter)

        run_async(_click())
        inter.user.add_roles.assert_not_awaited()
        assert "already signed up" in inter.followup.send.await_args.args[0]

    def test_closed_game(self, bot, store):
        game_service.close_game(store, GUILD, "7")
        inter = _make_interaction(bot)

        async def _click():
            await SignupView().signup.callback(inter)

        run_async(_click())
        inter.user.add_roles.assert_not_awaited()
        assert "closed" in inter.followup.send.await_args.args[0]

    def test_wrong_channel(self, bot):
        inter = _make_interaction(bot, channel_name="general")

        async def _click():
            await SignupView().signup.callback(inter)

        run_async(_click())
        assert "not a `game-<number>` channel" in inter.followup.send.await_args.args[0]


class TestTaskButton:
    def test_requires_signup(self, bot):
        inter = _make_interaction(bot)

        async def _click():
            await TaskBoardView().children[2].callback(inter)

        run_async(_click())
        assert "not signed up" in inter.response.send_message.await_args.args[0]

    def test_opens_confirm_prompt(self, bot):
        inter = _make_interaction(bot)
        inter.user.roles = [inter.game_role]

        async def _click():
            await TaskBoardView().children[2].callback(inter)

        run_async(_click())
        args, kwargs = inter.response.send_message.await_args
        assert "**Task 3**" in args[0]
        assert isinstance(kwargs["view"], TaskConfirmView)
        assert kwargs["view"].task == "3"
        assert kwargs["ephemeral"] is True

    def test_confirm_only_for_clicker(self, bot):
        async def _check():
            view = TaskConfirmView(number="7", task="3", user_id=9)
            mine = await view.interaction_check(SimpleNamespace(user=SimpleNamespace(id=9)))
            other = await view.interaction_check(SimpleNamespace(user=SimpleNamespace(id=10)))
            return mine, other

        assert run_async(_check()) == (True, False)


class TestTicketActions:
    def test_non_reviewer_blocked(self, bot):
        inter = MagicMock()
        inter.permissions = discord.Permissions(send_messages=True)
        inter.response.send_message = AsyncMock()

        async def _check():
            return await TicketActionsView().interaction_check(inter)

        assert run_async(_check()) is False
        inter.response.send_message.assert_awaited_once()

    def test_reviewer_allowed(self, bot):
        inter = MagicMock()
        inter.permissions = discord.Permissions(manage_messages=True)

        async def _check():
            return await TicketActionsView().interaction_check(inter)

        assert run_async(_check()) is True

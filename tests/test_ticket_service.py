"""
tests/test_ticket_service.py — Ticket Workflow
===============================================

Drives approve/reject end to end with a real store and mocked Discord
objects; dashboards are absent so only the ticket side effects show up.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from spotwheel.engine.errors import SpotwheelError, TicketStateError
from spotwheel.engine.tickets import Ticket, TicketStatus
from spotwheel.services import game_service, ticket_service
from spotwheel.services.ticket_service import NotATicketError

GUILD = 100
PARTICIPANT = 9


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
@pytest.fixture
def participant() -> MagicMock:
    member = MagicMock()
    member.id = PARTICIPANT
    member.mention = f"<@{PARTICIPANT}>"
    member.send = AsyncMock()
    return member


@pytest.fixture
def interaction(bot, participant) -> MagicMock:
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = 555
    channel.name = "ticket-game7-task1-alice"
    channel.topic = f"Rad van StreApp | Game 7 | Task 1 | User {PARTICIPANT}"
    channel.mention = "<#555>"
    channel.send = AsyncMock()

    guild = MagicMock()
    guild.id = GUILD
    guild.get_member.side_effect = lambda uid: participant if uid == PARTICIPANT else None
    guild.get_channel.return_value = None

    inter = MagicMock()
    inter.client = bot
    inter.guild = guild
    inter.channel = channel
    inter.channel_id = channel.id
    inter.user = MagicMock(id=1, mention="<@1>")
    inter.message.edit = AsyncMock()
    return inter


@pytest.fixture(autouse=True)
def _no_background(bot):
    """Swallow the delayed channel deletion instead of scheduling it."""
    bot.spawn.side_effect = lambda coro, name=None: coro.close()


class TestApprove:
    def test_books_spots_and_closes(self, bot, store, interaction, participant):
        game_service.set_task_spots(store, GUILD, "7", 1, 50)

        reply = run_async(ticket_service.approve_ticket(bot, interaction))

        assert reply.startswith("✅ Approved")
        game = store.read_game(GUILD, "7")
        assert game.participants[str(PARTICIPANT)].total_spots == 50
        assert game.task_counts["1"] == 1
        assert bot.tickets.status_of(555) is TicketStatus.CLOSED
        participant.send.assert_awaited_once()
        assert "50 Spots" in participant.send.await_args.args[0]
        view = interaction.message.edit.await_args.kwargs["view"]
        assert all(child.disabled for child in view.children)
        bot.spawn.assert_called_once()

    def test_double_approve_books_once(self, bot, store, interaction):
        game_service.set_task_spots(store, GUILD, "7", 1, 50)
        run_async(ticket_service.approve_ticket(bot, interaction))

        with pytest.raises(TicketStateError):
            run_async(ticket_service.approve_ticket(bot, interaction))

        assert store.read_game(GUILD, "7").participants[str(PARTICIPANT)].total_spots == 50

    def test_store_failure_releases_claim(self, bot, interaction):
        with patch.object(game_service, "approve_ticket", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                run_async(ticket_service.approve_ticket(bot, interaction))
        assert bot.tickets.status_of(555) is TicketStatus.PENDING

    def test_dm_closed_still_approves(self, bot, store, interaction, participant):
        participant.send.side_effect = discord.Forbidden(MagicMock(status=403, reason="x"), "no")
        run_async(ticket_service.approve_ticket(bot, interaction))
        notice = interaction.channel.send.await_args_list[0].args[0]
        assert "Could not send a DM" in notice

    def test_unknown_participant(self, bot, interaction):
        interaction.guild.get_member.side_effect = lambda uid: None
        bot.fetch_user = AsyncMock(side_effect=discord.NotFound(MagicMock(status=404, reason="x"), "gone"))
        with pytest.raises(SpotwheelError):
            run_async(ticket_service.approve_ticket(bot, interaction))
        assert bot.tickets.status_of(555) is TicketStatus.PENDING

    def test_task_out_of_range_is_not_a_ticket(self, bot, store, interaction):
        interaction.channel.topic = f"Brand | Game 7 | Task 12 | User {PARTICIPANT}"
        with pytest.raises(NotATicketError):
            run_async(ticket_service.approve_ticket(bot, interaction))
        assert store.read_game(GUILD, "7") is None

    def test_not_a_ticket_channel(self, bot, interaction):
        interaction.channel.topic = "general chat"
        with pytest.raises(NotATicketError):
            run_async(ticket_service.approve_ticket(bot, interaction))


class TestReject:
    def test_reject_sends_reason(self, bot, store, interaction, participant):
        reply = run_async(ticket_service.reject_ticket(bot, interaction, "blurry screenshot"))

        assert reply.startswith("✅ Rejected")
        assert "blurry screenshot" in participant.send.await_args.args[0]
        assert bot.tickets.status_of(555) is TicketStatus.CLOSED
        assert store.read_game(GUILD, "7") is None

    def test_reject_after_approve(self, bot, interaction):
        run_async(ticket_service.approve_ticket(bot, interaction))
        with pytest.raises(TicketStateError):
            run_async(ticket_service.reject_ticket(bot, interaction, "too late"))

    def test_buttons_found_without_message(self, bot, interaction):
        intro = MagicMock()
        intro.author.id = bot.user.id
        intro.components = [MagicMock()]
        intro.edit = AsyncMock()

        async def _history(**kwargs):
            yield intro

        interaction.message = None
        interaction.channel.history = MagicMock(side_effect=_history)

        run_async(ticket_service.reject_ticket(bot, interaction, "no proof"))
        intro.edit.assert_awaited_once()


class TestClose:
    @pytest.fixture
    def spawned(self, bot) -> list:
        coros = []
        bot.spawn.side_effect = lambda coro, name=None: coros.append(coro)
        return coros

    def test_registry_entry_dropped_after_delete(self, bot, interaction, spawned):
        interaction.channel.delete = AsyncMock()
        run_async(ticket_service.approve_ticket(bot, interaction))
        assert bot.tickets.status_of(555) is TicketStatus.CLOSED

        run_async(spawned[0])

        interaction.channel.delete.assert_awaited_once()
        assert 555 not in bot.tickets._decided

    def test_registry_entry_kept_when_delete_fails(self, bot, interaction, spawned):
        interaction.channel.delete = AsyncMock(
            side_effect=discord.Forbidden(MagicMock(status=403, reason="x"), "no"),
        )
        run_async(ticket_service.reject_ticket(bot, interaction, "no proof"))
        run_async(spawned[0])
        assert bot.tickets.status_of(555) is TicketStatus.CLOSED

    def test_reject_closes_when_admin_dashboard_fails(self, bot, interaction):
        failing = AsyncMock(side_effect=OSError("disk full"))
        with patch.object(ticket_service, "update_admin_dashboard", failing):
            with pytest.raises(OSError):
                run_async(ticket_service.reject_ticket(bot, interaction, "no proof"))
        bot.spawn.assert_called_once()
        assert bot.tickets.status_of(555) is TicketStatus.CLOSED

    def test_approve_closes_when_refresh_fails(self, bot, store, interaction):
        failing = AsyncMock(side_effect=OSError("disk full"))
        with patch.object(ticket_service, "refresh_dashboards", failing):
            with pytest.raises(OSError):
                run_async(ticket_service.approve_ticket(bot, interaction))
        bot.spawn.assert_called_once()
        assert store.read_game(GUILD, "7").task_counts["1"] == 1


class TestOpen:
    def test_open_ticket_posts_intro(self, bot):
        category = MagicMock(spec=discord.CategoryChannel)
        created = MagicMock(spec=discord.TextChannel)
        created.id = 600
        created.name = "ticket-game7-task3-alice"
        created.send = AsyncMock()

        guild = MagicMock()
        guild.id = GUILD
        guild.get_channel.side_effect = lambda cid: category if cid == 900 else None
        guild.create_text_channel = AsyncMock(return_value=created)

        user = MagicMock(id=PARTICIPANT, mention=f"<@{PARTICIPANT}>")
        user.name = "Alice"

        channel = run_async(ticket_service.open_ticket(bot, guild, user, "7", "3"))

        assert channel is created
        args, kwargs = created.send.await_args
        assert "**Task:** 3" in args[0]
        assert {c.custom_id for c in kwargs["view"].children} == {"ticket_approve", "ticket_reject"}


def test_ticket_from_channel():
    channel = MagicMock(topic="Brand | Game 2 | Task 5 | User 77")
    assert ticket_service.ticket_from_channel(channel) == Ticket(game="2", task="5", user_id=77)

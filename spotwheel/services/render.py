"""
spotwheel.services.render — Dashboard & Panel Text Builders
============================================================

All message text construction lives here so the dashboard service and
cogs only need to supply a :class:`GameState`.
Dashboards are plain message content rather than embeds so they can list
every participant with mentions.
"""

from __future__ import annotations

from datetime import UTC, datetime

from spotwheel.constants import TASK_IDS, game_role_name
from spotwheel.engine.ledger import standings
from spotwheel.storage.models import GameState

# Discord rejects message content above 2000 characters.
MESSAGE_LIMIT = 2000


def format_timestamp(when: datetime) -> str:
    """Discord timestamp markup, rendered in each reader's timezone."""
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return f"<t:{int(when.timestamp())}:F>"


def _parse_closed_at(raw: str | None) -> datetime:
    if raw:
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            pass
    return datetime.now(UTC)


def build_closed_banner(game: GameState) -> str:
    if not game.closed:
        return ""
    return f"\U0001f512 **Game closed** — {format_timestamp(_parse_closed_at(game.closed_at))}\n\n"


def _clip(text: str) -> str:
    if len(text) <= MESSAGE_LIMIT:
        return text
    cut = text.rfind("\n", 0, MESSAGE_LIMIT - 2)
    return text[: cut if cut > 0 else MESSAGE_LIMIT - 2] + "\n…"


def build_dashboard_text(game: GameState, number: str) -> str:
    """Public dashboard: Spots per task, standings and task totals."""
    spot_lines = "\n".join(
        f"• Task {t}: **{game.task_spots.get(t, 0)}** Spots" for t in TASK_IDS
    )

    rows = standings(game)
    score_lines = "\n".join(
        f"{r.rank}. <@{r.user_id}> — **{r.total_spots}** Spots | **{r.total_tasks}** tasks"
        for r in rows
    ) or "(no participants or scores yet)"

    count_lines = "\n".join(
        f"• Task {t}: **{game.task_counts.get(t, 0)}x**" for t in TASK_IDS
    )

    return _clip(
        f"\U0001f4ca **Dashboard — Game {number}**\n\n"
        + build_closed_banner(game)
        + f"⚙️ **Spots per task**\n{spot_lines}\n\n"
        + f"\U0001f3c1 **Total score**\n{score_lines}\n\n"
        + f"\U0001f4cc **Tasks completed (all participants)**\n{count_lines}"
    )


def build_admin_dashboard_text(game: GameState, number: str, limit: int = 150) -> str:
    """Admin dashboard: per-participant breakdown of approvals per task."""
    header = f"\U0001f512 **Admin Dashboard — Game {number}**\n\n" + build_closed_banner(game)

    rows = standings(game, limit=limit)
    if not rows:
        return header + "(no participants or approvals yet)"

    legend = (
        "**Legend:** Spots | T1..T9 = approvals per task | "
        "Total = approved tasks\n\n"
    )
    lines = []
    for r in rows:
        per_task = "  ".join(f"T{t}:{r.tasks.get(t, 0)}" for t in TASK_IDS)
        lines.append(
            f"{r.rank}. <@{r.user_id}>  —  **{r.total_spots}** Spots  |  "
            f"{per_task}  |  **Total:{r.total_tasks}**"
        )
    return _clip(header + legend + "\n".join(lines))


def build_tasks_text(number: str) -> str:
    return (
        f"\U0001f4cb **Tasks for Game {number}**\n\n"
        "\U0001f3ab **Sign up**\n"
        f"• After signing up you receive the role **{game_role_name(number)}**.\n\n"
        "✅ **Task done?**\n"
        "• Pick the task you completed below.\n"
        "• A private ticket opens where you drop your proof "
        "(a URL or a screenshot).\n"
        "• An admin reviews it and your Spots land on the dashboard."
    )


def build_signup_text(brand: str) -> str:
    return f"\U0001f3a1 **{brand}**\nClick **Sign up** to join this game."


def build_ticket_intro(ticket_game: str, ticket_task: str, user_mention: str) -> str:
    return (
        "\U0001f39f️ **Ticket created**\n"
        f"**Game:** {ticket_game}\n"
        f"**Task:** {ticket_task}\n\n"
        f"\U0001f464 {user_mention} — post your **proof** here:\n"
        "✅ a **URL**, or\n"
        "✅ a **screenshot / photo** (attachment)\n\n"
        "ℹ️ Admins can approve or reject below."
    )


def build_task_confirm_text(task: str) -> str:
    return (
        f"Nice! \U0001f389 Did you complete **Task {task}**?\n\n"
        "✅ Click **Open ticket** and drop your proof (URL or screenshot).\n"
        "❌ Not done yet? Click **Cancel**.\n\n"
        "That way our admins only review real submissions."
    )

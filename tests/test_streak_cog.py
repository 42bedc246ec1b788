"""Tests for the streak slash commands."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from streakbot.cogs import streak_cog
from streakbot.cogs.streak_cog import StreakCog, _format_group_streak, _streak_emoji
from streakbot.kv import KeyValueStore, SqliteKV
from streakbot.service import StreakService
from streakbot.store import StreakStore
from streakbot.streaks import GroupSnapshot, calendar

REQUIRED = ("alice", "bob", "carol")
IDS = {"alice": 1, "bob": 2, "carol": 3, "dave": 4}
TODAY = "2025-12-14"


class MemoryKV(KeyValueStore):
    def __init__(self):
        self.data = {}
        self.broken = False

    async def get(self, key):
        return self.data.get(key)

    async def put(self, key, value):
        if self.broken:
            raise ConnectionError("store down")
        self.data[key] = value


# ── Helpers ────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def fixed_today():
    with patch.object(calendar, "today", return_value=TODAY):
        yield


def _make_cog(kv=None):
    bot = MagicMock()
    service = StreakService(StreakStore(kv or MemoryKV()), REQUIRED)
    return StreakCog(bot, service=service)


def _interaction(name="alice"):
    interaction = MagicMock(spec=discord.Interaction)
    interaction.user = MagicMock()
    interaction.user.id = IDS.get(name, 99)
    interaction.user.name = name
    interaction.user.display_name = name.title()
    interaction.response = MagicMock()
    interaction.response.send_message = AsyncMock()
    return interaction


def _reply(interaction):
    interaction.response.send_message.assert_awaited_once()
    call = interaction.response.send_message.call_args
    return call.args[0], call.kwargs.get("ephemeral", False)


def _complete(cog, name, question):
    interaction = _interaction(name)
    asyncio.run(cog.complete.callback(cog, interaction, question_id=question))
    return interaction


# ── Formatting ─────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "streak, expected",
    [(0, "✅"), (2, "✅"), (3, "⚡"), (6, "⚡"), (7, "\U0001f525"), (30, "\U0001f525")],
)
def test_streak_emoji(streak, expected):
    assert _streak_emoji(streak) == expected


def test_group_streak_text_lists_unseen_members():
    snap = GroupSnapshot(
        streak=0,
        last_evaluated_date=TODAY,
        participating_users=("alice",),
        missing_users=("bob", "carol"),
        required_users=REQUIRED,
        individual_streaks={"alice": 2, "bob": 1},
    )
    text = _format_group_streak(snap)
    assert "1/3 members completed today" in text
    assert "Still needed:** bob, carol" in text
    assert "Not seen yet: carol" in text
    assert "need to complete a question on the same day" in text


# ── /complete ──────────────────────────────────────────────────────────


def test_complete_success_is_public():
    cog = _make_cog()
    text, ephemeral = _reply(_complete(cog, "alice", 1))
    assert "Great job, alice" in text
    assert "Current streak: 1 day\n" in text
    assert "Total completed: 1 question" in text
    assert "Group streak" not in text
    assert ephemeral is False


def test_complete_shows_group_streak_once_everyone_is_in():
    cog = _make_cog()
    _complete(cog, "alice", 1)
    _complete(cog, "bob", 1)
    text, _ = _reply(_complete(cog, "carol", 1))
    assert "Group streak: 1 day!" in text


def test_complete_duplicate_is_ephemeral():
    cog = _make_cog()
    _complete(cog, "alice", 5)
    text, ephemeral = _reply(_complete(cog, "alice", 5))
    assert "already completed question 5" in text
    assert ephemeral is True


def test_complete_without_user():
    cog = _make_cog()
    interaction = _interaction("alice")
    interaction.user.id = None
    asyncio.run(cog.complete.callback(cog, interaction, question_id=1))
    text, ephemeral = _reply(interaction)
    assert text == "Error: Could not identify user."
    assert ephemeral is True


def test_complete_save_failure_is_not_reported_as_success():
    kv = MemoryKV()
    kv.broken = True
    cog = _make_cog(kv)
    text, ephemeral = _reply(_complete(cog, "alice", 1))
    assert text == "Error: Could not save completion data."
    assert ephemeral is True


# ── /stats & /player-stats ─────────────────────────────────────────────


def test_stats_without_completions():
    cog = _make_cog()
    interaction = _interaction("alice")
    asyncio.run(cog.stats.callback(cog, interaction))
    text, ephemeral = _reply(interaction)
    assert "haven't completed any questions yet" in text
    assert ephemeral is True


def test_stats_lists_recent_questions():
    cog = _make_cog()
    for q in range(1, 13):
        _complete(cog, "alice", q)
    interaction = _interaction("alice")
    asyncio.run(cog.stats.callback(cog, interaction))
    text, ephemeral = _reply(interaction)
    assert "alice's Statistics" in text
    assert "Total completed: **12** questions" in text
    assert "Recent questions: 3, 4, 5, 6, 7, 8, 9, 10, 11, 12..." in text
    assert f"Last completion: {TODAY}" in text
    assert ephemeral is True


def test_player_stats_shows_rank():
    cog = _make_cog()
    _complete(cog, "alice", 1)
    _complete(cog, "bob", 1)
    _complete(cog, "bob", 2)
    interaction = _interaction("carol")
    asyncio.run(cog.player_stats.callback(cog, interaction, username="alice"))
    text, _ = _reply(interaction)
    assert "alice's Statistics** (Rank #2)" in text


def test_player_stats_unknown():
    cog = _make_cog()
    interaction = _interaction("carol")
    asyncio.run(cog.player_stats.callback(cog, interaction, username="ghost"))
    text, ephemeral = _reply(interaction)
    assert "ghost hasn't completed any questions yet" in text
    assert ephemeral is True


# ── Group views ────────────────────────────────────────────────────────


def test_group_stats_empty():
    cog = _make_cog()
    interaction = _interaction()
    asyncio.run(cog.group_stats.callback(cog, interaction))
    text, _ = _reply(interaction)
    assert "No users have completed any questions yet" in text


def test_group_stats_leaderboard():
    cog = _make_cog()
    _complete(cog, "dave", 1)
    _complete(cog, "alice", 1)
    _complete(cog, "alice", 2)
    interaction = _interaction()
    asyncio.run(cog.group_stats.callback(cog, interaction))
    text, _ = _reply(interaction)
    assert text.index("alice") < text.index("dave")
    assert "Total questions completed: 3" in text
    assert "Average per user: 1.5" in text
    assert "Active today: 2/2" in text


def test_group_streak_all_done():
    cog = _make_cog()
    for name in REQUIRED:
        _complete(cog, name, 1)
    interaction = _interaction()
    asyncio.run(cog.group_streak.callback(cog, interaction))
    text, _ = _reply(interaction)
    assert "Group Daily Streak: 1 day" in text
    assert "ALL 3 MEMBERS COMPLETED TODAY" in text
    assert "Group streak started" in text


def test_group_history_empty_then_filled():
    cog = _make_cog()
    interaction = _interaction()
    asyncio.run(cog.group_history.callback(cog, interaction))
    text, _ = _reply(interaction)
    assert "No group history yet" in text

    for name in REQUIRED:
        _complete(cog, name, 1)
    interaction = _interaction()
    asyncio.run(cog.group_history.callback(cog, interaction))
    text, _ = _reply(interaction)
    assert "All-time best streak:** 1 day" in text
    assert "Total group completion days:** 1" in text
    assert f"First group day:** {TODAY}" in text
    assert f"{TODAY}: Streak 1 (alice, bob, carol)" in text


def test_player_autocomplete_filters():
    cog = _make_cog()
    _complete(cog, "alice", 1)
    _complete(cog, "bob", 1)
    choices = asyncio.run(cog.player_stats_username(_interaction(), "AL"))
    assert [c.value for c in choices] == ["alice"]


# ── Reminder & loading ─────────────────────────────────────────────────


def test_reminder_posts_missing_members():
    cog = _make_cog()
    _complete(cog, "alice", 1)
    channel = MagicMock(spec=discord.TextChannel)
    channel.send = AsyncMock()
    cog.bot.wait_until_ready = AsyncMock()
    cog.bot.get_channel = MagicMock(return_value=channel)

    with patch.object(streak_cog.cfg, "REMINDER_CHANNEL_ID", 555):
        sent = asyncio.run(cog._send_reminder())

    assert sent is True
    cog.bot.get_channel.assert_called_once_with(555)
    message = channel.send.call_args.args[0]
    assert "bob, carol" in message


def test_reminder_skipped_when_everyone_done():
    cog = _make_cog()
    for name in REQUIRED:
        _complete(cog, name, 1)
    channel = MagicMock(spec=discord.TextChannel)
    channel.send = AsyncMock()
    cog.bot.wait_until_ready = AsyncMock()
    cog.bot.get_channel = MagicMock(return_value=channel)

    with patch.object(streak_cog.cfg, "REMINDER_CHANNEL_ID", 555):
        assert asyncio.run(cog._send_reminder()) is False
    channel.send.assert_not_awaited()


def test_reminder_errors_are_logged_not_raised():
    cog = _make_cog()
    cog.bot.wait_until_ready = AsyncMock(side_effect=RuntimeError("boom"))
    assert asyncio.run(cog._send_reminder()) is None


def test_cog_load_without_database_uses_sqlite(tmp_path):
    cog = StreakCog(MagicMock())
    with patch("streakbot.infra.cog_base.get_pool", AsyncMock(side_effect=RuntimeError)), \
            patch.object(streak_cog.cfg, "STATE_DB_PATH", str(tmp_path / "s.db")), \
            patch.object(streak_cog.cfg, "REMINDER_CHANNEL_ID", 0):
        asyncio.run(cog.cog_load())
    assert cog.pool is None
    assert isinstance(cog.service.store.kv, SqliteKV)
    assert cog.service.required_members == REQUIRED
    assert cog.scheduler is None

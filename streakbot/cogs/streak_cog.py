"""Daily problem streaks for the study group.

Members log solved problems with ``/complete``; each member keeps a streak of
consecutive days with at least one completion, and the required members share
a group streak (the smallest of their individual streaks).

Commands:
  • /complete question_id – record a solved problem
  • /stats – your own streak and totals
  • /group-stats – leaderboard of everyone who has logged a problem
  • /group-streak – who has and hasn't completed today
  • /player-stats username – another member's numbers and rank
  • /group-history – best streak and recent fully-completed days

Configuration:
  • REQUIRED_MEMBERS / STREAK_TIMEZONE / HISTORY_LIMIT (infra.config)
  • REMINDER_CHANNEL_ID: channel for the evening nudge (0 = disabled)
  • REMINDER_HOUR: local hour of the nudge in the streak timezone
"""
from __future__ import annotations

import logging

import discord
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from discord import app_commands
from discord.ext import commands

from .. import bot_config as cfg
from ..infra import PoolAwareCog, get_config, log_errors
from ..kv import open_store
from ..service import StreakService
from ..store import StreakStore
from ..streaks import (
    AlreadyCompleted,
    GroupHistory,
    GroupSnapshot,
    MissingQuestionId,
    PersistenceUnavailable,
    UserNotIdentified,
    UserRecord,
    recent,
)
from ..streaks import calendar
from ..util import chan_name, plural, user_name

log = logging.getLogger(f"streakbot.{__name__}")

RECENT_QUESTIONS = 10
RECENT_GROUP_DAYS = 7


def _streak_emoji(streak: int) -> str:
    if streak >= 7:
        return "\U0001f525"  # Fire
    if streak >= 3:
        return "⚡"  # Lightning
    return "✅"  # Check mark


def _group_emoji(streak: int) -> str:
    if streak >= 7:
        return "\U0001f525\U0001f525"
    if streak >= 3:
        return "⚡⚡"
    return "\U0001f3c6"  # Trophy


def _medal(rank: int, fallback: str = "\U0001f4cd") -> str:
    return {1: "\U0001f947", 2: "\U0001f948", 3: "\U0001f949"}.get(rank, fallback)


def _recent_questions(rec: UserRecord) -> str:
    shown = ", ".join(str(q) for q in rec.completed_questions[-RECENT_QUESTIONS:])
    return shown + ("..." if rec.total_completed > RECENT_QUESTIONS else "")


def _format_user_stats(rec: UserRecord, header: str) -> str:
    return (
        f"{header}\n\n"
        f"{_streak_emoji(rec.current_streak)} Current streak: "
        f"**{rec.current_streak}** day{'' if rec.current_streak == 1 else 's'}\n"
        f"\U0001f3af Total completed: **{rec.total_completed}** "
        f"question{'' if rec.total_completed == 1 else 's'}\n"
        f"\U0001f4c5 Last completion: {rec.last_completion_date or 'Never'}\n\n"
        f"\U0001f522 Recent questions: {_recent_questions(rec)}"
    )


def _format_completion(username: str, question_id: int, rec: UserRecord, group: GroupSnapshot) -> str:
    text = (
        f"\U0001f389 Great job, {username}! You completed **Question {question_id}**!\n"
        f"{_streak_emoji(rec.current_streak)} Current streak: {plural(rec.current_streak, 'day')}\n"
        f"\U0001f4ca Total completed: {plural(rec.total_completed, 'question')}"
    )
    if group.streak > 0:
        text += f"\n{_group_emoji(group.streak)} Group streak: {plural(group.streak, 'day')}!"
    return text


def _format_group_streak(group: GroupSnapshot) -> str:
    required = len(group.required_users)
    lines = [
        f"{_group_emoji(group.streak)} **Group Daily Streak: {plural(group.streak, 'day')}**",
        "",
        f"\U0001f3af **Required Members:** {', '.join(group.required_users)}",
        f"\U0001f4c5 **Today ({group.last_evaluated_date}):**",
        "",
    ]
    if group.all_required_participated:
        lines.append(f"\U0001f389 **ALL {required} MEMBERS COMPLETED TODAY!** ✅")
        lines.append(f"\U0001f465 **Completed:** {', '.join(group.participating_users)}")
        lines.append("")
        if group.streak == 1:
            lines.append("\U0001f680 Group streak started! Keep it going tomorrow!")
        else:
            lines.append("\U0001f525 Keep the streak alive! Everyone complete tomorrow too!")
        return "\n".join(lines)

    lines.append(f"⚠️ **{len(group.participating_users)}/{required} members completed today**")
    lines.append("")
    if group.participating_users:
        lines.append(f"✅ **Completed today:** {', '.join(group.participating_users)}")
    if group.missing_users:
        lines.append(f"❌ **Still needed:** {', '.join(group.missing_users)}")
        lines.append("")
    if not group.roster_complete:
        unseen = [u for u in group.required_users if u not in group.individual_streaks]
        lines.append(f"\U0001f50d Not seen yet: {', '.join(unseen)}")
    if group.streak > 0:
        lines.append("\U0001f494 Streak will be broken unless everyone completes today!")
        lines.append(f"\U0001f4aa **{', '.join(group.missing_users)}** - complete a question to save the streak!")
    else:
        lines.append(
            f"\U0001f91d **All {required} members** need to complete a question on the same day to start the group streak!"
        )
    return "\n".join(lines)


def _format_history(history: GroupHistory, group: GroupSnapshot) -> str:
    lines = [
        "\U0001f4ca **Group History & Achievements**",
        "",
        f"{_group_emoji(history.max_streak)} **All-time best streak:** {plural(history.max_streak, 'day')}",
        f"\U0001f3c6 **Current streak:** {plural(group.streak, 'day')}",
        f"\U0001f4c8 **Total group completion days:** {history.total_group_days}",
    ]
    if history.first_group_day:
        lines.append(f"\U0001f5d3️ **First group day:** {history.first_group_day}")
    days = recent(history, RECENT_GROUP_DAYS)
    if days:
        lines.append("")
        lines.append(f"\U0001f4c5 **Recent Activity (Last {len(days)} days):**")
        for day in days:
            lines.append(
                f"{_streak_emoji(day.streak)} {day.date}: Streak {day.streak} ({', '.join(day.participants)})"
            )
        lines.append("")
        lines.append("\U0001f4aa Keep building that group streak!")
    return "\n".join(lines)


class StreakCog(PoolAwareCog):
    """Slash commands over :class:`StreakService`."""

    def __init__(self, bot: commands.Bot, service: StreakService | None = None) -> None:
        super().__init__(bot)
        self.service = service
        self.scheduler: AsyncIOScheduler | None = None

    async def cog_load(self) -> None:
        await super().cog_load()
        if self.service is None:
            conf = get_config()
            kv = await open_store(self.pool, cfg.STATE_DB_PATH)
            self.service = StreakService(
                StreakStore(kv), conf.required_members, conf.history_limit
            )
        if cfg.REMINDER_CHANNEL_ID:
            tz = calendar.reference_tz()
            self.scheduler = AsyncIOScheduler(timezone=tz)
            trigger = CronTrigger(hour=cfg.REMINDER_HOUR, minute=0, timezone=tz)
            self.scheduler.add_job(self._send_reminder, trigger)
            self.scheduler.start()
            log.info("Streak reminder scheduled at %02d:00 %s", cfg.REMINDER_HOUR, tz.zone)

    async def cog_unload(self) -> None:
        if self.scheduler:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
        await super().cog_unload()

    # ── Scheduled Task ─────────────────────────────────────────────────────

    @log_errors("Streak reminder failed")
    async def _send_reminder(self) -> bool:
        """Nudge the required members who have not completed today."""
        await self.bot.wait_until_ready()
        channel = self.bot.get_channel(cfg.REMINDER_CHANNEL_ID)
        if not isinstance(channel, discord.TextChannel):
            log.warning("Reminder channel %d not found or not a text channel", cfg.REMINDER_CHANNEL_ID)
            return False
        group = await self.service.get_group_status()
        if group.all_required_participated:
            return False
        text = (
            f"⏰ Still needed today: **{', '.join(group.missing_users)}**\n"
            f"{_group_emoji(group.streak)} Group streak on the line: {plural(group.streak, 'day')}"
        )
        await channel.send(text)
        log.info("Sent streak reminder for %d missing members", len(group.missing_users))
        return True

    # ── Slash Commands ─────────────────────────────────────────────────────

    @app_commands.command(name="complete", description="Mark a question as complete when you did it")
    @app_commands.describe(question_id="The ID of the question you completed")
    async def complete(self, interaction: discord.Interaction, question_id: int) -> None:
        user = interaction.user
        username = getattr(user, "name", None)
        log.info(
            "/complete %s invoked by %s in %s",
            question_id,
            user_name(user),
            chan_name(interaction.channel),
        )
        try:
            result = await self.service.register_completion(
                getattr(user, "id", None), username, question_id
            )
        except UserNotIdentified:
            await interaction.response.send_message("Error: Could not identify user.", ephemeral=True)
            return
        except MissingQuestionId:
            await interaction.response.send_message("Error: Please provide a question ID.", ephemeral=True)
            return
        except AlreadyCompleted:
            await interaction.response.send_message(
                f"You've already completed question {question_id}! \U0001f3af", ephemeral=True
            )
            return
        except PersistenceUnavailable:
            await interaction.response.send_message(
                "Error: Could not save completion data.", ephemeral=True
            )
            return
        await interaction.response.send_message(
            _format_completion(username, question_id, result.record, result.group)
        )

    @app_commands.command(name="stats", description="View your completion statistics and streak")
    async def stats(self, interaction: discord.Interaction) -> None:
        user = interaction.user
        username = getattr(user, "name", None)
        try:
            rec = await self.service.get_user_statistics(getattr(user, "id", None))
        except UserNotIdentified:
            await interaction.response.send_message("Error: Could not identify user.", ephemeral=True)
            return
        if not rec.completed_questions:
            await interaction.response.send_message(
                f"{username}, you haven't completed any questions yet! "
                "Use `/complete <question_id>` to track your progress. \U0001f680",
                ephemeral=True,
            )
            return
        await interaction.response.send_message(
            _format_user_stats(rec, f"\U0001f4ca **{username}'s Statistics**"), ephemeral=True
        )

    @app_commands.command(name="group-stats", description="View everyone's completion statistics")
    async def group_stats(self, interaction: discord.Interaction) -> None:
        users = await self.service.get_all_users()
        if not users:
            await interaction.response.send_message(
                "No users have completed any questions yet! Be the first to use `/complete <question_id>` \U0001f680"
            )
            return
        ranked = self.service.leaderboard(users)
        summary = self.service.group_summary(ranked, calendar.today())
        lines = ["\U0001f3c6 **Group Statistics**", ""]
        for rank, rec in enumerate(ranked, 1):
            lines.append(f"{_medal(rank)} **{rec.username}**")
            lines.append(
                f"   {_streak_emoji(rec.current_streak)} Streak: {plural(rec.current_streak, 'day')} | "
                f"\U0001f3af Total: {plural(rec.total_completed, 'question')}"
            )
            lines.append("")
        lines.append("\U0001f4c8 **Summary**")
        lines.append(f"\U0001f465 Active users: {summary.users}")
        lines.append(f"\U0001f4ca Total questions completed: {summary.total_completed}")
        lines.append(f"\U0001f4c9 Average per user: {summary.average}")
        lines.append(f"\U0001f5d3️ Active today: {summary.active_today}/{summary.users}")
        await interaction.response.send_message("\n".join(lines))

    @app_commands.command(
        name="group-streak",
        description="View the daily group streak (everyone must complete a question)",
    )
    async def group_streak(self, interaction: discord.Interaction) -> None:
        group = await self.service.get_group_status()
        await interaction.response.send_message(_format_group_streak(group))

    @app_commands.command(name="player-stats", description="View a specific player's statistics")
    @app_commands.describe(username="The username of the player to view stats for")
    async def player_stats(self, interaction: discord.Interaction, username: str) -> None:
        found = await self.service.get_player(username)
        if found is None or not found[0].completed_questions:
            await interaction.response.send_message(
                f"{username} hasn't completed any questions yet! \U0001f680", ephemeral=True
            )
            return
        rec, rank = found
        header = f"{_medal(rank)} **{rec.username}'s Statistics** (Rank #{rank})"
        await interaction.response.send_message(_format_user_stats(rec, header))

    @player_stats.autocomplete("username")
    async def player_stats_username(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        users = await self.service.get_all_users()
        names = [rec.username for rec in users if current.lower() in rec.username.lower()]
        return [app_commands.Choice(name=n, value=n) for n in names[:25]]

    @app_commands.command(
        name="group-history",
        description="View the group's past streak statistics and achievements",
    )
    async def group_history(self, interaction: discord.Interaction) -> None:
        group = await self.service.get_group_status()
        history = await self.service.get_group_history()
        if history.total_group_days == 0:
            await interaction.response.send_message(
                "No group history yet! Complete some questions together to build your legacy \U0001f680"
            )
            return
        await interaction.response.send_message(_format_history(history, group))


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(StreakCog(bot))

"""Request-scoped operations used by the slash commands.

Each call loads what it needs from :class:`StreakStore`, runs the pure
engines in :mod:`streakbot.streaks` and writes the results back. Nothing is
cached between calls; concurrent requests race on the store and the last
write wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from .infra.logging import get_logger, structured_log
from .store import StreakStore
from .streaks import (
    GroupHistory,
    GroupSnapshot,
    MissingQuestionId,
    StreakChange,
    UserNotIdentified,
    UserRecord,
    advance_streak,
    evaluate,
    record,
    register_completion,
)
from .streaks import calendar
from .streaks.history import HISTORY_LIMIT

log = get_logger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    record: UserRecord
    change: StreakChange
    group: GroupSnapshot


@dataclass(frozen=True)
class GroupSummary:
    users: int
    total_completed: int
    average: float
    active_today: int


class StreakService:
    def __init__(
        self,
        store: StreakStore,
        required_members: Iterable[str],
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self.store = store
        self.required_members = tuple(required_members)
        self.history_limit = history_limit

    async def register_completion(
        self,
        user_id: str | int | None,
        username: str | None,
        question_id: int | None,
        today: str | None = None,
    ) -> CompletionResult:
        """Record *question_id* for the user and refresh the group state.

        Raises :class:`UserNotIdentified`, :class:`MissingQuestionId`,
        :class:`AlreadyCompleted` or :class:`PersistenceUnavailable`.
        """
        if not user_id or not username:
            raise UserNotIdentified()
        if not question_id:
            raise MissingQuestionId()
        today = today or calendar.today()
        user_id = str(user_id)

        current = await self.store.load_user(user_id)
        current = replace(current, username=username)
        updated = register_completion(current, question_id)
        updated, change = advance_streak(updated, today)
        await self.store.save_user(updated)
        structured_log(
            log,
            logging.INFO,
            "Completion recorded",
            user=username,
            question=question_id,
            streak=updated.current_streak,
            change=change.value,
        )

        group = await self.refresh_group(today, fresh=updated)
        return CompletionResult(record=updated, change=change, group=group)

    async def get_user_statistics(self, user_id: str | int | None) -> UserRecord:
        if not user_id:
            raise UserNotIdentified()
        return await self.store.load_user(str(user_id))

    async def get_group_status(self, today: str | None = None) -> GroupSnapshot:
        return await self.refresh_group(today or calendar.today())

    async def get_group_history(self) -> GroupHistory:
        return await self.store.load_history()

    async def refresh_group(
        self, today: str, fresh: UserRecord | None = None
    ) -> GroupSnapshot:
        """Recompute, persist and log the group snapshot for *today*."""
        members = await self.store.load_members(self.required_members)
        snapshot = evaluate(self.required_members, members, today, fresh=fresh)
        await self.store.save_group_snapshot(snapshot)

        history = await self.store.load_history()
        updated = record(history, snapshot, limit=self.history_limit)
        if updated != history:
            await self.store.save_history(updated)
        structured_log(
            log,
            logging.DEBUG,
            "Group evaluated",
            day=today,
            streak=snapshot.streak,
            participating=len(snapshot.participating_users),
            required=len(snapshot.required_users),
        )
        return snapshot

    # ── Leaderboard views ──────────────────────────────────────────────────

    async def get_all_users(self) -> list[UserRecord]:
        return await self.store.load_all_users()

    @staticmethod
    def leaderboard(users: Iterable[UserRecord]) -> list[UserRecord]:
        """Users ordered by total completed, most first."""
        return sorted(users, key=lambda rec: rec.total_completed, reverse=True)

    async def get_player(self, username: str) -> tuple[UserRecord, int] | None:
        """Return the named user's record and leaderboard rank (1-based)."""
        ranked = self.leaderboard(await self.get_all_users())
        for rank, rec in enumerate(ranked, 1):
            if rec.username == username:
                return rec, rank
        return None

    @staticmethod
    def group_summary(users: Iterable[UserRecord], today: str) -> GroupSummary:
        users = list(users)
        total = sum(rec.total_completed for rec in users)
        average = round(total / len(users), 1) if users else 0.0
        active = sum(1 for rec in users if rec.last_completion_date == today)
        return GroupSummary(
            users=len(users), total_completed=total, average=average, active_today=active
        )

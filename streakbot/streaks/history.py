"""Ledger of days on which every required member completed a question."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from .group import GroupSnapshot

log = logging.getLogger(f"streakbot.{__name__}")

HISTORY_LIMIT = 30


@dataclass(frozen=True)
class GroupHistoryEntry:
    date: str
    streak: int
    participants: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "streak": self.streak,
            "participants": list(self.participants),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GroupHistoryEntry":
        return cls(
            date=data["date"],
            streak=int(data.get("streak") or 0),
            participants=tuple(data.get("participants") or ()),
        )


@dataclass(frozen=True)
class GroupHistory:
    """Retained fully-participated days plus all-time counters.

    ``streak_history`` keeps only the most recent entries; ``total_group_days``
    and ``max_streak`` survive trimming.
    """

    streak_history: tuple[GroupHistoryEntry, ...] = ()
    max_streak: int = 0
    total_group_days: int = 0
    first_group_day: str | None = None

    def has_day(self, day: str | None) -> bool:
        return any(entry.date == day for entry in self.streak_history)

    def to_dict(self) -> dict[str, Any]:
        return {
            "streakHistory": [entry.to_dict() for entry in self.streak_history],
            "maxStreak": self.max_streak,
            "totalGroupDays": self.total_group_days,
            "firstGroupDay": self.first_group_day,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GroupHistory":
        if not data:
            return cls()
        entries = tuple(
            GroupHistoryEntry.from_dict(item)
            for item in data.get("streakHistory") or ()
            if isinstance(item, dict) and item.get("date")
        )
        return cls(
            streak_history=entries,
            max_streak=int(data.get("maxStreak") or 0),
            total_group_days=int(data.get("totalGroupDays") or 0),
            first_group_day=data.get("firstGroupDay") or None,
        )


def record(
    history: GroupHistory, snapshot: GroupSnapshot, limit: int = HISTORY_LIMIT
) -> GroupHistory:
    """Fold *snapshot* into *history*; safe to call repeatedly for one day."""
    max_streak = history.max_streak
    if snapshot.streak > max_streak:
        log.info("New best group streak: %d (was %d)", snapshot.streak, max_streak)
        max_streak = snapshot.streak

    entries = history.streak_history
    total = history.total_group_days
    first = history.first_group_day
    day = snapshot.last_evaluated_date
    if snapshot.all_required_participated and day and not history.has_day(day):
        entry = GroupHistoryEntry(
            date=day,
            streak=snapshot.streak,
            participants=tuple(snapshot.participating_users),
        )
        entries = tuple(sorted(entries + (entry,), key=lambda e: e.date))
        total += 1
        if first is None:
            first = day
        log.info("Recorded group day %s (streak %d)", day, snapshot.streak)

    if len(entries) > limit:
        entries = entries[-limit:]

    return replace(
        history,
        streak_history=entries,
        max_streak=max_streak,
        total_group_days=total,
        first_group_day=first,
    )


def recent(history: GroupHistory, days: int = 7) -> tuple[GroupHistoryEntry, ...]:
    """Return the last *days* retained entries, oldest first."""
    if days <= 0:
        return ()
    return history.streak_history[-days:]

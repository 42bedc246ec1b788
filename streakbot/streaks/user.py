"""Per-user streak record and the completion state machine."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from .calendar import day_distance, normalize_day
from .errors import AlreadyCompleted, InvalidDate

log = logging.getLogger(f"streakbot.{__name__}")


class StreakChange(str, Enum):
    """How a completion moved the streak."""

    STARTED = "started"
    SAME_DAY = "same_day"
    EXTENDED = "extended"
    RESET = "reset"
    CLOCK_ANOMALY = "clock_anomaly"


@dataclass(frozen=True)
class UserRecord:
    """One member's completion history.

    ``current_streak`` counts consecutive days ending at
    ``last_completion_date``; both are empty until the first completion.
    ``user_id`` is the store key and is not part of the stored payload.
    """

    user_id: str = ""
    username: str = ""
    completed_questions: tuple[int, ...] = ()
    current_streak: int = 0
    last_completion_date: str | None = None

    @property
    def total_completed(self) -> int:
        return len(self.completed_questions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "completedQuestions": list(self.completed_questions),
            "currentStreak": self.current_streak,
            "lastCompletionDate": self.last_completion_date,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, user_id: str = "") -> "UserRecord":
        if not data:
            return cls(user_id=user_id)
        try:
            streak = max(int(data.get("currentStreak") or 0), 0)
        except (TypeError, ValueError):
            streak = 0
        return cls(
            user_id=user_id,
            username=data.get("username") or "",
            completed_questions=tuple(data.get("completedQuestions") or ()),
            current_streak=streak,
            last_completion_date=data.get("lastCompletionDate") or None,
        )


def classify_completion(last: str | None, today: str) -> StreakChange:
    """Classify a completion on *today* against the previous completion day."""
    if not last:
        return StreakChange.STARTED
    try:
        distance = day_distance(last, today)
    except InvalidDate:
        log.warning("Unreadable last completion date %r; resetting streak", last)
        return StreakChange.RESET
    if distance == 0:
        return StreakChange.SAME_DAY
    if distance == 1:
        return StreakChange.EXTENDED
    if distance < 0:
        log.warning(
            "Last completion date %s is after today %s; leaving streak untouched",
            last,
            today,
        )
        return StreakChange.CLOCK_ANOMALY
    return StreakChange.RESET


def apply_completion(record: UserRecord, today: str) -> UserRecord:
    """Return *record* updated for a completion made on *today*.

    Must run once per newly registered question; see
    :func:`register_completion`.
    """
    return advance_streak(record, today)[0]


def advance_streak(record: UserRecord, today: str) -> tuple[UserRecord, StreakChange]:
    """Like :func:`apply_completion` but also report the :class:`StreakChange`."""
    today = normalize_day(today)
    change = classify_completion(record.last_completion_date, today)
    if change is StreakChange.CLOCK_ANOMALY:
        return record, change
    if change is StreakChange.SAME_DAY:
        # keep the count, rewrite legacy date text in canonical form
        streak = max(record.current_streak, 1)
    elif change is StreakChange.EXTENDED:
        streak = record.current_streak + 1
    else:
        streak = 1
    log.debug(
        "Streak %s for %s: %d -> %d",
        change.value,
        record.username or record.user_id,
        record.current_streak,
        streak,
    )
    return replace(record, current_streak=streak, last_completion_date=today), change


def register_completion(record: UserRecord, question_id: int) -> UserRecord:
    """Append *question_id* to the record or raise :class:`AlreadyCompleted`."""
    if question_id in record.completed_questions:
        raise AlreadyCompleted(question_id)
    return replace(
        record, completed_questions=record.completed_questions + (question_id,)
    )

"""Pure streak engines: calendar days, user streaks, group streak, history."""
from .calendar import day_distance, normalize_day, parse_day, today
from .errors import (
    AlreadyCompleted,
    InvalidDate,
    MissingQuestionId,
    PersistenceUnavailable,
    StreakError,
    UserNotIdentified,
)
from .group import GroupSnapshot, evaluate
from .history import GroupHistory, GroupHistoryEntry, record, recent
from .user import (
    StreakChange,
    UserRecord,
    advance_streak,
    apply_completion,
    classify_completion,
    register_completion,
)

__all__ = [
    # Calendar
    "day_distance",
    "normalize_day",
    "parse_day",
    "today",
    # Errors
    "AlreadyCompleted",
    "InvalidDate",
    "MissingQuestionId",
    "PersistenceUnavailable",
    "StreakError",
    "UserNotIdentified",
    # Engines
    "GroupSnapshot",
    "evaluate",
    "GroupHistory",
    "GroupHistoryEntry",
    "record",
    "recent",
    "StreakChange",
    "UserRecord",
    "advance_streak",
    "apply_completion",
    "classify_completion",
    "register_completion",
]

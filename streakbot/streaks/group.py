"""Joint streak of the required members."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .user import UserRecord

log = logging.getLogger(f"streakbot.{__name__}")


@dataclass(frozen=True)
class GroupSnapshot:
    """Group state computed for one day.

    ``streak`` is the smallest individual streak among the required members,
    or 0 while any of them has never been seen.
    """

    streak: int = 0
    last_evaluated_date: str | None = None
    participating_users: tuple[str, ...] = ()
    missing_users: tuple[str, ...] = ()
    required_users: tuple[str, ...] = ()
    all_required_participated: bool = False
    individual_streaks: dict[str, int] = field(default_factory=dict)

    @property
    def roster_complete(self) -> bool:
        return len(self.individual_streaks) == len(self.required_users)

    def to_dict(self) -> dict[str, Any]:
        return {
            "streak": self.streak,
            "lastEvaluatedDate": self.last_evaluated_date,
            "participatingUsers": list(self.participating_users),
            "missingUsers": list(self.missing_users),
            "requiredUsers": list(self.required_users),
            "allRequiredParticipated": self.all_required_participated,
            "individualStreaks": dict(self.individual_streaks),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GroupSnapshot":
        if not data:
            return cls()
        return cls(
            streak=int(data.get("streak") or 0),
            last_evaluated_date=data.get("lastEvaluatedDate") or data.get("lastDate"),
            participating_users=tuple(data.get("participatingUsers") or ()),
            missing_users=tuple(data.get("missingUsers") or ()),
            required_users=tuple(data.get("requiredUsers") or ()),
            all_required_participated=bool(data.get("allRequiredParticipated")),
            individual_streaks=dict(data.get("individualStreaks") or {}),
        )


def evaluate(
    required: Iterable[str],
    records_by_username: Mapping[str, UserRecord],
    today: str,
    fresh: UserRecord | None = None,
) -> GroupSnapshot:
    """Recompute the group state for *today* from individual records.

    *fresh* is a record written earlier in the same request; it wins over
    the stored copy for its username.
    """
    required = tuple(required)
    records = dict(records_by_username)
    if fresh is not None and fresh.username in required:
        records[fresh.username] = fresh

    known = {name: records[name] for name in required if name in records}
    participating = tuple(
        name for name, rec in known.items() if rec.last_completion_date == today
    )
    missing = tuple(name for name in required if name not in participating)

    if required and len(known) == len(required):
        streak = min(rec.current_streak for rec in known.values())
    else:
        streak = 0
        if required:
            log.info(
                "Group roster incomplete: %d/%d members known",
                len(known),
                len(required),
            )

    return GroupSnapshot(
        streak=streak,
        last_evaluated_date=today,
        participating_users=participating,
        missing_users=missing,
        required_users=required,
        all_required_participated=not missing,
        individual_streaks={name: rec.current_streak for name, rec in known.items()},
    )

"""Failures raised by the streak engines and the service around them."""
from __future__ import annotations


class StreakError(Exception):
    """Base class for every streak related failure."""


class AlreadyCompleted(StreakError):
    """The user has already recorded this question."""

    def __init__(self, question_id: int) -> None:
        super().__init__(f"question {question_id} already completed")
        self.question_id = question_id


class UserNotIdentified(StreakError):
    """The interaction did not carry a user id and username."""


class MissingQuestionId(StreakError):
    """A completion was requested without a question id."""


class InvalidDate(StreakError, ValueError):
    """A stored date string could not be read as a calendar day."""

    def __init__(self, value: object) -> None:
        super().__init__(f"invalid date: {value!r}")
        self.value = value


class PersistenceUnavailable(StreakError):
    """The key-value store rejected a write."""

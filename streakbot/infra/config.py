"""Centralized configuration for the streak engines and their callers."""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from ..util import int_env, list_env

DEFAULT_TIMEZONE = "Australia/Sydney"
DEFAULT_REQUIRED_MEMBERS = ("razar0200", "bobrandy", "esshaygod")
DEFAULT_HISTORY_LIMIT = 30


@dataclass(frozen=True)
class StreakConfig:
    """Settings shared by the calendar, the group engine and the ledger.

    ``timezone`` decides which calendar day a completion falls on for every
    member regardless of where they live. ``required_members`` are the
    usernames whose joint participation makes up the group streak.
    """

    timezone: str = DEFAULT_TIMEZONE
    required_members: tuple[str, ...] = field(default=DEFAULT_REQUIRED_MEMBERS)
    history_limit: int = DEFAULT_HISTORY_LIMIT

    @classmethod
    def from_env(cls) -> "StreakConfig":
        """Create config from environment variables."""
        limit = int_env("HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT)
        return cls(
            timezone=os.getenv("STREAK_TIMEZONE") or DEFAULT_TIMEZONE,
            required_members=list_env("REQUIRED_MEMBERS", DEFAULT_REQUIRED_MEMBERS),
            history_limit=limit if limit > 0 else DEFAULT_HISTORY_LIMIT,
        )


# Global default configuration instance
_default_config: StreakConfig | None = None


def get_config() -> StreakConfig:
    """Return the global configuration instance.

    Creates the configuration on first access. This allows for lazy
    loading of environment variables.
    """
    global _default_config
    if _default_config is None:
        _default_config = StreakConfig.from_env()
    return _default_config


def set_config(config: StreakConfig) -> None:
    """Set the global configuration instance.

    Useful for testing or when you need to override defaults.
    """
    global _default_config
    _default_config = config


def reset_config() -> None:
    """Reset the global configuration to reload from environment."""
    global _default_config
    _default_config = None

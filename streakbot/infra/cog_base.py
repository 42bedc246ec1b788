"""Base classes and helpers for Discord cogs."""
from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING, Any, Callable, TypeVar

import asyncpg
from discord.ext import commands

from ..db import get_pool

if TYPE_CHECKING:
    from discord.ext.commands import Bot

log = logging.getLogger(f"streakbot.{__name__}")

F = TypeVar("F", bound=Callable[..., Any])


class PoolAwareCog(commands.Cog):
    """Mixin providing standardized database pool initialization.

    Subclasses get a ``self.pool`` attribute that is initialized during
    ``cog_load()`` and cleared during ``cog_unload()``. The pool is shared
    across all cogs via :func:`streakbot.db.get_pool`.

    If the database URL is missing, the cog logs a warning and leaves
    ``self.pool`` as ``None`` so subclasses can fall back to local storage.
    """

    pool: asyncpg.Pool | None = None

    def __init__(self, bot: "Bot") -> None:
        self.bot = bot
        self.pool = None

    async def cog_load(self) -> None:
        """Initialize the database pool.

        Subclasses that override this method should call ``await super().cog_load()``.
        """
        try:
            self.pool = await get_pool()
        except RuntimeError:
            self.pool = None
            log.warning(
                "%s: database pool unavailable (PG_DSN missing)",
                self.__class__.__name__,
            )

    async def cog_unload(self) -> None:
        self.pool = None

    @property
    def has_pool(self) -> bool:
        """Return True if the database pool is available."""
        return self.pool is not None


def log_errors(
    message: str = "Operation failed",
    *,
    reraise: bool = False,
    return_value: Any = None,
) -> Callable[[F], F]:
    """Decorator that logs exceptions with consistent formatting.

    Args:
        message: Log message prefix for the error
        reraise: If True, re-raise the exception after logging
        return_value: Value to return if an exception occurs (when not reraising)

    Example::

        @log_errors("Reminder job failed")
        async def _send_reminder(self):
            ...
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except Exception:
                func_log = logging.getLogger(f"streakbot.{func.__module__}")
                func_log.exception("%s in %s", message, func.__name__)
                if reraise:
                    raise
                return return_value

        return wrapper  # type: ignore[return-value]

    return decorator

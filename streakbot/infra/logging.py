"""Standardized logging utilities for streakbot."""
from __future__ import annotations

import logging
from typing import Any

# Root logger name for all streakbot components
ROOT_LOGGER_NAME = "streakbot"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a hierarchical logger under the streakbot namespace.

    This ensures all loggers use consistent naming and can be configured
    together via the root "streakbot" logger.

    Args:
        name: Module or component name. If None, returns the root logger.
              The name will be prefixed with "streakbot." automatically
              if it doesn't already have that prefix.

    Example::

        log = get_logger(__name__)  # -> "streakbot.service"
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)

    clean_name = name
    if clean_name.startswith(f"{ROOT_LOGGER_NAME}."):
        clean_name = clean_name[len(ROOT_LOGGER_NAME) + 1 :]

    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{clean_name}")


def structured_log(
    logger: logging.Logger,
    level: int,
    message: str,
    **fields: Any,
) -> None:
    """Log a message with structured key=value fields appended.

    Example::

        structured_log(log, logging.INFO, "Completion recorded",
                      user_id=123, streak=4, change="extended")
        # Logs: "Completion recorded user_id=123 streak=4 change=extended"
    """
    if fields:
        field_str = " ".join(f"{k}={v}" for k, v in fields.items())
        message = f"{message} {field_str}"
    logger.log(level, message)

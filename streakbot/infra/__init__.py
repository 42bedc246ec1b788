"""Infrastructure utilities for streakbot."""
from .cog_base import PoolAwareCog, log_errors
from .config import StreakConfig, get_config, reset_config, set_config
from .logging import get_logger, structured_log

__all__ = [
    # Cog base classes
    "PoolAwareCog",
    "log_errors",
    # Configuration
    "StreakConfig",
    "get_config",
    "reset_config",
    "set_config",
    # Logging
    "get_logger",
    "structured_log",
]

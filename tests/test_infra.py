"""Tests for infrastructure modules."""
from __future__ import annotations

import asyncio
import logging
import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from streakbot.infra import (
    PoolAwareCog,
    StreakConfig,
    get_config,
    get_logger,
    log_errors,
    reset_config,
    set_config,
)
from streakbot.infra.config import DEFAULT_REQUIRED_MEMBERS, DEFAULT_TIMEZONE
from streakbot.infra.logging import structured_log


# --- Logging Tests ---


def test_get_logger_with_name() -> None:
    """get_logger returns a logger with streakbot prefix."""
    assert get_logger("service").name == "streakbot.service"


def test_get_logger_without_name() -> None:
    assert get_logger().name == "streakbot"


def test_get_logger_avoids_double_prefix() -> None:
    assert get_logger("streakbot.store").name == "streakbot.store"


def test_structured_log(caplog: pytest.LogCaptureFixture) -> None:
    """structured_log appends key=value pairs to message."""
    logger = get_logger("test_structured")
    with caplog.at_level(logging.INFO):
        structured_log(logger, logging.INFO, "Completion recorded", user="alice", streak=3)
    assert "Completion recorded user=alice streak=3" in caplog.text


# --- Configuration Tests ---


def test_streak_config_defaults() -> None:
    config = StreakConfig()
    assert config.timezone == DEFAULT_TIMEZONE == "Australia/Sydney"
    assert config.required_members == DEFAULT_REQUIRED_MEMBERS
    assert config.history_limit == 30


def test_streak_config_from_env() -> None:
    env = {
        "STREAK_TIMEZONE": "UTC",
        "REQUIRED_MEMBERS": " dana, eli ,,dana,fay ",
        "HISTORY_LIMIT": "10",
    }
    with patch.dict(os.environ, env):
        config = StreakConfig.from_env()
    assert config.timezone == "UTC"
    assert config.required_members == ("dana", "eli", "fay")
    assert config.history_limit == 10


@pytest.mark.parametrize("limit", ["0", "-3", "lots"])
def test_streak_config_rejects_bad_limit(limit) -> None:
    with patch.dict(os.environ, {"HISTORY_LIMIT": limit}):
        assert StreakConfig.from_env().history_limit == 30


def test_get_config_singleton() -> None:
    reset_config()
    assert get_config() is get_config()


def test_set_config_replaces_singleton() -> None:
    custom = StreakConfig(required_members=("solo",))
    set_config(custom)
    assert get_config().required_members == ("solo",)


# --- PoolAwareCog Tests ---


class DemoCog(PoolAwareCog):
    @log_errors("Demo operation failed")
    async def method_with_error(self) -> None:
        raise ValueError("test error")

    @log_errors("Recoverable error", return_value="fallback")
    async def method_with_fallback(self) -> str:
        raise ValueError("recoverable")

    @log_errors("Fatal error", reraise=True)
    async def method_reraising(self) -> None:
        raise KeyError("fatal")


@pytest.fixture
def mock_bot() -> MagicMock:
    return MagicMock()


def test_pool_aware_cog_init(mock_bot: MagicMock) -> None:
    cog = DemoCog(mock_bot)
    assert cog.bot is mock_bot
    assert cog.pool is None
    assert cog.has_pool is False


def test_pool_aware_cog_load_success(mock_bot: MagicMock) -> None:
    cog = DemoCog(mock_bot)
    mock_pool = AsyncMock()

    with patch("streakbot.infra.cog_base.get_pool", AsyncMock(return_value=mock_pool)):
        asyncio.run(cog.cog_load())

    assert cog.pool is mock_pool
    assert cog.has_pool is True


def test_pool_aware_cog_load_failure(mock_bot: MagicMock, caplog: pytest.LogCaptureFixture) -> None:
    """cog_load handles a missing database gracefully."""
    cog = DemoCog(mock_bot)

    with patch(
        "streakbot.infra.cog_base.get_pool",
        AsyncMock(side_effect=RuntimeError("PG_DSN is missing")),
    ), caplog.at_level(logging.WARNING):
        asyncio.run(cog.cog_load())

    assert cog.pool is None
    assert "database pool unavailable" in caplog.text


def test_pool_aware_cog_unload(mock_bot: MagicMock) -> None:
    cog = DemoCog(mock_bot)
    cog.pool = AsyncMock()
    asyncio.run(cog.cog_unload())
    assert cog.pool is None


def test_log_errors_logs_exception(mock_bot: MagicMock, caplog: pytest.LogCaptureFixture) -> None:
    cog = DemoCog(mock_bot)
    with caplog.at_level(logging.ERROR):
        assert asyncio.run(cog.method_with_error()) is None
    assert "Demo operation failed in method_with_error" in caplog.text


def test_log_errors_returns_fallback(mock_bot: MagicMock) -> None:
    assert asyncio.run(DemoCog(mock_bot).method_with_fallback()) == "fallback"


def test_log_errors_reraises(mock_bot: MagicMock) -> None:
    with pytest.raises(KeyError):
        asyncio.run(DemoCog(mock_bot).method_reraising())


def test_streak_config_blank_roster_uses_default() -> None:
    with patch.dict(os.environ, {"REQUIRED_MEMBERS": ""}):
        assert StreakConfig.from_env().required_members == DEFAULT_REQUIRED_MEMBERS


def test_streak_config_bad_limit_logs(caplog: pytest.LogCaptureFixture) -> None:
    with patch.dict(os.environ, {"HISTORY_LIMIT": "lots"}), caplog.at_level(logging.WARNING):
        StreakConfig.from_env()
    assert "Invalid integer for HISTORY_LIMIT" in caplog.text

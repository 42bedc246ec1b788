from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("env", "TEST")
os.environ.setdefault("DISCORD_TOKEN", "dummy")

from streakbot.infra.config import StreakConfig, reset_config, set_config  # noqa: E402

REQUIRED = ("alice", "bob", "carol")


@pytest.fixture(autouse=True)
def streak_config():
    """Pin the reference timezone and roster for every test."""
    config = StreakConfig(
        timezone="Australia/Sydney", required_members=REQUIRED, history_limit=30
    )
    set_config(config)
    yield config
    reset_config()

"""Version string shown by ``--version`` and the startup log line."""
from __future__ import annotations

import os
import subprocess
from importlib import metadata
from pathlib import Path

DIST_NAME = "streakbot"


def _git_commit(repo_dir: Path) -> str | None:
    """Return the short commit hash of *repo_dir*, or None outside a checkout."""
    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=repo_dir,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return out.decode().strip() or None


def _dist_version() -> str:
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0"


def get_version() -> str:
    """Return STREAKBOT_VERSION, else ``<release>+<commit>``.

    The commit suffix is omitted when the code is not running from a git
    checkout (for example inside a container built from a wheel).
    """
    env_version = os.getenv("STREAKBOT_VERSION") or os.getenv("VERSION")
    if env_version:
        return env_version

    release = _dist_version()
    commit = _git_commit(Path(__file__).resolve().parent.parent)
    return f"{release}+{commit}" if commit else release

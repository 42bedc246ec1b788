"""
Source of truth for tokens & channel IDs
======================================================
Supports **multi‑env** (TEST vs PROD) so you can run the bot against a
sandbox guild first, then flip the env var when you deploy.

Usage
-----
$ export env=TEST  # or PROD (default PROD)
$ python -m streakbot

* .env (git‑ignored) keeps only TOKEN values*
DISCORD_TOKEN=xxx

Streak settings (timezone, required members, history size) live in
``streakbot.infra.config``.
"""
from __future__ import annotations
import os
import logging
from .util import int_env
from dotenv import load_dotenv
load_dotenv()

# ─── Select env ────────────────────────────────────────────────────────────
env = os.getenv("env", "prod").upper()

# ─── Tokens ───────────────────────────────────────────────────────────────
TOKEN = os.getenv("DISCORD_TOKEN")

# ─── Optional overrides via env‑vars ───────────────────────────────────────
# Evening reminder for members who have not completed today (0 = off)
REMINDER_CHANNEL_ID = int_env("REMINDER_CHANNEL_ID", 0)
# Local hour in the streak timezone at which the reminder is posted
REMINDER_HOUR = int_env("REMINDER_HOUR", 20)
# SQLite file used when no Postgres DSN is configured
STATE_DB_PATH = os.getenv("STATE_DB_PATH", "data/streaks.db")

# Helper: convenience log line
logging.getLogger(__name__).info("Loaded %s env", env)

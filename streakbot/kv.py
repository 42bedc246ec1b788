"""Key-value backends for streak data.

Two interchangeable stores share the :class:`KeyValueStore` interface:
``PostgresKV`` for production and ``SqliteKV`` as a file-backed fallback when
no Postgres DSN is configured. Values are opaque text; serialization lives in
:mod:`streakbot.store`.
"""
from __future__ import annotations

import abc
import asyncio
import logging
import sqlite3
from pathlib import Path

import asyncpg

log = logging.getLogger(f"streakbot.{__name__}")

DEFAULT_DB_PATH = Path("data/streaks.db")


class KeyValueStore(abc.ABC):
    """Minimal async get/put interface. A missing key reads as ``None``."""

    @abc.abstractmethod
    async def get(self, key: str) -> str | None:
        ...

    @abc.abstractmethod
    async def put(self, key: str, value: str) -> None:
        ...


class PostgresKV(KeyValueStore):
    """Key-value table on top of an asyncpg pool."""

    def __init__(self, pool: asyncpg.Pool, table: str = "kv_store") -> None:
        self.pool = pool
        self.table = table

    async def ensure_table(self) -> None:
        await self.pool.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """
        )

    async def get(self, key: str) -> str | None:
        return await self.pool.fetchval(
            f"SELECT value FROM {self.table} WHERE key = $1", key
        )

    async def put(self, key: str, value: str) -> None:
        await self.pool.execute(
            f"""
            INSERT INTO {self.table} (key, value, updated_at)
            VALUES ($1, $2, now())
            ON CONFLICT (key) DO UPDATE SET
                value = EXCLUDED.value,
                updated_at = now()
            """,
            key,
            value,
        )


class SqliteKV(KeyValueStore):
    """SQLite-backed store for single-host setups without Postgres.

    Example::

        kv = SqliteKV("data/streaks.db")
        await kv.put("USER_LIST", "[]")
        await kv.get("USER_LIST")  # -> "[]"
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Create the database and table if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
                )
                """
            )
            conn.commit()

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._get, key)

    async def put(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._put, key, value)

    def _get(self, key: str) -> str | None:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def _put(self, key: str, value: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, datetime('now'))
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value),
            )
            conn.commit()


async def open_store(pool: asyncpg.Pool | None, db_path: Path | str | None = None) -> KeyValueStore:
    """Return a Postgres store when a pool is available, else SQLite."""
    if pool is not None:
        kv = PostgresKV(pool)
        await kv.ensure_table()
        return kv
    log.warning("No Postgres pool; storing streaks in SQLite at %s", db_path or DEFAULT_DB_PATH)
    return SqliteKV(db_path)

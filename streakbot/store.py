"""Typed access to streak data kept in a key-value store.

Key layout:

* ``<user id>`` – one :class:`UserRecord` per Discord user
* ``USER_LIST`` – JSON list of every user id seen, in first-seen order
* ``GROUP_STREAK`` – the latest :class:`GroupSnapshot`
* ``GROUP_HISTORY`` – the :class:`GroupHistory` ledger

Reads never fail: a missing key, corrupt JSON or an unreachable store all
yield the empty default so commands keep answering. Only a failed user save
is reported to the caller.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable

from .kv import KeyValueStore
from .streaks import GroupHistory, GroupSnapshot, PersistenceUnavailable, UserRecord

log = logging.getLogger(f"streakbot.{__name__}")

USER_INDEX_KEY = "USER_LIST"
GROUP_STREAK_KEY = "GROUP_STREAK"
GROUP_HISTORY_KEY = "GROUP_HISTORY"


class StreakStore:
    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    async def _read_json(self, key: str) -> Any | None:
        try:
            raw = await self.kv.get(key)
        except Exception:
            log.exception("Failed to read %s; using default", key)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            log.warning("Corrupt JSON under %s; using default", key)
            return None

    async def _write_json(self, key: str, value: Any) -> None:
        await self.kv.put(key, json.dumps(value))

    # ── Users ──────────────────────────────────────────────────────────────

    async def load_user(self, user_id: str) -> UserRecord:
        data = await self._read_json(user_id)
        if not isinstance(data, dict):
            return UserRecord(user_id=user_id)
        try:
            return UserRecord.from_dict(data, user_id=user_id)
        except (TypeError, ValueError):
            log.warning("Malformed record for user %s; using default", user_id)
            return UserRecord(user_id=user_id)

    async def save_user(self, record: UserRecord) -> None:
        """Persist *record* and index its id.

        Raises :class:`PersistenceUnavailable` when the record itself could
        not be written.
        """
        try:
            await self._write_json(record.user_id, record.to_dict())
        except Exception as exc:
            log.exception("Failed to save user %s", record.user_id)
            raise PersistenceUnavailable(f"could not save user {record.user_id}") from exc
        await self.add_to_index(record.user_id)

    async def load_user_ids(self) -> list[str]:
        data = await self._read_json(USER_INDEX_KEY)
        if not isinstance(data, list):
            return []
        return [str(uid) for uid in data]

    async def add_to_index(self, user_id: str) -> None:
        """Append *user_id* to the index.

        The index is only rewritten after a clean read: an unreachable store
        or an unreadable value leaves it as it is.
        """
        try:
            raw = await self.kv.get(USER_INDEX_KEY)
        except Exception:
            log.exception("Failed to read the user index; not adding %s", user_id)
            return
        if raw is None:
            ids: list[str] = []
        else:
            try:
                data = json.loads(raw)
            except (TypeError, ValueError):
                data = None
            if not isinstance(data, list):
                log.warning("Corrupt user index; not adding %s", user_id)
                return
            ids = [str(uid) for uid in data]
        if user_id in ids:
            return
        ids.append(user_id)
        try:
            await self._write_json(USER_INDEX_KEY, ids)
        except Exception:
            log.exception("Failed to add %s to the user index", user_id)

    async def load_users(self, user_ids: Iterable[str]) -> list[UserRecord]:
        """Fetch several records concurrently; failed reads come back empty."""
        ids = list(user_ids)
        results = await asyncio.gather(
            *(self.load_user(uid) for uid in ids), return_exceptions=True
        )
        records: list[UserRecord] = []
        for uid, result in zip(ids, results):
            if isinstance(result, BaseException):
                log.warning("Reading user %s failed: %s", uid, result)
                result = UserRecord(user_id=uid)
            records.append(result)
        return records

    async def load_all_users(self) -> list[UserRecord]:
        """Every indexed user that has a username."""
        records = await self.load_users(await self.load_user_ids())
        return [rec for rec in records if rec.username]

    async def load_members(self, usernames: Iterable[str]) -> dict[str, UserRecord]:
        """Map each requested username to its record, skipping unknown ones.

        Records are keyed by user id, so the whole index is scanned.
        """
        wanted = set(usernames)
        found: dict[str, UserRecord] = {}
        for rec in await self.load_all_users():
            if rec.username in wanted:
                found[rec.username] = rec
        return found

    # ── Group ──────────────────────────────────────────────────────────────

    async def load_group_snapshot(self) -> GroupSnapshot:
        data = await self._read_json(GROUP_STREAK_KEY)
        try:
            return GroupSnapshot.from_dict(data if isinstance(data, dict) else None)
        except (TypeError, ValueError):
            log.warning("Malformed group snapshot; using default")
            return GroupSnapshot()

    async def save_group_snapshot(self, snapshot: GroupSnapshot) -> bool:
        try:
            await self._write_json(GROUP_STREAK_KEY, snapshot.to_dict())
        except Exception:
            log.exception("Failed to save group snapshot")
            return False
        return True

    async def load_history(self) -> GroupHistory:
        data = await self._read_json(GROUP_HISTORY_KEY)
        try:
            return GroupHistory.from_dict(data if isinstance(data, dict) else None)
        except (TypeError, ValueError):
            log.warning("Malformed group history; using default")
            return GroupHistory()

    async def save_history(self, history: GroupHistory) -> bool:
        try:
            await self._write_json(GROUP_HISTORY_KEY, history.to_dict())
        except Exception:
            log.exception("Failed to save group history")
            return False
        return True

"""
Async SQLite key-value store.

Durable storage for the three application records (conversations, profiles,
settings). Each record is a JSON document kept under a string key in a single
table:

    kv(key TEXT PRIMARY KEY, value TEXT NOT NULL)

Usage:
    store = KeyValueStore("data/vivica.db")
    await store.connect()
    await store.set("vivica_settings_v2", {"activeProfileId": "default-assistant"})
    settings = await store.get("vivica_settings_v2")
"""

import json
import logging
import aiosqlite
from pathlib import Path
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


class KeyValueStore:
    """String-keyed store with JSON-serialized values backed by SQLite."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        """Open the SQLite connection and create the table."""
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self._db_path, timeout=30.0)
        # WAL keeps reads cheap while every mutation writes
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA busy_timeout=5000")
        await self._conn.execute(
            "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        await self._conn.commit()
        logger.info(f"Key-value store connected: {self._db_path}")

    async def close(self) -> None:
        """Close the SQLite connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("Key-value store closed")

    def _get_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Store not connected. Call connect() first.")
        return self._conn

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value for ``key``, or None if it is missing.

        A value that is not valid JSON is treated as missing so that a
        corrupted record falls back to defaults instead of crashing startup.
        """
        conn = self._get_conn()
        async with conn.execute("SELECT value FROM kv WHERE key = ?", (key,)) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding unreadable value for key {key}: {e}")
            return None

    async def set(self, key: str, value: Any) -> None:
        """Serialize ``value`` as JSON and store it under ``key``."""
        conn = self._get_conn()
        await conn.execute(
            "INSERT INTO kv (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, json.dumps(value, default=str)),
        )
        await conn.commit()

    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if a row was deleted."""
        conn = self._get_conn()
        cursor = await conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        await conn.commit()
        return cursor.rowcount > 0

    async def keys(self) -> List[str]:
        conn = self._get_conn()
        async with conn.execute("SELECT key FROM kv ORDER BY key") as cursor:
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

"""SQLite key/value store via aiosqlite."""

from __future__ import annotations

import json
from typing import Any

import aiosqlite

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class Database:
    """Async SQLite store holding JSON values under string keys."""

    def __init__(self, path: str = "notework.db") -> None:
        self.path = path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        self._db = await aiosqlite.connect(self.path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Database not connected — call connect() first")
        return self._db

    async def persist(self, key: str, value: Any) -> None:
        await self.db.execute(
            "INSERT INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP",
            (key, json.dumps(value, ensure_ascii=False)),
        )
        await self.db.commit()

    async def load(self, key: str) -> Any | None:
        cursor = await self.db.execute("SELECT value FROM kv WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return json.loads(row["value"]) if row else None

    async def delete(self, key: str) -> None:
        await self.db.execute("DELETE FROM kv WHERE key = ?", (key,))
        await self.db.commit()

    async def keys(self) -> list[str]:
        cursor = await self.db.execute("SELECT key FROM kv ORDER BY key")
        rows = await cursor.fetchall()
        return [r["key"] for r in rows]

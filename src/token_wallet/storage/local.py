"""Async key-value storage backed by SQLite.

The wallet keeps its small bits of state (the tracked token list, wizard
progress) as plain strings under string keys, the way a browser keeps them in
``localStorage``. Uses ``aiosqlite`` for non-blocking access.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import aiosqlite


class LocalStorage:
    """String-to-string store persisted in a single SQLite table.

    Parameters
    ----------
    db_path:
        Filesystem path to the SQLite database file.  The file (and any
        intermediate directories) will be created automatically on
        :meth:`connect` if they do not already exist.  ``":memory:"`` keeps
        everything in process.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the database connection and create the table."""
        if str(self.db_path) != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self.db_path))
        await self._conn.execute("PRAGMA journal_mode=WAL;")
        await self._conn.execute(
            "CREATE TABLE IF NOT EXISTS local_storage ("
            "key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        await self._conn.commit()

    async def close(self) -> None:
        """Close the database connection gracefully."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> LocalStorage:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Key-value API
    # ------------------------------------------------------------------

    async def get_item(self, key: str) -> Optional[str]:
        """Return the value stored under *key*, or ``None``."""
        assert self._conn is not None, "Storage not connected. Call connect() first."
        cursor = await self._conn.execute(
            "SELECT value FROM local_storage WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        return None if row is None else row[0]

    async def set_item(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        assert self._conn is not None, "Storage not connected. Call connect() first."
        await self._conn.execute(
            "INSERT INTO local_storage (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )
        await self._conn.commit()

    async def remove_item(self, key: str) -> None:
        assert self._conn is not None, "Storage not connected. Call connect() first."
        await self._conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
        await self._conn.commit()

    async def clear(self) -> None:
        assert self._conn is not None, "Storage not connected. Call connect() first."
        await self._conn.execute("DELETE FROM local_storage")
        await self._conn.commit()

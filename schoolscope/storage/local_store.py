# schoolscope/storage/local_store.py

"""Durable key/value text stores backing the cache, limiter and session state."""

import logging
import sqlite3
from pathlib import Path

from schoolscope.config.settings import Settings
from schoolscope.errors import StorageError

logger = logging.getLogger("schoolscope.storage")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS kv (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class SQLiteStore:
    """SQLite-backed key/value store that survives restarts.

    Every ``sqlite3`` failure (locked database, disk full, corrupt
    file) surfaces as :class:`StorageError` so callers can degrade.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.STORE_PATH
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(path), check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(
                f"Cannot open local store at {path}: {exc}"
            ) from exc
        self.path = path
        logger.debug("SQLiteStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def get(self, key: str) -> str | None:
        """Return the stored text for *key*, or ``None``."""
        try:
            row = self._conn.execute(
                "SELECT value FROM kv WHERE key = ?", (key,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Read failed for {key}: {exc}") from exc
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        """Insert or overwrite *key*."""
        try:
            self._conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, value),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise StorageError(f"Write failed for {key}: {exc}") from exc

    def remove(self, key: str) -> None:
        """Delete *key* if present."""
        try:
            self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Delete failed for {key}: {exc}") from exc

    def keys(self) -> list[str]:
        """Return every stored key."""
        try:
            rows = self._conn.execute("SELECT key FROM kv").fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Key scan failed: {exc}") from exc
        return [r[0] for r in rows]


class MemoryStore:
    """In-process store with an optional size quota.

    The quota counts characters of keys plus values, mimicking a
    browser storage area that rejects writes once full.
    """

    def __init__(self, quota: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self._quota = quota

    def _usage_without(self, key: str) -> int:
        return sum(
            len(k) + len(v)
            for k, v in self._data.items()
            if k != key
        )

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self._quota is not None:
            needed = self._usage_without(key) + len(key) + len(value)
            if needed > self._quota:
                raise StorageError(
                    f"Quota exceeded writing {key} "
                    f"({needed} > {self._quota})"
                )
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

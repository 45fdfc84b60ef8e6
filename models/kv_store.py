"""Durable key-value substrate for workspace persistence."""

import logging
import shutil
import sqlite3
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from config.exceptions import StorageError

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


@runtime_checkable
class KeyValueStore(Protocol):
    """Synchronous string key-value storage."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store, for tests and throwaway workspaces."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return sorted(self._data)


class SqliteKeyValueStore:
    """SQLite-backed key-value store."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def _init_db(self):
        try:
            with self._get_conn() as conn:
                conn.executescript(_CREATE_TABLES_SQL)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open key-value store: {e}", {"path": str(self.db_path)}) from e

    def get(self, key: str) -> Optional[str]:
        try:
            with self._get_conn() as conn:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Read failed for key '{key}': {e}") from e
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            with self._get_conn() as conn:
                conn.execute(
                    "INSERT INTO kv (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value, "
                    "updated_at=CURRENT_TIMESTAMP",
                    (key, value),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Write failed for key '{key}': {e}") from e
        logger.debug("kv set %s (%d chars)", key, len(value))

    def keys(self) -> list[str]:
        with self._get_conn() as conn:
            rows = conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
        return [r["key"] for r in rows]

    def backup(self, target_path: str | Path) -> Path:
        """Create a backup copy of the store file."""
        target = Path(target_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(str(self.db_path), str(target))
        logger.info("Key-value store backed up to %s", target)
        return target

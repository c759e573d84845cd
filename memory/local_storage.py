"""Local key-value storage backed by SQLite.

Holds the small amount of state the client keeps between runs: the
serialized ``user`` record and the raw ``backendToken`` bearer string.
"""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from readgye.error_handling import StorageError, handle_errors


USER_KEY = "user"
TOKEN_KEY = "backendToken"


class LocalStorage:
    """Persistent string key-value store.

    Every call opens its own short-lived connection, so one instance can be
    shared by every component of the client without extra locking.
    """

    def __init__(self, db_path: str = "readgye_client.db"):
        """Initialize the storage.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._ensure_database_exists()
        logger.debug(f"LocalStorage initialized with db_path={db_path}")

    @handle_errors(StorageError)
    def _ensure_database_exists(self) -> None:
        """Create database and table if they don't exist."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    @handle_errors(StorageError)
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value for ``key`` or None."""
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM storage WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    @handle_errors(StorageError)
    def set_item(self, key: str, value: str) -> None:
        """Insert or replace ``key``."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT OR REPLACE INTO storage (key, value, updated_at)
                VALUES (?, ?, ?)
            """, (key, value, datetime.now(timezone.utc).isoformat()))
            conn.commit()
        logger.debug(f"Storage key set: {key}")

    @handle_errors(StorageError)
    def remove_item(self, key: str) -> bool:
        """Delete ``key``. Returns True if something was removed."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM storage WHERE key = ?", (key,))
            conn.commit()
            removed = cursor.rowcount > 0
        if removed:
            logger.debug(f"Storage key removed: {key}")
        return removed

    @handle_errors(StorageError)
    def clear(self) -> int:
        """Remove every entry. Returns the number of removed keys."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM storage")
            conn.commit()
            count = cursor.rowcount
        logger.info(f"Local storage cleared: {count} keys removed")
        return count

"""
SQLite3 key-value store.

Keeps every key in a single `kv_store` table. The quota is enforced over
the total UTF-8 size of all stored keys and values, checked inside the same
transaction as the write.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from ..exceptions import QuotaExceededError, StorageError
from ..interfaces.storage import KeyValueStore

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class SQLiteKeyValueStore(KeyValueStore):
    """
    SQLite3-backed durable store for the cache blob.

    Opens a connection per operation. An in-memory database keeps one
    shared connection instead, since each new connection would see an
    empty database.
    """

    def __init__(self, db_path: str = "./data/consult_cache.db", quota_bytes: Optional[int] = None):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite database file, or ":memory:"
            quota_bytes: Maximum total size of stored data (None = unbounded)
        """
        self.db_path = db_path
        self.quota_bytes = quota_bytes
        self._shared_conn: Optional[sqlite3.Connection] = None

        if db_path == MEMORY_PATH:
            self._shared_conn = sqlite3.connect(MEMORY_PATH)
        else:
            self._ensure_db_directory()
        self._init_schema()

    def _ensure_db_directory(self) -> None:
        """Ensure database directory exists."""
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections.

        Yields:
            sqlite3.Connection: Database connection
        """
        conn = self._shared_conn or sqlite3.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            if conn is not self._shared_conn:
                conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema if not exists."""
        try:
            with self.get_connection() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to initialize kv_store at {self.db_path}: {e}") from e

    def read(self, key: str) -> Optional[str]:
        try:
            with self.get_connection() as conn:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read '{key}': {e}") from e
        return row[0] if row else None

    def write(self, key: str, value: str) -> None:
        try:
            with self.get_connection() as conn:
                if self.quota_bytes is not None:
                    (others,) = conn.execute(
                        """
                        SELECT COALESCE(SUM(LENGTH(CAST(key AS BLOB)) + LENGTH(CAST(value AS BLOB))), 0)
                        FROM kv_store WHERE key != ?
                        """,
                        (key,),
                    ).fetchone()
                    required = others + len(key.encode("utf-8")) + len(value.encode("utf-8"))
                    if required > self.quota_bytes:
                        raise QuotaExceededError(
                            f"Writing '{key}' needs {required} bytes, quota is {self.quota_bytes}",
                            required_bytes=required,
                            quota_bytes=self.quota_bytes,
                        )

                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, value),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write '{key}': {e}") from e

    def remove(self, key: str) -> None:
        try:
            with self.get_connection() as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StorageError(f"Failed to remove '{key}': {e}") from e

    def close(self) -> None:
        """Close the shared in-memory connection, if any."""
        if self._shared_conn is not None:
            self._shared_conn.close()
            self._shared_conn = None
            logger.debug("Closed in-memory kv_store connection")

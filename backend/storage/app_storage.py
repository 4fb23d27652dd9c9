"""
Key-value app storage.

A tiny SQLite-backed string store for lightweight settings-style values
(the equivalent of a preferences slot). Values are opaque strings; callers
own their encoding.
"""
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional

from settings import settings

logger = logging.getLogger(__name__)


class AppStorage:
    """SQLite key-value store keyed by a string slot name.

    Defaults to `settings.APP_STORAGE_PATH` (under `backend/data/`), so
    processes started from different working directories share one file.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = Path(db_path or settings.APP_STORAGE_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_schema()

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _init_schema(self) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS app_storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT value FROM app_storage WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return row[0] if row else default

    def set(self, key: str, value: str) -> None:
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO app_storage (key, value) VALUES (?, ?)",
                    (key, value),
                )
                conn.commit()
            finally:
                conn.close()
        logger.debug("app storage: wrote %s (%d chars)", key, len(value))

    def delete(self, key: str) -> bool:
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute("DELETE FROM app_storage WHERE key = ?", (key,))
                conn.commit()
                return cursor.rowcount > 0
            finally:
                conn.close()

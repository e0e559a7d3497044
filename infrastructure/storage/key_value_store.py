"""
Key/value persistence for the chat client.
String keys, string values; callers own serialization.
"""

import os
import sqlite3
from datetime import datetime
from typing import Dict, Optional

from utils.logging_config import get_logger


class KeyValueStore:
    """Interface of the persistent key/value store"""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store, used for tests and throwaway sessions"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> Dict[str, str]:
        """Copy of the raw stored values"""
        return dict(self._data)


class SQLiteKeyValueStore(KeyValueStore):
    """
    Key/value store kept in a single SQLite table.
    Every write is committed immediately so a reload never loses a completed step.
    """

    def __init__(self, db_path: str = "data/friday_chat.db"):
        """
        Initialize the SQLite store

        Args:
            db_path: Path to SQLite database file
        """
        self.logger = get_logger(__name__)
        self.db_path = db_path
        self._init_database()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_database(self):
        """Create the key/value table if needed"""
        os.makedirs(os.path.dirname(self.db_path) if os.path.dirname(self.db_path) else ".", exist_ok=True)

        conn = self._connect()
        try:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            ''')
            conn.commit()
        finally:
            conn.close()

        self.logger.info(f"Key/value store initialized at {self.db_path}")

    def get(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute('''
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            ''', (key, value, datetime.now().isoformat()))
            conn.commit()
        finally:
            conn.close()
        self.logger.debug(f"Stored key '{key}' ({len(value)} chars)")

    def delete(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()
        self.logger.debug(f"Deleted key '{key}'")

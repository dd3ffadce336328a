"""
Key-value persistence for learner state.

Backends hold raw string values under string keys:
- MemoryBackend: dict-backed, with optional quota and disabled mode
- SQLiteBackend: single kv_store table in ~/.llmedu/storage.db

PersistenceAdapter wraps a backend and never raises: reads fall back to
None, writes and removes report False. Callers treat a False write as
"not persisted, continue in memory".
"""

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from llmedu.config import DEFAULT_STORAGE_DIR, DEFAULT_STORAGE_DB_NAME


logger = logging.getLogger(__name__)

DEFAULT_STORAGE_DB = DEFAULT_STORAGE_DIR / DEFAULT_STORAGE_DB_NAME

# Written then removed by PersistenceAdapter.is_available()
AVAILABILITY_TEST_KEY = "__storage_test__"


class StorageError(Exception):
    """Base class for backend failures."""


class StorageQuotaExceeded(StorageError):
    """Backend is full."""


class StorageDisabled(StorageError):
    """Backend refuses all access (e.g. private browsing)."""


# -----------------------------------------------------------------------------
# Backends
# -----------------------------------------------------------------------------


class KeyValueBackend:
    """Interface for raw key-value storage. Implementations may raise."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str):
        raise NotImplementedError

    def remove_item(self, key: str):
        raise NotImplementedError


class MemoryBackend(KeyValueBackend):
    """
    In-process backend.

    Args:
        quota_bytes: Maximum UTF-8 size of all keys + values (None = unlimited)
        disabled: Raise StorageDisabled on every access
    """

    def __init__(self, quota_bytes: Optional[int] = None, disabled: bool = False):
        self.items: dict[str, str] = {}
        self.quota_bytes = quota_bytes
        self.disabled = disabled

    def _check_enabled(self):
        if self.disabled:
            raise StorageDisabled("storage access denied")

    @staticmethod
    def _entry_size(key: str, value: str) -> int:
        return len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def _size_with(self, key: str, value: str) -> int:
        size = sum(self._entry_size(k, v) for k, v in self.items.items() if k != key)
        return size + self._entry_size(key, value)

    def get_item(self, key: str) -> Optional[str]:
        self._check_enabled()
        return self.items.get(key)

    def set_item(self, key: str, value: str):
        self._check_enabled()
        if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
            raise StorageQuotaExceeded(f"quota of {self.quota_bytes} bytes exceeded")
        self.items[key] = value

    def remove_item(self, key: str):
        self._check_enabled()
        self.items.pop(key, None)


class SQLiteBackend(KeyValueBackend):
    """
    Key-value storage in a SQLite database.

    Each call opens its own connection, so the backend can be shared
    across Streamlit reruns.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize SQLite backend.

        Args:
            db_path: Path to storage.db (default: ~/.llmedu/storage.db)
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_STORAGE_DB
        self._initialized = False

    def _ensure_database(self):
        """Create database and table if they don't exist."""
        if self._initialized:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()
        finally:
            conn.close()
        self._initialized = True

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection."""
        self._ensure_database()
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def get_item(self, key: str) -> Optional[str]:
        conn = self._get_connection()
        try:
            cursor = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row["value"] if row else None
        finally:
            conn.close()

    def set_item(self, key: str, value: str):
        conn = self._get_connection()
        try:
            conn.execute(
                """INSERT INTO kv_store (key, value) VALUES (?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value""",
                (key, value)
            )
            conn.commit()
        finally:
            conn.close()

    def remove_item(self, key: str):
        conn = self._get_connection()
        try:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()


# -----------------------------------------------------------------------------
# Adapter
# -----------------------------------------------------------------------------

# Failures a backend may raise; anything else is a programming error.
BACKEND_ERRORS = (StorageError, sqlite3.Error, OSError)


class PersistenceAdapter:
    """Failure-tolerant access to a KeyValueBackend."""

    def __init__(self, backend: Optional[KeyValueBackend] = None):
        self.backend = backend if backend is not None else MemoryBackend()

    def read(self, key: str) -> Optional[str]:
        """Read a value. Returns None if absent or on any storage failure."""
        try:
            return self.backend.get_item(key)
        except BACKEND_ERRORS as e:
            logger.warning(f"Storage read failed for '{key}': {e}")
            return None

    def write(self, key: str, value: str) -> bool:
        """Write a value. Returns False if the value was not persisted."""
        try:
            self.backend.set_item(key, value)
            return True
        except StorageQuotaExceeded as e:
            logger.warning(f"Storage quota exceeded, '{key}' not persisted: {e}")
        except StorageDisabled as e:
            logger.warning(f"Storage disabled, '{key}' not persisted: {e}")
        except BACKEND_ERRORS as e:
            logger.warning(f"Storage write failed for '{key}': {e}")
        return False

    def remove(self, key: str) -> bool:
        """Remove a key. Removing an absent key succeeds."""
        try:
            self.backend.remove_item(key)
            return True
        except BACKEND_ERRORS as e:
            logger.warning(f"Storage remove failed for '{key}': {e}")
            return False

    def is_available(self) -> bool:
        """Check the backend with a real write and remove."""
        try:
            self.backend.set_item(AVAILABILITY_TEST_KEY, "test")
            self.backend.remove_item(AVAILABILITY_TEST_KEY)
            return True
        except BACKEND_ERRORS as e:
            logger.warning(f"Storage is not available: {e}")
            return False

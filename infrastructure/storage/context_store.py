"""
Conversation context stores.

Every store keeps one JSON record per key. Callers go through the try_*
methods, which never raise: a failed read looks like "nothing saved" and a
failed write is logged and reported as False.
"""

import json
import os
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import closing
from datetime import datetime
from typing import Any, Dict, Optional

import streamlit as st
from streamlit import runtime

from config.app_config import ConversationConfig
from utils.exceptions import StorageFailure
from utils.logging_config import get_logger, get_error_tracker


class ContextStore(ABC):
    """Base class for conversation context stores"""

    name = "base"

    def __init__(self):
        self.logger = get_logger(__name__)

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the backing medium can be used right now"""

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def _write(self, key: str, payload: str) -> None:
        ...

    @abstractmethod
    def _delete(self, key: str) -> None:
        ...

    def try_load(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Load the record stored under key

        Returns:
            The decoded record, or None when nothing usable is stored
        """
        if not self.is_available():
            return None

        try:
            payload = self._read(key)
            if payload is None:
                return None
            record = json.loads(payload)
        except Exception as e:
            get_error_tracker().track_error(e, context=f"{self.name}_store.load", key=key)
            return None

        if not isinstance(record, dict):
            self.logger.warning(f"Ignoring non-object record stored under '{key}'")
            return None
        return record

    def try_save(self, key: str, record: Dict[str, Any]) -> bool:
        """Persist record under key, returning whether the write succeeded"""
        if not self.is_available():
            return False

        try:
            self._write(key, json.dumps(record, ensure_ascii=False))
            return True
        except Exception as e:
            get_error_tracker().track_error(e, context=f"{self.name}_store.save", key=key)
            return False

    def try_clear(self, key: str) -> bool:
        """Remove the record under key, returning whether the delete succeeded"""
        if not self.is_available():
            return False

        try:
            self._delete(key)
            return True
        except Exception as e:
            get_error_tracker().track_error(e, context=f"{self.name}_store.clear", key=key)
            return False


class InMemoryContextStore(ContextStore):
    """Process-local store, records kept as serialized JSON"""

    name = "memory"

    def __init__(self):
        super().__init__()
        self._records: Dict[str, str] = {}
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        return True

    def _read(self, key: str) -> Optional[str]:
        with self._lock:
            return self._records.get(key)

    def _write(self, key: str, payload: str) -> None:
        with self._lock:
            self._records[key] = payload

    def _delete(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)


class SQLiteContextStore(ContextStore):
    """SQLite-backed store with one row per conversation key"""

    name = "sqlite"

    def __init__(self, db_path: str = "data/conversations.db"):
        super().__init__()
        self.db_path = db_path
        self._available = self._init_database()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=5.0)

    def _init_database(self) -> bool:
        """Create the table, returning False when the database cannot be opened"""
        try:
            directory = os.path.dirname(self.db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            with closing(self._connect()) as conn:
                conn.execute('''
                    CREATE TABLE IF NOT EXISTS conversation_context (
                        key TEXT PRIMARY KEY,
                        payload TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                ''')
                conn.commit()

            self.logger.info(f"Conversation database initialized at {self.db_path}")
            return True

        except (OSError, sqlite3.Error) as e:
            self.logger.error(f"Error initializing conversation database: {e}")
            return False

    def is_available(self) -> bool:
        return self._available

    def _read(self, key: str) -> Optional[str]:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT payload FROM conversation_context WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def _write(self, key: str, payload: str) -> None:
        with closing(self._connect()) as conn:
            conn.execute(
                '''
                INSERT INTO conversation_context (key, payload, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET payload = excluded.payload, updated_at = excluded.updated_at
                ''',
                (key, payload, datetime.now().isoformat())
            )
            conn.commit()

    def _delete(self, key: str) -> None:
        with closing(self._connect()) as conn:
            conn.execute("DELETE FROM conversation_context WHERE key = ?", (key,))
            conn.commit()


class StreamlitSessionStore(ContextStore):
    """Keeps the record in the visitor's Streamlit session state"""

    name = "streamlit"

    def is_available(self) -> bool:
        return runtime.exists()

    def _read(self, key: str) -> Optional[str]:
        return st.session_state.get(key)

    def _write(self, key: str, payload: str) -> None:
        st.session_state[key] = payload

    def _delete(self, key: str) -> None:
        if key in st.session_state:
            del st.session_state[key]


class NullContextStore(ContextStore):
    """Store used when persistence is disabled"""

    name = "none"

    def is_available(self) -> bool:
        return False

    def _read(self, key: str) -> Optional[str]:
        raise StorageFailure("Persistence is disabled")

    def _write(self, key: str, payload: str) -> None:
        raise StorageFailure("Persistence is disabled")

    def _delete(self, key: str) -> None:
        raise StorageFailure("Persistence is disabled")


def create_context_store(config: ConversationConfig) -> ContextStore:
    """
    Build the store selected by conversation.storage_backend

    Args:
        config: Conversation configuration

    Returns:
        ContextStore: The configured store (NullContextStore when persistence is off)
    """
    if not config.enable_persistence:
        return NullContextStore()

    backend = config.storage_backend
    if backend == "memory":
        return InMemoryContextStore()
    if backend == "sqlite":
        return SQLiteContextStore(config.storage_path)
    if backend == "streamlit":
        return StreamlitSessionStore()
    if backend == "none":
        return NullContextStore()

    get_logger(__name__).warning(f"Unknown storage backend '{backend}', persistence disabled")
    return NullContextStore()

"""
Key-value store backed by SQLite.

Simple byte-key persistence used to archive remediation events. No
transactions are exposed and nothing in the decision logic reads it back.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from netmeta.errors import KeyNotFound

EVENT_KEY_PREFIX = b"event:"


class KVStore:
    """SQLite key-value store."""

    def __init__(self, db_path: str = "netmeta.db"):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    @contextmanager
    def _get_conn(self) -> Generator[sqlite3.Connection, None, None]:
        """Get the shared connection, serialized across threads."""
        with self._lock:
            if self._conn is None:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
                self._conn.execute(
                    "CREATE TABLE IF NOT EXISTS kv (key BLOB PRIMARY KEY, value BLOB NOT NULL)"
                )
            yield self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def set(self, key: bytes, value: bytes) -> None:
        with self._get_conn() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                (key, value),
            )
            conn.commit()

    def get(self, key: bytes) -> bytes:
        with self._get_conn() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise KeyNotFound(key)
        return bytes(row[0])

    def delete(self, key: bytes) -> None:
        with self._get_conn() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()

    def keys(self, prefix: bytes = b"") -> list[bytes]:
        with self._get_conn() as conn:
            rows = conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
        return [bytes(row[0]) for row in rows if bytes(row[0]).startswith(prefix)]


class EventArchive:
    """Writes each remediation event into the store under a sortable key."""

    def __init__(self, store: KVStore):
        self.store = store
        self._seq = 0
        self._lock = threading.Lock()

    def __call__(self, event) -> None:
        with self._lock:
            self._seq += 1
            seq = self._seq
        key = EVENT_KEY_PREFIX + f"{event.timestamp.isoformat()}:{seq:08d}".encode()
        self.store.set(key, json.dumps(event.to_dict()).encode())

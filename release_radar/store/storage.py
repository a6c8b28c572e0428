"""SQLite connections for the repository document table."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock
from typing import Dict

SCHEMA_VERSION = 1

_SCHEMA = """
CREATE TABLE IF NOT EXISTS repos (
    owner TEXT NOT NULL,
    name TEXT NOT NULL,
    document TEXT NOT NULL,
    PRIMARY KEY (owner, name)
)
"""


class SQLiteManager:
    """Share one connection per database file across store instances."""

    def __init__(self) -> None:
        self._connections: Dict[Path, sqlite3.Connection] = {}
        self._lock = Lock()

    def connect(self, path: Path) -> sqlite3.Connection:
        key = path.resolve()
        with self._lock:
            conn = self._connections.get(key)
            if conn is None:
                key.parent.mkdir(parents=True, exist_ok=True)
                # Writes are serialised by the store, so one connection serves every thread.
                conn = sqlite3.connect(key, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self._migrate(conn)
                self._connections[key] = conn
            return conn

    @staticmethod
    def _migrate(conn: sqlite3.Connection) -> None:
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        if version > SCHEMA_VERSION:
            conn.close()
            raise sqlite3.DatabaseError(
                f"Database schema v{version} is newer than supported v{SCHEMA_VERSION}"
            )
        if version < SCHEMA_VERSION:
            conn.execute(_SCHEMA)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            conn.commit()

    def close(self, path: Path) -> None:
        with self._lock:
            conn = self._connections.pop(path.resolve(), None)
        if conn is not None:
            conn.close()

    def close_all(self) -> None:
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for conn in connections:
            conn.close()


__all__ = ["SCHEMA_VERSION", "SQLiteManager"]

"""SQLite database connection and schema management."""

import os
import sqlite3
from pathlib import Path

import structlog

logger = structlog.get_logger()

IN_MEMORY_PATH = ":memory:"

_DB_FILE_PERMISSIONS = 0o600

# users, game_data and chat_log hold JSON documents; only the room number is
# queried directly.
_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS rooms (
    id TEXT PRIMARY KEY,
    room_number TEXT NOT NULL,
    game_kind TEXT NOT NULL DEFAULT '',
    player_count TEXT NOT NULL DEFAULT '',
    users TEXT NOT NULL DEFAULT '[]',
    game_data TEXT NOT NULL DEFAULT '{}',
    chat_log TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_rooms_room_number
    ON rooms (room_number);
"""


class Database:
    """SQLite database wrapper that owns the connection and the room schema."""

    def __init__(self, path: str | Path, *, busy_timeout_seconds: float = 5.0) -> None:
        self._path = str(path)
        self._busy_timeout_ms = int(busy_timeout_seconds * 1000)
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_in_memory(self) -> bool:
        return self._path == IN_MEMORY_PATH

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the active connection or raise if disconnected."""
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    def connect(self) -> None:
        """Open the database, apply pragmas, create the schema, and restrict file access."""
        if not self.is_in_memory:
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        if not self.is_in_memory:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(f"PRAGMA busy_timeout={self._busy_timeout_ms}")
        self._conn.executescript(_SCHEMA_SQL)

        if not self.is_in_memory:
            self._harden_permissions()
        logger.info("database connected", path=self._path)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _harden_permissions(self) -> None:
        """Make the database and its WAL/SHM siblings owner-only on POSIX systems (best effort)."""
        if os.name != "posix":  # pragma: no cover
            return
        for suffix in ("", "-wal", "-shm"):
            p = Path(self._path + suffix)
            if not p.exists():
                continue
            try:
                p.chmod(_DB_FILE_PERMISSIONS)
            except OSError:
                logger.warning("could not restrict database file", path=str(p), permissions=oct(_DB_FILE_PERMISSIONS))

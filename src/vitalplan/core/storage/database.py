"""SQLite backing store for health records and the suggestion cache.

Schema changes are an ordered list of migrations; each one is applied at
most once and recorded in ``schema_version``.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

# (version, DDL). Append only; never edit an applied migration.
_MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        -- One row per logged reading; rows are never updated
        CREATE TABLE IF NOT EXISTS health_records (
            id           TEXT PRIMARY KEY,
            user_id      TEXT NOT NULL,
            created_at   TEXT NOT NULL,
            metrics_enc  TEXT NOT NULL,   -- Fernet token of the raw readings
            bmi          REAL,            -- derived, kept in clear for trend queries
            blood_points REAL
        );
        CREATE INDEX IF NOT EXISTS idx_records_user_created
            ON health_records(user_id, created_at);
        """,
    ),
    (
        2,
        """
        -- Generated suggestions keyed by "{user}_{record}_{kind}"
        CREATE TABLE IF NOT EXISTS generated_suggestions (
            cache_key       TEXT PRIMARY KEY,
            user_id         TEXT NOT NULL,
            health_data_id  TEXT NOT NULL,
            type            TEXT NOT NULL,
            suggestion_enc  TEXT NOT NULL,
            created_at      TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_suggestions_user
            ON generated_suggestions(user_id);
        """,
    ),
]

SCHEMA_VERSION = _MIGRATIONS[-1][0]


class DatabaseError(Exception):
    """Raised when the store cannot be opened or migrated."""


class HealthDatabase:
    """Owns the SQLite connection and the schema.

    Usage::

        with HealthDatabase("~/.vitalplan/health.db") as db:
            with db.transaction() as conn:
                conn.execute(...)

    ``":memory:"`` gives a private throwaway database (used by tests and
    when no encryption key is configured).
    """

    def __init__(self, db_path: str = MEMORY) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def _connect(self) -> sqlite3.Connection:
        target = self._db_path
        if target != MEMORY:
            db_file = Path(target).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_file)
        # Shared with tool handlers, which may run off the creating thread.
        conn = sqlite3.connect(target, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def initialize(self) -> None:
        """Open the connection and bring the schema up to date. Idempotent."""
        if self._conn is not None:
            return
        try:
            self._conn = self._connect()
            self._migrate()
        except sqlite3.Error as exc:
            self.close()
            raise DatabaseError(f"Cannot open health store at {self._db_path}: {exc}") from exc
        logger.info("Health store ready: %s (schema v%d)", self._db_path, self.get_schema_version())

    def _migrate(self) -> None:
        conn = self.connection
        conn.execute(
            """CREATE TABLE IF NOT EXISTS schema_version (
                   version    INTEGER NOT NULL,
                   applied_at TEXT NOT NULL DEFAULT (datetime('now'))
               )"""
        )
        current = self.get_schema_version()
        for version, ddl in _MIGRATIONS:
            if version <= current:
                continue
            conn.executescript(ddl)
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
            conn.commit()
            logger.info("Applied schema migration v%d", version)

    def get_schema_version(self) -> int:
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] or 0

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back on any exception."""
        conn = self.connection
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        else:
            conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("Health store closed: %s", self._db_path)

    def __enter__(self) -> HealthDatabase:
        self.initialize()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

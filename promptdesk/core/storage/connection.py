"""Database connection management."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from promptdesk.core.exceptions import LockError

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "PROMPTDESK_HOME"
DB_FILENAME = "prompts.db"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT,
    FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS prompt_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id INTEGER NOT NULL,
    title TEXT,
    content TEXT NOT NULL,
    tags TEXT,
    model TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT,
    FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_tasks_project_id ON tasks(project_id);
CREATE INDEX IF NOT EXISTS idx_prompt_task_id ON prompt_entries(task_id);
CREATE INDEX IF NOT EXISTS idx_prompt_created_at ON prompt_entries(created_at);
"""

def get_data_dir() -> Path:
    """Get the application data directory ($PROMPTDESK_HOME or ~/.promptdesk)."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".promptdesk"


def get_default_db_path(data_dir: Path | None = None) -> Path:
    """Get the store file path inside the data directory."""
    return (data_dir or get_data_dir()) / DB_FILENAME


def open_connection(db_path: Path) -> sqlite3.Connection:
    """
    Open or create the store and make sure the schema exists.

    Enables foreign key enforcement for the lifetime of the connection.
    Every statement in the schema is idempotent, so this is safe to run
    against an existing, populated store.

    Raises:
        OSError: If the data directory cannot be created
        sqlite3.Error: If the file cannot be opened or the schema applied
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    except sqlite3.Error:
        conn.close()
        raise
    logger.info("Opened store at %s", db_path)
    return conn


class Database:
    """A single connection guarded by one lock.

    All access goes through :meth:`acquire`, which holds the lock for the
    whole operation. There is no distinction between readers and writers.
    """

    def __init__(self, db_path: Path) -> None:
        self.path = db_path
        self._conn: sqlite3.Connection | None = open_connection(db_path)
        self._lock = threading.Lock()
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def connection(self) -> sqlite3.Connection:
        """Return the raw connection. Callers are expected to hold the lock."""
        if self._conn is None:
            raise sqlite3.ProgrammingError("Cannot operate on a closed database.")
        return self._conn

    @contextmanager
    def acquire(self) -> Iterator[sqlite3.Connection]:
        """Hold the lock for the duration of one operation.

        A failed operation is rolled back and the handle stays usable. The
        handle is poisoned only when the operation was interrupted by a
        non-``Exception`` (for example ``KeyboardInterrupt``) or when the
        connection is still inside a transaction after the rollback.
        """
        with self._lock:
            if self._poisoned:
                raise LockError("Database handle is poisoned by an earlier failure")
            try:
                yield self.connection()
            except Exception:
                if not self._settle():
                    self._poison()
                raise
            except BaseException:
                self._poison()
                raise

    def _settle(self) -> bool:
        """Roll back an open transaction. Returns False if one is still open."""
        conn = self._conn
        if conn is None or not conn.in_transaction:
            return True
        try:
            conn.rollback()
        except sqlite3.Error:
            logger.exception("Rollback after a failed operation did not complete")
            return False
        return not conn.in_transaction

    def _poison(self) -> None:
        self._poisoned = True
        logger.error("Database handle poisoned; later operations will fail")

    def close(self) -> None:
        """Close the connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


def execute_write(
    conn: sqlite3.Connection, sql: str, params: tuple[object, ...] | list[object]
) -> sqlite3.Cursor:
    """Execute one write statement and commit it, rolling back on failure."""
    try:
        cursor = conn.execute(sql, params)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    return cursor

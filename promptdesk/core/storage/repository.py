"""Repository that coordinates all storage operations."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from promptdesk.core import backup
from promptdesk.core.models import SearchResult
from promptdesk.core.search import search_prompts
from promptdesk.core.storage.connection import Database
from promptdesk.core.storage.projects import ProjectStorage
from promptdesk.core.storage.prompts import PromptStorage
from promptdesk.core.storage.tasks import TaskStorage


class PromptRepository:
    """Facade over the projects, tasks and prompt entries of one store.

    The store is opened and its schema created in the constructor; any
    failure there propagates and no repository is returned.
    """

    def __init__(self, db_path: Path) -> None:
        self._db = Database(db_path)

        self.projects = ProjectStorage(self._get_connection)
        self.tasks = TaskStorage(self._get_connection)
        self.prompts = PromptStorage(self._get_connection)

    @property
    def db_path(self) -> Path:
        return self._db.path

    def _get_connection(self) -> sqlite3.Connection:
        return self._db.connection()

    @contextmanager
    def session(self) -> Iterator[PromptRepository]:
        """Hold the connection lock for the duration of one operation."""
        with self._db.acquire():
            yield self

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    def __enter__(self) -> PromptRepository:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()

    def search(
        self,
        keyword: str,
        project_id: int | None = None,
        task_id: int | None = None,
        limit: int | None = None,
    ) -> list[SearchResult]:
        """Search prompt entries by keyword."""
        return search_prompts(self._get_connection(), keyword, project_id, task_id, limit)

    def export_to_file(self, path: Path) -> backup.BackupStats:
        """Export the whole store to a JSON backup file."""
        return backup.export_to_file(self._get_connection(), path)

    def import_from_file(self, path: Path) -> backup.BackupStats:
        """Replace the whole store with the contents of a JSON backup file."""
        return backup.import_from_file(self._get_connection(), path)

    def get_stats(self) -> dict[str, int]:
        """Get record counts."""
        return {
            "projects": self.projects.count(),
            "tasks": self.tasks.count(),
            "prompts": self.prompts.count(),
        }

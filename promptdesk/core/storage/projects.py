"""Project storage operations."""

from __future__ import annotations

import dataclasses
import sqlite3
from collections.abc import Callable

from promptdesk.core.exceptions import NotFoundError, ValidationError
from promptdesk.core.models import Project, now_iso
from promptdesk.core.storage.connection import execute_write


def _require_name(name: str) -> None:
    if not name.strip():
        raise ValidationError("Project name must not be empty")


class ProjectStorage:
    """Storage operations for projects."""

    def __init__(self, get_connection: Callable[[], sqlite3.Connection]) -> None:
        self._get_connection = get_connection

    def list(self) -> list[Project]:
        """Get all projects, newest first."""
        conn = self._get_connection()
        cursor = conn.execute("SELECT * FROM projects ORDER BY created_at DESC, id DESC")
        return [Project.from_row(row) for row in cursor.fetchall()]

    def get_by_id(self, project_id: int) -> Project:
        """Get a project by its ID."""
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Project {project_id} not found")
        return Project.from_row(row)

    def create(self, name: str) -> Project:
        """Insert a project and return it."""
        _require_name(name)
        now = now_iso()
        cursor = execute_write(
            self._get_connection(),
            "INSERT INTO projects (name, created_at) VALUES (?, ?)",
            (name, now),
        )
        return Project(id=cursor.lastrowid, name=name, created_at=now)  # type: ignore[arg-type]

    def update(self, project_id: int, name: str | None = None) -> Project:
        """Rename a project. Omitting ``name`` only refreshes ``updated_at``."""
        current = self.get_by_id(project_id)
        new_name = name if name is not None else current.name
        _require_name(new_name)

        now = now_iso()
        cursor = execute_write(
            self._get_connection(),
            "UPDATE projects SET name = ?, updated_at = ? WHERE id = ?",
            (new_name, now, project_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Project {project_id} not found")
        return dataclasses.replace(current, name=new_name, updated_at=now)

    def delete(self, project_id: int) -> None:
        """Delete a project together with its tasks and prompt entries."""
        cursor = execute_write(
            self._get_connection(), "DELETE FROM projects WHERE id = ?", (project_id,)
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Project {project_id} not found")

    def count(self) -> int:
        conn = self._get_connection()
        return conn.execute("SELECT COUNT(*) FROM projects").fetchone()[0]

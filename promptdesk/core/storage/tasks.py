"""Task storage operations."""

from __future__ import annotations

import dataclasses
import sqlite3
from collections.abc import Callable

from promptdesk.core.exceptions import NotFoundError, ValidationError
from promptdesk.core.models import Task, now_iso
from promptdesk.core.storage.connection import execute_write


def _require_name(name: str) -> None:
    if not name.strip():
        raise ValidationError("Task name must not be empty")


class TaskStorage:
    """Storage operations for tasks."""

    def __init__(self, get_connection: Callable[[], sqlite3.Connection]) -> None:
        self._get_connection = get_connection

    def list(self, project_id: int) -> list[Task]:
        """Get all tasks of a project, newest first."""
        conn = self._get_connection()
        cursor = conn.execute(
            "SELECT * FROM tasks WHERE project_id = ? ORDER BY created_at DESC, id DESC",
            (project_id,),
        )
        return [Task.from_row(row) for row in cursor.fetchall()]

    def get_by_id(self, task_id: int) -> Task:
        """Get a task by its ID."""
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Task {task_id} not found")
        return Task.from_row(row)

    def create(self, project_id: int, name: str, description: str | None = None) -> Task:
        """Insert a task and return it.

        Raises:
            ValidationError: If the name is empty or whitespace
            sqlite3.IntegrityError: If the project does not exist
        """
        _require_name(name)
        now = now_iso()
        cursor = execute_write(
            self._get_connection(),
            "INSERT INTO tasks (project_id, name, description, created_at) VALUES (?, ?, ?, ?)",
            (project_id, name, description, now),
        )
        return Task(
            id=cursor.lastrowid,  # type: ignore[arg-type]
            project_id=project_id,
            name=name,
            description=description,
            created_at=now,
        )

    def update(
        self,
        task_id: int,
        name: str | None = None,
        description: str | None = None,
    ) -> Task:
        """Update a task; fields left as None keep their stored value."""
        current = self.get_by_id(task_id)
        new_name = name if name is not None else current.name
        new_description = description if description is not None else current.description
        _require_name(new_name)

        now = now_iso()
        cursor = execute_write(
            self._get_connection(),
            "UPDATE tasks SET name = ?, description = ?, updated_at = ? WHERE id = ?",
            (new_name, new_description, now, task_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Task {task_id} not found")
        return dataclasses.replace(
            current, name=new_name, description=new_description, updated_at=now
        )

    def delete(self, task_id: int) -> None:
        """Delete a task together with its prompt entries."""
        cursor = execute_write(
            self._get_connection(), "DELETE FROM tasks WHERE id = ?", (task_id,)
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Task {task_id} not found")

    def count(self) -> int:
        conn = self._get_connection()
        return conn.execute("SELECT COUNT(*) FROM tasks").fetchone()[0]

"""Whole-store export to JSON and destructive re-import.

Document layout (version 1)::

    {
      "version": 1,
      "exported_at": "...",
      "projects": [
        {"name", "created_at", "updated_at", "tasks": [
          {"name", "description", "created_at", "updated_at", "prompts": [
            {"title", "content", "tags", "model", "created_at", "updated_at"}
          ]}
        ]}
      ]
    }

Store-assigned ids are not exported; import assigns fresh ones and rebuilds
the hierarchy from nesting alone.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from promptdesk.core.exceptions import DocumentError
from promptdesk.core.models import decode_tags, encode_tags, now_iso

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_MISSING = object()


def _take(data: dict[str, Any], key: str, kind: type, where: str, optional: bool = False) -> Any:
    """Read one typed field from a decoded JSON object."""
    value = data.get(key, _MISSING)
    if value is _MISSING or value is None:
        if optional:
            return None
        raise DocumentError(f"{where}: missing required field '{key}'")
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise DocumentError(f"{where}: field '{key}' must be {kind.__name__}")
    return value


def _take_list(data: dict[str, Any], key: str, where: str) -> list[dict[str, Any]]:
    items = _take(data, key, list, where)
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise DocumentError(f"{where}.{key}[{i}]: expected an object")
    return items


@dataclass
class ExportPrompt:
    title: str | None
    content: str
    tags: list[str] | None
    model: str | None
    created_at: str
    updated_at: str | None

    @classmethod
    def from_dict(cls, data: dict[str, Any], where: str) -> ExportPrompt:
        tags = _take(data, "tags", list, where, optional=True)
        if tags is not None and not all(isinstance(tag, str) for tag in tags):
            raise DocumentError(f"{where}: field 'tags' must contain only strings")
        return cls(
            title=_take(data, "title", str, where, optional=True),
            content=_take(data, "content", str, where),
            tags=tags,
            model=_take(data, "model", str, where, optional=True),
            created_at=_take(data, "created_at", str, where),
            updated_at=_take(data, "updated_at", str, where, optional=True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "tags": self.tags,
            "model": self.model,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class ExportTask:
    name: str
    description: str | None
    created_at: str
    updated_at: str | None
    prompts: list[ExportPrompt] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any], where: str) -> ExportTask:
        return cls(
            name=_take(data, "name", str, where),
            description=_take(data, "description", str, where, optional=True),
            created_at=_take(data, "created_at", str, where),
            updated_at=_take(data, "updated_at", str, where, optional=True),
            prompts=[
                ExportPrompt.from_dict(item, f"{where}.prompts[{i}]")
                for i, item in enumerate(_take_list(data, "prompts", where))
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "prompts": [prompt.to_dict() for prompt in self.prompts],
        }


@dataclass
class ExportProject:
    name: str
    created_at: str
    updated_at: str | None
    tasks: list[ExportTask] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any], where: str) -> ExportProject:
        return cls(
            name=_take(data, "name", str, where),
            created_at=_take(data, "created_at", str, where),
            updated_at=_take(data, "updated_at", str, where, optional=True),
            tasks=[
                ExportTask.from_dict(item, f"{where}.tasks[{i}]")
                for i, item in enumerate(_take_list(data, "tasks", where))
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "tasks": [task.to_dict() for task in self.tasks],
        }


@dataclass
class ExportDocument:
    """A complete, id-free snapshot of the store."""

    version: int
    exported_at: str
    projects: list[ExportProject] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ExportDocument:
        """Validate a decoded JSON value and build the document from it."""
        if not isinstance(data, dict):
            raise DocumentError("document: expected a JSON object")
        version = _take(data, "version", int, "document")
        if version != FORMAT_VERSION:
            raise DocumentError(f"document: unsupported version {version}")
        return cls(
            version=version,
            exported_at=_take(data, "exported_at", str, "document"),
            projects=[
                ExportProject.from_dict(item, f"projects[{i}]")
                for i, item in enumerate(_take_list(data, "projects", "document"))
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "exported_at": self.exported_at,
            "projects": [project.to_dict() for project in self.projects],
        }


@dataclass
class BackupStats:
    """Counts of records written by an export or import."""

    projects: int = 0
    tasks: int = 0
    prompts: int = 0

    @classmethod
    def of(cls, document: ExportDocument) -> BackupStats:
        stats = cls(projects=len(document.projects))
        for project in document.projects:
            stats.tasks += len(project.tasks)
            for task in project.tasks:
                stats.prompts += len(task.prompts)
        return stats


def build_document(conn: sqlite3.Connection) -> ExportDocument:
    """Walk projects, tasks and prompts (oldest first) into a document."""
    document = ExportDocument(version=FORMAT_VERSION, exported_at=now_iso())

    projects = conn.execute("SELECT * FROM projects ORDER BY created_at, id").fetchall()
    for project_row in projects:
        project = ExportProject(
            name=project_row["name"],
            created_at=project_row["created_at"],
            updated_at=project_row["updated_at"],
        )
        tasks = conn.execute(
            "SELECT * FROM tasks WHERE project_id = ? ORDER BY created_at, id",
            (project_row["id"],),
        ).fetchall()
        for task_row in tasks:
            task = ExportTask(
                name=task_row["name"],
                description=task_row["description"],
                created_at=task_row["created_at"],
                updated_at=task_row["updated_at"],
            )
            prompts = conn.execute(
                "SELECT * FROM prompt_entries WHERE task_id = ? ORDER BY created_at, id",
                (task_row["id"],),
            ).fetchall()
            task.prompts = [
                ExportPrompt(
                    title=row["title"],
                    content=row["content"],
                    tags=decode_tags(row["tags"]),
                    model=row["model"],
                    created_at=row["created_at"],
                    updated_at=row["updated_at"],
                )
                for row in prompts
            ]
            project.tasks.append(task)
        document.projects.append(project)

    return document


def export_to_file(conn: sqlite3.Connection, path: Path) -> BackupStats:
    """
    Export the whole store to a JSON file.

    The document is fully serialized first and then written through a
    temporary sibling file that replaces ``path`` in one step, so the
    destination never holds a partial document.

    Raises:
        sqlite3.Error: If reading the store fails
        OSError: If the file cannot be written
    """
    document = build_document(conn)
    payload = json.dumps(document.to_dict(), indent=2, ensure_ascii=False)

    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    stats = BackupStats.of(document)
    logger.info(
        "Exported %d projects, %d tasks, %d prompts to %s",
        stats.projects,
        stats.tasks,
        stats.prompts,
        path,
    )
    return stats


def load_document(path: Path) -> ExportDocument:
    """
    Read and validate a backup document.

    Raises:
        OSError: If the file cannot be read
        DocumentError: If the content is not a valid version 1 document
    """
    raw = Path(path).read_bytes()
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise DocumentError(f"Invalid JSON in {path}: {e}") from e
    return ExportDocument.from_dict(data)


def import_document(conn: sqlite3.Connection, document: ExportDocument) -> BackupStats:
    """
    Replace the entire store with ``document`` in one transaction.

    Existing rows are deleted children first, then the hierarchy is
    re-inserted top down using the ids assigned along the way. If any step
    fails the transaction is rolled back and the store is left untouched.
    """
    try:
        conn.execute("BEGIN")
        conn.execute("DELETE FROM prompt_entries")
        conn.execute("DELETE FROM tasks")
        conn.execute("DELETE FROM projects")

        for project in document.projects:
            cursor = conn.execute(
                "INSERT INTO projects (name, created_at, updated_at) VALUES (?, ?, ?)",
                (project.name, project.created_at, project.updated_at),
            )
            project_id = cursor.lastrowid

            for task in project.tasks:
                cursor = conn.execute(
                    """
                    INSERT INTO tasks (project_id, name, description, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (project_id, task.name, task.description, task.created_at, task.updated_at),
                )
                task_id = cursor.lastrowid

                for prompt in task.prompts:
                    conn.execute(
                        """
                        INSERT INTO prompt_entries
                            (task_id, title, content, tags, model, created_at, updated_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            task_id,
                            prompt.title,
                            prompt.content,
                            encode_tags(prompt.tags),
                            prompt.model,
                            prompt.created_at,
                            prompt.updated_at,
                        ),
                    )

        conn.commit()
    except BaseException:
        conn.rollback()
        logger.warning("Import failed; store rolled back to its previous contents")
        raise

    stats = BackupStats.of(document)
    logger.info(
        "Imported %d projects, %d tasks, %d prompts",
        stats.projects,
        stats.tasks,
        stats.prompts,
    )
    return stats


def import_from_file(conn: sqlite3.Connection, path: Path) -> BackupStats:
    """Load a backup document from ``path`` and import it, replacing all data."""
    document = load_document(path)
    return import_document(conn, document)

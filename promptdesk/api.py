"""Boundary operations: lock, delegate, and map failures to ``{code, message}``.

Every public method of :class:`PromptDeskService` either returns its result
or raises exactly one :class:`ApiError`. No other exception type escapes.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from promptdesk.core.backup import BackupStats
from promptdesk.core.exceptions import (
    DocumentError,
    LockError,
    NotFoundError,
    PromptDeskError,
    ValidationError,
)
from promptdesk.core.models import Project, PromptEntry, SearchResult, Task
from promptdesk.core.storage import PromptRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

DB_ERROR = "DB_ERROR"
IO_ERROR = "IO_ERROR"
NOT_FOUND = "NOT_FOUND"
VALIDATION_ERROR = "VALIDATION_ERROR"
JSON_ERROR = "JSON_ERROR"
LOCK_ERROR = "LOCK_ERROR"
UNKNOWN = "UNKNOWN"


@dataclass(eq=False)
class ApiError(Exception):
    """A failure as seen from outside: a stable code and a message."""

    code: str
    message: str

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


def to_api_error(exc: BaseException) -> ApiError:
    """Map an internal failure to its external code."""
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, NotFoundError):
        return ApiError(NOT_FOUND, str(exc))
    if isinstance(exc, ValidationError):
        return ApiError(VALIDATION_ERROR, str(exc))
    if isinstance(exc, LockError):
        return ApiError(LOCK_ERROR, f"Failed to acquire database lock: {exc}")
    if isinstance(exc, (DocumentError, json.JSONDecodeError)):
        return ApiError(JSON_ERROR, f"JSON processing failed: {exc}")
    # sqlite3 raises OverflowError for integers it cannot bind
    if isinstance(exc, (sqlite3.Error, OverflowError)):
        return ApiError(DB_ERROR, f"Database operation failed: {exc}")
    if isinstance(exc, OSError):
        return ApiError(IO_ERROR, f"File read/write failed: {exc}")
    if isinstance(exc, PromptDeskError):
        return ApiError(UNKNOWN, str(exc))
    return ApiError(UNKNOWN, f"{type(exc).__name__}: {exc}")


class PromptDeskService:
    """The operations offered to the CLI and MCP server."""

    def __init__(self, repo: PromptRepository) -> None:
        self._repo = repo

    @classmethod
    def open(cls, db_path: Path) -> PromptDeskService:
        """Open the store at ``db_path``; failures are mapped to ApiError."""
        try:
            return cls(PromptRepository(db_path))
        except Exception as e:
            error = to_api_error(e)
            logger.error("Failed to open store at %s: %s", db_path, error)
            raise error from e

    def close(self) -> None:
        self._repo.close()

    def __enter__(self) -> PromptDeskService:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()

    @contextmanager
    def _boundary(self, operation: str) -> Iterator[PromptRepository]:
        try:
            with self._repo.session() as repo:
                yield repo
        except Exception as e:
            error = to_api_error(e)
            logger.error("%s failed: %s", operation, error)
            raise error from e

    def _call(self, operation: str, func: Callable[[PromptRepository], T]) -> T:
        with self._boundary(operation) as repo:
            return func(repo)

    # Projects

    def list_projects(self) -> list[Project]:
        return self._call("list_projects", lambda repo: repo.projects.list())

    def create_project(self, name: str) -> Project:
        logger.info("create_project: name=%r", name)
        return self._call("create_project", lambda repo: repo.projects.create(name))

    def update_project(self, project_id: int, name: str) -> Project:
        logger.info("update_project: id=%d name=%r", project_id, name)
        return self._call("update_project", lambda repo: repo.projects.update(project_id, name))

    def delete_project(self, project_id: int) -> None:
        logger.info("delete_project: id=%d", project_id)
        self._call("delete_project", lambda repo: repo.projects.delete(project_id))

    # Tasks

    def list_tasks(self, project_id: int) -> list[Task]:
        logger.info("list_tasks: project_id=%d", project_id)
        return self._call("list_tasks", lambda repo: repo.tasks.list(project_id))

    def create_task(self, project_id: int, name: str, description: str | None = None) -> Task:
        logger.info("create_task: project_id=%d name=%r", project_id, name)
        return self._call(
            "create_task", lambda repo: repo.tasks.create(project_id, name, description)
        )

    def update_task(
        self, task_id: int, name: str | None = None, description: str | None = None
    ) -> Task:
        logger.info("update_task: id=%d name=%r", task_id, name)
        return self._call(
            "update_task", lambda repo: repo.tasks.update(task_id, name, description)
        )

    def delete_task(self, task_id: int) -> None:
        logger.info("delete_task: id=%d", task_id)
        self._call("delete_task", lambda repo: repo.tasks.delete(task_id))

    # Prompt entries

    def list_prompts(
        self,
        task_id: int,
        start_time: str | None = None,
        end_time: str | None = None,
        tags: list[str] | None = None,
    ) -> list[PromptEntry]:
        logger.info("list_prompts: task_id=%d tags=%r", task_id, tags)
        return self._call(
            "list_prompts",
            lambda repo: repo.prompts.list(task_id, start_time, end_time, tags),
        )

    def get_prompt(self, prompt_id: int) -> PromptEntry:
        return self._call("get_prompt", lambda repo: repo.prompts.get_by_id(prompt_id))

    def create_prompt(
        self,
        task_id: int,
        content: str,
        title: str | None = None,
        tags: list[str] | None = None,
        model: str | None = None,
    ) -> PromptEntry:
        def create(repo: PromptRepository) -> PromptEntry:
            logger.info(
                "create_prompt: task_id=%r title=%r content_length=%d",
                task_id,
                title,
                len(content),
            )
            return repo.prompts.create(task_id, content, title, tags, model)

        return self._call("create_prompt", create)

    def update_prompt(
        self,
        prompt_id: int,
        title: str | None = None,
        content: str | None = None,
        tags: list[str] | None = None,
        model: str | None = None,
    ) -> PromptEntry:
        logger.info("update_prompt: id=%d", prompt_id)
        return self._call(
            "update_prompt",
            lambda repo: repo.prompts.update(prompt_id, title, content, tags, model),
        )

    def delete_prompt(self, prompt_id: int) -> None:
        logger.info("delete_prompt: id=%d", prompt_id)
        self._call("delete_prompt", lambda repo: repo.prompts.delete(prompt_id))

    # Search and backup

    def search(
        self,
        keyword: str,
        project_id: int | None = None,
        task_id: int | None = None,
        limit: int | None = None,
    ) -> list[SearchResult]:
        logger.info(
            "search: keyword=%r project_id=%s task_id=%s", keyword, project_id, task_id
        )
        return self._call(
            "search", lambda repo: repo.search(keyword, project_id, task_id, limit)
        )

    def export_data(self, target_path: Path) -> BackupStats:
        logger.info("export_data: target=%s", target_path)
        return self._call("export_data", lambda repo: repo.export_to_file(Path(target_path)))

    def import_data(self, source_path: Path) -> BackupStats:
        logger.info("import_data: source=%s", source_path)
        return self._call("import_data", lambda repo: repo.import_from_file(Path(source_path)))

    def get_stats(self) -> dict[str, int]:
        return self._call("get_stats", lambda repo: repo.get_stats())

    def get_database_path(self) -> str:
        return str(self._repo.db_path)

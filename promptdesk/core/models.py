"""Data models for PromptDesk."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any


def now_iso() -> str:
    """Current UTC time as a lexically sortable ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def encode_tags(tags: list[str] | None) -> str | None:
    """Serialize tags for storage, keeping order and duplicates."""
    if tags is None:
        return None
    return json.dumps(list(tags), ensure_ascii=False)


def decode_tags(raw: str | None) -> list[str] | None:
    """Decode stored tags; anything unreadable is treated as no tags."""
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
        return None
    return value


@dataclass
class Project:
    """A top-level container of tasks."""

    id: int
    name: str
    created_at: str
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Project:
        """Create a Project from a database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Task:
    """A unit of work inside a project."""

    id: int
    project_id: int
    name: str
    description: str | None
    created_at: str
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Task:
        """Create a Task from a database row."""
        return cls(
            id=row["id"],
            project_id=row["project_id"],
            name=row["name"],
            description=row["description"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PromptEntry:
    """A recorded prompt belonging to a task."""

    id: int
    task_id: int
    title: str | None
    content: str
    tags: list[str] | None
    model: str | None
    created_at: str
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> PromptEntry:
        """Create a PromptEntry from a database row."""
        return cls(
            id=row["id"],
            task_id=row["task_id"],
            title=row["title"],
            content=row["content"],
            tags=decode_tags(row["tags"]),
            model=row["model"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def has_any_tag(self, wanted: list[str]) -> bool:
        """True if this entry shares at least one tag with ``wanted``."""
        if not self.tags:
            return False
        return not set(self.tags).isdisjoint(wanted)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SearchResult:
    """A prompt entry matched by a keyword search, with its context."""

    project_id: int
    task_id: int
    prompt_id: int
    project_name: str
    task_name: str
    snippet: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

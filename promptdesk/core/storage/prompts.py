"""Prompt entry storage operations."""

from __future__ import annotations

import dataclasses
import sqlite3
from collections.abc import Callable

from promptdesk.core.exceptions import NotFoundError, ValidationError
from promptdesk.core.models import PromptEntry, encode_tags, now_iso
from promptdesk.core.storage.connection import execute_write
from promptdesk.core.storage.query import Conditions


def _require_content(content: str) -> None:
    # Whitespace-only content is a valid placeholder; only "" is rejected.
    if len(content) == 0:
        raise ValidationError("Prompt content must not be empty")


class PromptStorage:
    """Storage operations for prompt entries."""

    def __init__(self, get_connection: Callable[[], sqlite3.Connection]) -> None:
        self._get_connection = get_connection

    def list(
        self,
        task_id: int,
        start_time: str | None = None,
        end_time: str | None = None,
        tags: list[str] | None = None,
    ) -> list[PromptEntry]:
        """Get the prompt entries of a task, newest first.

        Args:
            task_id: Owning task
            start_time: Inclusive lower bound on ``created_at`` (ISO-8601)
            end_time: Inclusive upper bound on ``created_at`` (ISO-8601)
            tags: Keep only entries sharing at least one of these tags.
                None or an empty list disables the filter.
        """
        conditions = (
            Conditions()
            .add("task_id = ?", task_id)
            .add_if("created_at >= ?", start_time)
            .add_if("created_at <= ?", end_time)
        )
        sql, params = conditions.compose(
            "SELECT * FROM prompt_entries", order_by="created_at DESC, id DESC"
        )
        conn = self._get_connection()
        entries = [PromptEntry.from_row(row) for row in conn.execute(sql, params).fetchall()]

        if tags:
            entries = [entry for entry in entries if entry.has_any_tag(tags)]
        return entries

    def get_by_id(self, prompt_id: int) -> PromptEntry:
        """Get a prompt entry by its ID."""
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM prompt_entries WHERE id = ?", (prompt_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Prompt entry {prompt_id} not found")
        return PromptEntry.from_row(row)

    def create(
        self,
        task_id: int,
        content: str,
        title: str | None = None,
        tags: list[str] | None = None,
        model: str | None = None,
    ) -> PromptEntry:
        """Insert a prompt entry and return it.

        Raises:
            ValidationError: If the content is empty
            sqlite3.IntegrityError: If the task does not exist
        """
        _require_content(content)
        now = now_iso()
        cursor = execute_write(
            self._get_connection(),
            """
            INSERT INTO prompt_entries (task_id, title, content, tags, model, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (task_id, title, content, encode_tags(tags), model, now),
        )
        return PromptEntry(
            id=cursor.lastrowid,  # type: ignore[arg-type]
            task_id=task_id,
            title=title,
            content=content,
            tags=list(tags) if tags is not None else None,
            model=model,
            created_at=now,
        )

    def update(
        self,
        prompt_id: int,
        title: str | None = None,
        content: str | None = None,
        tags: list[str] | None = None,
        model: str | None = None,
    ) -> PromptEntry:
        """Update a prompt entry; fields left as None keep their stored value."""
        current = self.get_by_id(prompt_id)
        merged = dataclasses.replace(
            current,
            title=title if title is not None else current.title,
            content=content if content is not None else current.content,
            tags=list(tags) if tags is not None else current.tags,
            model=model if model is not None else current.model,
        )
        _require_content(merged.content)

        merged.updated_at = now_iso()
        cursor = execute_write(
            self._get_connection(),
            """
            UPDATE prompt_entries
            SET title = ?, content = ?, tags = ?, model = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                merged.title,
                merged.content,
                encode_tags(merged.tags),
                merged.model,
                merged.updated_at,
                prompt_id,
            ),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Prompt entry {prompt_id} not found")
        return merged

    def delete(self, prompt_id: int) -> None:
        """Delete a prompt entry."""
        cursor = execute_write(
            self._get_connection(), "DELETE FROM prompt_entries WHERE id = ?", (prompt_id,)
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Prompt entry {prompt_id} not found")

    def count(self) -> int:
        conn = self._get_connection()
        return conn.execute("SELECT COUNT(*) FROM prompt_entries").fetchone()[0]

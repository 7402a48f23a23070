"""Keyword search across prompt entries, with snippet extraction."""

from __future__ import annotations

import re
import sqlite3

from promptdesk.core.exceptions import ValidationError
from promptdesk.core.models import SearchResult
from promptdesk.core.storage.query import Conditions, escape_like

DEFAULT_LIMIT = 50

SNIPPET_CONTEXT = 50
SNIPPET_FALLBACK_LENGTH = 100
ELLIPSIS = "..."
TITLE_PREFIX = "[title] "

_SEARCH_SELECT = """
SELECT
    p.id AS project_id,
    t.id AS task_id,
    pe.id AS prompt_id,
    p.name AS project_name,
    t.name AS task_name,
    pe.title,
    pe.content,
    pe.created_at
FROM prompt_entries pe
JOIN tasks t ON pe.task_id = t.id
JOIN projects p ON t.project_id = p.id
"""


def search_prompts(
    conn: sqlite3.Connection,
    keyword: str,
    project_id: int | None = None,
    task_id: int | None = None,
    limit: int | None = None,
) -> list[SearchResult]:
    """Find prompt entries whose title or content contains ``keyword``.

    Matching uses SQLite's LIKE, which folds case for ASCII letters only.
    An empty or whitespace keyword returns no results without querying.

    Args:
        conn: Database connection
        keyword: Literal substring to look for
        project_id: Only search within this project
        task_id: Only search within this task
        limit: Maximum number of results (default 50)

    Returns:
        Matches ordered newest first, each with a preview snippet
    """
    if not keyword.strip():
        return []

    if limit is None:
        limit = DEFAULT_LIMIT
    if limit < 1:
        raise ValidationError("Search limit must be a positive integer")

    pattern = f"%{escape_like(keyword)}%"
    conditions = (
        Conditions()
        .add("(pe.title LIKE ? ESCAPE '\\' OR pe.content LIKE ? ESCAPE '\\')", pattern, pattern)
        .add_if("p.id = ?", project_id)
        .add_if("t.id = ?", task_id)
    )
    sql, params = conditions.compose(
        _SEARCH_SELECT, order_by="pe.created_at DESC, pe.id DESC", limit=limit
    )

    return [
        SearchResult(
            project_id=row["project_id"],
            task_id=row["task_id"],
            prompt_id=row["prompt_id"],
            project_name=row["project_name"],
            task_name=row["task_name"],
            snippet=generate_snippet(row["content"], row["title"], keyword),
            created_at=row["created_at"],
        )
        for row in conn.execute(sql, params).fetchall()
    ]


def generate_snippet(content: str, title: str | None, keyword: str) -> str:
    """Build a short preview of where ``keyword`` occurs.

    A title match wins outright. Otherwise the first case-insensitive
    occurrence in the content is shown with up to 50 characters of context
    on each side, with "..." marking any truncated end. If the keyword cannot
    be found (LIKE and Python disagree on case folding) the first 100
    characters of content are returned instead.
    """
    if title and keyword.lower() in title.lower():
        return TITLE_PREFIX + title

    match = re.search(re.escape(keyword), content, re.IGNORECASE)
    if match is None:
        if len(content) > SNIPPET_FALLBACK_LENGTH:
            return content[:SNIPPET_FALLBACK_LENGTH] + ELLIPSIS
        return content

    start = max(0, match.start() - SNIPPET_CONTEXT)
    end = min(len(content), match.end() + SNIPPET_CONTEXT)
    snippet = content[start:end]
    if start > 0:
        snippet = ELLIPSIS + snippet
    if end < len(content):
        snippet += ELLIPSIS
    return snippet

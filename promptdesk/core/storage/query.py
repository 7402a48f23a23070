"""Composition of queries with optional conjunctive filters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Conditions:
    """Ordered (clause, params) pairs joined with AND.

    Each clause uses ``?`` placeholders and carries exactly the parameters
    it needs, so the final parameter list always lines up with the SQL.
    """

    parts: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)

    def add(self, clause: str, *params: Any) -> Conditions:
        """Add a clause unconditionally."""
        self.parts.append((clause, params))
        return self

    def add_if(self, clause: str, value: Any) -> Conditions:
        """Add a single-parameter clause only when ``value`` is not None."""
        if value is not None:
            self.parts.append((clause, (value,)))
        return self

    @property
    def params(self) -> list[Any]:
        return [param for _, params in self.parts for param in params]

    def where(self) -> str:
        """Render the WHERE clause, or an empty string if there are no filters."""
        if not self.parts:
            return ""
        return " WHERE " + " AND ".join(clause for clause, _ in self.parts)

    def compose(
        self,
        select: str,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> tuple[str, list[Any]]:
        """Build the final SQL and its parameter list."""
        sql = select.strip() + self.where()
        params = self.params
        if order_by:
            sql += f" ORDER BY {order_by}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return sql, params


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return (
        value.replace(escape, escape * 2)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )

"""Lexical safety gate for configuration-supplied SQL.

Queries come from a YAML file, so before anything reaches the database each
one must look like a single-statement, single-column, read-only ``SELECT``.
There is no SQL parser here; three checks run in a fixed order and the first
failure wins:

1. statement shape: starts with ``select`` and contains `` from ``;
2. forbidden commands: no whole-word ``insert``/``update``/``delete``/
   ``drop``/``alter``/``truncate``/``create``/``replace`` anywhere, which
   also covers stacked statements after a ``;``;
3. single column: no comma at parenthesis depth zero between ``select`` and
   the first top-level ``from``.

The guard is lexical only. A ``SELECT`` calling a function that writes data
passes; keeping such functions out of reach is the job of database
permissions.

Example:
    >>> QueryGuard().validate("SELECT func(age, name) FROM users")
    >>> QueryGuard().validate("SELECT age FROM users; DROP TABLE users;")
    Traceback (most recent call last):
    ...
    sql_metrics.errors.QueryRejected: invalid query: detected a forbidden SQL command (drop)
"""

from __future__ import annotations

__all__ = ["FORBIDDEN_COMMANDS", "QueryGuard", "validate_query"]

import re

from .errors import QueryErrorKind, QueryRejected

FORBIDDEN_COMMANDS = (
    "insert",
    "update",
    "delete",
    "drop",
    "alter",
    "truncate",
    "create",
    "replace",
)

_FORBIDDEN_RE = re.compile(r"\b(" + "|".join(FORBIDDEN_COMMANDS) + r")\b")
_SELECT_HEAD_RE = re.compile(r"select\s+", re.IGNORECASE)
_FROM_KEYWORD_RE = re.compile(r"\s+from\s+", re.IGNORECASE)


def _column_span(query: str) -> str | None:
    """Return the text between ``select`` and the first top-level ``from``.

    ``None`` means no such span exists, e.g. every ``from`` sits inside
    parentheses or the column list is empty.
    """
    head = _SELECT_HEAD_RE.match(query)
    if head is None:
        return None
    start = head.end()
    depth = 0
    for pos in range(start, len(query)):
        ch = query[pos]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(depth - 1, 0)
        elif depth == 0 and ch.isspace() and pos > start:
            if _FROM_KEYWORD_RE.match(query, pos):
                return query[start:pos]
    return None


def _has_top_level_comma(columns: str) -> bool:
    depth = 0
    for ch in columns:
        if ch == "(":
            depth += 1
        elif ch == ")":
            if depth > 0:
                depth -= 1
        elif ch == "," and depth == 0:
            return True
    return False


class QueryGuard:
    """Admit/reject gate for metric queries.

    Stateless: one instance may be shared freely, including across threads.
    """

    def validate(self, query: str) -> None:
        """Return ``None`` if ``query`` is acceptable.

        Raises:
            QueryRejected: Carrying the :class:`QueryErrorKind` of the first
                failed check and the original query text.
        """
        clean = query.strip()
        lower = clean.lower()

        if not lower.startswith("select"):
            raise QueryRejected(QueryErrorKind.NOT_A_SELECT, query)
        if " from " not in lower:
            raise QueryRejected(QueryErrorKind.MISSING_FROM_CLAUSE, query)

        match = _FORBIDDEN_RE.search(lower)
        if match:
            raise QueryRejected(QueryErrorKind.FORBIDDEN_COMMAND, query, match.group(1))

        # column extraction works on the original case
        columns = _column_span(clean)
        if columns is None:
            raise QueryRejected(QueryErrorKind.UNPARSABLE_COLUMN_LIST, query)
        if _has_top_level_comma(columns):
            raise QueryRejected(QueryErrorKind.MULTIPLE_COLUMNS, query)


_default_guard = QueryGuard()


def validate_query(query: str) -> None:
    """Module-level shortcut for :meth:`QueryGuard.validate`."""
    _default_guard.validate(query)

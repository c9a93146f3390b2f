"""Error taxonomy shared by the validators and the I/O collaborators.

Each failure family has a closed ``Enum`` of kinds and one exception class
carrying that kind, so callers can branch on ``err.kind`` instead of matching
message text.

Example:
    >>> from sql_metrics.query_guard import validate_query
    >>> try:
    ...     validate_query("SELECT a, b FROM t")
    ... except QueryRejected as err:
    ...     err.kind
    <QueryErrorKind.MULTIPLE_COLUMNS: 'multiple_columns'>
"""

from __future__ import annotations

from enum import Enum

__all__ = [
    "ConnectionErrorKind",
    "QueryErrorKind",
    "ExecutionErrorKind",
    "DispatchErrorKind",
    "SQLMetricsError",
    "ConnectionStringError",
    "QueryRejected",
    "ExecutionFailed",
    "DispatchFailed",
]


class ConnectionErrorKind(str, Enum):
    MALFORMED = "malformed"
    UNSUPPORTED_SCHEME = "unsupported_scheme"
    MISSING_HOST = "missing_host"
    MISSING_DATABASE_NAME = "missing_database_name"


class QueryErrorKind(str, Enum):
    NOT_A_SELECT = "not_a_select"
    MISSING_FROM_CLAUSE = "missing_from_clause"
    FORBIDDEN_COMMAND = "forbidden_command"
    UNPARSABLE_COLUMN_LIST = "unparsable_column_list"
    MULTIPLE_COLUMNS = "multiple_columns"


class ExecutionErrorKind(str, Enum):
    DRIVER_FAILURE = "driver_failure"
    TIMEOUT = "timeout"
    UNEXPECTED_TYPE = "unexpected_type"


class DispatchErrorKind(str, Enum):
    TRANSPORT_FAILURE = "transport_failure"
    NON_SUCCESS_RESPONSE = "non_success_response"
    TIMEOUT = "timeout"


_CONNECTION_MESSAGES = {
    ConnectionErrorKind.MALFORMED: "invalid database URL: could not be parsed",
    ConnectionErrorKind.UNSUPPORTED_SCHEME: (
        "invalid database URL: scheme must be 'postgres' or 'postgresql'"
    ),
    ConnectionErrorKind.MISSING_HOST: "invalid database URL: host is empty",
    ConnectionErrorKind.MISSING_DATABASE_NAME: (
        "invalid database URL: database name is missing"
    ),
}

_QUERY_MESSAGES = {
    QueryErrorKind.NOT_A_SELECT: "invalid query: only SELECT statements are allowed",
    QueryErrorKind.MISSING_FROM_CLAUSE: "invalid query: missing FROM clause",
    QueryErrorKind.FORBIDDEN_COMMAND: "invalid query: detected a forbidden SQL command",
    QueryErrorKind.UNPARSABLE_COLUMN_LIST: (
        "invalid query: unable to parse selected columns"
    ),
    QueryErrorKind.MULTIPLE_COLUMNS: "invalid query: multiple columns are not allowed",
}


class SQLMetricsError(Exception):
    """Base class for every error raised by this package."""

    kind: Enum

    def __init__(self, kind: Enum, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class ConnectionStringError(SQLMetricsError):
    """A database URL failed structural validation.

    Attributes:
        kind: The :class:`ConnectionErrorKind` that fired.
        url: The offending URL with any password hidden.
    """

    def __init__(self, kind: ConnectionErrorKind, url: str, detail: str | None = None) -> None:
        message = _CONNECTION_MESSAGES[kind]
        if detail:
            message = f"{message} ({detail})"
        super().__init__(kind, message)
        self.url = url


class QueryRejected(SQLMetricsError):
    """A query failed the lexical safety check.

    Attributes:
        kind: The :class:`QueryErrorKind` that fired.
        query: The query text exactly as supplied.
    """

    def __init__(self, kind: QueryErrorKind, query: str, detail: str | None = None) -> None:
        message = _QUERY_MESSAGES[kind]
        if detail:
            message = f"{message} ({detail})"
        super().__init__(kind, message)
        self.query = query


class ExecutionFailed(SQLMetricsError):
    """Running a query or reading its scalar result failed."""

    def __init__(self, kind: ExecutionErrorKind, message: str) -> None:
        super().__init__(kind, message)


class DispatchFailed(SQLMetricsError):
    """Sending a metric to the monitoring API failed.

    ``status_code`` is set only for :attr:`DispatchErrorKind.NON_SUCCESS_RESPONSE`.
    """

    def __init__(
        self,
        kind: DispatchErrorKind,
        message: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(kind, message)
        self.status_code = status_code

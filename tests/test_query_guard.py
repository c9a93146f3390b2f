import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from sql_metrics.errors import QueryErrorKind, QueryRejected
from sql_metrics.query_guard import FORBIDDEN_COMMANDS, QueryGuard, validate_query


ACCEPTED = [
    "SELECT age FROM users LIMIT 1;",
    "   SELECT name FROM users   ",
    "SELECT func(age, name) FROM users",
    "SELECT (SELECT count(*) FROM orders) FROM users",
    "select age from users",
    "SELECT COALESCE(age, 0, default_age) FROM users",
    "SELECT age FROM users WHERE active = true",
    "SELECT MAX(age) FROM users GROUP BY department_id",
    "SELECT (SELECT MAX(age) FROM (SELECT age FROM older_users) AS t) FROM users",
    "SELECT age FROM users AS u",
    "SELECT CASE WHEN age > 18 THEN 'adult' ELSE 'minor' END FROM users",
    "SELECT u.age FROM users u JOIN orders o ON u.id = o.user_id",
    "SELECT MAX(age) FROM users GROUP BY department_id HAVING MAX(age) > 40",
    "SELECT age FROM users ORDER BY age DESC",
    "SELECT age FROM users LIMIT 10 OFFSET 20",
    "SELECT age FROM users -- This is a comment",
    "SELECT age FROM users /* This is a block comment */",
    'SELECT "user"."age" FROM "users" AS "user"',
    "SELECT COUNT(*) FROM users",
    "SELECT MAX(created_at) FROM users",
    "SELECT COUNT(*) FROM users WHERE updated_by IS NULL",
    "SELECT COUNT(*) * 100.0 / (SELECT COUNT(*) FROM base_calls) FROM base_calls "
    "WHERE status_code BETWEEN 200 AND 299;",
    "SELECT SUM(amount) OVER (PARTITION BY region, team ORDER BY ts) FROM sales",
]


@pytest.mark.parametrize("query", ACCEPTED)
def test_accepts_single_column_selects(query):
    assert QueryGuard().validate(query) is None


@pytest.mark.parametrize(
    "query,kind",
    [
        ("", QueryErrorKind.NOT_A_SELECT),
        ("   ", QueryErrorKind.NOT_A_SELECT),
        ("UPDATE users SET age = 30", QueryErrorKind.NOT_A_SELECT),
        ("WITH t AS (SELECT 1) SELECT * FROM t", QueryErrorKind.NOT_A_SELECT),
        ("SELECT age", QueryErrorKind.MISSING_FROM_CLAUSE),
        ("select", QueryErrorKind.MISSING_FROM_CLAUSE),
        ("SELECT age, name", QueryErrorKind.MISSING_FROM_CLAUSE),
        ("SELECT age FROM users; DROP TABLE users;", QueryErrorKind.FORBIDDEN_COMMAND),
        (
            "SELECT age FROM users; CREATE TABLE new_users; DROP TABLE old_users;",
            QueryErrorKind.FORBIDDEN_COMMAND,
        ),
        ("SELECT age FROM users WHERE 1=1; Delete FROM users", QueryErrorKind.FORBIDDEN_COMMAND),
        ("SELECT replace(name, 'a', 'b') FROM users", QueryErrorKind.FORBIDDEN_COMMAND),
        ("SELECT age, name FROM users", QueryErrorKind.MULTIPLE_COLUMNS),
        ("SELECT (a), b FROM t", QueryErrorKind.MULTIPLE_COLUMNS),
        ("SELECT a), b FROM t", QueryErrorKind.MULTIPLE_COLUMNS),
        ("SELECT (SELECT a FROM x), b FROM t", QueryErrorKind.MULTIPLE_COLUMNS),
        ("SELECT (a FROM t", QueryErrorKind.UNPARSABLE_COLUMN_LIST),
        ("SELECT(a) FROM t", QueryErrorKind.UNPARSABLE_COLUMN_LIST),
    ],
)
def test_rejects_with_first_failing_kind(query, kind):
    with pytest.raises(QueryRejected) as exc:
        QueryGuard().validate(query)
    assert exc.value.kind is kind
    assert exc.value.query == query


def test_not_a_select_wins_over_forbidden_command():
    with pytest.raises(QueryRejected) as exc:
        validate_query("DROP TABLE users")
    assert exc.value.kind is QueryErrorKind.NOT_A_SELECT


def test_forbidden_command_checked_before_columns():
    with pytest.raises(QueryRejected) as exc:
        validate_query("SELECT a, b FROM t; TRUNCATE t")
    assert exc.value.kind is QueryErrorKind.FORBIDDEN_COMMAND
    assert "truncate" in str(exc.value)


@pytest.mark.parametrize("word", FORBIDDEN_COMMANDS)
def test_every_forbidden_word_is_rejected_case_insensitively(word):
    with pytest.raises(QueryRejected) as exc:
        validate_query(f"SELECT x FROM t; {word.upper()} t")
    assert exc.value.kind is QueryErrorKind.FORBIDDEN_COMMAND


@pytest.mark.parametrize("word", FORBIDDEN_COMMANDS)
def test_forbidden_word_inside_identifier_is_allowed(word):
    validate_query(f"SELECT {word}_count FROM t WHERE last_{word} > 0")


def test_column_case_preserved_in_error():
    query = "SELECT \"Age\", \"Name\" FROM users"
    with pytest.raises(QueryRejected) as exc:
        validate_query(query)
    assert exc.value.query == query
    assert str(exc.value) == "invalid query: multiple columns are not allowed"


def test_validation_is_idempotent():
    guard = QueryGuard()
    for query in ("SELECT age FROM users", "SELECT age, name FROM users"):
        first = _verdict(guard, query)
        assert _verdict(guard, query) == first


def _verdict(guard, query):
    try:
        guard.validate(query)
    except QueryRejected as err:
        return err.kind
    return None

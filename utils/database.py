"""Database utilities for the climate hub.

Provides reusable functions for:
- Executing parameterized statements with a uniform result shape
- Pagination of list queries
- Connection pragmas used by the seeding command
- Row counts for the seeding summary

All statement failures surface as ``DataAccessError`` chained to the
underlying ``sqlite3.Error``.
"""

import logging
import re
import sqlite3
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from utils.errors import DataAccessError, ValidationError

logger = logging.getLogger(__name__)

_READ_KEYWORDS = frozenset({"SELECT", "WITH", "PRAGMA", "EXPLAIN", "VALUES"})
_ORDER_TERM = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\s+(ASC|DESC))?$", re.IGNORECASE)

SLOW_QUERY_MS = 100.0


@dataclass
class QueryResult:
    """Rows and count returned by ``execute()``.

    For reads ``row_count`` is ``len(rows)``; for writes ``rows`` is empty
    and ``row_count`` is the number of affected rows.
    """

    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    last_row_id: int | None = None


@dataclass
class PageQuery:
    """A paginated statement ready for ``execute()``."""

    sql: str
    params: List[Any]
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def query_kind(sql: str) -> str:
    """Classify a statement as ``"read"`` or ``"write"`` by its leading keyword."""
    words = sql.strip().split(None, 1)
    if words and words[0].upper() in _READ_KEYWORDS:
        return "read"
    return "write"


def execute(conn: sqlite3.Connection, sql: str,
            params: Sequence[Any] = ()) -> QueryResult:
    """Execute a parameterized statement and return a QueryResult.

    Args:
        conn: SQLite connection (row_factory should be sqlite3.Row).
        sql: Statement with ``?`` placeholders.
        params: Values bound to the placeholders, in order.

    Raises:
        DataAccessError: The connection is unusable or the statement is
            malformed or violates a constraint.
    """
    start = time.monotonic()
    try:
        cursor = conn.execute(sql, tuple(params))
        if query_kind(sql) == "read":
            rows = [dict(row) for row in cursor.fetchall()]
            result = QueryResult(rows=rows, row_count=len(rows))
        else:
            result = QueryResult(row_count=cursor.rowcount,
                                 last_row_id=cursor.lastrowid)
    except sqlite3.Error as exc:
        logger.error("Query error: %s | sql=%s", exc, _abbrev(sql))
        raise DataAccessError(str(exc)) from exc

    duration_ms = (time.monotonic() - start) * 1000
    logger.debug("Executed query sql=%s duration_ms=%.1f rows=%d",
                 _abbrev(sql), duration_ms, result.row_count)
    if duration_ms > SLOW_QUERY_MS:
        logger.warning("slow_query duration_ms=%.1f sql=%s",
                       duration_ms, _abbrev(sql))
    return result


def fetch_one(conn: sqlite3.Connection, sql: str,
              params: Sequence[Any] = ()) -> Dict[str, Any] | None:
    """Execute a read and return its first row, or None."""
    rows = execute(conn, sql, params).rows
    return rows[0] if rows else None


def _abbrev(sql: str, width: int = 100) -> str:
    return " ".join(sql.split())[:width]


def paginate(
    base_query: str,
    params: Sequence[Any] = (),
    page: int = 1,
    limit: int = 10,
    order_by: str | None = None,
) -> PageQuery:
    """Append deterministic ordering plus LIMIT/OFFSET to *base_query*.

    Ordering defaults to ``id DESC``.  When an explicit ordering does not
    mention ``id``, ``id DESC`` is appended as a tiebreaker so pages stay
    stable across calls.  LIMIT and OFFSET are bound as parameters.

    Args:
        base_query: SELECT statement without ORDER BY / LIMIT.
        params: Parameters already bound by *base_query*.
        page: 1-indexed page number.
        limit: Page size.
        order_by: Comma-separated ``column [ASC|DESC]`` terms.

    Raises:
        ValidationError: If page or limit is below 1.
        ValueError: If *order_by* is not a plain column list.
    """
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1:
        raise ValidationError("limit must be >= 1")

    terms = [t.strip() for t in (order_by or "id DESC").split(",")]
    for term in terms:
        if not _ORDER_TERM.match(term):
            raise ValueError(f"Invalid ORDER BY term: {term!r}")
    if not any(t.split()[0].lower() == "id" for t in terms):
        terms.append("id DESC")

    sql = f"{base_query} ORDER BY {', '.join(terms)} LIMIT ? OFFSET ?"
    return PageQuery(
        sql=sql,
        params=list(params) + [limit, (page - 1) * limit],
        page=page,
        limit=limit,
    )


def init_pragmas(conn: sqlite3.Connection) -> None:
    """Initialize SQLite pragmas for a writable connection.

    - WAL mode so seeding does not block readers longer than needed
    - NORMAL synchronous mode for speed without data loss
    - foreign keys on
    """
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA busy_timeout=5000")


def get_table_count(conn: sqlite3.Connection, table: str) -> int:
    """Get row count for a table (name must come from code, not input)."""
    row = fetch_one(conn, f"SELECT COUNT(*) AS cnt FROM {table}")
    return row["cnt"] if row else 0

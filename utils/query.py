"""Shared SQL query builder utilities for the climate hub API routes.

Provides the mapping-driven WHERE clause builder used by every list
endpoint, the ranking-metric allow-list, and parsers for the
comma-separated query parameters of the compare endpoints.
"""

import re
from collections.abc import Collection, Mapping, Sequence
from typing import Any

from utils.config import KnownValues
from utils.errors import ValidationError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Returned when a set-membership filter is given an empty sequence.
NO_MATCH_CLAUSE = "WHERE 1=0"


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _is_sequence(value: Any) -> bool:
    if isinstance(value, (str, bytes)):
        return False
    return isinstance(value, (Sequence, set, frozenset))


def build_where_clause(
    filters: Mapping[str, Any] | None = None,
    extra_conditions: Sequence[tuple[str, Sequence[Any]]] | None = None,
    exact: Collection[str] = (),
) -> tuple[str, list[Any]]:
    """Build a SQL WHERE clause from a column → value mapping.

    Each non-absent value produces one condition, in mapping order:

    - sequence (list, tuple, set) → ``column IN (?,?,...)``, one parameter
      per element in sequence order
    - string containing ``%`` → ``column LIKE ?`` with the literal string
      (``%`` markers included) as the parameter
    - any other scalar → ``column = ?``

    Columns named in *exact* always bind scalars with ``=``, so a ``%`` in
    request input is matched literally rather than as a wildcard.

    ``None`` and ``""`` mean "no filter for this column".

    Args:
        filters: Mapping of column name to filter value.  Column names are
            written into the SQL text, so they must come from code, never
            from request input.
        extra_conditions: Additional ``(fragment, params)`` pairs ANDed after
            the mapping conditions, e.g. ``("(title LIKE ? OR description
            LIKE ?)", [term, term])``.

    Returns:
        Tuple of (where_clause_string, params_list). The string starts with
        "WHERE " if any conditions exist, or is "" if none.  An empty
        sequence filter yields ``"WHERE 1=0"`` and no parameters.

    Raises:
        ValueError: If a column name is not a plain SQL identifier.
    """
    conditions: list[str] = []
    params: list[Any] = []

    for column, value in (filters or {}).items():
        if not _IDENTIFIER.match(column):
            raise ValueError(f"Invalid filter column: {column!r}")
        if _is_absent(value):
            continue
        if _is_sequence(value):
            values = list(value)
            if not values:
                return NO_MATCH_CLAUSE, []
            placeholders = ",".join("?" * len(values))
            conditions.append(f"{column} IN ({placeholders})")
            params.extend(values)
        elif column not in exact and isinstance(value, str) and "%" in value:
            conditions.append(f"{column} LIKE ?")
            params.append(value)
        else:
            conditions.append(f"{column} = ?")
            params.append(value)

    for fragment, fragment_params in extra_conditions or ():
        conditions.append(fragment)
        params.extend(fragment_params)

    where = "WHERE " + " AND ".join(conditions) if conditions else ""
    return where, params


def contains(term: str | None) -> str | None:
    """Wrap *term* in ``%`` markers for a substring match, or pass through None."""
    if _is_absent(term):
        return None
    return f"%{term}%"


def validate_ranking_metric(metric: str) -> str:
    """Validate and return a policy_analysis metric column name.

    Raises:
        ValidationError: If the metric is not in KnownValues.RANKING_METRICS.
    """
    if not KnownValues.is_valid_metric(metric):
        raise ValidationError(
            "Invalid metric. Use: governance_score, mitigation_score, "
            "adaptation_score, or overall_index"
        )
    return metric


def parse_csv_param(raw: str | None) -> list[str]:
    """Split a comma-separated query value into trimmed, non-empty items."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def parse_id_list(raw: str | None) -> list[int]:
    """Parse a comma-separated list of integer ids.

    Raises:
        ValidationError: If any item is not an integer.
    """
    ids: list[int] = []
    for part in parse_csv_param(raw):
        try:
            ids.append(int(part))
        except ValueError:
            raise ValidationError(f"Invalid id: {part!r}") from None
    return ids

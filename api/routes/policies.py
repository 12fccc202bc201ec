"""
Policy comparison endpoints.

GET /api/policies/compare?ids=1,2,3   → the listed policies, newest first
GET /api/policies/{country}           → policies for one country
"""

import sqlite3

from fastapi import APIRouter, Depends, Query

from api.database import get_db
from api.models import RepositoryItemOut
from utils.database import execute
from utils.errors import ValidationError
from utils.query import build_where_clause, parse_id_list

router = APIRouter(prefix="/policies", tags=["policies"])

_SELECT_COLUMNS = """
    id, title, type, country, year, description, source, link,
    file_path, sector, created_at, updated_at
"""


@router.get(
    "/compare",
    response_model=list[RepositoryItemOut],
    summary="Compare policies by ID",
    responses={400: {"description": "Missing or malformed ids"}},
)
def compare_policies(
    ids: str | None = Query(None, description="Comma-separated policy IDs, e.g. 1,2,3"),
    conn: sqlite3.Connection = Depends(get_db),
) -> list[dict]:
    """Return the policies whose IDs are listed, most recent year first.

    IDs that do not exist, or that belong to reports or research papers,
    are silently left out.
    """
    id_list = parse_id_list(ids)
    if not id_list:
        raise ValidationError("Policy IDs required")

    where, params = build_where_clause({"id": id_list, "type": "policy"})
    sql = (
        f"SELECT {_SELECT_COLUMNS} FROM repository_items {where} "
        "ORDER BY year DESC, id DESC"
    )
    return execute(conn, sql, params).rows


@router.get(
    "/{country}",
    response_model=list[RepositoryItemOut],
    summary="Policies for a country",
)
def policies_by_country(
    country: str,
    conn: sqlite3.Connection = Depends(get_db),
) -> list[dict]:
    where, params = build_where_clause({"type": "policy", "country": country},
                                       exact=("country",))
    sql = (
        f"SELECT {_SELECT_COLUMNS} FROM repository_items {where} "
        "ORDER BY year DESC, id DESC"
    )
    return execute(conn, sql, params).rows

"""
Repository endpoints: policies, reports and research documents.

GET /api/repository/items          → filtered list (optionally paginated)
GET /api/repository/items/{id}     → single item or 404
GET /api/repository/policies       → policies, optional country filter
GET /api/repository/reports        → reports
GET /api/repository/research       → research papers
GET /api/repository/countries      → distinct countries
GET /api/repository/sectors        → distinct sectors
"""

import sqlite3

from fastapi import APIRouter, Depends, Query

from api.database import get_db
from api.models import RepositoryItemOut
from utils.config import ItemType
from utils.database import execute, fetch_one, paginate
from utils.errors import NotFoundError
from utils.query import build_where_clause, contains

router = APIRouter(prefix="/repository", tags=["repository"])

_SELECT_COLUMNS = """
    id, title, type, country, year, description, source, link,
    file_path, sector, created_at, updated_at
"""

_LIST_ORDER = "year DESC, created_at DESC, id DESC"


def _list_by_type(conn: sqlite3.Connection, item_type: str,
                  country: str | None = None) -> list[dict]:
    where, params = build_where_clause({"type": item_type, "country": country},
                                       exact=("type", "country"))
    sql = (
        f"SELECT {_SELECT_COLUMNS} FROM repository_items {where} "
        "ORDER BY year DESC, id DESC"
    )
    return execute(conn, sql, params).rows


def _distinct_trimmed(conn: sqlite3.Connection, column: str) -> list[str]:
    rows = execute(
        conn,
        f"SELECT DISTINCT TRIM({column}) AS value FROM repository_items "
        f"WHERE {column} IS NOT NULL AND TRIM({column}) != '' "
        "ORDER BY value",
    ).rows
    return [r["value"] for r in rows]


@router.get(
    "/items",
    response_model=list[RepositoryItemOut],
    summary="List repository items",
)
def list_items(
    item_type: ItemType | None = Query(
        None, alias="type", description="Filter by item type"),
    country: str | None = Query(None, description="Exact country match"),
    year: int | None = Query(None, description="Publication year"),
    search: str | None = Query(None, description="Substring of title or description"),
    sector: str | None = Query(None, description="Substring of sector"),
    page: int | None = Query(None, ge=1, description="1-indexed page; enables pagination"),
    limit: int | None = Query(None, ge=1, le=500, description="Page size (default 10)"),
    conn: sqlite3.Connection = Depends(get_db),
) -> list[dict]:
    """Return repository items, most recent year first.

    ``search`` matches title OR description; ``sector`` is a substring
    match.  Without ``page``/``limit`` every matching row is returned.
    """
    extra = []
    term = contains(search)
    if term:
        extra.append(("(title LIKE ? OR description LIKE ?)", [term, term]))

    where, params = build_where_clause(
        {
            "type": item_type,
            "country": country,
            "year": year,
            "sector": contains(sector),
        },
        extra_conditions=extra,
        exact=("type", "country"),
    )
    base = f"SELECT {_SELECT_COLUMNS} FROM repository_items {where}"

    if page is None and limit is None:
        return execute(conn, f"{base} ORDER BY {_LIST_ORDER}", params).rows

    paged = paginate(base, params, page=page or 1, limit=limit or 10,
                     order_by=_LIST_ORDER)
    return execute(conn, paged.sql, paged.params).rows


@router.get(
    "/items/{item_id}",
    response_model=RepositoryItemOut,
    summary="Get a single repository item",
    responses={404: {"description": "Item not found"}},
)
def get_item(
    item_id: int,
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    """Return one repository item by ID."""
    row = fetch_one(
        conn,
        f"SELECT {_SELECT_COLUMNS} FROM repository_items WHERE id = ?",
        (item_id,),
    )
    if row is None:
        raise NotFoundError("Item not found")
    return row


@router.get("/policies", response_model=list[RepositoryItemOut], summary="List policies")
def list_policies(
    country: str | None = Query(None, description="Exact country match"),
    conn: sqlite3.Connection = Depends(get_db),
) -> list[dict]:
    """Return all policies, optionally restricted to one country."""
    return _list_by_type(conn, "policy", country)


@router.get("/reports", response_model=list[RepositoryItemOut], summary="List reports")
def list_reports(conn: sqlite3.Connection = Depends(get_db)) -> list[dict]:
    return _list_by_type(conn, "report")


@router.get("/research", response_model=list[RepositoryItemOut], summary="List research papers")
def list_research(conn: sqlite3.Connection = Depends(get_db)) -> list[dict]:
    return _list_by_type(conn, "research")


@router.get("/countries", response_model=list[str], summary="List countries")
def list_countries(conn: sqlite3.Connection = Depends(get_db)) -> list[str]:
    """Return distinct, trimmed country names in alphabetical order."""
    return _distinct_trimmed(conn, "country")


@router.get("/sectors", response_model=list[str], summary="List sectors")
def list_sectors(conn: sqlite3.Connection = Depends(get_db)) -> list[str]:
    """Return distinct, trimmed sector names in alphabetical order."""
    return _distinct_trimmed(conn, "sector")

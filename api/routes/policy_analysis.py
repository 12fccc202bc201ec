"""
Policy analysis endpoints: per-country NDC scores.

GET /api/policy-analysis                       → all assessments
GET /api/policy-analysis/compare?countries=... → assessments for a set of countries
GET /api/policy-analysis/ranking/{metric}      → countries ranked by one score
GET /api/policy-analysis/{country}             → assessments for one country or 404

Every assessment row carries a ``classification`` derived from its
overall index (see utils/scoring.py).  The ranking endpoint interpolates
the metric name into SQL only after it has passed the allow-list check.
"""

import sqlite3

from fastapi import APIRouter, Depends, Query

from api.database import get_db
from api.models import PolicyAnalysisOut, RankingEntry
from utils.database import execute
from utils.errors import NotFoundError, ValidationError
from utils.query import (
    build_where_clause,
    contains,
    parse_csv_param,
    validate_ranking_metric,
)
from utils.scoring import classify_score

router = APIRouter(prefix="/policy-analysis", tags=["policy-analysis"])

_SELECT_COLUMNS = """
    id, country, governance_score, mitigation_score, adaptation_score,
    overall_index, source, created_at, updated_at
"""


def _with_classification(rows: list[dict]) -> list[dict]:
    for row in rows:
        row["classification"] = classify_score(row.get("overall_index"))
    return rows


@router.get(
    "",
    response_model=list[PolicyAnalysisOut],
    summary="List policy analyses",
)
def list_analyses(
    country: str | None = Query(None, description="Exact country match"),
    source: str | None = Query(None, description="Substring of the assessment source"),
    conn: sqlite3.Connection = Depends(get_db),
) -> list[dict]:
    """Return assessments, highest overall index first."""
    where, params = build_where_clause(
        {"country": country, "source": contains(source)}, exact=("country",)
    )
    sql = (
        f"SELECT {_SELECT_COLUMNS} FROM policy_analysis {where} "
        "ORDER BY overall_index DESC, country ASC"
    )
    return _with_classification(execute(conn, sql, params).rows)


@router.get(
    "/compare",
    response_model=list[PolicyAnalysisOut],
    summary="Compare countries",
    responses={400: {"description": "Missing countries parameter"}},
)
def compare_countries(
    countries: str | None = Query(
        None, description="Comma-separated country names, e.g. Kenya,Rwanda"),
    conn: sqlite3.Connection = Depends(get_db),
) -> list[dict]:
    names = parse_csv_param(countries)
    if not names:
        raise ValidationError("Countries parameter required")

    where, params = build_where_clause({"country": names})
    sql = (
        f"SELECT {_SELECT_COLUMNS} FROM policy_analysis {where} "
        "ORDER BY overall_index DESC, country ASC"
    )
    return _with_classification(execute(conn, sql, params).rows)


@router.get(
    "/ranking/{metric}",
    response_model=list[RankingEntry],
    summary="Rank countries by a score",
    responses={400: {"description": "Metric not rankable"}},
)
def rank_by_metric(
    metric: str,
    conn: sqlite3.Connection = Depends(get_db),
) -> list[dict]:
    """Return ``{country, <metric>, source}`` objects, best score first.

    Rows where the metric is NULL are excluded.
    """
    column = validate_ranking_metric(metric)
    sql = (
        f"SELECT country, {column}, source FROM policy_analysis "
        f"WHERE {column} IS NOT NULL "
        f"ORDER BY {column} DESC, country ASC"
    )
    return execute(conn, sql).rows


@router.get(
    "/{country}",
    response_model=list[PolicyAnalysisOut],
    summary="Policy analyses for a country",
    responses={404: {"description": "No analysis for this country"}},
)
def analyses_by_country(
    country: str,
    conn: sqlite3.Connection = Depends(get_db),
) -> list[dict]:
    where, params = build_where_clause({"country": country}, exact=("country",))
    rows = execute(
        conn,
        f"SELECT {_SELECT_COLUMNS} FROM policy_analysis {where} "
        "ORDER BY source DESC",
        params,
    ).rows
    if not rows:
        raise NotFoundError("No analysis data found for this country")
    return _with_classification(rows)

"""
Dashboard statistics endpoint.

GET /api/stats/overview → headline counts and policy-analysis index summary
"""

import sqlite3

from fastapi import APIRouter, Depends

from api.database import get_db
from api.models import StatsOverview
from utils.database import fetch_one

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/overview", response_model=StatsOverview, summary="Dashboard overview")
def overview(conn: sqlite3.Connection = Depends(get_db)) -> dict:
    """Return document totals and the spread of overall index values."""
    totals = fetch_one(conn, """
        SELECT
            COALESCE(SUM(CASE WHEN type = 'policy'   THEN 1 ELSE 0 END), 0) AS total_policies,
            COALESCE(SUM(CASE WHEN type = 'report'   THEN 1 ELSE 0 END), 0) AS total_reports,
            COALESCE(SUM(CASE WHEN type = 'research' THEN 1 ELSE 0 END), 0) AS total_research,
            COUNT(DISTINCT country)                                         AS total_countries
        FROM repository_items
    """)
    scores = fetch_one(conn, """
        SELECT
            COUNT(DISTINCT country) AS countries_analyzed,
            AVG(overall_index)      AS avg_overall_index,
            MAX(overall_index)      AS highest_index,
            MIN(overall_index)      AS lowest_index
        FROM policy_analysis
    """)

    result = {**totals, **scores}
    if result["avg_overall_index"] is not None:
        result["avg_overall_index"] = round(result["avg_overall_index"], 2)
    return result

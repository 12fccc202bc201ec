"""
Map aggregation endpoints.

GET /api/map/regions                          → item counts per sector
GET /api/map/climate-indicators/{country}     → latest cached indicators
"""

import sqlite3

from fastapi import APIRouter, Depends

from api.database import get_db
from api.models import ClimateIndicatorOut, SectorAggregate
from utils.database import execute

router = APIRouter(prefix="/map", tags=["map"])

INDICATOR_LIMIT = 12


@router.get("/regions", response_model=list[SectorAggregate], summary="Items per sector")
def sector_aggregates(conn: sqlite3.Connection = Depends(get_db)) -> list[dict]:
    """Count repository items per sector, broken down by type."""
    sql = """
        SELECT
            sector,
            COUNT(*)                                             AS total_items,
            SUM(CASE WHEN type = 'policy'   THEN 1 ELSE 0 END)   AS total_policies,
            SUM(CASE WHEN type = 'report'   THEN 1 ELSE 0 END)   AS total_reports,
            SUM(CASE WHEN type = 'research' THEN 1 ELSE 0 END)   AS total_research
        FROM repository_items
        WHERE sector IS NOT NULL
        GROUP BY sector
        ORDER BY sector
    """
    return execute(conn, sql).rows


@router.get(
    "/climate-indicators/{country}",
    response_model=list[ClimateIndicatorOut],
    summary="Latest climate indicators for a country",
)
def climate_indicators(
    country: str,
    conn: sqlite3.Connection = Depends(get_db),
) -> list[dict]:
    sql = """
        SELECT metric, year, month, value
        FROM cached_climate_data
        WHERE country = ?
        ORDER BY year DESC, month DESC, id DESC
        LIMIT ?
    """
    return execute(conn, sql, (country, INDICATOR_LIMIT)).rows

"""
Climate cache endpoints.

GET /api/climate/metrics              → distinct cached metric names
GET /api/climate/{country}/{metric}   → unexpired cached rows, or a placeholder

The API only reads the cache; rows are written by seed_hub_db.py.  A miss
never triggers a fetch from an external provider.
"""

import json
import sqlite3

from fastapi import APIRouter, Depends, Query

from api.database import get_db
from api.models import ClimateDataResponse
from utils.database import execute
from utils.query import build_where_clause

router = APIRouter(prefix="/climate", tags=["climate"])

PLACEHOLDER_SOURCE = "external-api-placeholder"
PLACEHOLDER_MESSAGE = (
    "External API integration pending. Sample data available in cache."
)

# A NULL expiry never compares greater, so such rows are always a miss.
_UNEXPIRED = ("datetime(expires_at) > datetime('now')", [])


def _decode_raw(value):
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


@router.get("/metrics", response_model=list[str], summary="List cached metrics")
def list_metrics(conn: sqlite3.Connection = Depends(get_db)) -> list[str]:
    rows = execute(
        conn,
        "SELECT DISTINCT metric FROM cached_climate_data ORDER BY metric",
    ).rows
    return [r["metric"] for r in rows]


@router.get(
    "/{country}/{metric}",
    response_model=ClimateDataResponse,
    summary="Cached climate data for a country and metric",
)
def get_climate_data(
    country: str,
    metric: str,
    year: int | None = Query(None, description="Measurement year"),
    month: int | None = Query(None, ge=1, le=12, description="Month 1–12"),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict:
    """Return unexpired cached rows, most recent first.

    When nothing usable is cached the response has
    ``source="external-api-placeholder"`` and an empty ``data`` list.
    """
    where, params = build_where_clause(
        {"country": country, "metric": metric, "year": year, "month": month},
        extra_conditions=[_UNEXPIRED],
        exact=("country", "metric"),
    )
    rows = execute(
        conn,
        f"SELECT * FROM cached_climate_data {where} "
        "ORDER BY year DESC, month DESC, id DESC",
        params,
    ).rows

    if not rows:
        return {
            "source": PLACEHOLDER_SOURCE,
            "message": PLACEHOLDER_MESSAGE,
            "data": [],
        }

    for row in rows:
        row["raw_data"] = _decode_raw(row.get("raw_data"))
    return {"source": "cache", "data": rows}

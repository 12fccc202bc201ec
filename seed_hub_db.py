"""
Seed the climate hub database from CSV exports.

Creates (or migrates) the schema, then for every CSV given on the command
line deletes the existing rows of that table and reloads it inside a single
transaction.  Rows that violate a constraint (blank title, unknown type,
score outside 0–100, duplicate country/source, ...) are logged and skipped;
the rest of the file still loads.

Expected CSV headers:
  repository   title,type,country,year,description,source,link,file_path,sector
  policy       country,governance_score,mitigation_score,adaptation_score,overall_index,source
  climate      country,metric,year,month,value,data_source,raw_data[,expires_at]

Climate rows without an ``expires_at`` column expire ``--cache-ttl-days``
after loading.  Expired cache rows are purged whenever climate data is
loaded.

Usage:
    python seed_hub_db.py --repository-csv data/csv/repository-data.csv \\
                          --policy-csv data/csv/policy-analysis.csv
    python seed_hub_db.py --db /path/to/hub.sqlite --climate-csv climate.csv
    python seed_hub_db.py --rebuild --repository-csv data/csv/repository-data.csv
"""

import argparse
import csv
import logging
import sqlite3
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable

from utils.config import DEFAULT_DB_PATH, KnownValues
from utils.database import get_table_count
from utils.errors import DataAccessError
from utils.schema import create_database

logger = logging.getLogger("seed_hub_db")

DEFAULT_CACHE_TTL_DAYS = 7

_REPOSITORY_INSERT = """
    INSERT INTO repository_items
        (title, type, country, year, description, source, link, file_path, sector)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_POLICY_INSERT = """
    INSERT INTO policy_analysis
        (country, governance_score, mitigation_score, adaptation_score,
         overall_index, source)
    VALUES (?, ?, ?, ?, ?, ?)
"""

_CLIMATE_INSERT = """
    INSERT INTO cached_climate_data
        (country, metric, year, month, value, data_source, raw_data, expires_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""


# ── CSV value coercion ───────────────────────────────────────────────────────

def _text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _int(value: str | None) -> int | None:
    value = _text(value)
    if value is None:
        return None
    try:
        return int(float(value))
    except ValueError:
        return None


def _float(value: str | None) -> float | None:
    value = _text(value)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def read_csv(path: Path) -> list[dict]:
    """Read a CSV file with a header row into a list of dicts."""
    with open(path, newline="", encoding="utf-8-sig") as f:
        return list(csv.DictReader(f))


def _sqlite_timestamp(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M:%S")


# ── Loaders ──────────────────────────────────────────────────────────────────

def _reload(conn: sqlite3.Connection, table: str, insert_sql: str,
            rows: Iterable[tuple],
            reject: Callable[[tuple], str | None] | None = None) -> tuple[int, int]:
    """Replace the contents of *table* with *rows* in one transaction.

    *reject* may return a reason for skipping a row before it is inserted.

    Returns (inserted, skipped).
    """
    inserted = skipped = 0
    with conn:
        conn.execute(f"DELETE FROM {table}")
        for line_no, values in enumerate(rows, start=2):
            reason = reject(values) if reject else None
            if reason:
                logger.warning("%s: skipped CSV line %d: %s", table, line_no, reason)
                skipped += 1
                continue
            try:
                conn.execute(insert_sql, values)
            except sqlite3.IntegrityError as exc:
                logger.warning("%s: skipped CSV line %d: %s", table, line_no, exc)
                skipped += 1
                continue
            inserted += 1
    return inserted, skipped


def _unknown_item_type(values: tuple) -> str | None:
    if KnownValues.is_valid_item_type(values[1]):
        return None
    return f"unknown item type {values[1]!r}"


def load_repository(conn: sqlite3.Connection, rows: list[dict]) -> tuple[int, int]:
    """Replace repository_items with *rows*."""
    values = (
        (
            _text(r.get("title")) or "",
            (_text(r.get("type")) or "").lower(),
            _text(r.get("country")),
            _int(r.get("year")),
            _text(r.get("description")),
            _text(r.get("source")),
            _text(r.get("link")),
            _text(r.get("file_path")),
            _text(r.get("sector")),
        )
        for r in rows
    )
    return _reload(conn, "repository_items", _REPOSITORY_INSERT, values,
                   reject=_unknown_item_type)


def load_policy_analysis(conn: sqlite3.Connection,
                         rows: list[dict]) -> tuple[int, int]:
    """Replace policy_analysis with *rows*."""
    values = (
        (
            _text(r.get("country")),
            _float(r.get("governance_score")),
            _float(r.get("mitigation_score")),
            _float(r.get("adaptation_score")),
            _float(r.get("overall_index")),
            _text(r.get("source")),
        )
        for r in rows
    )
    return _reload(conn, "policy_analysis", _POLICY_INSERT, values)


def purge_expired_climate(conn: sqlite3.Connection) -> int:
    """Delete cached climate rows whose expiry has passed."""
    cur = conn.execute(
        "DELETE FROM cached_climate_data "
        "WHERE expires_at IS NULL OR datetime(expires_at) <= datetime('now')"
    )
    return cur.rowcount


def upsert_climate_metrics(conn: sqlite3.Connection, rows: list[dict],
                           ttl_days: int = DEFAULT_CACHE_TTL_DAYS) -> tuple[int, int]:
    """Write climate rows into the cache, replacing rows with the same identity.

    A row's identity is (country, metric, year, month), with an absent
    month denoting an annual value.  Rows carrying their own ``expires_at``
    keep it; the others expire ``ttl_days`` from now.  Expired rows are
    purged first.

    Returns (written, skipped).
    """
    default_expiry = _sqlite_timestamp(
        datetime.now(timezone.utc) + timedelta(days=ttl_days)
    )
    written = skipped = 0
    with conn:
        purged = purge_expired_climate(conn)
        if purged:
            logger.info("cached_climate_data: purged %d expired rows", purged)
        for line_no, r in enumerate(rows, start=2):
            key = (
                _text(r.get("country")),
                _text(r.get("metric")),
                _int(r.get("year")),
                _int(r.get("month")),
            )
            try:
                conn.execute(
                    "DELETE FROM cached_climate_data WHERE country = ? "
                    "AND metric = ? AND year = ? AND month IS ?",
                    key,
                )
                conn.execute(_CLIMATE_INSERT, key + (
                    _float(r.get("value")),
                    _text(r.get("data_source")),
                    _text(r.get("raw_data")),
                    _text(r.get("expires_at")) or default_expiry,
                ))
            except sqlite3.IntegrityError as exc:
                logger.warning("cached_climate_data: skipped CSV line %d: %s",
                               line_no, exc)
                skipped += 1
                continue
            written += 1
    return written, skipped


# ── CLI ──────────────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Create the climate hub database and load it from CSV files."
    )
    parser.add_argument(
        "--db",
        default=str(DEFAULT_DB_PATH),
        help=f"Path to the SQLite database (default: {DEFAULT_DB_PATH})",
    )
    parser.add_argument("--repository-csv", type=Path,
                        help="CSV of policies, reports and research papers")
    parser.add_argument("--policy-csv", type=Path,
                        help="CSV of per-country policy analysis scores")
    parser.add_argument("--climate-csv", type=Path,
                        help="CSV of climate metrics to cache")
    parser.add_argument(
        "--cache-ttl-days",
        type=int,
        default=DEFAULT_CACHE_TTL_DAYS,
        help=f"Days until loaded climate rows expire (default: {DEFAULT_CACHE_TTL_DAYS})",
    )
    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Drop and recreate all tables before loading",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    sources = {
        "repository_items": args.repository_csv,
        "policy_analysis": args.policy_csv,
        "cached_climate_data": args.climate_csv,
    }
    for table, path in sources.items():
        if path is not None and not path.exists():
            print(f"Error: CSV for {table} not found at {path}", file=sys.stderr)
            return 1
    if args.cache_ttl_days < 0:
        print("Error: --cache-ttl-days must be >= 0", file=sys.stderr)
        return 1

    db_path = Path(args.db)
    try:
        conn = create_database(db_path, rebuild=args.rebuild)
    except sqlite3.Error as exc:
        print(f"Error: cannot open database at {db_path}: {exc}", file=sys.stderr)
        return 1

    summary: dict[str, tuple[int, int]] = {}
    try:
        if args.repository_csv:
            summary["repository_items"] = load_repository(
                conn, read_csv(args.repository_csv))
        if args.policy_csv:
            summary["policy_analysis"] = load_policy_analysis(
                conn, read_csv(args.policy_csv))
        if args.climate_csv:
            summary["cached_climate_data"] = upsert_climate_metrics(
                conn, read_csv(args.climate_csv), ttl_days=args.cache_ttl_days)
        totals = {table: get_table_count(conn, table) for table in sources}
    except (sqlite3.Error, DataAccessError) as exc:
        print(f"Error: seeding failed: {exc}", file=sys.stderr)
        return 1
    finally:
        conn.close()

    print(f"Database: {db_path}")
    for table, (inserted, skipped) in summary.items():
        line = f"  Loaded {inserted:,} rows into {table}"
        if skipped:
            line += f" ({skipped:,} skipped)"
        print(line)
    for table, count in totals.items():
        print(f"  {table}: {count:,} rows total")
    print("\nSeeding complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

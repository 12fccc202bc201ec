"""
Relational schema for the climate hub.

Three tables:

    repository_items     policies, reports and research documents
    policy_analysis      per-country, per-source governance/mitigation/
                         adaptation scores and an overall index
    cached_climate_data  time-boxed external climate metrics

Schema changes are applied through ``migrate()``, which records each applied
version in ``schema_version`` and skips versions already present, so it is
safe to call on every startup of the seeding command.

Score columns carry CHECK constraints (NULL or 0–100); the dashboard's
classification bands assume that range.
"""

import sqlite3
from pathlib import Path

from utils.database import init_pragmas

TABLES = ("repository_items", "policy_analysis", "cached_climate_data")

_DDL_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER PRIMARY KEY,
    description TEXT NOT NULL,
    applied_at  TEXT DEFAULT CURRENT_TIMESTAMP
)
"""

_DDL_001_CORE = """
CREATE TABLE IF NOT EXISTS repository_items (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    title       VARCHAR(500) NOT NULL
                CHECK (length(trim(title)) > 0 AND length(title) <= 500),
    type        VARCHAR(50) NOT NULL
                CHECK (type IN ('policy', 'report', 'research')),
    country     VARCHAR(100),
    year        INTEGER,
    description TEXT,
    source      TEXT,
    link        VARCHAR(1000) CHECK (link IS NULL OR length(link) <= 1000),
    file_path   VARCHAR(500) CHECK (file_path IS NULL OR length(file_path) <= 500),
    sector      VARCHAR(100),
    created_at  DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at  DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_repository_type    ON repository_items(type);
CREATE INDEX IF NOT EXISTS idx_repository_country ON repository_items(country);
CREATE INDEX IF NOT EXISTS idx_repository_year    ON repository_items(year);
CREATE INDEX IF NOT EXISTS idx_repository_sector  ON repository_items(sector);

CREATE TABLE IF NOT EXISTS policy_analysis (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    country          VARCHAR(100) NOT NULL,
    governance_score DECIMAL(5,2)
                     CHECK (governance_score IS NULL OR governance_score BETWEEN 0 AND 100),
    mitigation_score DECIMAL(5,2)
                     CHECK (mitigation_score IS NULL OR mitigation_score BETWEEN 0 AND 100),
    adaptation_score DECIMAL(5,2)
                     CHECK (adaptation_score IS NULL OR adaptation_score BETWEEN 0 AND 100),
    overall_index    DECIMAL(5,2)
                     CHECK (overall_index IS NULL OR overall_index BETWEEN 0 AND 100),
    source           TEXT NOT NULL,
    created_at       DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at       DATETIME DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(country, source)
);

CREATE INDEX IF NOT EXISTS idx_policy_analysis_country ON policy_analysis(country);

CREATE TABLE IF NOT EXISTS cached_climate_data (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    country     VARCHAR(100) NOT NULL,
    metric      VARCHAR(100) NOT NULL,
    year        INTEGER NOT NULL,
    month       INTEGER CHECK (month IS NULL OR month BETWEEN 1 AND 12),
    value       DECIMAL(10,2),
    data_source VARCHAR(100),
    raw_data    TEXT,
    cached_at   DATETIME DEFAULT CURRENT_TIMESTAMP,
    expires_at  DATETIME,
    UNIQUE(country, metric, year, month)
);

CREATE INDEX IF NOT EXISTS idx_climate_country_metric
    ON cached_climate_data(country, metric, year);

-- UNIQUE treats NULL months as distinct; annual rows need this as well.
CREATE UNIQUE INDEX IF NOT EXISTS uq_climate_annual
    ON cached_climate_data(country, metric, year, IFNULL(month, 0));

CREATE TRIGGER IF NOT EXISTS repository_items_touch
AFTER UPDATE ON repository_items
WHEN new.updated_at = old.updated_at BEGIN
    UPDATE repository_items SET updated_at = CURRENT_TIMESTAMP WHERE id = new.id;
END;

CREATE TRIGGER IF NOT EXISTS policy_analysis_touch
AFTER UPDATE ON policy_analysis
WHEN new.updated_at = old.updated_at BEGIN
    UPDATE policy_analysis SET updated_at = CURRENT_TIMESTAMP WHERE id = new.id;
END;
"""

# (version, description, sql)
_MIGRATIONS: list[tuple[int, str, str]] = [
    (1, "core tables: repository_items, policy_analysis, cached_climate_data",
     _DDL_001_CORE),
]


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 if none applied)."""
    try:
        row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] or 0
    except sqlite3.OperationalError:
        # schema_version table doesn't exist yet
        return 0


def migrate(conn: sqlite3.Connection) -> int:
    """Apply all pending migrations in order.

    Idempotent: already-applied migrations are skipped.

    Returns:
        Number of migrations applied in this call (0 if already up to date).
    """
    conn.execute(_DDL_SCHEMA_VERSION)
    conn.commit()

    current = current_version(conn)
    applied = 0

    for version, description, sql in _MIGRATIONS:
        if version <= current:
            continue
        conn.executescript(sql)
        conn.execute(
            "INSERT INTO schema_version (version, description) VALUES (?, ?)",
            (version, description),
        )
        conn.commit()
        applied += 1

    return applied


def drop_all(conn: sqlite3.Connection) -> None:
    """Drop the hub tables and the version table (used by ``--rebuild``)."""
    for table in TABLES:
        conn.execute(f"DROP TABLE IF EXISTS {table}")
    conn.execute("DROP TABLE IF EXISTS schema_version")
    conn.commit()


def create_database(db_path: Path, rebuild: bool = False) -> sqlite3.Connection:
    """Open (or create) a writable hub database and run all migrations.

    Args:
        db_path: Filesystem path for the SQLite file (created if absent,
            parent directories included).
        rebuild: Drop existing tables before migrating.

    Returns:
        An open connection with ``sqlite3.Row`` rows and WAL mode.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    init_pragmas(conn)
    if rebuild:
        drop_all(conn)
    migrate(conn)
    return conn

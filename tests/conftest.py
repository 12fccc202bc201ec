"""
Pytest fixtures for the climate hub tests.

Provides temporary SQLite databases built with the real schema
(utils.schema.create_database) and a TestClient bound to an app created
against them.

Sample data in ``hub_db``:

    repository_items   7 rows: 3 policies, 2 reports, 2 research papers
                       across Kenya, Rwanda, Tanzania and Uganda
    policy_analysis    5 rows: Rwanda 76.2, Kenya 70.8 and 62.3 (two
                       sources), Uganda 59.0, Tanzania with no overall index
    cached_climate_data  Kenya temperature/rainfall rows (one expired),
                       a Rwanda row that is expired, a Uganda row with no
                       expiry
"""
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from api.app import create_app
from utils.schema import create_database


REPOSITORY_ROWS = [
    # (title, type, country, year, description, source, link, sector)
    ("Kenya Climate Change Act", "policy", "Kenya", 2016,
     "Framework law establishing the Climate Change Council",
     "Government of Kenya", "https://example.org/kenya-cca", "Governance"),
    ("Rwanda Green Growth and Climate Resilience Strategy", "policy", "Rwanda", 2011,
     "National strategy for low-carbon growth",
     "Government of Rwanda", None, "Energy"),
    ("Uganda National Climate Change Policy", "policy", "Uganda", 2015,
     "Policy on adaptation and mitigation",
     "Ministry of Water and Environment", None, "Agriculture"),
    ("EAC Climate Change Master Plan Review", "report", "Tanzania", 2020,
     "Regional review of the master plan",
     "EAC Secretariat", None, "Governance"),
    ("Drought Resilience in Arid Counties", "research", "Kenya", 2021,
     "Study of household coping strategies",
     "University of Nairobi", None, "Agriculture"),
    ("Solar Mini-grid Deployment Assessment", "report", "Rwanda", 2020,
     "Assessment of off-grid solar programmes",
     "Rwanda Energy Group", None, None),
    ("Coastal Adaptation in Zanzibar", "research", "Tanzania", 2019,
     "Sea level rise and shoreline management",
     None, None, "Water"),
]

POLICY_ROWS = [
    # (country, governance, mitigation, adaptation, overall, source)
    ("Kenya", 72.5, 68.0, 71.9, 70.8, "NDC Review 2023"),
    ("Rwanda", 78.5, 74.0, 76.1, 76.2, "NDC Review 2023"),
    ("Uganda", 60.0, None, 58.0, 59.0, "NDC Review 2023"),
    ("Tanzania", 45.0, 40.0, 42.0, None, "NDC Review 2023"),
    ("Kenya", 65.0, 60.0, 62.0, 62.3, "Climate Action Tracker 2022"),
]

# (country, metric, year, month, value, raw_data, expiry modifier or None)
CLIMATE_ROWS = [
    ("Kenya", "temperature", 2023, 7, 22.4, '{"provider": "open-meteo"}', "+1 day"),
    ("Kenya", "temperature", 2023, 6, 21.9, "not json", "+1 day"),
    ("Kenya", "temperature", 2022, 12, 23.1, None, "-1 day"),
    ("Kenya", "rainfall", 2024, 3, 88.2, None, "+1 day"),
    ("Rwanda", "temperature", 2022, 1, 19.5, None, "-1 day"),
    ("Uganda", "rainfall", 2023, None, 1200.0, None, None),
]


def insert_repository_items(conn, rows):
    conn.executemany(
        "INSERT INTO repository_items "
        "(title, type, country, year, description, source, link, sector) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        rows,
    )


def insert_climate_rows(conn, rows):
    for country, metric, year, month, value, raw, expiry in rows:
        conn.execute(
            "INSERT INTO cached_climate_data "
            "(country, metric, year, month, value, data_source, raw_data, expires_at) "
            "VALUES (?, ?, ?, ?, ?, 'Open-Meteo', ?, "
            "CASE WHEN ? IS NULL THEN NULL ELSE datetime('now', ?) END)",
            (country, metric, year, month, value, raw, expiry, expiry),
        )


@pytest.fixture()
def hub_db(tmp_path):
    """Return a Path to a hub database loaded with the sample rows above."""
    db_path = tmp_path / "hub.sqlite"
    conn = create_database(db_path)
    insert_repository_items(conn, REPOSITORY_ROWS)
    conn.executemany(
        "INSERT INTO policy_analysis "
        "(country, governance_score, mitigation_score, adaptation_score, "
        "overall_index, source) VALUES (?, ?, ?, ?, ?, ?)",
        POLICY_ROWS,
    )
    insert_climate_rows(conn, CLIMATE_ROWS)
    conn.commit()
    conn.close()
    return db_path


@pytest.fixture()
def paged_db(tmp_path):
    """Return a Path to a database holding 25 reports from the same year.

    Ids run 1..25 and every row shares year and created_at, so list order
    is decided by the id tiebreaker alone.
    """
    db_path = tmp_path / "paged.sqlite"
    conn = create_database(db_path)
    conn.executemany(
        "INSERT INTO repository_items (title, type, country, year, created_at) "
        "VALUES (?, 'report', 'Kenya', 2020, '2024-01-01 00:00:00')",
        [(f"Report {i:02d}",) for i in range(1, 26)],
    )
    conn.commit()
    conn.close()
    return db_path


@pytest.fixture()
def empty_db(tmp_path):
    """Return a Path to a migrated database with no rows."""
    db_path = tmp_path / "empty.sqlite"
    create_database(db_path).close()
    return db_path


def client_for(db_path):
    app = create_app(db_path=db_path)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def client(hub_db):
    """TestClient for an app serving ``hub_db``; the store is opened on entry."""
    with client_for(hub_db) as c:
        yield c


@pytest.fixture()
def paged_client(paged_db):
    with client_for(paged_db) as c:
        yield c


@pytest.fixture()
def empty_client(empty_db):
    with client_for(empty_db) as c:
        yield c

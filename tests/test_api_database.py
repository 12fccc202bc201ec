"""
Tests for api/database.py — HubStore and the get_db() dependency

Verifies the store lifecycle, read-only pooled connections, checkout
timeouts, stale-connection reclaim, and that request handlers always
return their connection.
"""
import sqlite3
import sys
import time
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from api.database import HubStore
from utils.errors import ConfigurationError, DataAccessError


@pytest.fixture()
def store(hub_db):
    s = HubStore(hub_db, pool_size=2, checkout_timeout=0.05, reclaim_after=60)
    s.open()
    yield s
    s.close()


class TestLifecycle:
    def test_open_missing_database(self, tmp_path):
        s = HubStore(tmp_path / "missing.sqlite")
        with pytest.raises(ConfigurationError) as exc_info:
            s.open()
        assert "seed_hub_db.py" in exc_info.value.message
        assert not s.is_open

    def test_open_and_close(self, hub_db):
        s = HubStore(hub_db)
        s.open()
        assert s.is_open
        s.close()
        assert not s.is_open

    def test_acquire_when_closed(self, hub_db):
        s = HubStore(hub_db)
        with pytest.raises(DataAccessError):
            s.acquire()

    def test_close_closes_checked_out_connections(self, store):
        conn = store.acquire()
        store.close()
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")

    def test_ping(self, store):
        assert store.ping() is True
        store.close()
        assert store.ping() is False


class TestConnections:
    def test_row_factory(self, store):
        with store.connection() as conn:
            row = conn.execute("SELECT 1 AS val").fetchone()
            assert row["val"] == 1

    def test_connections_are_read_only(self, store):
        with store.connection() as conn:
            with pytest.raises(sqlite3.OperationalError):
                conn.execute("DELETE FROM repository_items")

    def test_connection_returned_to_pool(self, store):
        with store.connection() as first:
            pass
        assert store.stats()["checked_out"] == 0
        with store.connection() as second:
            assert second is first

    def test_returned_even_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.connection():
                raise RuntimeError("boom")
        assert store.stats()["checked_out"] == 0

    def test_pool_grows_to_size(self, store):
        a = store.acquire()
        b = store.acquire()
        assert a is not b
        assert store.stats()["active"] == 2
        store.release(a)
        store.release(b)
        assert store.stats()["idle"] == 2


class TestExhaustion:
    def test_checkout_timeout(self, hub_db):
        s = HubStore(hub_db, pool_size=1, checkout_timeout=0.05, reclaim_after=60)
        s.open()
        try:
            held = s.acquire()
            start = time.monotonic()
            with pytest.raises(DataAccessError):
                s.acquire()
            assert time.monotonic() - start >= 0.04
            s.release(held)
            assert s.acquire() is held
        finally:
            s.close()

    def test_stale_connection_reclaimed(self, hub_db):
        s = HubStore(hub_db, pool_size=1, checkout_timeout=0.01, reclaim_after=0)
        s.open()
        try:
            stale = s.acquire()
            fresh = s.acquire()
            assert fresh is not stale
            with pytest.raises(sqlite3.ProgrammingError):
                stale.execute("SELECT 1")
            # Releasing a reclaimed connection must not grow the pool.
            s.release(stale)
            s.release(fresh)
            assert s.stats()["active"] == 1
            assert s.stats()["idle"] == 1
        finally:
            s.close()


class TestGetDb:
    def test_requests_release_connections(self, client):
        store = client.app.state.store
        assert client.get("/api/repository/items").status_code == 200
        assert client.get("/api/repository/items/99999").status_code == 404
        assert store.stats()["checked_out"] == 0

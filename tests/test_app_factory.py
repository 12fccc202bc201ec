"""
Tests for api/app.py — create_app() factory

Verifies the FastAPI app is created with correct configuration, routers
are registered, the store follows the app lifespan, errors use the JSON
error body, and the health check reports store reachability.
"""
import json
import logging
import sqlite3
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import api.app as app_module
from api.app import _JsonFormatter, create_app
from utils.config import AppConfig
from utils.errors import ConfigurationError


class TestCreateApp:
    def test_creates_fastapi_instance(self, hub_db):
        app = create_app(db_path=hub_db)
        assert app.title == "EAF Climate Hub API"
        assert app.version == "1.0.0"

    def test_registers_api_routes(self, hub_db):
        app = create_app(db_path=hub_db)
        paths = set(app.openapi()["paths"])
        for expected in (
            "/api/health",
            "/api/repository/items",
            "/api/repository/items/{item_id}",
            "/api/policies/compare",
            "/api/policy-analysis",
            "/api/policy-analysis/ranking/{metric}",
            "/api/climate/{country}/{metric}",
            "/api/map/regions",
            "/api/stats/overview",
        ):
            assert expected in paths

    def test_store_not_opened_until_startup(self, hub_db):
        app = create_app(db_path=hub_db)
        assert not app.state.store.is_open
        with TestClient(app):
            assert app.state.store.is_open
        assert not app.state.store.is_open

    def test_config_object_used(self, hub_db):
        cfg = AppConfig()
        cfg.pool_size = 3
        app = create_app(db_path=hub_db, config=cfg)
        assert app.state.store.db_path == hub_db
        assert app.state.store.stats()["pool_size"] == 3

    def test_missing_database_fails_startup(self, tmp_path):
        app = create_app(db_path=tmp_path / "missing.sqlite")
        with pytest.raises(ConfigurationError):
            with TestClient(app):
                pass

    def test_openapi_docs(self, client):
        assert client.get("/docs").status_code == 200
        assert "/api/stats/overview" in client.get("/openapi.json").json()["paths"]


class TestHealth:
    def test_healthy(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert "timestamp" in body
        assert "error" not in body

    def test_unhealthy_when_store_closed(self, client):
        client.app.state.store.close()
        resp = client.get("/api/health")
        assert resp.status_code == 500
        body = resp.json()
        assert body["status"] == "unhealthy"
        assert body["database"] == "disconnected"
        assert body["error"]
        assert "timestamp" in body


class TestErrorHandling:
    def test_unknown_route_is_json_404(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found", "status_code": 404}

    def test_validation_error_is_400_with_detail(self, client):
        resp = client.get("/api/climate/Kenya/temperature", params={"month": 99})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Invalid request parameters"
        assert "month" in body["detail"]

    def test_store_error_does_not_leak(self, tmp_path):
        # A database file without the hub tables
        db_path = tmp_path / "bare.sqlite"
        sqlite3.connect(str(db_path)).close()
        app = create_app(db_path=db_path)
        with TestClient(app, raise_server_exceptions=False) as c:
            resp = c.get("/api/repository/items")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error", "status_code": 500}
        assert "no such table" not in resp.text

    def test_closed_store_request_is_500(self, client):
        client.app.state.store.close()
        resp = client.get("/api/repository/countries")
        assert resp.status_code == 500
        assert resp.json()["error"] == "Internal server error"


class TestMiddleware:
    def test_request_id_header(self, client):
        resp = client.get("/api/health")
        assert len(resp.headers["X-Request-ID"]) == 8

    def test_cors_header(self, client):
        resp = client.get("/api/health", headers={"Origin": "http://example.org"})
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_requests_are_logged(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="climate_hub_api"):
            client.get("/api/repository/countries")
        assert any("path=/api/repository/countries" in r.getMessage()
                   for r in caplog.records)


class TestJsonFormatter:
    def test_includes_extra_fields(self):
        record = logging.LogRecord("climate_hub_api", logging.INFO, __file__, 1,
                                   "request", None, None)
        record.path = "/api/health"
        record.status = 200
        data = json.loads(_JsonFormatter().format(record))
        assert data["message"] == "request"
        assert data["path"] == "/api/health"
        assert data["status"] == 200
        assert data["level"] == "INFO"


class TestMain:
    def test_exits_1_when_database_missing(self, tmp_path, monkeypatch):
        monkeypatch.setenv("APP_DB_PATH", str(tmp_path / "missing.sqlite"))
        assert app_module.main() == 1

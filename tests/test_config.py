"""
Tests for utils/config.py — AppConfig environment handling and KnownValues
"""
import sys
from pathlib import Path
from typing import get_args

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.config import DEFAULT_DB_PATH, AppConfig, ItemType, KnownValues

_ENV_VARS = (
    "APP_DB_PATH", "APP_PORT", "APP_HOST", "APP_LOG_FORMAT", "APP_LOG_LEVEL",
    "APP_CORS_ORIGINS", "APP_DB_POOL_SIZE", "APP_DB_CHECKOUT_TIMEOUT",
    "APP_DB_RECLAIM_AFTER",
)


@pytest.fixture()
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestAppConfig:
    def test_defaults(self, clean_env):
        cfg = AppConfig.from_env()
        assert cfg.db_path == DEFAULT_DB_PATH
        assert cfg.api_port == 3000
        assert cfg.api_host == "127.0.0.1"
        assert cfg.log_format == "text"
        assert cfg.log_level == "INFO"
        assert cfg.cors_origins == ["*"]
        assert cfg.pool_size == 10
        assert cfg.checkout_timeout == 30.0
        assert cfg.reclaim_after == 60.0

    def test_env_overrides(self, clean_env, tmp_path):
        clean_env.setenv("APP_DB_PATH", str(tmp_path / "hub.sqlite"))
        clean_env.setenv("APP_PORT", "8080")
        clean_env.setenv("APP_LOG_FORMAT", "json")
        clean_env.setenv("APP_LOG_LEVEL", "debug")
        clean_env.setenv("APP_DB_POOL_SIZE", "4")
        clean_env.setenv("APP_DB_CHECKOUT_TIMEOUT", "2.5")
        cfg = AppConfig.from_env()
        assert cfg.db_path == tmp_path / "hub.sqlite"
        assert cfg.api_port == 8080
        assert cfg.log_format == "json"
        assert cfg.log_level == "DEBUG"
        assert cfg.pool_size == 4
        assert cfg.checkout_timeout == 2.5

    def test_cors_origins_list(self, clean_env):
        clean_env.setenv("APP_CORS_ORIGINS",
                         "https://hub.example.org, http://localhost:5173,")
        cfg = AppConfig.from_env()
        assert cfg.cors_origins == ["https://hub.example.org", "http://localhost:5173"]

    def test_invalid_port(self, clean_env):
        clean_env.setenv("APP_PORT", "not-a-port")
        with pytest.raises(ValueError):
            AppConfig.from_env()


class TestKnownValues:
    def test_item_types(self):
        assert KnownValues.is_valid_item_type("policy")
        assert KnownValues.is_valid_item_type("research")
        assert not KnownValues.is_valid_item_type("Policy")

    def test_item_types_match_request_literal(self):
        assert KnownValues.ITEM_TYPES == get_args(ItemType) == ("policy", "report", "research")

    def test_metrics(self):
        assert KnownValues.is_valid_metric("overall_index")
        assert not KnownValues.is_valid_metric("country")
        assert len(KnownValues.RANKING_METRICS) == 4

"""Configuration management for the EAF Climate Hub.

Provides:
- ``AppConfig`` populated from environment variables
- ``KnownValues`` and ``ItemType``: closed sets of values the API and the
  seeding command validate against
"""

import os
from pathlib import Path
from typing import Literal, get_args


DEFAULT_DB_PATH = Path("data") / "eaf_climate_hub.sqlite"

ItemType = Literal["policy", "report", "research"]


class KnownValues:
    """Closed value sets used for request and CSV validation."""

    ITEM_TYPES = get_args(ItemType)

    # Columns of policy_analysis that may be ranked.  This set is the only
    # source of identifiers interpolated into SQL text.
    RANKING_METRICS = frozenset({
        "governance_score",
        "mitigation_score",
        "adaptation_score",
        "overall_index",
    })

    @classmethod
    def is_valid_item_type(cls, item_type: str) -> bool:
        return item_type in cls.ITEM_TYPES

    @classmethod
    def is_valid_metric(cls, metric: str) -> bool:
        return metric in cls.RANKING_METRICS


class AppConfig:
    """Application-level configuration loaded from environment variables.

    All env vars have defaults so the application works out of the box.

    Environment variables:
        APP_DB_PATH: Path to the SQLite database (default: data/eaf_climate_hub.sqlite)
        APP_PORT: API server port (default: 3000)
        APP_HOST: API server bind address (default: 127.0.0.1)
        APP_LOG_FORMAT: Logging format — "text" or "json" (default: text)
        APP_LOG_LEVEL: Root log level (default: INFO)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
        APP_DB_POOL_SIZE: Max DB connections in pool (default: 10)
        APP_DB_CHECKOUT_TIMEOUT: Seconds to wait for a pooled connection (default: 30)
        APP_DB_RECLAIM_AFTER: Seconds after which a checked-out connection
            is considered stale and may be reclaimed (default: 60)
    """

    def __init__(self) -> None:
        self.db_path = Path(os.getenv("APP_DB_PATH", str(DEFAULT_DB_PATH)))
        self.api_port = int(os.getenv("APP_PORT", "3000"))
        self.api_host = os.getenv("APP_HOST", "127.0.0.1")
        self.log_format = os.getenv("APP_LOG_FORMAT", "text")
        self.log_level = os.getenv("APP_LOG_LEVEL", "INFO").upper()
        raw_origins = os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )
        self.pool_size = int(os.getenv("APP_DB_POOL_SIZE", "10"))
        self.checkout_timeout = float(os.getenv("APP_DB_CHECKOUT_TIMEOUT", "30"))
        self.reclaim_after = float(os.getenv("APP_DB_RECLAIM_AFTER", "60"))

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()

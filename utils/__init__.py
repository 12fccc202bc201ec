"""Shared utilities for the EAF Climate Hub API and seeding command."""

# Errors
from utils.errors import (
    HubError,
    ValidationError,
    NotFoundError,
    DataAccessError,
    ConfigurationError,
)

# Configuration
from utils.config import (
    AppConfig,
    KnownValues,
    ItemType,
    DEFAULT_DB_PATH,
)

# Database utilities
from utils.database import (
    QueryResult,
    PageQuery,
    query_kind,
    execute,
    fetch_one,
    paginate,
    init_pragmas,
    get_table_count,
)

# Query building
from utils.query import (
    build_where_clause,
    contains,
    validate_ranking_metric,
    parse_csv_param,
    parse_id_list,
)

# Schema management
from utils.schema import create_database, migrate, current_version

# NDC classification
from utils.scoring import classify_score

__all__ = [
    # Errors
    "HubError",
    "ValidationError",
    "NotFoundError",
    "DataAccessError",
    "ConfigurationError",
    # Config
    "AppConfig",
    "KnownValues",
    "ItemType",
    "DEFAULT_DB_PATH",
    # Database
    "QueryResult",
    "PageQuery",
    "query_kind",
    "execute",
    "fetch_one",
    "paginate",
    "init_pragmas",
    "get_table_count",
    # Query
    "build_where_clause",
    "contains",
    "validate_ranking_metric",
    "parse_csv_param",
    "parse_id_list",
    # Schema
    "create_database",
    "migrate",
    "current_version",
    # Scoring
    "classify_score",
]

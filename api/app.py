"""
FastAPI application factory for the EAF Climate Hub API.

Usage:
    python -m api.app                    # Dev server on port 3000
    APP_DB_PATH=/data/hub.sqlite python -m api.app

OpenAPI docs available at http://localhost:3000/docs after starting.

The database is reached through a ``HubStore`` created here and attached
to ``app.state.store``.  It is opened in the lifespan handler, so a
missing or unreadable database aborts startup with ``ConfigurationError``.

Structured JSON logging is enabled with APP_LOG_FORMAT=json; allowed CORS
origins come from APP_CORS_ORIGINS.
"""

import json
import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.database import HubStore
from api.models import ErrorResponse, HealthOut
from api.routes import climate, policies, policy_analysis, repository, stats
from api.routes import map as map_routes
from utils.config import AppConfig
from utils.errors import ConfigurationError, HubError

SLOW_REQUEST_MS = 500.0


# ── Structured JSON logging ──────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "client_ip",
                    "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("climate_hub_api")


def configure_logging(cfg: AppConfig) -> None:
    """Install a single stream handler on the root logger."""
    handler = logging.StreamHandler()
    if cfg.log_format == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    logging.basicConfig(handlers=[handler], level=cfg.log_level, force=True)


def _error_body(error: str, status_code: int, detail: str | None = None) -> dict:
    body: dict = {"error": error, "status_code": status_code}
    if detail:
        body["detail"] = detail
    return body


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store on startup and close it on shutdown."""
    store: HubStore = app.state.store
    try:
        store.open()
    except ConfigurationError as exc:
        _logger.error("Startup failed: %s", exc.message)
        raise
    try:
        yield
    finally:
        store.close()


def create_app(db_path: Path | None = None,
               config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Override the database path (useful for testing).
        config: Settings to use instead of reading the environment.

    Returns:
        Configured FastAPI application instance.  The store is not opened
        until the application starts.
    """
    cfg = config or AppConfig.from_env()
    if db_path is not None:
        cfg.db_path = Path(db_path)
    configure_logging(cfg)

    app = FastAPI(
        title="EAF Climate Hub API",
        summary="Climate policy, research and data hub for the East African Federation.",
        description=(
            "## EAF Climate Hub API\n\n"
            "Read-only access to the hub's three datasets:\n\n"
            "- **Repository**: climate policies, reports and research papers "
            "for EAF member states.\n"
            "- **Policy analysis**: per-country NDC scores (governance, "
            "mitigation, adaptation, overall index) on a 0–100 scale, each "
            "with its classification band.\n"
            "- **Climate cache**: time-boxed climate metrics previously "
            "fetched from external providers. Expired rows are never served.\n\n"
            "Errors are returned as `{\"error\", \"status_code\", \"detail\"?}`."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "repository", "description": "Policies, reports and research documents."},
            {"name": "policies", "description": "Policy comparison by ID and by country."},
            {"name": "policy-analysis", "description": "NDC scores, rankings and comparisons."},
            {"name": "climate", "description": "Cached external climate metrics."},
            {"name": "map", "description": "Aggregates for the map view."},
            {"name": "stats", "description": "Dashboard headline numbers."},
            {"name": "meta", "description": "Health check."},
        ],
    )
    app.state.config = cfg
    app.state.store = HubStore(
        cfg.db_path,
        pool_size=cfg.pool_size,
        checkout_timeout=cfg.checkout_timeout,
        reclaim_after=cfg.reclaim_after,
    )

    # ── CORS middleware ──────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging middleware ───────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request and tag the response with a request ID."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path

        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "client_ip": client_ip,
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f ip=%s rid=%s",
                request.method, path, response.status_code, duration_ms,
                client_ip, request_id,
            )
        if duration_ms > SLOW_REQUEST_MS:
            _logger.warning(
                "slow_request method=%s path=%s duration_ms=%.1f",
                request.method, path, duration_ms,
            )
        return response

    # ── Error handlers ───────────────────────────────────────────────────────

    @app.exception_handler(HubError)
    async def hub_error_handler(request: Request, exc: HubError):
        if exc.status_code >= 500:
            _logger.error("Server error on %s: %s", request.url.path,
                          exc.message, exc_info=exc)
            return JSONResponse(
                status_code=exc.status_code,
                content=_error_body("Internal server error", exc.status_code),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.status_code),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request,
                                         exc: RequestValidationError):
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content=_error_body("Invalid request parameters", 400, detail),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request,
                                     exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail), exc.status_code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of a traceback."""
        _logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal server error", 500),
        )

    # ── Health check ─────────────────────────────────────────────────────────

    @app.get(
        "/api/health",
        tags=["meta"],
        summary="Health check",
        response_model=HealthOut,
        response_model_exclude_none=True,
        responses={500: {"model": HealthOut, "description": "Store unreachable"}},
    )
    def health(request: Request):
        """Return 200 if the store answers ``SELECT 1``, else 500."""
        store: HubStore = request.app.state.store
        if store.ping():
            return {
                "status": "healthy",
                "database": "connected",
                "timestamp": _utc_now(),
            }
        return JSONResponse(
            status_code=500,
            content={
                "status": "unhealthy",
                "database": "disconnected",
                "error": "Database unavailable",
                "timestamp": _utc_now(),
            },
        )

    # ── Register routers ─────────────────────────────────────────────────────

    error_responses = {
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    }
    prefix = "/api"
    for module in (repository, policies, policy_analysis, climate, map_routes,
                   stats):
        app.include_router(module.router, prefix=prefix,
                           responses=error_responses)

    return app


# Singleton instance for uvicorn
app = create_app()


def main() -> int:
    """Check the database, then serve the API with uvicorn."""
    import uvicorn

    cfg = AppConfig.from_env()
    probe = HubStore(cfg.db_path)
    try:
        probe.open()
    except ConfigurationError as exc:
        _logger.error("%s", exc.message)
        return 1
    finally:
        probe.close()

    _logger.info("EAF Climate Hub API listening on http://%s:%d",
                 cfg.api_host, cfg.api_port)
    uvicorn.run(
        "api.app:app",
        host=cfg.api_host,
        port=cfg.api_port,
        log_level=cfg.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

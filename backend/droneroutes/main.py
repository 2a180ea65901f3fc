"""
Drone Routes Backend — FastAPI Application Factory
====================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers.
Who:   uvicorn (uvicorn droneroutes.main:app) and the HTTP tests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌─────────────┐ ┌──────┐ ┌──────┐          │
    │  │  Req ID  │→│  Logging    │→│ GZip │→│ CORS │          │
    │  └──────────┘ └─────────────┘ └──────┘ └──────┘          │
    │                                                          │
    │  Routers:                                                │
    │  ┌──────────────┐ ┌──────────────┐ ┌─────────────┐       │
    │  │ /api/routes  │ │ /api/drones  │ │ /health     │       │
    │  └──────────────┘ └──────────────┘ └─────────────┘       │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ Validation/CSV→400 │ NotFound→404 │ Conflict→409   │  │
    │  │ Storage→500 │ Database→500 │ anything else→500     │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)
    3. Make sure the photo bucket exists (logged, not fatal; /health reports it)

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from droneroutes import __version__
from droneroutes.config import settings
from droneroutes.database import dispose_engine
from droneroutes.exceptions import (
    ConflictError,
    CsvParseError,
    DatabaseError,
    DroneRoutesError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from droneroutes.middleware.logging import RequestLoggingMiddleware
from droneroutes.middleware.request_id import RequestIDMiddleware, request_id_var
from droneroutes.routes import drones, flight_routes, health
from droneroutes.services.object_store import object_store

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once from the lifespan, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that chatter at INFO/DEBUG for every call
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Drone Routes Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    try:
        await object_store.ensure_bucket()
    except StorageError as e:
        # Routes without photos still work; /health reports the store as down
        logger.error("Photo storage not ready: %s | %s", e.message, e.context)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Drone Routes Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, message: str, details=None) -> JSONResponse:
    content = {
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the ErrorResponse shape.

    Handler hierarchy:
        ValidationError   → 400 Bad Request
        CsvParseError     → 400 Bad Request
        NotFoundError     → 404 Not Found
        ConflictError     → 409 Conflict
        StorageError      → 500 Internal Server Error
        DatabaseError     → 500 Internal Server Error
        DroneRoutesError  → 500 Internal Server Error (catch-all for custom)
        Exception         → 500 Internal Server Error (unexpected errors)

    Server-side errors return a generic message; their context is only logged.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(CsvParseError)
    async def handle_csv_parse_error(request: Request, exc: CsvParseError):
        logger.warning("[%s] CSV parse error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "csv_parse_error", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        logger.warning("[%s] Conflict: %s", request_id_var.get(""), exc.message)
        return _error_response(409, "conflict", exc.message)

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error(
            "[%s] Storage error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return _error_response(500, "storage_error", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return _error_response(
            500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(DroneRoutesError)
    async def handle_app_error(request: Request, exc: DroneRoutesError):
        logger.error(
            "[%s] %s: %s | Context: %s",
            request_id_var.get(""), type(exc).__name__, exc.message, exc.context,
        )
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Stack trace goes to the log only; the client gets the request ID."""
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Assemble middleware, exception handlers and routers into a FastAPI app."""
    app = FastAPI(
        title="Drone Routes API",
        description=(
            "Flight route backend: upload a drone telemetry CSV with its photos, "
            "get back an ordered route with per-point photo links."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(flight_routes.router)
    app.include_router(drones.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()

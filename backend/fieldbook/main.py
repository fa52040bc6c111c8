"""
Fieldbook Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
       Tests pass their own RecordStore and FileRecordSource; in production
       the lifespan builds both from settings. The RecordService is built
       here (or injected) so it exists even when no lifespan runs.
Who:   Called by uvicorn to start the server (uvicorn fieldbook.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────────┐ ┌──────┐ ┌────────┐  │
    │  │  Req ID  │→│  Logging    │→│ GZip │→│  CORS  │  │
    │  └──────────┘ └─────────────┘ └──────┘ └────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌────────────────┐ ┌──────────────┐ ┌──────────┐  │
    │  │ /api/recipe-   │ │ /api/{kind}  │ │ /health  │  │
    │  │   files        │ │   [/{slug}]  │ │          │  │
    │  └────────────────┘ └──────────────┘ └──────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐  │
    │  │ BadRequest→400 │ NotFound→404 │ Method→405   │  │
    │  │ Corrupt/Store/unexpected→500                 │  │
    │  └──────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)
    3. Build the record store and file source unless they were injected

    Shutdown:
    1. Dispose the record store's pool if the app created it
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fieldbook import __version__
from fieldbook.config import settings
from fieldbook.database import RecordStore
from fieldbook.exceptions import (
    BadRequestError,
    CorruptRecordError,
    FieldbookError,
    MethodNotAllowedError,
    NotFoundError,
    StoreUnavailableError,
)
from fieldbook.middleware.logging import RequestLoggingMiddleware
from fieldbook.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from fieldbook.routes import health, recipe_files, records
from fieldbook.services.file_records import FileRecordSource
from fieldbook.services.record_service import RecordService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Format: 2024-05-01T09:30:00 [INFO] fieldbook.access: GET /api/... 200 4.1ms
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # container captures stdout
        ],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup builds whatever create_app() was not given; shutdown disposes only
    the store this lifespan created. An injected store belongs to its caller.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Fieldbook Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        # Keep serving: /health reports the store status

    owned_store: Optional[RecordStore] = None
    if getattr(app.state, "record_store", None) is None:
        owned_store = RecordStore.from_settings(settings)
        app.state.record_store = owned_store
    if getattr(app.state, "file_records", None) is None:
        app.state.file_records = FileRecordSource(
            settings.storage_root, fallback_author=settings.anonymous_author
        )

    logger.info("Storage root: %s", Path(settings.storage_root).resolve())
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Fieldbook Backend shutting down...")
    if owned_store is not None:
        await owned_store.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(
    status_code: int, message: str, headers: Optional[dict] = None
) -> JSONResponse:
    """Every error body is `{"error": message}`; details stay in the server log."""
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        BadRequestError         → 400 (also FastAPI request validation errors)
        NotFoundError           → 404 (also unknown paths)
        MethodNotAllowedError   → 405 + Allow header
        CorruptRecordError      → 500
        StoreUnavailableError   → 500
        FieldbookError (base)   → its status_code
        Exception (fallback)    → 500 "Internal server error"

    Security: the response carries only the short message. Context (slug,
    viewer, decode error, original exception type) is logged server-side.
    """

    @app.exception_handler(BadRequestError)
    async def handle_bad_request(request: Request, exc: BadRequestError):
        rid = request_id_var.get("")
        logger.warning("[%s] Bad request: %s | Context: %s", rid, exc.message, exc.context)
        return error_response(400, exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        logger.info("[%s] Not found: %s | Context: %s", rid, exc.message, exc.context)
        return error_response(404, exc.message)

    @app.exception_handler(MethodNotAllowedError)
    async def handle_method_not_allowed(request: Request, exc: MethodNotAllowedError):
        return error_response(405, exc.message, headers={"Allow": exc.allow_header})

    @app.exception_handler(CorruptRecordError)
    async def handle_corrupt_record(request: Request, exc: CorruptRecordError):
        rid = request_id_var.get("")
        logger.error("[%s] Corrupt record: %s | Context: %s", rid, exc.message, exc.context)
        return error_response(500, exc.message)

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError):
        rid = request_id_var.get("")
        logger.error("[%s] Record store error: %s | Context: %s", rid, exc.message, exc.context)
        return error_response(500, exc.message)

    @app.exception_handler(FieldbookError)
    async def handle_fieldbook_error(request: Request, exc: FieldbookError):
        rid = request_id_var.get("")
        logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        """Framework-raised errors: unknown path (404), wrong method (405)."""
        if exc.status_code == 405:
            allow = (exc.headers or {}).get("Allow", "GET")
            return await handle_method_not_allowed(
                request,
                MethodNotAllowedError(
                    request.method,
                    allowed=[m.strip() for m in allow.split(",") if m.strip()],
                ),
            )
        return error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        errors = exc.errors()
        logger.warning("[%s] Invalid request parameters: %s", rid, errors)
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"Invalid parameter: {field}" if field else "Invalid request"
        return error_response(400, message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all for unexpected errors. Runs outside the middleware chain, so
        the request ID header is added here.
        """
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return error_response(
            500,
            "Internal server error",
            headers={REQUEST_ID_HEADER: rid} if rid else None,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    record_store: Optional[RecordStore] = None,
    file_records: Optional[FileRecordSource] = None,
    record_service: Optional[RecordService] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        record_store:  Store to serve from; built from settings at startup if None
        file_records:  File-backed recipe source; built from settings if None
        record_service: Read-path service; built with the configured fallback
                        author if None

    Returns:
        Fully configured FastAPI instance.
    """
    app = FastAPI(
        title="Fieldbook API",
        description=(
            "Read-only access to field notes, creative writing, and recipes with "
            "owner/public visibility rules and a single normalized record shape."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.record_store = record_store
    app.state.file_records = file_records
    app.state.record_service = record_service or RecordService(
        fallback_author=settings.anonymous_author
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition (last added runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-Total-Count",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    # recipe_files before records: /api/{kind} would otherwise capture it
    app.include_router(recipe_files.router)
    app.include_router(records.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `fieldbook.main:app` to be importable
app = create_app()

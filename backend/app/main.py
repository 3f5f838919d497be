"""
BranchRelay Backend — FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes middleware registration, route mounting, error envelopes
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Served by uvicorn (`uvicorn app.main:app` or the `branch-relay` script).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Body Size   │→│ Req ID   │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌────────────────────┐ ┌──────────┐                │
    │  │ POST /api/branches │ │ /health  │                │
    │  └────────────────────┘ └──────────┘                │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Validation→400 │ Upload→500 │ Sheet→500 │ 404 │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Error Envelope:
    Every error response is {"success": false, "error": <summary>,
    "details": <underlying message>}. Stack traces are logged, never returned.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import __version__
from app.config import settings
from app.exceptions import (
    BranchRelayError,
    NotFoundError,
    SheetError,
    StorageError,
    UploadError,
    ValidationError,
)
from app.middleware.body_limit import BodySizeLimitMiddleware
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import branches, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Output: stdout (captured by the container runtime)
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # boto3/botocore log every HTTP round-trip at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: configure logging, report missing credentials, log endpoints.
    Shutdown: log.

    A missing credential does not stop startup: /health keeps answering and
    each branch submission reports the problem in its error envelope.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("Branch Data API starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    logger.info("Branch Data API server is running on port %d", settings.port)
    logger.info("Health check: http://localhost:%d/health", settings.port)
    logger.info("Branch endpoint: POST http://localhost:%d/api/branches", settings.port)
    logger.info("=" * 60)

    yield

    logger.info("Branch Data API shutting down...")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(status_code: int, error: str, details=None, **extra) -> JSONResponse:
    content = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and error envelopes.

    Handler hierarchy (most specific class wins):
        ValidationError         → 400 "Missing required fields"
        RequestValidationError  → 400 "Invalid request body"
        NotFoundError           → 404
        HTTPException 404/405   → 404 "Endpoint not found"
        HTTPException 413       → 413 "Request body too large"
        UploadError             → 500 "Failed to upload images to S3"
        StorageError            → 500 "Failed to read images from S3"
        SheetError              → 500 "Failed to append branch data to sheet"
        BranchRelayError (base) → 500 "Something went wrong!"
        Exception (fallback)    → 500 "Something went wrong!"
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: missing %s", rid, exc.missing)
        return _error(400, exc.message, required=exc.required, missing=exc.missing)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Malformed request: %s", rid, exc.errors())
        return _error(
            400,
            "Invalid request body",
            details=[
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                for err in exc.errors()
            ],
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, "Not found", details=exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        # Unknown paths and unsupported methods both mean "no such endpoint"
        if exc.status_code in (404, 405):
            return _error(404, "Endpoint not found")
        if exc.status_code == 413:
            return _error(413, "Request body too large", details=exc.detail)
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(UploadError)
    async def handle_upload_error(request: Request, exc: UploadError):
        rid = request_id_var.get("")
        logger.error("[%s] S3 upload error: %s | Context: %s", rid, exc.message, exc.context)
        return _error(500, "Failed to upload images to S3", details=exc.message)

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        rid = request_id_var.get("")
        logger.error("[%s] S3 error: %s | Context: %s", rid, exc.message, exc.context)
        return _error(500, "Failed to read images from S3", details=exc.message)

    @app.exception_handler(SheetError)
    async def handle_sheet_error(request: Request, exc: SheetError):
        rid = request_id_var.get("")
        logger.error("[%s] Sheet error: %s | Context: %s", rid, exc.message, exc.context)
        return _error(500, "Failed to append branch data to sheet", details=exc.message)

    @app.exception_handler(BranchRelayError)
    async def handle_app_error(request: Request, exc: BranchRelayError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return _error(500, "Something went wrong!", details=exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: full traceback goes to the log, only the message to the client."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _error(500, "Something went wrong!", details=str(exc))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="Branch Data API",
        description=(
            "Accepts branch details with up to three images, stores the images "
            "in S3 and appends a summary row to Google Sheets."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition (last added runs first)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_body_size=settings.max_body_size)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(branches.router)
    app.include_router(health.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app on settings.host:settings.port."""
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

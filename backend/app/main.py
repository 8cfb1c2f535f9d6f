"""
Checklist Manifesto Backend — FastAPI Application Factory
===========================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, the remote
       method table, and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn app.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────────────┐ ┌──────┐ ┌──────┐ │
    │  │ Req ID   │→│  Logging        │→│ GZip │→│ CORS │ │
    │  └──────────┘ └─────────────────┘ └──────┘ └──────┘ │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────────────┐ ┌──────────────────┐  │
    │  │ POST /api/methods/{name} │ │ GET /health      │  │
    │  └──────────────────────────┘ └──────────────────┘  │
    │                                                     │
    │  Method Registry (app.state.method_registry)        │
    │  login · accounts.login · user.* · testConnection … │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration
    3. Create missing tables (AUTO_CREATE_TABLES)
    4. Ensure the administrator account exists. A persistence failure here
       is fatal: the exception propagates and the server does not start.

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app import __version__
from app.config import DEFAULT_SEED_PASSWORD, settings
from app.database import async_session_factory, create_tables, dispose_engine
from app.exceptions import ChecklistError, DatabaseError, ValidationError
from app.methods import MethodRegistry, build_registry
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import health, methods
from app.services.account_service import account_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Startup Bootstrap
# ══════════════════════════════════════════════════════════════════════════

async def bootstrap_admin_user(
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
) -> uuid.UUID:
    """
    Ensure SEED_USERNAME exists. Errors propagate to abort startup.
    """
    if settings.seed_password == DEFAULT_SEED_PASSWORD:
        logger.warning(
            "SEED_PASSWORD is the default value; change it outside local development."
        )
    async with session_factory() as session:
        try:
            return await account_service.ensure_admin_user(
                session, settings.seed_username, settings.seed_password
            )
        except ChecklistError as e:
            logger.error("Error ensuring admin user: %s | Context: %s", e.message, e.context)
            raise


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown procedures (see module docstring)."""
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("%s backend starting up...", settings.app_name)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    if settings.auto_create_tables:
        await create_tables()
        logger.info("Database tables verified")

    await bootstrap_admin_user()

    logger.info("Registered methods: %s", ", ".join(app.state.method_registry.names()))
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("%s backend shutting down...", settings.app_name)
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(
    status_code: int,
    error: str,
    reason: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Build the {error, reason, details?, request_id} body every failure uses."""
    body: Dict[str, Any] = {"error": error, "reason": reason}
    if details:
        body["details"] = details
    body["request_id"] = request_id_var.get("")
    return JSONResponse(status_code=status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Handler hierarchy (most specific wins):
        RequestValidationError  → 400 validation-error (body is not a JSON object)
        ValidationError         → 400, own code, details = field / error list
        DatabaseError           → 500 server-error, generic reason
        ChecklistError (base)   → exc.status_code / exc.error_code
        Exception (fallback)    → 500 internal-server-error

    context dicts and stack traces go to the log only. The validation error
    list is the one thing returned as details, and it carries no input values.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in exc.errors()
        ]
        return error_response(
            400, "validation-error", "Request body must be a JSON object", {"errors": errors}
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return error_response(exc.status_code, exc.error_code, exc.message, exc.context)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context
        )
        return error_response(
            500, exc.error_code, "An internal error occurred. Please try again later."
        )

    @app.exception_handler(ChecklistError)
    async def handle_checklist_error(request: Request, exc: ChecklistError):
        log = logger.error if exc.status_code >= 500 else logger.info
        log("[%s] %s: %s", request_id_var.get(""), exc.error_code, exc.message)
        return error_response(exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), exc, exc_info=True)
        return error_response(
            500,
            "internal-server-error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(registry: Optional[MethodRegistry] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        registry: Method table to serve; defaults to build_registry().
                  Tests pass their own to exercise dispatch in isolation.
    """
    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Remote methods for the checklist client: login, accounts, diagnostics.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.method_registry = registry if registry is not None else build_registry()

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition.
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

    register_exception_handlers(app)

    app.include_router(methods.router)
    app.include_router(health.router)

    return app


app = create_app()

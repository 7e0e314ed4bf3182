"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.

Key Concepts:
=============

1. Application Factory Pattern
   - create_app() function returns configured app
   - Easier to test (can create multiple instances)

2. Lifespan Events
   - startup: create tables for SQLite/debug setups
   - shutdown: dispose of the connection pool

3. Middleware Stack
   - CORS: Allow cross-origin requests
   - Rate limiting (slowapi)
   - Request timeout: abort slow requests with 408
   - X-API-Version response header

4. Exception Handlers
   - Every failure is rendered as the error envelope:
     {"success": false, "message": ..., "timestamp": ...}
   - Field-level violations are listed under "errors"
   - Exception type and detail are added under "error" outside production
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.database import create_tables, engine
from app.exceptions import ApiError, InternalError, ValidationError
from app.routers import auth_router, books_router
from app.schemas.common import utc_timestamp
from app.services.rate_limiter import limiter, rate_limit_exceeded_handler
from app.utils.responses import error_response, success_response

# =============================================================================
# Logging Configuration
# =============================================================================
# Configure logging before creating the app
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def error_details(exc: Exception, detail: str | None = None) -> dict[str, Any] | None:
    """Diagnostic block for error responses; None in production."""
    if settings.is_production:
        return None
    return {"type": type(exc).__name__, "detail": detail or str(exc)}


def validation_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    """Flatten FastAPI's validation errors to {field, message} pairs."""
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ())]
        # Drop the "body"/"query"/"path" prefix
        if location and location[0] in {"body", "query", "path", "header"}:
            location = location[1:]
        errors.append({
            "field": ".".join(location) or "body",
            "message": error.get("msg", "Invalid value"),
        })
    return errors


# =============================================================================
# Lifespan Events
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Code before yield: Runs on startup
    Code after yield: Runs on shutdown

    Production databases are managed with Alembic; tables are only created
    here for SQLite and debug setups.
    """
    # ----- STARTUP -----
    logger.info(f"Starting {settings.app_name} v{settings.app_version}...")
    logger.info(f"Environment: {settings.environment}, debug: {settings.debug}")

    if settings.is_sqlite or settings.debug:
        create_tables()
        logger.info("Database tables ensured")

    yield  # Application runs here

    # ----- SHUTDOWN -----
    logger.info(f"Shutting down {settings.app_name}...")
    engine.dispose()


# =============================================================================
# Application Factory
# =============================================================================
def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## Bookstore API

A RESTful API for managing a bookstore catalog.

### Features
- **Books**: CRUD, soft/hard delete, stock adjustment, statistics
- **Listing**: filters, ranges (`publishedYear_gte`, `price_lte`), free-text
  search, multi-field sorting (`sort=-price,title`) and pagination
- **Auth**: registration, login, refresh tokens, profile management

### Authentication
Send `Authorization: Bearer <accessToken>`. Book writes require the admin role.

### Rate Limiting
Reads, writes and auth endpoints have separate per-IP limits.
        """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------
    # Attach the limiter to the app state so it can be accessed by decorators
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Request Timeout and Version Header
    # -------------------------------------------------------------------------
    @app.middleware("http")
    async def timeout_middleware(request: Request, call_next):
        """Abort requests that run longer than request_timeout_seconds."""
        try:
            response = await asyncio.wait_for(
                call_next(request),
                timeout=settings.request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Request timed out: {request.method} {request.url.path}")
            response = error_response(408, "Request Timeout")

        response.headers["X-API-Version"] = settings.app_version
        return response

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        """Render the application's own exceptions with their status code."""
        if exc.status_code >= 500:
            detail = exc.detail if isinstance(exc, InternalError) else None
            logger.error(f"{exc.message} ({request.method} {request.url.path}): {detail}")
            return error_response(
                exc.status_code,
                exc.message,
                error=error_details(exc, detail),
            )

        errors = exc.errors if isinstance(exc, ValidationError) else None
        return error_response(exc.status_code, exc.message, errors=errors)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Body/query validation failures → 422 with one entry per field."""
        errors = validation_errors(exc)
        message = ", ".join(error["message"] for error in errors) or "Validation Error"
        return error_response(422, message, errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        """Framework-level errors (unknown route, wrong method) in envelope form."""
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.url.path} not found"
        else:
            message = str(exc.detail)
        return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request,
        exc: SQLAlchemyError,
    ) -> JSONResponse:
        """
        Handle SQLAlchemy errors that escaped the service layer.

        Logs the actual error while hiding details from users.
        """
        logger.error(f"Database error: {exc}")
        return error_response(
            500,
            "A database error occurred. Please try again later.",
            error=error_details(exc),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """
        Catch-all exception handler.

        In production, hide internal errors from users.
        """
        logger.error(f"Unhandled error: {exc}", exc_info=True)
        return error_response(500, "Internal Server Error", error=error_details(exc))

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    app.include_router(books_router, prefix=settings.api_prefix)
    app.include_router(auth_router, prefix=settings.api_prefix)

    # -------------------------------------------------------------------------
    # Health and Info Endpoints
    # -------------------------------------------------------------------------
    @app.get(
        f"{settings.api_prefix}/health",
        tags=["Health"],
        summary="Health check",
    )
    async def health_check() -> dict:
        """
        Health check endpoint.

        Used by load balancers, container probes and monitoring.
        """
        return success_response(
            {
                "status": "healthy",
                "app": settings.app_name,
                "version": settings.app_version,
                "environment": settings.environment,
                "rateLimiting": {
                    "enabled": settings.rate_limit_enabled,
                    "defaultLimit": settings.rate_limit_default,
                },
            },
            "API is healthy",
        ).model_dump(mode="json")

    @app.get(
        settings.api_prefix,
        tags=["Health"],
        summary="API information",
    )
    async def api_info() -> dict:
        return success_response(
            {
                "api": settings.app_name,
                "version": settings.app_version,
                "description": "RESTful API for managing a bookstore",
                "endpoints": {
                    "books": f"{settings.api_prefix}/books",
                    "auth": f"{settings.api_prefix}/auth",
                    "health": f"{settings.api_prefix}/health",
                    "docs": "/docs",
                },
            },
            settings.app_name,
        ).model_dump(mode="json")

    @app.get("/ping", tags=["Health"], summary="Liveness probe")
    async def ping() -> dict:
        return {"success": True, "message": "pong", "timestamp": utc_timestamp()}

    @app.get("/", include_in_schema=False)
    async def root() -> RedirectResponse:
        return RedirectResponse(url=settings.api_prefix)

    return app


# =============================================================================
# Application Instance
# =============================================================================
# This is what uvicorn imports: uvicorn app.main:app
app = create_app()


# =============================================================================
# Development Server
# =============================================================================
# This allows running the app directly with: python -m app.main

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

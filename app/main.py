"""
XENTRO API - Main application entry point.
"""
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from structlog.contextvars import bind_contextvars, clear_contextvars

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.errors import ErrorResponse
from app.core.exceptions import RateLimitError, XentroException
from app.core.logging import get_logger, log_error_details, log_request_details, setup_logging
from app.infrastructure.cache.redis import close_redis
from app.infrastructure.database.base import engine
from app.services.security.middleware import SecurityHeadersMiddleware
from app.services.security.rate_limiter import RETRY_AFTER_SECONDS, rate_limit_response

# Setup logging
setup_logging()
logger = get_logger(__name__)


# Initialize Sentry if configured
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT or settings.ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            SqlalchemyIntegration(),
        ],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    """
    # Startup
    logger.info(
        "api_starting",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        session_cache=settings.SESSION_CACHE_BACKEND,
    )

    # In production the schema comes from Alembic migrations
    if settings.is_development:
        from app.infrastructure.database.base import Base
        from app.infrastructure.database import models  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    yield

    # Shutdown
    logger.info("api_stopping")
    await close_redis()
    await engine.dispose()


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.APP_VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json" if not settings.is_production else None,
    docs_url=f"{settings.API_PREFIX}/docs" if not settings.is_production else None,
    redoc_url=None,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware, enable_hsts=True)


# Add request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing information."""
    start_time = time.time()

    logger.info(
        "request_started",
        **log_request_details(
            request_id=getattr(request.state, "request_id", ""),
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        ),
    )

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "request_completed",
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )

    return response


# Add request ID middleware (registered last so it runs first)
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID to each request."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    request.state.request_id = request_id
    clear_contextvars()
    bind_contextvars(request_id=request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(RateLimitError)
async def rate_limit_exception_handler(request: Request, exc: RateLimitError):
    """429 with Retry-After."""
    return rate_limit_response(exc.retry_after or RETRY_AFTER_SECONDS)


@app.exception_handler(XentroException)
async def xentro_exception_handler(request: Request, exc: XentroException):
    """Render domain errors as `{message, code, ...details}`."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_failed",
        **log_error_details(exc, code=exc.code.value, status_code=exc.status_code, path=request.url.path),
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().to_dict(),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request body and query validation failures are 400s."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid request")
    body = ErrorResponse.validation_error(message, field or None).to_dict()
    body["errors"] = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg")}
        for error in errors
    ]
    return JSONResponse(status_code=400, content=body)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        path=request.url.path,
        method=request.method,
    )

    # Don't expose internal errors in production
    message = None if settings.is_production else str(exc)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse.internal_error(message).to_dict(),
    )


# Include API router
app.include_router(api_router, prefix=settings.API_PREFIX)


# Root endpoint
@app.get("/")
async def root() -> Dict[str, Any]:
    """
    Root endpoint.

    Returns:
        API information
    """
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_PREFIX}/docs" if not settings.is_production else "Disabled in production",
    }

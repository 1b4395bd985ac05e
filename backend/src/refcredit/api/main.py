"""Main FastAPI application."""

from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from refcredit import __version__
from refcredit.api.rate_limit import limiter
from refcredit.api.v1.auth import router as auth_router
from refcredit.api.v1.user import router as user_router
from refcredit.errors import CodeGenerationError, ReferralError, ValidationError
from refcredit.logging_config import get_logger, setup_logging
from refcredit.settings import settings
from refcredit.storage.db import db

logger = get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        # Prevent clickjacking - don't allow embedding in iframes
        response.headers["X-Frame-Options"] = "DENY"

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Referrer Policy - don't leak URLs to other sites
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id and path to every log event of the request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex[:16]

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("app_starting", env=settings.env)

    # Initialize database tables
    db.create_tables()

    yield

    # Shutdown
    logger.info("app_shutting_down")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI app
    """
    setup_logging()

    # Hide API docs in production
    is_production = settings.env == "production"

    app = FastAPI(
        title="Referral Credits API",
        description="Referral program with one-time purchase credits",
        version=__version__,
        docs_url=None if is_production else "/api/docs",
        redoc_url=None if is_production else "/api/redoc",
        openapi_url=None if is_production else "/api/openapi.json",
        lifespan=lifespan,
    )

    # Security Headers middleware (must be added before CORS)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)

    allowed_origins = [
        origin.strip()
        for origin in settings.allowed_origins.split(",")
        if origin.strip()
    ]

    # Block wildcard in production
    if is_production and "*" in allowed_origins:
        logger.error("cors_wildcard_blocked", message="Wildcard CORS not allowed in production")
        allowed_origins = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
        max_age=3600,
    )

    # Rate limiting (shared instance from rate_limit module)
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning("rate_limit_exceeded", limit=str(exc.detail))
        return JSONResponse(
            status_code=429,
            content={
                "detail": "Too many requests. Please try again later.",
                "error": "rate_limited",
                "retryable": True,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Malformed bodies share the validation_error shape of the services
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "body"
        error = ValidationError(f"Invalid request: {field}: {first.get('msg', 'malformed')}")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(ReferralError)
    async def referral_error_handler(request: Request, exc: ReferralError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(CodeGenerationError)
    async def code_generation_error_handler(request: Request, exc: CodeGenerationError):
        logger.error("referral_code_generation_failed", attempts=exc.attempts, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error": "internal_error", "retryable": False},
        )

    # Include v1 API routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(user_router, prefix="/api/v1")

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "env": settings.env,
        }

    return app


# Create app instance
app = create_app()

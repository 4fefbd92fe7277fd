"""
MediCamp Backend - FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers;
       the module-level `app` is what uvicorn serves (medicamp.main:app).

Application Architecture:
    ┌───────────────────────────────────────────────────────┐
    │                    FastAPI App                        │
    │                                                       │
    │  Middleware Chain:                                    │
    │  ┌──────────┐ ┌────────────┐ ┌─────────┐ ┌──────────┐ │
    │  │  Req ID  │→│ Rate Limit │→│ Logging │→│ GZip/CORS│ │
    │  └──────────┘ └────────────┘ └─────────┘ └──────────┘ │
    │                                                       │
    │  Routes:                                              │
    │  /jwt /logout  /users  /camps  /registrations         │
    │  /payments  /feedback  /health                        │
    │                                                       │
    │  Exception Handlers:                                  │
    │  400 │ 401 │ 403 │ 404 │ 409 │ 429 │ 500 │ 503        │
    └───────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, table creation (retried)
    Shutdown: dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from medicamp import __version__
from medicamp.config import settings
from medicamp.database import create_tables, dispose_engine
from medicamp.exceptions import (
    CircuitBreakerOpenError,
    ConflictError,
    DatabaseError,
    ForbiddenError,
    MediCampError,
    NotFoundError,
    PaymentServiceError,
    RateLimitExceededError,
    UnauthenticatedError,
    ValidationError,
)
from medicamp.middleware.logging import RequestLoggingMiddleware
from medicamp.middleware.rate_limit import RateLimitMiddleware
from medicamp.middleware.request_id import RequestIDMiddleware, request_id_var
from medicamp.routes import auth, camps, feedback, health, payments, registrations, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once from the lifespan handler, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "stripe"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("MediCamp Backend starting up (environment=%s)", settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        if settings.is_production:
            raise

    await create_tables()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("MediCamp Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError / RequestValidationError → 400 Bad Request
        UnauthenticatedError                     → 401 Unauthorized
        ForbiddenError                           → 403 Forbidden
        NotFoundError (NotRegisteredError)       → 404 Not Found
        ConflictError (Duplicate, Transition,
                       CountAdjustment)          → 409 Conflict
        RateLimitExceededError                   → 429 Too Many Requests
        DatabaseError                            → 500 Internal Server Error
        PaymentServiceError                      → 503 Service Unavailable
        CircuitBreakerOpenError                  → 503 Service Unavailable
        MediCampError (base)                     → 500 Internal Server Error
        Exception (fallback)                     → 500 Internal Server Error

    The `error` field carries the exception's error_code so clients can tell
    failure kinds apart. 5xx responses never include the context.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, exc.error_code, exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _error_response(
            400,
            ValidationError.error_code,
            "Request validation failed",
            {"errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(UnauthenticatedError)
    async def handle_unauthenticated(request: Request, exc: UnauthenticatedError):
        return _error_response(401, exc.error_code, exc.message)

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        logger.warning(
            "[%s] Forbidden: %s %s (required=%s)",
            request_id_var.get(""), request.method, request.url.path, exc.required,
        )
        return _error_response(403, exc.error_code, exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, exc.error_code, exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(409, exc.error_code, exc.message, exc.context)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429,
            exc.error_code,
            exc.message,
            exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(
            500, exc.error_code, "An internal error occurred. Please try again later."
        )

    @app.exception_handler(PaymentServiceError)
    async def handle_payment_error(request: Request, exc: PaymentServiceError):
        rid = request_id_var.get("")
        logger.error("[%s] Payment service error: %s | Context: %s", rid, exc.message, exc.context)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return _error_response(503, exc.error_code, exc.message, headers=headers)

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return _error_response(
            503,
            exc.error_code,
            exc.message,
            {"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(MediCampError)
    async def handle_app_error(request: Request, exc: MediCampError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, exc.error_code, "An internal error occurred.")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Stack trace is logged server-side only, never returned."""
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="MediCamp API",
        description=(
            "Medical camp management: camp catalogue, participant registration, "
            "fee payment and feedback."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition (last added runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # session cookie
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)
    if settings.trusted_proxies_list:
        # Rewrites the client address from X-Forwarded-For before anything reads it
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=settings.trusted_proxies_list)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(camps.router)
    app.include_router(registrations.router)
    app.include_router(payments.router)
    app.include_router(feedback.router)
    app.include_router(health.router)

    return app


app = create_app()

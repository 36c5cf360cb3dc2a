"""
Bazaar Backend — FastAPI Application Factory
=============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() receives its collaborators (settings, database, cache,
       payment gateway) or builds them from settings, stores them on
       app.state, then registers middleware, exception handlers and routes.
Who:   uvicorn (`uvicorn bazaar.main:app`) and the test suite, which passes
       an in-memory database, a fake cache and a fake payment gateway.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware Chain (outermost first):                     │
    │   Request ID → Logging → Webhook CORS → Webhook Rate     │
    │   Limit → CORS → Sanitize → Error Classifier             │
    │                                                          │
    │  Routes:                                                 │
    │   /api/addresses…  /api/payment/…  /api/courier/…        │
    │   /health                                                │
    │                                                          │
    │  Exception Handlers:                                     │
    │   ShortCircuit → guard's own answer                      │
    │   RequestValidationError → 400 validation envelope       │
    │   HTTPException (404, 405, ...) → error envelope         │
    │   everything else → Error Classifier middleware          │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, validate configuration
    Shutdown: close payment gateway, cache and database connections
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from bazaar import __version__
from bazaar.cache import CacheStore
from bazaar.config import Settings, get_settings
from bazaar.database import Database
from bazaar.exceptions import ShortCircuit
from bazaar.middleware.errors import (
    ErrorClassifierMiddleware,
    handle_http_exception,
    handle_request_validation,
    handle_short_circuit,
)
from bazaar.middleware.logging import RequestLoggingMiddleware
from bazaar.middleware.rate_limit import RateLimitMiddleware
from bazaar.middleware.request_id import RequestIDMiddleware
from bazaar.middleware.sanitize import SanitizeMiddleware
from bazaar.middleware.webhook import WebhookCORSMiddleware
from bazaar.routes import addresses, courier, health, payment
from bazaar.services.payment_gateway import HttpPaymentGateway, PaymentGateway

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once for the whole process.

    Format: 2024-01-01T12:00:00 [INFO] bazaar.access: ← POST /api/payment/init 200 (12ms)
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Bazaar Backend %s starting up (env=%s)", __version__, settings.app_env)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: /health and unauthenticated routes still work
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Bazaar Backend shutting down...")
    await app.state.payment_gateway.close()
    await app.state.cache.close()
    await app.state.database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    cache: Optional[CacheStore] = None,
    payment_gateway: Optional[PaymentGateway] = None,
) -> FastAPI:
    """
    Assemble the application around explicitly supplied collaborators.

    Any collaborator left as None is built from settings. Nothing connects
    here; engines and clients open connections on first use.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Bazaar API",
        description=(
            "Marketplace backend: customer addresses, payments and courier "
            "provider integration."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database or Database.from_settings(settings)
    app.state.cache = cache or CacheStore.from_url(
        settings.redis_url, default_ttl=settings.cache_ttl_seconds
    )
    app.state.payment_gateway = payment_gateway or HttpPaymentGateway.from_settings(settings)

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition (last added = outermost).

    # Error classifier is innermost: outer middleware only ever sees responses
    app.add_middleware(ErrorClassifierMiddleware, debug=settings.is_development)

    # Webhook bodies are signed and pass through unsanitized
    app.add_middleware(SanitizeMiddleware, exclude_prefixes=(courier.WEBHOOK_PREFIX,))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.webhook_rate_limit_requests,
        window=settings.webhook_rate_limit_window,
        path_prefix=courier.WEBHOOK_PREFIX,
    )

    app.add_middleware(WebhookCORSMiddleware, path_prefix=courier.WEBHOOK_PREFIX)

    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    app.add_exception_handler(ShortCircuit, handle_short_circuit)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(addresses.router)
    app.include_router(payment.router)
    app.include_router(courier.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()

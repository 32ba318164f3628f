"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (one per bounded context)
- Error handlers (centralized domain-to-HTTP mapping)
- Security middleware (headers, rate limiting)
- Logging configuration
- Ledger schema bootstrap on startup

No business logic belongs here.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from changeit.core.config import settings
from changeit.infrastructure.exchange.database import ensure_schema
from changeit.interfaces.exchange.dependencies import get_db_engine
from changeit.interfaces.exchange.router import router as exchange_router
from changeit.interfaces.health import router as health_router
from changeit.shared.errors.handlers import register_error_handlers
from changeit.shared.logging import configure_logging
from changeit.shared.security.headers import SecurityHeadersMiddleware
from changeit.shared.security.rate_limiting import limiter, rate_limit_exceeded_handler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: make sure the ledger tables exist before serving."""
    ensure_schema(get_db_engine())
    logger.info("%s %s ready", settings.project_name, settings.version)
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers, error handlers, and security middleware.
    This is the composition root of the application.

    Returns:
        A fully configured FastAPI application instance.
    """
    configure_logging(level=settings.log_level, debug=settings.debug)

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # --- Rate Limiting ---
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # --- Security Middleware ---
    app.add_middleware(SecurityHeadersMiddleware)

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(exchange_router, prefix="/api/v1")

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn (``changeit-api`` console script)."""
    import uvicorn

    logger.info("Starting %s at http://%s:%d", settings.project_name, settings.host, settings.port)
    uvicorn.run("changeit.main:app", host=settings.host, port=settings.port, reload=False)

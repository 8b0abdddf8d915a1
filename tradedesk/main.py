"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (health and the exchange bounded context)
- Error handlers (centralized domain-to-HTTP mapping)
- Security middleware (headers, rate limiting)
- Logging configuration
- Schema creation on startup, when enabled

No business logic belongs here.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from tradedesk.core.config import settings
from tradedesk.infrastructure.exchange.tables import metadata
from tradedesk.interfaces.exchange.dependencies import get_engine, get_gateway
from tradedesk.interfaces.exchange.router import router as exchange_router
from tradedesk.interfaces.health import router as health_router
from tradedesk.shared.errors.handlers import register_error_handlers
from tradedesk.shared.logging import configure_logging
from tradedesk.shared.security.headers import SecurityHeadersMiddleware
from tradedesk.shared.security.rate_limiting import (
    limiter,
    rate_limit_exceeded_handler,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: create missing tables, close the HTTP pool."""
    if settings.auto_create_schema:
        engine = app.dependency_overrides.get(get_engine, get_engine)()
        metadata.create_all(engine)
        logger.info("Database schema ensured")

    yield

    if get_gateway.cache_info().currsize:
        get_gateway().close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers, error handlers, and security middleware.
    This is the composition root of the application.

    Returns:
        A fully configured FastAPI application instance.
    """
    configure_logging(level=settings.log_level)

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

    # --- Security Middleware ---
    app.add_middleware(SecurityHeadersMiddleware)

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(exchange_router, prefix="/api/v1")

    return app


app = create_app()

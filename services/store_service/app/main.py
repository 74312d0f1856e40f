"""FastAPI application for the 48 Roots store."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.middleware.sessions import SessionMiddleware

from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.logging import configure_logging, get_logger
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from libs.db.config import AsyncSessionLocal
from services.store_service.routers import (
    admin_analytics_router,
    admin_auth_router,
    admin_catalog_router,
    admin_orders_router,
    admin_promotions_router,
    admin_settings_router,
    analytics_router,
    cart_router,
    catalog_router,
    checkout_router,
    orders_router,
    pages_router,
    promotions_router,
    settings_router,
    webhooks_router,
)
from services.store_service.services.store_settings import initialize_defaults

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    async with AsyncSessionLocal() as db:
        await initialize_defaults(db)
    logger.info("Store service started (%s)", settings.ENVIRONMENT)
    yield


def create_app() -> FastAPI:
    """Create and configure the store FastAPI app."""
    app = FastAPI(
        title=f"{settings.STORE_NAME} Store",
        version="0.1.0",
        description="Print-on-demand storefront: catalog, cart, checkout, fulfillment and back office.",
        lifespan=lifespan,
    )

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        same_site="lax",
        https_only=settings.SESSION_HTTPS_ONLY,
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Add global exception handlers for consistent error responses
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "store"}

    # Public storefront API
    app.include_router(catalog_router, prefix="/api")
    app.include_router(cart_router, prefix="/api")
    app.include_router(checkout_router, prefix="/api")
    app.include_router(orders_router, prefix="/api")
    app.include_router(promotions_router, prefix="/api")
    app.include_router(analytics_router, prefix="/api")
    app.include_router(settings_router, prefix="/api")
    app.include_router(webhooks_router, prefix="/api")

    # Back office
    app.include_router(admin_auth_router, prefix="/api/admin")
    app.include_router(admin_catalog_router, prefix="/api/admin")
    app.include_router(admin_orders_router, prefix="/api/admin")
    app.include_router(admin_promotions_router, prefix="/api/admin")
    app.include_router(admin_analytics_router, prefix="/api/admin")
    app.include_router(admin_settings_router, prefix="/api/admin")

    # Server-rendered pages
    app.include_router(pages_router)

    return app


app = create_app()

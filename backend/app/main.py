"""
Sheetstore Orders API - Main Application Entry Point.

Orders, PayMaya checkout and webhooks, and digital delivery of purchased
spreadsheet files.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import OrderError, order_error_handler
from app.core.logging import LoggerContextMiddleware, configure_logging, get_logger
from app.middleware import ErrorHandlerMiddleware, RequestIdMiddleware
from app.routers import (
    admin_router,
    downloads_router,
    health_router,
    orders_router,
    payments_router,
    webhooks_router,
)
from app.services.storage import ProductStorage

# Configure logging before anything else
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(
        "Starting application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        paymaya_environment=settings.paymaya_environment,
    )

    await init_db()

    if settings.sentry_dsn:
        import sentry_sdk

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,
        )
        logger.info("Sentry initialized")

    if not settings.paymaya_webhook_secret:
        logger.warning("PAYMAYA_WEBHOOK_SECRET not set, webhook signatures will not be verified")
    if not (settings.paymaya_public_key and settings.paymaya_secret_key):
        logger.warning("PayMaya credentials not set, checkout creation is disabled")
    if not settings.resend_api_key:
        logger.warning("RESEND_API_KEY not set, order confirmation emails will not be sent")

    storage = ProductStorage()
    if not storage.root.is_dir():
        logger.warning("Product storage directory missing", storage_root=str(storage.root))

    yield

    logger.info("Shutting down application")
    await close_db()


def create_app() -> FastAPI:
    """
    Application factory function.
    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Orders, payments and digital delivery API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_exception_handler(OrderError, order_error_handler)

    # Last added runs first: CORS, log context, request id, error handler
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(LoggerContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "X-Request-ID",
        ],
    )

    app.include_router(health_router)
    app.include_router(orders_router, prefix="/api")
    app.include_router(payments_router, prefix="/api")
    app.include_router(webhooks_router, prefix="/api")
    app.include_router(downloads_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")

    logger.info(
        "Application created",
        routes=len(app.routes),
        cors_origins=len(settings.allowed_origins),
    )

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )

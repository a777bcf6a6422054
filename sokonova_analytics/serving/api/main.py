"""
FastAPI Application Factory

Creates and configures the seller analytics API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import structlog

from sokonova_analytics.config import get_settings
from sokonova_analytics.config.logging import configure_logging
from sokonova_analytics.database.connection import init_database, close_database
from sokonova_analytics.serving.api.middleware import (
    RequestLoggingMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
)
from sokonova_analytics.serving.api.routes import health_router, seller_analytics_router

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    logger.info("Starting SOKONOVA seller analytics API", environment=settings.app_env)

    # Serve anyway; health/ready reports the database as unavailable
    try:
        await init_database()
    except Exception as e:
        logger.warning("Database init failed", error=str(e))

    yield

    logger.info("Shutting down...")
    await close_database()


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Store failures surface as 503."""
    logger.error(
        "Analytics store error",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=503, content={"error": "Analytics store unavailable"})


def create_api_app(use_lifespan: bool = True) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        use_lifespan: Connect to the database on startup. Tests that
            override dependencies turn this off.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="SOKONOVA Seller Analytics API",
        description="Profitability, inventory and buyer analytics for marketplace sellers",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.security.rate_limit_requests,
        window_seconds=settings.security.rate_limit_window_seconds,
    )

    app.add_exception_handler(SQLAlchemyError, store_error_handler)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(
        seller_analytics_router,
        prefix="/api/v1/analytics/seller",
        tags=["Seller Analytics"],
    )

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "SOKONOVA Seller Analytics API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }

    return app

"""
FastAPI main application.

Walletfolio backend API: multi-wallet crypto portfolio tracking.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import logging
from typing import Dict, Any

from app.config import settings
from app.database import AsyncSessionLocal
from app.errors import PortfolioError
from app.services.cache import cache
from app.utils.ttl_cache import TTLCache
from app.api import (
    overrides_router,
    portfolio_router,
    prices_router,
    wallets_router
)
from app.celery_app import celery_app  # noqa: F401

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

_health_cache = TTLCache(ttl_seconds=30, name="health")


async def _database_status() -> Dict[str, Any]:
    """Connectivity and alembic revision of the primary database."""
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
            try:
                revision = (await session.execute(
                    text("SELECT version_num FROM alembic_version LIMIT 1")
                )).scalar()
            except SQLAlchemyError:
                logger.debug("alembic_version table not found")
                return {"database": "connected_no_migrations"}
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return {"database": "connection_failed", "database_error": str(e)}

    if not revision:
        return {"database": "connected_no_migrations"}
    return {"database": "connected", "migration_revision": revision}


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Multi-wallet crypto portfolio tracking with per-token overrides",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(overrides_router)
app.include_router(portfolio_router)
app.include_router(prices_router)
app.include_router(wallets_router)


@app.exception_handler(PortfolioError)
async def portfolio_error_handler(request: Request, exc: PortfolioError):
    """Render domain errors as ``{"success": false, "error": ...}``."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message}
    )


@app.get("/api/health")
async def health_check():
    """Report database, migration and Redis status; results are reused for a short while."""
    cached_health = _health_cache.get(settings.environment)
    if cached_health is not None:
        return {**cached_health, "cached": True}

    health_data: Dict[str, Any] = {
        "status": "healthy",
        "app": settings.app_name,
        "environment": settings.environment,
        "cache": "connected" if cache.ping() else "unavailable",
        "cached": False,
    }
    health_data.update(await _database_status())

    if health_data["database"] not in ("connected", "connected_no_migrations"):
        health_data["status"] = "degraded"

    _health_cache.set(settings.environment, health_data)
    return health_data


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Walletfolio API",
        "docs": "/api/docs",
        "health": "/api/health"
    }


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.app_name} in {settings.environment} mode")
    logger.info(f"Allowed origins: {settings.allowed_origins}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.app_name} API")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower()
    )

"""
claimgate ASGI application.

`create_app()` wires the v1 claim router onto a FastAPI instance whose
lifespan owns the PostgreSQL pool. Run with:

    uvicorn src.api.main:app
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import psycopg
from fastapi import FastAPI, HTTPException, Request, status
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "v1",
        "description": "Claim a business listing, prove control of it, and moderate claims",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the pool and apply migrations before serving; close the pool on exit."""
    settings = get_settings()
    logging.getLogger("src").setLevel(settings.log_level.upper())

    with ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    ) as pool:
        run_migrations(pool)
        app.state.pool = pool
        logger.info(
            "claimgate ready: email=%s otp_ttl=%ss resend_cooldown=%ss dns_timeout=%ss",
            settings.email_backend,
            settings.otp_ttl_seconds,
            settings.resend_cooldown_seconds,
            settings.dns_timeout_seconds,
        )
        if not settings.admin_user_ids:
            logger.warning("ADMIN_USER_IDS is empty; new claims will alert no moderator")
        yield
        logger.info("claimgate shutting down")


def create_app() -> FastAPI:
    application = FastAPI(
        title="claimgate",
        description="Business Claim API - Prove and moderate ownership of business listings",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    application.include_router(v1_router, prefix="/v1")
    application.add_api_route("/health", health_check, methods=["GET"])
    return application


def health_check(request: Request) -> dict[str, str]:
    """Report healthy only when the database answers; 503 otherwise."""
    try:
        with request.app.state.pool.connection() as conn:
            conn.execute("SELECT 1")
    except psycopg.Error as e:
        logger.error("Health check failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        ) from None
    return {"status": "healthy"}


app = create_app()

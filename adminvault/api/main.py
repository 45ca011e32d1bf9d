"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, the error boundary, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from psycopg_pool import ConnectionPool
from starlette.concurrency import run_in_threadpool

from adminvault.adapters.repository.postgres import run_migrations
from adminvault.api.errors import ErrorBoundary
from adminvault.api.routes import admin_router, auth_router
from adminvault.config.logging import configure_logging
from adminvault.config.settings import Settings, get_settings
from adminvault.domain.errors import DomainError

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {"name": "admin", "description": "Administrative account management"},
    {"name": "auth", "description": "Credential verification and registration"},
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the connection pool and apply migrations for the app's lifetime.

    The pool is published on ``app.state.pool`` for the dependencies and
    closed on shutdown, including when startup fails half-way.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        "adminvault starting (environment=%s, pool=%d..%d)",
        settings.environment,
        settings.pool_min_size,
        settings.pool_max_size,
    )

    with ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    ) as pool:
        await run_in_threadpool(run_migrations, pool)
        app.state.pool = pool
        try:
            yield
        finally:
            logger.info("adminvault stopping, closing connection pool")


def _ping_database(pool: ConnectionPool) -> None:
    with pool.connection() as conn:
        conn.execute("SELECT 1")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application with routes, CORS, and the error boundary."""
    settings = settings or get_settings()

    application = FastAPI(
        title="adminvault",
        description="Administrative accounts API - credential management with a uniform error contract",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )

    ErrorBoundary(production=settings.is_production).install(application)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-User-Agent", "X-Forwarded-For"],
        expose_headers=["X-User-Agent", "X-Forwarded-For"],
    )

    application.include_router(admin_router)
    application.include_router(auth_router)

    @application.get("/health", tags=["health"])
    async def health_check(request: Request) -> dict[str, str]:
        """Liveness plus a ``SELECT 1`` round trip through the pool."""
        try:
            await run_in_threadpool(_ping_database, request.app.state.pool)
        except Exception as e:
            raise DomainError.service_unavailable("Database unavailable", cause=e) from e
        return {"status": "healthy"}

    return application


app = create_app()

"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import AsyncConnectionPool

from src.adapters.repository.memory import (
    InMemoryPendingRegistrationRepository,
    InMemoryUserRepository,
)
from src.adapters.repository.postgres import (
    PostgresPendingRegistrationRepository,
    PostgresUserRepository,
    run_migrations,
)
from src.api.errors import register_exception_handlers
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.credentials import CredentialStore
from src.domain.passwords import PasswordHasher

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "users",
        "description": "Registration, email change, password reset and session tokens",
    },
]


def build_memory_store(settings: Settings) -> CredentialStore:
    """Credential store backed by in-process dicts."""
    return CredentialStore(
        users=InMemoryUserRepository(),
        registrations=InMemoryPendingRegistrationRepository(),
        hasher=PasswordHasher(rounds=settings.bcrypt_cost),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations on startup
    - Closes connection pool on shutdown
    """
    settings = get_settings()
    hasher = PasswordHasher(rounds=settings.bcrypt_cost)

    logger.info("Starting application...")

    placeholder_secrets = settings.default_secret_names()
    if placeholder_secrets:
        logger.warning(
            "Token secrets still set to shipped defaults: %s", ", ".join(placeholder_secrets)
        )

    if settings.store_backend == "memory":
        logger.warning("Using in-memory credential store; data is lost on restart")
        app.state.pool = None
        app.state.credential_store = build_memory_store(settings)
        yield
        logger.info("Shutting down application...")
        return

    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = AsyncConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        open=False,
    )
    await pool.open()

    logger.info("Running database migrations...")
    await run_migrations(pool)

    # Store pool and store in app state for dependency injection
    app.state.pool = pool
    app.state.credential_store = CredentialStore(
        users=PostgresUserRepository(pool),
        registrations=PostgresPendingRegistrationRepository(pool),
        hasher=hasher,
    )

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="vidtube-identity",
    description="User identity API - OTP-verified registration, email change, "
    "password reset and rotating session tokens",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include v1 API routes
app.include_router(v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        async with pool.connection() as conn:
            await conn.execute("SELECT 1")

    return {"status": "healthy"}

"""
Shared fixtures for integration tests.

Requires PostgreSQL at DATABASE_URL (see docker-compose / .env).
Every test in this package is skipped when the database is unreachable.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from adminvault.adapters.repository.postgres import PostgresAccountRepository, run_migrations
from adminvault.config.settings import get_settings


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool and apply migrations, or skip."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    try:
        pool.wait(timeout=3)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")

    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def pg_repository(pool: ConnectionPool) -> PostgresAccountRepository:
    """Create repository instance for each test."""
    return PostgresAccountRepository(pool)


@pytest.fixture(autouse=True)
def clean_database(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """Empty the admins table before each test that touches the database."""
    if "pool" in request.fixturenames:
        pool = request.getfixturevalue("pool")
        with pool.connection() as conn:
            conn.execute("DELETE FROM admins")
            conn.commit()
    yield

"""
Shared fixtures for PostgreSQL integration tests.

Connects with DATABASE_URL from settings, applies migrations once per
session and empties the credential tables before each test. Tests marked
``integration`` are skipped when the database is unreachable.
"""

from collections.abc import Generator

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from passgate.adapters.repository.postgres import PostgresCredentialStore, run_migrations
from passgate.config.settings import get_settings


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests, or skip without a database."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=2):
            pass
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def pg_store(pool: ConnectionPool) -> PostgresCredentialStore:
    """Create store instance for each test."""
    return PostgresCredentialStore(pool)


@pytest.fixture(autouse=True)
def clean_database(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """Empty credential tables before each database-backed test."""
    if request.node.get_closest_marker("integration") is None:
        yield
        return

    pool = request.getfixturevalue("pool")
    with pool.connection() as conn:
        conn.execute("DELETE FROM otp_challenges")
        conn.execute("DELETE FROM pending_registrations")
        conn.execute("DELETE FROM accounts")
        conn.commit()
    yield

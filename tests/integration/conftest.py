"""Integration test fixtures: real Postgres via testcontainers.

Requires Docker to be running; the whole directory is skipped otherwise.
Run with: pytest tests/integration -v
"""

import pytest
from sqlalchemy import create_engine, text

SCHEMA = [
    "CREATE TABLE eod (event_date timestamptz NOT NULL, composite_figi text NOT NULL)",
    """CREATE TABLE assets (
        new boolean NOT NULL DEFAULT false,
        updated boolean NOT NULL DEFAULT false,
        active boolean NOT NULL DEFAULT true,
        cusip text NOT NULL DEFAULT '',
        composite_figi text NOT NULL DEFAULT ''
    )""",
    "CREATE TABLE seeking_alpha (event_date timestamptz NOT NULL)",
    "CREATE TABLE zacks_financials (event_date timestamptz NOT NULL)",
]


@pytest.fixture(scope="session")
def pg_container():
    """Session-scoped PostgreSQL container."""
    postgres = pytest.importorskip("testcontainers.postgres")
    container = postgres.PostgresContainer("postgres:16-alpine")
    try:
        container.start()
    except Exception as exc:
        pytest.skip(f"Docker unavailable: {exc}")
    yield container
    container.stop()


@pytest.fixture(scope="session")
def pg_url(pg_container):
    """psycopg2 connection URL for the testcontainers Postgres instance."""
    return pg_container.get_connection_url()


@pytest.fixture
def warehouse(pg_url):
    """Engine over a freshly created pvdb schema, dropped after each test."""
    engine = create_engine(pg_url)
    with engine.begin() as conn:
        for ddl in SCHEMA:
            conn.execute(text(ddl))
    yield engine
    with engine.begin() as conn:
        conn.execute(text("DROP TABLE IF EXISTS eod, assets, seeking_alpha, zacks_financials"))
    engine.dispose()

"""Database engine (the shared connection pool) and boot-time connectivity check."""

import logging
import re

import structlog
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from shared.config import DatabaseSettings

logger = structlog.get_logger()

DRIVER_URL = "postgresql+psycopg2://"

_PASSWORD_RE = re.compile(r"password\s*=\s*('(?:[^'\\]|\\.)*'|\S+)", re.I)


def redact_dsn(dsn: str) -> str:
    """Strip credentials from a DSN so it can be logged."""
    if "://" in dsn:
        scheme, _, rest = dsn.partition("://")
        return f"{scheme}://{rest.split('@')[-1]}"
    return _PASSWORD_RE.sub("password=***", dsn)


def engine_target(dsn: str) -> tuple[str, dict]:
    """Map a configured DSN onto a SQLAlchemy URL plus psycopg2 connect args.

    URLs are pinned to the psycopg2 driver. libpq keyword DSNs are handed to
    psycopg2 verbatim as its dsn argument.
    """
    if "://" not in dsn:
        return DRIVER_URL, {"dsn": dsn}
    scheme, _, rest = dsn.partition("://")
    if scheme in ("postgres", "postgresql") or scheme.startswith("postgresql+"):
        return f"{DRIVER_URL}{rest}", {}
    return dsn, {}


def create_db_engine(settings: DatabaseSettings) -> Engine:
    """Create the pooled engine. No connection is opened until first use."""
    url, connect_args = engine_target(settings.url)
    if settings.query_timeout_seconds:
        timeout_ms = int(settings.query_timeout_seconds * 1000)
        connect_args["options"] = f"-c statement_timeout={timeout_ms}"
    return create_engine(
        url,
        connect_args=connect_args,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout_seconds,
        pool_pre_ping=True,
    )


def ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def wait_for_database(
    engine: Engine, target: str, attempts: int = 3, max_wait_seconds: float = 10
) -> bool:
    """Retry a trivial query with backoff. Returns False once attempts run out."""
    pinger = retry(
        retry=retry_if_exception_type(SQLAlchemyError),
        wait=wait_exponential_jitter(initial=0.5, max=max_wait_seconds, jitter=1),
        stop=stop_after_attempt(attempts),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )(ping)
    try:
        pinger(engine)
    except RetryError as exc:
        logger.error(
            "database_connect_failed",
            target=redact_dsn(target),
            attempts=attempts,
            exc_info=exc.last_attempt.exception(),
        )
        return False
    logger.info("database_connected", target=redact_dsn(target))
    return True

"""Shared test fixtures.

FakeEngine stands in for a SQLAlchemy Engine: connect() hands out a
connection whose execute() answers by statement text, either with a count
or by raising the configured exception.
"""

import sys
import threading
from pathlib import Path

import pytest
import structlog
from sqlalchemy.exc import OperationalError

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pvdb import queries  # noqa: E402

FIXED_COUNTS = {
    str(queries.EOD_DAILY_SQL): 42,
    str(queries.EOD_NO_FIGI_SQL): 3,
    str(queries.ASSETS_NEW_SQL): 5,
    str(queries.ASSETS_CHANGED_SQL): 7,
    str(queries.ASSETS_RETIRED_SQL): 1,
    str(queries.ASSETS_NO_CUSIP_SQL): 0,
    str(queries.ASSETS_NO_FIGI_SQL): 2,
    str(queries.SEEKING_ALPHA_DAILY_SQL): 100,
    str(queries.ZACKS_FINANCE_DAILY_SQL): 88,
}

EXPECTED_VALUES = {
    "pvdb_eod_daily": 42.0,
    "pvdb_eod_no_figi": 3.0,
    "pvdb_assets_new": 5.0,
    "pvdb_assets_changed": 7.0,
    "pvdb_assets_retired": 1.0,
    "pvdb_assets_no_cusip": 0.0,
    "pvdb_assets_no_figi": 2.0,
    "pvdb_seeking_alpha_daily": 100.0,
    "pvdb_zacks_finance_daily": 88.0,
}


def connection_refused() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


class FakeResult:
    def __init__(self, value):
        self.value = value

    def scalar_one(self):
        return self.value


class FakeConnection:
    def __init__(self, engine: "FakeEngine"):
        self.engine = engine

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def execute(self, statement):
        sql = str(statement)
        with self.engine.lock:
            self.engine.executed.append(sql)
        outcome = self.engine.outcomes.get(sql, self.engine.default)
        if isinstance(outcome, BaseException):
            raise outcome
        return FakeResult(outcome)


class FakeEngine:
    def __init__(self, outcomes=None, default=1, connect_error: Exception | None = None):
        self.outcomes = {str(statement): value for statement, value in (outcomes or {}).items()}
        self.default = default
        self.connect_error = connect_error
        self.executed: list[str] = []
        self.connects = 0
        self.disposed = False
        self.lock = threading.Lock()

    def connect(self):
        with self.lock:
            self.connects += 1
        if self.connect_error is not None:
            raise self.connect_error
        return FakeConnection(self)

    def dispose(self):
        self.disposed = True


@pytest.fixture
def healthy_engine():
    return FakeEngine(FIXED_COUNTS)


@pytest.fixture
def broken_engine():
    return FakeEngine(connect_error=connection_refused())


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()

"""Read-only count queries, one per exported metric.

Each function borrows a connection from the shared engine, runs a single
count(*) and returns it as a float. Failures are fail-soft: the error is
logged with the exception attached, counted in
pvdb_exporter_query_failures_total, and 0.0 is returned so the rest of the
scrape is unaffected.

Date predicates use the database's now(), i.e. the server time zone.
"""

import structlog
from sqlalchemy import Engine, TextClause, text

from shared.metrics import query_duration_seconds, query_failures_total

logger = structlog.get_logger()

EOD_DAILY_SQL = text(
    "SELECT count(*) AS cnt FROM eod "
    "WHERE event_date::date = (now() - '1 day'::interval)::date"
)
EOD_NO_FIGI_SQL = text("SELECT count(*) AS cnt FROM eod WHERE composite_figi = ''")

ASSETS_NEW_SQL = text("SELECT count(*) AS cnt FROM assets WHERE new = True")
ASSETS_CHANGED_SQL = text("SELECT count(*) AS cnt FROM assets WHERE updated = True")
ASSETS_RETIRED_SQL = text(
    "SELECT count(*) AS cnt FROM assets WHERE active = False AND updated = True"
)
ASSETS_NO_CUSIP_SQL = text("SELECT count(*) AS cnt FROM assets WHERE cusip = ''")
ASSETS_NO_FIGI_SQL = text("SELECT count(*) AS cnt FROM assets WHERE composite_figi = ''")

SEEKING_ALPHA_DAILY_SQL = text(
    "SELECT count(*) AS cnt FROM seeking_alpha WHERE event_date::date = now()::date"
)
ZACKS_FINANCE_DAILY_SQL = text(
    "SELECT count(*) AS cnt FROM zacks_financials WHERE event_date::date = now()::date"
)


def run_count(engine: Engine, query: str, statement: TextClause) -> float:
    """Execute one count statement; 0.0 on any failure."""
    try:
        with query_duration_seconds.labels(query=query).time():
            with engine.connect() as conn:
                count = conn.execute(statement).scalar_one()
            return float(count)
    except Exception:
        query_failures_total.labels(query=query).inc()
        logger.error("query_failed", query=query, exc_info=True)
        return 0.0


def eod_daily(engine: Engine) -> float:
    return run_count(engine, "eod_daily", EOD_DAILY_SQL)


def eod_no_figi(engine: Engine) -> float:
    return run_count(engine, "eod_no_figi", EOD_NO_FIGI_SQL)


def assets_new(engine: Engine) -> float:
    return run_count(engine, "assets_new", ASSETS_NEW_SQL)


def assets_changed(engine: Engine) -> float:
    return run_count(engine, "assets_changed", ASSETS_CHANGED_SQL)


def assets_retired(engine: Engine) -> float:
    """Inactive assets that were also touched by the last update run."""
    return run_count(engine, "assets_retired", ASSETS_RETIRED_SQL)


def assets_no_cusip(engine: Engine) -> float:
    return run_count(engine, "assets_no_cusip", ASSETS_NO_CUSIP_SQL)


def assets_no_figi(engine: Engine) -> float:
    return run_count(engine, "assets_no_figi", ASSETS_NO_FIGI_SQL)


def seeking_alpha_daily(engine: Engine) -> float:
    return run_count(engine, "seeking_alpha_daily", SEEKING_ALPHA_DAILY_SQL)


def zacks_finance_daily(engine: Engine) -> float:
    return run_count(engine, "zacks_finance_daily", ZACKS_FINANCE_DAILY_SQL)

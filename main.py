"""FastAPI application factory.

Wires together: middleware, the database collector, the scrape route and
a liveness probe. Settings and the engine are injected by the caller.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy import Engine

from pvdb.api import router as scrape_router
from pvdb.collector import DbStatsCollector
from shared.config import Settings
from shared.database import redact_dsn
from shared.metrics import create_registry
from shared.middleware import RequestIdMiddleware

logger = structlog.get_logger()


def create_app(settings: Settings, engine: Engine) -> FastAPI:
    collector = DbStatsCollector(engine, max_workers=settings.collector.max_workers)
    registry = create_registry(collector)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle. The engine is owned by the caller."""
        logger.info(
            "exporter_starting",
            host=settings.server.host,
            port=settings.server.port,
            database=redact_dsn(settings.database.url),
            metrics=len(collector.catalogue),
        )
        yield
        logger.info("exporter_shutting_down")

    app = FastAPI(
        title="pvdb-metrics",
        description="Prometheus exporter for pvdb data-freshness and data-quality counts.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.registry = registry

    app.add_middleware(RequestIdMiddleware)
    app.include_router(scrape_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app

"""Scrape-time collector for pvdb data-freshness and data-quality counts.

Implements prometheus_client's two-phase collector protocol:

- describe() yields every declared metric without touching the database.
  The registry uses it for duplicate detection at registration.
- collect() runs every query against the shared engine and yields exactly
  one gauge per declared metric. Query failures come back as 0.0 from the
  query functions, so a collection pass always completes.

Queries are independent and fan out over a short-lived thread pool sized
by collector.max_workers.
"""

import contextvars
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector
from sqlalchemy import Engine

from pvdb import descriptors, queries
from pvdb.descriptors import MetricDescriptor, ensure_unique


class CatalogueEntry(NamedTuple):
    descriptor: MetricDescriptor
    query: Callable[[Engine], float]


CATALOGUE: tuple[CatalogueEntry, ...] = (
    CatalogueEntry(descriptors.EOD_DAILY, queries.eod_daily),
    CatalogueEntry(descriptors.EOD_NO_FIGI, queries.eod_no_figi),
    CatalogueEntry(descriptors.ASSETS_NEW, queries.assets_new),
    CatalogueEntry(descriptors.ASSETS_CHANGED, queries.assets_changed),
    CatalogueEntry(descriptors.ASSETS_RETIRED, queries.assets_retired),
    CatalogueEntry(descriptors.ASSETS_NO_CUSIP, queries.assets_no_cusip),
    CatalogueEntry(descriptors.ASSETS_NO_FIGI, queries.assets_no_figi),
    CatalogueEntry(descriptors.SEEKING_ALPHA_DAILY, queries.seeking_alpha_daily),
    CatalogueEntry(descriptors.ZACKS_FINANCE_DAILY, queries.zacks_finance_daily),
)

ensure_unique(entry.descriptor for entry in CATALOGUE)


class DbStatsCollector(Collector):
    def __init__(
        self,
        engine: Engine,
        catalogue: Iterable[CatalogueEntry] = CATALOGUE,
        max_workers: int = 4,
    ):
        self.engine = engine
        self.catalogue = tuple(catalogue)
        ensure_unique(entry.descriptor for entry in self.catalogue)
        self.max_workers = max(1, min(max_workers, len(self.catalogue)))

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for entry in self.catalogue:
            yield entry.descriptor.family()

    def collect(self) -> Iterator[GaugeMetricFamily]:
        values = self._evaluate()
        for entry, value in zip(self.catalogue, values, strict=True):
            yield entry.descriptor.family(value)

    def _evaluate(self) -> list[float]:
        """Run every query, preserving catalogue order in the result."""
        if self.max_workers == 1:
            return [entry.query(self.engine) for entry in self.catalogue]

        # Each task runs in a copy of the caller's context so the scrape's
        # request id reaches log records written from worker threads.
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="pvdb-query"
        ) as executor:
            futures = [
                executor.submit(contextvars.copy_context().run, entry.query, self.engine)
                for entry in self.catalogue
            ]
            return [future.result() for future in futures]

"""Registry assembly, exporter self-metrics and exposition.

The self-metrics are created unregistered so each app registry can adopt
them alongside its database collector.
"""

from prometheus_client import CollectorRegistry, Counter, Histogram
from prometheus_client.exposition import choose_encoder
from prometheus_client.registry import Collector

query_failures_total = Counter(
    "pvdb_exporter_query_failures",
    "Total metric queries that failed and were reported as 0",
    ["query"],
    registry=None,
)

query_duration_seconds = Histogram(
    "pvdb_exporter_query_duration_seconds",
    "Duration of metric queries",
    ["query"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30),
    registry=None,
)

SELF_METRICS = (query_failures_total, query_duration_seconds)


def create_registry(*collectors: Collector) -> CollectorRegistry:
    """Fresh registry holding the given collectors plus the self-metrics.

    prometheus_client rejects collectors whose names collide.
    """
    registry = CollectorRegistry()
    for collector in (*collectors, *SELF_METRICS):
        registry.register(collector)
    return registry


def render_latest(registry: CollectorRegistry, accept_header: str | None) -> tuple[bytes, str]:
    """Run one collection pass and encode it for the client's Accept header.

    OpenMetrics when the client asks for application/openmetrics-text,
    Prometheus text format otherwise.
    """
    encoder, content_type = choose_encoder(accept_header or "")
    return encoder(registry), content_type

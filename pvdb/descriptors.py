"""Metric descriptors for the pvdb warehouse.

A descriptor is the static identity of one exported gauge. The set below
is fixed at import; nothing registers metrics at runtime.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from prometheus_client.core import GaugeMetricFamily

from shared.exceptions import DuplicateMetricError

NAMESPACE = "pvdb"


def fq_name(namespace: str, subsystem: str, name: str) -> str:
    return "_".join(part for part in (namespace, subsystem, name) if part)


@dataclass(frozen=True)
class MetricDescriptor:
    """Identity and help text of one unlabeled gauge."""

    namespace: str
    subsystem: str
    name: str
    help: str
    labels: tuple[str, ...] = ()

    @property
    def fq_name(self) -> str:
        return fq_name(self.namespace, self.subsystem, self.name)

    def family(self, value: float | None = None) -> GaugeMetricFamily:
        """Metric family for this descriptor; sample-free when value is None.

        describe() hands out the sample-free form, collect() the valued one.
        """
        family = GaugeMetricFamily(self.fq_name, self.help, labels=list(self.labels))
        if value is not None:
            family.add_metric([], value)
        return family


def ensure_unique(descriptors: Iterable[MetricDescriptor]) -> None:
    seen: set[str] = set()
    for descriptor in descriptors:
        if descriptor.fq_name in seen:
            raise DuplicateMetricError(descriptor.fq_name)
        seen.add(descriptor.fq_name)


# --- EOD quotes ---

EOD_DAILY = MetricDescriptor(
    NAMESPACE, "eod", "daily", "Number of EOD quotes dated yesterday"
)
EOD_NO_FIGI = MetricDescriptor(
    NAMESPACE, "eod", "no_figi", "Number of EOD quotes with no Composite FIGI"
)

# --- Assets ---

ASSETS_NEW = MetricDescriptor(
    NAMESPACE, "assets", "new", "Number of new assets in the last 24 hours"
)
ASSETS_CHANGED = MetricDescriptor(
    NAMESPACE, "assets", "changed", "Number of changed assets in the last 24 hours"
)
ASSETS_RETIRED = MetricDescriptor(
    NAMESPACE, "assets", "retired", "Number of retired assets in the last 24 hours"
)
ASSETS_NO_CUSIP = MetricDescriptor(
    NAMESPACE, "assets", "no_cusip", "Number of assets with no CUSIP"
)
ASSETS_NO_FIGI = MetricDescriptor(
    NAMESPACE, "assets", "no_figi", "Number of assets with no Composite FIGI"
)

# --- Third-party providers ---

SEEKING_ALPHA_DAILY = MetricDescriptor(
    NAMESPACE, "seeking_alpha", "daily", "Number of Seeking Alpha ratings dated today"
)
ZACKS_FINANCE_DAILY = MetricDescriptor(
    NAMESPACE, "zacks_finance", "daily", "Number of Zacks Finance records dated today"
)

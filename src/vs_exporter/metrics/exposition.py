"""
Prometheus text exposition of merged metric families.
"""

from __future__ import annotations

from typing import Iterator, Mapping

import structlog
from prometheus_client.exposition import generate_latest
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector, CollectorRegistry

from vs_exporter.core.errors import EncodeError
from vs_exporter.metrics.catalog import MetricCatalog
from vs_exporter.metrics.models import MetricFamily, merge_families, split_metric

logger = structlog.get_logger()

# Text format 0.0.4; newer prometheus_client releases advertise a later version
# in CONTENT_TYPE_LATEST.
CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


class SortedFamilies(Collector):
    """Collector yielding a fixed set of families in ascending exposed-name order."""

    def __init__(self, families: Mapping[str, MetricFamily]) -> None:
        self._families = families

    def collect(self) -> Iterator[Metric]:
        for family in sorted(self._families.values(), key=lambda f: f.exposed_name):
            yield family.to_metric()


def encode_families(families: Mapping[str, MetricFamily]) -> bytes:
    """
    Serialize families in ascending order of the names written to the output.

    Families that would be written under the same name are combined first, so
    every TYPE line appears once.

    Raises:
        EncodeError: If any family cannot be encoded; no partial output is returned
    """
    try:
        unique = merge_families({}, families.values())
        return generate_latest(SortedFamilies(unique))  # type: ignore[arg-type]
    except Exception as e:
        raise EncodeError(f"encode metric families: {e}") from e


class MetricsRenderer:
    """Renders the registry's own series together with the catalog's merged view."""

    def __init__(self, catalog: MetricCatalog, registry: CollectorRegistry) -> None:
        self._catalog = catalog
        self._registry = registry

    def gather(self) -> dict[str, MetricFamily]:
        families: dict[str, MetricFamily] = {}
        try:
            for metric in self._registry.collect():
                merge_families(families, split_metric(metric))
        except Exception as e:
            raise EncodeError(f"gather registry metrics: {e}") from e
        merge_families(families, self._catalog.read_merged().values())
        return families

    def render(self) -> bytes:
        return encode_families(self.gather())

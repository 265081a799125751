"""
Product metrics aggregation.

Pods selected by label are scraped periodically; their families are stamped
with the source namespace, merged per target, and published into a shared
catalog from which the exposition endpoint renders one combined view.
"""

from vs_exporter.metrics.catalog import MetricCatalog
from vs_exporter.metrics.exposition import CONTENT_TYPE, MetricsRenderer, encode_families
from vs_exporter.metrics.models import (
    NAMESPACE_LABEL,
    MetricFamily,
    merge_families,
    parse_exposition,
)
from vs_exporter.metrics.scraper import Scraper, ScrapeResult

__all__ = [
    "CONTENT_TYPE",
    "NAMESPACE_LABEL",
    "MetricCatalog",
    "MetricFamily",
    "MetricsRenderer",
    "ScrapeResult",
    "Scraper",
    "encode_families",
    "merge_families",
    "parse_exposition",
]

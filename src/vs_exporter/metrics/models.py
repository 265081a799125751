"""
Metric family value objects.

Families are immutable once built. Every relabel or merge step returns a new
family, so a snapshot handed to the catalog can never be changed by a later
scrape and a merged view handed to a reader can never be changed by a later
publish.

prometheus_client stores a counter under its base name and the text encoder
appends "_total" when writing it. Families are therefore keyed by
`exposed_name`, the name that actually appears in the exposition, so sorting
and merging agree with the output.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterable, MutableMapping

import structlog
from prometheus_client.metrics_core import Metric
from prometheus_client.parser import text_string_to_metric_families
from prometheus_client.samples import Sample

logger = structlog.get_logger()

NAMESPACE_LABEL = "namespace"

# Series the text encoder writes as separate gauge families after their parent.
_SPLIT_SUFFIXES = ("_created", "_gsum", "_gcount")

_COUNTER_TYPE_LINE = re.compile(r"^[ \t]*#[ \t]+TYPE[ \t]+(\S+)[ \t]+counter[ \t]*$", re.MULTILINE)


@dataclass(frozen=True)
class MetricFamily:
    """A named group of samples sharing a type and help text."""

    name: str
    documentation: str
    type: str
    samples: tuple[Sample, ...] = ()

    @classmethod
    def from_metric(cls, metric: Metric) -> MetricFamily:
        """Build a family from a prometheus_client Metric, copying its samples."""
        return cls(
            name=metric.name,
            documentation=metric.documentation,
            type=metric.type,
            samples=tuple(_copy_sample(s) for s in metric.samples),
        )

    @property
    def exposed_name(self) -> str:
        """Name written to the text exposition for this family."""
        if self.type == "counter":
            return self.name + "_total"
        if self.type == "info":
            return self.name + "_info"
        return self.name

    def to_metric(self) -> Metric:
        """Return a fresh prometheus_client Metric for encoding."""
        metric = Metric(self.name, self.documentation, self.type)
        metric.samples = [_copy_sample(s) for s in self.samples]
        return metric

    def with_namespace(self, namespace: str) -> MetricFamily:
        """Stamp every sample with the namespace label, overwriting any existing value."""
        return replace(
            self,
            samples=tuple(
                s._replace(labels={**s.labels, NAMESPACE_LABEL: namespace}) for s in self.samples
            ),
        )

    def merged_with(self, other: MetricFamily) -> MetricFamily:
        """Concatenate other's samples after ours, keeping our metadata."""
        return replace(self, samples=self.samples + tuple(_copy_sample(s) for s in other.samples))

    def clone(self) -> MetricFamily:
        return replace(self, samples=tuple(_copy_sample(s) for s in self.samples))


def _copy_sample(sample: Sample) -> Sample:
    return sample._replace(labels=dict(sample.labels))


def split_metric(metric: Metric) -> list[MetricFamily]:
    """
    Convert a Metric into the families the text encoder writes for it.

    OpenMetrics-only series (`_created`, `_gsum`, `_gcount`) become gauge
    families of their own, so each one sorts under its own name.
    """
    main: list[Sample] = []
    extra: dict[str, list[Sample]] = {}
    for sample in metric.samples:
        for suffix in _SPLIT_SUFFIXES:
            if sample.name == metric.name + suffix:
                extra.setdefault(suffix, []).append(_copy_sample(sample))
                break
        else:
            main.append(_copy_sample(sample))

    families = [MetricFamily(metric.name, metric.documentation, metric.type, tuple(main))]
    for suffix, samples in sorted(extra.items()):
        families.append(
            MetricFamily(metric.name + suffix, metric.documentation, "gauge", tuple(samples))
        )
    return families


def _untyped_counter(metric: Metric) -> MetricFamily:
    # The parser renamed "foo" samples to "foo_total"; the encoder would write
    # them back as "foo_total". Untyped keeps the workload's own series name.
    suffixed = metric.name + "_total"
    return MetricFamily(
        name=metric.name,
        documentation=metric.documentation,
        type="unknown",
        samples=tuple(
            _copy_sample(s._replace(name=metric.name) if s.name == suffixed else s)
            for s in metric.samples
        ),
    )


def merge_families(
    into: MutableMapping[str, MetricFamily],
    families: Iterable[MetricFamily],
) -> MutableMapping[str, MetricFamily]:
    """
    Merge families into a caller-owned mapping keyed by exposed name.

    Families written under the same name are concatenated into one; help text
    and type come from the first family seen with that name. Sample
    identities are not deduplicated.
    """
    for family in families:
        key = family.exposed_name
        existing = into.get(key)
        if existing is None:
            into[key] = family
            continue
        if existing.type != family.type:
            logger.debug(
                "metric_family_type_conflict",
                family=key,
                kept_type=existing.type,
                merged_type=family.type,
            )
        into[key] = existing.merged_with(family)
    return into


def parse_exposition(text: str) -> dict[str, MetricFamily]:
    """
    Parse Prometheus text exposition format into families keyed by exposed name.

    Counters declared without a "_total" suffix are kept as untyped families
    under their declared name so their series names pass through unchanged.

    Raises:
        ValueError: If the payload is not valid exposition text
    """
    unsuffixed_counters = {
        name for name in _COUNTER_TYPE_LINE.findall(text) if not name.endswith("_total")
    }
    parsed: list[MetricFamily] = []
    try:
        for metric in text_string_to_metric_families(text):
            if metric.type == "counter" and metric.name in unsuffixed_counters:
                parsed.append(_untyped_counter(metric))
            else:
                parsed.extend(split_metric(metric))
    except (ValueError, IndexError, KeyError) as e:
        raise ValueError(f"parse metrics: {e}") from e

    families: dict[str, MetricFamily] = {}
    merge_families(families, parsed)
    return families


def sample_count(families: Iterable[MetricFamily]) -> int:
    return sum(len(f.samples) for f in families)

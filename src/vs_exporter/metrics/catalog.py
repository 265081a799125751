"""
Concurrency-safe cache of the latest metric snapshot per scrape target.
"""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Mapping

from vs_exporter.metrics.models import MetricFamily, merge_families

Snapshot = Mapping[str, MetricFamily]


class MetricCatalog:
    """
    Maps a scrape target name to its most recently published snapshot.

    Writers replace a target's whole snapshot in one assignment under the lock;
    readers copy out the snapshot references under the lock and clone/merge
    after releasing it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._targets: dict[str, Snapshot] = {}

    def put(self, target: str, snapshot: Mapping[str, MetricFamily]) -> None:
        """Atomically replace the stored snapshot for target.

        An empty snapshot clears the target's previous contribution.
        """
        frozen = MappingProxyType(dict(snapshot))
        with self._lock:
            self._targets[target] = frozen

    def read_merged(self) -> dict[str, MetricFamily]:
        """
        Return a caller-owned merge of every target's current snapshot.

        Families with the same name in different targets are concatenated in
        target publication order; metadata comes from the first target that
        defines the name.
        """
        with self._lock:
            snapshots = list(self._targets.values())

        merged: dict[str, MetricFamily] = {}
        for snapshot in snapshots:
            merge_families(merged, (family.clone() for family in snapshot.values()))
        return merged

    def snapshot(self, target: str) -> dict[str, MetricFamily] | None:
        """Return a copy of one target's snapshot, or None if it never published."""
        with self._lock:
            stored = self._targets.get(target)
        if stored is None:
            return None
        return {name: family.clone() for name, family in stored.items()}

    def targets(self) -> list[str]:
        with self._lock:
            return list(self._targets)

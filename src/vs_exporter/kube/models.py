"""
Data models for the cluster objects the exporter reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PodInfo:
    """A pod candidate for scraping."""

    name: str
    namespace: str
    ip: str | None = None
    phase: str | None = None

    @property
    def ready_for_scrape(self) -> bool:
        # Pods without an assigned IP are not yet ready.
        return bool(self.ip)


@dataclass(frozen=True)
class VirtualService:
    """An Istio VirtualService and the gateways it binds to."""

    namespace: str
    name: str
    hosts: tuple[str, ...] = field(default_factory=tuple)
    gateways: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Gateway:
    """An Istio Gateway and the host patterns of all of its servers."""

    namespace: str
    name: str
    hosts: tuple[str, ...] = field(default_factory=tuple)

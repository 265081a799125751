"""
VirtualService to Gateway routing compatibility metrics.

Each cycle lists the namespaces selected by label, every VirtualService in
them, and the Gateways those VirtualServices reference, then publishes one
compatibility series per (namespace, virtual_service, gateway reference).
A VirtualService without gateway references is bound to the mesh and always
compatible. A reference to a missing gateway is reported as 0.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Gauge

from vs_exporter.collector.gateways import (
    MESH_GATEWAY,
    GatewayCache,
    GatewayRef,
    hosts_compatible,
)
from vs_exporter.core.errors import DiscoveryError
from vs_exporter.kube.client import ClusterClient
from vs_exporter.kube.models import VirtualService
from vs_exporter.logging import component_logger
from vs_exporter.scheduling import run_periodically

DEFAULT_NAMESPACE_SELECTOR = "product"


@dataclass(frozen=True)
class GatewayBinding:
    """Computed compatibility of one VirtualService gateway reference."""

    namespace: str
    virtual_service: str
    gateway: str
    compatible: bool

    @property
    def value(self) -> float:
        return 1.0 if self.compatible else 0.0


class VirtualServiceCollector:
    """Periodically refreshes metrics describing Istio VirtualServices."""

    def __init__(
        self,
        cluster: ClusterClient,
        registry: CollectorRegistry,
        *,
        interval: float,
        namespace_selector: str = DEFAULT_NAMESPACE_SELECTOR,
    ) -> None:
        self._cluster = cluster
        self.interval = interval
        self.namespace_selector = namespace_selector
        self._log = component_logger("virtual-service-collector")

        self.compatible = Gauge(
            "istio_virtual_service_gateway_compatible",
            "Whether a VirtualService's hosts can be served by the gateway it references (1) or not (0).",
            ["namespace", "virtual_service", "gateway"],
            registry=registry,
        )
        self.info = Gauge(
            "istio_virtual_service_info",
            "Information about Istio VirtualService resources, labelled by namespace and name.",
            ["namespace", "virtual_service"],
            registry=registry,
        )
        self.updates = Counter(
            "istio_virtual_service_updates_total",
            "Number of VirtualService metric refresh attempts.",
            registry=registry,
        )

    async def run(self, stop: asyncio.Event) -> None:
        """Refresh VirtualService metrics until stop is set."""
        await run_periodically("virtual-service-collector", self.interval, self.update, stop)

    async def update(self) -> list[GatewayBinding]:
        """
        Run one refresh cycle.

        Every binding is computed before the gauges are touched, so a cycle
        that fails part-way leaves the previous values in place.

        Raises:
            DiscoveryError: If namespaces, VirtualServices or Gateways cannot be listed
        """
        self.updates.inc()

        try:
            namespaces = await self._cluster.list_namespaces(self.namespace_selector)
        except Exception as e:
            raise DiscoveryError(f"list namespaces: {e}") from e

        cache = GatewayCache(self._cluster)
        virtual_services: list[VirtualService] = []
        bindings: list[GatewayBinding] = []

        for namespace in namespaces:
            try:
                listed = await self._cluster.list_virtual_services(namespace)
            except Exception as e:
                raise DiscoveryError(
                    f"list virtual services in namespace {namespace}: {e}",
                    {"namespace": namespace},
                ) from e

            for vs in listed:
                virtual_services.append(vs)
                bindings.extend(await self._resolve(vs, cache))

        self._apply(virtual_services, bindings)
        self._log.info(
            "virtual_service_metrics_updated",
            namespaces=len(namespaces),
            virtual_services=len(virtual_services),
            bindings=len(bindings),
            incompatible=sum(1 for b in bindings if not b.compatible),
        )
        return bindings

    async def _resolve(self, vs: VirtualService, cache: GatewayCache) -> list[GatewayBinding]:
        if not vs.gateways:
            return [GatewayBinding(vs.namespace, vs.name, MESH_GATEWAY, True)]

        bindings = []
        for reference in vs.gateways:
            if reference == MESH_GATEWAY:
                bindings.append(GatewayBinding(vs.namespace, vs.name, reference, True))
                continue

            compatible = False
            ref = GatewayRef.parse(reference, vs.namespace)
            if ref is not None:
                gateway = await cache.get(ref)
                if gateway is not None:
                    compatible = hosts_compatible(vs.hosts, gateway.hosts)
                else:
                    self._log.debug(
                        "gateway_not_found",
                        namespace=vs.namespace,
                        virtual_service=vs.name,
                        gateway=reference,
                    )
            bindings.append(GatewayBinding(vs.namespace, vs.name, reference, compatible))
        return bindings

    def _apply(self, virtual_services: list[VirtualService], bindings: list[GatewayBinding]) -> None:
        # Reset so deleted or renamed resources do not leave stale series behind.
        self.compatible.clear()
        self.info.clear()
        for vs in virtual_services:
            self.info.labels(namespace=vs.namespace, virtual_service=vs.name).set(1)
        for binding in bindings:
            self.compatible.labels(
                namespace=binding.namespace,
                virtual_service=binding.virtual_service,
                gateway=binding.gateway,
            ).set(binding.value)

"""Istio VirtualService routing health metrics."""

from vs_exporter.collector.gateways import (
    MESH_GATEWAY,
    GatewayCache,
    GatewayRef,
    host_matches,
    hosts_compatible,
)
from vs_exporter.collector.virtual_service import GatewayBinding, VirtualServiceCollector

__all__ = [
    "MESH_GATEWAY",
    "GatewayBinding",
    "GatewayCache",
    "GatewayRef",
    "VirtualServiceCollector",
    "host_matches",
    "hosts_compatible",
]

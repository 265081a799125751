"""
Gateway reference resolution and host compatibility.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from vs_exporter.core.errors import DiscoveryError
from vs_exporter.kube.client import ClusterClient
from vs_exporter.kube.models import Gateway

MESH_GATEWAY = "mesh"


@dataclass(frozen=True)
class GatewayRef:
    """A parsed VirtualService gateway reference."""

    namespace: str
    name: str

    @classmethod
    def parse(cls, reference: str, default_namespace: str) -> GatewayRef | None:
        """
        Parse "name" (resolved in default_namespace) or "namespace/name".

        Returns None for references that cannot name a gateway.
        """
        reference = reference.strip()
        if not reference:
            return None
        namespace, sep, name = reference.partition("/")
        if not sep:
            return cls(namespace=default_namespace, name=reference)
        if not namespace or not name:
            return None
        return cls(namespace=namespace, name=name)


def host_matches(pattern: str, host: str) -> bool:
    """Match host against pattern: exact, a bare "*", or a "*.suffix" wildcard."""
    if pattern == host:
        return True
    if pattern == "*" or host == "*":
        return True
    if pattern.startswith("*."):
        return host.endswith(pattern[1:])
    return False


def hosts_compatible(vs_hosts: Iterable[str], gateway_hosts: Iterable[str]) -> bool:
    """
    True if a VirtualService's hosts can be served by a gateway's hosts.

    A VirtualService without hosts matches any gateway. Otherwise one
    (vs host, gateway host) pair must match with the wildcard on either side.
    """
    vs_hosts = list(vs_hosts)
    if not vs_hosts:
        return True
    gateway_hosts = list(gateway_hosts)
    return any(
        host_matches(gw_host, vs_host) or host_matches(vs_host, gw_host)
        for vs_host in vs_hosts
        for gw_host in gateway_hosts
    )


class GatewayCache:
    """
    Gateways by namespace, listed at most once per namespace.

    Scoped to a single collector cycle: build a new one every cycle and drop
    it afterwards.
    """

    def __init__(self, cluster: ClusterClient) -> None:
        self._cluster = cluster
        self._by_namespace: dict[str, dict[str, Gateway]] = {}

    @property
    def namespaces_listed(self) -> list[str]:
        return list(self._by_namespace)

    async def get(self, ref: GatewayRef) -> Gateway | None:
        """
        Return the referenced gateway, or None if it does not exist.

        Raises:
            DiscoveryError: If the gateways of the namespace cannot be listed
        """
        gateways = self._by_namespace.get(ref.namespace)
        if gateways is None:
            try:
                listed = await self._cluster.list_gateways(ref.namespace)
            except Exception as e:
                raise DiscoveryError(
                    f"list gateways in namespace {ref.namespace}: {e}",
                    {"namespace": ref.namespace},
                ) from e
            gateways = {gw.name: gw for gw in listed}
            self._by_namespace[ref.namespace] = gateways
        return gateways.get(ref.name)

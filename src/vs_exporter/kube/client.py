"""
Read-only Kubernetes and Istio API access.

Wraps the official kubernetes client. The client is synchronous, so every call
runs in the default executor and carries an explicit request timeout that is
shorter than any refresh interval.

Exceptions raised by the API (ApiException, urllib3 transport errors)
propagate unchanged; callers decide whether a failure aborts a cycle or is
isolated to one namespace.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from functools import partial
from typing import Any

import structlog
from kubernetes import client, config

from vs_exporter.core.errors import ConfigurationError
from vs_exporter.kube.models import Gateway, PodInfo, VirtualService

logger = structlog.get_logger()

ISTIO_GROUP = "networking.istio.io"
ISTIO_VERSION = "v1beta1"
VIRTUAL_SERVICE_PLURAL = "virtualservices"
GATEWAY_PLURAL = "gateways"

DEFAULT_API_TIMEOUT = 10.0


def load_kube_config(
    kubeconfig: str | None = None,
    context: str | None = None,
) -> client.ApiClient:
    """
    Build an API client from in-cluster settings, falling back to kubeconfig.

    Raises:
        ConfigurationError: If neither configuration source is usable
    """
    try:
        config.load_incluster_config()
        logger.info("loaded_incluster_kube_config")
    except config.ConfigException:
        try:
            config.load_kube_config(config_file=kubeconfig, context=context)
            logger.info("loaded_kubeconfig", path=kubeconfig or "default", context=context)
        except (config.ConfigException, OSError) as e:
            raise ConfigurationError(f"Failed to load Kubernetes config: {e}") from e

    return client.ApiClient()


@dataclass
class ClusterClient:
    """
    Cluster read API used by the scrapers and the VirtualService collector.

    Configuration:
        api_client: Kubernetes ApiClient (None = client library default)
        timeout: Per-request timeout in seconds
    """

    api_client: Any = None
    timeout: float = DEFAULT_API_TIMEOUT

    _core: Any = field(default=None, repr=False, compare=False)
    _custom: Any = field(default=None, repr=False, compare=False)

    def _get_core_api(self) -> Any:
        if self._core is None:
            self._core = client.CoreV1Api(self.api_client)
        return self._core

    def _get_custom_api(self) -> Any:
        if self._custom is None:
            self._custom = client.CustomObjectsApi(self.api_client)
        return self._custom

    async def _run_sync(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        """Run synchronous kubernetes API call in executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def list_namespaces(self, label_selector: str) -> list[str]:
        """Return the names of namespaces matching the label selector."""
        namespaces = await self._run_sync(
            self._get_core_api().list_namespace,
            label_selector=label_selector,
            _request_timeout=self.timeout,
        )
        return [ns.metadata.name for ns in namespaces.items]

    async def list_pods(self, namespace: str, label_selector: str) -> list[PodInfo]:
        """Return pods in namespace matching the label selector."""
        pods = await self._run_sync(
            self._get_core_api().list_namespaced_pod,
            namespace,
            label_selector=label_selector,
            _request_timeout=self.timeout,
        )
        result = []
        for pod in pods.items:
            status = pod.status
            result.append(
                PodInfo(
                    name=pod.metadata.name,
                    namespace=namespace,
                    ip=status.pod_ip if status else None,
                    phase=status.phase if status else None,
                )
            )
        return result

    async def list_virtual_services(self, namespace: str) -> list[VirtualService]:
        """Return every VirtualService in namespace."""
        items = await self._list_istio_objects(namespace, VIRTUAL_SERVICE_PLURAL)
        result = []
        for item in items:
            spec = item.get("spec") or {}
            result.append(
                VirtualService(
                    namespace=namespace,
                    name=item["metadata"]["name"],
                    hosts=tuple(spec.get("hosts") or ()),
                    gateways=tuple(spec.get("gateways") or ()),
                )
            )
        return result

    async def list_gateways(self, namespace: str) -> list[Gateway]:
        """Return every Gateway in namespace with the union of its server hosts."""
        items = await self._list_istio_objects(namespace, GATEWAY_PLURAL)
        result = []
        for item in items:
            spec = item.get("spec") or {}
            hosts: dict[str, None] = {}
            for server in spec.get("servers") or ():
                for host in server.get("hosts") or ():
                    hosts[host] = None
            result.append(
                Gateway(
                    namespace=namespace,
                    name=item["metadata"]["name"],
                    hosts=tuple(hosts),
                )
            )
        return result

    async def _list_istio_objects(self, namespace: str, plural: str) -> list[dict[str, Any]]:
        response = await self._run_sync(
            self._get_custom_api().list_namespaced_custom_object,
            group=ISTIO_GROUP,
            version=ISTIO_VERSION,
            namespace=namespace,
            plural=plural,
            _request_timeout=self.timeout,
        )
        return list(response.get("items") or [])

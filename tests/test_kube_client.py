"""Tests for the Kubernetes and Istio API wrapper."""

from unittest.mock import MagicMock, patch

import pytest
from kubernetes import config as kube_config

from vs_exporter.core.errors import ConfigurationError
from vs_exporter.kube.client import (
    GATEWAY_PLURAL,
    ISTIO_GROUP,
    ISTIO_VERSION,
    VIRTUAL_SERVICE_PLURAL,
    ClusterClient,
    load_kube_config,
)
from vs_exporter.kube.models import Gateway, PodInfo, VirtualService


def _named(name: str) -> MagicMock:
    obj = MagicMock()
    obj.metadata.name = name
    return obj


def _pod(name: str, ip: str | None, phase: str = "Running") -> MagicMock:
    pod = _named(name)
    pod.status.pod_ip = ip
    pod.status.phase = phase
    return pod


class TestLoadKubeConfig:
    def test_prefers_in_cluster_config(self):
        with (
            patch("vs_exporter.kube.client.config.load_incluster_config") as incluster,
            patch("vs_exporter.kube.client.config.load_kube_config") as kubeconfig,
            patch("vs_exporter.kube.client.client.ApiClient") as api_client,
        ):
            result = load_kube_config()

        incluster.assert_called_once()
        kubeconfig.assert_not_called()
        assert result is api_client.return_value

    def test_falls_back_to_kubeconfig(self):
        with (
            patch(
                "vs_exporter.kube.client.config.load_incluster_config",
                side_effect=kube_config.ConfigException("not in cluster"),
            ),
            patch("vs_exporter.kube.client.config.load_kube_config") as kubeconfig,
            patch("vs_exporter.kube.client.client.ApiClient"),
        ):
            load_kube_config("/tmp/kubeconfig", "staging")

        kubeconfig.assert_called_once_with(config_file="/tmp/kubeconfig", context="staging")

    def test_no_usable_config(self):
        with (
            patch(
                "vs_exporter.kube.client.config.load_incluster_config",
                side_effect=kube_config.ConfigException("not in cluster"),
            ),
            patch(
                "vs_exporter.kube.client.config.load_kube_config",
                side_effect=kube_config.ConfigException("no kubeconfig"),
            ),
        ):
            with pytest.raises(ConfigurationError, match="Failed to load Kubernetes config"):
                load_kube_config()


class TestClusterClientCore:
    @pytest.mark.asyncio
    async def test_list_namespaces(self):
        core = MagicMock()
        core.list_namespace.return_value.items = [_named("shop"), _named("billing")]
        cluster = ClusterClient(timeout=5.0)

        with patch.object(cluster, "_get_core_api", return_value=core):
            names = await cluster.list_namespaces("product=a")

        assert names == ["shop", "billing"]
        core.list_namespace.assert_called_once_with(label_selector="product=a", _request_timeout=5.0)

    @pytest.mark.asyncio
    async def test_list_pods(self):
        core = MagicMock()
        core.list_namespaced_pod.return_value.items = [
            _pod("web-0", "10.0.0.1"),
            _pod("web-1", None, phase="Pending"),
        ]
        cluster = ClusterClient(timeout=5.0)

        with patch.object(cluster, "_get_core_api", return_value=core):
            pods = await cluster.list_pods("shop", "app=web")

        assert pods == [
            PodInfo("web-0", "shop", "10.0.0.1", "Running"),
            PodInfo("web-1", "shop", None, "Pending"),
        ]
        assert [p.ready_for_scrape for p in pods] == [True, False]
        core.list_namespaced_pod.assert_called_once_with(
            "shop", label_selector="app=web", _request_timeout=5.0
        )

    @pytest.mark.asyncio
    async def test_api_errors_propagate(self):
        core = MagicMock()
        core.list_namespace.side_effect = RuntimeError("connection refused")
        cluster = ClusterClient()

        with patch.object(cluster, "_get_core_api", return_value=core):
            with pytest.raises(RuntimeError, match="connection refused"):
                await cluster.list_namespaces("product")


class TestClusterClientIstio:
    @pytest.mark.asyncio
    async def test_list_virtual_services(self):
        custom = MagicMock()
        custom.list_namespaced_custom_object.return_value = {
            "items": [
                {
                    "metadata": {"name": "web"},
                    "spec": {"hosts": ["web.example.com"], "gateways": ["shared-ns/edge-gw"]},
                },
                {"metadata": {"name": "internal"}, "spec": {"hosts": ["internal.svc"]}},
            ]
        }
        cluster = ClusterClient(timeout=5.0)

        with patch.object(cluster, "_get_custom_api", return_value=custom):
            services = await cluster.list_virtual_services("shop")

        assert services == [
            VirtualService("shop", "web", ("web.example.com",), ("shared-ns/edge-gw",)),
            VirtualService("shop", "internal", ("internal.svc",), ()),
        ]
        custom.list_namespaced_custom_object.assert_called_once_with(
            group=ISTIO_GROUP,
            version=ISTIO_VERSION,
            namespace="shop",
            plural=VIRTUAL_SERVICE_PLURAL,
            _request_timeout=5.0,
        )

    @pytest.mark.asyncio
    async def test_list_gateways_unions_server_hosts(self):
        custom = MagicMock()
        custom.list_namespaced_custom_object.return_value = {
            "items": [
                {
                    "metadata": {"name": "edge-gw"},
                    "spec": {
                        "servers": [
                            {"hosts": ["api.example.com", "*.example.com"]},
                            {"hosts": ["*.example.com", "web.example.org"]},
                        ]
                    },
                },
                {"metadata": {"name": "empty-gw"}, "spec": {}},
            ]
        }
        cluster = ClusterClient()

        with patch.object(cluster, "_get_custom_api", return_value=custom):
            gateways = await cluster.list_gateways("shared-ns")

        assert gateways == [
            Gateway("shared-ns", "edge-gw", ("api.example.com", "*.example.com", "web.example.org")),
            Gateway("shared-ns", "empty-gw", ()),
        ]
        assert custom.list_namespaced_custom_object.call_args.kwargs["plural"] == GATEWAY_PLURAL

    @pytest.mark.asyncio
    async def test_empty_list(self):
        custom = MagicMock()
        custom.list_namespaced_custom_object.return_value = {"items": []}
        cluster = ClusterClient()

        with patch.object(cluster, "_get_custom_api", return_value=custom):
            assert await cluster.list_gateways("shop") == []

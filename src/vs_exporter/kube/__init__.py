"""Kubernetes and Istio read access."""

from vs_exporter.kube.client import ClusterClient, load_kube_config
from vs_exporter.kube.models import Gateway, PodInfo, VirtualService

__all__ = [
    "ClusterClient",
    "Gateway",
    "PodInfo",
    "VirtualService",
    "load_kube_config",
]

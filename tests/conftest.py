"""Root test configuration."""

import logging

import pytest
import structlog
from prometheus_client import CollectorRegistry

from vs_exporter.kube.models import Gateway, PodInfo, VirtualService


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class FakeCluster:
    """In-memory implementation of the cluster read API."""

    def __init__(self) -> None:
        self.namespaces: dict[str, list[str]] = {}
        self.pods: dict[str, list[PodInfo]] = {}
        self.virtual_services: dict[str, list[VirtualService]] = {}
        self.gateways: dict[str, list[Gateway]] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def fail(self, call: str, key: str, exc: Exception | None = None) -> None:
        self.failures[(call, key)] = exc or RuntimeError(f"{call} {key}: connection refused")

    def recover(self, call: str, key: str) -> None:
        self.failures.pop((call, key), None)

    def add_pod(self, namespace: str, name: str, ip: str | None) -> PodInfo:
        pod = PodInfo(name=name, namespace=namespace, ip=ip, phase="Running")
        self.pods.setdefault(namespace, []).append(pod)
        return pod

    def _record(self, call: str, key: str) -> None:
        self.calls.append((call, key))
        if (call, key) in self.failures:
            raise self.failures[(call, key)]

    def count(self, call: str, key: str | None = None) -> int:
        return sum(1 for c, k in self.calls if c == call and (key is None or k == key))

    async def list_namespaces(self, label_selector: str) -> list[str]:
        self._record("namespaces", label_selector)
        return list(self.namespaces.get(label_selector, []))

    async def list_pods(self, namespace: str, label_selector: str) -> list[PodInfo]:
        self._record("pods", namespace)
        return list(self.pods.get(namespace, []))

    async def list_virtual_services(self, namespace: str) -> list[VirtualService]:
        self._record("virtualservices", namespace)
        return list(self.virtual_services.get(namespace, []))

    async def list_gateways(self, namespace: str) -> list[Gateway]:
        self._record("gateways", namespace)
        return list(self.gateways.get(namespace, []))


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def registry() -> CollectorRegistry:
    """A fresh registry so tests never share series."""
    return CollectorRegistry()

"""Tests for the HTTP exposition endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient
from prometheus_client import Counter, Gauge
from prometheus_client.samples import Sample

from vs_exporter.api.main import create_app, create_internal_app
from vs_exporter.metrics.catalog import MetricCatalog
from vs_exporter.metrics.exposition import CONTENT_TYPE
from vs_exporter.metrics.models import MetricFamily, parse_exposition


@pytest.fixture
def catalog() -> MetricCatalog:
    return MetricCatalog()


async def _get(app, path: str):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get(path)


class TestMetricsEndpoint:
    @pytest.mark.asyncio
    async def test_serves_registry_and_catalog(self, catalog, registry):
        Gauge("b_registry_gauge", "Registry gauge.", registry=registry).set(5)
        catalog.put("alpha", parse_exposition('zz_product{namespace="shop"} 1\n'))
        catalog.put("beta", parse_exposition('a_product{namespace="billing"} 2\n'))

        response = await _get(create_app(catalog, registry), "/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"] == CONTENT_TYPE
        body = response.text
        assert 'a_product{namespace="billing"} 2.0' in body
        assert "b_registry_gauge 5.0" in body
        assert 'zz_product{namespace="shop"} 1.0' in body
        assert body.index("a_product") < body.index("b_registry_gauge") < body.index("zz_product")

    @pytest.mark.asyncio
    async def test_type_lines_sorted_and_unique_with_counters(self, catalog, registry):
        Counter("vs_updates_total", "Registry counter.", registry=registry).inc(2)
        Gauge("vs_updates_pending", "Registry gauge.", registry=registry).set(1)
        catalog.put(
            "alpha",
            parse_exposition(
                "# TYPE http_requests_total counter\n"
                'http_requests_total{namespace="shop"} 3\n'
                "# TYPE http_requests_in_flight gauge\n"
                'http_requests_in_flight{namespace="shop"} 1\n'
            ),
        )

        response = await _get(create_app(catalog, registry), "/metrics")

        names = [
            line.split()[2] for line in response.text.splitlines() if line.startswith("# TYPE")
        ]
        assert names == sorted(names)
        assert len(names) == len(set(names))
        assert {"vs_updates_total", "vs_updates_created", "http_requests_total"} <= set(names)
        assert "vs_updates_total 2.0" in response.text

    @pytest.mark.asyncio
    async def test_empty_exposition(self, catalog, registry):
        response = await _get(create_app(catalog, registry), "/metrics")

        assert response.status_code == 200
        assert response.text == ""

    @pytest.mark.asyncio
    async def test_encode_failure_returns_500(self, catalog, registry):
        broken = MetricFamily("broken", "", "not-a-type", (Sample("broken", {}, 1),))
        catalog.put("alpha", {"broken": broken})

        response = await _get(create_app(catalog, registry), "/metrics")

        assert response.status_code == 500
        assert response.text == "failed to render metrics\n"

    @pytest.mark.asyncio
    async def test_health(self, catalog, registry):
        response = await _get(create_app(catalog, registry), "/healthz")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": "0.1.0"}


class TestInternalMetricsEndpoint:
    @pytest.mark.asyncio
    async def test_serves_given_registry(self, registry):
        Gauge("exporter_process_gauge", "Process gauge.", registry=registry).set(1)

        response = await _get(create_internal_app(registry), "/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"] == CONTENT_TYPE
        assert "exporter_process_gauge 1.0" in response.text

    @pytest.mark.asyncio
    async def test_default_registry_has_process_metrics(self):
        response = await _get(create_internal_app(), "/metrics")

        assert response.status_code == 200
        assert "python_info" in response.text

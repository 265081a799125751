from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import REGISTRY, CollectorRegistry

from vs_exporter.api.routes import health, metrics
from vs_exporter.metrics.catalog import MetricCatalog
from vs_exporter.metrics.exposition import MetricsRenderer


def create_app(catalog: MetricCatalog, registry: CollectorRegistry) -> FastAPI:
    """Application serving the combined exposition on /metrics."""
    app = FastAPI(title="vs-exporter", version="0.1.0", docs_url=None, redoc_url=None)
    app.state.renderer = MetricsRenderer(catalog, registry)

    app.include_router(metrics.router, tags=["metrics"])
    app.include_router(health.router, tags=["health"])
    return app


def create_internal_app(registry: CollectorRegistry = REGISTRY) -> FastAPI:
    """Application serving the process collectors (process, platform, gc)."""
    app = FastAPI(title="vs-exporter-internal", version="0.1.0", docs_url=None, redoc_url=None)
    app.state.internal_registry = registry

    app.include_router(metrics.internal_router, tags=["metrics"])
    app.include_router(health.router, tags=["health"])
    return app

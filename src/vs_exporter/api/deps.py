from __future__ import annotations

from fastapi import Request
from prometheus_client import CollectorRegistry

from vs_exporter.metrics.exposition import MetricsRenderer


def get_renderer(request: Request) -> MetricsRenderer:
    return request.app.state.renderer


def get_internal_registry(request: Request) -> CollectorRegistry:
    return request.app.state.internal_registry

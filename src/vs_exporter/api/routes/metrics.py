from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import CollectorRegistry
from prometheus_client.exposition import generate_latest

from vs_exporter.api.deps import get_internal_registry, get_renderer
from vs_exporter.core.errors import EncodeError
from vs_exporter.metrics.exposition import CONTENT_TYPE, MetricsRenderer

logger = structlog.get_logger()

router = APIRouter()
internal_router = APIRouter()


@router.get("/metrics")
async def metrics(renderer: MetricsRenderer = Depends(get_renderer)) -> Response:  # noqa: B008
    """
    Registry series plus every target's product metrics, in name order.

    Rendering runs on the event loop rather than in an executor. That keeps a
    response consistent with the collector's reset and re-apply of the
    VirtualService gauges, at the cost of holding up the scrape and collector
    loops while a large catalog is encoded.
    """
    try:
        body = renderer.render()
    except EncodeError as e:
        logger.error("metrics_render_failed", error=str(e))
        return PlainTextResponse(
            "failed to render metrics\n",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return Response(content=body, media_type=CONTENT_TYPE)


@internal_router.get("/metrics")
async def internal_metrics(
    registry: CollectorRegistry = Depends(get_internal_registry),  # noqa: B008
) -> Response:
    """Process-level metrics of the exporter itself."""
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE)

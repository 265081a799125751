"""
Exporter process wiring.

One scrape loop per configured target and one VirtualService collector loop
run concurrently next to two HTTP servers: the combined exposition on
listenAddress and the exporter's own process metrics on
internalMetricsAddress. All loops share one stop event.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from typing import Iterator

import httpx
import structlog
import uvicorn
from fastapi import FastAPI
from prometheus_client import REGISTRY, CollectorRegistry

from vs_exporter.api.main import create_app, create_internal_app
from vs_exporter.collector.virtual_service import VirtualServiceCollector
from vs_exporter.config.loader import ExporterConfig, parse_listen_address
from vs_exporter.core.errors import DiscoveryError, ExporterError
from vs_exporter.kube.client import ClusterClient
from vs_exporter.metrics.catalog import MetricCatalog
from vs_exporter.metrics.exposition import MetricsRenderer
from vs_exporter.metrics.scraper import Scraper

logger = structlog.get_logger()


class _Server(uvicorn.Server):
    """uvicorn server that leaves signal handling to the Exporter."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class Exporter:
    """Owns the catalog, the registry and every loop of the process."""

    def __init__(
        self,
        config: ExporterConfig,
        cluster: ClusterClient,
        *,
        registry: CollectorRegistry | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.registry = registry if registry is not None else CollectorRegistry()
        self.catalog = MetricCatalog()
        self._http = http_client or httpx.AsyncClient(
            timeout=config.scrape_timeout.total_seconds()
        )

        self.scrapers = [
            Scraper(
                target,
                cluster,
                self._http,
                self.catalog,
                request_timeout=config.scrape_timeout.total_seconds(),
                concurrency=config.scrape_concurrency,
            )
            for target in config.product_metrics
        ]
        self.collector = VirtualServiceCollector(
            cluster,
            self.registry,
            interval=config.virtual_service_interval.total_seconds(),
            namespace_selector=config.virtual_service_selector,
        )
        self.renderer = MetricsRenderer(self.catalog, self.registry)

    async def run_once(self) -> list[ExporterError]:
        """Run one cycle of every loop and return the errors encountered."""
        errors: list[ExporterError] = []
        for scraper in self.scrapers:
            try:
                result = await scraper.scrape_once()
            except DiscoveryError as e:
                errors.append(e)
                continue
            if result.error is not None:
                errors.append(result.error)
        try:
            await self.collector.update()
        except DiscoveryError as e:
            errors.append(e)
        return errors

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """
        Serve until stop is set or SIGINT/SIGTERM arrives, then shut everything down.

        Raises:
            ExporterError: If an HTTP server stopped on its own
        """
        stop = stop or asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, stop.set)

        servers = [
            self._server(create_app(self.catalog, self.registry), self.config.listen_address),
            self._server(create_internal_app(REGISTRY), self.config.internal_metrics_address),
        ]
        loop_tasks = [
            asyncio.create_task(scraper.run(stop), name=f"scraper:{scraper.target.name}")
            for scraper in self.scrapers
        ]
        loop_tasks.append(asyncio.create_task(self.collector.run(stop), name="collector"))
        server_tasks = [asyncio.create_task(server.serve()) for server in servers]

        logger.info(
            "exporter_started",
            listen_address=self.config.listen_address,
            internal_metrics_address=self.config.internal_metrics_address,
            targets=[s.target.name for s in self.scrapers],
        )

        stop_task = asyncio.create_task(stop.wait())
        try:
            await asyncio.wait([stop_task, *server_tasks], return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.set()
            for server in servers:
                server.should_exit = True
            for task in loop_tasks:
                task.cancel()
            results = await asyncio.gather(
                stop_task, *loop_tasks, *server_tasks, return_exceptions=True
            )
            for result in results:
                if isinstance(result, BaseException) and not isinstance(
                    result, asyncio.CancelledError
                ):
                    logger.error("task_failed_during_shutdown", error=repr(result))
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.remove_signal_handler(sig)
            await self.aclose()
            logger.info("exporter_stopped")

        server_failures = [
            r for r in results[-len(server_tasks):] if isinstance(r, Exception)
        ]
        if server_failures:
            raise ExporterError(f"metrics server failed: {server_failures[0]!r}")

    def _server(self, app: FastAPI, address: str) -> _Server:
        host, port = parse_listen_address(address)
        config = uvicorn.Config(app, host=host, port=port, log_config=None, lifespan="off")
        return _Server(config)

    async def aclose(self) -> None:
        await self._http.aclose()

"""
Product metrics scraper.

One Scraper runs per configured target. Each cycle:

1. Lists namespaces matching the target's namespace selector. A failure here
   aborts the cycle; nothing is published and the previous snapshot stays.
2. Lists pods matching the pod selector in each namespace. A failure is
   recorded for that namespace and the others continue.
3. Scrapes every pod with an assigned IP, at most `concurrency` at a time.
   Transport errors, non-200 responses and unparseable bodies are recorded
   per pod and the others continue.
4. Stamps every sample with the pod's namespace, merges families by name and
   publishes the union of everything that succeeded into the catalog.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import httpx

from vs_exporter.config.loader import Target
from vs_exporter.core.errors import DiscoveryError, ScrapeCycleError, ScrapeError
from vs_exporter.kube.client import ClusterClient
from vs_exporter.kube.models import PodInfo
from vs_exporter.logging import component_logger
from vs_exporter.metrics.catalog import MetricCatalog
from vs_exporter.metrics.models import MetricFamily, merge_families, parse_exposition, sample_count
from vs_exporter.scheduling import run_periodically

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_CONCURRENCY = 16


@dataclass
class ScrapeResult:
    """Outcome of one published scrape cycle."""

    target: str
    namespaces: list[str] = field(default_factory=list)
    pods_scraped: int = 0
    families: dict[str, MetricFamily] = field(default_factory=dict)
    errors: list[ScrapeError] = field(default_factory=list)

    @property
    def error(self) -> ScrapeCycleError | None:
        """All independent failures of the cycle as one error, or None."""
        if not self.errors:
            return None
        return ScrapeCycleError(self.target, self.errors)


class Scraper:
    """Periodically gathers metrics from labelled pods into the catalog."""

    def __init__(
        self,
        target: Target,
        cluster: ClusterClient,
        http_client: httpx.AsyncClient,
        catalog: MetricCatalog,
        *,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        self.target = target
        self._cluster = cluster
        self._http = http_client
        self._catalog = catalog
        self._request_timeout = request_timeout
        self._concurrency = concurrency
        self._log = component_logger("product-scraper", target=target.name)

    async def run(self, stop: asyncio.Event) -> None:
        """Execute the scrape loop until stop is set."""
        self._log.info(
            "scraper_started",
            interval=self.target.interval.total_seconds(),
            port=self.target.port,
            path=self.target.path,
            namespace_selector=self.target.namespace_selector,
            pod_selector=self.target.pod_selector,
        )
        await run_periodically(
            f"scraper:{self.target.name}",
            self.target.interval.total_seconds(),
            self.scrape_once,
            stop,
        )
        self._log.info("scraper_stopped")

    async def scrape_once(self) -> ScrapeResult:
        """
        Run one discovery/scrape/merge/publish cycle.

        Returns:
            ScrapeResult describing what was published; its `error` aggregates
            every independent failure of the cycle

        Raises:
            DiscoveryError: If namespaces could not be listed; nothing is published
        """
        self._log.debug("scrape_cycle_start")
        try:
            namespaces = await self._cluster.list_namespaces(self.target.namespace_selector)
        except Exception as e:
            self._log.error("scrape_cycle_aborted", error=str(e))
            raise DiscoveryError(
                f"list namespaces: {e}", {"target": self.target.name}
            ) from e

        result = ScrapeResult(target=self.target.name, namespaces=list(namespaces))

        pods: list[PodInfo] = []
        for namespace in namespaces:
            try:
                listed = await self._cluster.list_pods(namespace, self.target.pod_selector)
            except Exception as e:
                result.errors.append(
                    ScrapeError(
                        f"list pods in namespace {namespace}: {e}",
                        namespace=namespace,
                    )
                )
                continue
            pods.extend(pod for pod in listed if pod.ready_for_scrape)

        semaphore = asyncio.Semaphore(self._concurrency)

        async def bounded(pod: PodInfo) -> dict[str, MetricFamily]:
            async with semaphore:
                return await self._scrape_pod(pod)

        outcomes = await asyncio.gather(*(bounded(pod) for pod in pods), return_exceptions=True)

        # Merge in discovery order so the snapshot does not depend on completion order.
        for pod, outcome in zip(pods, outcomes, strict=True):
            if isinstance(outcome, ScrapeError):
                result.errors.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                merge_families(result.families, outcome.values())
                result.pods_scraped += 1

        self._catalog.put(self.target.name, result.families)

        if result.errors:
            for error in result.errors:
                self._log.debug(
                    "scrape_error", namespace=error.namespace, pod=error.pod, error=str(error)
                )
            self._log.warning(
                "scrape_cycle_completed_with_errors",
                errors=len(result.errors),
                namespaces=len(namespaces),
                pods=result.pods_scraped,
            )
        else:
            self._log.info(
                "scrape_cycle_succeeded",
                namespaces=len(namespaces),
                pods=result.pods_scraped,
                families=len(result.families),
                samples=sample_count(result.families.values()),
            )
        return result

    async def _scrape_pod(self, pod: PodInfo) -> dict[str, MetricFamily]:
        """Fetch, parse and namespace-stamp one pod's metrics."""
        host = f"[{pod.ip}]" if pod.ip and ":" in pod.ip else pod.ip
        url = f"http://{host}:{self.target.port}{self.target.path}"
        where = f"{pod.namespace}/{pod.name}"
        self._log.debug("scraping_pod", pod=where, url=url)

        try:
            response = await self._http.get(url, timeout=self._request_timeout)
        except httpx.HTTPError as e:
            raise ScrapeError(
                f"scrape pod {where}: execute request: {e!r}",
                namespace=pod.namespace,
                pod=pod.name,
            ) from e

        if response.status_code != httpx.codes.OK:
            raise ScrapeError(
                f"scrape pod {where}: unexpected status code {response.status_code}",
                namespace=pod.namespace,
                pod=pod.name,
                details={"status": response.status_code},
            )

        try:
            parsed = parse_exposition(response.text)
        except ValueError as e:
            raise ScrapeError(
                f"scrape pod {where}: {e}",
                namespace=pod.namespace,
                pod=pod.name,
            ) from e

        return {name: family.with_namespace(pod.namespace) for name, family in parsed.items()}

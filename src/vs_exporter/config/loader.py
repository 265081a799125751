"""
Configuration file loading and validation.

The exporter is configured by a single YAML file:

    listenAddress: ":8090"
    internalMetricsAddress: ":9000"
    virtualServiceInterval: "1m"
    productMetrics:
      - name: product-a
        interval: "30s"
        port: 8080
        path: /metrics
        namespaceSelector: product=a
        podSelector: app=product-a

Any problem with the file is a ConfigurationError; the process must not start
a scrape or resolve loop with an invalid configuration.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any

import structlog
import yaml

from vs_exporter.core.errors import ConfigurationError

logger = structlog.get_logger()

DEFAULT_VIRTUAL_SERVICE_SELECTOR = "product"
DEFAULT_SCRAPE_TIMEOUT = timedelta(seconds=10)
DEFAULT_SCRAPE_CONCURRENCY = 16

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> timedelta:
    """
    Parse a Go-style duration string such as "30s", "1m" or "1h30m".

    Raises:
        ValueError: If the string is not a valid duration
    """
    text = value.strip()
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {value!r}")

    seconds = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration {value!r}")
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration {value!r}")

    return timedelta(seconds=sign * seconds)


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split a listen address (":8090" or "host:port") into host and port."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigurationError(f"invalid listen address {address!r}")
    port_number = int(port)
    if not 0 < port_number <= 65535:
        raise ConfigurationError(f"invalid listen address {address!r}")
    return (host.strip("[]") or "0.0.0.0", port_number)


@dataclass(frozen=True)
class Target:
    """One product metrics scrape target."""

    name: str
    interval: timedelta
    port: int
    path: str
    namespace_selector: str
    pod_selector: str

    @classmethod
    def from_dict(cls, index: int, data: dict[str, Any]) -> Target:
        raw_interval = data.get("interval")
        if not raw_interval:
            raise ConfigurationError(f"productMetrics[{index}].interval is required")
        port = data.get("port", 0)
        if not isinstance(port, int) or isinstance(port, bool):
            raise ConfigurationError(f"productMetrics[{index}].port must be an integer")

        return cls(
            name=str(data.get("name") or ""),
            interval=_duration(raw_interval, f"productMetrics[{index}].interval"),
            port=port,
            path=str(data.get("path") or ""),
            namespace_selector=str(data.get("namespaceSelector") or ""),
            pod_selector=str(data.get("podSelector") or ""),
        )

    def validate(self, index: int) -> None:
        prefix = f"productMetrics[{index}]"
        if not self.name:
            raise ConfigurationError(f"{prefix}.name is required")
        if self.interval <= timedelta(0):
            raise ConfigurationError(f"{prefix}.interval must be positive")
        if not 0 < self.port <= 65535:
            raise ConfigurationError(f"{prefix}.port must be between 1 and 65535")
        if not self.path:
            raise ConfigurationError(f"{prefix}.path is required")
        if not self.path.startswith("/"):
            raise ConfigurationError(f"{prefix}.path must start with '/'")
        if not self.namespace_selector:
            raise ConfigurationError(f"{prefix}.namespaceSelector is required")
        if not self.pod_selector:
            raise ConfigurationError(f"{prefix}.podSelector is required")


@dataclass(frozen=True)
class ExporterConfig:
    """Complete exporter configuration."""

    listen_address: str
    internal_metrics_address: str
    virtual_service_interval: timedelta
    product_metrics: tuple[Target, ...]
    virtual_service_selector: str = DEFAULT_VIRTUAL_SERVICE_SELECTOR
    scrape_timeout: timedelta = DEFAULT_SCRAPE_TIMEOUT
    scrape_concurrency: int = DEFAULT_SCRAPE_CONCURRENCY

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExporterConfig:
        raw_interval = data.get("virtualServiceInterval")
        if not raw_interval:
            raise ConfigurationError("virtualServiceInterval is required")

        raw_targets = data.get("productMetrics") or []
        if not isinstance(raw_targets, list):
            raise ConfigurationError("productMetrics must be a list")
        targets = []
        for index, raw in enumerate(raw_targets):
            if not isinstance(raw, dict):
                raise ConfigurationError(f"productMetrics[{index}] must be a mapping")
            targets.append(Target.from_dict(index, raw))

        raw_timeout = data.get("scrapeTimeout")
        scrape_timeout = (
            _duration(raw_timeout, "scrapeTimeout") if raw_timeout else DEFAULT_SCRAPE_TIMEOUT
        )
        concurrency = data.get("scrapeConcurrency", DEFAULT_SCRAPE_CONCURRENCY)
        if not isinstance(concurrency, int) or isinstance(concurrency, bool):
            raise ConfigurationError("scrapeConcurrency must be an integer")

        return cls(
            listen_address=str(data.get("listenAddress") or ""),
            internal_metrics_address=str(data.get("internalMetricsAddress") or ""),
            virtual_service_interval=_duration(raw_interval, "virtualServiceInterval"),
            product_metrics=tuple(targets),
            virtual_service_selector=str(
                data.get("virtualServiceSelector") or DEFAULT_VIRTUAL_SERVICE_SELECTOR
            ),
            scrape_timeout=scrape_timeout,
            scrape_concurrency=concurrency,
        )

    def validate(self) -> None:
        """Raise ConfigurationError describing the first invalid field."""
        if not self.listen_address:
            raise ConfigurationError("listenAddress is required")
        parse_listen_address(self.listen_address)
        if not self.internal_metrics_address:
            raise ConfigurationError("internalMetricsAddress is required")
        parse_listen_address(self.internal_metrics_address)
        if self.virtual_service_interval <= timedelta(0):
            raise ConfigurationError("virtualServiceInterval must be positive")
        if not self.product_metrics:
            raise ConfigurationError("productMetrics must contain at least one target")
        if self.scrape_timeout <= timedelta(0):
            raise ConfigurationError("scrapeTimeout must be positive")
        if self.scrape_timeout >= self.virtual_service_interval:
            raise ConfigurationError("scrapeTimeout must be shorter than virtualServiceInterval")
        if self.scrape_concurrency < 1:
            raise ConfigurationError("scrapeConcurrency must be at least 1")

        seen: set[str] = set()
        for index, target in enumerate(self.product_metrics):
            target.validate(index)
            if target.name in seen:
                raise ConfigurationError(
                    f"productMetrics[{index}].name {target.name!r} is not unique"
                )
            seen.add(target.name)
            if self.scrape_timeout >= target.interval:
                raise ConfigurationError(
                    f"scrapeTimeout must be shorter than productMetrics[{index}].interval"
                )


def _duration(value: Any, field_name: str) -> timedelta:
    try:
        return parse_duration(str(value))
    except ValueError as e:
        raise ConfigurationError(f"parse {field_name}: {e}") from e


def load_config(path: str | Path) -> ExporterConfig:
    """
    Load and validate the exporter configuration.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Validated ExporterConfig

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid
    """
    config_path = Path(path)
    try:
        text = config_path.read_text()
    except OSError as e:
        raise ConfigurationError(f"read config: {e}", {"path": str(config_path)}) from e

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"unmarshal config: {e}", {"path": str(config_path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError("config must be a mapping", {"path": str(config_path)})

    config = ExporterConfig.from_dict(data)
    config.validate()

    logger.debug(
        "loaded_config",
        path=str(config_path),
        targets=[t.name for t in config.product_metrics],
    )
    return config

"""
Command line entry point.

Usage:
    vs-exporter --config config.yaml             - Serve metrics until SIGINT/SIGTERM
    vs-exporter --config config.yaml --once      - Run one cycle and print the exposition

Exit codes:
    0   - Success
    10  - Configuration error
    11  - One or more cycles reported errors (--once only)
    127 - Unexpected error
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Sequence

import structlog

from vs_exporter.config.loader import ExporterConfig, load_config
from vs_exporter.config.settings import get_settings
from vs_exporter.core.errors import ExitCode, format_error_message, main_with_error_handling
from vs_exporter.kube.client import ClusterClient, load_kube_config
from vs_exporter.logging import configure_logging
from vs_exporter.service import Exporter

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vs-exporter",
        description="Aggregate product pod metrics and Istio VirtualService health "
        "into one Prometheus exposition.",
    )
    parser.add_argument("--config", help="Path to config file (default: config.yaml)")
    parser.add_argument("--log-level", help="Log level (default: INFO)")
    parser.add_argument("--kubeconfig", help="Path to kubeconfig when running out of cluster")
    parser.add_argument("--context", help="Kubeconfig context to use")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle of every loop, print the exposition and exit",
    )
    return parser


@main_with_error_handling()
def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    configure_logging(args.log_level or settings.log_level)

    config = load_config(args.config or settings.config_path)
    api_client = load_kube_config(
        args.kubeconfig or settings.kubeconfig,
        args.context or settings.kube_context,
    )
    cluster = ClusterClient(api_client, timeout=config.scrape_timeout.total_seconds())

    if args.once:
        return asyncio.run(run_once(config, cluster))

    asyncio.run(Exporter(config, cluster).run())
    return ExitCode.SUCCESS


async def run_once(config: ExporterConfig, cluster: ClusterClient) -> int:
    """Run every loop once and write the combined exposition to stdout."""
    exporter = Exporter(config, cluster)
    try:
        errors = await exporter.run_once()
        sys.stdout.write(exporter.renderer.render().decode("utf-8"))
    finally:
        await exporter.aclose()

    for error in errors:
        print(format_error_message(error), file=sys.stderr)
    return ExitCode.PROVIDER_ERROR if errors else ExitCode.SUCCESS


if __name__ == "__main__":
    sys.exit(main())

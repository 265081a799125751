"""
Unified error handling for vs-exporter.

This module provides the exception hierarchy shared by the scrape pipeline,
the VirtualService resolver, the exposition endpoint and the CLI entry point.

Exit Codes:
- 0: Success
- 10: Configuration error
- 11: Provider error (cluster API or pod endpoint failure)
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, Sequence, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for the CLI."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    UNKNOWN_ERROR = 127


class ExporterError(Exception):
    """Base exception for vs-exporter errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ExporterError):
    """Raised for invalid or unreadable configuration. Fatal at startup."""

    exit_code = ExitCode.CONFIG_ERROR


class ProviderError(ExporterError):
    """Raised when the cluster API or a scraped workload fails."""

    exit_code = ExitCode.PROVIDER_ERROR


class DiscoveryError(ProviderError):
    """Raised when a top-level list call fails and the whole cycle is aborted."""


class ScrapeError(ProviderError):
    """A failure isolated to one pod or one namespace within a scrape cycle."""

    def __init__(
        self,
        message: str,
        *,
        namespace: str,
        pod: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.namespace = namespace
        self.pod = pod


class ScrapeCycleError(ProviderError):
    """Aggregate of every independent failure of one scrape cycle."""

    def __init__(self, target: str, errors: Sequence[ScrapeError]):
        self.target = target
        self.errors = list(errors)
        summary = "; ".join(str(err) for err in self.errors)
        super().__init__(
            f"{len(self.errors)} scrape error(s) for target {target}: {summary}",
            {"target": target, "error_count": len(self.errors)},
        )


class EncodeError(ExporterError):
    """Raised when the merged view cannot be serialized for exposition."""


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI main functions that provides unified error handling.

    Exit codes:
        - ExporterError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except ExporterError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130  # Standard exit code for SIGINT
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: ExporterError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg

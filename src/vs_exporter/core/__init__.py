"""Core modules for vs-exporter - centralized error definitions."""

from vs_exporter.core.errors import (
    ConfigurationError,
    DiscoveryError,
    EncodeError,
    ExitCode,
    ExporterError,
    ProviderError,
    ScrapeCycleError,
    ScrapeError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "ExporterError",
    "ConfigurationError",
    "ProviderError",
    "DiscoveryError",
    "ScrapeError",
    "ScrapeCycleError",
    "EncodeError",
    "main_with_error_handling",
    "format_error_message",
]

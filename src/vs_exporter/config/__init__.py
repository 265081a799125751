"""
vs-exporter configuration system.

Provides:
- Pydantic-based process settings (environment variables, .env files)
- YAML exporter configuration with scrape targets
"""

from vs_exporter.config.loader import (
    ExporterConfig,
    Target,
    load_config,
    parse_duration,
    parse_listen_address,
)
from vs_exporter.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "ExporterConfig",
    "Target",
    "load_config",
    "parse_duration",
    "parse_listen_address",
]

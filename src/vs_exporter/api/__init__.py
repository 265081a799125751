"""HTTP exposition endpoints."""

from vs_exporter.api.main import create_app, create_internal_app

__all__ = ["create_app", "create_internal_app"]

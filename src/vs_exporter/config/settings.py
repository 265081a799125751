"""
Process settings using Pydantic.

Provides environment-based configuration loading with VS_EXPORTER_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-level settings, overridable by CLI flags."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VS_EXPORTER_",
        extra="ignore",
    )

    config_path: str = "config.yaml"
    log_level: str = "INFO"

    # Kubernetes
    kubeconfig: str | None = None
    kube_context: str | None = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

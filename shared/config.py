"""
Shared configuration management for the Access Layer.

Every field can be overridden from the environment with the ``ACCESS_``
prefix (e.g. ``ACCESS_REDIS_URL``) or from a local ``.env`` file.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow",
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # External services
    redis_url: str = "redis://localhost:6379/0"
    ams_base_url: str = "http://localhost"

    # Sequence node cache
    seqnode_cache_prefix: str = "SEQN:"
    seqnode_cache_ttl_seconds: Optional[int] = Field(default=None, ge=1)
    seqnode_single_flight: bool = False
    seqnode_merge_strategy: str = "keep_existing"

    # Upstream (AMS) client
    upstream_timeout_seconds: float = Field(default=10.0, gt=0)
    upstream_retry_attempts: int = Field(default=1, ge=1)
    upstream_retry_base_delay: float = Field(default=0.5, ge=0)
    upstream_pass_through_error_status: bool = False

    @property
    def default_seqnode_url(self) -> str:
        """Upstream URL used when an identifier carries none."""
        return self.ams_base_url.rstrip("/") + "/seqnode"


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)

"""
Shared configuration management for the cache gateway.

Settings are read once from the environment (and an optional ``.env`` file)
when the service starts and are immutable afterwards.
"""

from typing import Optional
from urllib.parse import quote

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Listen address
    server_host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000)

    # Redis
    redis_host: str = Field(default="127.0.0.1")
    redis_port: int = Field(default=6379)
    redis_password: Optional[str] = Field(default=None)
    redis_db: int = Field(default=0)
    redis_timeout_seconds: float = Field(default=5.0, gt=0)
    cache_ttl_seconds: int = Field(default=3600, gt=0)

    # Upstreams
    youtube_api_key: str = Field(default="key")
    channel_id: str = Field(default="channelId")
    youtube_base_url: str = Field(default="https://www.googleapis.com/youtube/v3")
    wordpress_base_url: str = Field(default="https://amtsilatipusat.net/wp-json/wp/v2")
    upstream_timeout_seconds: float = Field(default=30.0, gt=0)

    # Rate limiting (100 requests/minute per IP with a burst of 100)
    rate_limit_burst: int = Field(default=100, ge=1)
    rate_limit_refill_seconds: float = Field(default=0.6, gt=0)
    rate_limit_sweep_interval_seconds: float = Field(default=60.0, gt=0)
    rate_limit_retention_seconds: Optional[float] = Field(default=None, gt=0)
    trust_forwarded_headers: bool = Field(default=False)

    @property
    def redis_url(self) -> str:
        """Connection URL for the Redis cache."""
        if self.redis_password:
            return f"redis://:{quote(self.redis_password, safe='')}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def server_addr(self) -> str:
        return f"{self.server_host}:{self.port}"


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str

    def __init__(self, service_name: str, **kwargs):
        super().__init__(service_name=service_name, **kwargs)


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)

"""
Configuration management.
Environment / .env based config for the ChannelAdvisor client.
"""

import logging
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CHANNELADVISOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # API
    base_api_url: str = "https://api.channeladvisor.com/"

    # Transport
    request_timeout: float = 60.0  # seconds, per call
    connect_timeout: float = 10.0

    # Throttling
    max_concurrent_requests: int = 5
    min_delay_between_starts: float = 0.0  # seconds
    throttle_queue_capacity: Optional[int] = None  # None = unbounded

    # Retries
    retry_attempts: int = 3

    # Pagination
    min_page_size: int = 20

    # Result cache
    cache_path: str = "./data/cache.db"
    cache_sliding_expiration: float = 15 * 60  # seconds

    # Logging
    log_level: str = "INFO"


# Global settings instance
settings = Settings()


def configure_logging(config: Optional[Settings] = None) -> None:
    """Configure root logging for scripts embedding the client."""
    config = config or settings
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

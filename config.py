"""Configuration management for the link registry."""

from typing import Literal, Optional
from pydantic_settings import BaseSettings
from pydantic import Field

from linkreg.storage import FileStorage, InMemoryStorage, RedisStorage, RegistryStorageBase


class Config(BaseSettings):
    """Application configuration."""

    # Storage settings
    storage_backend: Literal["file", "memory", "redis"] = Field(
        default="file",
        description="Where the registry snapshot is kept: file, memory or redis"
    )

    storage_path: str = Field(
        default="data/links.json",
        description="JSON file path for the file backend"
    )

    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL for the redis backend"
    )

    redis_key: str = Field(
        default="linkreg:links",
        description="Redis key holding the registry snapshot"
    )

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind to"
    )

    port: int = Field(
        default=9200,
        description="Port to listen on"
    )

    # Link settings
    base_url: str = Field(
        default="http://localhost:9200",
        description="Base URL for generating short URLs"
    )

    path_prefix: str = Field(
        default="",
        description="Path prefix for short URLs (e.g., '/s' for /s/abc123)"
    )

    short_code_length: int = Field(
        default=6,
        ge=4,
        le=20,
        description="Length of generated short codes"
    )

    enable_custom_codes: bool = Field(
        default=True,
        description="Allow users to provide custom short codes"
    )

    max_collision_retries: int = Field(
        default=10,
        ge=1,
        description="Maximum attempts when generating short codes"
    )

    default_validity_minutes: int = Field(
        default=30,
        ge=1,
        description="Validity window used when a request gives none"
    )

    max_validity_minutes: int = Field(
        default=10080,
        ge=1,
        description="Longest accepted validity window (one week)"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Log file path (logs to stdout if not specified)"
    )

    log_json: bool = Field(
        default=False,
        description="Use JSON format for logs"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore extra environment variables
    }


def load_config() -> Config:
    """Load configuration from environment."""
    return Config()


def create_storage(config: Config, logger=None) -> RegistryStorageBase:
    """Build the storage backend selected by ``config``."""
    if config.storage_backend == "memory":
        return InMemoryStorage()
    if config.storage_backend == "redis":
        if not config.redis_url:
            raise ValueError("REDIS_URL is required when STORAGE_BACKEND=redis")
        return RedisStorage(redis_url=config.redis_url, key=config.redis_key, logger=logger)
    return FileStorage(config.storage_path, logger=logger)

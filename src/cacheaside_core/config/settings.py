"""Application settings using pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cacheaside_core.constants import (
    CACHE_NULL_TTL_SECONDS,
    LOCK_SHOP_NAME_PREFIX,
    LOCK_TTL_SECONDS,
    MUTEX_MAX_ATTEMPTS,
    MUTEX_RETRY_INTERVAL_SECONDS,
    REBUILD_MAX_PENDING,
    REBUILD_MAX_WORKERS,
)


class Settings(BaseSettings):
    """Central configuration for cache-aside."""

    model_config = SettingsConfigDict(env_prefix="CA_", env_file=".env")

    # --- Store ---
    store_backend: Literal["redis", "disk", "memory"] = Field(
        default="redis",
        description="Key-value store: 'redis' for shared deployments, 'disk' or 'memory' locally",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    cache_dir: Path = Field(
        default=Path("./.cache/cacheaside"),
        description="Directory for the diskcache-backed store",
    )

    # --- Cache policy ---
    null_ttl_seconds: int = Field(
        default=CACHE_NULL_TTL_SECONDS,
        gt=0,
        description="Physical TTL of the negative-cache marker",
    )
    logical_expiry_safety_ttl_seconds: int | None = Field(
        default=None,
        description="Optional physical TTL on logical-expiry entries (None = never expire)",
    )

    # --- Lock ---
    lock_ttl_seconds: int = Field(
        default=LOCK_TTL_SECONDS,
        gt=0,
        description="Lock record TTL; must exceed the slowest loader call",
    )
    lock_name_prefix: str = Field(
        default=LOCK_SHOP_NAME_PREFIX,
        description="Lock namespace prepended to the entity id",
    )
    mutex_retry_interval_seconds: float = Field(
        default=MUTEX_RETRY_INTERVAL_SECONDS,
        gt=0,
        description="Sleep between lock attempts in the mutex strategy",
    )
    mutex_max_attempts: int = Field(
        default=MUTEX_MAX_ATTEMPTS,
        ge=1,
        description="Maximum read attempts before the mutex strategy gives up",
    )

    # --- Rebuild executor ---
    rebuild_max_workers: int = Field(
        default=REBUILD_MAX_WORKERS,
        ge=1,
        description="Concurrent rebuild jobs",
    )
    rebuild_max_pending: int = Field(
        default=REBUILD_MAX_PENDING,
        ge=0,
        description="Jobs allowed to wait for a worker before submissions are rejected",
    )

    # --- Logging ---
    log_level: str = Field(
        default="INFO",
        description="Root log level",
    )
    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Log renderer",
    )

    @model_validator(mode="after")
    def validate_safety_ttl(self) -> Settings:
        """Reject a non-positive safety-net TTL."""
        ttl = self.logical_expiry_safety_ttl_seconds
        if ttl is not None and ttl <= 0:
            msg = "logical_expiry_safety_ttl_seconds must be positive when set"
            raise ValueError(msg)
        return self

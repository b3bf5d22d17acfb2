"""Logical-expiry envelope model."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cacheaside_core.constants import ENVELOPE_EXPIRE_FIELD

T = TypeVar("T")


class CacheEnvelope(BaseModel, Generic[T]):
    """A cached value paired with the instant it stops being fresh.

    Stored without a physical TTL; the reader compares ``expire_time``
    against its own clock.
    """

    model_config = ConfigDict(populate_by_name=True)

    data: T | None = Field(default=None, description="Cached value, None for a cached absence")
    expire_time: datetime = Field(
        alias=ENVELOPE_EXPIRE_FIELD, description="Absolute logical expiry (UTC)"
    )

    @field_validator("expire_time")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Treat naive timestamps written by other clients as UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def is_expired(self, now: datetime) -> bool:
        """Return True once ``now`` has reached the logical expiry."""
        return self.expire_time <= now

"""Domain models for cache-aside."""

from cacheaside_core.models.envelope import CacheEnvelope

__all__ = [
    "CacheEnvelope",
]

"""Custom exception hierarchy for cache-aside."""

from __future__ import annotations


class CacheAsideError(Exception):
    """Base exception for all cache-aside errors."""


class StoreError(CacheAsideError):
    """Raised when the backing key-value store fails an operation."""


class CacheCodecError(CacheAsideError):
    """Raised when a stored blob cannot be encoded or decoded."""


class LoaderError(CacheAsideError):
    """Raised when a loader fails to fetch the authoritative value.

    Distinct from a loader returning ``None``: failures are never
    negative-cached.
    """


class LockAcquisitionError(CacheAsideError):
    """Raised when a distributed lock is held by someone else."""


class LockRetriesExhaustedError(LockAcquisitionError):
    """Raised when the mutex read gives up waiting for the rebuild lock."""


class RebuildRejectedError(CacheAsideError):
    """Raised when the rebuild executor is at capacity or shut down."""

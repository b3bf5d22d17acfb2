"""Abstract key-value store interface."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """TTL-capable key-value store; implementations can be swapped.

    ``get`` distinguishes a stored empty string from a missing key.
    """

    async def get(self, key: str) -> str | None:
        """Retrieve a value by key, or None if not found."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Store a value, with a physical TTL unless ttl_seconds is None."""
        ...

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Atomically store a value only if the key is absent."""
        ...

    async def delete(self, key: str) -> None:
        """Delete a key from the store."""
        ...

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Refresh the TTL of an existing key; False if the key is absent."""
        ...

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        """Atomically delete a key only if it currently holds ``expected``."""
        ...

    async def aclose(self) -> None:
        """Release connections or file handles held by the store."""
        ...

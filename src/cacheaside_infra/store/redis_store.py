"""Redis-backed implementation of KeyValueStore."""

from __future__ import annotations

from redis.asyncio import Redis
from redis.exceptions import RedisError

from cacheaside_core.exceptions import StoreError

# Deletes KEYS[1] only while it still holds ARGV[1]; runs atomically server-side.
COMPARE_AND_DELETE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


class RedisKeyValueStore:
    """Shared key-value store backed by Redis."""

    def __init__(self, redis: Redis) -> None:  # type: ignore[type-arg]
        """Initialize with a redis-py asyncio client."""
        self._redis = redis
        self._compare_and_delete = redis.register_script(COMPARE_AND_DELETE_SCRIPT)

    @classmethod
    def from_url(cls, url: str) -> RedisKeyValueStore:
        """Create a store with its own connection pool."""
        return cls(Redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        """Retrieve a value by key."""
        try:
            value = await self._redis.get(key)
        except RedisError as e:
            msg = f"GET {key} failed: {e}"
            raise StoreError(msg) from e
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Store a value, with TTL when given."""
        try:
            if ttl_seconds is None:
                await self._redis.set(name=key, value=value)
            else:
                await self._redis.set(name=key, value=value, ex=ttl_seconds)
        except RedisError as e:
            msg = f"SET {key} failed: {e}"
            raise StoreError(msg) from e

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """SET NX EX: True only if this call created the key."""
        try:
            created = await self._redis.set(name=key, value=value, ex=ttl_seconds, nx=True)
        except RedisError as e:
            msg = f"SET NX {key} failed: {e}"
            raise StoreError(msg) from e
        return bool(created)

    async def delete(self, key: str) -> None:
        """Delete a key from the store."""
        try:
            await self._redis.delete(key)
        except RedisError as e:
            msg = f"DEL {key} failed: {e}"
            raise StoreError(msg) from e

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Refresh TTL on an existing key."""
        try:
            updated = await self._redis.expire(key, ttl_seconds)
        except RedisError as e:
            msg = f"EXPIRE {key} failed: {e}"
            raise StoreError(msg) from e
        return bool(updated)

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        """Delete the key only if it holds ``expected``, via a Lua script."""
        try:
            deleted = await self._compare_and_delete(keys=[key], args=[expected])
        except RedisError as e:
            msg = f"compare-and-delete {key} failed: {e}"
            raise StoreError(msg) from e
        return bool(deleted)

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._redis.aclose()

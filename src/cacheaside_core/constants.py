"""Shared constants for cache-aside."""

from __future__ import annotations

from uuid import uuid4

# Stored in place of a value when the loader reports "not found"
NULL_MARKER = ""

# Physical TTL of the null marker
CACHE_NULL_TTL_SECONDS = 120

# Every lock record lives under this prefix
LOCK_KEY_PREFIX = "lock:"

# Lock namespace used by the read strategies, yields "lock:shop:<id>"
LOCK_SHOP_NAME_PREFIX = "shop:"

# Bounds a crashed rebuilder; must exceed the slowest loader call
LOCK_TTL_SECONDS = 10

# Mutex strategy retry loop
MUTEX_RETRY_INTERVAL_SECONDS = 0.05
MUTEX_MAX_ATTEMPTS = 50

# Rebuild executor capacity
REBUILD_MAX_WORKERS = 10
REBUILD_MAX_PENDING = 100

# Wire name of the envelope expiry field
ENVELOPE_EXPIRE_FIELD = "expireTime"

# Generated once per process; prefixes every lock ownership token
PROCESS_TOKEN_PREFIX = str(uuid4())

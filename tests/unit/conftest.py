"""Shared pytest fixtures for unit tests."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Generator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from cacheaside_client.client import CacheClient
from cacheaside_infra.store.memory_store import MemoryKeyValueStore
from tests.mocks.mock_factories import FakeClock
from tests.mocks.mock_settings import make_settings


@pytest.fixture
def mock_settings() -> MagicMock:
    """Return a MagicMock Settings with sensible defaults."""
    return make_settings()


@pytest.fixture
def clock() -> FakeClock:
    """Return a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryKeyValueStore:
    """Return an in-process store driven by the fake clock."""
    return MemoryKeyValueStore(clock=clock.monotonic)


@pytest_asyncio.fixture
async def cache_client(
    memory_store: MemoryKeyValueStore, mock_settings: MagicMock, clock: FakeClock
) -> AsyncGenerator[CacheClient, None]:
    """CacheClient over the memory store, drained on teardown."""
    client = CacheClient(memory_store, mock_settings, clock=clock.now)
    yield client
    await client.aclose()


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    """Save and restore root logger handlers.

    CLI tests call configure_logging() which replaces root logger handlers.
    """
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.level = original_level

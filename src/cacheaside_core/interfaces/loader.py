"""Loader callable types for cache repopulation."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")
ID = TypeVar("ID")

# Returns None when the authoritative source has no value for the id;
# raises when the lookup itself fails.
Loader = Callable[[ID], Awaitable[T | None]]

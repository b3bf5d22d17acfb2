"""Public interface re-exports for cacheaside_core."""

from cacheaside_core.interfaces.loader import Loader
from cacheaside_core.interfaces.store import KeyValueStore

__all__ = [
    "KeyValueStore",
    "Loader",
]

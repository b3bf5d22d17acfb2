"""JSON codec for cached values and logical-expiry envelopes.

Values are serialized with pydantic so models, dataclasses, typed dicts
and primitives all round-trip; the target type supplied by the reader
drives validation on the way back.
"""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json

from cacheaside_core.exceptions import CacheCodecError
from cacheaside_core.models.envelope import CacheEnvelope

T = TypeVar("T")


@lru_cache(maxsize=256)
def _cached_adapter(type_: Any) -> TypeAdapter[Any]:  # noqa: ANN401
    return TypeAdapter(type_)


def _adapter(type_: Any) -> TypeAdapter[Any]:  # noqa: ANN401
    """TypeAdapter for the target type, built once per hashable type."""
    try:
        return _cached_adapter(type_)
    except TypeError:
        # Unhashable annotations (e.g. Annotated with list metadata) skip the cache
        return TypeAdapter(type_)


def encode_value(value: object) -> str:
    """Serialize a value to its stored JSON form."""
    try:
        return to_json(value).decode("utf-8")
    except PydanticSerializationError as e:
        msg = f"Cannot serialize value of type {type(value).__name__}: {e}"
        raise CacheCodecError(msg) from e


def decode_value(raw: str, type_: type[T]) -> T:
    """Deserialize a stored JSON blob into ``type_``."""
    try:
        result: T = _adapter(type_).validate_json(raw)
    except ValidationError as e:
        msg = f"Cannot decode cached value as {_type_name(type_)}: {e}"
        raise CacheCodecError(msg) from e
    return result


def encode_envelope(value: object, expire_time: datetime) -> str:
    """Wrap a value with its logical expiry and serialize the envelope."""
    envelope = CacheEnvelope[Any](data=value, expire_time=expire_time)
    try:
        return envelope.model_dump_json(by_alias=True)
    except PydanticSerializationError as e:
        msg = f"Cannot serialize envelope for {type(value).__name__}: {e}"
        raise CacheCodecError(msg) from e


def decode_envelope(raw: str, type_: type[T]) -> CacheEnvelope[T]:
    """Deserialize a stored envelope, validating its data as ``type_``."""
    try:
        return CacheEnvelope[type_].model_validate_json(raw)  # type: ignore[valid-type]
    except ValidationError as e:
        msg = f"Cannot decode cache envelope as {_type_name(type_)}: {e}"
        raise CacheCodecError(msg) from e


def _type_name(type_: object) -> str:
    """Readable name for error messages, including generic aliases."""
    return getattr(type_, "__name__", None) or repr(type_)

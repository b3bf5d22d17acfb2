"""Tests for the value and envelope codec."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Annotated, Any

import pytest

from cacheaside_core.codec import decode_envelope, decode_value, encode_envelope, encode_value
from cacheaside_core.exceptions import CacheCodecError
from cacheaside_core.models.envelope import CacheEnvelope
from tests.mocks.mock_factories import Shop, make_shop


@dataclass
class Point:
    x: int
    y: int


@pytest.mark.unit
class TestValueCodec:
    """Plain values stored with a physical TTL."""

    def test_model_roundtrip(self) -> None:
        """A pydantic model decodes back into an equal instance."""
        shop = make_shop(tags=["coffee"])
        assert decode_value(encode_value(shop), Shop) == shop

    def test_dataclass_roundtrip(self) -> None:
        """Dataclasses are supported via TypeAdapter."""
        assert decode_value(encode_value(Point(1, 2)), Point) == Point(1, 2)

    def test_generic_alias_roundtrip(self) -> None:
        """Parametrised builtins validate element types."""
        raw = encode_value({"a": [1, 2]})
        assert decode_value(raw, dict[str, list[int]]) == {"a": [1, 2]}

    def test_unhashable_annotated_type_decodes(self) -> None:
        """Annotated metadata that cannot be hashed still decodes."""
        target = Annotated[int, ["display-hint"]]
        assert decode_value("5", target) == 5  # type: ignore[arg-type]
        with pytest.raises(CacheCodecError):
            decode_value('"five"', target)  # type: ignore[arg-type]

    def test_encoded_form_is_json(self) -> None:
        """Stored blob is the plain JSON of the record."""
        raw = encode_value(make_shop())
        assert json.loads(raw) == {"id": 1, "name": "X", "score": 4.5, "tags": []}

    def test_wrong_type_raises_codec_error(self) -> None:
        """Decoding into an incompatible type fails loudly."""
        with pytest.raises(CacheCodecError, match="Shop"):
            decode_value('{"unexpected": true}', Shop)

    def test_invalid_json_raises_codec_error(self) -> None:
        """Garbage in the store is reported as a codec error."""
        with pytest.raises(CacheCodecError):
            decode_value("not-json", int)

    def test_unserializable_value_raises_codec_error(self) -> None:
        """Objects pydantic cannot serialize are rejected."""
        with pytest.raises(CacheCodecError):
            encode_value(object())


@pytest.mark.unit
class TestEnvelopeCodec:
    """Logical-expiry envelopes."""

    def test_wire_format(self) -> None:
        """Envelope uses the data / expireTime field names."""
        expire = datetime(2024, 1, 1, 12, 30, tzinfo=UTC)
        payload = json.loads(encode_envelope(make_shop(), expire))
        assert set(payload) == {"data", "expireTime"}
        assert payload["data"]["name"] == "X"
        assert payload["expireTime"].startswith("2024-01-01T12:30:00")

    def test_envelope_roundtrip_typed(self) -> None:
        """Data is validated into the requested type."""
        expire = datetime(2024, 1, 1, 12, 30, tzinfo=UTC)
        envelope = decode_envelope(encode_envelope(make_shop(), expire), Shop)
        assert isinstance(envelope.data, Shop)
        assert envelope.expire_time == expire

    def test_envelope_with_none_data(self) -> None:
        """A cached absence round-trips as data=None."""
        expire = datetime(2024, 1, 1, tzinfo=UTC)
        envelope = decode_envelope(encode_envelope(None, expire), Shop)
        assert envelope.data is None

    def test_epoch_millis_style_timestamp_accepted(self) -> None:
        """Numeric timestamps from other writers are parsed as UTC."""
        envelope = decode_envelope('{"data": 5, "expireTime": 1704067200}', int)
        assert envelope.expire_time == datetime(2024, 1, 1, tzinfo=UTC)

    def test_naive_timestamp_assumed_utc(self) -> None:
        """Naive ISO timestamps are normalised to UTC."""
        envelope = decode_envelope('{"data": 5, "expireTime": "2024-01-01T00:00:00"}', int)
        assert envelope.expire_time.tzinfo is not None

    def test_plain_value_is_not_an_envelope(self) -> None:
        """A raw record without expireTime fails envelope decoding."""
        with pytest.raises(CacheCodecError):
            decode_envelope(encode_value(make_shop()), Any)  # type: ignore[arg-type]


@pytest.mark.unit
class TestCacheEnvelope:
    """Expiry checks on the model itself."""

    def test_is_expired_boundaries(self) -> None:
        """Expired at and after expireTime, fresh before."""
        expire = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        envelope = CacheEnvelope[int](data=1, expire_time=expire)
        assert envelope.is_expired(datetime(2024, 1, 1, 11, 59, tzinfo=UTC)) is False
        assert envelope.is_expired(expire) is True
        assert envelope.is_expired(datetime(2024, 1, 1, 12, 1, tzinfo=UTC)) is True

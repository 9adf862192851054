"""Tests for store serialization helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from mnemochat.errors import SerializationError
from mnemochat.store.serialization import (
    deserialize_embedding,
    json_loads_dict,
    json_loads_list,
    serialize_datetime,
    serialize_embedding,
)


class TestSerializeDatetime:
    """Tests for serialize_datetime()."""

    def test_none_returns_none(self):
        assert serialize_datetime(None) is None

    def test_datetime_returns_isoformat(self):
        dt = datetime(2024, 6, 15, 12, 30, 45, tzinfo=timezone.utc)
        assert serialize_datetime(dt) == "2024-06-15T12:30:45+00:00"

    def test_offset_is_normalised_to_utc(self):
        dt = datetime(2024, 6, 15, 14, 30, tzinfo=timezone(timedelta(hours=2)))
        assert serialize_datetime(dt) == "2024-06-15T12:30:00+00:00"

    def test_naive_is_treated_as_utc(self):
        assert serialize_datetime(datetime(2024, 6, 15)) == "2024-06-15T00:00:00+00:00"

    def test_string_passthrough(self):
        assert serialize_datetime("2024-06-15") == "2024-06-15"


class TestJsonLoaders:
    def test_dict_loader(self):
        assert json_loads_dict('{"auto_generated": true}') == {"auto_generated": True}
        assert json_loads_dict(None) == {}
        assert json_loads_dict("[1, 2]") == {}
        assert json_loads_dict("{broken") == {}

    def test_list_loader(self):
        assert json_loads_list('["work", "tech"]') == ["work", "tech"]
        assert json_loads_list('{"a": 1}') == []
        assert json_loads_list("") == []


class TestEmbeddingBlobs:
    def test_float32_layout(self):
        blob = serialize_embedding([1.0, -0.5])
        assert len(blob) == 8
        assert deserialize_embedding(blob) == pytest.approx([1.0, -0.5])

    def test_none_blob(self):
        assert deserialize_embedding(None) is None

    def test_misaligned_blob_raises(self):
        with pytest.raises(SerializationError):
            deserialize_embedding(b"\x00\x01\x02")

"""Shared serialization helpers for chat store implementations."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import numpy as np

from ..errors import SerializationError


def serialize_datetime(value: datetime | str | None) -> str | None:
    """Serialize a datetime value to a UTC ISO format string.

    Stored timestamps are always UTC so that they sort lexicographically.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
    return str(value)


def json_loads_dict(value: str | None) -> dict[str, Any]:
    if not value:
        return {}
    try:
        loaded = json.loads(value)
        return loaded if isinstance(loaded, dict) else {}
    except (json.JSONDecodeError, TypeError, ValueError):
        return {}


def json_loads_list(value: str | None) -> list[str]:
    if not value:
        return []
    try:
        loaded = json.loads(value)
    except (json.JSONDecodeError, TypeError, ValueError):
        return []
    if not isinstance(loaded, list):
        return []
    return [str(item) for item in loaded]


def serialize_embedding(embedding: list[float]) -> bytes:
    """Pack an embedding as little-endian float32, the layout sqlite-vec reads."""
    return np.asarray(embedding, dtype="<f4").tobytes()


def deserialize_embedding(blob: bytes | None) -> list[float] | None:
    if blob is None:
        return None
    if len(blob) % 4:
        raise SerializationError(f"Embedding blob of {len(blob)} bytes is not float32-aligned")
    return np.frombuffer(blob, dtype="<f4").astype(float).tolist()

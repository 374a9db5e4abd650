"""Small shared helpers: hashing, timezone normalisation, and serialisation."""

from __future__ import annotations

import dataclasses
import hashlib
import math
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (12.5 -> 13)."""
    return math.floor(value + 0.5)


def content_hash(content: str) -> str:
    """SHA-256 hex digest of *content*."""
    return hashlib.sha256(content.encode()).hexdigest()


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the round trip)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def truncate(text: str, max_length: int) -> str:
    """Cut *text* to *max_length* characters, marking the cut with ``...``."""
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + "..."


def to_jsonable(value: Any) -> Any:
    """Recursively convert dataclasses, enums, and datetimes into JSON-friendly values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple | set | frozenset):
        return [to_jsonable(v) for v in value]
    return value

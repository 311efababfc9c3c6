"""Normalization helpers.

Centralizes parsing of raw timestamps and values.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

from trendcompress._constants import MILLISECONDS_THRESHOLD
from trendcompress.exceptions import InvalidValueError
from trendcompress.models.sample import Sample


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def normalize_timestamp_seconds(value: Any) -> float | None:
    """Normalize a raw timestamp to epoch seconds.

    - Empty/missing/unparseable -> None
    - ``datetime`` -> its POSIX timestamp (naive values are read as UTC)
    - Milliseconds (> 1e12) -> seconds
    """

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.timestamp()
    ts = safe_float(value)
    if ts is None or not math.isfinite(ts):
        return None
    if ts > MILLISECONDS_THRESHOLD:
        ts /= 1000.0
    return ts


def parse_value(value: Any, *, key: str = "") -> float:
    """Parse a raw sample value, raising for anything that is not a finite number."""
    parsed = safe_float(value)
    if parsed is None or not math.isfinite(parsed):
        raise InvalidValueError(f"value {value!r} for {key or 'sample'!r} is not a finite number", key=key, value=value)
    return parsed


def make_sample(key: str, timestamp: Any, value: Any) -> Sample:
    """Build a :class:`Sample` from raw caller input."""
    time = normalize_timestamp_seconds(timestamp)
    if time is None:
        raise InvalidValueError(f"timestamp {timestamp!r} for {key!r} is not a number", key=key, value=timestamp)
    return Sample(key=key, time=time, value=parse_value(value, key=key))

"""Message-level adapter.

Bridges dict-shaped messages (``{"topic": ..., "timestamp": ..., "value": ...}``
or nested variants addressed by dotted paths) and the engine's typed
samples and decisions.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, MutableMapping
from typing import Any

from trendcompress.config import MessageFields
from trendcompress.exceptions import InvalidValueError
from trendcompress.ingestion.normalize import normalize_timestamp_seconds, parse_value
from trendcompress.models import Decision, OutputPoint, Sample


def get_message_property(message: Mapping[str, Any], path: str) -> Any:
    """Return the value at dotted *path*, or ``None`` if any segment is missing."""
    current: Any = message
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def set_message_property(message: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Set *value* at dotted *path*, creating intermediate dicts as needed."""
    parts = path.split(".")
    current: MutableMapping[str, Any] = message
    for part in parts[:-1]:
        nested = current.get(part)
        if not isinstance(nested, MutableMapping):
            nested = {}
            current[part] = nested
        current = nested
    current[parts[-1]] = value


def sample_from_message(
    message: Mapping[str, Any],
    fields: MessageFields,
    *,
    clock: Callable[[], float],
) -> Sample:
    """Extract a :class:`Sample` from *message*.

    A missing key falls back to ``fields.default_key``; a missing timestamp
    falls back to ``clock()`` (epoch seconds).

    Raises
    ------
    InvalidValueError
        If the value is not a finite number or the timestamp is present but
        unparseable.
    """
    raw_key = get_message_property(message, fields.key_field)
    key = str(raw_key).strip() if raw_key not in (None, "") else ""
    key = key or fields.default_key

    raw_ts = get_message_property(message, fields.timestamp_field)
    if raw_ts is None or raw_ts == "":
        time = clock()
    else:
        parsed_ts = normalize_timestamp_seconds(raw_ts)
        if parsed_ts is None:
            raise InvalidValueError(f"timestamp {raw_ts!r} for {key!r} is not a number", key=key, value=raw_ts)
        time = parsed_ts

    value = parse_value(get_message_property(message, fields.value_field), key=key)
    return Sample(key=key, time=time, value=value)


def point_to_message(point: OutputPoint, message: Mapping[str, Any], fields: MessageFields) -> dict[str, Any]:
    out = copy.deepcopy(dict(message))
    out["compressed"] = point.compressed
    if point.out_of_order:
        # Forwarded as received, only flagged.
        out["outOfOrder"] = True
        return out
    set_message_property(out, fields.value_field, point.value)
    set_message_property(out, fields.timestamp_field, point.time * 1000.0)
    out["skippedCount"] = point.skipped_count
    if point.is_previous_point:
        out["isPreviousPoint"] = True
    return out


def decision_to_messages(
    decision: Decision,
    message: Mapping[str, Any],
    fields: MessageFields,
) -> list[dict[str, Any]]:
    """Render each output point of *decision* as a copy of the input *message*.

    Timestamps are written back in epoch milliseconds.
    """
    return [point_to_message(point, message, fields) for point in decision.points]

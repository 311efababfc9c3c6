"""Ingestion boundary.

Raw timestamps and values (strings, milliseconds, nested message
properties) are normalised here into :class:`~trendcompress.models.Sample`
objects. The engine only ever sees epoch seconds and floats.
"""

from trendcompress.ingestion.message import decision_to_messages, sample_from_message
from trendcompress.ingestion.normalize import make_sample, normalize_timestamp_seconds, parse_value, safe_float

__all__ = [
    "decision_to_messages",
    "make_sample",
    "normalize_timestamp_seconds",
    "parse_value",
    "safe_float",
    "sample_from_message",
]

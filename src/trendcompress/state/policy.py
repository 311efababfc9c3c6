"""Expiry and eviction policy for state stores."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta


def is_expired(now: datetime, expires_at: datetime) -> bool:
    return now >= expires_at


def expires_at(saved_at: datetime, ttl: timedelta | None) -> datetime | None:
    """Expiry instant for an entry saved at *saved_at*; ``None`` never expires."""
    if ttl is None:
        return None
    return saved_at + ttl


def oldest_key(saved_at: Mapping[str, datetime]) -> str | None:
    """Key with the earliest save time (first inserted wins ties)."""
    oldest: str | None = None
    oldest_time: datetime | None = None
    for key, when in saved_at.items():
        if oldest_time is None or when < oldest_time:
            oldest, oldest_time = key, when
    return oldest

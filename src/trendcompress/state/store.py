"""State store interface and the in-memory implementation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from trendcompress.exceptions import ConfigurationError
from trendcompress.models import CompressionState
from trendcompress.state.policy import expires_at, is_expired, oldest_key

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@runtime_checkable
class StateStore(Protocol):
    """What the compressor needs from a state backend.

    Implementations raise :class:`~trendcompress.exceptions.StoreError`
    on backend failures.
    """

    def load(self, key: str) -> CompressionState | None: ...

    def save(self, key: str, state: CompressionState) -> None: ...


class StoredState(BaseModel):
    model_config = ConfigDict(extra="forbid")

    state: CompressionState
    saved_at: datetime
    expires_at: datetime | None = None


class InMemoryStateStore:
    """Process-local store with optional TTL and size bound.

    Parameters
    ----------
    ttl : timedelta or None
        Entries not saved for this long read as absent (and are purged).
    max_entries : int or None
        Saving a new key into a full store evicts the entry saved longest ago.
    clock : callable
        Returns the current aware ``datetime``; injectable for tests.

    All methods are safe to call from several threads.
    """

    def __init__(
        self,
        *,
        ttl: timedelta | None = None,
        max_entries: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if ttl is not None and ttl <= timedelta(0):
            raise ConfigurationError(f"ttl must be positive, got {ttl}")
        if max_entries is not None and max_entries < 1:
            raise ConfigurationError(f"max_entries must be >= 1, got {max_entries}")
        self._ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, StoredState] = {}

        self._lock = threading.RLock()

    def _live(self, key: str) -> StoredState | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and is_expired(self._clock(), entry.expires_at):
            _logger.debug("State for key=%s expired", key)
            self._entries.pop(key, None)
            return None
        return entry

    def load(self, key: str) -> CompressionState | None:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return None
            return entry.state.model_copy()

    def save(self, key: str, state: CompressionState) -> None:
        with self._lock:
            now = self._clock()
            if key not in self._entries and self._max_entries is not None:
                self._purge_expired(now)
                if len(self._entries) >= self._max_entries:
                    victim = oldest_key({k: e.saved_at for k, e in self._entries.items()})
                    if victim is not None:
                        _logger.debug("Evicting state for key=%s (max_entries=%d)", victim, self._max_entries)
                        self._entries.pop(victim, None)
            self._entries[key] = StoredState(
                state=state.model_copy(),
                saved_at=now,
                expires_at=expires_at(now, self._ttl),
            )

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge_expired(self, now: datetime) -> int:
        expired = [k for k, e in self._entries.items() if e.expires_at is not None and is_expired(now, e.expires_at)]
        for key in expired:
            self._entries.pop(key, None)
        return len(expired)

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        with self._lock:
            return self._purge_expired(self._clock())

    def keys(self) -> list[str]:
        with self._lock:
            self._purge_expired(self._clock())
            return list(self._entries)

    def __len__(self) -> int:
        return len(self.keys())

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._lock:
            return self._live(key) is not None

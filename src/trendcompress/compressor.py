"""High-level compressor: state store + engine + per-key serialisation."""

from __future__ import annotations

import contextlib
import dataclasses
import logging
import threading
import time
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from trendcompress.config import CompressionConfig
from trendcompress.engine import CompressionEngine
from trendcompress.exceptions import InvalidValueError, StoreError
from trendcompress.ingestion.message import decision_to_messages, sample_from_message
from trendcompress.ingestion.normalize import make_sample
from trendcompress.models import Decision, DecisionKind, OutputPoint, Sample
from trendcompress.state.store import InMemoryStateStore, StateStore

_logger = logging.getLogger(__name__)


class CompressionResult(BaseModel):
    """A decision plus the outcome of persisting its state.

    ``store_error`` is set when the state could not be saved; the decision
    itself is still valid.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    decision: Decision
    store_error: StoreError | None = None

    @property
    def points(self) -> tuple[OutputPoint, ...]:
        return self.decision.points

    @property
    def persisted(self) -> bool:
        return self.store_error is None and self.decision.kind != DecisionKind.OUT_OF_ORDER


@dataclasses.dataclass
class _KeyLock:
    lock: threading.Lock = dataclasses.field(default_factory=threading.Lock)
    # Callers holding or waiting on the lock.
    users: int = 0


class TrendCompressor:
    """Load state, run the engine, save state.

    Calls for the same key are serialised with a per-key lock; calls for
    different keys do not contend beyond the lock-table lookup. A key's
    lock only exists while a call for that key is in flight.

    Parameters
    ----------
    config : CompressionConfig
        Engine configuration.
    store : StateStore or None
        State backend; defaults to an unbounded :class:`InMemoryStateStore`.
    clock : callable
        Epoch seconds used when a message carries no timestamp.
    """

    def __init__(
        self,
        config: CompressionConfig | None = None,
        store: StateStore | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._engine = CompressionEngine(config)
        self._store: StateStore = store if store is not None else InMemoryStateStore()
        self._clock = clock
        self._locks: dict[str, _KeyLock] = {}
        self._locks_guard = threading.Lock()

    @property
    def config(self) -> CompressionConfig:
        return self._engine.config

    @property
    def store(self) -> StateStore:
        return self._store

    @contextlib.contextmanager
    def _key_lock(self, key: str) -> Iterator[None]:
        """Hold the lock for *key*; the entry is dropped once nobody uses it."""
        with self._locks_guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _KeyLock()
                self._locks[key] = entry
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]

    def process(self, sample: Sample) -> CompressionResult:
        """Run one sample through the engine and persist the resulting state.

        Raises
        ------
        InvalidValueError
            If the sample is not finite; state is not touched.
        StoreError
            If the state could not be *loaded*. Save failures are reported
            on the result instead.
        """
        with self._key_lock(sample.key):
            state = self._store.load(sample.key)
            decision = self._engine.process(sample, state)
            if decision.kind == DecisionKind.OUT_OF_ORDER:
                return CompressionResult(decision=decision)
            try:
                self._store.save(sample.key, decision.state)
            except StoreError as exc:
                _logger.warning("Failed to persist state for key=%s: %s", sample.key, exc)
                return CompressionResult(decision=decision, store_error=exc)
        return CompressionResult(decision=decision)

    def ingest(self, key: str, timestamp: Any, value: Any) -> CompressionResult:
        """Normalise raw inputs (ms timestamps, numeric strings) and process them."""
        return self.process(make_sample(key, timestamp, value))

    def process_message(self, message: Mapping[str, Any]) -> list[dict[str, Any]]:
        """Message-in, messages-out adapter.

        Returns the compressed output messages for *message* (possibly
        none). Invalid values are logged and dropped.
        """
        fields = self.config.fields
        try:
            sample = sample_from_message(message, fields, clock=self._clock)
            result = self.process(sample)
        except InvalidValueError as exc:
            _logger.warning("Dropping sample: %s", exc)
            return []
        return decision_to_messages(result.decision, message, fields)

    def status(self) -> dict[str, Any]:
        """Number and names of keys currently holding state."""
        keys_fn = getattr(self._store, "keys", None)
        if keys_fn is None:
            return {"algorithm": str(self.config.algorithm), "count": None, "keys": None}
        keys = sorted(keys_fn())
        return {"algorithm": str(self.config.algorithm), "count": len(keys), "keys": keys}


def replay(compressor: TrendCompressor, samples: list[Sample]) -> list[Decision]:
    """Feed *samples* in order and collect the decisions."""
    return [compressor.process(sample).decision for sample in samples]

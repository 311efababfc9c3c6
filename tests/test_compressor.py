from __future__ import annotations

import logging
import sys
import threading
from datetime import timedelta

import pytest

from trendcompress.compressor import TrendCompressor, replay
from trendcompress.config import CompressionConfig
from trendcompress.exceptions import InvalidValueError, StoreError
from trendcompress.models import CompressionState, DecisionKind, Sample
from trendcompress.state.store import InMemoryStateStore


class _FailingSaveStore(InMemoryStateStore):
    def save(self, key: str, state: CompressionState) -> None:
        raise StoreError("backend unavailable", key=key)


class _FailingLoadStore(InMemoryStateStore):
    def load(self, key: str) -> CompressionState | None:
        raise StoreError("backend unavailable", key=key)


class _KeylessStore:
    def __init__(self) -> None:
        self._data: dict[str, CompressionState] = {}

    def load(self, key: str) -> CompressionState | None:
        return self._data.get(key)

    def save(self, key: str, state: CompressionState) -> None:
        self._data[key] = state


def test_process_persists_state_between_calls() -> None:
    compressor = TrendCompressor(CompressionConfig(algorithm="deduplicate", max_duration=100))

    kinds = [compressor.process(Sample(key="k", time=t, value=v)).decision.kind for t, v in [(0, 5), (1, 5), (2, 7)]]

    assert kinds == [DecisionKind.INIT, DecisionKind.SKIP, DecisionKind.EMIT]
    stored = compressor.store.load("k")
    assert stored is not None
    assert (stored.anchor_time, stored.anchor_value, stored.skipped_count) == (2, 7, 0)


def test_out_of_order_is_not_saved() -> None:
    store = InMemoryStateStore()
    compressor = TrendCompressor(store=store)
    compressor.process(Sample(key="k", time=10, value=1))
    before = store.load("k")

    result = compressor.process(Sample(key="k", time=5, value=2))

    assert result.decision.kind == DecisionKind.OUT_OF_ORDER
    assert not result.persisted
    assert store.load("k") == before


def test_save_failure_is_reported_not_raised(caplog) -> None:
    compressor = TrendCompressor(store=_FailingSaveStore())

    with caplog.at_level(logging.WARNING, logger="trendcompress.compressor"):
        result = compressor.process(Sample(key="k", time=0, value=1))

    assert result.decision.kind == DecisionKind.INIT
    assert result.points[0].value == 1
    assert isinstance(result.store_error, StoreError)
    assert result.store_error.key == "k"
    assert not result.persisted
    assert "Failed to persist state for key=k" in caplog.text


def test_save_failure_makes_next_call_init_again() -> None:
    compressor = TrendCompressor(store=_FailingSaveStore())
    compressor.process(Sample(key="k", time=0, value=1))

    assert compressor.process(Sample(key="k", time=1, value=1)).decision.kind == DecisionKind.INIT


def test_load_failure_propagates() -> None:
    compressor = TrendCompressor(store=_FailingLoadStore())

    with pytest.raises(StoreError):
        compressor.process(Sample(key="k", time=0, value=1))


def test_ingest_normalizes_raw_inputs() -> None:
    compressor = TrendCompressor()

    result = compressor.ingest("k", 1_700_000_000_000, "3.5")

    assert result.decision.sample.time == 1_700_000_000.0
    assert result.points[0].value == 3.5
    assert result.persisted


def test_ingest_rejects_invalid_value_without_touching_state() -> None:
    compressor = TrendCompressor()
    compressor.ingest("k", 0, 1)
    before = compressor.store.load("k")

    with pytest.raises(InvalidValueError):
        compressor.ingest("k", 1, "NaN")

    assert compressor.store.load("k") == before


def test_process_message_round_trip() -> None:
    compressor = TrendCompressor(CompressionConfig(algorithm="exception+prev", deviation=1))

    first = compressor.process_message({"topic": "t", "timestamp": 0, "value": 10})
    skipped = compressor.process_message({"topic": "t", "timestamp": 1, "value": 10.5})
    emitted = compressor.process_message({"topic": "t", "timestamp": 2, "value": 12})

    assert [m["value"] for m in first] == [10.0]
    assert first[0]["skippedCount"] == 0
    assert skipped == []
    assert [(m["timestamp"], m["value"]) for m in emitted] == [(1000.0, 10.5), (2000.0, 12.0)]
    assert emitted[0]["isPreviousPoint"] is True
    assert emitted[0]["skippedCount"] == 1


def test_process_message_swinging_door_forwards_previous_value() -> None:
    compressor = TrendCompressor(CompressionConfig(algorithm="swinging-door", deviation=0.5))
    for t in range(5):
        compressor.process_message({"topic": "t", "timestamp": t, "value": t})

    (out,) = compressor.process_message({"topic": "t", "timestamp": 5, "value": 10})

    assert (out["timestamp"], out["value"]) == (4000.0, 4.0)
    assert out["skippedCount"] == 4


def test_process_message_drops_invalid_value(caplog) -> None:
    compressor = TrendCompressor()

    with caplog.at_level(logging.WARNING, logger="trendcompress.compressor"):
        out = compressor.process_message({"topic": "t", "timestamp": 0, "value": "offline"})

    assert out == []
    assert "Dropping sample" in caplog.text
    assert compressor.store.load("t") is None


def test_process_message_uses_clock_when_timestamp_missing() -> None:
    compressor = TrendCompressor(clock=lambda: 1234.5)

    (out,) = compressor.process_message({"topic": "t", "value": 1})

    assert out["timestamp"] == 1_234_500.0


def test_status_lists_keys() -> None:
    compressor = TrendCompressor(CompressionConfig(algorithm="timedelta"))
    compressor.ingest("b", 0, 1)
    compressor.ingest("a", 0, 1)

    assert compressor.status() == {"algorithm": "timedelta", "count": 2, "keys": ["a", "b"]}


def test_status_without_enumerable_store() -> None:
    compressor = TrendCompressor(store=_KeylessStore())
    compressor.ingest("a", 0, 1)

    assert compressor.status() == {"algorithm": "deduplicate", "count": None, "keys": None}


def test_replay_collects_decisions() -> None:
    compressor = TrendCompressor(CompressionConfig(algorithm="exception", deviation=1))
    samples = [Sample(key="k", time=t, value=v) for t, v in [(0, 10), (1, 10.5), (2, 11.2)]]

    decisions = replay(compressor, samples)

    assert [d.kind for d in decisions] == [DecisionKind.INIT, DecisionKind.SKIP, DecisionKind.EMIT]
    assert decisions[-1].points[0].skipped_count == 1


def test_concurrent_keys_are_independent() -> None:
    compressor = TrendCompressor(CompressionConfig(algorithm="deduplicate", max_duration=1e6))
    errors: list[BaseException] = []

    def worker(key: str) -> None:
        try:
            for t in range(200):
                compressor.ingest(key, t, t % 2)
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(f"k{i}",)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert compressor.status()["count"] == 8
    for i in range(8):
        state = compressor.store.load(f"k{i}")
        assert state is not None
        assert state.anchor_time == 199


def test_distinct_keys_share_bounded_store_across_threads() -> None:
    store = InMemoryStateStore(ttl=timedelta(hours=1), max_entries=20)
    compressor = TrendCompressor(store=store)
    errors: list[BaseException] = []

    def worker(prefix: str) -> None:
        try:
            for i in range(1500):
                compressor.ingest(f"{prefix}-{i}", i, 1)
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    previous_interval = sys.getswitchinterval()
    sys.setswitchinterval(1e-6)
    try:
        threads = [threading.Thread(target=worker, args=(f"w{n}",)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
    finally:
        sys.setswitchinterval(previous_interval)

    assert errors == []
    assert compressor.status()["count"] <= 20
    assert compressor._locks == {}  # noqa: SLF001


def test_lock_table_does_not_grow_with_evicted_keys() -> None:
    store = InMemoryStateStore(max_entries=10)
    compressor = TrendCompressor(store=store)

    for i in range(1000):
        compressor.ingest(f"k{i}", 0, i)

    assert len(store) == 10
    assert compressor._locks == {}  # noqa: SLF001


def test_lock_released_when_processing_fails() -> None:
    compressor = TrendCompressor(store=_FailingLoadStore())

    with pytest.raises(StoreError):
        compressor.ingest("k", 0, 1)

    assert compressor._locks == {}  # noqa: SLF001

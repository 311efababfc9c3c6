"""Per-key compression state machine.

The engine is a pure transition function: it never mutates the state it
is given and performs no I/O. Loading and persisting state is the
caller's job (see :mod:`trendcompress.compressor`), as is serialising
calls for the same key.
"""

from __future__ import annotations

import logging
import math

from trendcompress._algorithms import TRIGGER_RULES, cone_bounds, cone_violated, narrow_cone, reopen_cone
from trendcompress._constants import EPSILON, PREVIOUS_POINT_MIN_GAP
from trendcompress.config import CompressionConfig
from trendcompress.exceptions import InvalidValueError
from trendcompress.models import CompressionState, Decision, DecisionKind, OutputPoint, Sample

_logger = logging.getLogger(__name__)


class CompressionEngine:
    """Decides, sample by sample, what to forward for each key.

    The algorithm is resolved once at construction; an invalid
    configuration fails in :class:`~trendcompress.config.CompressionConfig`
    before an engine can exist.
    """

    def __init__(self, config: CompressionConfig | None = None) -> None:
        self._config = config or CompressionConfig()
        algorithm = self._config.algorithm
        self._trigger = TRIGGER_RULES.get(algorithm)
        self._emits_previous = algorithm.emits_previous

    @property
    def config(self) -> CompressionConfig:
        return self._config

    def process(self, sample: Sample, state: CompressionState | None = None) -> Decision:
        """Apply *sample* to its key's *state* (``None`` on first sight).

        Raises
        ------
        InvalidValueError
            If the sample's value or time is not finite. Nothing changes.
        """
        if not math.isfinite(sample.value):
            raise InvalidValueError(f"value for {sample.key!r} is not finite", key=sample.key, value=sample.value)
        if not math.isfinite(sample.time):
            raise InvalidValueError(f"time for {sample.key!r} is not finite", key=sample.key, value=sample.time)

        if state is None:
            _logger.debug("Init key=%s t=%s value=%s", sample.key, sample.time, sample.value)
            return Decision(
                kind=DecisionKind.INIT,
                key=sample.key,
                sample=sample,
                points=(OutputPoint(time=sample.time, value=sample.value),),
                state=CompressionState.initial(sample),
            )

        if sample.time <= state.anchor_time:
            _logger.debug("Out-of-order sample key=%s t=%s anchor=%s", sample.key, sample.time, state.anchor_time)
            return Decision(
                kind=DecisionKind.OUT_OF_ORDER,
                key=sample.key,
                sample=sample,
                points=(OutputPoint(time=sample.time, value=sample.value, out_of_order=True),),
                skipped_count=state.skipped_count,
                state=state,
            )

        new_state = state.model_copy()
        dt = sample.time - state.anchor_time
        if dt < EPSILON:
            return self._skip(sample, new_state)

        heartbeat = dt >= self._config.max_duration
        if self._trigger is None:
            return self._swinging_door_step(sample, new_state, dt, heartbeat)

        if heartbeat or self._trigger(new_state, sample, dt, self._config):
            return self._emit(sample, new_state)
        return self._skip(sample, new_state)

    def _skip(self, sample: Sample, state: CompressionState) -> Decision:
        state.prev_time = sample.time
        state.prev_value = sample.value
        state.skipped_count += 1
        return Decision(
            kind=DecisionKind.SKIP,
            key=sample.key,
            sample=sample,
            skipped_count=state.skipped_count,
            state=state,
        )

    def _emit(self, sample: Sample, state: CompressionState) -> Decision:
        skipped = state.skipped_count
        points: list[OutputPoint] = []
        kind = DecisionKind.EMIT

        if self._emits_previous and abs(state.anchor_time - state.prev_time) >= PREVIOUS_POINT_MIN_GAP:
            points.append(
                OutputPoint(
                    time=state.prev_time,
                    value=state.prev_value,
                    skipped_count=skipped,
                    is_previous_point=True,
                )
            )
            kind = DecisionKind.EMIT_WITH_PREVIOUS

        # The backlog travels on the previous point when there is one.
        points.append(OutputPoint(time=sample.time, value=sample.value, skipped_count=0 if points else skipped))

        state.anchor_time = sample.time
        state.anchor_value = sample.value
        state.prev_time = sample.time
        state.prev_value = sample.value
        state.skipped_count = 0
        _logger.debug("Emit key=%s t=%s value=%s skipped=%d", sample.key, sample.time, sample.value, skipped)
        return Decision(
            kind=kind,
            key=sample.key,
            sample=sample,
            points=tuple(points),
            skipped_count=skipped,
            state=state,
        )

    def _swinging_door_step(self, sample: Sample, state: CompressionState, dt: float, heartbeat: bool) -> Decision:
        deviation = self._config.deviation
        min_slope, max_slope = cone_bounds(state.anchor_time, state.anchor_value, sample.time, sample.value, deviation)
        violated = cone_violated(state, min_slope, max_slope)

        if not heartbeat and not (violated and dt >= self._config.min_duration):
            # A violation inside min_duration keeps the old cone rather than inverting it.
            if not violated:
                narrow_cone(state, min_slope, max_slope)
            return self._skip(sample, state)

        # The door closed: the last raw point inside it becomes the new anchor.
        skipped = state.skipped_count
        point = OutputPoint(time=state.prev_time, value=state.prev_value, skipped_count=skipped)
        state.anchor_time = state.prev_time
        state.anchor_value = state.prev_value
        reopen_cone(state, sample, deviation)
        state.prev_time = sample.time
        state.prev_value = sample.value
        state.skipped_count = 0
        _logger.debug(
            "Door closed key=%s anchor_t=%s anchor_value=%s skipped=%d heartbeat=%s",
            sample.key,
            point.time,
            point.value,
            skipped,
            heartbeat,
        )
        return Decision(
            kind=DecisionKind.EMIT,
            key=sample.key,
            sample=sample,
            points=(point,),
            skipped_count=skipped,
            state=state,
        )

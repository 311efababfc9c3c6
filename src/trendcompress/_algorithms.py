"""Per-algorithm trigger rules and swinging-door cone arithmetic.

Every rule sees the state *before* the sample is applied and the elapsed
time ``dt`` since the anchor (always ``>= EPSILON`` here). The
``max_duration`` heartbeat is applied by the engine, not by the rules.
"""

from __future__ import annotations

from collections.abc import Callable

from trendcompress._constants import EPSILON
from trendcompress.config import Algorithm, CompressionConfig
from trendcompress.models.sample import Sample
from trendcompress.models.state import CompressionState

TriggerRule = Callable[[CompressionState, Sample, float, CompressionConfig], bool]


def value_changed(state: CompressionState, sample: Sample) -> bool:
    return abs(sample.value - state.anchor_value) >= EPSILON


def deduplicate_triggered(state: CompressionState, sample: Sample, dt: float, config: CompressionConfig) -> bool:
    return value_changed(state, sample) and dt >= config.min_duration


def timedelta_triggered(state: CompressionState, sample: Sample, dt: float, config: CompressionConfig) -> bool:
    return dt >= config.min_duration


def exception_triggered(state: CompressionState, sample: Sample, dt: float, config: CompressionConfig) -> bool:
    # Equality counts as an exception: |delta| == deviation triggers.
    return abs(sample.value - state.anchor_value) >= config.deviation and dt >= config.min_duration


# Swinging door has no entry: the engine runs the cone test for it.
TRIGGER_RULES: dict[Algorithm, TriggerRule] = {
    Algorithm.DEDUPLICATE: deduplicate_triggered,
    Algorithm.DEDUPLICATE_PREV: deduplicate_triggered,
    Algorithm.TIMEDELTA: timedelta_triggered,
    Algorithm.EXCEPTION: exception_triggered,
    Algorithm.EXCEPTION_PREV: exception_triggered,
}


# ------------------------------------------------------------------
# Swinging door
# ------------------------------------------------------------------


def cone_bounds(
    anchor_time: float,
    anchor_value: float,
    time: float,
    value: float,
    deviation: float,
) -> tuple[float, float]:
    """Slopes of the two lines from the anchor to ``value -/+ deviation`` at *time*.

    Callers guarantee ``time - anchor_time > EPSILON``.
    """
    dt = time - anchor_time
    return (value - deviation - anchor_value) / dt, (value + deviation - anchor_value) / dt


def cone_violated(state: CompressionState, min_slope: float, max_slope: float) -> bool:
    """True when intersecting the stored cone with ``[min_slope, max_slope]`` leaves it empty."""
    return min_slope > state.max_slope or max_slope < state.min_slope


def narrow_cone(state: CompressionState, min_slope: float, max_slope: float) -> None:
    state.min_slope = max(state.min_slope, min_slope)
    state.max_slope = min(state.max_slope, max_slope)


def reopen_cone(state: CompressionState, sample: Sample, deviation: float) -> None:
    """Recompute the cone from a freshly moved anchor against *sample*."""
    if sample.time - state.anchor_time > EPSILON:
        state.min_slope, state.max_slope = cone_bounds(
            state.anchor_time,
            state.anchor_value,
            sample.time,
            sample.value,
            deviation,
        )
    else:
        state.reset_cone()

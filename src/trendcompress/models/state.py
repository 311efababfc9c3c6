"""Per-key compression state."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field

from trendcompress.models.sample import Sample


class CompressionState(BaseModel):
    """Everything the engine remembers about one key between samples.

    Parameters
    ----------
    anchor_time, anchor_value : float
        Last emitted (or door-adjusted) point; origin for every test.
    skipped_count : int
        Samples suppressed since the last emission.
    prev_time, prev_value : float
        Most recently received raw sample, emitted or not.
    min_slope, max_slope : float
        Swinging-door cone bounds through the anchor.
    """

    model_config = ConfigDict(extra="forbid")

    anchor_time: float
    anchor_value: float
    skipped_count: int = Field(default=0, ge=0)
    prev_time: float
    prev_value: float
    min_slope: float = -math.inf
    max_slope: float = math.inf

    @classmethod
    def initial(cls, sample: Sample) -> CompressionState:
        return cls(
            anchor_time=sample.time,
            anchor_value=sample.value,
            prev_time=sample.time,
            prev_value=sample.value,
        )

    def reset_cone(self) -> None:
        self.min_slope = -math.inf
        self.max_slope = math.inf

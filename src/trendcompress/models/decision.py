"""Engine output: what happened to a sample and which points to forward."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from trendcompress.models.sample import Sample
from trendcompress.models.state import CompressionState


class DecisionKind(StrEnum):
    INIT = "init"
    OUT_OF_ORDER = "out_of_order"
    SKIP = "skip"
    EMIT = "emit"
    EMIT_WITH_PREVIOUS = "emit_with_previous"


_EMITTING_KINDS = frozenset({DecisionKind.INIT, DecisionKind.EMIT, DecisionKind.EMIT_WITH_PREVIOUS})


class OutputPoint(BaseModel):
    """A point handed to downstream consumers."""

    model_config = ConfigDict(frozen=True)

    time: float
    value: float
    skipped_count: int = Field(default=0, ge=0)
    compressed: bool = True
    is_previous_point: bool = False
    out_of_order: bool = False


class Decision(BaseModel):
    """Result of feeding one sample to the engine.

    ``points`` is ordered: for ``EMIT_WITH_PREVIOUS`` the buffered previous
    point comes first, then the new anchor. ``OUT_OF_ORDER`` decisions carry
    the rejected sample as a single point flagged ``out_of_order``;
    ``SKIP`` decisions carry nothing. ``state`` is the key's state after the
    call and is what the caller should persist.
    """

    model_config = ConfigDict(frozen=True)

    kind: DecisionKind
    key: str
    sample: Sample
    points: tuple[OutputPoint, ...] = ()
    skipped_count: int = Field(default=0, ge=0)
    state: CompressionState

    @property
    def emitted(self) -> bool:
        return self.kind in _EMITTING_KINDS

    @property
    def out_of_order(self) -> bool:
        return self.kind == DecisionKind.OUT_OF_ORDER

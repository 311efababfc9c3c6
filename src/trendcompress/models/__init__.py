"""Pydantic models for samples, per-key state and engine decisions."""

from trendcompress.models.decision import Decision, DecisionKind, OutputPoint
from trendcompress.models.sample import Sample
from trendcompress.models.state import CompressionState

__all__ = [
    "CompressionState",
    "Decision",
    "DecisionKind",
    "OutputPoint",
    "Sample",
]

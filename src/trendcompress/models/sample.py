"""Input sample model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Sample(BaseModel):
    """One timestamped reading for a key.

    ``time`` is epoch seconds; callers normalise milliseconds and string
    values at the ingestion boundary (see :mod:`trendcompress.ingestion`).
    Non-finite values are accepted here so the engine can reject them
    with :class:`~trendcompress.exceptions.InvalidValueError`.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Topic the sample belongs to")
    time: float = Field(..., description="Epoch seconds")
    value: float

    @field_validator("key")
    @classmethod
    def _normalize_key(cls, value: str) -> str:
        key = value.strip()
        if not key:
            raise ValueError("key must be non-empty")
        return key

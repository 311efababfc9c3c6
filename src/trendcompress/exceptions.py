"""Custom exception hierarchy for trendcompress."""

from __future__ import annotations

from typing import Any


class CompressionError(Exception):
    """Base exception for all trendcompress errors."""


class ConfigurationError(CompressionError):
    """Invalid engine configuration (unknown algorithm, bad thresholds)."""


class InvalidValueError(CompressionError):
    """Sample value (or time) is not a finite number.

    The sample is dropped and the key's state is left untouched.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str = "",
        value: Any = None,
    ) -> None:
        self.key = key
        self.value = value
        super().__init__(message)


class StoreError(CompressionError):
    """State store failed to load or persist a key's state.

    A failed save does not invalidate the decision that was just computed;
    only the state seen by the next call for *key* may be stale.
    """

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)

"""Engine configuration for trendcompress."""

from __future__ import annotations

import dataclasses
import math
import os
from enum import StrEnum
from typing import Any

from trendcompress._constants import (
    DEFAULT_DEVIATION,
    DEFAULT_KEY,
    DEFAULT_MAX_DURATION,
    DEFAULT_MIN_DURATION,
)
from trendcompress.exceptions import ConfigurationError


class Algorithm(StrEnum):
    """Compression algorithms selectable per engine."""

    DEDUPLICATE = "deduplicate"
    DEDUPLICATE_PREV = "deduplicate+prev"
    TIMEDELTA = "timedelta"
    EXCEPTION = "exception"
    EXCEPTION_PREV = "exception+prev"
    SWINGING_DOOR = "swinging-door"

    @property
    def emits_previous(self) -> bool:
        """Whether a trigger also forwards the last suppressed raw sample."""
        return self in (Algorithm.DEDUPLICATE_PREV, Algorithm.EXCEPTION_PREV)

    @classmethod
    def from_name(cls, name: str | Algorithm) -> Algorithm:
        if isinstance(name, Algorithm):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ConfigurationError(f"unknown algorithm {name!r}; expected one of: {valid}") from None


@dataclasses.dataclass(frozen=True)
class MessageFields:
    """Where samples live inside a message dict.

    Paths may be dotted (``"payload.value"``) to reach nested properties.
    """

    key_field: str = "topic"
    timestamp_field: str = "timestamp"
    value_field: str = "value"
    default_key: str = DEFAULT_KEY


def _check_threshold(name: str, value: Any, *, allow_zero: bool = True) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ConfigurationError(f"{name} must be finite, got {number}")
    if number < 0 or (number == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise ConfigurationError(f"{name} must be {bound}, got {number}")
    return number


@dataclasses.dataclass(frozen=True)
class CompressionConfig:
    """Engine configuration, immutable once built.

    Parameters
    ----------
    algorithm : Algorithm or str
        One of the six recognised algorithm names.
    deviation : float
        Absolute deadband for ``exception`` variants and the door
        half-width for ``swinging-door``.
    min_duration : float
        Minimum seconds since the anchor before an emission is considered.
    max_duration : float
        Seconds since the anchor after which a sample is always emitted.
    fields : MessageFields
        Message property paths used by the message-level adapter.
    """

    algorithm: Algorithm = Algorithm.DEDUPLICATE
    deviation: float = DEFAULT_DEVIATION
    min_duration: float = DEFAULT_MIN_DURATION
    max_duration: float = DEFAULT_MAX_DURATION
    fields: MessageFields = dataclasses.field(default_factory=MessageFields)

    def __post_init__(self) -> None:
        object.__setattr__(self, "algorithm", Algorithm.from_name(self.algorithm))
        object.__setattr__(self, "deviation", _check_threshold("deviation", self.deviation))
        object.__setattr__(self, "min_duration", _check_threshold("min_duration", self.min_duration))
        object.__setattr__(
            self,
            "max_duration",
            _check_threshold("max_duration", self.max_duration, allow_zero=False),
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> CompressionConfig:
        """Create configuration from ``TRENDCOMPRESS_*`` environment variables.

        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        CompressionConfig
            Validated configuration.
        """
        env = os.environ

        fields_kwargs: dict[str, str] = {}
        _ENV_FIELDS_MAP = {
            "TRENDCOMPRESS_KEY_FIELD": "key_field",
            "TRENDCOMPRESS_TIMESTAMP_FIELD": "timestamp_field",
            "TRENDCOMPRESS_VALUE_FIELD": "value_field",
            "TRENDCOMPRESS_DEFAULT_KEY": "default_key",
        }
        for env_key, field_name in _ENV_FIELDS_MAP.items():
            val = env.get(env_key)
            if val is not None:
                fields_kwargs[field_name] = val

        # Allow overriding field paths via a nested dict
        fields_overrides = overrides.pop("fields", None)
        if isinstance(fields_overrides, dict):
            fields_kwargs.update(fields_overrides)
        elif isinstance(fields_overrides, MessageFields):
            fields_kwargs = dataclasses.asdict(fields_overrides)

        config_kwargs: dict[str, Any] = {"fields": MessageFields(**fields_kwargs)}

        algorithm_env = env.get("TRENDCOMPRESS_ALGORITHM")
        if algorithm_env is not None:
            config_kwargs["algorithm"] = algorithm_env

        # Numeric values are validated (and rejected) by __post_init__
        _ENV_NUMERIC_MAP = {
            "TRENDCOMPRESS_DEVIATION": "deviation",
            "TRENDCOMPRESS_MIN_DURATION": "min_duration",
            "TRENDCOMPRESS_MAX_DURATION": "max_duration",
        }
        for env_key, field_name in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        config_kwargs.update(overrides)

        return cls(**config_kwargs)

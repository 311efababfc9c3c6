"""trendcompress - historian-style trend compression for per-topic sample streams."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("trendcompress")
except PackageNotFoundError:
    __version__ = "0+local"
from trendcompress.compressor import CompressionResult, TrendCompressor
from trendcompress.config import Algorithm, CompressionConfig, MessageFields
from trendcompress.engine import CompressionEngine
from trendcompress.exceptions import (
    CompressionError,
    ConfigurationError,
    InvalidValueError,
    StoreError,
)
from trendcompress.models import (
    CompressionState,
    Decision,
    DecisionKind,
    OutputPoint,
    Sample,
)
from trendcompress.state import InMemoryStateStore, StateStore

__all__ = [
    "__version__",
    "Algorithm",
    "CompressionConfig",
    "CompressionEngine",
    "CompressionError",
    "CompressionResult",
    "CompressionState",
    "ConfigurationError",
    "Decision",
    "DecisionKind",
    "InMemoryStateStore",
    "InvalidValueError",
    "MessageFields",
    "OutputPoint",
    "Sample",
    "StateStore",
    "StoreError",
    "TrendCompressor",
]

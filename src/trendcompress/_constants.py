"""Internal constants shared across the library."""

# Tolerance for "value unchanged" and "zero elapsed time" tests.
EPSILON = 1e-15

# A buffered previous point is only re-emitted when it is at least this far
# (in seconds) from the current anchor.
PREVIOUS_POINT_MIN_GAP = 1e-6

# Raw timestamps above this are epoch milliseconds.
MILLISECONDS_THRESHOLD = 1e12

DEFAULT_DEVIATION = 0.1
DEFAULT_MIN_DURATION = 0.0
DEFAULT_MAX_DURATION = 86400.0

DEFAULT_KEY = "default"

"""
Error types for pc_index.

Every error raised by the package derives from PCIndexError and from the
built-in exception a caller would expect for the same contract violation,
so ``except ValueError`` keeps working for configuration mistakes.
"""


class PCIndexError(Exception):
    """Base class for all pc_index errors."""


class InvalidConfigurationError(PCIndexError, ValueError):
    """Build or wrap called with parameters that cannot produce an index.

    Raised for a non-positive leaf size on strategies that need one, an
    unknown strategy name, a negative point count, or a coordinate buffer
    whose length does not hold ``3 * n`` values.
    """


class NotReadyError(PCIndexError, RuntimeError):
    """Query issued against an index that has not been built."""


class OutOfRangeError(PCIndexError, IndexError):
    """Coordinate access beyond the point count or the three dimensions."""


class InvalidQueryError(PCIndexError, ValueError):
    """Query point is not a 3D point or the radius is negative or NaN."""

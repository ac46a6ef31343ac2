"""
Point coordinate adapter for pc_index.

Provides the PointSet class, an immutable view over caller-owned
float32 XYZ coordinates, and the wrap function that builds one from any
buffer holding ``3 * n`` values.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np

from pc_index.errors import InvalidConfigurationError, OutOfRangeError

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class PointSet:
    """Read-only view over N points in 3D.

    Parameters
    ----------
    coordinates : np.ndarray
        (N, 3) float32 array of XYZ coordinates. When created through
        ``wrap`` this is a view onto the caller's buffer, which must stay
        alive and unmodified while any index built from it is in use.
    is_view : bool
        True if ``coordinates`` shares memory with the caller's buffer,
        False if a converting copy had to be made.

    Attributes
    ----------
    _padded : np.ndarray, optional
        Owned (N, 4) copy for backends that need padded storage. Created
        on first request by ``padded`` and reused afterwards.
    """

    coordinates: np.ndarray
    is_view: bool = False

    _padded: Optional[np.ndarray] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        """Validate array shape and type."""
        if self.coordinates.ndim != 2 or self.coordinates.shape[1] != 3:
            raise InvalidConfigurationError(
                f"coordinates must have shape (N, 3), got {self.coordinates.shape}"
            )
        if self.coordinates.dtype != np.float32:
            raise InvalidConfigurationError(
                f"coordinates must be float32, got {self.coordinates.dtype}"
            )
        if self.coordinates.flags.writeable:
            # Read-only view; the caller's own array stays writeable
            self.coordinates = self.coordinates.view()
            self.coordinates.flags.writeable = False

    @classmethod
    def from_array(cls, xyz: Any) -> "PointSet":
        """
        Wrap an (N, 3) array of coordinates.

        Parameters
        ----------
        xyz : array_like
            (N, 3) coordinates. float32 C-contiguous arrays are not copied.

        Returns
        -------
        PointSet
            Point set over ``xyz``.
        """
        array = xyz if isinstance(xyz, np.ndarray) else np.asarray(xyz)
        if array.ndim != 2 or array.shape[1] != 3:
            raise InvalidConfigurationError(f"Points must have shape (N, 3), got {array.shape}")
        return wrap(array, array.shape[0])

    @property
    def n_points(self) -> int:
        """Return number of points in the set."""
        return len(self.coordinates)

    def __len__(self) -> int:
        return self.n_points

    def get(self, i: int, dim: int) -> float:
        """
        Return coordinate ``dim`` of point ``i``.

        Parameters
        ----------
        i : int
            Zero-based point identifier, ``0 <= i < n``.
        dim : int
            Axis, one of 0 (x), 1 (y), 2 (z).

        Returns
        -------
        float
            The coordinate value.

        Raises
        ------
        OutOfRangeError
            If ``i`` or ``dim`` is outside its valid range. Negative
            values are not interpreted as offsets from the end.
        """
        if not 0 <= i < self.n_points:
            raise OutOfRangeError(f"Point index {i} out of range for {self.n_points} points")
        if not 0 <= dim < 3:
            raise OutOfRangeError(f"Dimension {dim} out of range, expected 0, 1 or 2")
        return float(self.coordinates[i, dim])

    def padded(self) -> np.ndarray:
        """
        Return an owned (N, 4) float32 copy with a zero fourth column.

        The copy is made once and is read-only. Backends that scan rows of
        padded storage use this instead of the zero-copy ``coordinates``.

        Returns
        -------
        np.ndarray
            (N, 4) float32 array.
        """
        if self._padded is None:
            padded = np.zeros((self.n_points, 4), dtype=np.float32)
            padded[:, :3] = self.coordinates
            padded.flags.writeable = False
            logger.debug(f"Created padded layout copy for {self.n_points} points")
            self._padded = padded
        return self._padded

    @property
    def bounds(self) -> Dict[str, Tuple[float, float]]:
        """Return min/max for each dimension.

        Returns
        -------
        dict
            Dictionary with 'x', 'y', 'z' keys containing (min, max) tuples.
            Values are NaN for an empty point set.
        """
        if self.n_points == 0:
            nan = float("nan")
            return {"x": (nan, nan), "y": (nan, nan), "z": (nan, nan)}

        lo = self.coordinates.min(axis=0)
        hi = self.coordinates.max(axis=0)
        return {
            "x": (float(lo[0]), float(hi[0])),
            "y": (float(lo[1]), float(hi[1])),
            "z": (float(lo[2]), float(hi[2])),
        }

    @property
    def centroid(self) -> np.ndarray:
        """Return centroid of the point set."""
        if self.n_points == 0:
            return np.full(3, np.nan)
        return self.coordinates.mean(axis=0, dtype=np.float64)

    @property
    def extent(self) -> Dict[str, float]:
        """Return extent (range) for each dimension."""
        bounds = self.bounds
        return {
            "x": bounds["x"][1] - bounds["x"][0],
            "y": bounds["y"][1] - bounds["y"][0],
            "z": bounds["z"][1] - bounds["z"][0],
        }


def wrap(buffer: Any, n: int) -> PointSet:
    """
    Wrap a flat buffer of ``3 * n`` float32 values as a PointSet.

    The buffer is read as consecutive (x, y, z) triples. Any object
    exposing the buffer protocol works: numpy arrays of any shape,
    ``array.array('f')``, ``memoryview`` or raw ``bytes``. Raw bytes are
    interpreted as native float32. Values past ``3 * n`` are ignored.

    When the data is already float32 and C-contiguous, no copy is made
    and the returned PointSet is a view onto the caller's memory.
    Otherwise the values are converted once into an owned array.

    Parameters
    ----------
    buffer : buffer-like
        Coordinate storage owned by the caller.
    n : int
        Number of points, ``n >= 0``.

    Returns
    -------
    PointSet
        Point set over the first ``3 * n`` values of ``buffer``.

    Raises
    ------
    InvalidConfigurationError
        If ``n`` is negative or not an integer, or if ``buffer`` holds
        fewer than ``3 * n`` values.
    """
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise InvalidConfigurationError(f"Point count must be an integer, got {n!r}")
    n = int(n)
    if n < 0:
        raise InvalidConfigurationError(f"Point count must be >= 0, got {n}")

    try:
        if isinstance(buffer, (bytes, bytearray)):
            array = np.frombuffer(buffer, dtype=np.float32)
        else:
            array = np.asarray(buffer)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(f"Cannot read coordinates from buffer: {e}") from e

    is_view = array.dtype == np.float32 and array.flags.c_contiguous
    if not is_view:
        try:
            array = np.ascontiguousarray(array, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise InvalidConfigurationError(f"Buffer does not hold numeric values: {e}") from e
        logger.debug(f"Converted coordinate buffer to float32 ({array.size} values copied)")

    flat = array.reshape(-1)
    if flat.size < 3 * n:
        raise InvalidConfigurationError(
            f"Buffer holds {flat.size} values, need at least {3 * n} for {n} points"
        )

    coordinates = flat[: 3 * n].reshape(n, 3)
    return PointSet(coordinates=coordinates, is_view=is_view)

"""
Distance kernels shared by all search strategies.

All backends compute squared distances with the same float64 expression
``dx*dx + dy*dy + dz*dz`` so that results agree bit for bit across
strategies, including points lying exactly on the query radius.
"""

from typing import Sequence, Tuple

import numpy as np

Query = Tuple[float, float, float]


def squared_distances(coords: np.ndarray, query: Query) -> np.ndarray:
    """
    Squared Euclidean distance from each row of ``coords`` to ``query``.

    Parameters
    ----------
    coords : np.ndarray
        (M, 3) or padded (M, 4) float32 coordinates. Only the first three
        columns are used.
    query : tuple of float
        Query location.

    Returns
    -------
    np.ndarray
        (M,) float64 squared distances.
    """
    dx = coords[:, 0].astype(np.float64) - query[0]
    dy = coords[:, 1].astype(np.float64) - query[1]
    dz = coords[:, 2].astype(np.float64) - query[2]
    return dx * dx + dy * dy + dz * dz


def box_squared_distance(query: Query, lo: Sequence[float], hi: Sequence[float]) -> float:
    """
    Squared distance from ``query`` to the axis-aligned box [lo, hi].

    Zero if the query lies inside the box. Never larger than the squared
    distance computed by ``squared_distances`` for any point inside the box.
    """
    total = 0.0
    for axis in range(3):
        q = query[axis]
        if q < lo[axis]:
            gap = lo[axis] - q
        elif q > hi[axis]:
            gap = q - hi[axis]
        else:
            gap = 0.0
        total = total + gap * gap
    return total


def select_within(
    ids: np.ndarray, coords: np.ndarray, query: Query, radius_sq: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Keep the points of ``ids`` whose squared distance is ``<= radius_sq``.

    Parameters
    ----------
    ids : np.ndarray
        (M,) point identifiers, in scan order.
    coords : np.ndarray
        (M, 3) or (M, 4) coordinates of those points.
    query : tuple of float
        Query location.
    radius_sq : float
        Squared search radius.

    Returns
    -------
    ids : np.ndarray
        Matching identifiers in scan order (int64).
    squared_distances : np.ndarray
        Their squared distances (float64).
    """
    d2 = squared_distances(coords, query)
    mask = d2 <= radius_sq
    return ids[mask].astype(np.int64, copy=False), d2[mask]


def empty_result() -> Tuple[np.ndarray, np.ndarray]:
    """Return an empty (ids, squared_distances) pair."""
    return np.empty(0, dtype=np.int64), np.empty(0, dtype=np.float64)


def concat_results(
    id_chunks: list, d2_chunks: list
) -> Tuple[np.ndarray, np.ndarray]:
    """Join per-leaf matches in discovery order."""
    if not id_chunks:
        return empty_result()
    return np.concatenate(id_chunks), np.concatenate(d2_chunks)

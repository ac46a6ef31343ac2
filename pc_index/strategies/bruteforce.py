"""
Brute-force search backend.

No auxiliary structure: every query scans all points. Serves as the
correctness baseline for the tree backends and as the fallback for clouds
too small to be worth partitioning.
"""

from typing import Optional, Tuple

import numpy as np

from pc_index.config import IndexConfig
from pc_index.pointset import PointSet
from pc_index.strategies.distance import Query, select_within


class BruteForceBackend:
    """Linear scan over a padded copy of the points.

    Parameters
    ----------
    coords : np.ndarray
        (N, 4) padded float32 coordinates.
    """

    name = "bruteforce"
    requires_padded_layout = True

    def __init__(self, coords: np.ndarray):
        self.coords = coords
        self._ids = np.arange(len(coords), dtype=np.int64)

    @classmethod
    def build(
        cls,
        point_set: PointSet,
        leaf_size: Optional[int] = None,
        config: Optional[IndexConfig] = None,
    ) -> "BruteForceBackend":
        """Keep a reference to the padded points. ``leaf_size`` is ignored."""
        return cls(point_set.padded())

    @property
    def n_nodes(self) -> int:
        return 0

    @property
    def n_leaves(self) -> int:
        return 0

    @property
    def depth(self) -> int:
        return 0

    def radius_search(self, query: Query, radius_sq: float) -> Tuple[np.ndarray, np.ndarray]:
        """Return (ids, squared distances) of all points within the radius, in id order."""
        return select_within(self._ids, self.coords, query, radius_sq)

"""
Balanced k-d tree backend.

The tree is built once over a zero-copy view of the points and stored as
flat node arrays plus a permutation of point ids in leaf order.

Partitioning rule
-----------------
A node holding more than ``leaf_size`` points is split on axis
``depth % 3``. Its points are ordered by (coordinate on that axis,
original point id) and the first ``count // 2`` go to the left child,
the rest to the right child. Ties on the coordinate are therefore broken
by point id, which makes the tree shape a pure function of the input
points and ``leaf_size``.
"""

from typing import List, Optional, Tuple

import numpy as np

from pc_index.config import IndexConfig
from pc_index.pointset import PointSet
from pc_index.strategies.distance import (
    Query,
    box_squared_distance,
    concat_results,
    empty_result,
    select_within,
)


class KDTreeBackend:
    """k-d tree with per-node bounding boxes.

    Attributes
    ----------
    coords : np.ndarray
        (N, 3) float32 coordinates, a view onto the PointSet.
    indices : np.ndarray
        (N,) point ids in leaf order.
    split_dim : np.ndarray
        Split axis per node (-1 for leaf).
    split_val : np.ndarray
        Coordinate of the first right-child point on ``split_dim``. Only
        used to pick which child a query visits first; equal coordinates
        may sit on both sides, so pruning uses ``bbox_min``/``bbox_max``.
    left, right : np.ndarray
        Child node ids (-1 for leaf).
    start, count : np.ndarray
        Range of ``indices`` covered by each node.
    bbox_min, bbox_max : np.ndarray
        (n_nodes, 3) tight bounding box of each node's points.
    leaf_size : int
        Maximum points per leaf used at build time.
    """

    name = "kdtree"
    requires_padded_layout = False

    def __init__(
        self,
        coords: np.ndarray,
        indices: np.ndarray,
        split_dim: np.ndarray,
        split_val: np.ndarray,
        left: np.ndarray,
        right: np.ndarray,
        start: np.ndarray,
        count: np.ndarray,
        bbox_min: np.ndarray,
        bbox_max: np.ndarray,
        leaf_size: int,
        depth: int,
    ):
        self.coords = coords
        self.indices = indices
        self.split_dim = split_dim
        self.split_val = split_val
        self.left = left
        self.right = right
        self.start = start
        self.count = count
        self.bbox_min = bbox_min
        self.bbox_max = bbox_max
        self.leaf_size = leaf_size
        self._depth = depth

        # Python lists are much faster than numpy scalars in the traversal loop
        self._nodes = list(
            zip(
                split_dim.tolist(),
                split_val.tolist(),
                left.tolist(),
                right.tolist(),
                start.tolist(),
                count.tolist(),
                bbox_min.tolist(),
                bbox_max.tolist(),
            )
        )

    @classmethod
    def build(
        cls,
        point_set: PointSet,
        leaf_size: int,
        config: Optional[IndexConfig] = None,
    ) -> "KDTreeBackend":
        """
        Build the tree over ``point_set``.

        Parameters
        ----------
        point_set : PointSet
            Points to index. Coordinates are referenced, not copied.
        leaf_size : int
            Maximum points per leaf, > 0 (validated by the caller).
        config : IndexConfig, optional
            Unused; accepted for a uniform backend signature.

        Returns
        -------
        KDTreeBackend
            The built tree.
        """
        coords = point_set.coordinates
        n = len(coords)
        order = np.arange(n, dtype=np.int64)

        split_dim: List[int] = []
        split_val: List[float] = []
        left: List[int] = []
        right: List[int] = []
        start: List[int] = []
        count: List[int] = []
        bbox_min: List[np.ndarray] = []
        bbox_max: List[np.ndarray] = []
        max_depth = 0

        def build_node(lo: int, hi: int, depth: int) -> int:
            nonlocal max_depth
            max_depth = max(max_depth, depth)

            node = len(split_dim)
            ids = order[lo:hi]
            pts = coords[ids]
            split_dim.append(-1)
            split_val.append(0.0)
            left.append(-1)
            right.append(-1)
            start.append(lo)
            count.append(hi - lo)
            bbox_min.append(pts.min(axis=0))
            bbox_max.append(pts.max(axis=0))

            if hi - lo <= leaf_size:
                return node

            axis = depth % 3
            ranked = ids[np.lexsort((ids, pts[:, axis]))]
            order[lo:hi] = ranked
            mid = lo + (hi - lo) // 2

            split_dim[node] = axis
            split_val[node] = float(coords[order[mid], axis])
            left[node] = build_node(lo, mid, depth + 1)
            right[node] = build_node(mid, hi, depth + 1)
            return node

        if n > 0:
            build_node(0, n, 0)

        def as_box(boxes: List[np.ndarray]) -> np.ndarray:
            if not boxes:
                return np.empty((0, 3), dtype=np.float64)
            return np.vstack(boxes).astype(np.float64)

        return cls(
            coords=coords,
            indices=order,
            split_dim=np.asarray(split_dim, dtype=np.int64),
            split_val=np.asarray(split_val, dtype=np.float64),
            left=np.asarray(left, dtype=np.int64),
            right=np.asarray(right, dtype=np.int64),
            start=np.asarray(start, dtype=np.int64),
            count=np.asarray(count, dtype=np.int64),
            bbox_min=as_box(bbox_min),
            bbox_max=as_box(bbox_max),
            leaf_size=leaf_size,
            depth=max_depth,
        )

    @property
    def n_nodes(self) -> int:
        return len(self.split_dim)

    @property
    def n_leaves(self) -> int:
        return int((self.split_dim < 0).sum())

    @property
    def depth(self) -> int:
        return self._depth

    def radius_search(self, query: Query, radius_sq: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        Return (ids, squared distances) of all points within the radius.

        Subtrees whose bounding box lies farther than the radius are
        skipped. At each split the child on the query's side is visited
        first; matches are returned in that discovery order.
        """
        if not self._nodes:
            return empty_result()

        id_chunks = []
        d2_chunks = []
        stack = [0]
        while stack:
            dim, val, lchild, rchild, lo, n, bmin, bmax = self._nodes[stack.pop()]
            if box_squared_distance(query, bmin, bmax) > radius_sq:
                continue

            if dim < 0:
                ids = self.indices[lo:lo + n]
                found_ids, found_d2 = select_within(ids, self.coords[ids], query, radius_sq)
                if len(found_ids):
                    id_chunks.append(found_ids)
                    d2_chunks.append(found_d2)
            elif query[dim] < val:
                stack.append(rchild)
                stack.append(lchild)
            else:
                stack.append(lchild)
                stack.append(rchild)

        return concat_results(id_chunks, d2_chunks)

"""
Hierarchical octree backend.

The root cell is the bounding cube of the cloud. A cell holding more than
``leaf_size`` points is split into eight octants around its center, until
the cell side reaches the configured resolution or the maximum depth.
Empty octants are not stored. Points keep ascending id order inside every
cell, so the structure depends only on the input and the parameters.
"""

import logging
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

logger = logging.getLogger(__name__)

# Octant k lies on the positive side of axis a iff bit a of k is set
_OCTANT_SIGNS = np.array(
    [[1.0 if k & (1 << a) else -1.0 for a in range(3)] for k in range(8)]
)


class OctreeBackend:
    """Octree over a padded copy of the points.

    Attributes
    ----------
    coords : np.ndarray
        (N, 4) padded float32 coordinates owned by the PointSet.
    indices : np.ndarray
        (N,) point ids in leaf order.
    center : np.ndarray
        (n_nodes, 3) cell centers.
    half : np.ndarray
        (n_nodes,) half side length of each cell.
    children : np.ndarray
        (n_nodes, 8) child node per octant, -1 where absent. All -1 for leaves.
    start, count : np.ndarray
        Range of ``indices`` covered by each cell.
    bbox_min, bbox_max : np.ndarray
        (n_nodes, 3) tight bounding box of each cell's points, used for
        pruning since it never extends past the cell cube.
    leaf_size : int
        Maximum points per leaf used at build time.
    """

    name = "octree"
    requires_padded_layout = True

    def __init__(
        self,
        coords: np.ndarray,
        indices: np.ndarray,
        center: np.ndarray,
        half: np.ndarray,
        children: np.ndarray,
        start: np.ndarray,
        count: np.ndarray,
        bbox_min: np.ndarray,
        bbox_max: np.ndarray,
        depth_of: np.ndarray,
        leaf_size: int,
    ):
        self.coords = coords
        self.indices = indices
        self.center = center
        self.half = half
        self.children = children
        self.start = start
        self.count = count
        self.bbox_min = bbox_min
        self.bbox_max = bbox_max
        self.depth_of = depth_of
        self.leaf_size = leaf_size

        self._nodes = list(
            zip(
                [[c for c in row if c >= 0] for row in children.tolist()],
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
    ) -> "OctreeBackend":
        """
        Build the octree over ``point_set``.

        Parameters
        ----------
        point_set : PointSet
            Points to index. The padded copy of the points is used.
        leaf_size : int
            A cell with more points than this is subdivided, > 0.
        config : IndexConfig, optional
            Supplies ``octree_resolution`` and ``octree_max_depth``.

        Returns
        -------
        OctreeBackend
            The built octree.
        """
        config = config or IndexConfig()
        resolution = config.octree_resolution
        max_depth = config.octree_max_depth

        coords = point_set.padded()
        xyz = coords[:, :3].astype(np.float64)
        n = len(xyz)

        centers: List[np.ndarray] = []
        halves: List[float] = []
        children: List[List[int]] = []
        start: List[int] = []
        count: List[int] = []
        bbox_min: List[np.ndarray] = []
        bbox_max: List[np.ndarray] = []
        depths: List[int] = []
        leaf_chunks: List[np.ndarray] = []
        n_placed = 0

        def build_cell(ids: np.ndarray, center: np.ndarray, half: float, depth: int) -> int:
            nonlocal n_placed

            node = len(centers)
            pts = xyz[ids]
            centers.append(center)
            halves.append(half)
            children.append([-1] * 8)
            start.append(n_placed)
            count.append(len(ids))
            bbox_min.append(pts.min(axis=0))
            bbox_max.append(pts.max(axis=0))
            depths.append(depth)

            too_small = half <= 0.0 or (resolution is not None and 2.0 * half <= resolution)
            if len(ids) <= leaf_size or too_small or depth >= max_depth:
                if len(ids) > leaf_size and depth >= max_depth:
                    logger.debug(
                        f"Octree cell at depth {depth} keeps {len(ids)} points (max depth reached)"
                    )
                leaf_chunks.append(ids)
                n_placed += len(ids)
                return node

            octant = (
                (pts[:, 0] > center[0]).astype(np.int64)
                | ((pts[:, 1] > center[1]).astype(np.int64) << 1)
                | ((pts[:, 2] > center[2]).astype(np.int64) << 2)
            )
            child_half = half / 2.0
            for k in range(8):
                child_ids = ids[octant == k]
                if len(child_ids) == 0:
                    continue
                child_center = center + _OCTANT_SIGNS[k] * child_half
                children[node][k] = build_cell(child_ids, child_center, child_half, depth + 1)
            return node

        if n > 0:
            lo = xyz.min(axis=0)
            hi = xyz.max(axis=0)
            build_cell(
                np.arange(n, dtype=np.int64),
                (lo + hi) / 2.0,
                float((hi - lo).max()) / 2.0,
                0,
            )

        def stacked(rows: List[np.ndarray]) -> np.ndarray:
            if not rows:
                return np.empty((0, 3), dtype=np.float64)
            return np.vstack(rows)

        return cls(
            coords=coords,
            indices=(
                np.concatenate(leaf_chunks) if leaf_chunks else np.empty(0, dtype=np.int64)
            ),
            center=stacked(centers),
            half=np.asarray(halves, dtype=np.float64),
            children=np.asarray(children, dtype=np.int64).reshape(-1, 8),
            start=np.asarray(start, dtype=np.int64),
            count=np.asarray(count, dtype=np.int64),
            bbox_min=stacked(bbox_min),
            bbox_max=stacked(bbox_max),
            depth_of=np.asarray(depths, dtype=np.int64),
            leaf_size=leaf_size,
        )

    @property
    def n_nodes(self) -> int:
        return len(self.half)

    @property
    def n_leaves(self) -> int:
        return int((self.children < 0).all(axis=1).sum())

    @property
    def depth(self) -> int:
        return int(self.depth_of.max()) if len(self.depth_of) else 0

    def radius_search(self, query: Query, radius_sq: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        Return (ids, squared distances) of all points within the radius.

        Only cells whose content box intersects the query sphere are
        entered. Octants are visited in index order 0..7.
        """
        if not self._nodes:
            return empty_result()

        id_chunks = []
        d2_chunks = []
        stack = [0]
        while stack:
            kids, lo, n, bmin, bmax = self._nodes[stack.pop()]
            if box_squared_distance(query, bmin, bmax) > radius_sq:
                continue

            if not kids:
                ids = self.indices[lo:lo + n]
                found_ids, found_d2 = select_within(ids, self.coords[ids], query, radius_sq)
                if len(found_ids):
                    id_chunks.append(found_ids)
                    d2_chunks.append(found_d2)
            else:
                stack.extend(reversed(kids))

        return concat_results(id_chunks, d2_chunks)

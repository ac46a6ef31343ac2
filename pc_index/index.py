"""
Spatial index for radius queries over point clouds.

Provides the SpatialIndex class, which builds one of a closed set of
search structures over a PointSet and answers radius queries against it.
"""

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, List, Optional, Tuple, Union

import numpy as np
from tqdm import tqdm

from pc_index.config import IndexConfig
from pc_index.errors import InvalidConfigurationError, InvalidQueryError, NotReadyError
from pc_index.pointset import PointSet
from pc_index.strategies import BruteForceBackend, KDTreeBackend, OctreeBackend

logger = logging.getLogger(__name__)


class SearchStrategy(str, Enum):
    """Available search structures."""

    KDTREE = "kdtree"
    OCTREE = "octree"
    BRUTEFORCE = "bruteforce"

    @classmethod
    def parse(cls, value: Union["SearchStrategy", str]) -> "SearchStrategy":
        """
        Resolve a strategy from an enum member or a case-insensitive name.

        Raises
        ------
        InvalidConfigurationError
            If ``value`` names no known strategy.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        names = [s.value for s in cls]
        raise InvalidConfigurationError(f"Unknown strategy {value!r}, expected one of {names}")

    @property
    def uses_leaf_size(self) -> bool:
        """True for strategies that need a positive leaf size."""
        return self is not SearchStrategy.BRUTEFORCE


_BACKENDS = {
    SearchStrategy.KDTREE: KDTreeBackend,
    SearchStrategy.OCTREE: OctreeBackend,
    SearchStrategy.BRUTEFORCE: BruteForceBackend,
}


@dataclass(eq=False)
class QueryResult:
    """Points found by a radius query.

    Parameters
    ----------
    indices : np.ndarray
        (K,) int64 zero-based point ids, in discovery order (not sorted).
    squared_distances : np.ndarray
        (K,) float64 squared distances matching ``indices``.
    """

    indices: np.ndarray
    squared_distances: np.ndarray

    def __len__(self) -> int:
        return len(self.indices)

    def __iter__(self) -> Iterator[Tuple[int, float]]:
        """Yield (point id, squared distance) pairs."""
        for i, d2 in zip(self.indices.tolist(), self.squared_distances.tolist()):
            yield i, d2

    @property
    def distances(self) -> np.ndarray:
        """Return true (not squared) distances."""
        return np.sqrt(self.squared_distances)

    def sorted(self) -> "QueryResult":
        """Return a copy ordered by squared distance, ties by point id."""
        order = np.lexsort((self.indices, self.squared_distances))
        return QueryResult(self.indices[order], self.squared_distances[order])


@dataclass
class IndexStats:
    """Summary of a built index.

    Parameters
    ----------
    strategy : str
        Strategy requested at build time.
    effective_strategy : str
        Strategy actually built (brute force for clouds below the
        fallback threshold).
    n_points : int
        Number of indexed points.
    leaf_size : int, optional
        Leaf size used, None for brute force.
    n_nodes : int
        Number of tree nodes (0 for brute force).
    n_leaves : int
        Number of leaf nodes (0 for brute force).
    depth : int
        Depth of the deepest node (root is 0).
    build_seconds : float
        Wall-clock build time.
    zero_copy : bool
        True if the structure reads the caller's buffer directly.
    """

    strategy: str
    effective_strategy: str
    n_points: int
    leaf_size: Optional[int]
    n_nodes: int
    n_leaves: int
    depth: int
    build_seconds: float
    zero_copy: bool


class SpatialIndex:
    """Radius-query index over a PointSet.

    The index is built explicitly with ``build`` and is read-only
    afterwards, so any number of threads may call ``radius_search`` on a
    built index at once. Building is not synchronised: callers must not
    query an index while ``build`` runs on it.

    Parameters
    ----------
    point_set : PointSet or np.ndarray
        Points to index. An (N, 3) array is wrapped with
        ``PointSet.from_array``. The coordinate buffer must outlive the index.
    config : IndexConfig, optional
        Defaults for strategy, leaf size and backend parameters.

    Attributes
    ----------
    point_set : PointSet
        The indexed points.
    config : IndexConfig
        Active configuration.
    """

    def __init__(self, point_set: Union[PointSet, np.ndarray], config: Optional[IndexConfig] = None):
        if not isinstance(point_set, PointSet):
            point_set = PointSet.from_array(point_set)

        self.point_set = point_set
        self.config = config or IndexConfig()
        self.config.validate()

        self._backend = None
        self._strategy: Optional[SearchStrategy] = None
        self._effective_strategy: Optional[SearchStrategy] = None
        self._leaf_size: Optional[int] = None
        self._build_seconds = 0.0

    @property
    def n_points(self) -> int:
        """Return number of points in the index."""
        return self.point_set.n_points

    @property
    def is_built(self) -> bool:
        """Return True once ``build`` has succeeded."""
        return self._backend is not None

    @property
    def strategy(self) -> Optional[SearchStrategy]:
        """Strategy requested by the last successful build."""
        return self._strategy

    @property
    def effective_strategy(self) -> Optional[SearchStrategy]:
        """Strategy actually built by the last successful build."""
        return self._effective_strategy

    @property
    def leaf_size(self) -> Optional[int]:
        """Leaf size of the last successful build, None for brute force."""
        return self._leaf_size

    def build(
        self,
        strategy: Union[SearchStrategy, str, None] = None,
        leaf_size: Optional[int] = None,
    ) -> "SpatialIndex":
        """
        Build the search structure, replacing any previous one.

        Parameters
        ----------
        strategy : SearchStrategy or str, optional
            "kdtree", "octree" or "bruteforce". Defaults to ``config.strategy``.
        leaf_size : int, optional
            Maximum points per leaf for kdtree/octree, > 0. Ignored by
            brute force. Defaults to ``config.leaf_size``.

        Returns
        -------
        SpatialIndex
            ``self``, to allow ``SpatialIndex(points).build("kdtree")``.

        Raises
        ------
        InvalidConfigurationError
            If the strategy is unknown or the leaf size is not a positive
            integer for a strategy that needs one. A previously built
            structure is left untouched in that case.
        """
        strategy = SearchStrategy.parse(strategy if strategy is not None else self.config.strategy)
        if leaf_size is None:
            leaf_size = self.config.leaf_size

        if strategy.uses_leaf_size:
            _check_leaf_size(leaf_size)
            leaf_size = int(leaf_size)
        else:
            leaf_size = None

        effective = strategy
        if strategy.uses_leaf_size and self.n_points < self.config.fallback_threshold:
            logger.debug(
                f"{self.n_points} points is below the fallback threshold "
                f"({self.config.fallback_threshold}), building bruteforce instead of {strategy.value}"
            )
            effective = SearchStrategy.BRUTEFORCE

        start = time.perf_counter()
        backend = _BACKENDS[effective].build(self.point_set, leaf_size, self.config)
        elapsed = time.perf_counter() - start

        self._backend = backend
        self._strategy = strategy
        self._effective_strategy = effective
        self._leaf_size = leaf_size
        self._build_seconds = elapsed

        logger.info(
            f"Built {effective.value} index over {self.n_points:,} points "
            f"(leaf_size={leaf_size}, nodes={backend.n_nodes}, leaves={backend.n_leaves}) "
            f"in {elapsed:.3f}s"
        )
        return self

    @property
    def stats(self) -> IndexStats:
        """Return a summary of the built structure.

        Raises
        ------
        NotReadyError
            If the index has not been built.
        """
        backend = self._require_backend()
        return IndexStats(
            strategy=self._strategy.value,
            effective_strategy=self._effective_strategy.value,
            n_points=self.n_points,
            leaf_size=self._leaf_size,
            n_nodes=backend.n_nodes,
            n_leaves=backend.n_leaves,
            depth=backend.depth,
            build_seconds=self._build_seconds,
            zero_copy=self.point_set.is_view and not backend.requires_padded_layout,
        )

    def radius_search(self, query_point: Any, radius: float) -> QueryResult:
        """
        Find all points within ``radius`` of ``query_point``.

        Parameters
        ----------
        query_point : array_like
            (3,) query location.
        radius : float
            Search radius, >= 0, in the same units as the points.

        Returns
        -------
        QueryResult
            Ids and squared distances of every point with squared distance
            ``<= radius ** 2``, in discovery order. Empty if none match.

        Raises
        ------
        NotReadyError
            If the index has not been built.
        InvalidQueryError
            If the query is not a 3D point or the radius is negative or NaN.
        """
        backend = self._require_backend()
        query = _as_query(query_point)
        radius_sq = _as_radius_sq(radius)
        indices, squared_distances = backend.radius_search(query, radius_sq)
        return QueryResult(indices, squared_distances)

    def radius_search_batch(
        self,
        query_points: Any,
        radius: float,
        show_progress: Optional[bool] = None,
    ) -> List[QueryResult]:
        """
        Run ``radius_search`` for each row of ``query_points``.

        Parameters
        ----------
        query_points : array_like
            (M, 3) query locations.
        radius : float
            Search radius shared by all queries.
        show_progress : bool, optional
            Display a progress bar. Defaults to ``config.show_progress``.

        Returns
        -------
        list of QueryResult
            One result per query, in input order.
        """
        backend = self._require_backend()
        try:
            queries = np.asarray(query_points, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidQueryError(f"Query points must be numeric: {e}") from e
        if queries.ndim != 2 or queries.shape[1] != 3:
            raise InvalidQueryError(f"Query points must have shape (M, 3), got {queries.shape}")

        radius_sq = _as_radius_sq(radius)
        if show_progress is None:
            show_progress = self.config.show_progress

        results = []
        for row in tqdm(queries.tolist(), desc="Radius search", unit="query", disable=not show_progress):
            indices, squared_distances = backend.radius_search(tuple(row), radius_sq)
            results.append(QueryResult(indices, squared_distances))
        return results

    def _require_backend(self):
        if self._backend is None:
            raise NotReadyError("SpatialIndex has not been built, call build() first")
        return self._backend


def _check_leaf_size(leaf_size: Any) -> None:
    if isinstance(leaf_size, bool) or not isinstance(leaf_size, (int, np.integer)):
        raise InvalidConfigurationError(f"leaf_size must be an integer, got {leaf_size!r}")
    if leaf_size <= 0:
        raise InvalidConfigurationError(f"leaf_size must be > 0, got {leaf_size}")


def _as_query(query_point: Any) -> Tuple[float, float, float]:
    try:
        query = np.asarray(query_point, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidQueryError(f"Query point must be numeric: {e}") from e
    if query.shape != (3,):
        raise InvalidQueryError(f"Query point must have shape (3,), got {query.shape}")
    x, y, z = query.tolist()
    return x, y, z


def _as_radius_sq(radius: Any) -> float:
    try:
        radius = float(radius)
    except (TypeError, ValueError) as e:
        raise InvalidQueryError(f"Radius must be a number, got {radius!r}") from e
    if math.isnan(radius) or radius < 0:
        raise InvalidQueryError(f"Radius must be >= 0, got {radius}")
    return radius * radius

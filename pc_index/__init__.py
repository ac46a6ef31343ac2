"""
pc_index: Point cloud spatial indexing for radius queries.

Wraps caller-owned XYZ coordinates without copying and builds
interchangeable search structures (k-d tree, octree, brute force) that
answer "all points within distance r" queries with identical results.
"""

__version__ = "0.1.0"

# Import public API
from pc_index.config import IndexConfig, load_config, save_config
from pc_index.errors import (
    InvalidConfigurationError,
    InvalidQueryError,
    NotReadyError,
    OutOfRangeError,
    PCIndexError,
)
from pc_index.pointset import PointSet, wrap
from pc_index.index import IndexStats, QueryResult, SearchStrategy, SpatialIndex

__all__ = [
    "__version__",
    # Config
    "IndexConfig",
    "load_config",
    "save_config",
    # Errors
    "PCIndexError",
    "InvalidConfigurationError",
    "InvalidQueryError",
    "NotReadyError",
    "OutOfRangeError",
    # Points
    "PointSet",
    "wrap",
    # Index
    "SearchStrategy",
    "SpatialIndex",
    "QueryResult",
    "IndexStats",
]

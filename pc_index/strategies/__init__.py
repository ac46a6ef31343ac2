"""Search strategy backends: brute force, k-d tree and octree."""

from pc_index.strategies.bruteforce import BruteForceBackend
from pc_index.strategies.kdtree import KDTreeBackend
from pc_index.strategies.octree import OctreeBackend

__all__ = [
    "BruteForceBackend",
    "KDTreeBackend",
    "OctreeBackend",
]

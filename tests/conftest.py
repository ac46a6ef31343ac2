"""
Shared pytest fixtures for pc_index tests.

These fixtures provide consistent test data across all test modules.
"""

from pathlib import Path
from typing import Tuple

import numpy as np
import pytest


# =============================================================================
# Synthetic Point Cloud Fixtures
# =============================================================================

@pytest.fixture
def simple_xyz() -> np.ndarray:
    """Simple 500-point uniform random cloud."""
    np.random.seed(42)  # Reproducible
    return np.random.uniform(0, 10, (500, 3)).astype(np.float32)


@pytest.fixture
def clustered_xyz() -> np.ndarray:
    """Three tight clusters plus sparse background noise."""
    np.random.seed(7)
    centers = np.array([[1.0, 1.0, 1.0], [8.0, 2.0, 5.0], [4.0, 9.0, 9.0]])
    clusters = [c + np.random.normal(0, 0.15, (300, 3)) for c in centers]
    noise = np.random.uniform(0, 10, (100, 3))
    return np.vstack(clusters + [noise]).astype(np.float32)


@pytest.fixture
def grid_xyz() -> np.ndarray:
    """Regular 10x10x10 grid with unit spacing (many equidistant ties)."""
    axis = np.arange(10, dtype=np.float32)
    gx, gy, gz = np.meshgrid(axis, axis, axis, indexing="ij")
    return np.column_stack([gx.ravel(), gy.ravel(), gz.ravel()]).astype(np.float32)


@pytest.fixture
def scenario_xyz() -> np.ndarray:
    """Three points near the origin and one far away."""
    return np.array(
        [[0, 0, 0], [1, 0, 0], [0, 1, 0], [5, 5, 5]],
        dtype=np.float32,
    )


@pytest.fixture
def query_points() -> np.ndarray:
    """Query locations inside and around the unit-10 cube."""
    np.random.seed(3)
    return np.random.uniform(-1, 11, (25, 3))


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def default_config():
    """Default index configuration."""
    from pc_index.config import IndexConfig
    return IndexConfig()


@pytest.fixture
def no_fallback_config():
    """Configuration that never swaps in brute force for small clouds."""
    from pc_index.config import IndexConfig
    return IndexConfig(fallback_threshold=0)


# =============================================================================
# Utility Fixtures
# =============================================================================

@pytest.fixture
def output_dir(tmp_path) -> Path:
    """Create a temporary output directory."""
    out = tmp_path / "output"
    out.mkdir()
    return out


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )

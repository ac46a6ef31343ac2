"""
Configuration module for pc_index.

Contains the IndexConfig dataclass with the build and query parameters
shared by all search strategies, plus YAML persistence.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import yaml

from pc_index.errors import InvalidConfigurationError

STRATEGY_NAMES = ("kdtree", "octree", "bruteforce")


@dataclass
class IndexConfig:
    """Configuration for building and querying a SpatialIndex.

    Parameters
    ----------
    strategy : str
        Default search strategy: "kdtree", "octree" or "bruteforce".
    leaf_size : int
        Maximum number of points per leaf for kdtree/octree builds.
        Ignored by the brute-force strategy.
    octree_resolution : float, optional
        Minimum octree cell side length. Cells at or below this size are
        never subdivided. None means only ``octree_max_depth`` limits depth.
    octree_max_depth : int
        Hard limit on octree depth, guards against clouds with many
        coincident points.
    fallback_threshold : int
        Point counts strictly below this build a brute-force backend even
        when kdtree/octree is requested. 0 disables the fallback.
    show_progress : bool
        Default for progress bars in batch radius queries.
    """

    strategy: str = "kdtree"
    leaf_size: int = 10

    # Octree
    octree_resolution: Optional[float] = None
    octree_max_depth: int = 21

    # Small clouds are cheaper to scan than to partition
    fallback_threshold: int = 16

    # Queries
    show_progress: bool = False

    def validate(self) -> None:
        """
        Check that all values can produce a working index.

        Raises
        ------
        InvalidConfigurationError
            If any value is out of its allowed range.
        """
        name = getattr(self.strategy, "value", self.strategy)
        if not isinstance(name, str) or name.lower() not in STRATEGY_NAMES:
            raise InvalidConfigurationError(
                f"Unknown strategy '{self.strategy}', expected one of {STRATEGY_NAMES}"
            )
        # Brute force ignores the leaf size
        if name.lower() != "bruteforce":
            _check_integer("leaf_size", self.leaf_size, minimum=1)
        if self.octree_resolution is not None:
            if isinstance(self.octree_resolution, bool) or not isinstance(
                self.octree_resolution, (int, float, np.integer, np.floating)
            ):
                raise InvalidConfigurationError(
                    f"octree_resolution must be a number or None, got {self.octree_resolution!r}"
                )
            if not self.octree_resolution > 0:
                raise InvalidConfigurationError(
                    f"octree_resolution must be > 0 or None, got {self.octree_resolution}"
                )
        _check_integer("octree_max_depth", self.octree_max_depth, minimum=1)
        _check_integer("fallback_threshold", self.fallback_threshold, minimum=0)


def _check_integer(name: str, value: Any, minimum: int) -> None:
    """Raise InvalidConfigurationError unless ``value`` is an int >= ``minimum``."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        op = "> 0" if minimum == 1 else f">= {minimum}"
        raise InvalidConfigurationError(f"{name} must be {op}, got {value}")


def load_config(yaml_path: Path) -> IndexConfig:
    """
    Load configuration from YAML file.

    Parameters
    ----------
    yaml_path : Path
        Path to YAML configuration file.

    Returns
    -------
    IndexConfig
        Configuration object with values from file.

    Raises
    ------
    FileNotFoundError
        If the YAML file does not exist.
    InvalidConfigurationError
        If the YAML file contains unknown keys or invalid values.
    """
    yaml_path = Path(yaml_path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    with open(yaml_path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return IndexConfig()

    config_dict = _flatten_config(data)

    try:
        config = IndexConfig(**config_dict)
    except TypeError as e:
        raise InvalidConfigurationError(f"Invalid configuration in {yaml_path}: {e}") from e

    config.validate()
    return config


def save_config(config: IndexConfig, yaml_path: Path) -> None:
    """
    Save configuration to YAML file.

    Parameters
    ----------
    config : IndexConfig
        Configuration object to save.
    yaml_path : Path
        Path to output YAML file.
    """
    data = _unflatten_config(config)

    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)
    with open(yaml_path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def _flatten_config(data: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten nested YAML structure to flat config dict."""
    result = {}

    if "index" in data:
        result.update(data["index"] or {})

    if "octree" in data:
        octree = data["octree"] or {}
        if "resolution" in octree:
            result["octree_resolution"] = octree["resolution"]
        if "max_depth" in octree:
            result["octree_max_depth"] = octree["max_depth"]

    if "bruteforce" in data:
        bruteforce = data["bruteforce"] or {}
        if "fallback_threshold" in bruteforce:
            result["fallback_threshold"] = bruteforce["fallback_threshold"]

    if "query" in data:
        result.update(data["query"] or {})

    # Flat keys are accepted as well
    for key, value in data.items():
        if key not in ["index", "octree", "bruteforce", "query"]:
            result[key] = value

    return result


def _unflatten_config(config: IndexConfig) -> Dict[str, Any]:
    """Convert flat config to nested structure for YAML output."""
    return {
        "index": {
            "strategy": config.strategy,
            "leaf_size": config.leaf_size,
        },
        "octree": {
            "resolution": config.octree_resolution,
            "max_depth": config.octree_max_depth,
        },
        "bruteforce": {
            "fallback_threshold": config.fallback_threshold,
        },
        "query": {
            "show_progress": config.show_progress,
        },
    }

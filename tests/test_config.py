"""Tests for pc_index.config module."""

import pytest
import yaml


def test_default_config():
    """Test IndexConfig instantiates with correct defaults."""
    from pc_index.config import IndexConfig

    config = IndexConfig()

    assert config.strategy == "kdtree"
    assert config.leaf_size == 10
    assert config.octree_resolution is None
    assert config.octree_max_depth == 21
    assert config.fallback_threshold == 16
    assert config.show_progress is False

    config.validate()


def test_custom_config():
    """Test IndexConfig with custom values."""
    from pc_index.config import IndexConfig

    config = IndexConfig(strategy="octree", leaf_size=32, octree_resolution=0.5)

    assert config.strategy == "octree"
    assert config.leaf_size == 32
    assert config.octree_resolution == 0.5
    config.validate()


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"strategy": "flann"}, "Unknown strategy"),
        ({"leaf_size": 0}, "leaf_size must be > 0"),
        ({"leaf_size": -3}, "leaf_size must be > 0"),
        ({"leaf_size": 2.5}, "integer"),
        ({"octree_resolution": 0.0}, "octree_resolution"),
        ({"octree_max_depth": 0}, "octree_max_depth"),
        ({"octree_max_depth": 2.5}, "octree_max_depth must be an integer"),
        ({"fallback_threshold": True}, "fallback_threshold must be an integer"),
        ({"octree_resolution": "fine"}, "octree_resolution must be a number"),
        ({"fallback_threshold": -1}, "fallback_threshold"),
    ],
)
def test_validate_rejects_invalid(overrides, message):
    """Invalid values raise InvalidConfigurationError."""
    from pc_index.config import IndexConfig
    from pc_index.errors import InvalidConfigurationError

    with pytest.raises(InvalidConfigurationError, match=message):
        IndexConfig(**overrides).validate()


def test_save_and_load_config(output_dir):
    """Saved configuration loads back with the same values."""
    from pc_index.config import IndexConfig, load_config, save_config

    config = IndexConfig(
        strategy="octree",
        leaf_size=64,
        octree_resolution=1.25,
        octree_max_depth=12,
        fallback_threshold=0,
        show_progress=True,
    )
    path = output_dir / "nested" / "index.yaml"
    save_config(config, path)

    assert path.exists()
    loaded = load_config(path)
    assert loaded == config


def test_saved_config_is_nested(output_dir):
    """On-disk layout groups settings by section."""
    from pc_index.config import IndexConfig, save_config

    path = output_dir / "index.yaml"
    save_config(IndexConfig(), path)

    with open(path) as f:
        data = yaml.safe_load(f)

    assert data["index"] == {"strategy": "kdtree", "leaf_size": 10}
    assert data["octree"]["max_depth"] == 21
    assert data["bruteforce"]["fallback_threshold"] == 16
    assert data["query"]["show_progress"] is False


def test_load_partial_nested_config(tmp_path):
    """Missing sections keep their defaults."""
    from pc_index.config import load_config

    path = tmp_path / "partial.yaml"
    path.write_text("index:\n  strategy: bruteforce\noctree:\n  resolution: 2.0\n")

    config = load_config(path)

    assert config.strategy == "bruteforce"
    assert config.octree_resolution == 2.0
    assert config.leaf_size == 10


def test_load_flat_config(tmp_path):
    """Flat keys are accepted alongside nested sections."""
    from pc_index.config import load_config

    path = tmp_path / "flat.yaml"
    path.write_text("leaf_size: 4\nfallback_threshold: 0\n")

    config = load_config(path)

    assert config.leaf_size == 4
    assert config.fallback_threshold == 0


def test_load_empty_config(tmp_path):
    """An empty file yields defaults."""
    from pc_index.config import IndexConfig, load_config

    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load_config(path) == IndexConfig()


def test_load_missing_config(tmp_path):
    """A missing file raises FileNotFoundError."""
    from pc_index.config import load_config

    with pytest.raises(FileNotFoundError, match="not found"):
        load_config(tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    "text, message",
    [
        ("index:\n  branching: 8\n", "Invalid configuration"),
        ("index:\n  leaf_size: 0\n", "leaf_size"),
        ("index:\n  leaf_size: many\n", "leaf_size must be an integer"),
        ("bruteforce:\n  fallback_threshold: abc\n", "fallback_threshold must be an integer"),
        ("bruteforce:\n  fallback_threshold: 1.5\n", "fallback_threshold must be an integer"),
        ("octree:\n  max_depth: deep\n", "octree_max_depth must be an integer"),
        ("octree:\n  max_depth: 2.5\n", "octree_max_depth must be an integer"),
        ("octree:\n  max_depth: true\n", "octree_max_depth must be an integer"),
        ("octree:\n  resolution: fine\n", "octree_resolution must be a number"),
        ("octree:\n  resolution: -1.0\n", "octree_resolution must be > 0"),
    ],
)
def test_load_invalid_config(tmp_path, text, message):
    """Unknown keys and invalid values are configuration errors, never TypeError."""
    from pc_index.config import load_config
    from pc_index.errors import InvalidConfigurationError

    path = tmp_path / "invalid.yaml"
    path.write_text(text)

    with pytest.raises(InvalidConfigurationError, match=message):
        load_config(path)


def test_bruteforce_config_ignores_leaf_size():
    """A brute-force config does not need a valid leaf size."""
    from pc_index.config import IndexConfig

    IndexConfig(strategy="bruteforce", leaf_size=0).validate()
    IndexConfig(strategy="BruteForce", leaf_size=-5).validate()


def test_numpy_integers_accepted():
    """numpy integer values are valid wherever an int is expected."""
    import numpy as np

    from pc_index.config import IndexConfig

    IndexConfig(
        leaf_size=np.int64(8),
        octree_max_depth=np.int32(10),
        fallback_threshold=np.int64(0),
        octree_resolution=np.float32(0.5),
    ).validate()

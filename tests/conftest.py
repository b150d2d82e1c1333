"""Shared pytest fixtures for all tests."""

import tempfile
from pathlib import Path

import pytest

from fixtures.configs import write_collection_configs
from fixtures.platforms import FakeSweepPlatform, make_child
from infrastructure.config.loader import load_collection_config


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def scratch_root(temp_dir) -> Path:
    return temp_dir / "scratch"


@pytest.fixture
def output_dir(temp_dir) -> Path:
    return temp_dir / "results"


@pytest.fixture
def make_collection_config(temp_dir, scratch_root, output_dir):
    """Factory writing collection YAML files and loading them back."""

    def _make(**kwargs):
        kwargs.setdefault("output_dir", output_dir)
        kwargs.setdefault("scratch_root", scratch_root)
        config_dir = write_collection_configs(temp_dir / "config", **kwargs)
        return load_collection_config(config_dir)

    return _make


@pytest.fixture
def collection_config(make_collection_config):
    return make_collection_config()


@pytest.fixture
def two_child_platform() -> FakeSweepPlatform:
    """Two trials, each with 3 lr folds and 2 rf folds."""
    return FakeSweepPlatform(
        [
            make_child("trial_low", metric=0.71, imputation="median"),
            make_child("trial_high", metric=0.84, imputation="knn"),
        ]
    )

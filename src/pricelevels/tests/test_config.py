"""Tests for YAML engine settings."""

import pytest

from pricelevels.config import EngineConfig, load_config, make_config
from pricelevels.errors import InvalidConfiguration


def test_defaults():
    config = EngineConfig()
    assert config.max_iterations == 200
    assert config.tolerance == 1e-6
    assert config.validate() is config


def test_load_yaml(tmp_path):
    path = tmp_path / "engine.yaml"
    path.write_text("max_iterations: 50\ntolerance: 1.0e-8\nnoise_rate: 3\n")
    config = load_config(path)
    assert config.max_iterations == 50
    assert config.tolerance == 1e-8
    assert config.noise_rate == 3.0
    assert config.noise_shape == 2.0


def test_overrides_take_precedence_and_none_is_ignored(tmp_path):
    path = tmp_path / "engine.yaml"
    path.write_text("max_iterations: 50\ntolerance: 1.0e-8\n")
    config = load_config(path, max_iterations=7, tolerance=None)
    assert config.max_iterations == 7
    assert config.tolerance == 1e-8


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == EngineConfig()


@pytest.mark.parametrize("text", [
    "max_iterations: 0\n",
    "tolerance: -1\n",
    "noise_shape: 0\n",
    "mean_precision: abc\n",
    "unknown_key: 1\n",
    "- just\n- a list\n",
    "max_iterations: [1, 2\n",
])
def test_invalid_files(tmp_path, text):
    path = tmp_path / "bad.yaml"
    path.write_text(text)
    with pytest.raises(InvalidConfiguration):
        load_config(path)


def test_missing_file(tmp_path):
    with pytest.raises(InvalidConfiguration):
        load_config(tmp_path / "nope.yaml")


def test_config_is_frozen():
    config = make_config(max_iterations=10)
    with pytest.raises(AttributeError):
        config.max_iterations = 11

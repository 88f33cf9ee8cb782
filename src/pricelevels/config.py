"""
Engine settings and YAML loading.

A config file holds any subset of the EngineConfig fields, e.g.

    max_iterations: 500
    tolerance: 1.0e-8
    noise_shape: 2.0
    noise_rate: 2.0
"""

import dataclasses
import math
from pathlib import Path
from typing import Union

import chex
import yaml

from pricelevels.errors import InvalidConfiguration


@chex.dataclass(frozen=True)
class EngineConfig:
    max_iterations: int = 200
    tolerance: float = 1e-6
    # Prior hyper-parameters shared by every component.
    mean_precision: float = 1.0
    noise_shape: float = 2.0
    noise_rate: float = 2.0
    # Relative ELBO drop tolerated as round-off before a warning is logged.
    monotonicity_slack: float = 1e-9

    def validate(self) -> "EngineConfig":
        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, int):
            raise InvalidConfiguration(f"max_iterations must be an integer, got {self.max_iterations!r}")
        if self.max_iterations < 1:
            raise InvalidConfiguration(f"max_iterations must be >= 1, got {self.max_iterations}")
        if not (math.isfinite(self.tolerance) and self.tolerance >= 0):
            raise InvalidConfiguration(f"tolerance must be a finite value >= 0, got {self.tolerance}")
        for name in ("mean_precision", "noise_shape", "noise_rate"):
            value = getattr(self, name)
            if not (math.isfinite(value) and value > 0):
                raise InvalidConfiguration(f"{name} must be positive, got {value}")
        if self.monotonicity_slack < 0:
            raise InvalidConfiguration(f"monotonicity_slack must be >= 0, got {self.monotonicity_slack}")
        return self


def config_fields():
    return tuple(f.name for f in dataclasses.fields(EngineConfig))


def load_config(path: Union[str, Path], **overrides) -> EngineConfig:
    """
    Load an EngineConfig from a YAML file.

    Keyword overrides that are not None take precedence over file values
    (the CLI passes its flags this way).
    """
    path = Path(path)
    if not path.exists():
        raise InvalidConfiguration(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise InvalidConfiguration(f"Could not parse {path}: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InvalidConfiguration(f"{path} must contain a mapping, got {type(raw).__name__}")
    if not all(isinstance(k, str) for k in raw):
        raise InvalidConfiguration(f"{path} has non-string keys")

    overrides = {k: v for k, v in overrides.items() if v is not None}
    return make_config(**{**raw, **overrides})


def make_config(**values) -> EngineConfig:
    """Build a validated EngineConfig, ignoring None values."""
    values = {k: v for k, v in values.items() if v is not None}
    unknown = sorted(set(values) - set(config_fields()))
    if unknown:
        raise InvalidConfiguration(f"Unknown config keys: {unknown}")
    for name in ("tolerance", "mean_precision", "noise_shape", "noise_rate", "monotonicity_slack"):
        if name in values:
            try:
                values[name] = float(values[name])
            except (TypeError, ValueError) as exc:
                raise InvalidConfiguration(f"{name} must be a number, got {values[name]!r}") from exc
    return EngineConfig(**values).validate()

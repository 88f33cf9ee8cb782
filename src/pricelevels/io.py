"""
Reading price files and writing learned levels.

Price files hold comma-separated numbers; line breaks between values are
accepted. Output files hold three comma-separated lines: level means,
variances and mixing weights.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np

from pricelevels.errors import PriceFileError
from pricelevels.posterior import Posterior

logger = logging.getLogger(__name__)


def parse_prices(text: str) -> np.ndarray:
    tokens = [t.strip() for t in text.replace("\n", ",").replace("\r", ",").split(",")]
    tokens = [t for t in tokens if t]
    if not tokens:
        raise PriceFileError("No prices found")

    values = np.empty(len(tokens), dtype=np.float64)
    for i, token in enumerate(tokens):
        try:
            values[i] = float(token)
        except ValueError as exc:
            raise PriceFileError(f"Invalid price {token!r} at position {i}") from exc
    return values


def read_prices(path: Union[str, Path]) -> np.ndarray:
    """Load a comma-separated price file into a float64 array."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PriceFileError(f"Could not read {path}: {exc}") from exc
    try:
        prices = parse_prices(text)
    except PriceFileError as exc:
        raise PriceFileError(f"{path}: {exc}") from exc
    logger.info("Read %d prices from %s", prices.size, path)
    return prices


def _join(values) -> str:
    return ",".join(repr(float(v)) for v in values)


def write_posterior(path: Union[str, Path], posterior: Posterior) -> Path:
    """Write means, variances and mixing weights as three comma-separated lines."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(_join(posterior.means) + "\n")
        f.write(_join(posterior.variances) + "\n")
        f.write(_join(posterior.mixing_weights) + "\n")
    logger.info("Saved %d price levels to %s", posterior.num_components, path)
    return path


def format_posterior(posterior: Posterior) -> str:
    """Console summary of a fit."""
    def fmt(values):
        return "[" + ", ".join(f"{v:.6g}" for v in values) + "]"

    lines = [
        f"Levels:\n{fmt(posterior.means)}",
        f"Variance:\n{fmt(posterior.variances)}",
        f"Level variance:\n{fmt(posterior.level_variances)}",
        f"Mixing weights:\n{fmt(posterior.mixing_weights)}",
        f"Converged: {posterior.converged} after {posterior.iterations} iterations (ELBO {posterior.elbo:.6f})",
    ]
    return "\n".join(lines)

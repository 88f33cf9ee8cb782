"""
Prior construction for the price-level mixture.

Component k gets a level prior centred on  min + k·(max - min)/K  with unit
precision scaling, a weak Gamma(2, 2) prior on its noise precision, and the
mixing weights get a Dirichlet whose concentrations sum to exactly 1.
"""

import math
from typing import NamedTuple, Sequence

import jax.numpy as jnp
import numpy as np

from pricelevels.dirichlet import DirichletParams
from pricelevels.errors import InvalidConfiguration
from pricelevels.normal_gamma import NormalGammaParams


class Priors(NamedTuple):
    """Per-component Normal-Gamma priors and the Dirichlet mixing prior."""
    levels: NormalGammaParams
    mixing: DirichletParams

    @property
    def num_components(self) -> int:
        return int(self.mixing.alpha.shape[-1])

    def permute(self, order: Sequence[int]) -> "Priors":
        """Relabel components so that new component i is old component order[i]."""
        order = jnp.asarray(order)
        if sorted(np.asarray(order).tolist()) != list(range(self.num_components)):
            raise InvalidConfiguration(f"{list(np.asarray(order))} is not a permutation of {self.num_components} components")
        return Priors(
            levels=NormalGammaParams(*(p[order] for p in self.levels)),
            mixing=DirichletParams(alpha=self.mixing.alpha[order]),
        )


def mixing_concentrations(component_count: int) -> np.ndarray:
    """1/K per component, with the last entry absorbing the rounding error."""
    alpha = np.full(component_count, 1.0 / component_count)
    alpha[-1] = 1.0 - np.sum(alpha[:-1])
    return alpha


def make_priors(
    component_count: int,
    min_price: float,
    max_price: float,
    mean_precision: float = 1.0,
    noise_shape: float = 2.0,
    noise_rate: float = 2.0,
) -> Priors:
    """
    Build level priors from min_price in steps of (max_price - min_price) / K.

    Args:
        component_count: number of mixture components K (>= 1)
        min_price, max_price: observed price range
        mean_precision: β₀, precision scaling of each level prior
        noise_shape, noise_rate: Gamma prior on each noise precision

    Returns:
        Priors with arrays of shape (K,)
    """
    if isinstance(component_count, bool) or not isinstance(component_count, (int, np.integer)):
        raise InvalidConfiguration(f"component_count must be an integer, got {component_count!r}")
    if component_count <= 0:
        raise InvalidConfiguration(f"component_count must be >= 1, got {component_count}")
    if not (math.isfinite(min_price) and math.isfinite(max_price)):
        raise InvalidConfiguration(f"Price range must be finite, got [{min_price}, {max_price}]")
    if max_price < min_price:
        raise InvalidConfiguration(f"max_price {max_price} is below min_price {min_price}")
    # A single level needs no spacing, so only K > 1 requires a spread of prices.
    if max_price == min_price and component_count > 1:
        raise InvalidConfiguration(
            f"Degenerate price range: every price equals {min_price}, cannot place {component_count} levels"
        )

    K = int(component_count)
    step = (max_price - min_price) / K
    means = min_price + step * np.arange(K, dtype=np.float64)

    levels = NormalGammaParams(
        mean=jnp.asarray(means),
        precision=jnp.full(K, mean_precision, dtype=jnp.float64),
        shape=jnp.full(K, noise_shape, dtype=jnp.float64),
        rate=jnp.full(K, noise_rate, dtype=jnp.float64),
    )
    mixing = DirichletParams(alpha=jnp.asarray(mixing_concentrations(K)))
    return Priors(levels=levels, mixing=mixing)


def priors_from_observations(observations, component_count: int, **kwargs) -> Priors:
    """make_priors over the min/max of the observed prices."""
    x = np.asarray(observations, dtype=np.float64)
    if x.size == 0:
        raise InvalidConfiguration("Cannot build priors from an empty observation set")
    return make_priors(component_count, float(np.min(x)), float(np.max(x)), **kwargs)

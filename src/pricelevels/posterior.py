"""
Reportable summary of a finished inference run.

Two variances are reported per level:

- ``variances``: the expected observation-noise variance around the level,
  E[1/λₖ] = bₖ/(aₖ - 1), falling back to bₖ/aₖ when aₖ <= 1. This is how
  far prices typically stray from the support/resistance line.
- ``level_variances``: the posterior uncertainty of the level itself,
  E[1/λₖ]/βₖ (same fallback). It shrinks as more prices are assigned to
  the component.
"""

from typing import Tuple

import chex
import numpy as np

from pricelevels import dirichlet, normal_gamma


@chex.dataclass(frozen=True)
class Posterior:
    means: Tuple[float, ...]
    variances: Tuple[float, ...]
    level_variances: Tuple[float, ...]
    mixing_weights: Tuple[float, ...]
    converged: bool
    iterations: int
    elbo: float
    elbo_history: Tuple[float, ...]

    @property
    def num_components(self) -> int:
        return len(self.means)

    def triples(self) -> Tuple[Tuple[float, float, float], ...]:
        """(mean, variance, weight) per component."""
        return tuple(zip(self.means, self.variances, self.mixing_weights))

    def sorted_by_mean(self) -> "Posterior":
        """Copy with components relabelled in increasing order of level."""
        order = np.argsort(np.asarray(self.means), kind="stable")

        def pick(values):
            return tuple(values[i] for i in order)

        return self.replace(
            means=pick(self.means),
            variances=pick(self.variances),
            level_variances=pick(self.level_variances),
            mixing_weights=pick(self.mixing_weights),
        )


def _floats(values) -> Tuple[float, ...]:
    return tuple(float(v) for v in np.asarray(values, dtype=np.float64))


def extract_posterior(state) -> Posterior:
    """
    Convert final variational parameters into an immutable Posterior.

    Args:
        state: InferenceState returned by run_inference

    Returns:
        Posterior holding plain Python floats (no references to engine arrays)
    """
    levels = state.params.levels
    return Posterior(
        means=_floats(levels.mean),
        variances=_floats(normal_gamma.noise_variance(levels)),
        level_variances=_floats(normal_gamma.mean_variance(levels)),
        mixing_weights=_floats(dirichlet.mean(state.params.mixing)),
        converged=bool(state.converged),
        iterations=int(state.iterations),
        elbo=float(state.elbo_history[-1]),
        elbo_history=tuple(float(v) for v in state.elbo_history),
    )

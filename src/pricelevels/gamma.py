"""
Gamma distribution over a noise precision λ (shape/rate parameterisation).

    p(λ | a, b) = bᵃ / Γ(a) · λ^(a-1) · exp(-bλ)

    Mean:               E[λ] = a / b
    Variance:           Var[λ] = a / b²
    Expected log:       E[log λ] = ψ(a) - log b
    Log partition:      A(a, b) = log Γ(a) - a log b
"""

from typing import NamedTuple

import jax.numpy as jnp
from jax.scipy.special import digamma, gammaln


class GammaParams(NamedTuple):
    """Shape/rate parameters of Gamma distribution."""
    shape: jnp.ndarray  # a > 0, shape (...,)
    rate: jnp.ndarray   # b > 0, shape (...,)


def mean(params: GammaParams) -> jnp.ndarray:
    return params.shape / params.rate


def variance(params: GammaParams) -> jnp.ndarray:
    return params.shape / params.rate ** 2


def expected_log(params: GammaParams) -> jnp.ndarray:
    """E[log λ] = ψ(a) - log b"""
    return digamma(params.shape) - jnp.log(params.rate)


def expected_inverse(params: GammaParams) -> jnp.ndarray:
    """
    E[1/λ] = b / (a - 1), defined only for a > 1.

    For a <= 1 the inverse moment diverges and b / a (the reciprocal of the
    mean precision) is returned instead.
    """
    a, b = params
    return jnp.where(a > 1.0, b / jnp.where(a > 1.0, a - 1.0, 1.0), b / a)


def log_partition(params: GammaParams) -> jnp.ndarray:
    """A(a, b) = log Γ(a) - a log b"""
    return gammaln(params.shape) - params.shape * jnp.log(params.rate)


def kl_divergence(q_params: GammaParams, p_params: GammaParams) -> jnp.ndarray:
    """
    KL(q || p) between two Gamma distributions.

    With natural parameters η = (a - 1, -b) and statistics T = (log λ, λ):

        KL = A(p) - A(q) + (a_q - a_p) E_q[log λ] - (b_q - b_p) E_q[λ]
    """
    return (
        log_partition(p_params) - log_partition(q_params)
        + (q_params.shape - p_params.shape) * expected_log(q_params)
        - (q_params.rate - p_params.rate) * mean(q_params)
    )

"""
Normal-Gamma factor q(μ, λ) for one price level and its noise precision.

    λ ~ Gamma(a, b)
    μ | λ ~ N(m, (βλ)⁻¹)

This is the one-dimensional Normal-Wishart: conjugate to a Gaussian
likelihood with unknown mean and precision, so the variational factor for
each mixture component stays Normal-Gamma after every update.

Expected statistics used by the responsibilities and the ELBO:

    E[λ]              = a / b
    E[log λ]          = ψ(a) - log b
    E[λ (x - μ)²]     = 1/β + (a/b)(x - m)²

All functions support arbitrary batch shapes; components are the last axis.
"""

from typing import NamedTuple

import jax.numpy as jnp

from pricelevels import gamma, gaussian
from pricelevels.gamma import GammaParams
from pricelevels.gaussian import GaussianParams


class NormalGammaParams(NamedTuple):
    """Standard parameters of the Normal-Gamma distribution."""
    mean: jnp.ndarray       # m, location of the price level, shape (..., K)
    precision: jnp.ndarray  # β, precision scaling of the level, shape (..., K)
    shape: jnp.ndarray      # a, Gamma shape of the noise precision, shape (..., K)
    rate: jnp.ndarray       # b, Gamma rate of the noise precision, shape (..., K)


class ComponentStats(NamedTuple):
    """Responsibility-weighted sufficient statistics per component."""
    N_k: jnp.ndarray     # Σₙ rₙₖ, shape (K,)
    x_bar: jnp.ndarray   # Σₙ rₙₖ xₙ / Nₖ (0 where Nₖ ≈ 0), shape (K,)
    S_k: jnp.ndarray     # Σₙ rₙₖ (xₙ - x̄ₖ)², shape (K,)


# =============================================================================
# Expectations
# =============================================================================

def noise(params: NormalGammaParams) -> GammaParams:
    """Marginal q(λ)."""
    return GammaParams(shape=params.shape, rate=params.rate)


def expected_precision(params: NormalGammaParams) -> jnp.ndarray:
    return gamma.mean(noise(params))


def expected_log_precision(params: NormalGammaParams) -> jnp.ndarray:
    return gamma.expected_log(noise(params))


def expected_scaled_sq_deviation(params: NormalGammaParams, x: jnp.ndarray) -> jnp.ndarray:
    """
    E[λ (x - μ)²] for every observation and component.

    The 1/β term is the uncertainty in the level itself.

    Args:
        x: observations, shape (N,)

    Returns:
        shape (N, K)
    """
    E_lambda = expected_precision(params)
    level = GaussianParams(mean=params.mean[None, :], precision=(params.precision * E_lambda)[None, :])
    return E_lambda[None, :] * gaussian.expected_sq_deviation(level, x[:, None])


def noise_variance(params: NormalGammaParams) -> jnp.ndarray:
    """E[1/λ], with b/a used when a <= 1."""
    return gamma.expected_inverse(noise(params))


def mean_variance(params: NormalGammaParams) -> jnp.ndarray:
    """Marginal variance of the level μ: E[1/λ] / β."""
    return noise_variance(params) / params.precision


# =============================================================================
# KL Divergence
# =============================================================================

def kl_divergence(q_params: NormalGammaParams, p_params: NormalGammaParams) -> jnp.ndarray:
    """
    KL(q || p) between Normal-Gamma distributions, elementwise per component.

    KL = KL(q(λ) || p(λ)) + E_q(λ)[ KL(N(m_q, (β_q λ)⁻¹) || N(m_p, (β_p λ)⁻¹)) ]

    where the inner expectation is

        ½ [β_p/β_q - 1 - log(β_p/β_q) + β_p E[λ] (m_q - m_p)²]
    """
    kl_noise = gamma.kl_divergence(noise(q_params), noise(p_params))
    # The inner term is linear in λ, so it equals a Gaussian KL at λ = E[λ].
    E_lambda = expected_precision(q_params)
    kl_level = gaussian.kl_divergence(
        GaussianParams(mean=q_params.mean, precision=q_params.precision * E_lambda),
        GaussianParams(mean=p_params.mean, precision=p_params.precision * E_lambda),
    )
    return kl_noise + kl_level


# =============================================================================
# Conjugate Update
# =============================================================================

def update_from_stats(prior: NormalGammaParams, stats: ComponentStats) -> NormalGammaParams:
    """
    Closed-form posterior given weighted sufficient statistics.

        β = β₀ + Nₖ
        m = (β₀ m₀ + Nₖ x̄ₖ) / β
        a = a₀ + Nₖ / 2
        b = b₀ + ½ (Sₖ + β₀ Nₖ (x̄ₖ - m₀)² / β)

    An empty component (Nₖ = 0) returns the prior unchanged.
    """
    N_k, x_bar, S_k = stats
    precision = prior.precision + N_k
    mean = (prior.precision * prior.mean + N_k * x_bar) / precision
    shape = prior.shape + 0.5 * N_k
    rate = prior.rate + 0.5 * (S_k + prior.precision * N_k * (x_bar - prior.mean) ** 2 / precision)
    return NormalGammaParams(mean=mean, precision=precision, shape=shape, rate=rate)

"""
Dirichlet distribution over the mixing weights π of the price-level mixture.

The Dirichlet is the conjugate prior for the categorical component
assignments, so q(π) stays Dirichlet after every update.

    p(π | α) ∝ ∏ₖ πₖ^(αₖ - 1)

    Mean:                  E[πₖ] = αₖ / α₀,  α₀ = Σₖ αₖ
    Expected log weight:   E[log πₖ] = ψ(αₖ) - ψ(α₀)
    Log partition:         A(α) = Σₖ log Γ(αₖ) - log Γ(α₀)

The K components are always the last dimension.
"""

from typing import NamedTuple

import jax.numpy as jnp
from jax.scipy.special import digamma, gammaln


class DirichletParams(NamedTuple):
    """Standard parameters of Dirichlet distribution."""
    alpha: jnp.ndarray  # concentration parameters, shape (..., K), all > 0


# =============================================================================
# Moments
# =============================================================================

def mean(params: DirichletParams) -> jnp.ndarray:
    """E[πₖ] = αₖ / α₀"""
    alpha = params.alpha
    return alpha / jnp.sum(alpha, axis=-1, keepdims=True)


def variance(params: DirichletParams) -> jnp.ndarray:
    """Var[πₖ] = αₖ(α₀ - αₖ) / (α₀²(α₀ + 1))"""
    alpha = params.alpha
    alpha0 = jnp.sum(alpha, axis=-1, keepdims=True)
    return alpha * (alpha0 - alpha) / (alpha0 ** 2 * (alpha0 + 1))


def expected_log(params: DirichletParams) -> jnp.ndarray:
    """
    Compute E[log πₖ] = ψ(αₖ) - ψ(α₀).

    This is the mixing term of the unnormalised log responsibilities.

    Args:
        params: Dirichlet parameters with alpha shape (..., K)

    Returns:
        E[log πₖ], shape (..., K)
    """
    alpha = params.alpha
    alpha0 = jnp.sum(alpha, axis=-1, keepdims=True)  # (..., 1)
    return digamma(alpha) - digamma(alpha0)


# =============================================================================
# Log Partition Function / KL Divergence
# =============================================================================

def log_partition(params: DirichletParams) -> jnp.ndarray:
    """
    Compute log partition function A(α) of Dirichlet.

    A(α) = Σₖ log Γ(αₖ) - log Γ(α₀)

    Returns:
        A(α), shape (...,)
    """
    alpha = params.alpha
    alpha0 = jnp.sum(alpha, axis=-1)
    return jnp.sum(gammaln(alpha), axis=-1) - gammaln(alpha0)


def kl_divergence(q_params: DirichletParams, p_params: DirichletParams) -> jnp.ndarray:
    """
    Compute KL divergence KL(q || p) between two Dirichlet distributions.

    KL(q || p) = A(αₚ) - A(αq) + ⟨αq - αp, E_q[log π]⟩

    Args:
        q_params: variational distribution, alpha shape (..., K)
        p_params: prior distribution, same (or broadcastable) shape

    Returns:
        KL divergence, shape (...,)
    """
    E_log_pi = expected_log(q_params)
    inner = jnp.sum((q_params.alpha - p_params.alpha) * E_log_pi, axis=-1)
    return log_partition(p_params) - log_partition(q_params) + inner


# =============================================================================
# Conjugate Update
# =============================================================================

def update_from_counts(prior: DirichletParams, N_k: jnp.ndarray) -> DirichletParams:
    """α_post = α_prior + Nₖ"""
    return DirichletParams(alpha=prior.alpha + N_k)

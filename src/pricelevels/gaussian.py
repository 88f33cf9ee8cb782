"""Univariate Gaussian in mean/precision form."""

from typing import NamedTuple

import jax.numpy as jnp


class GaussianParams(NamedTuple):
    mean: jnp.ndarray       # shape (...,)
    precision: jnp.ndarray  # τ > 0, shape (...,)


def mean(params: GaussianParams) -> jnp.ndarray:
    return params.mean


def variance(params: GaussianParams) -> jnp.ndarray:
    return 1.0 / params.precision


def expected_sq_deviation(params: GaussianParams, x: jnp.ndarray) -> jnp.ndarray:
    """E[(x - μ)²] = (x - m)² + 1/τ"""
    return (x - params.mean) ** 2 + 1.0 / params.precision


def log_density(params: GaussianParams, x: jnp.ndarray) -> jnp.ndarray:
    """log N(x | m, τ⁻¹)"""
    return 0.5 * (jnp.log(params.precision) - jnp.log(2 * jnp.pi)) - 0.5 * params.precision * (x - params.mean) ** 2


def kl_divergence(q_params: GaussianParams, p_params: GaussianParams) -> jnp.ndarray:
    """KL(N(m_q, 1/τ_q) || N(m_p, 1/τ_p))"""
    ratio = p_params.precision / q_params.precision
    return 0.5 * (ratio - 1.0 - jnp.log(ratio) + p_params.precision * (q_params.mean - p_params.mean) ** 2)

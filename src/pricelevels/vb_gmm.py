"""Variational Bayesian 1-D GMM with Normal-Gamma and Dirichlet priors."""

import logging
import math
from typing import Iterator, NamedTuple, Optional, Tuple

import jax
import jax.numpy as jnp
import numpy as np
from jax.scipy.special import xlogy

from pricelevels import dirichlet, normal_gamma
from pricelevels.config import EngineConfig, make_config
from pricelevels.convergence import Status, check_convergence
from pricelevels.dirichlet import DirichletParams
from pricelevels.errors import InvalidConfiguration, NumericInstability
from pricelevels.normal_gamma import ComponentStats, NormalGammaParams
from pricelevels.posterior import Posterior, extract_posterior
from pricelevels.priors import Priors, priors_from_observations

# Components with less total responsibility than this are treated as empty.
EMPTY_COMPONENT = 1e-12


class VariationalParams(NamedTuple):
    """Current q(μ, λ) per component and q(π)."""
    levels: NormalGammaParams
    mixing: DirichletParams


class InferenceState(NamedTuple):
    """Everything a finished run leaves behind; owned by the caller."""
    params: VariationalParams
    priors: Priors
    responsibilities: jnp.ndarray  # (N, K)
    elbo_history: Tuple[float, ...]
    iterations: int
    converged: bool


# =============================================================================
# E-step
# =============================================================================

def compute_log_rho(x: jnp.ndarray, params: VariationalParams) -> jnp.ndarray:
    """
    Unnormalised log responsibilities.

        ln ρₙₖ = E[ln πₖ] + ½E[ln λₖ] - ½ln(2π) - ½E[λₖ(xₙ - μₖ)²]

    Args:
        x: (N,) observations
        params: current variational parameters, arrays of shape (K,)

    Returns:
        ln_rho: (N, K)
    """
    E_ln_pi = dirichlet.expected_log(params.mixing)
    E_ln_lambda = normal_gamma.expected_log_precision(params.levels)
    E_mahal = normal_gamma.expected_scaled_sq_deviation(params.levels, x)
    return E_ln_pi[None, :] + 0.5 * E_ln_lambda[None, :] - 0.5 * jnp.log(2 * jnp.pi) - 0.5 * E_mahal


def stable_softmax(log_rho: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Row-wise softmax and log normaliser, shifted by the row maximum."""
    max_x = jnp.max(log_rho, axis=-1, keepdims=True)
    exp_x = jnp.exp(log_rho - max_x)
    sum_exp = jnp.sum(exp_x, axis=-1, keepdims=True)
    return exp_x / sum_exp, (max_x + jnp.log(sum_exp))[..., 0]


def compute_responsibilities(x: jnp.ndarray, params: VariationalParams) -> jnp.ndarray:
    resp, _ = stable_softmax(compute_log_rho(x, params))
    return resp


# =============================================================================
# M-step
# =============================================================================

def sufficient_statistics(x: jnp.ndarray, resp: jnp.ndarray) -> ComponentStats:
    """
    Weighted counts, means and scatter per component.

    Args:
        x: (N,) observations
        resp: (N, K) responsibilities

    Returns:
        ComponentStats with arrays of shape (K,)
    """
    N_k = jnp.sum(resp, axis=0)
    occupied = N_k > EMPTY_COMPONENT
    x_sum = jnp.sum(resp * x[:, None], axis=0)
    x_bar = jnp.where(occupied, x_sum / jnp.where(occupied, N_k, 1.0), 0.0)
    S_k = jnp.sum(resp * (x[:, None] - x_bar[None, :]) ** 2, axis=0)
    return ComponentStats(N_k=N_k, x_bar=x_bar, S_k=S_k)


def update_parameters(priors: Priors, stats: ComponentStats) -> VariationalParams:
    """Replace every variational factor with its conjugate optimum."""
    return VariationalParams(
        levels=normal_gamma.update_from_stats(priors.levels, stats),
        mixing=dirichlet.update_from_counts(priors.mixing, stats.N_k),
    )


# =============================================================================
# ELBO
# =============================================================================

def compute_elbo(
    x: jnp.ndarray,
    resp: jnp.ndarray,
    params: VariationalParams,
    priors: Priors,
) -> jnp.ndarray:
    """
    Evidence lower bound for the current q-factors.

    ELBO = Σₙₖ rₙₖ (ln ρₙₖ - ln rₙₖ) - KL(q(π)||p(π)) - Σₖ KL(q(μₖ,λₖ)||p(μₖ,λₖ))

    The first sum is the expected complete-data log-likelihood plus the
    entropy of q(Z).
    """
    log_rho = compute_log_rho(x, params)
    E_log_lik = jnp.sum(resp * log_rho)
    resp_entropy = -jnp.sum(xlogy(resp, resp))
    kl_dir = dirichlet.kl_divergence(params.mixing, priors.mixing)
    kl_ng = jnp.sum(normal_gamma.kl_divergence(params.levels, priors.levels))
    return E_log_lik + resp_entropy - kl_dir - kl_ng


@jax.jit
def vb_step(x: jnp.ndarray, params: VariationalParams, priors: Priors):
    """
    One synchronous coordinate-ascent sweep.

    Responsibilities come from the incoming parameters; the returned
    parameters and ELBO are computed after the update.

    Returns:
        (new_params, resp, elbo)
    """
    resp = compute_responsibilities(x, params)
    stats = sufficient_statistics(x, resp)
    new_params = update_parameters(priors, stats)
    elbo = compute_elbo(x, resp, new_params, priors)
    return new_params, resp, elbo


def initial_params(priors: Priors) -> VariationalParams:
    """The posterior starts at the prior."""
    return VariationalParams(levels=priors.levels, mixing=priors.mixing)


def iterate_updates(x: jnp.ndarray, priors: Priors) -> Iterator[Tuple[VariationalParams, jnp.ndarray, float]]:
    """
    Yield (params, resp, elbo) after every sweep, indefinitely.

    Raises NumericInstability as soon as a sweep produces a non-finite
    responsibility or ELBO.
    """
    params = initial_params(priors)
    iteration = 0
    while True:
        iteration += 1
        params, resp, elbo = vb_step(x, params, priors)
        if not bool(jnp.all(jnp.isfinite(resp))):
            raise NumericInstability(f"Non-finite responsibilities at iteration {iteration}")
        elbo = float(elbo)
        if not math.isfinite(elbo):
            raise NumericInstability(f"Non-finite ELBO ({elbo}) at iteration {iteration}")
        yield params, resp, elbo


# =============================================================================
# Driver
# =============================================================================

def as_observations(observations) -> jnp.ndarray:
    """Validate and convert raw prices to a float64 (N,) array."""
    try:
        x = np.asarray(observations, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration(f"Observations must be numeric: {exc}") from exc
    if x.ndim != 1:
        raise InvalidConfiguration(f"Observations must be one-dimensional, got shape {x.shape}")
    if x.size == 0:
        raise InvalidConfiguration("Observation set is empty")
    if not np.all(np.isfinite(x)):
        raise InvalidConfiguration("Observations contain NaN or infinite prices")
    return jnp.asarray(x)


def run_inference(
    observations,
    priors: Priors,
    config: Optional[EngineConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> InferenceState:
    """
    Run coordinate ascent until the ELBO settles or the iteration cap is hit.

    Args:
        observations: (N,) prices
        priors: component and mixing priors
        config: iteration cap, tolerance and monotonicity slack
        logger: Optional logger

    Returns:
        InferenceState holding the final parameters and the ELBO history
    """
    if logger is None:
        logger = logging.getLogger(__name__)
    if config is None:
        config = EngineConfig()
    x = as_observations(observations)

    history = []
    status = Status.CONTINUE
    for params, resp, elbo in iterate_updates(x, priors):
        if history and elbo < history[-1] - config.monotonicity_slack * abs(history[-1]):
            logger.warning("ELBO decreased at iteration %d: %.10g -> %.10g", len(history) + 1, history[-1], elbo)
        history.append(elbo)
        logger.debug("iteration %d: ELBO=%.10g", len(history), elbo)
        status = check_convergence(history, config.max_iterations, config.tolerance)
        if status is not Status.CONTINUE:
            break

    converged = status is Status.CONVERGED
    if not converged:
        logger.warning("No convergence after %d iterations (last ELBO %.10g)", len(history), history[-1])

    return InferenceState(
        params=params,
        priors=priors,
        responsibilities=resp,
        elbo_history=tuple(history),
        iterations=len(history),
        converged=converged,
    )


def fit(
    observations,
    component_count: int,
    max_iterations: Optional[int] = None,
    tolerance: Optional[float] = None,
    priors: Optional[Priors] = None,
    config: Optional[EngineConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> Posterior:
    """
    Learn component_count price levels from observations.

    Args:
        observations: sequence of prices (N >= 1)
        component_count: number of levels K (>= 1)
        max_iterations: iteration cap (default 200, or the config's value)
        tolerance: relative ELBO change that counts as converged (default 1e-6)
        priors: explicit priors; built from the price range when None
        config: engine settings; max_iterations/tolerance override it
        logger: Optional logger

    Returns:
        Posterior with means, variances, mixing weights, converged flag and
        iteration count.
    """
    if logger is None:
        logger = logging.getLogger(__name__)
    if config is None:
        config = EngineConfig()
    overrides = dict(max_iterations=max_iterations, tolerance=tolerance)
    config = make_config(**{**dict(config), **{k: v for k, v in overrides.items() if v is not None}})

    x = as_observations(observations)
    if priors is None:
        priors = priors_from_observations(
            x, component_count,
            mean_precision=config.mean_precision,
            noise_shape=config.noise_shape,
            noise_rate=config.noise_rate,
        )
    elif priors.num_components != component_count:
        raise InvalidConfiguration(
            f"Priors describe {priors.num_components} components but component_count is {component_count}"
        )

    logger.info("Fitting %d price levels to %d observations", component_count, x.shape[0])
    state = run_inference(x, priors, config, logger=logger)
    logger.info(
        "Finished after %d iterations (converged=%s, ELBO=%.6f)",
        state.iterations, state.converged, state.elbo_history[-1],
    )
    return extract_posterior(state)

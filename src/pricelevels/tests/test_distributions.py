"""Closed-form checks for the distribution primitives."""

import jax.numpy as jnp
import numpy as np
import pytest

from pricelevels import dirichlet, gamma, gaussian, normal_gamma
from pricelevels.dirichlet import DirichletParams
from pricelevels.gamma import GammaParams
from pricelevels.gaussian import GaussianParams
from pricelevels.normal_gamma import NormalGammaParams

EULER_GAMMA = 0.5772156649015329


def test_dirichlet_moments():
    params = DirichletParams(alpha=jnp.array([1.0, 3.0]))
    np.testing.assert_allclose(dirichlet.mean(params), [0.25, 0.75])
    # α₀ = 4: Var = αₖ(α₀ - αₖ) / (16 · 5)
    np.testing.assert_allclose(dirichlet.variance(params), [3.0 / 80.0, 3.0 / 80.0])


def test_dirichlet_expected_log():
    # ψ(1) - ψ(2) = -1
    params = DirichletParams(alpha=jnp.array([1.0, 1.0]))
    np.testing.assert_allclose(dirichlet.expected_log(params), [-1.0, -1.0], rtol=1e-12)


def test_dirichlet_kl():
    p = DirichletParams(alpha=jnp.array([1.0, 1.0]))
    q = DirichletParams(alpha=jnp.array([2.0, 2.0]))
    assert float(dirichlet.kl_divergence(p, p)) == pytest.approx(0.0, abs=1e-12)
    # log 6 - 5/3
    assert float(dirichlet.kl_divergence(q, p)) == pytest.approx(np.log(6.0) - 5.0 / 3.0, rel=1e-10)


def test_dirichlet_update_from_counts():
    prior = DirichletParams(alpha=jnp.array([0.5, 0.5]))
    post = dirichlet.update_from_counts(prior, jnp.array([1.25, 1.75]))
    np.testing.assert_allclose(post.alpha, [1.75, 2.25])


def test_gamma_moments_and_expected_log():
    params = GammaParams(shape=jnp.array(2.0), rate=jnp.array(4.0))
    assert float(gamma.mean(params)) == pytest.approx(0.5)
    assert float(gamma.variance(params)) == pytest.approx(0.125)
    # log Γ(2) - 2 log 4
    assert float(gamma.log_partition(params)) == pytest.approx(-2.0 * np.log(4.0), rel=1e-12)

    unit = GammaParams(shape=jnp.array(1.0), rate=jnp.array(1.0))
    assert float(gamma.expected_log(unit)) == pytest.approx(-EULER_GAMMA, rel=1e-12)


def test_gamma_expected_inverse_fallback():
    params = GammaParams(shape=jnp.array([3.0, 1.0, 0.5]), rate=jnp.array([4.0, 2.0, 1.0]))
    np.testing.assert_allclose(gamma.expected_inverse(params), [2.0, 2.0, 2.0])


def test_gamma_kl():
    p = GammaParams(shape=jnp.array(1.0), rate=jnp.array(1.0))
    q = GammaParams(shape=jnp.array(2.0), rate=jnp.array(1.0))
    assert float(gamma.kl_divergence(p, p)) == pytest.approx(0.0, abs=1e-12)
    # KL(Gamma(2,1) || Gamma(1,1)) = ψ(2)
    assert float(gamma.kl_divergence(q, p)) == pytest.approx(1.0 - EULER_GAMMA, rel=1e-10)
    # Rate-only change: KL(Gamma(2,1) || Gamma(2,2)) = 2 - 2 log 2
    r = GammaParams(shape=jnp.array(2.0), rate=jnp.array(2.0))
    assert float(gamma.kl_divergence(q, r)) == pytest.approx(2.0 - 2.0 * np.log(2.0), rel=1e-10)


def test_gaussian_primitives():
    params = GaussianParams(mean=jnp.array(0.0), precision=jnp.array(4.0))
    assert float(gaussian.variance(params)) == pytest.approx(0.25)
    assert float(gaussian.expected_sq_deviation(params, jnp.array(1.0))) == pytest.approx(1.25)
    assert float(gaussian.log_density(params, jnp.array(0.0))) == pytest.approx(0.5 * np.log(4.0 / (2 * np.pi)))

    p = GaussianParams(mean=jnp.array(1.0), precision=jnp.array(1.0))
    q = GaussianParams(mean=jnp.array(0.0), precision=jnp.array(1.0))
    assert float(gaussian.kl_divergence(q, p)) == pytest.approx(0.5)


def make_normal_gamma():
    return NormalGammaParams(
        mean=jnp.array([0.0, 5.0]),
        precision=jnp.array([2.0, 1.0]),
        shape=jnp.array([3.0, 2.0]),
        rate=jnp.array([1.5, 2.0]),
    )


def test_normal_gamma_expectations():
    params = make_normal_gamma()
    np.testing.assert_allclose(normal_gamma.expected_precision(params), [2.0, 1.0])
    x = jnp.array([1.0, 5.0])
    # 1/β + E[λ](x - m)²
    expected = np.array([[0.5 + 2.0 * 1.0, 1.0 + 1.0 * 16.0],
                         [0.5 + 2.0 * 25.0, 1.0 + 0.0]])
    np.testing.assert_allclose(normal_gamma.expected_scaled_sq_deviation(params, x), expected)
    np.testing.assert_allclose(normal_gamma.noise_variance(params), [0.75, 2.0])
    np.testing.assert_allclose(normal_gamma.mean_variance(params), [0.375, 2.0])


def test_normal_gamma_kl():
    p = make_normal_gamma()
    np.testing.assert_allclose(normal_gamma.kl_divergence(p, p), [0.0, 0.0], atol=1e-12)

    q = p._replace(mean=p.mean + 1.0, precision=p.precision * 3.0)
    kl = np.asarray(normal_gamma.kl_divergence(q, p))
    assert np.all(kl > 0)
    # Shared noise factor: only the conditional Gaussian term remains
    ratio = 1.0 / 3.0
    expected = 0.5 * (ratio - 1.0 - np.log(ratio) + np.array([2.0, 1.0]) * np.array([2.0, 1.0]))
    np.testing.assert_allclose(kl, expected, rtol=1e-10)


def test_normal_gamma_update_empty_component_keeps_prior():
    prior = make_normal_gamma()
    stats = normal_gamma.ComponentStats(
        N_k=jnp.array([0.0, 4.0]),
        x_bar=jnp.array([0.0, 7.0]),
        S_k=jnp.array([0.0, 2.0]),
    )
    post = normal_gamma.update_from_stats(prior, stats)
    for field in NormalGammaParams._fields:
        assert float(getattr(post, field)[0]) == pytest.approx(float(getattr(prior, field)[0]))

    assert float(post.precision[1]) == pytest.approx(5.0)
    assert float(post.mean[1]) == pytest.approx((5.0 + 28.0) / 5.0)
    assert float(post.shape[1]) == pytest.approx(4.0)
    assert float(post.rate[1]) == pytest.approx(2.0 + 0.5 * (2.0 + 4.0 * 4.0 / 5.0))

"""Tests for choosing the number of price levels."""

import jax
import jax.numpy as jnp
import pytest

from pricelevels.errors import InvalidConfiguration
from pricelevels.selection import select_component_count


def make_prices(key):
    k1, k2 = jax.random.split(key)
    return jnp.concatenate([
        30.0 + 0.5 * jax.random.normal(k1, (200,)),
        40.0 + 0.5 * jax.random.normal(k2, (200,)),
    ])


def test_two_levels_beat_one():
    result = select_component_count(make_prices(jax.random.PRNGKey(0)), [1, 2, 3])
    print(f"Evidence: {result.evidence}")
    assert set(result.evidence) == {1, 2, 3}
    assert result.evidence[2] > result.evidence[1]
    assert result.best_count in (2, 3)
    assert result.best is result.posteriors[result.best_count]


def test_degenerate_candidates_are_skipped():
    result = select_component_count([7.0, 7.0, 7.0], [2, 1])
    assert result.best_count == 1
    assert set(result.posteriors) == {1}


def test_no_usable_candidates():
    with pytest.raises(InvalidConfiguration):
        select_component_count([7.0, 7.0], [2, 3])
    with pytest.raises(InvalidConfiguration):
        select_component_count([1.0, 2.0], [])

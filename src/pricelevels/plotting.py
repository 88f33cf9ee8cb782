"""
Plotting utilities for fitted price levels.
"""

from pathlib import Path
from typing import Sequence, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import jax.numpy as jnp
import numpy as np

from pricelevels import gaussian
from pricelevels.gaussian import GaussianParams
from pricelevels.posterior import Posterior


def plot_elbo_trace(elbo_history: Sequence[float], output_dir: Union[str, Path]) -> Path:
    """Plot the ELBO after each iteration.

    Args:
        elbo_history: ELBO values, one per iteration
        output_dir: Directory to save the plot

    Returns:
        Path of the saved PNG
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    fig, axes = plt.subplots(1, 2, figsize=(12, 4))
    iters = np.arange(1, len(elbo_history) + 1)

    axes[0].plot(iters, elbo_history, linewidth=2)
    axes[0].set_xlabel('Iteration')
    axes[0].set_ylabel('ELBO')
    axes[0].set_title('ELBO History')
    axes[0].grid(True, alpha=0.3)

    # Improvements on a log scale, skipping iteration 1
    diffs = np.diff(np.asarray(elbo_history, dtype=float))
    if diffs.size:
        axes[1].plot(iters[1:], np.maximum(diffs, 1e-16), color='green', linewidth=1.5)
        axes[1].set_yscale('log')
    axes[1].set_xlabel('Iteration')
    axes[1].set_ylabel('ELBO improvement')
    axes[1].set_title('Per-Iteration Improvement (Log Scale)')
    axes[1].grid(True, alpha=0.3)

    plt.tight_layout()
    path = output_dir / "elbo_trace.png"
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return path


def plot_price_levels(observations, posterior: Posterior, output_dir: Union[str, Path], bins: int = 100) -> Path:
    """Histogram of prices overlaid with the fitted mixture density and the learned levels (±1σ bands)."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    x = np.asarray(observations, dtype=float)
    fig, ax = plt.subplots(figsize=(10, 5))
    _, edges, _ = ax.hist(x, bins=bins, color='gray', alpha=0.5, label='Prices')

    # Mixture density scaled to histogram counts
    grid = np.linspace(edges[0], edges[-1], 500)
    components = GaussianParams(
        mean=jnp.asarray(posterior.means)[None, :],
        precision=1.0 / jnp.asarray(posterior.variances)[None, :],
    )
    log_dens = gaussian.log_density(components, jnp.asarray(grid)[:, None])
    density = np.asarray(jnp.exp(log_dens) @ jnp.asarray(posterior.mixing_weights))
    ax.plot(grid, density * x.size * (edges[1] - edges[0]), color='black', lw=1.5, label='Mixture density')

    for m, var, w in posterior.triples():
        sd = np.sqrt(var)
        ax.axvline(m, color='red', lw=2, alpha=0.4 + 0.6 * w)
        ax.axvspan(m - sd, m + sd, color='red', alpha=0.1)
        ax.text(m, ax.get_ylim()[1] * 0.95, f"{m:.2f}\n(w={w:.2f})", ha='center', va='top', fontsize=8)

    ax.set_xlabel('Price')
    ax.set_ylabel('Count')
    ax.set_title(f'Learned Price Levels (K={posterior.num_components})')
    ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    path = output_dir / "price_levels.png"
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return path

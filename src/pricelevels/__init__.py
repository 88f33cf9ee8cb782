"""
Support/resistance price levels via a variational Bayesian Gaussian mixture.

Modules:
- gaussian, gamma, dirichlet, normal_gamma: closed-form distribution primitives
- priors: evenly spaced priors from the observed price range
- vb_gmm: the coordinate-ascent inference engine and the fit() entry point
- convergence: ELBO-based stopping rule
- posterior: immutable summary of a finished run
- selection: choosing the number of levels by ELBO
- config, io, cli, plotting: settings, price files, command line, figures
"""

import jax

# Row sums to 1e-9 and ELBO monotonicity need double precision.
jax.config.update("jax_enable_x64", True)

from pricelevels.errors import InvalidConfiguration, NumericInstability, PriceFileError, PriceLevelError
from pricelevels.config import EngineConfig, load_config
from pricelevels.priors import Priors, make_priors, priors_from_observations
from pricelevels.posterior import Posterior, extract_posterior
from pricelevels.vb_gmm import fit, run_inference
from pricelevels.selection import select_component_count

__all__ = [
    'fit',
    'run_inference',
    'make_priors',
    'priors_from_observations',
    'extract_posterior',
    'select_component_count',
    'load_config',
    'EngineConfig',
    'Priors',
    'Posterior',
    'PriceLevelError',
    'InvalidConfiguration',
    'NumericInstability',
    'PriceFileError',
]

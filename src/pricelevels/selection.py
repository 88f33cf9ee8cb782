"""
Choosing the number of price levels.

Every candidate component count is fitted independently and scored by its
final ELBO, a lower bound on the model evidence. The highest bound wins;
ties go to the smaller count.
"""

import logging
from typing import Dict, Iterable, Optional

import chex
from tqdm import tqdm

from pricelevels.config import EngineConfig
from pricelevels.errors import InvalidConfiguration
from pricelevels.posterior import Posterior
from pricelevels.vb_gmm import as_observations, fit


@chex.dataclass(frozen=True)
class SelectionResult:
    best_count: int
    best: Posterior
    posteriors: Dict[int, Posterior]
    evidence: Dict[int, float]


def select_component_count(
    observations,
    candidates: Iterable[int],
    config: Optional[EngineConfig] = None,
    progress: bool = False,
    logger: Optional[logging.Logger] = None,
) -> SelectionResult:
    """
    Fit each candidate component count and keep the best by ELBO.

    Args:
        observations: (N,) prices
        candidates: component counts to try
        config: engine settings shared by every fit
        progress: show a tqdm progress bar
        logger: Optional logger

    Returns:
        SelectionResult with every successful fit and its ELBO
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    x = as_observations(observations)
    candidates = sorted(set(int(k) for k in candidates))
    if not candidates:
        raise InvalidConfiguration("No candidate component counts given")

    posteriors: Dict[int, Posterior] = {}
    for k in tqdm(candidates, desc="Component counts", disable=not progress):
        try:
            posteriors[k] = fit(x, k, config=config, logger=logger)
        except InvalidConfiguration as exc:
            logger.warning("Skipping component count %d: %s", k, exc)

    if not posteriors:
        raise InvalidConfiguration(f"None of the candidate component counts {candidates} could be fitted")

    evidence = {k: p.elbo for k, p in posteriors.items()}
    best_count = max(evidence, key=lambda k: (evidence[k], -k))
    logger.info("Best component count: %d (ELBO=%.6f)", best_count, evidence[best_count])

    return SelectionResult(
        best_count=best_count,
        best=posteriors[best_count],
        posteriors=posteriors,
        evidence=evidence,
    )

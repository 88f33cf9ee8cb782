"""Stopping rule for the variational update loop."""

import enum
import math
from typing import Sequence


class Status(enum.Enum):
    CONTINUE = "continue"
    CONVERGED = "converged"
    MAX_ITERATIONS = "max-iterations-reached"


def relative_change(previous: float, current: float) -> float:
    """|L_t - L_{t-1}| / |L_{t-1}|, guarded against a zero denominator."""
    return abs(current - previous) / max(abs(previous), 1e-300)


def check_convergence(
    elbo_history: Sequence[float],
    max_iterations: int = 200,
    tolerance: float = 1e-6,
) -> Status:
    """
    Decide whether to keep iterating given the ELBO after each iteration so far.

    Convergence needs two values to compare and takes precedence over the
    iteration cap when both hold at once.
    """
    n = len(elbo_history)
    if n >= 2:
        current, previous = elbo_history[-1], elbo_history[-2]
        if math.isfinite(current) and math.isfinite(previous):
            if relative_change(previous, current) < tolerance:
                return Status.CONVERGED
    if n >= max_iterations:
        return Status.MAX_ITERATIONS
    return Status.CONTINUE

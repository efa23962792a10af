# utils/solvers.py
#
# Tax-agnostic numeric search routines with explicit iteration caps.
# Callers get the best estimate back even when the tolerance is not met.
#

from dataclasses import dataclass
from typing import Callable


@dataclass
class SolverResult:
    x: float
    value: float
    iterations: int
    converged: bool


def bisect_increasing(
    fn: Callable[[float], float],
    target: float,
    low: float,
    high: float,
    max_iterations: int = 20,
    tolerance: float = 1.0,
) -> SolverResult:
    """
    Finds x in [low, high] with fn(x) ~= target, assuming fn is non-decreasing.

    Stops after `max_iterations` midpoints or as soon as |fn(mid) - target| < tolerance.
    The midpoint of the final bracket is returned if the tolerance was never met.
    """
    mid = (low + high) / 2.0
    value = fn(mid)
    for iteration in range(1, max_iterations + 1):
        mid = (low + high) / 2.0
        value = fn(mid)
        if abs(value - target) < tolerance:
            return SolverResult(mid, value, iteration, True)
        if value < target:
            low = mid
        else:
            high = mid
    return SolverResult(mid, value, max_iterations, False)


def ternary_search_min(
    fn: Callable[[float], float],
    low: float,
    high: float,
    iterations: int = 15,
) -> SolverResult:
    """
    Narrows [low, high] toward the minimum of a unimodal fn.

    Each iteration evaluates the two interior third-points and discards the
    third beyond the worse one. `converged` reports whether the bracket
    shrank below one currency unit.
    """
    for _ in range(iterations):
        third = (high - low) / 3.0
        m1 = low + third
        m2 = high - third
        if fn(m1) < fn(m2):
            high = m2
        else:
            low = m1
    x = (low + high) / 2.0
    return SolverResult(x, fn(x), iterations, (high - low) < 1.0)

# market_generator.py
#
# Randomized capital-growth rates for stochastic projections.
# Normal shocks come from the Box-Muller transform over uniforms drawn from a
# seeded numpy Generator, so every run is reproducible from its seed.
#

from typing import Optional

import numpy as np
from numpy.typing import NDArray

from config.market_assumptions import min_annual_growth


def standard_normal(rng: np.random.Generator) -> float:
    """
    One N(0, 1) draw via Box-Muller.

    A uniform sample of exactly zero would put log(0) in the transform, so
    both uniforms are redrawn until neither is zero.
    """
    u1 = 0.0
    u2 = 0.0
    while u1 == 0.0 or u2 == 0.0:
        u1 = rng.random()
        u2 = rng.random()
    return float(np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2))


def perturbed_growth(mean: float, volatility: float, rng: np.random.Generator) -> float:
    """mean + volatility * Z, never below min_annual_growth."""
    if not volatility:
        return mean
    return max(mean + volatility * standard_normal(rng), min_annual_growth)


def generate_growth_path(
    n_years: int,
    mean: float,
    volatility: float,
    rng: Optional[np.random.Generator] = None,
) -> NDArray[np.float64]:
    """
    Generate a path of annual capital-growth rates.

    Args:
        n_years: Number of simulated years.
        mean: Expected annual capital growth.
        volatility: Annual standard deviation; 0 gives a flat path at `mean`.
        rng: Seeded generator; a fresh unseeded one is used if omitted.

    Returns:
        A 1D numpy array of length n_years.
    """
    rng = rng if rng is not None else np.random.default_rng()
    return np.array([perturbed_growth(mean, volatility, rng) for _ in range(n_years)], dtype=np.float64)

# engine/monte_carlo.py

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from models import MonteCarloPercentile, MonteCarloResult, SimulationInputs, SimulationResult
from engine.simulator import run_simulation
from config.plan_assumptions import DEFAULT_MC_ITERATIONS, MC_PERCENTILES, SUCCESS_TOLERANCE

logger = logging.getLogger(__name__)


def _percentile(sorted_values: Sequence[float], p: float) -> float:
    """Value at index floor(p * N) of an ascending sequence."""
    index = min(int(math.floor(p * len(sorted_values))), len(sorted_values) - 1)
    return float(sorted_values[index])


def run_monte_carlo(
    inputs: SimulationInputs,
    iterations: int = DEFAULT_MC_ITERATIONS,
    seed: Optional[int] = None,
) -> MonteCarloResult:
    """
    Runs `iterations` stochastic projections and aggregates total assets.

    All runs draw from one numpy Generator seeded with `seed`, so the same seed
    reproduces the same bands. Percentiles per year are taken by sorting the
    runs' total assets and indexing at floor(p * N). A run succeeds when its
    final year's total assets exceed the success tolerance.

    Returns:
        MonteCarloResult; empty percentiles and 0% success when the inputs are
        rejected or `iterations` is not positive.
    """
    if iterations <= 0:
        return MonteCarloResult(percentiles=[], success_rate=0.0, median_end_of_plan_assets=0.0, iterations=0, seed=seed)

    rng = np.random.default_rng(seed)

    # --- 1. Run every path first ---
    runs: List[List[SimulationResult]] = []
    for _ in range(iterations):
        results = run_simulation(inputs, stochastic=True, rng=rng)
        if not results:
            logger.warning("Monte Carlo aborted: simulation inputs rejected")
            return MonteCarloResult(percentiles=[], success_rate=0.0, median_end_of_plan_assets=0.0, iterations=0, seed=seed)
        runs.append(results)

    # --- 2. Aggregate ---
    n_years = len(runs[0])
    assets = np.array([[r.total_assets for r in run] for run in runs], dtype=np.float64)

    percentiles = []
    for year_index in range(n_years):
        column = np.sort(assets[:, year_index])
        p5, p25, p50, p75, p95 = (_percentile(column, p) for p in MC_PERCENTILES)
        reference = runs[0][year_index]
        percentiles.append(MonteCarloPercentile(
            year=reference.year, age=reference.age, p5=p5, p25=p25, p50=p50, p75=p75, p95=p95,
        ))

    final_assets = np.sort(assets[:, -1])
    success_rate = float(np.mean(final_assets > SUCCESS_TOLERANCE) * 100.0)
    median_end = _percentile(final_assets, 0.5)

    logger.info(f"Monte Carlo: {iterations} runs, success {success_rate:.1f}%, median end ${median_end:,.0f}")
    return MonteCarloResult(
        percentiles=percentiles,
        success_rate=success_rate,
        median_end_of_plan_assets=median_end,
        iterations=iterations,
        seed=seed,
    )

"""Tests for Monte Carlo simulation."""

import math

import numpy as np
import pytest

from models import ReturnRates
from engine.market_generator import generate_growth_path, perturbed_growth, standard_normal
from engine.monte_carlo import _percentile, run_monte_carlo
from engine.simulator import run_simulation
from tests.helpers import make_inputs, make_person, no_benefits


class _ScriptedRng:
    """Stands in for numpy's Generator, replaying fixed uniforms."""

    def __init__(self, values):
        self.values = list(values)

    def random(self):
        return self.values.pop(0)


def _retiree_inputs(spend: float = 40_000, volatility: float = 0.12):
    person = make_person(age=65, life_expectancy=90, rrsp=400_000, tfsa=100_000)
    return make_inputs(
        person,
        post_retirement_spend=spend,
        inflation_rate=0.02,
        return_rates=ReturnRates(capital_growth=0.05, volatility=volatility),
    )


class TestMarketGenerator:
    def test_standard_normal_moments(self):
        rng = np.random.default_rng(42)
        draws = np.array([standard_normal(rng) for _ in range(20_000)])
        assert abs(draws.mean()) < 0.05
        assert abs(draws.std() - 1.0) < 0.05

    def test_zero_uniform_redrawn(self):
        rng = _ScriptedRng([0.0, 0.5, 0.3, 0.5])
        assert standard_normal(rng) == pytest.approx(-math.sqrt(-2.0 * math.log(0.3)))

    def test_zero_volatility_returns_mean(self):
        assert perturbed_growth(0.05, 0.0, np.random.default_rng(1)) == 0.05

    def test_growth_path_floored(self):
        path = generate_growth_path(500, -0.5, 2.0, np.random.default_rng(3))
        assert len(path) == 500
        assert path.min() >= -0.95


class TestMonteCarlo:
    def test_zero_volatility_collapses_to_deterministic(self):
        inputs = _retiree_inputs(volatility=0.0)
        deterministic = run_simulation(inputs)
        result = run_monte_carlo(inputs, iterations=10, seed=1)

        assert len(result.percentiles) == len(deterministic)
        for band, year in zip(result.percentiles, deterministic):
            for value in (band.p5, band.p25, band.p50, band.p75, band.p95):
                assert value == pytest.approx(year.total_assets)

    def test_bands_are_ordered(self):
        result = run_monte_carlo(_retiree_inputs(), iterations=40, seed=11)
        for band in result.percentiles:
            assert band.p5 <= band.p25 <= band.p50 <= band.p75 <= band.p95

    def test_same_seed_same_result(self):
        first = run_monte_carlo(_retiree_inputs(), iterations=20, seed=5)
        second = run_monte_carlo(_retiree_inputs(), iterations=20, seed=5)
        assert first == second
        assert first.iterations == 20
        assert first.seed == 5

    def test_success_rate_non_increasing_with_spend(self):
        rates = [
            run_monte_carlo(_retiree_inputs(spend=spend), iterations=30, seed=99).success_rate
            for spend in (20_000, 40_000, 60_000, 80_000)
        ]
        assert all(later <= earlier for earlier, later in zip(rates, rates[1:]))
        assert 0.0 <= rates[-1] <= rates[0] <= 100.0

    def test_invalid_inputs(self):
        inputs = _retiree_inputs()
        inputs.person.age = -5
        result = run_monte_carlo(inputs, iterations=10, seed=1)
        assert result.percentiles == []
        assert result.success_rate == 0.0

    def test_percentile_years_follow_projection(self):
        inputs = _retiree_inputs()
        result = run_monte_carlo(inputs, iterations=5, seed=2)
        assert result.percentiles[0].year == 2025
        assert result.percentiles[0].age == 65
        assert result.percentiles[-1].age == 90


class TestAggregation:
    @pytest.mark.parametrize("p, index", [(0.05, 1), (0.25, 5), (0.50, 10), (0.75, 15), (0.95, 19)])
    def test_percentile_indexes_floor_of_p_times_n(self, p, index):
        values = [float(v) for v in range(20)]
        assert _percentile(values, p) == values[index]

    def test_percentile_does_not_interpolate(self):
        values = [0.0, 100.0, 200.0]
        # floor(0.5 * 3) = 1; floor(0.95 * 3) = 2
        assert _percentile(values, 0.5) == 100.0
        assert _percentile(values, 0.95) == 200.0
        assert _percentile(values, 0.05) == 0.0

    @pytest.mark.parametrize("final_assets, success", [(1_000, 0.0), (1_001, 100.0)])
    def test_success_requires_assets_above_tolerance(self, final_assets, success):
        person = make_person(age=65, life_expectancy=65, tfsa=final_assets, **no_benefits())
        inputs = make_inputs(person, return_rates=ReturnRates(volatility=0.0))

        result = run_monte_carlo(inputs, iterations=4, seed=3)
        assert result.percentiles[-1].p50 == pytest.approx(final_assets)
        assert result.success_rate == success

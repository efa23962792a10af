import pytest

from engine.gross_up import marginal_tax_for_gross, solve_gross_withdrawal
from engine.tax_engine import compute_total_tax
from utils.solvers import bisect_increasing, ternary_search_min


class TestBisection:
    def test_converges_within_tolerance(self):
        result = bisect_increasing(lambda x: 2 * x, target=10, low=0, high=100)
        assert result.converged
        assert abs(result.value - 10) < 1.0

    def test_returns_best_estimate_when_not_converged(self):
        result = bisect_increasing(lambda x: x, target=1_000, low=0, high=10)
        assert not result.converged
        assert result.iterations == 20
        assert result.x == pytest.approx(10, abs=0.001)


class TestTernarySearch:
    def test_finds_minimum_of_parabola(self):
        result = ternary_search_min(lambda x: (x - 3) ** 2, 0, 10)
        assert result.x == pytest.approx(3, abs=0.05)
        assert result.converged

    def test_minimum_at_boundary(self):
        result = ternary_search_min(lambda x: x, 0, 100)
        assert result.x == pytest.approx(0, abs=0.5)


class TestGrossUp:
    @pytest.mark.parametrize("target", [1_000, 20_000, 50_000, 150_000])
    def test_round_trip(self, target):
        args = dict(current_taxable=30_000, base_benefit_amount=8_820, jurisdiction="ON", inflation_factor=1.0, age=70)
        gross, marginal = solve_gross_withdrawal(target, **args)
        assert gross - marginal == pytest.approx(target, abs=1.0)
        assert marginal == pytest.approx(marginal_tax_for_gross(gross, **args))

    def test_round_trip_with_inflation(self):
        gross, marginal = solve_gross_withdrawal(40_000, 60_000, 0.0, "BC", 1.6, 55)
        assert gross - marginal == pytest.approx(40_000, abs=1.0)

    def test_non_positive_target(self):
        assert solve_gross_withdrawal(0, 50_000, 0, "ON", 1.0, 70) == (0.0, 0.0)
        assert solve_gross_withdrawal(-5, 50_000, 0, "ON", 1.0, 70) == (0.0, 0.0)

    def test_marginal_tax_includes_clawback(self):
        marginal = marginal_tax_for_gross(20_000, 85_000, 8_820, "ON", 1.0, None)
        expected = (
            compute_total_tax(105_000, "ON", oas_income=8_820)
            - compute_total_tax(85_000, "ON", oas_income=8_820)
        )
        assert marginal == pytest.approx(expected)

    def test_gross_exceeds_net_when_taxed(self):
        gross, marginal = solve_gross_withdrawal(30_000, 80_000, 0, "ON", 1.0, 60)
        assert marginal > 0
        assert gross > 30_000

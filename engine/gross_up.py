# engine/gross_up.py
#
# Converts a desired after-tax amount into the taxable withdrawal that
# produces it. Tax is progressive and the OAS clawback is piecewise, so the
# inverse has no closed form; we bisect instead.
#

import logging
from typing import Optional, Tuple

from models import TaxRates
from engine.tax_engine import compute_total_tax
from utils.solvers import bisect_increasing
from utils.tax_utils import TAX_CONSTANTS_2025
from config.plan_assumptions import PENSION_SPLIT_MIN_AGE

logger = logging.getLogger(__name__)

MAX_GROSS_WITHDRAWAL = 10_000_000
UPPER_BOUND_MULTIPLIER = 3
MAX_ITERATIONS = 20
TOLERANCE = 1.0


def marginal_tax_for_gross(
    gross: float,
    current_taxable: float,
    base_benefit_amount: float,
    jurisdiction: str,
    inflation_factor: float,
    age: Optional[int],
    rates: TaxRates = TAX_CONSTANTS_2025,
    eligible_pension_income: float = 0.0,
    grossed_up_dividends: float = 0.0,
) -> float:
    """
    Extra tax (including the clawback delta) caused by adding `gross` of fully
    taxable deferred-account income on top of `current_taxable`.
    """
    if gross <= 0:
        return 0.0

    # Deferred-account income is pension income from 65
    pension_eligible = age is not None and age >= PENSION_SPLIT_MIN_AGE
    extra_pension = gross if pension_eligible else 0.0

    before = compute_total_tax(
        current_taxable, jurisdiction, inflation_factor, rates,
        age=age,
        eligible_pension_income=eligible_pension_income,
        grossed_up_dividends=grossed_up_dividends,
        oas_income=base_benefit_amount,
    )
    after = compute_total_tax(
        current_taxable + gross, jurisdiction, inflation_factor, rates,
        age=age,
        eligible_pension_income=eligible_pension_income + extra_pension,
        grossed_up_dividends=grossed_up_dividends,
        oas_income=base_benefit_amount,
    )
    return after - before


def solve_gross_withdrawal(
    target_net: float,
    current_taxable: float,
    base_benefit_amount: float,
    jurisdiction: str,
    inflation_factor: float = 1.0,
    age: Optional[int] = None,
    rates: TaxRates = TAX_CONSTANTS_2025,
    eligible_pension_income: float = 0.0,
    grossed_up_dividends: float = 0.0,
) -> Tuple[float, float]:
    """
    Finds the gross taxable withdrawal whose after-tax proceeds equal `target_net`.

    Args:
        target_net: Cash wanted in hand after the marginal tax.
        current_taxable: Taxable income already committed this year.
        base_benefit_amount: OAS received this year (caps the clawback).
        jurisdiction: Province/territory code.
        inflation_factor: Cumulative inflation for indexing.
        age: Person's age (age and pension credits).

    Returns:
        tuple[float, float]: (gross, marginal_tax). Best estimate within $1 of
        the target, or the last midpoint if 20 iterations were not enough.
    """
    if target_net <= 0:
        return 0.0, 0.0

    def _marginal(gross: float) -> float:
        return marginal_tax_for_gross(
            gross, current_taxable, base_benefit_amount, jurisdiction,
            inflation_factor, age, rates, eligible_pension_income, grossed_up_dividends,
        )

    low = target_net
    high = min(target_net * UPPER_BOUND_MULTIPLIER, MAX_GROSS_WITHDRAWAL)
    if high <= low:
        high = low

    result = bisect_increasing(
        lambda gross: gross - _marginal(gross),
        target=target_net,
        low=low,
        high=high,
        max_iterations=MAX_ITERATIONS,
        tolerance=TOLERANCE,
    )
    if not result.converged:
        logger.debug(
            f"Gross-up did not converge for net ${target_net:,.0f}: "
            f"best gross ${result.x:,.0f} nets ${result.value:,.0f}"
        )

    gross = result.x
    return gross, _marginal(gross)


__all__ = ["solve_gross_withdrawal", "marginal_tax_for_gross"]

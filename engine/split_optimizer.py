# engine/split_optimizer.py

import logging
from typing import Tuple

from models import SplitCandidate, SplitResult, TaxRates
from engine.tax_engine import compute_total_tax
from utils.solvers import ternary_search_min
from utils.tax_utils import TAX_CONSTANTS_2025
from config.plan_assumptions import PENSION_SPLIT_MAX_FRACTION, PENSION_SPLIT_MIN_AGE

logger = logging.getLogger(__name__)

SEARCH_ITERATIONS = 15


def _person_tax(
    candidate: SplitCandidate,
    shift: float,
    jurisdiction: str,
    inflation_factor: float,
    rates: TaxRates,
) -> float:
    """Tax + clawback after `shift` of pension income moves in (+) or out (-)."""
    return compute_total_tax(
        candidate.taxable_income + shift,
        jurisdiction,
        inflation_factor,
        rates,
        age=candidate.age,
        eligible_pension_income=max(0.0, candidate.eligible_pension_income + shift),
        grossed_up_dividends=candidate.grossed_up_dividends,
        oas_income=candidate.oas_income,
    )


def _best_transfer(
    transferor: SplitCandidate,
    recipient: SplitCandidate,
    jurisdiction: str,
    inflation_factor: float,
    rates: TaxRates,
) -> Tuple[float, float, Tuple[float, float]]:
    """
    Returns (amount, combined_tax, (transferor_tax, recipient_tax)) for the best
    transfer from `transferor` to `recipient`, or amount 0 when not allowed.
    """
    if transferor.age < PENSION_SPLIT_MIN_AGE or transferor.eligible_pension_income <= 0:
        return 0.0, float("inf"), (0.0, 0.0)

    def combined(x: float) -> float:
        return (
            _person_tax(transferor, -x, jurisdiction, inflation_factor, rates)
            + _person_tax(recipient, x, jurisdiction, inflation_factor, rates)
        )

    upper = transferor.eligible_pension_income * PENSION_SPLIT_MAX_FRACTION
    result = ternary_search_min(combined, 0.0, upper, iterations=SEARCH_ITERATIONS)
    amount = result.x
    taxes = (
        _person_tax(transferor, -amount, jurisdiction, inflation_factor, rates),
        _person_tax(recipient, amount, jurisdiction, inflation_factor, rates),
    )
    return amount, taxes[0] + taxes[1], taxes


def compute_optimal_split(
    person_a: SplitCandidate,
    person_b: SplitCandidate,
    jurisdiction: str,
    inflation_factor: float = 1.0,
    rates: TaxRates = TAX_CONSTANTS_2025,
) -> SplitResult:
    """
    Searches the pension-income transfer between two spouses that minimizes
    their combined tax (including clawback) for a single year.

    Each direction is only considered when the transferor is at least 65 and
    has eligible pension income; at most half of it may move. The direction
    with the larger saving wins. No saving means a zero split.
    """
    base_a = _person_tax(person_a, 0.0, jurisdiction, inflation_factor, rates)
    base_b = _person_tax(person_b, 0.0, jurisdiction, inflation_factor, rates)
    baseline = base_a + base_b

    a_amount, a_total, (a_from_tax, b_to_tax) = _best_transfer(
        person_a, person_b, jurisdiction, inflation_factor, rates
    )
    b_amount, b_total, (b_from_tax, a_to_tax) = _best_transfer(
        person_b, person_a, jurisdiction, inflation_factor, rates
    )

    a_savings = baseline - a_total
    b_savings = baseline - b_total

    if a_savings <= 0 and b_savings <= 0:
        return SplitResult(amount=0.0, from_whom=None, savings=0.0, both_new_taxes=(base_a, base_b))

    if a_savings >= b_savings:
        logger.debug(f"Split ${a_amount:,.0f} from A to B saves ${a_savings:,.0f}")
        return SplitResult(amount=a_amount, from_whom="a", savings=a_savings, both_new_taxes=(a_from_tax, b_to_tax))

    logger.debug(f"Split ${b_amount:,.0f} from B to A saves ${b_savings:,.0f}")
    return SplitResult(amount=b_amount, from_whom="b", savings=b_savings, both_new_taxes=(a_to_tax, b_from_tax))

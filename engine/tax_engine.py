"""
Canadian personal income tax calculator for retirement projections.
It contains the final tax calculation formulas, relying entirely on indexed
constants provided by utils.tax_utils.
"""
from typing import List, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)

from models import TaxBracket, TaxRates
from utils.tax_utils import (
    TAX_CONSTANTS_2025,
    AGE_AMOUNT_REDUCTION_RATE,
    AGE_CREDIT_MIN_AGE,
    COMBINED_CREDIT_RATE,
    FEDERAL_CREDIT_RATE,
    FEDERAL_DIVIDEND_CREDIT_RATE,
    OAS_CLAWBACK_RATE,
    ONTARIO_HEALTH_PREMIUM_BANDS,
    ONTARIO_SURTAX_TIERS,
    get_indexed_constants,
    index_brackets,
)

# --- 1. Internal Helper Functions ---

def _tiered_tax(income: float, indexed_brackets: List[Tuple[float, float, float]]) -> float:
    """Sum of rate x income falling inside each (low, high) band."""
    tax = 0.0
    for low, high, rate in indexed_brackets:
        if income <= low:
            break
        tax += (min(income, high) - low) * rate
    return tax


def compute_bracket_tax(
    income: float,
    brackets: Sequence[TaxBracket],
    inflation_factor: float = 1.0,
) -> float:
    """Progressive tax on `income` for a single bracket sequence."""
    return _tiered_tax(income, index_brackets(brackets, inflation_factor))


def compute_health_premium(income: float, inflation_factor: float = 1.0) -> float:
    """Ontario Health Premium: flat amount by indexed income band."""
    for upper, premium in ONTARIO_HEALTH_PREMIUM_BANDS:
        if income <= upper * inflation_factor:
            return float(premium)
    return float(ONTARIO_HEALTH_PREMIUM_BANDS[-1][1])


def compute_surtax(basic_provincial_tax: float, inflation_factor: float = 1.0) -> float:
    """Ontario surtax: cumulative percentages of basic provincial tax above indexed thresholds."""
    if basic_provincial_tax <= 0:
        return 0.0
    surtax = 0.0
    for threshold, rate in ONTARIO_SURTAX_TIERS:
        indexed = threshold * inflation_factor
        if basic_provincial_tax > indexed:
            surtax += (basic_provincial_tax - indexed) * rate
    return surtax


def _age_credit(income: float, age_amount: float, age_threshold: float) -> float:
    claim = max(0.0, age_amount - AGE_AMOUNT_REDUCTION_RATE * max(0.0, income - age_threshold))
    return claim * COMBINED_CREDIT_RATE


# --- 2. Main Functions ---

def compute_tax(
    taxable_income: float,
    jurisdiction: str,
    inflation_factor: float = 1.0,
    rates: TaxRates = TAX_CONSTANTS_2025,
    age: Optional[int] = None,
    eligible_pension_income: float = 0.0,
    grossed_up_dividends: float = 0.0,
    strict: bool = False,
) -> float:
    """
    Calculates combined federal + provincial income tax for one person.

    Args:
        taxable_income: Total taxable income (dividends already grossed up,
            capital gains already at their inclusion rate).
        jurisdiction: Two-letter province/territory code. Unknown codes fall
            back to rates.default_jurisdiction unless strict is set.
        inflation_factor: Cumulative inflation since the table's base year;
            scales every threshold and indexed amount.
        rates: The tax table to use.
        age: Enables the age credit at 65+.
        eligible_pension_income: Income eligible for the pension credit.
        grossed_up_dividends: Grossed-up eligible dividends for the dividend credit.

    Returns:
        float: Tax owed, never negative. Does not include the OAS clawback.
    """
    # 1. Fetch ALL indexed constants
    constants = get_indexed_constants(jurisdiction, inflation_factor, rates, strict)

    # 2. Progressive tax
    federal_tax = _tiered_tax(taxable_income, constants["fed_list"])
    provincial_tax = _tiered_tax(taxable_income, constants["prov_list"])

    # 3. Basic personal amount credits
    federal_bpa_credit = constants["federal_bpa"] * FEDERAL_CREDIT_RATE
    provincial_bpa_credit = constants["provincial_bpa"] * constants["provincial_first_rate"]
    basic_provincial_tax = provincial_tax - provincial_bpa_credit

    total_tax = (federal_tax - federal_bpa_credit) + basic_provincial_tax

    # 4. Pension, dividend and age credits
    if eligible_pension_income > 0:
        total_tax -= min(eligible_pension_income, constants["pension_credit_cap"]) * COMBINED_CREDIT_RATE

    if grossed_up_dividends > 0:
        dtc_rate = FEDERAL_DIVIDEND_CREDIT_RATE + constants["provincial_dtc_rate"]
        total_tax -= grossed_up_dividends * dtc_rate

    if age is not None and age >= AGE_CREDIT_MIN_AGE:
        total_tax -= _age_credit(taxable_income, constants["age_amount"], constants["age_threshold"])

    # 5. Ontario Health Premium and Surtax
    if constants["jurisdiction"] == "ON":
        total_tax += compute_health_premium(taxable_income, inflation_factor)
        total_tax += compute_surtax(basic_provincial_tax, inflation_factor)

    return max(0.0, total_tax)


def compute_clawback(
    net_income: float,
    max_clawback: float,
    inflation_factor: float = 1.0,
    threshold: Optional[float] = None,
    rates: TaxRates = TAX_CONSTANTS_2025,
) -> float:
    """
    OAS recovery tax: 15% of net income above the indexed threshold, capped at
    the benefit actually received.
    """
    if threshold is None:
        threshold = rates.oas.clawback_threshold
    indexed_threshold = threshold * inflation_factor
    if net_income <= indexed_threshold or max_clawback <= 0:
        return 0.0
    repayment = (net_income - indexed_threshold) * OAS_CLAWBACK_RATE
    return min(repayment, max_clawback)


def compute_total_tax(
    taxable_income: float,
    jurisdiction: str,
    inflation_factor: float = 1.0,
    rates: TaxRates = TAX_CONSTANTS_2025,
    age: Optional[int] = None,
    eligible_pension_income: float = 0.0,
    grossed_up_dividends: float = 0.0,
    oas_income: float = 0.0,
    strict: bool = False,
) -> float:
    """Income tax plus OAS clawback - the all-in personal cost of a given taxable income."""
    income_tax = compute_tax(
        taxable_income,
        jurisdiction,
        inflation_factor,
        rates,
        age=age,
        eligible_pension_income=eligible_pension_income,
        grossed_up_dividends=grossed_up_dividends,
        strict=strict,
    )
    clawback = compute_clawback(taxable_income, oas_income, inflation_factor, rates=rates)
    return income_tax + clawback


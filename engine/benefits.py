# engine/benefits.py
#
# Government pension estimates: Canada Pension Plan (CPP) retirement pension
# and Old Age Security (OAS). Both are formula-based functions of start age.
#

from models import Person, TaxRates
from utils.tax_utils import TAX_CONSTANTS_2025

STANDARD_START_AGE = 65

# CPP actuarial adjustment per month away from 65
CPP_EARLY_REDUCTION_PER_MONTH = 0.006
CPP_LATE_INCREASE_PER_MONTH = 0.007
CPP_MAX_ADJUSTMENT_MONTHS = 60          # ages 60 to 70
CPP_FULL_CONTRIBUTORY_YEARS = 40

# OAS deferral bonus and the age-75 increase
OAS_DEFERRAL_BONUS_PER_MONTH = 0.006
OAS_MAX_DEFERRAL_MONTHS = 60
OAS_LATE_LIFE_AGE = 75
OAS_LATE_LIFE_INCREASE = 1.10


def estimate_cpp(
    years_contributed: float,
    start_age: float,
    inflation_factor: float = 1.0,
    rates: TaxRates = TAX_CONSTANTS_2025,
) -> float:
    """
    Estimates the annual CPP retirement pension.

    The maximum benefit at 65 is prorated linearly by contributory years
    (40 for a full pension) and adjusted -0.6% per month taken before 65 or
    +0.7% per month deferred after 65.
    """
    max_annual = rates.cpp.max_annual_benefit * inflation_factor
    percent_of_max = min(1.0, max(0.0, years_contributed / CPP_FULL_CONTRIBUTORY_YEARS))

    months_diff = (start_age - STANDARD_START_AGE) * 12
    months_diff = max(-CPP_MAX_ADJUSTMENT_MONTHS, min(CPP_MAX_ADJUSTMENT_MONTHS, months_diff))

    if months_diff < 0:
        adjustment = 1.0 - abs(months_diff) * CPP_EARLY_REDUCTION_PER_MONTH
    elif months_diff > 0:
        adjustment = 1.0 + months_diff * CPP_LATE_INCREASE_PER_MONTH
    else:
        adjustment = 1.0

    return max_annual * percent_of_max * adjustment


def estimate_oas(
    age: float,
    start_age: float,
    inflation_factor: float = 1.0,
    rates: TaxRates = TAX_CONSTANTS_2025,
) -> float:
    """Annual OAS at `age`: zero before start, deferral bonus after 65, +10% from 75."""
    if age < start_age:
        return 0.0

    base_oas = rates.oas.max_annual_benefit * inflation_factor

    if start_age > STANDARD_START_AGE:
        months_delayed = min((start_age - STANDARD_START_AGE) * 12, OAS_MAX_DEFERRAL_MONTHS)
        base_oas *= 1 + months_delayed * OAS_DEFERRAL_BONUS_PER_MONTH

    if age >= OAS_LATE_LIFE_AGE:
        return base_oas * OAS_LATE_LIFE_INCREASE

    return base_oas


def cpp_income(person: Person, age: int, inflation_factor: float = 1.0, rates: TaxRates = TAX_CONSTANTS_2025) -> float:
    if age < person.cpp_start_age:
        return 0.0
    return estimate_cpp(person.cpp_contributed_years, person.cpp_start_age, inflation_factor, rates)


def oas_income(person: Person, age: int, inflation_factor: float = 1.0, rates: TaxRates = TAX_CONSTANTS_2025) -> float:
    return estimate_oas(age, person.oas_start_age, inflation_factor, rates)

# engine/rrif_tables.py

"""
RRIF minimum withdrawal factors (federal prescribed factors, post-2015).

The factor is applied to the deferred-account balance at the start of the year.
Below the first table age the simplified early-conversion rate applies; from
the last table age onward the factor is capped.
"""

from typing import Dict

from config.plan_assumptions import (
    MANDATORY_CONVERSION_AGE,
    RRIF_TABLE_CAP_RATE,
    RRIF_TABLE_FLOOR_RATE,
)

# =============================================================================
# RRIF MINIMUM FACTORS (AGES 71-94)
# =============================================================================
RRIF_MINIMUM_FACTORS: Dict[int, float] = {
    71: 0.0528, 72: 0.0540, 73: 0.0553, 74: 0.0567, 75: 0.0582,
    76: 0.0598, 77: 0.0617, 78: 0.0636, 79: 0.0658, 80: 0.0682,
    81: 0.0708, 82: 0.0738, 83: 0.0771, 84: 0.0808, 85: 0.0851,
    86: 0.0899, 87: 0.0955, 88: 0.1021, 89: 0.1099, 90: 0.1192,
    91: 0.1306, 92: 0.1449, 93: 0.1634, 94: 0.1879,
}

FIRST_TABLE_AGE = min(RRIF_MINIMUM_FACTORS)
LAST_TABLE_AGE = max(RRIF_MINIMUM_FACTORS)


def get_rrif_factor(age: int) -> float:
    """Returns the minimum withdrawal fraction for `age`."""
    if age < FIRST_TABLE_AGE:
        return RRIF_TABLE_FLOOR_RATE
    if age > LAST_TABLE_AGE:
        return RRIF_TABLE_CAP_RATE
    return RRIF_MINIMUM_FACTORS[int(age)]


def compute_rrif_minimum(
    balance: float,
    age: int,
    conversion_age: int = MANDATORY_CONVERSION_AGE,
) -> float:
    """Mandatory minimum for the year; zero before the conversion age."""
    if age < conversion_age or balance <= 0:
        return 0.0
    return balance * get_rrif_factor(age)


__all__ = ["get_rrif_factor", "compute_rrif_minimum", "RRIF_MINIMUM_FACTORS"]

# utils/tax_utils.py
import logging
from functools import lru_cache
from typing import Dict, List, NamedTuple, Sequence, Tuple, Union

import numpy as np

from models import CPPConstants, OASConstants, TaxBracket, TaxRates

logger = logging.getLogger(__name__)

# =============================================================================
# 1. Federal Income Tax Brackets (2025 Estimated)
# =============================================================================

FEDERAL_BRACKETS_2025: List[Tuple[float, float]] = [
    (0, 0.15), (55_867, 0.205), (111_733, 0.26), (173_205, 0.29), (246_752, 0.33),
]

# =============================================================================
# 2. Provincial / Territorial Brackets (threshold, rate)
# =============================================================================

PROVINCIAL_BRACKETS_2025: Dict[str, List[Tuple[float, float]]] = {
    "AB": [(0, 0.10), (157_978, 0.12), (189_574, 0.13), (252_765, 0.14), (379_148, 0.15)],
    "BC": [
        (0, 0.0506), (49_279, 0.077), (98_560, 0.105), (113_158, 0.1229),
        (137_407, 0.147), (186_306, 0.168), (259_829, 0.205),
    ],
    "MB": [(0, 0.108), (47_000, 0.1275), (100_000, 0.174)],
    "NB": [(0, 0.094), (51_306, 0.14), (102_614, 0.16), (190_060, 0.195)],
    "NL": [
        (0, 0.087), (44_192, 0.145), (88_382, 0.158), (157_792, 0.178),
        (220_910, 0.198), (282_214, 0.208), (564_429, 0.213), (1_128_858, 0.218),
    ],
    "NS": [(0, 0.0879), (30_507, 0.1495), (61_015, 0.1667), (95_883, 0.175), (154_650, 0.21)],
    "NT": [(0, 0.059), (51_964, 0.086), (103_930, 0.122), (168_967, 0.1405)],
    "NU": [(0, 0.04), (54_707, 0.07), (109_413, 0.09), (177_881, 0.115)],
    "ON": [(0, 0.0505), (52_886, 0.0915), (105_775, 0.1116), (150_000, 0.1216), (220_000, 0.1316)],
    "PE": [(0, 0.095), (33_328, 0.1347), (64_656, 0.166), (105_000, 0.1762), (140_000, 0.19)],
    "QC": [(0, 0.14), (53_255, 0.19), (106_495, 0.24), (129_590, 0.2575)],
    "SK": [(0, 0.105), (53_463, 0.125), (152_750, 0.145)],
    "YT": [(0, 0.064), (57_375, 0.09), (114_750, 0.109), (177_882, 0.128), (500_000, 0.15)],
}

# =============================================================================
# 3. Basic Personal Amounts (Indexed)
# =============================================================================

BASIC_PERSONAL_AMOUNT_2025: Dict[str, float] = {
    "federal": 15_705,
    "AB": 21_885, "BC": 12_588, "MB": 15_780, "NB": 13_044, "NL": 10_818,
    "NS": 11_481, "NT": 17_373, "NU": 18_767, "ON": 12_399, "PE": 13_500,
    "QC": 18_056, "SK": 18_491, "YT": 15_705,
}

# =============================================================================
# 4. Credits (Indexed amounts, fixed rates)
# =============================================================================

FEDERAL_CREDIT_RATE = 0.15
COMBINED_CREDIT_RATE = 0.20          # approx. federal + provincial value of a credit

PENSION_CREDIT_AMOUNT = 2_000

AGE_AMOUNT = 8_790
AGE_AMOUNT_THRESHOLD = 44_325
AGE_AMOUNT_REDUCTION_RATE = 0.15
AGE_CREDIT_MIN_AGE = 65

# Eligible dividend tax credit, as a fraction of the grossed-up dividend
FEDERAL_DIVIDEND_CREDIT_RATE = 0.150198
DEFAULT_PROVINCIAL_DIVIDEND_CREDIT_RATE = 0.10
PROVINCIAL_DIVIDEND_CREDIT_RATES: Dict[str, float] = {
    "AB": 0.0812, "BC": 0.12, "MB": 0.08, "NB": 0.14, "NL": 0.063,
    "NS": 0.0885, "NT": 0.115, "NU": 0.0551, "ON": 0.10, "PE": 0.105,
    "QC": 0.117, "SK": 0.11, "YT": 0.1202,
}

# =============================================================================
# 5. Ontario Health Premium and Surtax
# =============================================================================

# (upper bound of band, premium) - premium is a flat amount, bands are indexed
ONTARIO_HEALTH_PREMIUM_BANDS: List[Tuple[float, float]] = [
    (20_000, 0), (36_000, 300), (48_000, 450), (72_000, 600), (200_000, 750), (np.inf, 900),
]
ONTARIO_SURTAX_TIERS: List[Tuple[float, float]] = [(5_315, 0.20), (6_802, 0.36)]

# =============================================================================
# 6. Benefit Programs
# =============================================================================

OAS_CLAWBACK_RATE = 0.15

# =============================================================================
# 7. Default Table
# =============================================================================

def _make_brackets(pairs: Sequence[Tuple[float, float]]) -> Tuple[TaxBracket, ...]:
    return tuple(TaxBracket(threshold=float(t), rate=float(r)) for t, r in pairs)


TAX_CONSTANTS_2025 = TaxRates(
    version="2025",
    federal_brackets=_make_brackets(FEDERAL_BRACKETS_2025),
    provincial_brackets={code: _make_brackets(b) for code, b in PROVINCIAL_BRACKETS_2025.items()},
    basic_personal_amount=dict(BASIC_PERSONAL_AMOUNT_2025),
    cpp=CPPConstants(
        max_pensionable_earnings=68_500,
        basic_exemption=3_500,
        max_contribution=3_867,
        max_annual_benefit=17_196,
    ),
    oas=OASConstants(
        max_annual_benefit=8_820,
        clawback_threshold=90_997,
    ),
    default_jurisdiction="ON",
)


# =============================================================================
# 8. Jurisdiction Resolution
# =============================================================================

class TaxTableError(ValueError):
    """Raised when a bracket table is malformed (e.g. thresholds not ascending)."""


class UnknownJurisdictionError(KeyError):
    """Raised in strict mode when a jurisdiction code has no brackets or personal amount."""


class JurisdictionResolution(NamedTuple):
    code: str           # the jurisdiction whose tables will be used
    requested: str      # what the caller asked for
    is_fallback: bool


@lru_cache(maxsize=None)
def _warn_fallback(requested: str, default: str, version: str) -> None:
    # Cached so each unknown code is reported once per table version
    logger.warning(
        f"No tax tables for jurisdiction '{requested}' in TaxRates {version}. "
        f"Falling back to '{default}'."
    )


def resolve_jurisdiction(
    jurisdiction: str,
    rates: TaxRates = TAX_CONSTANTS_2025,
    strict: bool = False,
) -> JurisdictionResolution:
    """
    Resolves a jurisdiction code against the tax table.

    A code is known when it has both a bracket sequence and a basic personal
    amount. Unknown codes fall back to `rates.default_jurisdiction` (logged and
    flagged on the returned value) unless `strict` is set, in which case
    UnknownJurisdictionError is raised.
    """
    requested = (jurisdiction or "").strip().upper()
    if requested in rates.provincial_brackets and requested in rates.basic_personal_amount:
        return JurisdictionResolution(requested, requested, False)

    if strict:
        raise UnknownJurisdictionError(requested)

    _warn_fallback(requested, rates.default_jurisdiction, rates.version)
    return JurisdictionResolution(rates.default_jurisdiction, requested, True)


# =============================================================================
# 9. Core Utility Functions (indexed values)
# =============================================================================

def validate_brackets(brackets: Sequence[TaxBracket]) -> None:
    """Bracket thresholds must start somewhere and strictly ascend."""
    if not brackets:
        raise TaxTableError("Bracket sequence is empty")
    thresholds = [b.threshold for b in brackets]
    if any(later <= earlier for earlier, later in zip(thresholds, thresholds[1:])):
        raise TaxTableError(f"Bracket thresholds must be ascending, got {thresholds}")


def index_brackets(
    brackets: Sequence[TaxBracket],
    inflation_factor: float = 1.0,
) -> List[Tuple[float, float, float]]:
    """Returns (low, high, rate) tuples with bounds scaled by inflation; the last high is inf."""
    validate_brackets(brackets)
    indexed = []
    for i, bracket in enumerate(brackets):
        low = bracket.threshold * inflation_factor
        high = brackets[i + 1].threshold * inflation_factor if i < len(brackets) - 1 else np.inf
        indexed.append((low, high, bracket.rate))
    return indexed


def get_indexed_constants(
    jurisdiction: str,
    inflation_factor: float = 1.0,
    rates: TaxRates = TAX_CONSTANTS_2025,
    strict: bool = False,
) -> Dict[str, Union[float, str, bool, List]]:
    """
    Returns a dictionary of all brackets, personal amounts and credit
    parameters indexed to the given inflation factor.
    """
    resolution = resolve_jurisdiction(jurisdiction, rates, strict)
    code = resolution.code
    provincial = rates.provincial_brackets[code]

    return {
        "jurisdiction": code,
        "is_fallback": resolution.is_fallback,
        "fed_list": index_brackets(rates.federal_brackets, inflation_factor),
        "prov_list": index_brackets(provincial, inflation_factor),
        "federal_bpa": rates.basic_personal_amount["federal"] * inflation_factor,
        "provincial_bpa": rates.basic_personal_amount[code] * inflation_factor,
        "provincial_first_rate": provincial[0].rate,
        "pension_credit_cap": PENSION_CREDIT_AMOUNT * inflation_factor,
        "age_amount": AGE_AMOUNT * inflation_factor,
        "age_threshold": AGE_AMOUNT_THRESHOLD * inflation_factor,
        "provincial_dtc_rate": PROVINCIAL_DIVIDEND_CREDIT_RATES.get(
            code, DEFAULT_PROVINCIAL_DIVIDEND_CREDIT_RATE
        ),
        "oas_clawback_threshold": rates.oas.clawback_threshold * inflation_factor,
    }

# models.py
import copy
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config.plan_assumptions import MANDATORY_CONVERSION_AGE


# =============================================================================
# 1. Tax Tables
# =============================================================================

@dataclass(frozen=True)
class TaxBracket:
    threshold: float
    rate: float


@dataclass(frozen=True)
class CPPConstants:
    max_pensionable_earnings: float
    basic_exemption: float
    max_contribution: float
    max_annual_benefit: float      # at age 65, 40 contributory years


@dataclass(frozen=True)
class OASConstants:
    max_annual_benefit: float      # at age 65, before deferral bonus
    clawback_threshold: float


@dataclass(frozen=True)
class TaxRates:
    """
    One year's worth of tax and benefit constants. Passed explicitly into every
    tax call; never mutated.
    """
    version: str
    federal_brackets: Tuple[TaxBracket, ...]
    provincial_brackets: Dict[str, Tuple[TaxBracket, ...]]
    basic_personal_amount: Dict[str, float]   # "federal" plus one entry per jurisdiction
    cpp: CPPConstants
    oas: OASConstants
    default_jurisdiction: str = "ON"


# =============================================================================
# 2. Accounts and People
# =============================================================================

@dataclass
class Account:
    balance: float = 0.0

    def withdraw(self, amount: float) -> float:
        """Takes up to `amount` out of the account and returns what was actually taken."""
        take = min(max(0.0, amount), max(0.0, self.balance))
        self.balance -= take
        return take

    def deposit(self, amount: float) -> None:
        if amount > 0:
            self.balance += amount


@dataclass
class AssetMix:
    interest: float = 0.0
    dividend: float = 0.0
    capital_gain: float = 1.0


@dataclass
class NonRegisteredAccount(Account):
    adjusted_cost_base: float = 0.0
    asset_mix: AssetMix = field(default_factory=AssetMix)

    def withdraw(self, amount: float) -> float:
        """
        Withdraws principal and returns the realized capital gain.

        The ACB shrinks in proportion to the share of the balance withdrawn.
        """
        balance_before = self.balance
        take = super().withdraw(amount)
        if take <= 0 or balance_before <= 0:
            return 0.0
        gain_ratio = max(0.0, 1.0 - self.adjusted_cost_base / balance_before)
        self.adjusted_cost_base *= (1.0 - take / balance_before)
        return take * gain_ratio

    def deposit(self, amount: float) -> None:
        # New money is principal: balance and ACB rise together
        if amount > 0:
            self.balance += amount
            self.adjusted_cost_base += amount

    @property
    def unrealized_gain(self) -> float:
        return max(0.0, self.balance - self.adjusted_cost_base)


@dataclass
class Person:
    age: int
    retirement_age: int
    life_expectancy: int                     # death age
    current_income: float = 0.0
    cpp_start_age: int = 65
    cpp_contributed_years: float = 40.0      # max 40
    oas_start_age: int = 65
    rrsp_melt_start_age: Optional[int] = None  # defaults to retirement_age
    rrsp_melt_amount: float = 0.0
    rrsp: Account = field(default_factory=Account)
    tfsa: Account = field(default_factory=Account)
    non_registered: NonRegisteredAccount = field(default_factory=NonRegisteredAccount)

    def clone(self) -> "Person":
        return copy.deepcopy(self)

    @property
    def total_assets(self) -> float:
        return self.rrsp.balance + self.tfsa.balance + self.non_registered.balance


# =============================================================================
# 3. Simulation Inputs
# =============================================================================

@dataclass
class OneTimeEvent:
    name: str
    amount: float            # today's dollars
    age: int                 # primary person's age when it happens
    kind: str = "expense"    # "expense" | "inflow"


@dataclass
class ReturnRates:
    interest: float = 0.0
    dividend: float = 0.0
    capital_growth: float = 0.0
    volatility: Optional[float] = None


@dataclass
class SimulationInputs:
    person: Person
    spouse: Optional[Person] = None
    province: str = "ON"
    inflation_rate: float = 0.0
    pre_retirement_spend: float = 0.0
    post_retirement_spend: float = 0.0
    one_time_events: List[OneTimeEvent] = field(default_factory=list)
    withdrawal_strategy: str = "tax-efficient"   # "tax-efficient" | "rrsp-first"
    use_income_splitting: bool = False
    return_rates: ReturnRates = field(default_factory=ReturnRates)
    mandatory_conversion_age: int = MANDATORY_CONVERSION_AGE
    strict_jurisdiction: bool = False
    tax_rates: Optional[TaxRates] = None         # None -> TAX_CONSTANTS_2025
    rrsp_deficit_split: str = "equal"            # "equal" | "pro-rata"
    start_year: Optional[int] = None             # None -> current calendar year

    def clone(self) -> "SimulationInputs":
        return copy.deepcopy(self)


# =============================================================================
# 4. Results
# =============================================================================

@dataclass
class AccountSnapshot:
    rrsp: float = 0.0
    tfsa: float = 0.0
    non_registered: float = 0.0
    non_registered_acb: float = 0.0

    @property
    def total(self) -> float:
        return self.rrsp + self.tfsa + self.non_registered


@dataclass
class SimulationResult:
    year_index: int
    year: int
    age: int
    spouse_age: Optional[int]
    total_assets: float
    gross_income: float          # household taxable income
    cpp_income: float
    oas_income: float
    net_income: float
    spending: float
    tax_paid: float
    accounts: AccountSnapshot
    spouse_accounts: Optional[AccountSnapshot]

    # Net-of-tax cash by source (household)
    net_employment_income: float = 0.0
    net_cpp_income: float = 0.0
    net_oas_income: float = 0.0
    net_investment_income: float = 0.0
    net_rrsp_withdrawal: float = 0.0
    net_tfsa_withdrawal: float = 0.0
    net_non_reg_withdrawal: float = 0.0

    # Surplus allocation
    reinvested_tfsa: float = 0.0
    reinvested_rrsp: float = 0.0
    reinvested_non_reg: float = 0.0

    # Per-person net withdrawals
    person_net_rrsp: float = 0.0
    spouse_net_rrsp: float = 0.0
    person_net_tfsa: float = 0.0
    spouse_net_tfsa: float = 0.0
    person_net_non_reg: float = 0.0
    spouse_net_non_reg: float = 0.0

    # Raw tracking
    total_tfsa_withdrawal: float = 0.0
    total_non_reg_withdrawal: float = 0.0
    total_rrsp_withdrawal: float = 0.0
    employment_income: float = 0.0
    investment_income: float = 0.0
    total_realized_cap_gains: float = 0.0
    inflation_factor: float = 1.0
    growth_rate: float = 0.0
    household_surplus: float = 0.0
    household_deficit: float = 0.0
    unmet_deficit: float = 0.0

    # Income splitting
    pension_split_amount: float = 0.0
    pension_split_from: Optional[str] = None
    tax_savings_from_split: float = 0.0

    # Death year / estate
    is_death_year: bool = False
    person_death_this_year: bool = False
    spouse_death_this_year: bool = False
    rrsp_rolled_to_spouse: float = 0.0
    terminal_tax_on_rrsp: float = 0.0
    terminal_tax_on_cap_gains: float = 0.0
    total_terminal_tax: float = 0.0
    gross_estate_value: float = 0.0
    net_estate_value: float = 0.0

    jurisdiction_fallback: bool = False


@dataclass
class MonteCarloPercentile:
    year: int
    age: int
    p5: float
    p25: float
    p50: float
    p75: float
    p95: float


@dataclass
class MonteCarloResult:
    percentiles: List[MonteCarloPercentile]
    success_rate: float              # 0-100
    median_end_of_plan_assets: float
    iterations: int = 0
    seed: Optional[int] = None


# =============================================================================
# 5. Income Splitting
# =============================================================================

@dataclass
class SplitCandidate:
    age: int
    taxable_income: float
    eligible_pension_income: float = 0.0
    oas_income: float = 0.0
    grossed_up_dividends: float = 0.0


@dataclass
class SplitResult:
    amount: float
    from_whom: Optional[str]                 # "a", "b" or None
    savings: float
    both_new_taxes: Tuple[float, float]

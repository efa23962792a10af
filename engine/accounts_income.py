# engine/accounts_income.py

import logging
from dataclasses import dataclass
from models import Person, ReturnRates, SplitCandidate, TaxRates
from engine.benefits import cpp_income, oas_income
from engine.rrif_tables import compute_rrif_minimum
from engine.tax_engine import compute_total_tax
from config.plan_assumptions import (
    CAPITAL_GAINS_INCLUSION_RATE,
    DIVIDEND_GROSS_UP,
    PENSION_SPLIT_MIN_AGE,
)

logger = logging.getLogger(__name__)


@dataclass
class PersonYear:
    """
    One living person's income and withdrawals for a single simulated year.

    Amounts accumulate as the household waterfalls run; `tax` holds the most
    recent tax + clawback figure computed for the person.
    """
    age: int
    employment_income: float = 0.0
    cpp_income: float = 0.0
    oas_income: float = 0.0
    rrif_withdrawal: float = 0.0
    melt_withdrawal: float = 0.0
    extra_rrsp_withdrawal: float = 0.0
    interest_income: float = 0.0
    dividend_income: float = 0.0
    realized_cap_gains: float = 0.0
    tfsa_withdrawal: float = 0.0
    non_reg_withdrawal: float = 0.0
    melt_active: bool = False
    tax: float = 0.0

    @property
    def rrsp_income(self) -> float:
        return self.rrif_withdrawal + self.melt_withdrawal + self.extra_rrsp_withdrawal

    @property
    def grossed_up_dividends(self) -> float:
        return self.dividend_income * DIVIDEND_GROSS_UP

    @property
    def investment_income(self) -> float:
        return self.interest_income + self.dividend_income

    @property
    def eligible_pension_income(self) -> float:
        # RRSP/RRIF income qualifies for the pension credit and splitting from 65
        return self.rrsp_income if self.age >= PENSION_SPLIT_MIN_AGE else 0.0

    @property
    def taxable_income(self) -> float:
        return (
            self.employment_income
            + self.cpp_income
            + self.oas_income
            + self.rrsp_income
            + self.interest_income
            + self.grossed_up_dividends
            + self.realized_cap_gains * CAPITAL_GAINS_INCLUSION_RATE
        )

    @property
    def cash_income(self) -> float:
        """Pre-tax cash received from forced sources and RRSP withdrawals."""
        return (
            self.employment_income
            + self.cpp_income
            + self.oas_income
            + self.rrsp_income
            + self.interest_income
            + self.dividend_income
        )

    def to_split_candidate(self) -> SplitCandidate:
        return SplitCandidate(
            age=self.age,
            taxable_income=self.taxable_income,
            eligible_pension_income=self.eligible_pension_income,
            oas_income=self.oas_income,
            grossed_up_dividends=self.grossed_up_dividends,
        )


class AccountsIncomeEngine:
    """
    Computes each living person's forced income for a year: employment,
    CPP, OAS, RRIF minimum, voluntary melt and non-registered yield.

    Withdrawals are applied to the person's accounts immediately.
    """
    def __init__(
        self,
        jurisdiction: str,
        return_rates: ReturnRates,
        rates: TaxRates,
        conversion_age: int,
        strict_jurisdiction: bool = False,
    ):
        self.jurisdiction = jurisdiction
        self.return_rates = return_rates
        self.rates = rates
        self.conversion_age = conversion_age
        self.strict_jurisdiction = strict_jurisdiction

    # ----------------------------------------------------------------------
    # Forced income
    # ----------------------------------------------------------------------
    def compute_forced_income(
        self,
        person: Person,
        age: int,
        inflation_factor: float,
        allow_melt: bool = True,
    ) -> PersonYear:
        year = PersonYear(age=age)

        # 1. Employment and government benefits
        if age < person.retirement_age:
            year.employment_income = person.current_income
        year.cpp_income = cpp_income(person, age, inflation_factor, self.rates)
        year.oas_income = oas_income(person, age, inflation_factor, self.rates)

        # 2. Mandatory RRIF minimum (start-of-year balance)
        rrif_min = compute_rrif_minimum(person.rrsp.balance, age, self.conversion_age)
        year.rrif_withdrawal = person.rrsp.withdraw(rrif_min)

        # 3. Voluntary melt between melt start and conversion
        year.melt_active = allow_melt and self.melt_window_open(person, age)
        if year.melt_active:
            year.melt_withdrawal = person.rrsp.withdraw(person.rrsp_melt_amount)

        # 4. Non-registered yield, paid out as cash
        balance = person.non_registered.balance
        mix = person.non_registered.asset_mix
        year.interest_income = balance * mix.interest * self.return_rates.interest
        year.dividend_income = balance * mix.dividend * self.return_rates.dividend

        year.tax = self.compute_person_tax(year, inflation_factor)
        logger.debug(
            f"Age {age}: forced taxable ${year.taxable_income:,.0f}, "
            f"RRIF ${year.rrif_withdrawal:,.0f}, melt ${year.melt_withdrawal:,.0f}"
        )
        return year

    def melt_window_open(self, person: Person, age: int) -> bool:
        if person.rrsp_melt_amount <= 0:
            return False
        melt_start = person.rrsp_melt_start_age
        if melt_start is None:
            melt_start = person.retirement_age
        return melt_start <= age < self.conversion_age

    # ----------------------------------------------------------------------
    # Tax
    # ----------------------------------------------------------------------
    def compute_person_tax(
        self,
        year: PersonYear,
        inflation_factor: float,
    ) -> float:
        """Tax + OAS clawback on the person's current taxable income."""
        return compute_total_tax(
            year.taxable_income,
            self.jurisdiction,
            inflation_factor,
            self.rates,
            age=year.age,
            eligible_pension_income=year.eligible_pension_income,
            grossed_up_dividends=year.grossed_up_dividends,
            oas_income=year.oas_income,
            strict=self.strict_jurisdiction,
        )

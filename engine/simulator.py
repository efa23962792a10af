# engine.simulator.py

import logging
from datetime import date
from typing import List, Optional, Tuple

import numpy as np

from models import AccountSnapshot, Person, SimulationInputs, SimulationResult
from engine.accounts_income import AccountsIncomeEngine
from engine.withdrawal_engine import HouseholdMember, ReinvestmentOutcome, WithdrawalEngine, WithdrawalOutcome
from engine.estate import compute_terminal_tax, rollover_to_survivor
from engine.split_optimizer import compute_optimal_split
from engine.market_generator import generate_growth_path
from utils.tax_utils import TAX_CONSTANTS_2025, resolve_jurisdiction
from utils.validation import projection_years, validate_inputs
from config.market_assumptions import default_volatility

logger = logging.getLogger(__name__)


class RetirementSimulator:
    """
    Projects a household's accounts, income and tax one year at a time until
    both people have died.

    Each person moves through pre-retirement, retired, mandatory-withdrawal
    and deceased states purely by age. The simulator works on a clone of the
    inputs; the caller's records are never mutated.
    """
    def __init__(
        self,
        inputs: SimulationInputs,
        stochastic: bool = False,
        rng: Optional[np.random.Generator] = None,
    ):
        # -----------------------
        # STEP 1: Clone Inputs
        # -----------------------
        self.inputs = inputs.clone()
        self.person = self.inputs.person
        self.spouse = self.inputs.spouse
        self.rates = self.inputs.tax_rates or TAX_CONSTANTS_2025
        self.stochastic = stochastic
        self.rng = rng
        self.start_year = self.inputs.start_year or date.today().year

        # -----------------------
        # STEP 2: Resolve Jurisdiction
        # -----------------------
        resolution = resolve_jurisdiction(self.inputs.province, self.rates, self.inputs.strict_jurisdiction)
        self.jurisdiction = resolution.code
        self.jurisdiction_fallback = resolution.is_fallback

        # -----------------------
        # STEP 3: Engines
        # -----------------------
        self.accounts_income = AccountsIncomeEngine(
            jurisdiction=self.jurisdiction,
            return_rates=self.inputs.return_rates,
            rates=self.rates,
            conversion_age=self.inputs.mandatory_conversion_age,
        )
        self.withdrawal_engine = WithdrawalEngine(
            jurisdiction=self.jurisdiction,
            rates=self.rates,
            strategy=self.inputs.withdrawal_strategy,
            rrsp_split=self.inputs.rrsp_deficit_split,
        )

    # =========================================================================
    # 1. CORE SIMULATION RUNNER
    # =========================================================================
    def run(self) -> List[SimulationResult]:
        """Returns one result per simulated year, or [] when the inputs are rejected."""
        problems = validate_inputs(self.inputs)
        if problems:
            logger.warning(f"Simulation inputs rejected: {'; '.join(problems)}")
            return []

        n_years = projection_years(self.person, self.spouse)
        growth_path = self._generate_growth_path(n_years)

        results = []
        for year_index in range(n_years):
            result = self._simulate_year(year_index, float(growth_path[year_index]))
            if result is None:
                break
            results.append(result)
        return results

    def _generate_growth_path(self, n_years: int) -> np.ndarray:
        mean = self.inputs.return_rates.capital_growth
        if not self.stochastic:
            return np.full(n_years, mean, dtype=np.float64)
        volatility = self.inputs.return_rates.volatility
        if volatility is None:
            volatility = default_volatility
        rng = self.rng if self.rng is not None else np.random.default_rng()
        return generate_growth_path(n_years, mean, volatility, rng)

    # =========================================================================
    # 2. ONE YEAR
    # =========================================================================
    def _simulate_year(self, year_index: int, growth: float) -> Optional[SimulationResult]:
        inputs = self.inputs
        person_age = self.person.age + year_index
        spouse_age = self.spouse.age + year_index if self.spouse is not None else None

        person_alive = person_age <= self.person.life_expectancy
        spouse_alive = self.spouse is not None and spouse_age <= self.spouse.life_expectancy
        if not person_alive and not spouse_alive:
            return None

        inflation_factor = (1 + inputs.inflation_rate) ** year_index

        # --- 1. Forced income per living person ---
        members = []
        if person_alive:
            members.append(self._member("person", self.person, person_age, inflation_factor))
        if spouse_alive:
            members.append(self._member("spouse", self.spouse, spouse_age, inflation_factor))

        # --- 2. Household cash position ---
        spend, event_inflow = self._calculate_annual_spending_needs(members, person_age, inflation_factor)
        base_net_cash = sum(m.year.cash_income - m.year.tax for m in members) + event_inflow
        deficit = max(0.0, spend - base_net_cash)
        surplus = max(0.0, base_net_cash - spend)

        # --- 3. Deficit waterfall ---
        withdrawals = self.withdrawal_engine._withdraw_from_hierarchy(deficit, members, inflation_factor)

        # --- 4. Surplus waterfall ---
        reinvested = self.withdrawal_engine.reinvest_surplus(
            surplus, members, inflation_factor, inputs.mandatory_conversion_age
        )

        # --- 5. Final tax, optional pension splitting ---
        for member in members:
            member.year.tax = self.accounts_income.compute_person_tax(member.year, inflation_factor)
        split_amount, split_from, split_savings = self._apply_income_splitting(members, inflation_factor)

        # --- 6. Growth ---
        for member in members:
            self._apply_growth(member.person, growth)

        logger.debug(
            f"Year {year_index} (age {person_age}): spend ${spend:,.0f}, deficit ${deficit:,.0f}, "
            f"surplus ${surplus:,.0f}, tax ${sum(m.year.tax for m in members):,.0f}"
        )

        # --- 7/8. Emit, with death-year handling ---
        return self._build_result(
            year_index, person_age, spouse_age, members, inflation_factor, growth,
            spend, deficit, surplus, event_inflow, withdrawals, reinvested,
            split_amount, split_from, split_savings,
        )

    def _member(self, label: str, person: Person, age: int, inflation_factor: float) -> HouseholdMember:
        # RRSP-first households drain the RRSP through the waterfall once retired
        allow_melt = not (self.inputs.withdrawal_strategy == "rrsp-first" and age >= person.retirement_age)
        year = self.accounts_income.compute_forced_income(person, age, inflation_factor, allow_melt)
        return HouseholdMember(label, person, year)

    def _calculate_annual_spending_needs(
        self,
        members: List[HouseholdMember],
        person_age: int,
        inflation_factor: float,
    ) -> Tuple[float, float]:
        """
        Returns (spend, inflow): the year's household spending target including
        one-time expenses, and one-time inflows, all inflation-scaled.
        """
        still_working = any(m.year.age < m.person.retirement_age for m in members)
        base = self.inputs.pre_retirement_spend if still_working else self.inputs.post_retirement_spend
        spend = base * inflation_factor
        inflow = 0.0

        for event in self.inputs.one_time_events:
            if event.age != person_age:
                continue
            amount = event.amount * inflation_factor
            if event.kind == "inflow":
                inflow += amount
            else:
                spend += amount

        return spend, inflow

    def _apply_income_splitting(self, members: List[HouseholdMember], inflation_factor: float) -> Tuple[float, Optional[str], float]:
        if not self.inputs.use_income_splitting or len(members) < 2:
            return 0.0, None, 0.0

        first, second = members
        split = compute_optimal_split(
            first.year.to_split_candidate(),
            second.year.to_split_candidate(),
            self.jurisdiction,
            inflation_factor,
            self.rates,
        )
        if split.from_whom is None:
            return 0.0, None, 0.0

        first.year.tax, second.year.tax = split.both_new_taxes
        transferor = first if split.from_whom == "a" else second
        return split.amount, transferor.label, split.savings

    @staticmethod
    def _apply_growth(person: Person, growth: float) -> None:
        person.rrsp.balance *= (1 + growth)
        person.tfsa.balance *= (1 + growth)
        # Only the capital share of the open account compounds; its yield was paid out
        capital_fraction = person.non_registered.asset_mix.capital_gain
        person.non_registered.balance *= (1 + capital_fraction * growth)

    # =========================================================================
    # 3. RESULTS
    # =========================================================================
    def _build_result(
        self,
        year_index: int,
        person_age: int,
        spouse_age: Optional[int],
        members: List[HouseholdMember],
        inflation_factor: float,
        growth: float,
        spend: float,
        deficit: float,
        surplus: float,
        event_inflow: float,
        withdrawals: WithdrawalOutcome,
        reinvested: ReinvestmentOutcome,
        split_amount: float,
        split_from: Optional[str],
        split_savings: float,
    ) -> SimulationResult:
        by_label = {m.label: m for m in members}
        years = [m.year for m in members]
        total_tax = sum(y.tax for y in years)

        result = SimulationResult(
            year_index=year_index,
            year=self.start_year + year_index,
            age=person_age,
            spouse_age=spouse_age,
            total_assets=0.0,
            gross_income=sum(y.taxable_income for y in years),
            cpp_income=sum(y.cpp_income for y in years),
            oas_income=sum(y.oas_income for y in years),
            net_income=0.0,
            spending=spend,
            tax_paid=total_tax,
            accounts=AccountSnapshot(),
            spouse_accounts=None,
            employment_income=sum(y.employment_income for y in years),
            investment_income=sum(y.investment_income for y in years),
            total_rrsp_withdrawal=sum(y.rrsp_income for y in years),
            total_tfsa_withdrawal=sum(y.tfsa_withdrawal for y in years),
            total_non_reg_withdrawal=sum(y.non_reg_withdrawal for y in years),
            total_realized_cap_gains=sum(y.realized_cap_gains for y in years),
            reinvested_tfsa=reinvested.tfsa,
            reinvested_rrsp=reinvested.rrsp,
            reinvested_non_reg=reinvested.non_registered,
            inflation_factor=inflation_factor,
            growth_rate=growth,
            household_surplus=surplus,
            household_deficit=deficit,
            unmet_deficit=withdrawals.remaining,
            pension_split_amount=split_amount,
            pension_split_from=split_from,
            tax_savings_from_split=split_savings,
            jurisdiction_fallback=self.jurisdiction_fallback,
        )

        # --- Net-of-tax breakdown: tax allocated pro-rata to taxable sources ---
        for member in members:
            year = member.year
            tax_share = year.tax / year.taxable_income if year.taxable_income > 0 else 0.0
            keep = 1.0 - tax_share
            result.net_employment_income += year.employment_income * keep
            result.net_cpp_income += year.cpp_income * keep
            result.net_oas_income += year.oas_income * keep
            result.net_investment_income += year.investment_income * keep
            net_rrsp = year.rrsp_income * keep
            result.net_rrsp_withdrawal += net_rrsp
            result.net_tfsa_withdrawal += year.tfsa_withdrawal
            result.net_non_reg_withdrawal += year.non_reg_withdrawal
            setattr(result, f"{member.label}_net_rrsp", net_rrsp)
            setattr(result, f"{member.label}_net_tfsa", year.tfsa_withdrawal)
            setattr(result, f"{member.label}_net_non_reg", year.non_reg_withdrawal)

        cash_in = sum(y.cash_income + y.tfsa_withdrawal + y.non_reg_withdrawal for y in years) + event_inflow
        result.net_income = cash_in - total_tax - reinvested.total

        self._handle_deaths(result, by_label, person_age, spouse_age, inflation_factor)

        # --- Balances (after any rollover) ---
        if "person" in by_label:
            result.accounts = self._snapshot(self.person)
        if "spouse" in by_label:
            result.spouse_accounts = self._snapshot(self.spouse)
        result.total_assets = sum(m.person.total_assets for m in members)
        return result

    def _handle_deaths(
        self,
        result: SimulationResult,
        by_label: dict,
        person_age: int,
        spouse_age: Optional[int],
        inflation_factor: float,
    ) -> None:
        person_dies = "person" in by_label and person_age == self.person.life_expectancy
        spouse_dies = "spouse" in by_label and spouse_age == self.spouse.life_expectancy
        if not person_dies and not spouse_dies:
            return

        result.is_death_year = True
        result.person_death_this_year = person_dies
        result.spouse_death_this_year = spouse_dies

        survivors = [m for label, m in by_label.items()
                     if not ((label == "person" and person_dies) or (label == "spouse" and spouse_dies))]
        if survivors:
            survivor = survivors[0].person
            deceased = self.person if person_dies else self.spouse
            result.rrsp_rolled_to_spouse = rollover_to_survivor(deceased, survivor)
            return

        # Last death: deemed disposition on everything still held
        terminal = compute_terminal_tax(
            [m.person for m in by_label.values()], self.jurisdiction, inflation_factor, self.rates
        )
        result.terminal_tax_on_rrsp = terminal.tax_on_rrsp
        result.terminal_tax_on_cap_gains = terminal.tax_on_cap_gains
        result.total_terminal_tax = terminal.total
        result.gross_estate_value = terminal.gross_estate
        result.net_estate_value = terminal.net_estate

    @staticmethod
    def _snapshot(person: Person) -> AccountSnapshot:
        return AccountSnapshot(
            rrsp=person.rrsp.balance,
            tfsa=person.tfsa.balance,
            non_registered=person.non_registered.balance,
            non_registered_acb=person.non_registered.adjusted_cost_base,
        )


def run_simulation(
    inputs: SimulationInputs,
    stochastic: bool = False,
    rng: Optional[np.random.Generator] = None,
) -> List[SimulationResult]:
    """
    Runs one projection.

    Args:
        inputs: Household, accounts and assumptions. Not mutated.
        stochastic: Perturb the capital-growth rate every year.
        rng: Generator for stochastic draws (seed it for reproducible runs).

    Returns:
        list[SimulationResult]: one record per year; empty when the age
        configuration is invalid.
    """
    return RetirementSimulator(inputs, stochastic=stochastic, rng=rng).run()

# engine/withdrawal_engine.py
#
# Household deficit and surplus handling: pulls cash out of accounts in a
# policy-selected order and reinvests surpluses into contribution room.
#

import logging
import math
from dataclasses import dataclass
from typing import List

from models import Person, TaxRates
from engine.accounts_income import PersonYear
from engine.gross_up import marginal_tax_for_gross, solve_gross_withdrawal
from config.plan_assumptions import (
    RRSP_CONTRIBUTION_RATE,
    RRSP_DOLLAR_LIMIT,
    TFSA_ANNUAL_LIMIT,
    TFSA_ROUNDING,
)

logger = logging.getLogger(__name__)

MAX_RRSP_PASSES = 3
DEFICIT_TOLERANCE = 1.0


@dataclass
class HouseholdMember:
    label: str          # "person" | "spouse"
    person: Person
    year: PersonYear


@dataclass
class WithdrawalOutcome:
    requested: float
    remaining: float
    non_registered: float = 0.0
    tfsa: float = 0.0
    rrsp_gross: float = 0.0
    rrsp_net: float = 0.0
    realized_gains: float = 0.0

    @property
    def net_obtained(self) -> float:
        return self.non_registered + self.tfsa + self.rrsp_net


@dataclass
class ReinvestmentOutcome:
    tfsa: float = 0.0
    rrsp: float = 0.0
    non_registered: float = 0.0

    @property
    def total(self) -> float:
        return self.tfsa + self.rrsp + self.non_registered


def tfsa_room(inflation_factor: float) -> float:
    """Indexed TFSA limit rounded to the nearest $500."""
    indexed = TFSA_ANNUAL_LIMIT * inflation_factor
    return math.floor(indexed / TFSA_ROUNDING + 0.5) * TFSA_ROUNDING


def rrsp_room(employment_income: float, inflation_factor: float) -> float:
    return min(employment_income * RRSP_CONTRIBUTION_RATE, RRSP_DOLLAR_LIMIT * inflation_factor)


class WithdrawalEngine:
    """
    Handles logic for prioritizing account withdrawals based on the household's
    withdrawal strategy, and for reinvesting surplus cash.
    """
    def __init__(
        self,
        jurisdiction: str,
        rates: TaxRates,
        strategy: str = "tax-efficient",
        rrsp_split: str = "equal",
    ):
        self.jurisdiction = jurisdiction
        self.rates = rates
        self.strategy = strategy
        self.rrsp_split = rrsp_split

    def _get_withdrawal_order(self) -> List[str]:
        """Account kinds in the order they are drawn for the configured strategy."""
        if self.strategy == "rrsp-first":
            return ["rrsp", "non_registered", "tfsa"]
        # Default: tax-efficient, deferred account last
        return ["non_registered", "tfsa", "rrsp"]

    # =========================================================================
    # 1. DEFICIT WATERFALL
    # =========================================================================
    def _withdraw_from_hierarchy(
        self,
        deficit: float,
        members: List[HouseholdMember],
        inflation_factor: float,
    ) -> WithdrawalOutcome:
        """
        Covers `deficit` (after-tax dollars) following the withdrawal order.

        Args:
            deficit: Net cash still needed by the household.
            members: Living household members; their accounts and PersonYear
                records are updated in place.
            inflation_factor: Cumulative inflation for this year's tax calls.

        Returns:
            WithdrawalOutcome with the amounts drawn per account kind and the
            net deficit left unmet.
        """
        outcome = WithdrawalOutcome(requested=deficit, remaining=deficit)
        if deficit <= 0 or not members:
            return outcome

        for kind in self._get_withdrawal_order():
            if outcome.remaining <= 0:
                break
            if kind == "non_registered":
                self._withdraw_non_registered(outcome, members)
            elif kind == "tfsa":
                self._withdraw_tfsa(outcome, members)
            else:
                self._withdraw_rrsp(outcome, members, inflation_factor)

        outcome.remaining = max(0.0, outcome.remaining)
        if outcome.remaining > DEFICIT_TOLERANCE:
            logger.debug(f"Unmet deficit of ${outcome.remaining:,.0f} after all accounts")
        return outcome

    def _withdraw_non_registered(self, outcome: WithdrawalOutcome, members: List[HouseholdMember]) -> None:
        balances = [m.person.non_registered.balance for m in members]
        pool = sum(balances)
        if pool <= 0:
            return
        take = min(pool, outcome.remaining)
        for member, balance in zip(members, balances):
            share = balance / pool * take
            if share <= 0:
                continue
            gain = member.person.non_registered.withdraw(share)
            member.year.realized_cap_gains += gain
            member.year.non_reg_withdrawal += share
            outcome.non_registered += share
            outcome.realized_gains += gain
        outcome.remaining -= take

    def _withdraw_tfsa(self, outcome: WithdrawalOutcome, members: List[HouseholdMember]) -> None:
        balances = [m.person.tfsa.balance for m in members]
        pool = sum(balances)
        if pool <= 0:
            return
        take = min(pool, outcome.remaining)
        for member, balance in zip(members, balances):
            share = balance / pool * take
            if share <= 0:
                continue
            taken = member.person.tfsa.withdraw(share)
            member.year.tfsa_withdrawal += taken
            outcome.tfsa += taken
        outcome.remaining -= take

    def _rrsp_shares(self, funded: List[HouseholdMember]) -> List[float]:
        if self.rrsp_split == "pro-rata":
            total = sum(m.person.rrsp.balance for m in funded)
            return [m.person.rrsp.balance / total for m in funded]
        return [1.0 / len(funded)] * len(funded)

    def _withdraw_rrsp(
        self,
        outcome: WithdrawalOutcome,
        members: List[HouseholdMember],
        inflation_factor: float,
    ) -> None:
        # A member who runs dry leaves part of their share unmet; later passes
        # hand that remainder to whoever still has a balance.
        for _ in range(MAX_RRSP_PASSES):
            funded = [m for m in members if m.person.rrsp.balance > 0]
            if outcome.remaining <= DEFICIT_TOLERANCE or not funded:
                return
            request = outcome.remaining
            for member, share in zip(funded, self._rrsp_shares(funded)):
                gross, net = self._draw_rrsp_net(member, request * share, inflation_factor)
                outcome.rrsp_gross += gross
                outcome.rrsp_net += net
                outcome.remaining -= net

    def _draw_rrsp_net(self, member: HouseholdMember, target_net: float, inflation_factor: float):
        """Withdraws enough gross to net `target_net`, capped at the balance. Returns (gross, net)."""
        year = member.year
        tax_args = dict(
            current_taxable=year.taxable_income,
            base_benefit_amount=year.oas_income,
            jurisdiction=self.jurisdiction,
            inflation_factor=inflation_factor,
            age=year.age,
            rates=self.rates,
            eligible_pension_income=year.eligible_pension_income,
            grossed_up_dividends=year.grossed_up_dividends,
        )
        gross, marginal = solve_gross_withdrawal(target_net, **tax_args)

        balance = member.person.rrsp.balance
        if gross > balance:
            gross = balance
            marginal = marginal_tax_for_gross(gross, **tax_args)

        taken = member.person.rrsp.withdraw(gross)
        year.extra_rrsp_withdrawal += taken
        return taken, max(0.0, taken - marginal)

    # =========================================================================
    # 2. SURPLUS WATERFALL
    # =========================================================================
    def reinvest_surplus(
        self,
        surplus: float,
        members: List[HouseholdMember],
        inflation_factor: float,
        conversion_age: int,
    ) -> ReinvestmentOutcome:
        """
        Reinvests surplus cash: TFSA room for each living member, then RRSP
        room for members who are employed, under the conversion age and not
        melting, then the rest into non-registered accounts split evenly.
        """
        outcome = ReinvestmentOutcome()
        if surplus <= 0 or not members:
            return outcome
        remaining = surplus

        # --- 1. TFSA ---
        room = tfsa_room(inflation_factor)
        for member in members:
            amount = min(remaining, room)
            if amount <= 0:
                break
            member.person.tfsa.deposit(amount)
            outcome.tfsa += amount
            remaining -= amount

        # --- 2. RRSP ---
        for member in members:
            if remaining <= 0:
                break
            year = member.year
            if year.age >= conversion_age or year.employment_income <= 0 or year.melt_active:
                continue
            amount = min(remaining, rrsp_room(year.employment_income, inflation_factor))
            member.person.rrsp.deposit(amount)
            outcome.rrsp += amount
            remaining -= amount

        # --- 3. Non-registered (new principal) ---
        if remaining > 0:
            share = remaining / len(members)
            for member in members:
                member.person.non_registered.deposit(share)
            outcome.non_registered += remaining

        return outcome

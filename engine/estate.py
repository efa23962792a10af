# engine/estate.py
#
# Death-year handling: spousal rollover of registered and open accounts, and
# the deemed-disposition (terminal) tax owed when the last person dies.
#

import logging
from dataclasses import dataclass
from typing import Iterable

from models import Person, TaxRates
from engine.tax_engine import compute_tax
from utils.tax_utils import TAX_CONSTANTS_2025
from config.plan_assumptions import CAPITAL_GAINS_INCLUSION_RATE

logger = logging.getLogger(__name__)


@dataclass
class TerminalTax:
    rrsp_income: float
    taxable_gains: float
    tax_on_rrsp: float
    tax_on_cap_gains: float
    gross_estate: float

    @property
    def total(self) -> float:
        return self.tax_on_rrsp + self.tax_on_cap_gains

    @property
    def net_estate(self) -> float:
        return self.gross_estate - self.total


def rollover_to_survivor(deceased: Person, survivor: Person) -> float:
    """
    Moves every account of `deceased` to `survivor` and returns the RRSP amount rolled.

    The RRSP rolls tax-free into the survivor's RRSP, the TFSA into the
    survivor's TFSA, and the non-registered balance moves with its ACB.
    """
    rolled_rrsp = deceased.rrsp.withdraw(deceased.rrsp.balance)
    survivor.rrsp.deposit(rolled_rrsp)

    survivor.tfsa.deposit(deceased.tfsa.withdraw(deceased.tfsa.balance))

    survivor.non_registered.balance += deceased.non_registered.balance
    survivor.non_registered.adjusted_cost_base += deceased.non_registered.adjusted_cost_base
    deceased.non_registered.balance = 0.0
    deceased.non_registered.adjusted_cost_base = 0.0

    logger.debug(f"Rolled ${rolled_rrsp:,.0f} of RRSP to surviving spouse")
    return rolled_rrsp


def compute_terminal_tax(
    estate_holders: Iterable[Person],
    jurisdiction: str,
    inflation_factor: float = 1.0,
    rates: TaxRates = TAX_CONSTANTS_2025,
) -> TerminalTax:
    """
    Tax on the deemed disposition at the last death: the full RRSP balance plus
    the taxable half of unrealized non-registered gains, taxed as one year's
    income. Reported only; balances are not reduced.

    The tax is attributed to the RRSP and the gains in proportion to their
    share of terminal income.
    """
    holders = list(estate_holders)
    rrsp_income = sum(p.rrsp.balance for p in holders)
    taxable_gains = sum(p.non_registered.unrealized_gain for p in holders) * CAPITAL_GAINS_INCLUSION_RATE
    gross_estate = sum(p.total_assets for p in holders)

    terminal_income = rrsp_income + taxable_gains
    tax = compute_tax(terminal_income, jurisdiction, inflation_factor, rates) if terminal_income > 0 else 0.0

    rrsp_share = rrsp_income / terminal_income if terminal_income > 0 else 0.0
    return TerminalTax(
        rrsp_income=rrsp_income,
        taxable_gains=taxable_gains,
        tax_on_rrsp=tax * rrsp_share,
        tax_on_cap_gains=tax * (1.0 - rrsp_share) if terminal_income > 0 else 0.0,
        gross_estate=gross_estate,
    )

# engine/summary.py
#
# Tabular view of a projection and the headline plan metrics built from it.
#

from dataclasses import asdict, dataclass, fields
from typing import List, Optional

import pandas as pd

from models import AccountSnapshot, SimulationInputs, SimulationResult
from config.plan_assumptions import OUT_OF_MONEY_THRESHOLD

ACCOUNT_FIELDS = [f.name for f in fields(AccountSnapshot)]


@dataclass
class PlanSummary:
    estate_value: float
    estate_tax: float
    net_estate_value: float
    lifetime_tax: float                  # retirement years
    lifetime_gross_income: float         # retirement years
    net_retirement_income: float
    total_tax_plus_estate: float
    effective_tax_rate_retirement: float # percent
    effective_tax_rate_estate: float     # percent
    total_effective_tax_rate: float      # percent
    total_net_value: float
    out_of_money_age: Optional[int]
    initial_withdrawal_rate: float       # percent


def results_to_frame(results: List[SimulationResult]) -> pd.DataFrame:
    """
    One row per simulated year. Account snapshots are flattened into
    person_* and spouse_* columns (spouse columns are 0 when absent).
    """
    rows = []
    for result in results:
        row = asdict(result)
        person = row.pop("accounts")
        spouse = row.pop("spouse_accounts") or {}
        for name in ACCOUNT_FIELDS:
            row[f"person_{name}"] = person[name]
            row[f"spouse_{name}"] = spouse.get(name, 0.0)
        rows.append(row)
    return pd.DataFrame(rows)


def _initial_withdrawal_rate(df: pd.DataFrame, inputs: SimulationInputs) -> float:
    withdrawals = df["total_rrsp_withdrawal"] + df["total_tfsa_withdrawal"] + df["total_non_reg_withdrawal"]
    matches = df.index[df["age"] == inputs.person.retirement_age]
    retirement_pos = int(matches[0]) if len(matches) else -1

    if retirement_pos > 0:
        start_assets = df["total_assets"].iloc[retirement_pos - 1]
        first_withdrawal = withdrawals.iloc[retirement_pos]
    else:
        # Already retired: the starting balances are the base
        start_assets = inputs.person.total_assets + (inputs.spouse.total_assets if inputs.spouse else 0.0)
        first_withdrawal = withdrawals.iloc[0]

    return float(first_withdrawal / start_assets * 100.0) if start_assets > 0 else 0.0


def summarize_plan(
    results: List[SimulationResult],
    inputs: SimulationInputs,
    real_dollars: bool = False,
) -> Optional[PlanSummary]:
    """
    Headline metrics for a projection: estate value and terminal tax, lifetime
    tax and income over the retirement years, effective rates, the age assets
    first fall below $1,000 after retirement, and the initial withdrawal rate.

    With `real_dollars`, amounts are deflated by each year's inflation factor.
    Returns None for an empty projection.
    """
    if not results:
        return None

    df = results_to_frame(results)
    deflator = df["inflation_factor"] if real_dollars else pd.Series(1.0, index=df.index)

    retired = df["age"] >= inputs.person.retirement_age
    lifetime_tax = float((df["tax_paid"] / deflator)[retired].sum())
    lifetime_income = float((df["gross_income"] / deflator)[retired].sum())

    last = df.iloc[-1]
    last_deflator = float(deflator.iloc[-1])
    estate_value = float(last["total_assets"]) / last_deflator
    estate_tax = float(last["total_terminal_tax"]) / last_deflator
    total_tax_plus_estate = lifetime_tax + estate_tax

    broke = df[retired & (df["total_assets"] < OUT_OF_MONEY_THRESHOLD)]
    out_of_money_age = int(broke["age"].iloc[0]) if len(broke) else None

    def pct(numerator: float, denominator: float) -> float:
        return numerator / denominator * 100.0 if denominator > 0 else 0.0

    net_retirement_income = lifetime_income - lifetime_tax
    net_estate_value = estate_value - estate_tax
    return PlanSummary(
        estate_value=estate_value,
        estate_tax=estate_tax,
        net_estate_value=net_estate_value,
        lifetime_tax=lifetime_tax,
        lifetime_gross_income=lifetime_income,
        net_retirement_income=net_retirement_income,
        total_tax_plus_estate=total_tax_plus_estate,
        effective_tax_rate_retirement=pct(lifetime_tax, lifetime_income),
        effective_tax_rate_estate=pct(estate_tax, estate_value),
        total_effective_tax_rate=pct(total_tax_plus_estate, lifetime_income + estate_value),
        total_net_value=net_retirement_income + net_estate_value,
        out_of_money_age=out_of_money_age,
        initial_withdrawal_rate=_initial_withdrawal_rate(df, inputs),
    )

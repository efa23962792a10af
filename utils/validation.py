# utils/validation.py
#
# Age / lifespan checks run before a projection. Problems are returned as
# messages, never raised; the simulator treats any problem as "inputs rejected".
#

import math
from numbers import Real
from typing import List, Optional

from models import Person, SimulationInputs
from config.plan_assumptions import MAX_SIMULATION_YEARS

WITHDRAWAL_STRATEGIES = ("tax-efficient", "rrsp-first")
RRSP_SPLIT_POLICIES = ("equal", "pro-rata")
EVENT_KINDS = ("expense", "inflow")


def _is_age(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    if not math.isfinite(value) or value < 0:
        return False
    # Projection years and the death year are counted in whole years of age
    return float(value).is_integer()


def validate_person(person: Person, label: str = "person") -> List[str]:
    problems = []
    for field_name in ("age", "retirement_age", "life_expectancy"):
        if not _is_age(getattr(person, field_name)):
            problems.append(f"{label}.{field_name} must be a non-negative whole number, got {getattr(person, field_name)!r}")
    if problems:
        return problems

    if person.age > person.life_expectancy:
        problems.append(f"{label}.age {person.age} is past life expectancy {person.life_expectancy}")
    if person.retirement_age > person.life_expectancy:
        problems.append(f"{label}.retirement_age {person.retirement_age} is after life expectancy {person.life_expectancy}")
    if person.life_expectancy - person.age >= MAX_SIMULATION_YEARS:
        problems.append(f"{label} lifespan exceeds the {MAX_SIMULATION_YEARS}-year projection limit")
    return problems


def projection_years(person: Person, spouse: Optional[Person] = None) -> int:
    """Number of years from the primary person's current age to the last death."""
    end_offset = person.life_expectancy - person.age
    if spouse is not None:
        end_offset = max(end_offset, spouse.life_expectancy - spouse.age)
    return int(end_offset) + 1


def validate_inputs(inputs: SimulationInputs) -> List[str]:
    """
    Returns a list of human-readable problems with the inputs (empty when valid).

    Covers negative, fractional or non-numeric ages, retirement after death, current age
    past death, horizons beyond the projection limit, unknown policy names
    and unknown one-time event kinds.
    """
    problems = validate_person(inputs.person, "person")
    if inputs.spouse is not None:
        problems += validate_person(inputs.spouse, "spouse")
    if problems:
        return problems

    if projection_years(inputs.person, inputs.spouse) > MAX_SIMULATION_YEARS:
        problems.append(f"household horizon exceeds the {MAX_SIMULATION_YEARS}-year projection limit")
    if inputs.withdrawal_strategy not in WITHDRAWAL_STRATEGIES:
        problems.append(f"unknown withdrawal_strategy {inputs.withdrawal_strategy!r}")
    if inputs.rrsp_deficit_split not in RRSP_SPLIT_POLICIES:
        problems.append(f"unknown rrsp_deficit_split {inputs.rrsp_deficit_split!r}")
    for event in inputs.one_time_events:
        if event.kind not in EVENT_KINDS:
            problems.append(f"one-time event {event.name!r} has unknown kind {event.kind!r}")
    return problems

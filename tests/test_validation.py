import pytest

from models import OneTimeEvent
from utils.validation import projection_years, validate_inputs, validate_person
from tests.helpers import make_inputs, make_person


def test_valid_couple_has_no_problems(retired_couple):
    assert validate_inputs(retired_couple) == []


@pytest.mark.parametrize("field, value", [
    ("age", -1),
    ("age", "sixty"),
    ("age", float("nan")),
    ("retirement_age", None),
    ("life_expectancy", True),
    ("age", 65.5),
    ("life_expectancy", 87.25),
])
def test_rejects_bad_age_values(field, value):
    person = make_person()
    setattr(person, field, value)
    problems = validate_person(person)
    assert len(problems) == 1
    assert field in problems[0]


def test_accepts_whole_number_floats():
    assert validate_person(make_person(age=65.0, retirement_age=65.0, life_expectancy=90.0)) == []


def test_rejects_retirement_after_death():
    person = make_person(age=50, retirement_age=80, life_expectancy=75)
    assert any("retirement_age" in p for p in validate_person(person))


def test_rejects_age_past_life_expectancy():
    person = make_person(age=91, life_expectancy=90)
    assert validate_person(person)


def test_rejects_lifespan_beyond_limit():
    person = make_person(age=0, retirement_age=65, life_expectancy=130)
    assert any("limit" in p for p in validate_person(person))


def test_spouse_problems_are_labelled():
    spouse = make_person(age=-3)
    problems = validate_inputs(make_inputs(make_person(), spouse))
    assert problems and problems[0].startswith("spouse.")


def test_unknown_policy_names():
    inputs = make_inputs(make_person(), withdrawal_strategy="yolo", rrsp_deficit_split="half")
    problems = validate_inputs(inputs)
    assert len(problems) == 2


def test_unknown_event_kind():
    events = [OneTimeEvent("roof", 20_000, 70), OneTimeEvent("gift", 5_000, 72, kind="windfall")]
    problems = validate_inputs(make_inputs(make_person(), one_time_events=events))
    assert len(problems) == 1
    assert "gift" in problems[0]


def test_household_horizon_runs_to_last_death():
    person = make_person(age=70, life_expectancy=85)
    spouse = make_person(age=60, life_expectancy=95)
    # spouse outlives the primary person by 35 years of offsets
    assert projection_years(person, spouse) == 36
    assert projection_years(person) == 16


def test_lifespan_limit_boundary():
    assert validate_person(make_person(age=0, life_expectancy=119)) == []
    assert validate_person(make_person(age=0, life_expectancy=120))

from models import (
    Account,
    AssetMix,
    NonRegisteredAccount,
    Person,
    SimulationInputs,
)


def make_person(
    age: int = 65,
    retirement_age: int = 65,
    life_expectancy: int = 90,
    rrsp: float = 0.0,
    tfsa: float = 0.0,
    non_registered: float = 0.0,
    acb: float = None,
    asset_mix: AssetMix = None,
    **overrides,
) -> Person:
    person = Person(
        age=age,
        retirement_age=retirement_age,
        life_expectancy=life_expectancy,
        rrsp=Account(rrsp),
        tfsa=Account(tfsa),
        non_registered=NonRegisteredAccount(
            balance=non_registered,
            adjusted_cost_base=non_registered if acb is None else acb,
            asset_mix=asset_mix or AssetMix(0.0, 0.0, 1.0),
        ),
    )
    for name, value in overrides.items():
        setattr(person, name, value)
    return person


def make_inputs(person: Person, spouse: Person = None, **overrides) -> SimulationInputs:
    inputs = SimulationInputs(person=person, spouse=spouse, province="ON", start_year=2025)
    for name, value in overrides.items():
        setattr(inputs, name, value)
    return inputs


def no_benefits(**kwargs) -> dict:
    """Person overrides that push CPP and OAS past any test horizon."""
    kwargs.setdefault("cpp_start_age", 200)
    kwargs.setdefault("oas_start_age", 200)
    return kwargs

import pytest

from models import AssetMix, ReturnRates
from tests.helpers import make_inputs, make_person


@pytest.fixture
def retired_couple():
    """A retired couple in Ontario with money in all three accounts."""
    person = make_person(
        age=66, retirement_age=65, life_expectancy=90,
        rrsp=450_000, tfsa=95_000, non_registered=200_000, acb=140_000,
        asset_mix=AssetMix(0.2, 0.3, 0.5),
        cpp_contributed_years=35,
    )
    spouse = make_person(
        age=63, retirement_age=63, life_expectancy=92,
        rrsp=180_000, tfsa=80_000, non_registered=50_000, acb=45_000,
        asset_mix=AssetMix(0.2, 0.3, 0.5),
        cpp_contributed_years=25, cpp_start_age=65,
    )
    return make_inputs(
        person,
        spouse,
        inflation_rate=0.025,
        pre_retirement_spend=90_000,
        post_retirement_spend=85_000,
        return_rates=ReturnRates(interest=0.04, dividend=0.03, capital_growth=0.05, volatility=0.12),
    )


@pytest.fixture
def working_single():
    """A single saver still employed, with room left to contribute."""
    person = make_person(
        age=45, retirement_age=60, life_expectancy=85,
        rrsp=150_000, tfsa=60_000, non_registered=20_000,
        current_income=110_000,
    )
    return make_inputs(
        person,
        inflation_rate=0.02,
        pre_retirement_spend=60_000,
        post_retirement_spend=55_000,
        return_rates=ReturnRates(interest=0.03, dividend=0.02, capital_growth=0.05, volatility=0.10),
    )

import pytest

from models import NonRegisteredAccount
from engine.accounts_income import PersonYear
from engine.gross_up import marginal_tax_for_gross
from engine.withdrawal_engine import HouseholdMember, WithdrawalEngine, rrsp_room, tfsa_room
from utils.tax_utils import TAX_CONSTANTS_2025
from tests.helpers import make_person


def _member(label="person", age=70, cpp_income=0.0, employment_income=0.0, **accounts) -> HouseholdMember:
    person = make_person(age=age, **accounts)
    year = PersonYear(age=age, cpp_income=cpp_income, employment_income=employment_income)
    return HouseholdMember(label, person, year)


def _balances_non_negative(members):
    for m in members:
        assert m.person.rrsp.balance >= 0
        assert m.person.tfsa.balance >= 0
        assert m.person.non_registered.balance >= 0


class TestNonRegisteredAccount:
    def test_withdrawal_realizes_proportional_gain(self):
        account = NonRegisteredAccount(balance=100_000, adjusted_cost_base=60_000)
        gain = account.withdraw(10_000)
        assert gain == pytest.approx(4_000)
        assert account.balance == pytest.approx(90_000)
        assert account.adjusted_cost_base == pytest.approx(54_000)

    def test_withdrawal_capped_at_balance(self):
        account = NonRegisteredAccount(balance=5_000, adjusted_cost_base=5_000)
        account.withdraw(8_000)
        assert account.balance == 0.0

    def test_deposit_is_principal(self):
        account = NonRegisteredAccount(balance=10_000, adjusted_cost_base=4_000)
        account.deposit(1_000)
        assert account.balance == 11_000
        assert account.adjusted_cost_base == 5_000


class TestRoom:
    @pytest.mark.parametrize("inflation, room", [(1.0, 7_000), (1.03, 7_000), (1.04, 7_500), (1.5, 10_500)])
    def test_tfsa_room_rounded_to_500(self, inflation, room):
        assert tfsa_room(inflation) == room

    def test_rrsp_room(self):
        assert rrsp_room(100_000, 1.0) == pytest.approx(18_000)
        assert rrsp_room(300_000, 1.0) == pytest.approx(31_560)


class TestDeficitWaterfall:
    def test_tax_efficient_order(self):
        member = _member(rrsp=100_000, tfsa=5_000, non_registered=5_000)
        engine = WithdrawalEngine("AB", TAX_CONSTANTS_2025)
        outcome = engine._withdraw_from_hierarchy(20_000, [member], 1.0)

        assert outcome.non_registered == pytest.approx(5_000)
        assert outcome.tfsa == pytest.approx(5_000)
        assert outcome.rrsp_net == pytest.approx(10_000, abs=1.0)
        assert member.year.extra_rrsp_withdrawal == pytest.approx(outcome.rrsp_gross)
        _balances_non_negative([member])

    def test_rrsp_first_order(self):
        member = _member(rrsp=100_000, tfsa=5_000, non_registered=5_000)
        engine = WithdrawalEngine("AB", TAX_CONSTANTS_2025, strategy="rrsp-first")
        outcome = engine._withdraw_from_hierarchy(20_000, [member], 1.0)

        assert outcome.rrsp_net == pytest.approx(20_000, abs=1.0)
        assert outcome.non_registered == 0.0
        assert outcome.tfsa == 0.0
        assert member.person.tfsa.balance == 5_000

    def test_capped_rrsp_uses_actual_marginal_tax(self):
        member = _member(rrsp=5_000, cpp_income=60_000)
        engine = WithdrawalEngine("AB", TAX_CONSTANTS_2025)
        outcome = engine._withdraw_from_hierarchy(20_000, [member], 1.0)

        marginal = marginal_tax_for_gross(5_000, 60_000, 0.0, "AB", 1.0, 70)
        assert member.person.rrsp.balance == 0.0
        assert outcome.rrsp_gross == pytest.approx(5_000)
        assert outcome.rrsp_net == pytest.approx(5_000 - marginal)
        assert outcome.remaining == pytest.approx(20_000 - outcome.rrsp_net)

    def test_pools_are_pro_rata_by_balance(self):
        a = _member("person", non_registered=30_000)
        b = _member("spouse", non_registered=10_000)
        engine = WithdrawalEngine("AB", TAX_CONSTANTS_2025)
        engine._withdraw_from_hierarchy(20_000, [a, b], 1.0)

        assert a.year.non_reg_withdrawal == pytest.approx(15_000)
        assert b.year.non_reg_withdrawal == pytest.approx(5_000)

    def test_realized_gain_recorded_on_owner(self):
        member = _member(non_registered=100_000, acb=60_000)
        engine = WithdrawalEngine("AB", TAX_CONSTANTS_2025)
        outcome = engine._withdraw_from_hierarchy(10_000, [member], 1.0)

        assert member.year.realized_cap_gains == pytest.approx(4_000)
        assert outcome.realized_gains == pytest.approx(4_000)

    @pytest.mark.parametrize("split, expected", [("equal", (5_000, 5_000)), ("pro-rata", (2_500, 7_500))])
    def test_rrsp_split_policy(self, split, expected):
        # Low incomes in Alberta: credits absorb the tax, so gross == net
        a = _member("person", rrsp=100_000)
        b = _member("spouse", rrsp=300_000)
        engine = WithdrawalEngine("AB", TAX_CONSTANTS_2025, rrsp_split=split)
        engine._withdraw_from_hierarchy(10_000, [a, b], 1.0)

        assert a.year.extra_rrsp_withdrawal == pytest.approx(expected[0], abs=1.0)
        assert b.year.extra_rrsp_withdrawal == pytest.approx(expected[1], abs=1.0)

    def test_equal_split_hands_shortfall_to_other_spouse(self):
        a = _member("person", rrsp=1_000)
        b = _member("spouse", rrsp=300_000)
        engine = WithdrawalEngine("AB", TAX_CONSTANTS_2025)
        outcome = engine._withdraw_from_hierarchy(10_000, [a, b], 1.0)

        assert a.person.rrsp.balance == 0.0
        assert outcome.remaining < 2.0

    @pytest.mark.parametrize("deficit", [1_000, 50_000, 500_000])
    @pytest.mark.parametrize("strategy", ["tax-efficient", "rrsp-first"])
    def test_never_overdraws(self, deficit, strategy):
        members = [
            _member("person", rrsp=200_000, tfsa=20_000, non_registered=40_000, acb=30_000, cpp_income=15_000),
            _member("spouse", rrsp=80_000, tfsa=30_000, non_registered=10_000, cpp_income=8_000),
        ]
        engine = WithdrawalEngine("AB", TAX_CONSTANTS_2025, strategy=strategy)
        outcome = engine._withdraw_from_hierarchy(deficit, members, 1.0)

        _balances_non_negative(members)
        assert outcome.net_obtained <= deficit + 2.0
        assert outcome.remaining >= 0.0


class TestReinvestment:
    def test_tfsa_then_rrsp_then_non_registered(self):
        member = _member(age=40, employment_income=100_000)
        engine = WithdrawalEngine("ON", TAX_CONSTANTS_2025)
        outcome = engine.reinvest_surplus(50_000, [member], 1.0, 72)

        assert outcome.tfsa == pytest.approx(7_000)
        assert outcome.rrsp == pytest.approx(18_000)
        assert outcome.non_registered == pytest.approx(25_000)
        assert member.person.non_registered.adjusted_cost_base == pytest.approx(25_000)

    def test_no_rrsp_room_while_melting(self):
        member = _member(age=58, employment_income=100_000)
        member.year.melt_active = True
        engine = WithdrawalEngine("ON", TAX_CONSTANTS_2025)
        outcome = engine.reinvest_surplus(20_000, [member], 1.0, 72)
        assert outcome.rrsp == 0.0

    def test_no_rrsp_room_without_employment(self):
        member = _member(age=66)
        engine = WithdrawalEngine("ON", TAX_CONSTANTS_2025)
        outcome = engine.reinvest_surplus(20_000, [member], 1.0, 72)
        assert outcome.rrsp == 0.0
        assert outcome.non_registered == pytest.approx(13_000)

    def test_remainder_split_evenly_between_spouses(self):
        a = _member("person", age=66)
        b = _member("spouse", age=64)
        engine = WithdrawalEngine("ON", TAX_CONSTANTS_2025)
        outcome = engine.reinvest_surplus(34_000, [a, b], 1.0, 72)

        assert outcome.tfsa == pytest.approx(14_000)
        assert a.person.non_registered.balance == pytest.approx(10_000)
        assert b.person.non_registered.balance == pytest.approx(10_000)

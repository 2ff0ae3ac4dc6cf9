from decimal import Decimal

import pytest

from payroll_api.common.errors import ValidationError
from payroll_api.services.salary_calculator import calculate_salary, round_half_up


def test_standard_salary_above_esic_ceiling():
    b = calculate_salary(50000, paid_days=30)
    assert b.basic == 20000
    assert b.hra == 10000
    assert b.conveyance == 1600
    assert b.other_allowance == 18400
    assert b.pf == 1800          # 12% of basic is 2400, capped
    assert b.esic == 0           # gross above 21000
    assert b.day_wise_deduction == 0
    assert b.net_salary == 48200
    assert b.gross_earnings == 50000


def test_esic_applies_at_or_below_ceiling():
    b = calculate_salary(20000)
    assert b.basic == 8000
    assert b.pf == 960
    assert b.esic == 150
    assert b.net_salary == 20000 - 960 - 150

    at_ceiling = calculate_salary(21000)
    assert at_ceiling.esic == 158  # 157.5 rounds up


def test_pf_capped_and_esic_off_for_higher_salaries():
    assert calculate_salary(60000).pf == 1800
    assert calculate_salary(25000).esic == 0


def test_pf_cap_boundary():
    # basic 15000 -> 12% is exactly the cap
    assert calculate_salary(37500).pf == 1800
    assert calculate_salary(30000).pf == 1440


def test_flags_disable_deductions():
    b = calculate_salary(20000, deduct_pf=False, deduct_esic=False)
    assert b.pf == 0
    assert b.esic == 0
    assert b.net_salary == 20000


def test_day_wise_deduction_and_reimbursement():
    b = calculate_salary(30000, paid_days=27, reimbursement=500)
    assert b.day_wise_deduction == 3000
    assert b.net_salary == 30000 - 1440 - 3000 + 500


def test_paid_days_above_month_adds_pay():
    b = calculate_salary(30000, paid_days=31)
    assert b.day_wise_deduction == -1000
    assert b.net_salary == 30000 - 1440 + 1000


def test_breakdown_sums_to_gross():
    for gross in (0, 1, 999, 12345, 21001, 87654):
        b = calculate_salary(gross)
        assert b.basic + b.hra + b.conveyance + b.other_allowance == gross


def test_same_inputs_same_output():
    assert calculate_salary("43210.50", 29, True, True, 100) == calculate_salary(Decimal("43210.50"), 29, True, True, 100)


def test_round_half_up():
    assert round_half_up(Decimal("0.5")) == 1
    assert round_half_up(Decimal("1.49")) == 1
    assert round_half_up(Decimal("2.5")) == 3
    assert round_half_up(Decimal("-2.5")) == -2


@pytest.mark.parametrize("kwargs", [
    {"gross_salary": -1},
    {"gross_salary": 1000, "reimbursement": -5},
    {"gross_salary": "abc"},
    {"gross_salary": "NaN"},
    {"gross_salary": "Infinity"},
    {"gross_salary": "-Infinity"},
    {"gross_salary": 1000, "reimbursement": "nan"},
    {"gross_salary": 1000, "paid_days": "Infinity"},
])
def test_invalid_inputs(kwargs):
    with pytest.raises(ValidationError):
        calculate_salary(**kwargs)


def test_to_dict_includes_gross():
    d = calculate_salary(50000).to_dict()
    assert d["net_salary"] == 48200
    assert d["gross_earnings"] == 50000

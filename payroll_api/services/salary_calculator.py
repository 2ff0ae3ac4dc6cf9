# payroll_api/services/salary_calculator.py
"""
Monthly salary split.

    basic            = round(gross * 0.40)
    hra              = round(basic * 0.50)
    conveyance       = 1600
    other_allowance  = round(gross - (basic + hra + conveyance))
    pf               = min(round(basic * 0.12), 1800)          if deduct_pf
    esic             = round(gross * 0.0075)                   if deduct_esic and gross <= 21000
    day_wise         = round((gross / 30) * (30 - paid_days))
    net              = round(earnings - pf - esic - day_wise + reimbursement)

All rounding is half-up toward +inf on exact decimals, so 0.5 -> 1 and -2.5 -> -2.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal, InvalidOperation, ROUND_FLOOR

from payroll_api.common.errors import ValidationError

BASIC_RATE = Decimal("0.40")
HRA_RATE = Decimal("0.50")
CONVEYANCE = Decimal("1600")
PF_RATE = Decimal("0.12")
PF_CAP = Decimal("1800")
ESIC_RATE = Decimal("0.0075")
ESIC_WAGE_CEILING = Decimal("21000")

STANDARD_MONTH_DAYS = 30
MAX_PAID_DAYS = 31


def round_half_up(value) -> int:
    return int((Decimal(value) + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


def to_decimal(value, field: str, default="0") -> Decimal:
    if value is None or value == "":
        return Decimal(default)
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not d.is_finite():
        raise ValidationError(f"{field} must be a number")
    return d


def clamp_paid_days(paid_days) -> Decimal:
    d = to_decimal(paid_days, "paid_days", default=str(STANDARD_MONTH_DAYS))
    return min(max(d, Decimal(0)), Decimal(MAX_PAID_DAYS))


@dataclass(frozen=True)
class SalaryBreakdown:
    basic: int
    hra: int
    conveyance: int
    other_allowance: int
    pf: int
    esic: int
    day_wise_deduction: int
    net_salary: int

    @property
    def gross_earnings(self) -> int:
        return self.basic + self.hra + self.conveyance + self.other_allowance

    def to_dict(self) -> dict:
        d = asdict(self)
        d["gross_earnings"] = self.gross_earnings
        return d


def calculate_salary(gross_salary, paid_days=STANDARD_MONTH_DAYS, deduct_pf=True,
                     deduct_esic=True, reimbursement=0) -> SalaryBreakdown:
    gross = to_decimal(gross_salary, "salary")
    extra = to_decimal(reimbursement, "reimbursement")
    if gross < 0:
        raise ValidationError("salary cannot be negative")
    if extra < 0:
        raise ValidationError("reimbursement cannot be negative")
    days = clamp_paid_days(paid_days)

    basic = round_half_up(gross * BASIC_RATE)
    hra = round_half_up(basic * HRA_RATE)
    conveyance = int(CONVEYANCE)
    other = round_half_up(gross - (basic + hra + conveyance))

    pf = min(round_half_up(basic * PF_RATE), int(PF_CAP)) if deduct_pf else 0
    esic = round_half_up(gross * ESIC_RATE) if (deduct_esic and gross <= ESIC_WAGE_CEILING) else 0
    day_wise = round_half_up((gross / STANDARD_MONTH_DAYS) * (STANDARD_MONTH_DAYS - days))

    net = round_half_up(basic + hra + conveyance + other - pf - esic - day_wise + extra)

    return SalaryBreakdown(
        basic=basic,
        hra=hra,
        conveyance=conveyance,
        other_allowance=other,
        pf=pf,
        esic=esic,
        day_wise_deduction=day_wise,
        net_salary=net,
    )

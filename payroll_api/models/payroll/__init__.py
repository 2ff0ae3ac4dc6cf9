# payroll_api/models/payroll/__init__.py
from payroll_api.extensions import db  # noqa

from .payslip import Payslip, PayslipEmailLog
from .payment import PaymentRequest
from .salary_revision import SalaryRevision

__all__ = [
    "Payslip", "PayslipEmailLog",
    "PaymentRequest",
    "SalaryRevision",
]

# payroll_api/services/employee_service.py
import logging

from payroll_api.common.errors import ValidationError, ConflictError
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.services.salary_calculator import to_decimal, MAX_PAID_DAYS
from payroll_api.services.workflow import as_int, as_bool, as_date, commit

log = logging.getLogger(__name__)

# plain attributes copied as-is when present in the payload
_TEXT_FIELDS = ("name", "phone", "department", "designation", "note")


def _clean_email(v):
    s = (v or "").strip().lower()
    if s and "@" not in s:
        raise ValidationError("email is invalid")
    return s or None


def _apply(emp: Employee, data: dict):
    for f in _TEXT_FIELDS:
        if f in data:
            v = data.get(f)
            setattr(emp, f, v.strip() if isinstance(v, str) else v)
    if "email" in data:
        emp.email = _clean_email(data.get("email"))
    if "salary" in data:
        salary = to_decimal(data.get("salary"), "salary")
        if salary < 0:
            raise ValidationError("salary cannot be negative")
        emp.salary = salary
    if "paid_days" in data:
        days = as_int(data.get("paid_days"), "paid_days", required=False, default=30)
        if not 0 <= days <= MAX_PAID_DAYS:
            raise ValidationError(f"paid_days must be between 0 and {MAX_PAID_DAYS}")
        emp.paid_days = days
    if "leaves" in data:
        emp.leaves = as_int(data.get("leaves"), "leaves", required=False, default=0)
    if "deduct_pf" in data:
        emp.deduct_pf = as_bool(data.get("deduct_pf"), default=True)
    if "deduct_esic" in data:
        emp.deduct_esic = as_bool(data.get("deduct_esic"), default=True)
    if "reimbursement" in data:
        extra = to_decimal(data.get("reimbursement"), "reimbursement")
        if extra < 0:
            raise ValidationError("reimbursement cannot be negative")
        emp.reimbursement = extra
    if data.get("doj"):
        emp.doj = as_date(data.get("doj"), "doj")
    if "user_id" in data:
        emp.user_id = as_int(data.get("user_id"), "user_id", required=False)
    if "is_active" in data:
        emp.is_active = as_bool(data.get("is_active"), default=True)


def _check_unique(emp: Employee):
    with db.session.no_autoflush:
        q = Employee.query
        if emp.id:
            q = q.filter(Employee.id != emp.id)
        if q.filter(Employee.code == emp.code).first():
            raise ConflictError(f"Employee code '{emp.code}' already exists")
        if emp.email and q.filter(Employee.email == emp.email).first():
            raise ConflictError(f"Employee email '{emp.email}' already exists")


def create_employee(data: dict) -> Employee:
    code = (data.get("code") or "").strip()
    name = (data.get("name") or "").strip()
    if not code or not name:
        raise ValidationError("code and name are required")

    emp = Employee(code=code, name=name, salary=0, paid_days=30, leaves=0,
                   deduct_pf=True, deduct_esic=True, reimbursement=0, is_active=True)
    _apply(emp, {k: v for k, v in data.items() if k != "code"})
    _check_unique(emp)
    emp.recompute()
    db.session.add(emp)
    commit(conflict_message="Employee code or email already exists")
    log.info("[employee] created %s", emp.code)
    return emp


def update_employee(emp: Employee, data: dict) -> Employee:
    if "code" in data:
        code = (data.get("code") or "").strip()
        if not code:
            raise ValidationError("code cannot be empty")
        emp.code = code
    if "name" in data and not (data.get("name") or "").strip():
        raise ValidationError("name cannot be empty")
    _apply(emp, data)
    _check_unique(emp)
    emp.recompute()
    commit(conflict_message="Employee code or email already exists")
    return emp


def deactivate(emp: Employee) -> Employee:
    """Employees are never deleted; history keeps pointing at them."""
    emp.is_active = False
    commit()
    return emp

# payroll_api/services/salary_revision_chain.py
"""
Baseline salary changes: pending -> hr_approved -> finance_approved -> md_approved.

MD approval is the implementation step: the employee's salary is overwritten and
the breakdown recomputed in the same commit as the status change.
"""
import logging
from datetime import datetime

from payroll_api.common.errors import ValidationError, StateGuardError
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.salary_revision import SalaryRevision, REVISION_REASONS
from payroll_api.services.salary_calculator import to_decimal
from payroll_api.services.workflow import (
    get_or_404, as_date, require_text, ensure_status, transition, log_action, commit,
)

log = logging.getLogger(__name__)

ENTITY = "salary_revision"
OPEN_STATUSES = ("pending", "hr_approved", "finance_approved")


def create(employee_id, new_salary, effective_date, reason, description, actor_id=None) -> SalaryRevision:
    amount = to_decimal(new_salary, "new_salary", default="-1")
    if amount < 0:
        raise ValidationError("new_salary is required and cannot be negative")
    reason = (reason or "").strip().lower()
    if reason not in REVISION_REASONS:
        raise ValidationError(f"reason must be one of {', '.join(REVISION_REASONS)}")
    description = require_text(description, "description")
    effective = as_date(effective_date, "effective_date")

    emp = get_or_404(Employee, employee_id, "Employee")
    if not emp.is_active:
        raise StateGuardError("Cannot revise the salary of an inactive employee")

    rev = SalaryRevision(
        employee_id=emp.id,
        employee_code=emp.code,
        employee_name=emp.name,
        current_salary=emp.salary,
        new_salary=amount,
        effective_date=effective,
        reason=reason,
        description=description,
        status="pending",
        requested_by_id=actor_id,
        requested_at=datetime.utcnow(),
    )
    db.session.add(rev)
    db.session.flush()
    log_action(ENTITY, rev.id, "revision.request", None, "pending", actor_id, description)
    commit()
    return rev


def hr_approve(revision_id, actor_id=None, comments=None) -> SalaryRevision:
    rev = get_or_404(SalaryRevision, revision_id, "Salary revision")
    ensure_status(rev, ("pending",), "Salary revision must be pending for HR approval")
    rev.hr_approved_by_id = actor_id
    rev.hr_approved_at = datetime.utcnow()
    rev.hr_comments = comments
    transition(rev, ENTITY, "revision.hr_approve", "hr_approved", actor_id, comments)
    commit()
    return rev


def finance_approve(revision_id, actor_id=None, comments=None) -> SalaryRevision:
    rev = get_or_404(SalaryRevision, revision_id, "Salary revision")
    ensure_status(rev, ("hr_approved",), "Salary revision must be HR approved first")
    rev.finance_approved_by_id = actor_id
    rev.finance_approved_at = datetime.utcnow()
    rev.finance_comments = comments
    transition(rev, ENTITY, "revision.finance_approve", "finance_approved", actor_id, comments)
    commit()
    return rev


def md_approve(revision_id, actor_id=None, comments=None) -> SalaryRevision:
    rev = get_or_404(SalaryRevision, revision_id, "Salary revision")
    ensure_status(rev, ("finance_approved",), "Salary revision must be Finance approved first")
    emp = get_or_404(Employee, rev.employee_id, "Employee")

    now = datetime.utcnow()
    rev.md_approved_by_id = actor_id
    rev.md_approved_at = now
    rev.md_comments = comments
    rev.implemented_by_id = actor_id
    rev.implemented_at = now

    emp.salary = rev.new_salary
    emp.recompute()

    transition(rev, ENTITY, "revision.md_approve", "md_approved", actor_id, comments)
    commit()
    log.info("[salary-revision] #%s implemented: %s salary %s -> %s",
             rev.id, emp.code, rev.current_salary, rev.new_salary)
    return rev


def reject(revision_id, actor_id=None, reason=None) -> SalaryRevision:
    reason = require_text(reason, "reason")
    rev = get_or_404(SalaryRevision, revision_id, "Salary revision")
    ensure_status(rev, OPEN_STATUSES, f"Cannot reject a salary revision in '{rev.status}' status")
    rev.rejected_by_id = actor_id
    rev.rejected_at = datetime.utcnow()
    rev.rejection_reason = reason
    transition(rev, ENTITY, "revision.reject", "rejected", actor_id, reason)
    commit()
    return rev

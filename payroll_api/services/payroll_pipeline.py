# payroll_api/services/payroll_pipeline.py
"""
Payroll view of attendance records, addressed by (employee code, month, year).

    move_to_payroll      draft|submitted -> submitted
    mark_processed       submitted       -> approved
    revert_from_payroll  submitted       -> draft
    revert_processed     approved        -> submitted
"""
from datetime import datetime

from payroll_api.common.errors import NotFoundError, ValidationError
from payroll_api.models.attendance import AttendanceRecord
from payroll_api.models.employee import Employee
from payroll_api.services.attendance_workflow import ENTITY, DRAFT, SUBMITTED, APPROVED
from payroll_api.services.workflow import validate_period, ensure_status, transition, commit


def find_by_code(employee_code, month, year) -> AttendanceRecord:
    month, year = validate_period(month, year)
    code = str(employee_code or "").strip()
    if not code:
        raise ValidationError("employee_code is required")
    rec = (AttendanceRecord.query
           .join(Employee, Employee.id == AttendanceRecord.employee_id)
           .filter(Employee.code == code,
                   AttendanceRecord.month == month,
                   AttendanceRecord.year == year)
           .first())
    if rec is None:
        raise NotFoundError(f"No attendance record for {code} in {month}/{year}")
    return rec


def move_to_payroll(employee_code, month, year, actor_id=None) -> AttendanceRecord:
    rec = find_by_code(employee_code, month, year)
    ensure_status(rec, (DRAFT, SUBMITTED),
                  f"Attendance in '{rec.status}' status cannot be moved to payroll")
    rec.submitted_by_id = actor_id
    rec.submitted_at = datetime.utcnow()
    transition(rec, ENTITY, "payroll.move", SUBMITTED, actor_id)
    commit()
    return rec


def mark_processed(employee_code, month, year, actor_id=None) -> AttendanceRecord:
    rec = find_by_code(employee_code, month, year)
    ensure_status(rec, (SUBMITTED,), "Only records moved to payroll can be processed")
    rec.approved_by_id = actor_id
    rec.approved_at = datetime.utcnow()
    transition(rec, ENTITY, "payroll.mark_processed", APPROVED, actor_id)
    commit()
    return rec


def revert_from_payroll(employee_code, month, year, actor_id=None) -> AttendanceRecord:
    rec = find_by_code(employee_code, month, year)
    ensure_status(rec, (SUBMITTED,), "Only records moved to payroll can be reverted")
    rec.submitted_by_id = None
    rec.submitted_at = None
    transition(rec, ENTITY, "payroll.revert_move", DRAFT, actor_id)
    commit()
    return rec


def revert_processed(employee_code, month, year, actor_id=None) -> AttendanceRecord:
    rec = find_by_code(employee_code, month, year)
    ensure_status(rec, (APPROVED,), "Only processed records can be reverted")
    rec.approved_by_id = None
    rec.approved_at = None
    transition(rec, ENTITY, "payroll.revert_processed", SUBMITTED, actor_id)
    commit()
    return rec


def _records_in(status, month=None, year=None):
    q = AttendanceRecord.query.filter(AttendanceRecord.status == status)
    if month:
        q = q.filter(AttendanceRecord.month == int(month))
    if year:
        q = q.filter(AttendanceRecord.year == int(year))
    return q.order_by(AttendanceRecord.year.desc(), AttendanceRecord.month.desc(),
                      AttendanceRecord.employee_code.asc())


def moved_records(month=None, year=None):
    return _records_in(SUBMITTED, month, year).all()


def processed_records(month=None, year=None):
    return _records_in(APPROVED, month, year).all()

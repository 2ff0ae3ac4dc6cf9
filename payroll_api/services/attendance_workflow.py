# payroll_api/services/attendance_workflow.py
"""
Monthly attendance records: draft -> submitted -> approved | rejected.

Saving a record also feeds its paid days and deduction flags back into the
employee and recomputes the employee's salary breakdown.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func

from payroll_api.common.errors import APIError, ValidationError, StateGuardError
from payroll_api.extensions import db
from payroll_api.models.attendance import AttendanceRecord, AttendanceStage
from payroll_api.models.employee import Employee
from payroll_api.services.salary_calculator import STANDARD_MONTH_DAYS, MAX_PAID_DAYS, to_decimal
from payroll_api.services.workflow import (
    get_or_404, as_int, as_bool, require_text, validate_period,
    ensure_status, transition, log_action, commit,
)

log = logging.getLogger(__name__)

ENTITY = "attendance"
LEAVE_FIELDS = ("casual_leaves", "sick_leaves", "earned_leaves", "other_leaves")
# absent days are spread 40/30/20/10 across leave types when no breakdown is given
LEAVE_SPLIT = (4, 3, 2, 1)

DRAFT = AttendanceStage.DRAFT.value
SUBMITTED = AttendanceStage.SUBMITTED.value
APPROVED = AttendanceStage.APPROVED.value
REJECTED = AttendanceStage.REJECTED.value


def split_leaves(absent_days: int) -> dict:
    absent = max(int(absent_days), 0)
    split = {f: (absent * share) // 10 for f, share in zip(LEAVE_FIELDS, LEAVE_SPLIT)}
    # rounding remainder goes to other_leaves so the categories add up to absent
    split["other_leaves"] += absent - sum(split.values())
    return split


def _explicit_leaves(leaves: dict, absent: int) -> dict:
    out = {}
    for f in LEAVE_FIELDS:
        v = as_int(leaves.get(f), f, required=False, default=0)
        if v < 0:
            raise ValidationError(f"{f} cannot be negative")
        out[f] = v
    if sum(out.values()) > absent:
        raise ValidationError(f"Leaves ({sum(out.values())}) exceed absent days ({absent})")
    return out


def find_record(employee_id: int, month: int, year: int) -> Optional[AttendanceRecord]:
    return AttendanceRecord.query.filter_by(employee_id=employee_id, month=month, year=year).first()


def upsert_record(employee_id, month, year, paid_days, *, actor_id=None,
                  total_working_days=None, leaves: Optional[dict] = None,
                  deduct_pf=None, deduct_esic=None, reimbursement=None, note=None,
                  half_days=None, overtime_hours=None, comments=None):
    """
    Create or update the draft record for (employee, month, year).
    Returns (record, created).
    """
    month, year = validate_period(month, year)
    paid = as_int(paid_days, "paid_days")
    if not 0 < paid <= MAX_PAID_DAYS:
        raise ValidationError(f"paid_days must be between 1 and {MAX_PAID_DAYS}")

    emp = get_or_404(Employee, employee_id, "Employee")

    working = as_int(total_working_days, "total_working_days", required=False,
                     default=max(STANDARD_MONTH_DAYS, paid))
    if not 1 <= working <= MAX_PAID_DAYS:
        raise ValidationError(f"total_working_days must be between 1 and {MAX_PAID_DAYS}")
    if paid > working:
        raise ValidationError("paid_days cannot exceed total_working_days")

    rec = find_record(emp.id, month, year)
    if rec is not None and rec.status != DRAFT:
        raise StateGuardError(
            f"Attendance for {emp.code} {month}/{year} is '{rec.status}'; only draft records can be edited",
            payload={"status": rec.status, "allowed": [DRAFT]},
        )

    absent = working - paid
    split = _explicit_leaves(leaves, absent) if leaves else split_leaves(absent)

    created = rec is None
    if created:
        rec = AttendanceRecord(employee_id=emp.id, month=month, year=year, status=DRAFT)
        db.session.add(rec)

    rec.employee_code = emp.code
    rec.employee_name = emp.name
    rec.total_working_days = working
    rec.present_days = paid
    for f, v in split.items():
        setattr(rec, f, v)
    rec.half_days = as_int(half_days, "half_days", required=False, default=rec.half_days or 0)
    if overtime_hours is not None:
        rec.overtime_hours = to_decimal(overtime_hours, "overtime_hours")
    rec.deduct_pf = as_bool(deduct_pf, default=emp.deduct_pf)
    rec.deduct_esic = as_bool(deduct_esic, default=emp.deduct_esic)
    rec.reimbursement = to_decimal(reimbursement, "reimbursement")
    rec.note = note or ""
    if comments is not None:
        rec.comments = comments
    rec.recompute_totals()

    emp.paid_days = paid
    emp.leaves = absent
    emp.deduct_pf = rec.deduct_pf
    emp.deduct_esic = rec.deduct_esic
    emp.reimbursement = rec.reimbursement
    emp.note = rec.note
    emp.recompute()

    if created:
        db.session.flush()
        log_action(ENTITY, rec.id, "attendance.create", None, DRAFT, actor_id)
    commit(conflict_message=f"Attendance record already exists for {emp.code} - {emp.name}")
    return rec, created


def submit(record_id: int, actor_id=None) -> AttendanceRecord:
    rec = get_or_404(AttendanceRecord, record_id, "Attendance record")
    ensure_status(rec, (DRAFT,), "Only draft attendance can be submitted")
    rec.submitted_by_id = actor_id
    rec.submitted_at = datetime.utcnow()
    transition(rec, ENTITY, "attendance.submit", SUBMITTED, actor_id)
    commit()
    return rec


def approve(record_id: int, actor_id=None, comments: Optional[str] = None) -> AttendanceRecord:
    rec = get_or_404(AttendanceRecord, record_id, "Attendance record")
    ensure_status(rec, (SUBMITTED,), "Only submitted attendance can be approved")
    rec.approved_by_id = actor_id
    rec.approved_at = datetime.utcnow()
    if comments:
        rec.comments = comments

    emp = rec.employee
    emp.paid_days = rec.present_days
    emp.leaves = rec.total_leaves
    emp.recompute()

    transition(rec, ENTITY, "attendance.approve", APPROVED, actor_id, comments)
    commit()
    return rec


def reject(record_id: int, actor_id=None, comments: Optional[str] = None) -> AttendanceRecord:
    comments = require_text(comments, "comments")
    rec = get_or_404(AttendanceRecord, record_id, "Attendance record")
    ensure_status(rec, (DRAFT, SUBMITTED, APPROVED), "Attendance is already rejected")
    rec.rejected_by_id = actor_id
    rec.rejected_at = datetime.utcnow()
    rec.comments = comments
    transition(rec, ENTITY, "attendance.reject", REJECTED, actor_id, comments)
    commit()
    return rec


def reopen(record_id: int, actor_id=None, comments: Optional[str] = None) -> AttendanceRecord:
    """Return a rejected record to draft so the period can be corrected."""
    comments = require_text(comments, "comments")
    rec = get_or_404(AttendanceRecord, record_id, "Attendance record")
    ensure_status(rec, (REJECTED,), "Only rejected attendance can be reopened")
    rec.submitted_by_id = rec.submitted_at = None
    rec.approved_by_id = rec.approved_at = None
    rec.rejected_by_id = rec.rejected_at = None
    rec.comments = comments
    transition(rec, ENTITY, "attendance.reopen", DRAFT, actor_id, comments)
    commit()
    return rec


def bulk_create(month, year, total_working_days=STANDARD_MONTH_DAYS, default_present_days=None,
                actor_id=None) -> dict:
    """One draft per active employee for the period; existing records are skipped and reported."""
    month, year = validate_period(month, year)
    working = as_int(total_working_days, "total_working_days", required=False, default=STANDARD_MONTH_DAYS)
    if not 1 <= working <= MAX_PAID_DAYS:
        raise ValidationError(f"total_working_days must be between 1 and {MAX_PAID_DAYS}")
    present = as_int(default_present_days, "default_present_days", required=False, default=working)
    if not 0 <= present <= working:
        raise ValidationError("default_present_days must be between 0 and total_working_days")

    employees = Employee.query.filter_by(is_active=True).order_by(Employee.code.asc()).all()
    if not employees:
        raise ValidationError("No active employees found")

    existing = {
        eid for (eid,) in db.session.query(AttendanceRecord.employee_id)
        .filter_by(month=month, year=year).all()
    }

    created, skipped = [], []
    for emp in employees:
        reason = f"Attendance record already exists for {emp.code} - {emp.name}"
        if emp.id in existing:
            skipped.append({"employee_code": emp.code, "reason": reason})
            continue
        try:
            rec = AttendanceRecord(
                employee_id=emp.id, employee_code=emp.code, employee_name=emp.name,
                month=month, year=year, total_working_days=working, present_days=present,
                deduct_pf=emp.deduct_pf, deduct_esic=emp.deduct_esic, reimbursement=0,
            )
            rec.recompute_totals()
            db.session.add(rec)
            db.session.flush()
            log_action(ENTITY, rec.id, "attendance.create", None, DRAFT, actor_id)
            commit(conflict_message=reason)
            created.append(rec)
        except APIError as e:
            db.session.rollback()
            log.warning("[attendance-bulk] skipped %s %s/%s: %s", emp.code, month, year, e.message)
            skipped.append({"employee_code": emp.code, "reason": e.message})
        except Exception:
            db.session.rollback()
            log.exception("[attendance-bulk] failed for %s %s/%s", emp.code, month, year)
            skipped.append({"employee_code": emp.code, "reason": "Unexpected error while creating record"})

    return {
        "created": len(created),
        "skipped": len(skipped),
        "total": len(employees),
        "records": created,
        "skipped_records": skipped,
    }


def stats(month=None, year=None) -> dict:
    q = AttendanceRecord.query
    if month:
        q = q.filter(AttendanceRecord.month == as_int(month, "month"))
    if year:
        q = q.filter(AttendanceRecord.year == as_int(year, "year"))

    totals = q.with_entities(
        func.count(AttendanceRecord.id),
        func.coalesce(func.sum(AttendanceRecord.present_days), 0),
        func.coalesce(func.sum(AttendanceRecord.absent_days), 0),
        func.coalesce(func.sum(AttendanceRecord.total_leaves), 0),
        func.coalesce(func.sum(AttendanceRecord.total_working_days), 0),
    ).one()
    count, present, absent, leaves, working = (int(x or 0) for x in totals)

    breakdown = {s.value: 0 for s in AttendanceStage}
    for status, n in q.with_entities(AttendanceRecord.status, func.count(AttendanceRecord.id)) \
                      .group_by(AttendanceRecord.status).all():
        breakdown[status] = int(n)

    return {
        "total_records": count,
        "total_present_days": present,
        "total_absent_days": absent,
        "total_leaves": leaves,
        "avg_attendance": round(present / working * 100, 2) if working else 0.0,
        "status_breakdown": breakdown,
    }

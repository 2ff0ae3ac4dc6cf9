from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from payroll_api.common.auth import (
    requires_roles, current_user_id, is_staff, current_employee_id, ensure_can_view,
)
from payroll_api.common.http import ok, fail
from payroll_api.common.listing import paginate
from payroll_api.models.attendance import AttendanceRecord
from payroll_api.services import attendance_workflow, bulk_import
from payroll_api.services.row_sources import rows_from_upload, rows_from_json
from payroll_api.services.workflow import get_or_404, history

bp = Blueprint("attendance", __name__, url_prefix="/api/v1/attendance")


def _iso(dt):
    return dt.isoformat() if dt else None


def _row(r: AttendanceRecord):
    return {
        "id": r.id,
        "employee_id": r.employee_id,
        "employee_code": r.employee_code,
        "employee_name": r.employee_name,
        "month": r.month,
        "year": r.year,
        "total_working_days": r.total_working_days,
        "present_days": r.present_days,
        "absent_days": r.absent_days,
        "casual_leaves": r.casual_leaves,
        "sick_leaves": r.sick_leaves,
        "earned_leaves": r.earned_leaves,
        "other_leaves": r.other_leaves,
        "total_leaves": r.total_leaves,
        "half_days": r.half_days,
        "overtime_hours": float(r.overtime_hours or 0),
        "deduct_pf": bool(r.deduct_pf),
        "deduct_esic": bool(r.deduct_esic),
        "reimbursement": float(r.reimbursement or 0),
        "note": r.note,
        "status": r.status,
        "payroll_stage": r.payroll_stage.value,
        "submitted_by": r.submitted_by_id,
        "submitted_at": _iso(r.submitted_at),
        "approved_by": r.approved_by_id,
        "approved_at": _iso(r.approved_at),
        "rejected_by": r.rejected_by_id,
        "rejected_at": _iso(r.rejected_at),
        "comments": r.comments,
        "updated_at": _iso(r.updated_at),
    }


def _history_row(a):
    return {
        "action": a.action,
        "from_status": a.from_status,
        "to_status": a.to_status,
        "comment": a.comment,
        "acted_by": a.acted_by_user_id,
        "acted_at": _iso(a.acted_at),
    }


def _body():
    return request.get_json(silent=True) or {}


@bp.get("")
@jwt_required()
def list_records():
    q = AttendanceRecord.query
    if not is_staff():
        q = q.filter(AttendanceRecord.employee_id == (current_employee_id() or -1))
    for arg in ("month", "year", "employee_id"):
        v = request.args.get(arg, type=int)
        if v:
            q = q.filter(getattr(AttendanceRecord, arg) == v)
    status = request.args.get("status")
    if status:
        q = q.filter(AttendanceRecord.status == status)
    code = (request.args.get("employee_code") or "").strip()
    if code:
        q = q.filter(AttendanceRecord.employee_code == code)
    q = q.order_by(AttendanceRecord.year.desc(), AttendanceRecord.month.desc(),
                   AttendanceRecord.employee_code.asc())
    items, meta = paginate(q, default_limit=50)
    return ok([_row(r) for r in items], **meta)


@bp.get("/stats")
@requires_roles("hr", "finance", "md")
def attendance_stats():
    return ok(attendance_workflow.stats(request.args.get("month"), request.args.get("year")))


@bp.get("/<int:rid>")
@jwt_required()
def get_record(rid):
    rec = get_or_404(AttendanceRecord, rid, "Attendance record")
    ensure_can_view(rec.employee_id)
    data = _row(rec)
    data["history"] = [_history_row(a) for a in history(attendance_workflow.ENTITY, rec.id)]
    return ok(data)


@bp.post("")
@requires_roles("hr")
def upsert_record():
    """Create or update the draft attendance for (employee_id, month, year)."""
    d = _body()
    leaves = {k: d[k] for k in attendance_workflow.LEAVE_FIELDS if k in d} or None
    rec, created = attendance_workflow.upsert_record(
        d.get("employee_id"), d.get("month"), d.get("year"), d.get("paid_days"),
        actor_id=current_user_id(),
        total_working_days=d.get("total_working_days"),
        leaves=leaves,
        deduct_pf=d.get("deduct_pf"),
        deduct_esic=d.get("deduct_esic"),
        reimbursement=d.get("reimbursement"),
        note=d.get("note"),
        half_days=d.get("half_days"),
        overtime_hours=d.get("overtime_hours"),
        comments=d.get("comments"),
    )
    if created:
        return ok(_row(rec), status=201, message="Attendance created")
    return ok(_row(rec), message="Attendance updated")


@bp.post("/<int:rid>/submit")
@requires_roles("hr")
def submit_record(rid):
    rec = attendance_workflow.submit(rid, current_user_id())
    return ok(_row(rec), message="Attendance submitted")


@bp.post("/<int:rid>/approve")
@requires_roles("hr")
def approve_record(rid):
    rec = attendance_workflow.approve(rid, current_user_id(), _body().get("comments"))
    return ok(_row(rec), message="Attendance approved")


@bp.post("/<int:rid>/reject")
@requires_roles("hr")
def reject_record(rid):
    rec = attendance_workflow.reject(rid, current_user_id(), _body().get("comments"))
    return ok(_row(rec), message="Attendance rejected")


@bp.post("/<int:rid>/reopen")
@requires_roles("hr")
def reopen_record(rid):
    rec = attendance_workflow.reopen(rid, current_user_id(), _body().get("comments"))
    return ok(_row(rec), message="Attendance reopened")


@bp.post("/bulk")
@requires_roles("hr")
def bulk_create():
    d = _body()
    result = attendance_workflow.bulk_create(
        d.get("month"), d.get("year"),
        total_working_days=d.get("total_working_days"),
        default_present_days=d.get("default_present_days"),
        actor_id=current_user_id(),
    )
    result["records"] = [_row(r) for r in result["records"]]
    msg = f"Created {result['created']} record(s), skipped {result['skipped']}"
    return ok(result, status=201 if result["created"] else 200, message=msg)


@bp.post("/import")
@requires_roles("hr")
def import_attendance():
    """
    POST /api/v1/attendance/import
      multipart/form-data: file=<csv|xlsx>, month, year
      application/json:    {"month": 1, "year": 2025, "rows": [{...}, ...]}
    """
    if "multipart/form-data" in (request.content_type or ""):
        f = request.files.get("file")
        if not f:
            return fail("file is required", 400)
        rows = rows_from_upload(f)
        month, year = request.form.get("month"), request.form.get("year")
    else:
        d = _body()
        rows = rows_from_json(d)
        month, year = d.get("month"), d.get("year")

    result = bulk_import.import_attendance(rows, month, year, actor_id=current_user_id())
    msg = f"Processed {result['processed']} of {result['total']} rows"
    if result["errors"]:
        msg += f" with {len(result['errors'])} error(s)"
    return ok(result, message=msg, errors=result["errors"])

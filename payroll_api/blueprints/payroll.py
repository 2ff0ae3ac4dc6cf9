from flask import Blueprint, request, make_response

from payroll_api.blueprints.attendance import _row as _attendance_row
from payroll_api.common.auth import requires_roles, current_user_id
from payroll_api.common.http import ok
from payroll_api.services import payroll_pipeline, payslip_service

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")


def _key():
    d = request.get_json(silent=True) or {}
    return d.get("employee_code"), d.get("month"), d.get("year")


def _with_employee(rec):
    data = _attendance_row(rec)
    emp = rec.employee
    data["employee"] = {
        "id": emp.id,
        "email": emp.email,
        "department": emp.department,
        "designation": emp.designation,
        "salary": float(emp.salary or 0),
        **emp.breakdown(),
    }
    return data


@bp.post("/move")
@requires_roles("hr")
def move_to_payroll():
    rec = payroll_pipeline.move_to_payroll(*_key(), actor_id=current_user_id())
    return ok(_attendance_row(rec), message="Moved to payroll")


@bp.post("/revert-move")
@requires_roles("hr")
def revert_from_payroll():
    rec = payroll_pipeline.revert_from_payroll(*_key(), actor_id=current_user_id())
    return ok(_attendance_row(rec), message="Reverted from payroll")


@bp.post("/mark-processed")
@requires_roles("finance")
def mark_processed():
    rec = payroll_pipeline.mark_processed(*_key(), actor_id=current_user_id())
    return ok(_attendance_row(rec), message="Salary processed")


@bp.post("/revert-processed")
@requires_roles("finance")
def revert_processed():
    rec = payroll_pipeline.revert_processed(*_key(), actor_id=current_user_id())
    return ok(_attendance_row(rec), message="Processing reverted")


@bp.get("/moved-records")
@requires_roles("hr", "finance", "md")
def moved_records():
    recs = payroll_pipeline.moved_records(request.args.get("month", type=int), request.args.get("year", type=int))
    return ok([_with_employee(r) for r in recs], total=len(recs))


@bp.get("/processed-records")
@requires_roles("hr", "finance", "md")
def processed_records():
    recs = payroll_pipeline.processed_records(request.args.get("month", type=int), request.args.get("year", type=int))
    return ok([_with_employee(r) for r in recs], total=len(recs))


@bp.get("/summary")
@requires_roles("hr", "finance", "md")
def payroll_summary():
    return ok(payslip_service.totals_by_period(request.args.get("year")))


@bp.get("/report")
@requires_roles("hr", "finance", "md")
def payroll_report():
    """
    GET /api/v1/payroll/report?type=monthly|quarterly|yearly|summary&month=&year=&format=pdf|json
    """
    report = payslip_service.build_report(
        request.args.get("type", "monthly"),
        request.args.get("month"),
        request.args.get("year"),
    )
    if (request.args.get("format") or "pdf").lower() == "json":
        return ok(report)

    pdf = payslip_service.render_report(report)
    resp = make_response(pdf)
    resp.headers["Content-Type"] = "application/pdf"
    resp.headers["Content-Disposition"] = f"attachment; filename=payroll-report-{report['type']}.pdf"
    return resp

from flask import Blueprint, request, jsonify, make_response, render_template, current_app
from flask_jwt_extended import jwt_required

from payroll_api.common.auth import (
    requires_roles, current_user_id, is_staff, current_employee_id, ensure_can_view,
)
from payroll_api.common.http import ok
from payroll_api.common.listing import paginate
from payroll_api.models.payroll.payslip import Payslip
from payroll_api.services import payslip_service
from payroll_api.services.workflow import get_or_404, as_bool

bp = Blueprint("payslips", __name__, url_prefix="/api/v1/payslips")


def _iso(dt):
    return dt.isoformat() if dt else None


def _row(p: Payslip, with_history=False):
    d = p.snapshot()
    d.update({
        "generated_by": p.generated_by_id,
        "is_paid": bool(p.is_paid),
        "paid_at": _iso(p.paid_at),
        "email_sent": bool(p.email_sent),
        "email_sent_at": _iso(p.email_sent_at),
        "email_status": p.email_status,
        "email_message_id": p.email_message_id,
        "email_error": p.email_error,
        "email_send_count": len(p.email_logs),
    })
    if with_history:
        d["email_history"] = [{
            "sent_at": _iso(h.sent_at),
            "success": h.success,
            "message_id": h.message_id,
            "error": h.error,
            "is_bulk": h.is_bulk,
        } for h in p.email_logs]
    return d


def _body():
    return request.get_json(silent=True) or {}


@bp.get("")
@jwt_required()
def list_payslips():
    q = Payslip.query
    if not is_staff():
        q = q.filter(Payslip.employee_id == (current_employee_id() or -1))
    for arg in ("month", "year", "employee_id"):
        v = request.args.get(arg, type=int)
        if v:
            q = q.filter(getattr(Payslip, arg) == v)
    paid = request.args.get("is_paid")
    if paid not in (None, ""):
        q = q.filter(Payslip.is_paid == as_bool(paid))
    status = request.args.get("email_status")
    if status:
        q = q.filter(Payslip.email_status == status)
    q = q.order_by(Payslip.year.desc(), Payslip.month.desc(), Payslip.employee_code.asc())
    items, meta = paginate(q, default_limit=50)
    return ok([_row(p) for p in items], **meta)


@bp.get("/<int:pid>")
@jwt_required()
def get_payslip(pid):
    slip = get_or_404(Payslip, pid, "Payslip")
    ensure_can_view(slip.employee_id)
    return ok(_row(slip, with_history=True))


@bp.post("/generate")
@requires_roles("hr", "finance")
def generate_payslip():
    d = _body()
    slip, email = payslip_service.generate(
        d.get("employee_id"), d.get("month"), d.get("year"),
        actor_id=current_user_id(),
        send_email=as_bool(d.get("send_email"), default=False),
    )
    msg = "Payslip generated"
    if email is not None:
        msg += " and emailed" if email["success"] else f"; email failed: {email['error']}"
    return ok({"payslip": _row(slip), "email": email}, status=201, message=msg)


@bp.post("/generate-bulk")
@requires_roles("hr", "finance")
def generate_bulk():
    d = _body()
    result = payslip_service.generate_bulk(
        d.get("month"), d.get("year"),
        actor_id=current_user_id(),
        send_email=as_bool(d.get("send_email"), default=False),
    )
    generated = [_row(p) for p in result["generated"]]
    msg = f"Generated {len(generated)} of {result['total']} payslips"
    return ok({
        "generated": generated,
        "total": result["total"],
        "errors": result["errors"],
        "email_results": result["email_results"],
    }, message=msg, errors=result["errors"])


@bp.post("/<int:pid>/send-email")
@requires_roles("hr", "finance")
def send_email(pid):
    result = payslip_service.resend_email(pid)
    if result["success"]:
        msg = f"Payslip emailed ({result['total_sends']} total sends)"
    else:
        msg = f"Failed to send email: {result['error']} ({result['total_sends']} total sends)"
    # delivery failure is reported, not raised: the attempt is recorded either way
    return jsonify({"success": result["success"], "message": msg, "data": result}), 200


@bp.post("/send-bulk-emails")
@requires_roles("hr", "finance")
def send_bulk_emails():
    result = payslip_service.send_bulk_emails(_body().get("payslip_ids"))
    msg = f"Sent {result['successful']} of {result['total']} emails"
    return ok(result, message=msg)


@bp.get("/<int:pid>/pdf")
@jwt_required()
def download_pdf(pid):
    slip = get_or_404(Payslip, pid, "Payslip")
    ensure_can_view(slip.employee_id)
    pdf = payslip_service.render_pdf(slip)
    resp = make_response(pdf)
    resp.headers["Content-Type"] = "application/pdf"
    resp.headers["Content-Disposition"] = (
        f"attachment; filename=payslip-{slip.employee_code}-{slip.year}-{slip.month:02d}.pdf"
    )
    return resp


@bp.get("/<int:pid>/html")
@jwt_required()
def view_html(pid):
    slip = get_or_404(Payslip, pid, "Payslip")
    ensure_can_view(slip.employee_id)
    html = render_template(
        "payroll/payslip.html",
        p=slip.snapshot(),
        company_name=current_app.config.get("COMPANY_NAME"),
    )
    resp = make_response(html)
    resp.headers["Content-Type"] = "text/html; charset=utf-8"
    return resp

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from payroll_api.common.auth import (
    requires_roles, current_user_id, is_staff, current_employee_id, ensure_can_view,
)
from payroll_api.common.http import ok
from payroll_api.common.listing import paginate
from payroll_api.models.payroll.payment import PaymentRequest
from payroll_api.services import payment_chain
from payroll_api.services.workflow import get_or_404, history

bp = Blueprint("payments", __name__, url_prefix="/api/v1/payments")


def _iso(dt):
    return dt.isoformat() if dt else None


def _row(p: PaymentRequest):
    return {
        "id": p.id,
        "payslip_id": p.payslip_id,
        "employee_id": p.employee_id,
        "employee_code": p.employee_code,
        "employee_name": p.employee_name,
        "month": p.month,
        "year": p.year,
        "amount": float(p.amount or 0),
        "payment_date": p.payment_date.isoformat() if p.payment_date else None,
        "payment_method": p.payment_method,
        "payment_reference": p.payment_reference,
        "bank_details": {
            "account_number": p.bank_account_number,
            "ifsc_code": p.bank_ifsc_code,
            "bank_name": p.bank_name,
        },
        "remarks": p.remarks,
        "status": p.status,
        "requested_by": p.requested_by_id,
        "requested_at": _iso(p.requested_at),
        "finance_approved_by": p.finance_approved_by_id,
        "finance_approved_at": _iso(p.finance_approved_at),
        "finance_comments": p.finance_comments,
        "md_approved_by": p.md_approved_by_id,
        "md_approved_at": _iso(p.md_approved_at),
        "md_comments": p.md_comments,
        "processed_by": p.processed_by_id,
        "processed_at": _iso(p.processed_at),
        "rejected_by": p.rejected_by_id,
        "rejected_at": _iso(p.rejected_at),
        "rejection_reason": p.rejection_reason,
    }


def _body():
    return request.get_json(silent=True) or {}


@bp.get("")
@jwt_required()
def list_requests():
    q = PaymentRequest.query
    if not is_staff():
        q = q.filter(PaymentRequest.employee_id == (current_employee_id() or -1))
    for arg in ("month", "year", "employee_id", "payslip_id"):
        v = request.args.get(arg, type=int)
        if v:
            q = q.filter(getattr(PaymentRequest, arg) == v)
    status = request.args.get("status")
    if status:
        q = q.filter(PaymentRequest.status == status)
    items, meta = paginate(q.order_by(PaymentRequest.requested_at.desc(), PaymentRequest.id.desc()))
    return ok([_row(p) for p in items], **meta)


@bp.get("/stats")
@requires_roles("finance", "md")
def payment_stats():
    return ok(payment_chain.stats())


@bp.get("/<int:rid>")
@jwt_required()
def get_request(rid):
    pr = get_or_404(PaymentRequest, rid, "Payment request")
    ensure_can_view(pr.employee_id)
    data = _row(pr)
    data["history"] = [{
        "action": a.action, "from_status": a.from_status, "to_status": a.to_status,
        "comment": a.comment, "acted_by": a.acted_by_user_id, "acted_at": _iso(a.acted_at),
    } for a in history(payment_chain.ENTITY, pr.id)]
    return ok(data)


@bp.post("")
@requires_roles("hr", "finance")
def create_request():
    d = _body()
    pr = payment_chain.create_request(
        d.get("payslip_id"),
        d.get("payment_date"),
        d.get("payment_method"),
        d.get("payment_reference"),
        bank_details=d.get("bank_details"),
        remarks=d.get("remarks"),
        actor_id=current_user_id(),
    )
    return ok(_row(pr), status=201, message="Payment request created")


@bp.post("/<int:rid>/finance-approve")
@requires_roles("finance")
def finance_approve(rid):
    pr = payment_chain.finance_approve(rid, current_user_id(), _body().get("comments"))
    return ok(_row(pr), message="Payment approved by Finance")


@bp.post("/<int:rid>/md-approve")
@requires_roles("md")
def md_approve(rid):
    pr = payment_chain.md_approve(rid, current_user_id(), _body().get("comments"))
    return ok(_row(pr), message="Payment approved by MD")


@bp.post("/<int:rid>/process")
@requires_roles("finance")
def process_payment(rid):
    pr = payment_chain.process(rid, current_user_id(), _body().get("remarks"))
    return ok(_row(pr), message="Payment processed")


@bp.post("/<int:rid>/reject")
@requires_roles("finance", "md")
def reject_request(rid):
    pr = payment_chain.reject(rid, current_user_id(), _body().get("reason"))
    return ok(_row(pr), message="Payment request rejected")

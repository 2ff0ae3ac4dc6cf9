# payroll_api/services/payment_chain.py
"""Salary disbursement: pending -> finance_approved -> md_approved -> paid."""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func

from payroll_api.common.errors import ValidationError, StateGuardError, ConflictError
from payroll_api.extensions import db
from payroll_api.models.payroll.payment import PaymentRequest, PAYMENT_METHODS, PAYMENT_STATUSES
from payroll_api.models.payroll.payslip import Payslip
from payroll_api.services.workflow import (
    get_or_404, as_int, as_date, require_text, ensure_status, transition, log_action, commit,
)

log = logging.getLogger(__name__)

ENTITY = "payment"
DUPLICATE_MESSAGE = "Payment request already exists for this payslip"


def create_request(payslip_id, payment_date, payment_method, payment_reference,
                   bank_details: Optional[dict] = None, remarks=None, actor_id=None) -> PaymentRequest:
    slip = get_or_404(Payslip, as_int(payslip_id, "payslip_id"), "Payslip")
    method = (payment_method or "").strip().lower()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
    reference = require_text(payment_reference, "payment_reference")
    paid_on = as_date(payment_date, "payment_date")

    if slip.is_paid:
        raise StateGuardError("Payslip is already paid")
    active = (PaymentRequest.query
              .filter(PaymentRequest.payslip_id == slip.id, PaymentRequest.status != "rejected")
              .first())
    if active:
        raise ConflictError(DUPLICATE_MESSAGE, payload={"payment_request_id": active.id})

    bank = bank_details or {}
    pr = PaymentRequest(
        payslip_id=slip.id,
        employee_id=slip.employee_id,
        employee_code=slip.employee_code,
        employee_name=slip.employee_name,
        month=slip.month,
        year=slip.year,
        amount=slip.net_salary,
        payment_date=paid_on,
        payment_method=method,
        payment_reference=reference,
        bank_account_number=bank.get("account_number"),
        bank_ifsc_code=bank.get("ifsc_code"),
        bank_name=bank.get("bank_name"),
        remarks=remarks,
        status="pending",
        requested_by_id=actor_id,
        requested_at=datetime.utcnow(),
    )
    db.session.add(pr)
    db.session.flush()
    log_action(ENTITY, pr.id, "payment.request", None, "pending", actor_id)
    commit(conflict_message=DUPLICATE_MESSAGE)
    log.info("[payment] requested #%s for payslip %s amount=%s", pr.id, slip.id, pr.amount)
    return pr


def finance_approve(request_id, actor_id=None, comments=None) -> PaymentRequest:
    pr = get_or_404(PaymentRequest, request_id, "Payment request")
    ensure_status(pr, ("pending",), "Payment request must be pending for Finance approval")
    pr.finance_approved_by_id = actor_id
    pr.finance_approved_at = datetime.utcnow()
    pr.finance_comments = comments
    transition(pr, ENTITY, "payment.finance_approve", "finance_approved", actor_id, comments)
    commit()
    return pr


def md_approve(request_id, actor_id=None, comments=None) -> PaymentRequest:
    pr = get_or_404(PaymentRequest, request_id, "Payment request")
    ensure_status(pr, ("finance_approved",), "Payment request must be Finance approved first")
    pr.md_approved_by_id = actor_id
    pr.md_approved_at = datetime.utcnow()
    pr.md_comments = comments
    transition(pr, ENTITY, "payment.md_approve", "md_approved", actor_id, comments)
    commit()
    return pr


def process(request_id, actor_id=None, remarks=None) -> PaymentRequest:
    """Final step: money went out, so the payslip is marked paid in the same commit."""
    pr = get_or_404(PaymentRequest, request_id, "Payment request")
    ensure_status(pr, ("md_approved",), "Payment request must be MD approved first")
    now = datetime.utcnow()
    pr.processed_by_id = actor_id
    pr.processed_at = now
    if remarks:
        pr.remarks = remarks
    slip = pr.payslip
    slip.is_paid = True
    slip.paid_at = now
    transition(pr, ENTITY, "payment.process", "paid", actor_id, remarks)
    commit()
    log.info("[payment] #%s paid; payslip %s marked paid", pr.id, slip.id)
    return pr


def reject(request_id, actor_id=None, reason=None) -> PaymentRequest:
    reason = require_text(reason, "reason")
    pr = get_or_404(PaymentRequest, request_id, "Payment request")
    if pr.status == "paid":
        raise StateGuardError("Cannot reject a paid payment request")
    ensure_status(pr, ("pending", "finance_approved", "md_approved"), "Payment request is already rejected")
    pr.rejected_by_id = actor_id
    pr.rejected_at = datetime.utcnow()
    pr.rejection_reason = reason
    transition(pr, ENTITY, "payment.reject", "rejected", actor_id, reason)
    commit()
    return pr


def stats() -> dict:
    rows = (db.session.query(PaymentRequest.status,
                             func.count(PaymentRequest.id),
                             func.coalesce(func.sum(PaymentRequest.amount), 0))
            .group_by(PaymentRequest.status).all())
    out = {s: {"count": 0, "total_amount": 0.0} for s in PAYMENT_STATUSES}
    for status, n, amount in rows:
        out[status] = {"count": int(n), "total_amount": float(amount)}
    return out

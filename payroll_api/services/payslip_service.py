# payroll_api/services/payslip_service.py
"""
Payslip generation and delivery.

A payslip freezes the employee's breakdown for one period. Delivery goes through
the notifier registered on the app; its outcome is written onto the payslip
(latest status + history) and never undoes the generation itself.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy import func

from payroll_api.common.errors import APIError, ValidationError, ConflictError, DependencyError
from payroll_api.common.timeouts import call_with_timeout, CallTimeout
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.payslip import Payslip, PayslipEmailLog, SNAPSHOT_FIELDS
from payroll_api.services.notifier import NotificationResult
from payroll_api.services.workflow import get_or_404, as_int, validate_period, commit

log = logging.getLogger(__name__)

NOTIFIER_KEY = "payslip_notifier"
RENDERER_KEY = "payslip_renderer"
REPORT_TYPES = ("monthly", "quarterly", "yearly", "summary")


def _notifier():
    return current_app.extensions[NOTIFIER_KEY]


def _renderer():
    return current_app.extensions[RENDERER_KEY]


def _timeout(key: str) -> float:
    return float(current_app.config.get(key) or 30)


# ---------- generation ----------

def generate(employee_id, month, year, actor_id=None, send_email=False):
    """Returns (payslip, email_result or None)."""
    month, year = validate_period(month, year)
    emp = get_or_404(Employee, employee_id, "Employee")

    conflict = f"Payslip already exists for {emp.code} for {month}/{year}"
    if Payslip.query.filter_by(employee_id=emp.id, month=month, year=year).first():
        raise ConflictError(conflict)

    slip = Payslip(
        employee_id=emp.id,
        employee_code=emp.code,
        employee_name=emp.name,
        month=month,
        year=year,
        generated_by_id=actor_id,
        generated_at=datetime.utcnow(),
    )
    for f in SNAPSHOT_FIELDS:
        setattr(slip, f, getattr(emp, f))
    db.session.add(slip)
    commit(conflict_message=conflict)
    log.info("[payslip] generated %s %s/%s net=%s", emp.code, month, year, slip.net_salary)

    email_result = _deliver_if_possible(slip) if send_email else None
    return slip, email_result


def generate_bulk(month, year, actor_id=None, send_email=False) -> dict:
    month, year = validate_period(month, year)
    employees = Employee.query.filter_by(is_active=True).order_by(Employee.code.asc()).all()
    if not employees:
        raise ValidationError("No active employees found")

    generated: List[Payslip] = []
    errors, email_results = [], []
    for emp in employees:
        try:
            slip, email_result = generate(emp.id, month, year, actor_id, send_email=send_email)
        except APIError as e:
            db.session.rollback()
            log.warning("[payslip-bulk] %s %s/%s: %s", emp.code, month, year, e.message)
            errors.append({"employee_code": emp.code, "employee_name": emp.name, "error": e.message})
            continue
        except Exception:
            db.session.rollback()
            log.exception("[payslip-bulk] %s %s/%s failed", emp.code, month, year)
            errors.append({"employee_code": emp.code, "employee_name": emp.name,
                           "error": "Unexpected error while generating payslip"})
            continue
        generated.append(slip)
        if email_result is not None:
            email_results.append(email_result)

    return {
        "generated": generated,
        "total": len(employees),
        "errors": errors,
        "email_results": email_results,
    }


# ---------- delivery ----------

def _recipient(slip: Payslip) -> dict:
    emp = slip.employee
    if not emp or not emp.email:
        raise ValidationError("Employee email not found")
    return {"name": emp.name, "email": emp.email, "code": emp.code}


def _deliver(slip: Payslip, is_bulk=False) -> dict:
    recipient = _recipient(slip)
    timeout = _timeout("NOTIFIER_TIMEOUT_SECONDS")
    try:
        result = call_with_timeout(_notifier().send, timeout, recipient, slip.snapshot(), is_bulk)
    except CallTimeout:
        log.warning("[payslip-email] %s timed out after %ss", slip.employee_code, timeout)
        result = NotificationResult(False, error=f"Email sending timeout after {timeout:g} seconds")
    except Exception as e:
        log.warning("[payslip-email] %s failed: %s", slip.employee_code, e)
        result = NotificationResult(False, error=str(e))

    now = datetime.utcnow()
    slip.email_sent = result.success
    slip.email_sent_at = now
    slip.email_status = "sent" if result.success else "failed"
    slip.email_message_id = result.message_id
    slip.email_error = result.error
    slip.email_logs.append(PayslipEmailLog(
        sent_at=now,
        success=result.success,
        message_id=result.message_id,
        error=result.error,
        is_bulk=is_bulk,
    ))
    commit()

    return {
        "payslip_id": slip.id,
        "employee_code": slip.employee_code,
        "email": recipient["email"],
        "success": result.success,
        "message_id": result.message_id,
        "error": result.error,
        "total_sends": len(slip.email_logs),
    }


def _deliver_if_possible(slip: Payslip, is_bulk=False) -> dict:
    try:
        return _deliver(slip, is_bulk)
    except APIError as e:
        return {
            "payslip_id": slip.id,
            "employee_code": slip.employee_code,
            "success": False,
            "message_id": None,
            "error": e.message,
            "total_sends": len(slip.email_logs),
        }


def resend_email(payslip_id) -> dict:
    slip = get_or_404(Payslip, payslip_id, "Payslip")
    return _deliver(slip)


def send_bulk_emails(payslip_ids: Iterable) -> dict:
    if not isinstance(payslip_ids, (list, tuple)) or not payslip_ids:
        raise ValidationError("payslip_ids must be a non-empty list")

    results = []
    for raw_id in payslip_ids:
        try:
            pid = as_int(raw_id, "payslip_id")
            slip = get_or_404(Payslip, pid, f"Payslip {pid}")
            results.append(_deliver_if_possible(slip, is_bulk=True))
        except APIError as e:
            results.append({"payslip_id": raw_id, "success": False, "error": e.message})
        except Exception:
            db.session.rollback()
            log.exception("[payslip-email] bulk send failed for payslip %s", raw_id)
            results.append({"payslip_id": raw_id, "success": False,
                            "error": "Unexpected error while sending email"})

    ok_count = sum(1 for r in results if r["success"])
    return {
        "total": len(results),
        "successful": ok_count,
        "failed": len(results) - ok_count,
        "results": results,
    }


# ---------- documents ----------

def render_pdf(slip: Payslip) -> bytes:
    timeout = _timeout("RENDERER_TIMEOUT_SECONDS")
    try:
        return call_with_timeout(_renderer().render_payslip, timeout, slip.snapshot())
    except CallTimeout as e:
        raise DependencyError(f"Payslip rendering {e}")
    except Exception as e:
        log.exception("[payslip-pdf] render failed for payslip %s", slip.id)
        raise DependencyError(f"Failed to render payslip: {e}")


def build_report(report_type: str, month=None, year=None) -> dict:
    report_type = (report_type or "monthly").lower()
    if report_type not in REPORT_TYPES:
        raise ValidationError(f"type must be one of {', '.join(REPORT_TYPES)}")

    q = Payslip.query
    if report_type == "monthly":
        month, year = validate_period(month, year)
        q = q.filter(Payslip.month == month, Payslip.year == year)
        label = f"Monthly {month:02d}/{year}"
    elif report_type == "quarterly":
        month, year = validate_period(month, year)
        first = ((month - 1) // 3) * 3 + 1
        q = q.filter(Payslip.year == year, Payslip.month.between(first, first + 2))
        label = f"Q{(first - 1) // 3 + 1} {year}"
    elif report_type == "yearly":
        year = as_int(year, "year")
        q = q.filter(Payslip.year == year)
        label = f"Year {year}"
    else:
        label = "All periods"

    slips = q.order_by(Payslip.year.asc(), Payslip.month.asc(), Payslip.employee_code.asc()).all()
    rows = [{
        "payslip_id": s.id,
        "employee_code": s.employee_code,
        "employee_name": s.employee_name,
        "month": s.month,
        "year": s.year,
        "net_salary": float(s.net_salary or 0),
        "is_paid": bool(s.is_paid),
    } for s in slips]

    paid = [r for r in rows if r["is_paid"]]
    pending = [r for r in rows if not r["is_paid"]]
    return {
        "type": report_type,
        "label": label,
        "rows": rows,
        "totals": {
            "count": len(rows),
            "total_salary": sum(r["net_salary"] for r in rows),
            "paid_count": len(paid),
            "paid_amount": sum(r["net_salary"] for r in paid),
            "pending_count": len(pending),
            "pending_amount": sum(r["net_salary"] for r in pending),
        },
    }


def render_report(report: dict) -> bytes:
    timeout = _timeout("RENDERER_TIMEOUT_SECONDS")
    try:
        return call_with_timeout(_renderer().render_report, timeout, report)
    except CallTimeout as e:
        raise DependencyError(f"Report rendering {e}")
    except Exception as e:
        log.exception("[payroll-report] render failed")
        raise DependencyError(f"Failed to render report: {e}")


def totals_by_period(year=None) -> list:
    q = db.session.query(
        Payslip.year, Payslip.month,
        func.count(Payslip.id), func.coalesce(func.sum(Payslip.net_salary), 0),
    )
    if year:
        q = q.filter(Payslip.year == as_int(year, "year"))
    rows = q.group_by(Payslip.year, Payslip.month).order_by(Payslip.year, Payslip.month).all()
    return [{"year": y, "month": m, "count": int(n), "total_net": float(t)} for y, m, n, t in rows]

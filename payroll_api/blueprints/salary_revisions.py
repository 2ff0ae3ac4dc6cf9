from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from payroll_api.common.auth import (
    requires_roles, current_user_id, is_staff, current_employee_id, ensure_can_view,
)
from payroll_api.common.http import ok
from payroll_api.common.listing import paginate
from payroll_api.models.payroll.salary_revision import SalaryRevision
from payroll_api.services import salary_revision_chain
from payroll_api.services.workflow import get_or_404, history

bp = Blueprint("salary_revisions", __name__, url_prefix="/api/v1/salary/revisions")


def _iso(dt):
    return dt.isoformat() if dt else None


def _row(r: SalaryRevision):
    return {
        "id": r.id,
        "employee_id": r.employee_id,
        "employee_code": r.employee_code,
        "employee_name": r.employee_name,
        "current_salary": float(r.current_salary or 0),
        "new_salary": float(r.new_salary or 0),
        "increment_amount": r.increment_amount,
        "increment_percent": r.increment_percent,
        "effective_date": r.effective_date.isoformat() if r.effective_date else None,
        "reason": r.reason,
        "description": r.description,
        "status": r.status,
        "requested_by": r.requested_by_id,
        "requested_at": _iso(r.requested_at),
        "hr_approved_by": r.hr_approved_by_id,
        "hr_approved_at": _iso(r.hr_approved_at),
        "hr_comments": r.hr_comments,
        "finance_approved_by": r.finance_approved_by_id,
        "finance_approved_at": _iso(r.finance_approved_at),
        "finance_comments": r.finance_comments,
        "md_approved_by": r.md_approved_by_id,
        "md_approved_at": _iso(r.md_approved_at),
        "md_comments": r.md_comments,
        "rejected_by": r.rejected_by_id,
        "rejected_at": _iso(r.rejected_at),
        "rejection_reason": r.rejection_reason,
        "implemented_by": r.implemented_by_id,
        "implemented_at": _iso(r.implemented_at),
    }


def _body():
    return request.get_json(silent=True) or {}


@bp.get("")
@jwt_required()
def list_revisions():
    q = SalaryRevision.query
    if not is_staff():
        q = q.filter(SalaryRevision.employee_id == (current_employee_id() or -1))
    emp_id = request.args.get("employee_id", type=int)
    if emp_id:
        q = q.filter(SalaryRevision.employee_id == emp_id)
    status = request.args.get("status")
    if status:
        q = q.filter(SalaryRevision.status == status)
    items, meta = paginate(q.order_by(SalaryRevision.requested_at.desc(), SalaryRevision.id.desc()))
    return ok([_row(r) for r in items], **meta)


@bp.get("/<int:rid>")
@jwt_required()
def get_revision(rid):
    rev = get_or_404(SalaryRevision, rid, "Salary revision")
    ensure_can_view(rev.employee_id)
    data = _row(rev)
    data["history"] = [{
        "action": a.action, "from_status": a.from_status, "to_status": a.to_status,
        "comment": a.comment, "acted_by": a.acted_by_user_id, "acted_at": _iso(a.acted_at),
    } for a in history(salary_revision_chain.ENTITY, rev.id)]
    return ok(data)


@bp.post("")
@requires_roles("hr")
def create_revision():
    d = _body()
    rev = salary_revision_chain.create(
        d.get("employee_id"),
        d.get("new_salary"),
        d.get("effective_date"),
        d.get("reason"),
        d.get("description"),
        actor_id=current_user_id(),
    )
    return ok(_row(rev), status=201, message="Salary revision requested")


@bp.post("/<int:rid>/hr-approve")
@requires_roles("hr")
def hr_approve(rid):
    rev = salary_revision_chain.hr_approve(rid, current_user_id(), _body().get("comments"))
    return ok(_row(rev), message="Salary revision approved by HR")


@bp.post("/<int:rid>/finance-approve")
@requires_roles("finance")
def finance_approve(rid):
    rev = salary_revision_chain.finance_approve(rid, current_user_id(), _body().get("comments"))
    return ok(_row(rev), message="Salary revision approved by Finance")


@bp.post("/<int:rid>/md-approve")
@requires_roles("md")
def md_approve(rid):
    rev = salary_revision_chain.md_approve(rid, current_user_id(), _body().get("comments"))
    return ok(_row(rev), message="Salary revision approved by MD and implemented")


@bp.post("/<int:rid>/reject")
@requires_roles("hr", "finance", "md")
def reject_revision(rid):
    rev = salary_revision_chain.reject(rid, current_user_id(), _body().get("reason"))
    return ok(_row(rev), message="Salary revision rejected")

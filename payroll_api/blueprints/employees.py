from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from payroll_api.common.auth import requires_roles, is_staff, current_employee_id, ensure_can_view
from payroll_api.common.http import ok, fail
from payroll_api.common.listing import apply_q_search, paginate
from payroll_api.models.employee import Employee
from payroll_api.services import employee_service, bulk_import
from payroll_api.services.row_sources import rows_from_upload, rows_from_json
from payroll_api.services.salary_calculator import calculate_salary
from payroll_api.services.workflow import get_or_404, as_bool

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")


def _row(e: Employee, with_breakdown=True):
    d = {
        "id": e.id,
        "code": e.code,
        "name": e.name,
        "email": e.email,
        "phone": e.phone,
        "department": e.department,
        "designation": e.designation,
        "doj": e.doj.isoformat() if e.doj else None,
        "is_active": bool(e.is_active),
        "user_id": e.user_id,
        "salary": float(e.salary or 0),
        "paid_days": e.paid_days,
        "leaves": e.leaves,
        "deduct_pf": bool(e.deduct_pf),
        "deduct_esic": bool(e.deduct_esic),
        "reimbursement": float(e.reimbursement or 0),
        "note": e.note,
    }
    if with_breakdown:
        d.update(e.breakdown())
    return d


def _body():
    return request.get_json(silent=True) or {}


@bp.get("")
@jwt_required()
def list_employees():
    q = Employee.query
    if not is_staff():
        q = q.filter(Employee.id == (current_employee_id() or -1))
    active = request.args.get("active")
    if active not in (None, ""):
        q = q.filter(Employee.is_active == as_bool(active))
    dept = request.args.get("department")
    if dept:
        q = q.filter(Employee.department == dept)
    q = apply_q_search(q, Employee.code, Employee.name, Employee.email)
    items, meta = paginate(q.order_by(Employee.code.asc()))
    return ok([_row(e) for e in items], **meta)


@bp.get("/all")
@requires_roles("hr", "finance", "md")
def all_active():
    items = Employee.query.filter_by(is_active=True).order_by(Employee.code.asc()).all()
    return ok([{"id": e.id, "code": e.code, "name": e.name, "department": e.department} for e in items])


@bp.get("/<int:emp_id>")
@jwt_required()
def get_employee(emp_id):
    emp = get_or_404(Employee, emp_id, "Employee")
    ensure_can_view(emp.id)
    return ok(_row(emp))


@bp.post("")
@requires_roles("hr")
def create_employee():
    emp = employee_service.create_employee(_body())
    return ok(_row(emp), status=201, message="Employee created")


@bp.route("/<int:emp_id>", methods=["PUT", "PATCH"])
@requires_roles("hr")
def update_employee(emp_id):
    emp = get_or_404(Employee, emp_id, "Employee")
    emp = employee_service.update_employee(emp, _body())
    return ok(_row(emp), message="Employee updated")


@bp.delete("/<int:emp_id>")
@requires_roles("hr")
def deactivate_employee(emp_id):
    emp = get_or_404(Employee, emp_id, "Employee")
    employee_service.deactivate(emp)
    return ok(_row(emp, with_breakdown=False), message="Employee deactivated")


@bp.get("/<int:emp_id>/salary-breakdown")
@jwt_required()
def salary_breakdown(emp_id):
    emp = get_or_404(Employee, emp_id, "Employee")
    ensure_can_view(emp.id)
    return ok({
        "employee_id": emp.id,
        "code": emp.code,
        "name": emp.name,
        "salary": float(emp.salary or 0),
        "paid_days": emp.paid_days,
        "leaves": emp.leaves,
        **emp.breakdown(),
    })


@bp.post("/calculate-salary")
@jwt_required()
def calculate_preview():
    """Breakdown for arbitrary inputs; nothing is saved."""
    d = _body()
    if d.get("salary") in (None, ""):
        return fail("salary is required", 400)
    b = calculate_salary(
        d.get("salary"),
        paid_days=d.get("paid_days", 30),
        deduct_pf=as_bool(d.get("deduct_pf"), default=True),
        deduct_esic=as_bool(d.get("deduct_esic"), default=True),
        reimbursement=d.get("reimbursement") or 0,
    )
    return ok(b.to_dict())


@bp.post("/import")
@requires_roles("hr")
def import_employees():
    """
    Bulk create employees.
      multipart/form-data: file=<csv|xlsx>
      application/json:    {"rows": [{...}, ...]}
    """
    if "multipart/form-data" in (request.content_type or ""):
        f = request.files.get("file")
        if not f:
            return fail("file is required", 400)
        rows = rows_from_upload(f)
    else:
        rows = rows_from_json(_body())
    result = bulk_import.import_employees(rows)
    msg = f"Imported {result['processed']} of {result['total']} employees"
    return ok(result, message=msg)

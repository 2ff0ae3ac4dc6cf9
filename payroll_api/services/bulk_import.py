# payroll_api/services/bulk_import.py
"""
Spreadsheet imports for attendance and employees.

Headers are matched once per file against an ordered synonym table
(case, spaces and punctuation ignored). Every row is then handled on its own:
failures are collected with their 1-based row number and never stop the import.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence

from payroll_api.common.errors import APIError, ValidationError
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.services import attendance_workflow, employee_service
from payroll_api.services.workflow import as_int, validate_period

log = logging.getLogger(__name__)

# Net salary / day-wise deduction columns in exported sheets are derived values
# and are recomputed, so they are not mapped.
ATTENDANCE_COLUMNS = {
    "employee_code": ("Emp Code", "empCode", "Employee Code", "employeeCode", "EmployeeCode", "code"),
    "employee_name": ("Name", "Employee Name", "employeeName"),
    "paid_days": ("Paid Days", "paidDays", "Present Days", "presentDays"),
    "total_working_days": ("Total Working Days", "totalWorkingDays", "Working Days"),
    "deduct_pf": ("Deduct PF", "deductPF"),
    "deduct_esic": ("Deduct ESIC", "deductESIC"),
    "reimbursement": ("Reimbursement", "reimbursement"),
    "note": ("Note", "Remarks"),
}

EMPLOYEE_COLUMNS = {
    "code": ("Emp Code", "empCode", "Employee Code", "employeeCode", "EmployeeCode", "code"),
    "name": ("Name", "Employee Name", "employeeName", "Full Name"),
    "email": ("Email", "E-mail", "Email Address"),
    "phone": ("Phone", "Mobile", "Phone Number"),
    "department": ("Department", "Dept"),
    "designation": ("Designation", "Title"),
    "salary": ("Salary", "Gross Salary", "grossSalary", "CTC Monthly"),
    "paid_days": ("Paid Days", "paidDays", "Present Days", "presentDays"),
    "deduct_pf": ("Deduct PF", "deductPF"),
    "deduct_esic": ("Deduct ESIC", "deductESIC"),
    "doj": ("Date of Joining", "DOJ", "Joining Date", "dateOfJoining"),
}

DEFAULT_PAID_DAYS = 30


def _norm(header) -> str:
    return re.sub(r"[^a-z0-9]", "", str(header or "").lower())


def resolve_columns(headers: Iterable[str], synonyms: Dict[str, Sequence[str]]) -> Dict[str, str]:
    """Map each logical field to the first header in the file that matches one of its synonyms."""
    by_norm: Dict[str, str] = {}
    for h in headers:
        by_norm.setdefault(_norm(h), h)
    mapping = {}
    for field, names in synonyms.items():
        for name in (field,) + tuple(names):
            actual = by_norm.get(_norm(name))
            if actual is not None:
                mapping[field] = actual
                break
    return mapping


def _headers(rows: List[dict]) -> List[str]:
    seen: Dict[str, None] = {}
    for r in rows:
        for k in r.keys():
            seen.setdefault(k, None)
    return list(seen)


def _value(row: dict, columns: Dict[str, str], field: str) -> Optional[str]:
    col = columns.get(field)
    if col is None:
        return None
    v = row.get(col)
    v = str(v).strip() if v is not None else ""
    return v or None


def import_attendance(rows: Iterable[dict], month, year, actor_id=None) -> dict:
    month, year = validate_period(month, year)
    rows = list(rows)
    columns = resolve_columns(_headers(rows), ATTENDANCE_COLUMNS)
    if rows and "employee_code" not in columns:
        raise ValidationError(
            "No employee code column found",
            payload={"expected_any_of": list(ATTENDANCE_COLUMNS["employee_code"])},
        )

    code_map = {code: eid for eid, code in db.session.query(Employee.id, Employee.code).all()}

    records, errors = [], []
    for idx, raw in enumerate(rows, start=1):
        code = _value(raw, columns, "employee_code")
        if not code:
            errors.append({"row": idx, "employee_code": None, "error": "Missing employee code"})
            continue
        emp_id = code_map.get(code)
        if emp_id is None:
            errors.append({"row": idx, "employee_code": code, "error": f"Employee not found with code: {code}"})
            continue
        try:
            paid = as_int(_value(raw, columns, "paid_days"), "paid_days",
                          required=False, default=DEFAULT_PAID_DAYS)
            rec, created = attendance_workflow.upsert_record(
                emp_id, month, year, paid,
                actor_id=actor_id,
                total_working_days=_value(raw, columns, "total_working_days"),
                deduct_pf=_value(raw, columns, "deduct_pf"),
                deduct_esic=_value(raw, columns, "deduct_esic"),
                reimbursement=_value(raw, columns, "reimbursement"),
                note=_value(raw, columns, "note"),
            )
        except APIError as e:
            db.session.rollback()
            log.warning("[attendance-import] row %s (%s): %s", idx, code, e.message)
            errors.append({"row": idx, "employee_code": code, "error": e.message})
            continue
        except Exception:
            db.session.rollback()
            log.exception("[attendance-import] row %s (%s) failed", idx, code)
            errors.append({"row": idx, "employee_code": code, "error": "Unexpected error while importing row"})
            continue
        records.append({
            "row": idx,
            "employee_code": code,
            "id": rec.id,
            "action": "created" if created else "updated",
        })

    return {
        "processed": len(records),
        "total": len(rows),
        "records": records,
        "errors": errors,
        "columns": columns,
    }


def import_employees(rows: Iterable[dict]) -> dict:
    rows = list(rows)
    columns = resolve_columns(_headers(rows), EMPLOYEE_COLUMNS)
    missing = [f for f in ("code", "name") if f not in columns]
    if rows and missing:
        raise ValidationError(f"Missing required column(s): {', '.join(missing)}")

    records, errors = [], []
    for idx, raw in enumerate(rows, start=1):
        data = {f: _value(raw, columns, f) for f in columns}
        data = {k: v for k, v in data.items() if v is not None}
        try:
            emp = employee_service.create_employee(data)
        except APIError as e:
            db.session.rollback()
            log.warning("[employee-import] row %s (%s): %s", idx, data.get("code"), e.message)
            errors.append({"row": idx, "employee_code": data.get("code"), "error": e.message})
            continue
        except Exception:
            db.session.rollback()
            log.exception("[employee-import] row %s (%s) failed", idx, data.get("code"))
            errors.append({"row": idx, "employee_code": data.get("code"), "error": "Unexpected error while importing row"})
            continue
        records.append({"row": idx, "employee_code": emp.code, "id": emp.id, "action": "created"})

    return {
        "processed": len(records),
        "total": len(rows),
        "records": records,
        "errors": errors,
        "columns": columns,
    }

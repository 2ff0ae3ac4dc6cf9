import io

import openpyxl
import pytest

from payroll_api.common.errors import ValidationError
from payroll_api.models.attendance import AttendanceRecord
from payroll_api.services.bulk_import import (
    ATTENDANCE_COLUMNS, import_attendance, import_employees, resolve_columns,
)


def test_resolve_columns_ignores_case_and_punctuation():
    cols = resolve_columns(["EMP CODE", "paid-days", "Remarks"], ATTENDANCE_COLUMNS)
    assert cols == {"employee_code": "EMP CODE", "paid_days": "paid-days", "note": "Remarks"}


def test_first_synonym_wins():
    cols = resolve_columns(["Present Days", "Paid Days"], ATTENDANCE_COLUMNS)
    assert cols["paid_days"] == "Paid Days"


def test_bad_row_does_not_stop_import(session, make_employee):
    make_employee(code="EMP001")
    make_employee(code="EMP003")
    rows = [
        {"Emp Code": "EMP001", "Paid Days": "28"},
        {"Emp Code": "EMP999", "Paid Days": "30"},
        {"Emp Code": "EMP003", "Paid Days": ""},
    ]
    result = import_attendance(rows, 1, 2025)
    assert result["processed"] == 2
    assert result["total"] == 3
    assert result["errors"] == [
        {"row": 2, "employee_code": "EMP999", "error": "Employee not found with code: EMP999"},
    ]
    recs = {r.employee_code: r for r in AttendanceRecord.query.filter_by(month=1, year=2025)}
    assert recs["EMP001"].present_days == 28
    assert recs["EMP003"].present_days == 30


def test_row_level_validation_and_missing_code(session, make_employee):
    make_employee(code="EMP001")
    make_employee(code="EMP002")
    rows = [
        {"employeeCode": "", "paidDays": "30"},
        {"employeeCode": "EMP001", "paidDays": "45"},
        {"employeeCode": "EMP002", "paidDays": "29"},
    ]
    result = import_attendance(rows, 2, 2025)
    assert result["processed"] == 1
    assert [(e["row"], e["error"]) for e in result["errors"]] == [
        (1, "Missing employee code"),
        (2, "paid_days must be between 1 and 31"),
    ]


def test_reimport_updates_drafts(session, make_employee):
    make_employee(code="EMP001")
    import_attendance([{"code": "EMP001", "Paid Days": "30"}], 3, 2025)
    result = import_attendance([{"code": "EMP001", "Paid Days": "27"}], 3, 2025)
    assert result["records"][0]["action"] == "updated"
    assert AttendanceRecord.query.filter_by(month=3, year=2025).count() == 1


def test_missing_code_column(session, make_employee):
    with pytest.raises(ValidationError, match="No employee code column"):
        import_attendance([{"Name": "x"}], 1, 2025)


def test_csv_upload(client, auth, make_employee):
    make_employee(code="EMP001")
    csv_bytes = b"Employee Code,Paid Days\nEMP001,26\nEMP404,30\n"
    r = client.post(
        "/api/v1/attendance/import",
        data={"month": "4", "year": "2025", "file": (io.BytesIO(csv_bytes), "march.csv")},
        content_type="multipart/form-data",
        headers=auth("hr"),
    )
    assert r.status_code == 200
    body = r.get_json()
    assert body["data"]["processed"] == 1
    assert body["errors"][0]["row"] == 2


def test_xlsx_upload(client, auth, make_employee):
    make_employee(code="EMP001")
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["Emp Code", "Paid Days"])
    ws.append(["EMP001", 25])
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)

    r = client.post(
        "/api/v1/attendance/import",
        data={"month": "5", "year": "2025", "file": (buf, "may.xlsx")},
        content_type="multipart/form-data",
        headers=auth("hr"),
    )
    assert r.status_code == 200
    assert r.get_json()["data"]["processed"] == 1
    assert AttendanceRecord.query.filter_by(month=5, year=2025).one().present_days == 25


def test_non_numeric_cell_is_a_row_error(session, make_employee):
    for code in ("EMP001", "EMP002", "EMP003"):
        make_employee(code=code)
    rows = [
        {"Emp Code": "EMP001", "Paid Days": "30", "Reimbursement": "100"},
        {"Emp Code": "EMP002", "Paid Days": "30", "Reimbursement": "NaN"},
        {"Emp Code": "EMP003", "Paid Days": "29", "Reimbursement": ""},
    ]
    result = import_attendance(rows, 6, 2025)
    assert result["processed"] == 2
    assert result["errors"] == [
        {"row": 2, "employee_code": "EMP002", "error": "reimbursement must be a number"},
    ]
    assert AttendanceRecord.query.filter_by(month=6, year=2025).count() == 2


def test_unexpected_failure_on_one_row_keeps_going(session, make_employee, monkeypatch):
    from payroll_api.services import attendance_workflow

    make_employee(code="EMP001")
    broken = make_employee(code="EMP002")
    make_employee(code="EMP003")
    real_upsert = attendance_workflow.upsert_record

    def flaky_upsert(employee_id, *args, **kwargs):
        if employee_id == broken.id:
            raise RuntimeError("connection reset")
        return real_upsert(employee_id, *args, **kwargs)

    monkeypatch.setattr(attendance_workflow, "upsert_record", flaky_upsert)
    rows = [{"Emp Code": c, "Paid Days": "30"} for c in ("EMP001", "EMP002", "EMP003")]
    result = import_attendance(rows, 7, 2025)
    assert result["processed"] == 2
    assert [(e["row"], e["employee_code"]) for e in result["errors"]] == [(2, "EMP002")]
    assert [r["employee_code"] for r in result["records"]] == ["EMP001", "EMP003"]
    assert result["errors"][0]["error"] == "Unexpected error while importing row"


def test_employee_import_isolates_unexpected_errors(session, monkeypatch):
    from payroll_api.services import employee_service

    real_create = employee_service.create_employee

    def flaky_create(data):
        if data["code"] == "EMP21":
            raise RuntimeError("index corrupted")
        return real_create(data)

    monkeypatch.setattr(employee_service, "create_employee", flaky_create)
    rows = [{"Emp Code": c, "Name": f"Person {c}"} for c in ("EMP20", "EMP21", "EMP22")]
    result = import_employees(rows)
    assert [r["employee_code"] for r in result["records"]] == ["EMP20", "EMP22"]
    assert result["errors"] == [
        {"row": 2, "employee_code": "EMP21", "error": "Unexpected error while importing row"},
    ]

import pytest

from payroll_api.common.errors import StateGuardError, ValidationError
from payroll_api.models.attendance import AttendanceRecord, PayrollStage
from payroll_api.models.workflow import WorkflowAction
from payroll_api.services import attendance_workflow as aw


def test_upsert_creates_then_updates_same_period(session, make_employee):
    emp = make_employee(salary=30000)
    rec, created = aw.upsert_record(emp.id, 3, 2025, 27)
    assert created is True
    assert rec.present_days == 27
    assert rec.absent_days == 3
    assert rec.total_leaves == rec.casual_leaves + rec.sick_leaves + rec.earned_leaves + rec.other_leaves

    again, created = aw.upsert_record(emp.id, 3, 2025, 28)
    assert created is False
    assert again.id == rec.id
    assert AttendanceRecord.query.filter_by(employee_id=emp.id, month=3, year=2025).count() == 1

    # the employee is recomputed from the new paid days
    assert emp.paid_days == 28
    assert int(emp.day_wise_deduction) == 2000


def test_absent_days_invariant(session, make_employee):
    emp = make_employee()
    rec, _ = aw.upsert_record(emp.id, 4, 2025, 26, total_working_days=30,
                              leaves={"casual_leaves": 2, "sick_leaves": 1})
    assert rec.total_leaves == 3
    assert rec.absent_days == rec.total_leaves + (rec.total_working_days - rec.present_days - rec.total_leaves)
    assert rec.absent_days == 4


def test_leaves_cannot_exceed_absent_days(session, make_employee):
    emp = make_employee()
    with pytest.raises(ValidationError):
        aw.upsert_record(emp.id, 4, 2025, 29, leaves={"casual_leaves": 5})


@pytest.mark.parametrize("month,year,paid", [(0, 2025, 30), (13, 2025, 30), (1, 2019, 30), (1, 2031, 30), (1, 2025, 0), (1, 2025, 32)])
def test_period_and_paid_days_bounds(session, make_employee, month, year, paid):
    emp = make_employee()
    with pytest.raises(ValidationError):
        aw.upsert_record(emp.id, month, year, paid)


def test_full_approval_path_with_history(session, make_employee):
    emp = make_employee()
    rec, _ = aw.upsert_record(emp.id, 5, 2025, 30)
    aw.submit(rec.id)
    aw.approve(rec.id, comments="looks fine")
    assert rec.status == "approved"
    assert rec.payroll_stage is PayrollStage.PROCESSED

    actions = [a.action for a in WorkflowAction.query.filter_by(entity_type="attendance", entity_id=rec.id)
               .order_by(WorkflowAction.id)]
    assert actions == ["attendance.create", "attendance.submit", "attendance.approve"]


def test_only_draft_is_editable(session, make_employee):
    emp = make_employee()
    rec, _ = aw.upsert_record(emp.id, 5, 2025, 30)
    aw.submit(rec.id)
    with pytest.raises(StateGuardError):
        aw.upsert_record(emp.id, 5, 2025, 25)


def test_approve_requires_submitted(session, make_employee):
    emp = make_employee()
    rec, _ = aw.upsert_record(emp.id, 5, 2025, 30)
    with pytest.raises(StateGuardError):
        aw.approve(rec.id)


def test_reject_needs_comment_and_reopen_returns_to_draft(session, make_employee):
    emp = make_employee()
    rec, _ = aw.upsert_record(emp.id, 6, 2025, 30)
    aw.submit(rec.id)
    with pytest.raises(ValidationError):
        aw.reject(rec.id, comments="  ")
    aw.reject(rec.id, comments="wrong days")
    assert rec.status == "rejected"
    assert rec.payroll_stage is PayrollStage.NOT_MOVED

    with pytest.raises(StateGuardError):
        aw.approve(rec.id)

    aw.reopen(rec.id, comments="fixing")
    assert rec.status == "draft"
    assert rec.rejected_at is None
    rec, created = aw.upsert_record(emp.id, 6, 2025, 29)
    assert created is False


def test_bulk_create_skips_existing(session, make_employee):
    a = make_employee()
    make_employee()
    make_employee(is_active=False)
    aw.upsert_record(a.id, 7, 2025, 28)

    result = aw.bulk_create(7, 2025, total_working_days=30)
    assert result["total"] == 2
    assert result["created"] == 1
    assert result["skipped"] == 1
    assert result["skipped_records"][0]["employee_code"] == a.code
    assert result["records"][0].present_days == 30


def test_bulk_create_without_employees(session):
    with pytest.raises(ValidationError, match="No active employees found"):
        aw.bulk_create(7, 2025)


def test_stats(session, make_employee):
    a = make_employee()
    b = make_employee()
    aw.upsert_record(a.id, 8, 2025, 30)
    rec, _ = aw.upsert_record(b.id, 8, 2025, 24)
    aw.submit(rec.id)

    s = aw.stats(8, 2025)
    assert s["total_records"] == 2
    assert s["total_present_days"] == 54
    assert s["total_absent_days"] == 6
    assert s["avg_attendance"] == 90.0
    assert s["status_breakdown"]["draft"] == 1
    assert s["status_breakdown"]["submitted"] == 1


def test_http_flow_and_roles(client, auth, make_employee):
    emp = make_employee()
    hr = auth("hr")
    r = client.post("/api/v1/attendance", json={"employee_id": emp.id, "month": 9, "year": 2025, "paid_days": 29},
                    headers=hr)
    assert r.status_code == 201
    rid = r.get_json()["data"]["id"]

    r = client.post("/api/v1/attendance", json={"employee_id": emp.id, "month": 9, "year": 2025, "paid_days": 28},
                    headers=hr)
    assert r.status_code == 200
    assert r.get_json()["data"]["id"] == rid

    assert client.post(f"/api/v1/attendance/{rid}/submit", headers=auth("finance")).status_code == 403
    assert client.post(f"/api/v1/attendance/{rid}/submit", headers=hr).status_code == 200

    r = client.post(f"/api/v1/attendance/{rid}/submit", headers=hr)
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "INVALID_STATE"

    r = client.get(f"/api/v1/attendance/{rid}", headers=hr)
    body = r.get_json()["data"]
    assert body["payroll_stage"] == "moved"
    assert [h["action"] for h in body["history"]] == ["attendance.create", "attendance.submit"]


@pytest.mark.parametrize("absent", [1, 3, 7, 9])
def test_default_leave_split_covers_all_absent_days(absent):
    split = aw.split_leaves(absent)
    assert sum(split.values()) == absent
    assert all(v >= 0 for v in split.values())


def test_approval_keeps_employee_leaves(session, make_employee):
    emp = make_employee()
    rec, _ = aw.upsert_record(emp.id, 10, 2025, 27)
    assert rec.absent_days == 3
    assert rec.total_leaves == 3
    assert emp.leaves == 3

    aw.submit(rec.id)
    aw.approve(rec.id)
    assert emp.leaves == 3
    assert emp.paid_days == 27


def test_bulk_create_continues_after_unexpected_error(session, make_employee, monkeypatch):
    make_employee(code="EMP001")
    make_employee(code="EMP002")
    make_employee(code="EMP003")
    real_log = aw.log_action

    def flaky_log(entity_type, entity_id, action, *args, **kwargs):
        rec = session.get(AttendanceRecord, entity_id)
        if rec.employee_code == "EMP002":
            raise RuntimeError("disk full")
        return real_log(entity_type, entity_id, action, *args, **kwargs)

    monkeypatch.setattr(aw, "log_action", flaky_log)
    result = aw.bulk_create(11, 2025)
    assert result["created"] == 2
    assert result["skipped"] == 1
    assert result["skipped_records"][0]["reason"] == "Unexpected error while creating record"
    assert [s["employee_code"] for s in result["skipped_records"]] == ["EMP002"]
    assert AttendanceRecord.query.filter_by(month=11, year=2025).count() == 2

import pytest

from payroll_api.common.errors import ConflictError, DependencyError
from payroll_api.models.payroll.payslip import Payslip
from payroll_api.services import payslip_service
from payroll_api.services.payslip_service import NOTIFIER_KEY, RENDERER_KEY

from conftest import FakeNotifier, FakeRenderer


def test_generate_snapshots_employee(session, make_employee):
    emp = make_employee(salary=50000, department="Ops")
    slip, email = payslip_service.generate(emp.id, 1, 2025)
    assert email is None
    assert slip.net_salary == 48200
    assert slip.department == "Ops"
    assert slip.is_paid is False
    assert slip.email_status == "not_sent"

    # later salary changes do not touch the issued payslip
    emp.salary = 20000
    emp.recompute()
    session.commit()
    assert session.get(Payslip, slip.id).net_salary == 48200


def test_duplicate_period_conflict(session, make_employee):
    emp = make_employee(code="EMP7")
    payslip_service.generate(emp.id, 2, 2025)
    with pytest.raises(ConflictError, match="Payslip already exists for EMP7 for 2/2025"):
        payslip_service.generate(emp.id, 2, 2025)


def test_email_failure_keeps_payslip(app, session, make_employee):
    app.extensions[NOTIFIER_KEY] = FakeNotifier(fail_with="mailbox full")
    emp = make_employee()
    slip, email = payslip_service.generate(emp.id, 3, 2025, send_email=True)
    assert email["success"] is False
    assert email["error"] == "mailbox full"
    assert session.get(Payslip, slip.id) is not None
    assert slip.email_status == "failed"
    assert len(slip.email_logs) == 1


def test_missing_email_reported_without_history(session, make_employee):
    emp = make_employee(email=None)
    slip, email = payslip_service.generate(emp.id, 3, 2025, send_email=True)
    assert email["success"] is False
    assert email["error"] == "Employee email not found"
    assert slip.email_logs == []


def test_notifier_timeout(app, session, make_employee):
    app.config["NOTIFIER_TIMEOUT_SECONDS"] = 0.05
    app.extensions[NOTIFIER_KEY] = FakeNotifier(delay=0.5)
    emp = make_employee()
    slip, email = payslip_service.generate(emp.id, 4, 2025, send_email=True)
    assert email["success"] is False
    assert "timeout" in email["error"]
    assert slip.email_status == "failed"


def test_resend_appends_history(session, make_employee, notifier):
    emp = make_employee()
    slip, _ = payslip_service.generate(emp.id, 5, 2025, send_email=True)
    result = payslip_service.resend_email(slip.id)
    assert result["success"] is True
    assert result["total_sends"] == 2
    assert slip.email_status == "sent"
    assert slip.email_message_id == "<msg-2@test>"
    assert [log.success for log in slip.email_logs] == [True, True]
    assert len(notifier.sent) == 2


def test_generate_bulk_collects_errors(session, make_employee):
    a = make_employee(code="EMP1")
    make_employee(code="EMP2")
    make_employee(code="EMP3", is_active=False)
    payslip_service.generate(a.id, 6, 2025)

    result = payslip_service.generate_bulk(6, 2025)
    assert result["total"] == 2
    assert [p.employee_code for p in result["generated"]] == ["EMP2"]
    assert result["errors"][0]["employee_code"] == "EMP1"
    assert "already exists" in result["errors"][0]["error"]


def test_send_bulk_emails_counts(session, make_employee):
    a = make_employee()
    b = make_employee(email=None)
    s1, _ = payslip_service.generate(a.id, 7, 2025)
    s2, _ = payslip_service.generate(b.id, 7, 2025)

    result = payslip_service.send_bulk_emails([s1.id, s2.id, 9999])
    assert result["total"] == 3
    assert result["successful"] == 1
    assert result["failed"] == 2
    assert s1.email_logs[0].is_bulk is True


def test_render_failure_is_dependency_error(app, session, make_employee):
    app.extensions[RENDERER_KEY] = FakeRenderer(broken=True)
    emp = make_employee()
    slip, _ = payslip_service.generate(emp.id, 8, 2025)
    with pytest.raises(DependencyError):
        payslip_service.render_pdf(slip)


def test_build_report_totals(session, make_employee):
    a = make_employee(salary=50000)
    b = make_employee(salary=20000)
    s1, _ = payslip_service.generate(a.id, 1, 2025)
    payslip_service.generate(b.id, 2, 2025)
    s1.is_paid = True
    session.commit()

    q1 = payslip_service.build_report("quarterly", 3, 2025)
    assert q1["label"] == "Q1 2025"
    assert q1["totals"]["count"] == 2
    assert q1["totals"]["total_salary"] == 48200 + 18890
    assert q1["totals"]["paid_amount"] == 48200
    assert q1["totals"]["pending_count"] == 1

    monthly = payslip_service.build_report("monthly", 2, 2025)
    assert monthly["totals"]["count"] == 1


def test_http_generate_send_and_pdf(client, auth, make_employee, notifier):
    emp = make_employee(code="EMP42")
    hr = auth("hr")
    r = client.post("/api/v1/payslips/generate",
                    json={"employee_id": emp.id, "month": 9, "year": 2025, "send_email": True}, headers=hr)
    assert r.status_code == 201
    body = r.get_json()["data"]
    pid = body["payslip"]["id"]
    assert body["email"]["success"] is True

    r = client.post("/api/v1/payslips/generate", json={"employee_id": emp.id, "month": 9, "year": 2025}, headers=hr)
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "CONFLICT"

    notifier.fail_with = "smtp down"
    r = client.post(f"/api/v1/payslips/{pid}/send-email", headers=hr)
    assert r.status_code == 200
    assert r.get_json()["success"] is False
    assert r.get_json()["data"]["total_sends"] == 2

    r = client.get(f"/api/v1/payslips/{pid}", headers=hr)
    assert [h["success"] for h in r.get_json()["data"]["email_history"]] == [True, False]

    r = client.get(f"/api/v1/payslips/{pid}/pdf", headers=hr)
    assert r.status_code == 200
    assert r.mimetype == "application/pdf"
    assert r.data.startswith(b"%PDF")

    r = client.get(f"/api/v1/payslips/{pid}/html", headers=hr)
    assert r.status_code == 200
    assert b"EMP42" in r.data


def test_generate_bulk_isolates_unexpected_errors(session, make_employee, monkeypatch):
    make_employee(code="EMP1")
    broken = make_employee(code="EMP2")
    make_employee(code="EMP3")
    real_generate = payslip_service.generate

    def flaky_generate(employee_id, *args, **kwargs):
        if employee_id == broken.id:
            raise RuntimeError("lost connection")
        return real_generate(employee_id, *args, **kwargs)

    monkeypatch.setattr(payslip_service, "generate", flaky_generate)
    result = payslip_service.generate_bulk(8, 2025)
    assert [p.employee_code for p in result["generated"]] == ["EMP1", "EMP3"]
    assert result["errors"] == [{
        "employee_code": "EMP2", "employee_name": broken.name,
        "error": "Unexpected error while generating payslip",
    }]
    assert Payslip.query.filter_by(month=8, year=2025).count() == 2


def test_send_bulk_emails_isolates_unexpected_errors(session, make_employee, monkeypatch):
    slips = [payslip_service.generate(make_employee().id, 9, 2025)[0] for _ in range(3)]
    real_deliver = payslip_service._deliver_if_possible

    def flaky_deliver(slip, is_bulk=False):
        if slip.id == slips[1].id:
            raise RuntimeError("smtp crashed")
        return real_deliver(slip, is_bulk)

    monkeypatch.setattr(payslip_service, "_deliver_if_possible", flaky_deliver)
    result = payslip_service.send_bulk_emails([s.id for s in slips])
    assert result["total"] == 3
    assert result["successful"] == 2
    assert result["failed"] == 1
    assert result["results"][1] == {
        "payslip_id": slips[1].id, "success": False, "error": "Unexpected error while sending email",
    }
    assert slips[2].email_status == "sent"

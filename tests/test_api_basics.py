from payroll_api.services.notifier import LogNotifier, SmtpNotifier, build_notifier, payslip_email


def test_health(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.get_json() == {"success": True, "message": "OK", "data": {"status": "ok"}}


def test_missing_token_is_rejected(client):
    assert client.get("/api/v1/payslips").status_code == 401


def test_not_found_envelope(client, auth):
    r = client.get("/api/v1/payments/12345", headers=auth("finance"))
    assert r.status_code == 404
    body = r.get_json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"


def test_listing_meta(client, auth, make_employee):
    for _ in range(3):
        make_employee()
    r = client.get("/api/v1/employees?limit=2&page=2", headers=auth("hr"))
    body = r.get_json()
    assert body["meta"] == {"page": 2, "limit": 2, "total": 3}
    assert len(body["data"]) == 1


def test_build_notifier_backends():
    assert isinstance(build_notifier({"MAIL_BACKEND": "log"}), LogNotifier)
    smtp = build_notifier({"MAIL_BACKEND": "smtp", "SMTP_HOST": "localhost", "SMTP_PORT": "2525"})
    assert isinstance(smtp, SmtpNotifier)
    # no credentials: reported as a failed delivery, nothing raised
    result = smtp.send({"email": "a@example.com"}, {})
    assert result.success is False
    assert result.error == "Email service not configured"


def test_payslip_email_content():
    slip = {
        "employee_name": "Asha", "month": 1, "year": 2025, "basic": 20000, "hra": 10000,
        "conveyance": 1600, "other_allowance": 18400, "pf": 1800, "esic": 0,
        "day_wise_deduction": 0, "reimbursement": 0, "net_salary": 48200,
        "paid_days": 30, "leaves": 0,
    }
    subject, html, text = payslip_email(slip, "Acme")
    assert subject == "Salary Slip - January 2025"
    assert "48,200.00" in html
    assert "Acme" in html
    assert "48,200.00" in text

import os
import time

import pytest
from flask_jwt_extended import create_access_token

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.user import User
from payroll_api.services.notifier import NotificationResult
from payroll_api.services.payslip_service import NOTIFIER_KEY, RENDERER_KEY


class FakeNotifier:
    def __init__(self, fail_with=None, delay=0):
        self.fail_with = fail_with
        self.delay = delay
        self.sent = []

    def send(self, recipient, payslip, is_bulk=False):
        if self.delay:
            time.sleep(self.delay)
        self.sent.append((recipient["email"], payslip["id"], is_bulk))
        if self.fail_with:
            return NotificationResult(False, error=self.fail_with)
        return NotificationResult(True, message_id=f"<msg-{len(self.sent)}@test>")


class FakeRenderer:
    def __init__(self, broken=False):
        self.broken = broken

    def render_payslip(self, payslip):
        if self.broken:
            raise RuntimeError("renderer down")
        return b"%PDF-1.4 payslip " + payslip["employee_code"].encode()

    def render_report(self, report):
        if self.broken:
            raise RuntimeError("renderer down")
        return b"%PDF-1.4 report " + report["type"].encode()


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app({"TESTING": True, "NOTIFIER_TIMEOUT_SECONDS": 0.2})
    app.extensions[NOTIFIER_KEY] = FakeNotifier()
    app.extensions[RENDERER_KEY] = FakeRenderer()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def session(app):
    with app.app_context():
        yield db.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def notifier(app):
    return app.extensions[NOTIFIER_KEY]


@pytest.fixture
def make_employee(session):
    counter = {"n": 0}

    def _make(**kw):
        counter["n"] += 1
        n = counter["n"]
        emp = Employee(
            code=kw.pop("code", f"E{n:03d}"),
            name=kw.pop("name", f"Employee {n}"),
            email=kw.pop("email", f"emp{n}@example.com"),
            salary=kw.pop("salary", 50000),
            paid_days=kw.pop("paid_days", 30),
            leaves=0,
            deduct_pf=kw.pop("deduct_pf", True),
            deduct_esic=kw.pop("deduct_esic", True),
            reimbursement=0,
            is_active=kw.pop("is_active", True),
            **kw,
        )
        emp.recompute()
        session.add(emp)
        session.commit()
        return emp

    return _make


@pytest.fixture
def auth(session):
    """auth("hr") -> headers for a fresh user holding those roles in the token."""
    counter = {"n": 0}

    def _headers(*roles, employee=None):
        counter["n"] += 1
        user = User(email=f"user{counter['n']}@example.com", full_name=f"User {counter['n']}")
        user.set_password("secret")
        session.add(user)
        session.flush()
        if employee is not None:
            employee.user_id = user.id
        session.commit()
        token = create_access_token(identity=str(user.id), additional_claims={"roles": list(roles)})
        return {"Authorization": f"Bearer {token}"}

    return _headers

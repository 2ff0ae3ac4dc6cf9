from payroll_api.models.employee import Employee


def test_create_employee_computes_breakdown(client, auth):
    hr = auth("hr")
    r = client.post("/api/v1/employees", json={
        "code": "EMP100", "name": "Asha Rao", "email": "Asha@Example.com",
        "salary": 50000, "department": "Ops",
    }, headers=hr)
    assert r.status_code == 201, r.get_json()
    data = r.get_json()["data"]
    assert data["email"] == "asha@example.com"
    assert data["basic"] == 20000
    assert data["net_salary"] == 48200


def test_duplicate_code_is_conflict(client, auth, make_employee):
    make_employee(code="EMP1")
    r = client.post("/api/v1/employees", json={"code": "EMP1", "name": "Dup"}, headers=auth("hr"))
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "CONFLICT"


def test_update_recomputes(client, auth, make_employee):
    emp = make_employee(salary=50000)
    r = client.patch(f"/api/v1/employees/{emp.id}", json={"salary": 20000}, headers=auth("hr"))
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["esic"] == 150
    assert data["net_salary"] == 18890


def test_negative_salary_rejected(client, auth, make_employee):
    emp = make_employee()
    r = client.put(f"/api/v1/employees/{emp.id}", json={"salary": -10}, headers=auth("hr"))
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"


def test_delete_deactivates(client, auth, make_employee, session):
    emp = make_employee()
    r = client.delete(f"/api/v1/employees/{emp.id}", headers=auth("hr"))
    assert r.status_code == 200
    assert session.get(Employee, emp.id).is_active is False


def test_calculate_preview(client, auth):
    r = client.post("/api/v1/employees/calculate-salary",
                    json={"salary": 50000, "paid_days": 30}, headers=auth("employee"))
    assert r.status_code == 200
    assert r.get_json()["data"]["net_salary"] == 48200


def test_employee_role_sees_only_self(client, auth, make_employee):
    me = make_employee()
    other = make_employee()
    headers = auth("employee", employee=me)

    r = client.get("/api/v1/employees", headers=headers)
    assert [e["id"] for e in r.get_json()["data"]] == [me.id]

    assert client.get(f"/api/v1/employees/{me.id}/salary-breakdown", headers=headers).status_code == 200
    assert client.get(f"/api/v1/employees/{other.id}", headers=headers).status_code == 403


def test_create_requires_hr(client, auth):
    r = client.post("/api/v1/employees", json={"code": "X", "name": "Y"}, headers=auth("finance"))
    assert r.status_code == 403


def test_import_employees_json(client, auth, make_employee):
    make_employee(code="EMP9")
    rows = [
        {"Employee Code": "EMP10", "Full Name": "New One", "Gross Salary": "30000"},
        {"Employee Code": "EMP9", "Full Name": "Duplicate"},
        {"Employee Code": "EMP11", "Full Name": "New Two", "Gross Salary": "20000"},
    ]
    r = client.post("/api/v1/employees/import", json={"rows": rows}, headers=auth("hr"))
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["processed"] == 2
    assert [e["row"] for e in data["errors"]] == [2]
    assert Employee.query.filter_by(code="EMP11").one().net_salary == 18890


def test_non_finite_salary_is_validation_error(client, auth, make_employee):
    hr = auth("hr")
    r = client.post("/api/v1/employees/calculate-salary", json={"salary": "NaN"}, headers=hr)
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"

    emp = make_employee()
    r = client.patch(f"/api/v1/employees/{emp.id}", json={"reimbursement": "Infinity"}, headers=hr)
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"

from __future__ import annotations

import json

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from hrms.services.candidates import create_candidate
from hrms.services.employees import create_employee
from hrms.utils.errors import ConflictError


def _candidate(client, headers, email="ravi@example.com"):
    res = client.post(
        "/api/candidates",
        json={
            "name": "Ravi Kumar",
            "email": email,
            "phone": "9876543210",
            "position": "QA Engineer",
            "experience": "2 years",
        },
        headers=headers,
    )
    assert res.status_code == 201
    return res.get_json()["data"]


def _employee_payload(candidate_id, **overrides):
    payload = {
        "candidateId": candidate_id,
        "name": "Ravi Kumar",
        "email": "ravi@example.com",
        "phone": "9876543210",
        "position": "QA Engineer",
        "experience": "2 years",
        "employeeId": "EMP-100",
        "department": "Quality",
        "salary": "55000",
        "joiningDate": "2025-08-01",
        "workLocation": "Pune",
        "employmentType": "Full-time",
        "tasks": [{"description": "Onboarding", "dueDate": "2025-08-05"}],
    }
    payload.update(overrides)
    return payload


def _create_employee(client, headers, **overrides):
    cand = _candidate(client, headers, email=overrides.get("email", "ravi@example.com"))
    res = client.post("/api/employees", json=_employee_payload(cand["id"], **overrides), headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]


def test_create_employee_directly(app_client, auth_headers):
    _app, client = app_client
    emp = _create_employee(client, auth_headers)
    assert emp["status"] == "Selected"
    assert emp["salary"] == 55000.0
    assert emp["joiningDate"] == "2025-08-01"
    assert emp["tasks"] == [{"description": "Onboarding", "dueDate": "2025-08-05"}]


def test_create_employee_requires_owned_candidate(app_client, auth_headers, other_auth_headers):
    _app, client = app_client
    cand = _candidate(client, other_auth_headers)
    res = client.post("/api/employees", json=_employee_payload(cand["id"]), headers=auth_headers)
    assert res.status_code == 404
    assert res.get_json()["message"] == "Candidate not found"


def test_create_employee_rejects_duplicates(app_client, auth_headers):
    _app, client = app_client
    emp = _create_employee(client, auth_headers)

    res = client.post("/api/employees", json=_employee_payload(emp["candidateId"]), headers=auth_headers)
    assert res.status_code == 400
    assert res.get_json()["message"] == "Employee with this email already exists"

    cand = _candidate(client, auth_headers, email="new@example.com")
    res = client.post(
        "/api/employees", json=_employee_payload(cand["id"], email="new@example.com"), headers=auth_headers
    )
    assert res.status_code == 400
    assert res.get_json()["message"] == "Employee with this employee ID already exists"


def test_multipart_create_with_task_string(app_client, auth_headers):
    _app, client = app_client
    cand = _candidate(client, auth_headers)
    data = _employee_payload(cand["id"])
    data["tasks"] = json.dumps(data["tasks"])
    res = client.post("/api/employees", data=data, headers=auth_headers, content_type="multipart/form-data")
    assert res.status_code == 201
    assert len(res.get_json()["data"]["tasks"]) == 1


def test_search_filters(app_client, auth_headers):
    _app, client = app_client
    _create_employee(client, auth_headers)
    _create_employee(
        client, auth_headers, email="lata@example.com", name="Lata", employeeId="EMP-101", department="Finance"
    )

    res = client.get("/api/employees?department=fin", headers=auth_headers)
    assert [e["name"] for e in res.get_json()["data"]] == ["Lata"]

    res = client.get("/api/employees?search=qa&department=all&status=All", headers=auth_headers)
    body = res.get_json()
    assert body["total"] == 2
    assert body["currentPage"] == 1


def test_update_employee(app_client, auth_headers):
    _app, client = app_client
    emp = _create_employee(client, auth_headers)

    res = client.patch(f"/api/employees/{emp['id']}", json={"position": "Lead"}, headers=auth_headers)
    assert res.status_code == 400
    assert res.get_json()["message"] == "Joining date, employment type, position, and tasks are required"

    body = {
        "joiningDate": "2025-09-01",
        "employmentType": "Contract",
        "position": "QA Lead",
        "tasks": [{"description": "Plan", "dueDate": "not-a-date"}],
    }
    res = client.patch(f"/api/employees/{emp['id']}", json=body, headers=auth_headers)
    assert res.status_code == 400
    assert res.get_json()["message"] == "Invalid due date in tasks"

    body["tasks"] = [{"description": "Plan", "dueDate": "2025-09-10"}]
    res = client.patch(f"/api/employees/{emp['id']}", json=body, headers=auth_headers)
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["position"] == "QA Lead"
    assert data["employmentType"] == "Contract"
    assert data["joiningDate"] == "2025-09-01"
    assert data["tasks"][0]["dueDate"] == "2025-09-10"

    body["employmentType"] = "Freelance"
    res = client.patch(f"/api/employees/{emp['id']}", json=body, headers=auth_headers)
    assert res.get_json()["message"] == "Invalid employment type"


def test_employee_status_and_delete(app_client, auth_headers, db):
    _app, client = app_client
    emp = _create_employee(client, auth_headers)

    res = client.patch(f"/api/employees/{emp['id']}/status", json={"status": "Ongoing"}, headers=auth_headers)
    assert res.status_code == 200
    assert res.get_json()["data"]["status"] == "Ongoing"

    res = client.patch(f"/api/employees/{emp['id']}/status", json={"status": "Fired"}, headers=auth_headers)
    assert res.status_code == 400

    res = client.delete(f"/api/employees/{emp['id']}", headers=auth_headers)
    assert res.status_code == 200
    assert db.employees.count_documents({"_id": ObjectId(emp["id"])}) == 0

    res = client.get(f"/api/employees/{emp['id']}", headers=auth_headers)
    assert res.status_code == 404


def test_employee_resume_missing(app_client, auth_headers):
    _app, client = app_client
    emp = _create_employee(client, auth_headers)
    res = client.get(f"/api/employees/{emp['id']}/resume", headers=auth_headers)
    assert res.status_code == 404
    assert res.get_json()["message"] == "No resume uploaded for this employee"


class _RacingEmployees:
    def __init__(self, inner):
        self._inner = inner

    def find_one(self, *args, **kwargs):
        return None

    def insert_one(self, *args, **kwargs):
        raise DuplicateKeyError("E11000 duplicate key")

    def __getattr__(self, name):
        return getattr(self._inner, name)


class _RacingDb:
    def __init__(self, inner):
        self._inner = inner
        self.employees = _RacingEmployees(inner.employees)

    def __getattr__(self, name):
        return getattr(self._inner, name)


def test_lost_insert_race_logs_stored_resume(db, caplog):
    owner = ObjectId()
    cand = create_candidate(
        db,
        owner_id=owner,
        data={"name": "Ravi Kumar", "email": "ravi@example.com", "phone": "9876543210", "position": "QA", "experience": "2"},
    )
    handle = "cd" * 32

    with caplog.at_level("WARNING", logger="hrms.services.employees"):
        with pytest.raises(ConflictError):
            create_employee(
                _RacingDb(db),
                owner_id=owner,
                data=_employee_payload(str(cand["_id"])),
                tz_name="Asia/Kolkata",
                store_resume=lambda: handle,
            )

    assert handle in caplog.text
    assert db.employees.count_documents({}) == 0

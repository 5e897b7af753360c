from __future__ import annotations

import io
from datetime import datetime, timezone

import pytest
from bson import ObjectId

from hrms.services.attendance import record_attendance
from hrms.services.leave import create_leave_request, update_leave_status
from hrms.utils.datetime import add_days, to_local_date_str, today_start
from hrms.utils.errors import ConflictError, NotFoundError, ValidationError


TZ = "Asia/Kolkata"
# 12:00 in Kolkata on 2025-06-10.
NOW = datetime(2025, 6, 10, 6, 30, tzinfo=timezone.utc)


def _seed_employee(db, owner_id, *, name="Devi", email="devi@example.com"):
    return db.employees.insert_one(
        {
            "employeeId": f"EMP-{email}",
            "name": name,
            "email": email,
            "phone": "9876543210",
            "position": "Support",
            "department": "Care",
            "status": "Selected",
            "tasks": [],
            "candidateId": ObjectId(),
            "ownerId": owner_id,
            "createdAt": NOW,
            "updatedAt": NOW,
        }
    ).inserted_id


def _request(**overrides):
    data = {
        "startDate": "2025-06-11",
        "endDate": "2025-06-13",
        "leaveType": "Sick Leave",
        "reason": "flu",
    }
    data.update(overrides)
    return data


@pytest.fixture()
def present_employee(db):
    owner = ObjectId()
    emp_id = _seed_employee(db, owner)
    record_attendance(db, owner_id=owner, employee_id=emp_id, date="2025-06-10", status="Present", tz_name=TZ)
    return owner, emp_id


def test_start_today_is_rejected(db, present_employee):
    owner, emp_id = present_employee
    with pytest.raises(ValidationError, match="Leave can only start from tomorrow or later"):
        create_leave_request(
            db,
            owner_id=owner,
            data=_request(employeeId=emp_id, startDate="2025-06-10", endDate="2025-06-12"),
            tz_name=TZ,
            now=NOW,
        )
    assert db.leaves.count_documents({}) == 0


def test_end_before_start_is_rejected(db, present_employee):
    owner, emp_id = present_employee
    with pytest.raises(ValidationError, match="End date cannot be before start date"):
        create_leave_request(
            db,
            owner_id=owner,
            data=_request(employeeId=emp_id, startDate="2025-06-11", endDate="2025-06-10"),
            tz_name=TZ,
            now=NOW,
        )


def test_sick_leave_from_tomorrow_is_pending(db, present_employee):
    owner, emp_id = present_employee
    leave = create_leave_request(db, owner_id=owner, data=_request(employeeId=emp_id), tz_name=TZ, now=NOW)
    assert leave["status"] == "Pending"
    assert leave["leaveType"] == "Sick Leave"
    assert to_local_date_str(leave["startDate"], TZ) == "2025-06-11"
    assert to_local_date_str(leave["endDate"], TZ) == "2025-06-13"
    assert db.leaves.count_documents({"employeeId": emp_id}) == 1


def test_short_leave_type_is_canonicalized(db, present_employee):
    owner, emp_id = present_employee
    leave = create_leave_request(
        db, owner_id=owner, data=_request(employeeId=emp_id, leaveType="casual"), tz_name=TZ, now=NOW
    )
    assert leave["leaveType"] == "Casual Leave"

    with pytest.raises(ValidationError, match="Invalid leave type"):
        create_leave_request(
            db, owner_id=owner, data=_request(employeeId=emp_id, leaveType="Vacation"), tz_name=TZ, now=NOW
        )


@pytest.mark.parametrize(
    "start,end",
    [("2025/06/11", "2025-06-12"), ("2025-06-11", "12-06-2025"), ("2025-6-11", "2025-06-12")],
)
def test_strict_date_format(db, present_employee, start, end):
    owner, emp_id = present_employee
    with pytest.raises(ValidationError, match=r"Invalid date format\. Use YYYY-MM-DD"):
        create_leave_request(
            db, owner_id=owner, data=_request(employeeId=emp_id, startDate=start, endDate=end), tz_name=TZ, now=NOW
        )


def test_no_attendance_today_fails_and_creates_nothing(db):
    owner = ObjectId()
    emp_id = _seed_employee(db, owner)
    stored = []

    with pytest.raises(ValidationError, match="Employee must be marked as Present today to request a leave"):
        create_leave_request(
            db,
            owner_id=owner,
            data=_request(employeeId=emp_id),
            tz_name=TZ,
            store_document=lambda: stored.append("blob") or "handle",
            now=NOW,
        )
    assert db.leaves.count_documents({}) == 0
    assert stored == []


def test_absent_today_fails(db):
    owner = ObjectId()
    emp_id = _seed_employee(db, owner)
    record_attendance(db, owner_id=owner, employee_id=emp_id, date="2025-06-10", status="Absent", tz_name=TZ)
    with pytest.raises(ValidationError, match="Present today"):
        create_leave_request(db, owner_id=owner, data=_request(employeeId=emp_id), tz_name=TZ, now=NOW)


def test_missing_fields_and_foreign_employee(db, present_employee):
    owner, emp_id = present_employee
    with pytest.raises(ValidationError, match="Employee ID, start date, end date, leave type, and reason are required"):
        create_leave_request(db, owner_id=owner, data=_request(employeeId=emp_id, reason=""), tz_name=TZ, now=NOW)

    with pytest.raises(NotFoundError):
        create_leave_request(db, owner_id=ObjectId(), data=_request(employeeId=emp_id), tz_name=TZ, now=NOW)


def test_status_workflow(db, present_employee):
    owner, emp_id = present_employee
    leave = create_leave_request(db, owner_id=owner, data=_request(employeeId=emp_id), tz_name=TZ, now=NOW)

    with pytest.raises(ValidationError, match="Invalid status value"):
        update_leave_status(db, owner_id=owner, leave_id=leave["_id"], status="Cancelled")

    updated = update_leave_status(db, owner_id=owner, leave_id=leave["_id"], status="Approved")
    assert updated["status"] == "Approved"

    with pytest.raises(ConflictError):
        update_leave_status(db, owner_id=owner, leave_id=leave["_id"], status="Rejected")

    with pytest.raises(NotFoundError):
        update_leave_status(db, owner_id=ObjectId(), leave_id=leave["_id"], status="Approved")


def _today_and_tomorrow():
    today = today_start(TZ)
    return to_local_date_str(today, TZ), to_local_date_str(add_days(today, 1, TZ), TZ)


def test_http_create_list_and_download(app_client, auth_headers, db):
    _app, client = app_client
    me = client.get("/api/auth/verify-token", headers=auth_headers).get_json()["data"]["user"]
    owner = ObjectId(me["id"])
    emp_id = _seed_employee(db, owner)
    other_id = _seed_employee(db, owner, name="Sunil", email="sunil@example.com")
    today, tomorrow = _today_and_tomorrow()

    for eid in (emp_id, other_id):
        res = client.post(
            "/api/attendance", json={"employeeId": str(eid), "date": today, "status": "Present"}, headers=auth_headers
        )
        assert res.status_code == 201

    form = _request(employeeId=str(emp_id), startDate=tomorrow, endDate=tomorrow)
    form["document"] = (io.BytesIO(b"%PDF-1.4 note"), "medical.pdf", "application/pdf")
    res = client.post("/api/leave", data=form, headers=auth_headers, content_type="multipart/form-data")
    assert res.status_code == 201, res.get_json()
    leave = res.get_json()["data"]
    assert leave["status"] == "Pending"
    assert leave["startDate"] == tomorrow
    assert leave["employee"]["name"] == "Devi"

    res = client.post(
        "/api/leave",
        json=_request(employeeId=str(other_id), startDate=tomorrow, endDate=tomorrow, leaveType="Annual Leave"),
        headers=auth_headers,
    )
    assert res.status_code == 201

    res = client.get("/api/leave?search=devi", headers=auth_headers)
    rows = res.get_json()["data"]
    assert [r["id"] for r in rows] == [leave["id"]]

    res = client.patch(f"/api/leave/{leave['id']}/status", json={"status": "Rejected"}, headers=auth_headers)
    assert res.status_code == 200
    assert res.get_json()["data"]["status"] == "Rejected"

    res = client.get("/api/leave?status=Pending", headers=auth_headers)
    assert [r["employee"]["name"] for r in res.get_json()["data"]] == ["Sunil"]
    res = client.get("/api/leave?status=All", headers=auth_headers)
    assert len(res.get_json()["data"]) == 2

    res = client.get(f"/api/leave/{leave['id']}/document", headers=auth_headers)
    assert res.status_code == 200
    assert res.data == b"%PDF-1.4 note"


def test_http_rejected_request_stores_no_document(app_client, auth_headers, db, tmp_path):
    _app, client = app_client
    me = client.get("/api/auth/verify-token", headers=auth_headers).get_json()["data"]["user"]
    emp_id = _seed_employee(db, ObjectId(me["id"]))
    _today, tomorrow = _today_and_tomorrow()

    form = _request(employeeId=str(emp_id), startDate=tomorrow, endDate=tomorrow)
    form["document"] = (io.BytesIO(b"%PDF-1.4 note"), "medical.pdf", "application/pdf")
    res = client.post("/api/leave", data=form, headers=auth_headers, content_type="multipart/form-data")
    assert res.status_code == 400
    assert res.get_json()["message"] == "Employee must be marked as Present today to request a leave"
    assert not (tmp_path / "uploads").exists()

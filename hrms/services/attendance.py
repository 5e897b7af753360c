from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from hrms.services.employees import find_owned_employee
from hrms.services.transitions import ATTENDANCE_STATUSES
from hrms.utils.datetime import parse_calendar_date, start_of_day, utc_now
from hrms.utils.errors import ValidationError
from hrms.utils.serialization import public_tasks, to_public
from hrms.utils.validators import clean_str, parse_object_id, require_fields, validate_choice

log = logging.getLogger(__name__)


def parse_attendance_day(value: Any, *, tz_name: str) -> datetime:
    day = parse_calendar_date(value, tz_name)
    if day is None:
        raise ValidationError("Invalid date format", details={"field": "date"})
    return start_of_day(day, tz_name)


def record_attendance(
    db,
    *,
    owner_id: ObjectId,
    employee_id: Any,
    date: Any,
    status: Any,
    tz_name: str,
    now: datetime | None = None,
) -> tuple[dict[str, Any], bool]:
    """Upsert the (employee, day) record. Returns ``(record, created)``."""
    require_fields(
        {"employeeId": employee_id, "date": date, "status": status},
        ["employeeId", "date", "status"],
        "Employee ID, date, and status are required",
    )
    status = validate_choice(status, ATTENDANCE_STATUSES, "Invalid status value")
    day = parse_attendance_day(date, tz_name=tz_name)
    emp = find_owned_employee(db, owner_id=owner_id, employee_id=employee_id)
    now = now or utc_now()

    key = {"employeeId": emp["_id"], "date": day}
    changes = {"status": status, "ownerId": owner_id, "updatedAt": now}

    existing = db.attendance.find_one(key, {"_id": 1})
    if existing:
        db.attendance.update_one({"_id": existing["_id"]}, {"$set": changes})
        return db.attendance.find_one({"_id": existing["_id"]}), False

    doc = {**key, **changes, "createdAt": now}
    try:
        result = db.attendance.insert_one(doc)
    except DuplicateKeyError:
        log.info("attendance insert raced employee=%s day=%s; updating instead", emp["_id"], day)
        db.attendance.update_one(key, {"$set": changes})
        return db.attendance.find_one(key), False
    doc["_id"] = result.inserted_id
    return doc, True


def _employee_summary(emp: dict[str, Any] | None, *, tz_name: str) -> dict[str, Any] | None:
    if not emp:
        return None
    return {
        "id": str(emp["_id"]),
        "name": emp.get("name", ""),
        "department": emp.get("department", ""),
        "position": emp.get("position", ""),
        "tasks": public_tasks(emp.get("tasks"), tz_name=tz_name),
    }


def public_attendance(
    doc: dict[str, Any], *, tz_name: str, employee: dict[str, Any] | None = None
) -> dict[str, Any]:
    out = to_public(doc, tz_name=tz_name, day_fields=("date",))
    out["employee"] = _employee_summary(employee, tz_name=tz_name)
    return out


def list_attendance(
    db,
    *,
    owner_id: ObjectId,
    employee_id: Any = None,
    date: Any = None,
    tz_name: str,
) -> list[dict[str, Any]]:
    """Owner's attendance newest day first, each row joined with its employee."""
    query: dict[str, Any] = {"ownerId": owner_id}
    if clean_str(employee_id):
        query["employeeId"] = parse_object_id(employee_id, not_found="Employee not found")
    if clean_str(date):
        query["date"] = parse_attendance_day(date, tz_name=tz_name)

    records = list(db.attendance.find(query).sort([("date", -1), ("_id", -1)]))
    emp_ids = list({r["employeeId"] for r in records})
    employees = {
        e["_id"]: e for e in db.employees.find({"_id": {"$in": emp_ids}, "ownerId": owner_id})
    } if emp_ids else {}

    return [
        public_attendance(r, tz_name=tz_name, employee=employees.get(r["employeeId"])) for r in records
    ]

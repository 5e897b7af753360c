"""Leave requests: eligibility checks, the Pending/Approved/Rejected workflow and listing.

Every day-granular comparison (today, tomorrow, the requested window, the
attendance key) is done on local midnights of the reference timezone.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from bson import ObjectId
from pymongo import ReturnDocument

from hrms.services.common import contains_ci
from hrms.services.employees import find_owned_employee
from hrms.services.transitions import LEAVE_INITIAL_STATUS, LEAVE_MACHINE, canonical_leave_type
from hrms.utils.datetime import add_days, parse_strict_date, start_of_day, today_start, utc_now
from hrms.utils.errors import NotFoundError, ValidationError
from hrms.utils.serialization import to_public
from hrms.utils.validators import clean_str, is_all, parse_object_id, require_fields

log = logging.getLogger(__name__)

LEAVE_NOT_FOUND = "Leave request not found"
_DATE_FORMAT_MESSAGE = "Invalid date format. Use YYYY-MM-DD (e.g., 2025-06-25)."


def public_leave(doc: dict[str, Any], *, tz_name: str, employee: dict[str, Any] | None = None) -> dict[str, Any]:
    out = to_public(doc, tz_name=tz_name, day_fields=("startDate", "endDate"))
    out["employee"] = (
        {"id": str(employee["_id"]), "name": employee.get("name", ""), "position": employee.get("position", "")}
        if employee
        else None
    )
    return out


def create_leave_request(
    db,
    *,
    owner_id: ObjectId,
    data: dict[str, Any],
    tz_name: str,
    store_document: Callable[[], str | None] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Validate and persist a leave request.

    ``store_document`` is only called once every check has passed; it returns
    the document handle (or None) to attach to the record.
    """
    require_fields(
        data,
        ["employeeId", "startDate", "endDate", "leaveType", "reason"],
        "Employee ID, start date, end date, leave type, and reason are required",
    )

    start_day = parse_strict_date(data["startDate"])
    end_day = parse_strict_date(data["endDate"])
    if start_day is None or end_day is None:
        raise ValidationError(_DATE_FORMAT_MESSAGE)

    start = start_of_day(start_day, tz_name)
    end = start_of_day(end_day, tz_name)
    if end < start:
        raise ValidationError("End date cannot be before start date")

    now = now or utc_now()
    today = today_start(tz_name, now=now)
    if start < add_days(today, 1, tz_name):
        raise ValidationError("Leave can only start from tomorrow or later")

    emp = find_owned_employee(db, owner_id=owner_id, employee_id=data["employeeId"])

    attendance = db.attendance.find_one({"employeeId": emp["_id"], "date": today})
    if not attendance or attendance.get("status") != "Present":
        raise ValidationError("Employee must be marked as Present today to request a leave")

    leave_type = canonical_leave_type(data["leaveType"])
    if leave_type is None:
        raise ValidationError("Invalid leave type", details={"field": "leaveType"})

    doc = {
        "employeeId": emp["_id"],
        "startDate": start,
        "endDate": end,
        "leaveType": leave_type,
        "reason": clean_str(data["reason"]),
        "status": LEAVE_INITIAL_STATUS,
        "document": store_document() if store_document else None,
        "ownerId": owner_id,
        "createdAt": now,
        "updatedAt": now,
    }
    result = db.leaves.insert_one(doc)
    doc["_id"] = result.inserted_id
    log.info("leave requested id=%s employee=%s type=%s", doc["_id"], emp["_id"], leave_type)
    return doc


def find_owned_leave(db, *, owner_id: ObjectId, leave_id: Any) -> dict[str, Any]:
    oid = parse_object_id(leave_id, not_found=LEAVE_NOT_FOUND)
    leave = db.leaves.find_one({"_id": oid, "ownerId": owner_id})
    if not leave:
        raise NotFoundError(LEAVE_NOT_FOUND)
    return leave


def update_leave_status(
    db, *, owner_id: ObjectId, leave_id: Any, status: Any, now: datetime | None = None
) -> dict[str, Any]:
    target = LEAVE_MACHINE.validate(status)
    leave = find_owned_leave(db, owner_id=owner_id, leave_id=leave_id)
    target = LEAVE_MACHINE.require_transition(str(leave.get("status") or LEAVE_INITIAL_STATUS), target)

    # Filtering on the current status keeps two concurrent deciders from both winning.
    updated = db.leaves.find_one_and_update(
        {"_id": leave["_id"], "ownerId": owner_id, "status": leave.get("status")},
        {"$set": {"status": target, "updatedAt": now or utc_now()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        current = find_owned_leave(db, owner_id=owner_id, leave_id=leave["_id"])
        LEAVE_MACHINE.require_transition(str(current.get("status")), target)
        raise NotFoundError(LEAVE_NOT_FOUND)
    log.info("leave id=%s moved %s -> %s", leave["_id"], leave.get("status"), target)
    return updated


def list_leave_requests(
    db, *, owner_id: ObjectId, search: str = "", status: str = "", tz_name: str
) -> list[dict[str, Any]]:
    query: dict[str, Any] = {"ownerId": owner_id}

    search = clean_str(search)
    if search:
        matches = db.employees.find(
            {"ownerId": owner_id, "$or": [{"name": contains_ci(search)}, {"email": contains_ci(search)}]},
            {"_id": 1},
        )
        query["employeeId"] = {"$in": [e["_id"] for e in matches]}
    if not is_all(status):
        query["status"] = clean_str(status)

    leaves = list(db.leaves.find(query).sort([("createdAt", -1), ("_id", -1)]))
    emp_ids = list({lv["employeeId"] for lv in leaves})
    employees = (
        {e["_id"]: e for e in db.employees.find({"_id": {"$in": emp_ids}, "ownerId": owner_id})} if emp_ids else {}
    )
    return [public_leave(lv, tz_name=tz_name, employee=employees.get(lv["employeeId"])) for lv in leaves]

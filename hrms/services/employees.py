from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Callable

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from hrms.services.common import Page, contains_ci, paginate
from hrms.services.transitions import EMPLOYEE_INITIAL_STATUS, EMPLOYEE_MACHINE, EMPLOYMENT_TYPES
from hrms.utils.datetime import parse_calendar_date, start_of_day, utc_now
from hrms.utils.errors import ConflictError, NotFoundError, ValidationError
from hrms.utils.serialization import public_tasks, to_public
from hrms.utils.validators import (
    clean_str,
    is_all,
    parse_object_id,
    require_fields,
    validate_choice,
    validate_email,
    validate_phone,
)

log = logging.getLogger(__name__)

EMPLOYEE_NOT_FOUND = "Employee not found"
_TERMS_FIELDS = ["employeeId", "department", "salary", "joiningDate", "workLocation", "employmentType"]


def public_employee(doc: dict[str, Any], *, tz_name: str) -> dict[str, Any]:
    out = to_public(doc, tz_name=tz_name, day_fields=("joiningDate",))
    out["tasks"] = public_tasks(doc.get("tasks"), tz_name=tz_name)
    return out


def _parse_day(value: Any, *, tz_name: str, message: str) -> datetime:
    day = parse_calendar_date(value, tz_name)
    if day is None:
        raise ValidationError(message)
    return start_of_day(day, tz_name)


def _parse_salary(value: Any) -> float:
    try:
        salary = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError("Salary must be a number", details={"field": "salary"}) from e
    if salary < 0:
        raise ValidationError("Salary must be positive", details={"field": "salary"})
    return salary


def parse_tasks(raw: Any, *, tz_name: str) -> list[dict[str, Any]]:
    """Validate a task list; multipart clients send it as a JSON string."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ValidationError("Tasks must be an array") from e
    if not isinstance(raw, list):
        raise ValidationError("Tasks must be an array")

    tasks: list[dict[str, Any]] = []
    for task in raw:
        if not isinstance(task, dict) or not clean_str(task.get("description")) or not task.get("dueDate"):
            raise ValidationError("Each task must have a description and due date")
        tasks.append(
            {
                "description": clean_str(task["description"]),
                "dueDate": _parse_day(task["dueDate"], tz_name=tz_name, message="Invalid due date in tasks"),
            }
        )
    return tasks


def parse_employment_terms(data: Any, *, tz_name: str) -> dict[str, Any]:
    """The companion payload a promotion (or direct hire) must carry."""
    if not isinstance(data, dict):
        raise ValidationError("Employee data is required to convert candidate to employee")
    require_fields(
        data,
        _TERMS_FIELDS,
        "Employee ID, department, salary, joining date, work location and employment type are required",
    )
    return {
        "employeeId": clean_str(data["employeeId"]),
        "department": clean_str(data["department"]),
        "salary": _parse_salary(data["salary"]),
        "joiningDate": _parse_day(data["joiningDate"], tz_name=tz_name, message="Invalid joining date format"),
        "manager": clean_str(data.get("manager")),
        "workLocation": clean_str(data["workLocation"]),
        "employmentType": validate_choice(data["employmentType"], EMPLOYMENT_TYPES, "Invalid employment type"),
    }


def new_employee_doc(
    *,
    owner_id: ObjectId,
    candidate_id: ObjectId,
    identity: dict[str, Any],
    terms: dict[str, Any],
    tasks: list[dict[str, Any]] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or utc_now()
    return {
        "employeeId": terms["employeeId"],
        "name": identity["name"],
        "email": identity["email"],
        "phone": identity["phone"],
        "position": identity["position"],
        "experience": identity.get("experience") or "",
        "department": terms["department"],
        "salary": terms["salary"],
        "joiningDate": terms["joiningDate"],
        "manager": terms.get("manager") or "",
        "workLocation": terms["workLocation"],
        "employmentType": terms["employmentType"],
        "status": EMPLOYEE_INITIAL_STATUS,
        "resume": identity.get("resume"),
        "tasks": tasks or [],
        "candidateId": candidate_id,
        "ownerId": owner_id,
        "createdAt": now,
        "updatedAt": now,
    }


def check_employee_unique(db, doc: dict[str, Any]) -> None:
    owner_id = doc["ownerId"]
    if db.employees.find_one({"ownerId": owner_id, "email": doc["email"]}, {"_id": 1}):
        raise ConflictError("Employee with this email already exists")
    if db.employees.find_one({"ownerId": owner_id, "employeeId": doc["employeeId"]}, {"_id": 1}):
        raise ConflictError("Employee with this employee ID already exists")
    candidate_id = doc.get("candidateId")
    if candidate_id is not None and db.employees.find_one({"candidateId": candidate_id}, {"_id": 1}):
        raise ConflictError("This candidate already has an employee record")


def insert_employee(db, doc: dict[str, Any]) -> dict[str, Any]:
    check_employee_unique(db, doc)
    try:
        result = db.employees.insert_one(doc)
    except DuplicateKeyError as e:
        # Lost a race with a concurrent writer; the unique indexes are authoritative.
        raise ConflictError("Employee already exists for this email, employee ID or candidate") from e
    doc["_id"] = result.inserted_id
    return doc


def find_owned_employee(db, *, owner_id: ObjectId, employee_id: Any) -> dict[str, Any]:
    oid = parse_object_id(employee_id, not_found=EMPLOYEE_NOT_FOUND)
    emp = db.employees.find_one({"_id": oid, "ownerId": owner_id})
    if not emp:
        raise NotFoundError(EMPLOYEE_NOT_FOUND)
    return emp


def create_employee(
    db,
    *,
    owner_id: ObjectId,
    data: dict[str, Any],
    tz_name: str,
    store_resume: Callable[[], str | None] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    require_fields(
        data,
        ["name", "email", "phone", "position", "candidateId", *_TERMS_FIELDS],
        "Name, email, phone, position, candidate and employment details are required",
    )
    candidate_oid = parse_object_id(data["candidateId"], not_found="Candidate not found")
    if not db.candidates.find_one({"_id": candidate_oid, "ownerId": owner_id}, {"_id": 1}):
        raise NotFoundError("Candidate not found")

    identity = {
        "name": clean_str(data["name"]),
        "email": validate_email(data["email"]),
        "phone": validate_phone(data["phone"]),
        "position": clean_str(data["position"]),
        "experience": clean_str(data.get("experience")),
    }
    doc = new_employee_doc(
        owner_id=owner_id,
        candidate_id=candidate_oid,
        identity=identity,
        terms=parse_employment_terms(data, tz_name=tz_name),
        tasks=parse_tasks(data.get("tasks"), tz_name=tz_name),
        now=now,
    )
    check_employee_unique(db, doc)
    if store_resume:
        doc["resume"] = store_resume()
    try:
        return insert_employee(db, doc)
    except ConflictError:
        if doc["resume"]:
            log.warning("employee insert failed; unreferenced resume handle=%s", doc["resume"])
        raise


def search_employees(
    db,
    *,
    owner_id: ObjectId,
    search: str = "",
    status: str = "",
    department: str = "",
    page: int = 1,
    limit: int = 10,
) -> Page:
    query: dict[str, Any] = {"ownerId": owner_id}

    search = clean_str(search)
    if search:
        query["$or"] = [
            {"name": contains_ci(search)},
            {"email": contains_ci(search)},
            {"position": contains_ci(search)},
        ]
    if not is_all(status):
        query["status"] = clean_str(status)
    if not is_all(department):
        query["department"] = contains_ci(clean_str(department))

    return paginate(db.employees, query, page=page, limit=limit, sort=[("createdAt", -1), ("_id", -1)])


def update_employee(
    db,
    *,
    owner_id: ObjectId,
    employee_id: Any,
    data: dict[str, Any],
    tz_name: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    if not data.get("joiningDate") or not data.get("employmentType") or not data.get("position") or "tasks" not in data:
        raise ValidationError("Joining date, employment type, position, and tasks are required")

    employment_type = validate_choice(data["employmentType"], EMPLOYMENT_TYPES, "Invalid employment type")
    if not isinstance(data["tasks"], list):
        raise ValidationError("Tasks must be an array")
    tasks = parse_tasks(data["tasks"], tz_name=tz_name)
    joining_date = _parse_day(data["joiningDate"], tz_name=tz_name, message="Invalid joining date format")

    emp = find_owned_employee(db, owner_id=owner_id, employee_id=employee_id)
    updated = db.employees.find_one_and_update(
        {"_id": emp["_id"], "ownerId": owner_id},
        {
            "$set": {
                "joiningDate": joining_date,
                "employmentType": employment_type,
                "position": clean_str(data["position"]),
                "tasks": tasks,
                "updatedAt": now or utc_now(),
            }
        },
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFoundError(EMPLOYEE_NOT_FOUND)
    return updated


def delete_employee(db, *, owner_id: ObjectId, employee_id: Any) -> None:
    emp = find_owned_employee(db, owner_id=owner_id, employee_id=employee_id)
    db.employees.delete_one({"_id": emp["_id"], "ownerId": owner_id})
    log.info("deleted employee id=%s owner=%s", emp["_id"], owner_id)


def update_employee_status(
    db, *, owner_id: ObjectId, employee_id: Any, status: Any, now: datetime | None = None
) -> dict[str, Any]:
    target = EMPLOYEE_MACHINE.validate(status)
    emp = find_owned_employee(db, owner_id=owner_id, employee_id=employee_id)
    target = EMPLOYEE_MACHINE.require_transition(str(emp.get("status") or EMPLOYEE_INITIAL_STATUS), target)

    updated = db.employees.find_one_and_update(
        {"_id": emp["_id"], "ownerId": owner_id},
        {"$set": {"status": target, "updatedAt": now or utc_now()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFoundError(EMPLOYEE_NOT_FOUND)
    return updated

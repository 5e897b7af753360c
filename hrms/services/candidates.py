"""Candidate lifecycle: intake, search, status changes and promotion.

Promotion (status -> Selected) writes two documents and MongoDB gives no
cross-document atomicity here without a replica-set transaction. The order is
employee first, then candidate status:

* employee insert fails   -> candidate untouched, error surfaced.
* candidate update fails  -> the new employee is deleted again.
* process dies in between -> an employee exists whose candidate is not yet
  Selected. A retried promotion resumes from that employee, and
  :func:`hrms.services.reconcile.reconcile_promotions` repairs any leftovers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError

from hrms.services.common import Page, contains_ci, equals_ci, paginate
from hrms.services.employees import insert_employee, new_employee_doc, parse_employment_terms
from hrms.services.transitions import CANDIDATE_INITIAL_STATUS, CANDIDATE_MACHINE, CANDIDATE_PROMOTED_STATUS
from hrms.utils.datetime import utc_now
from hrms.utils.errors import ConflictError, NotFoundError, ValidationError
from hrms.utils.serialization import to_public
from hrms.utils.validators import clean_str, is_all, parse_object_id, require_fields, validate_email, validate_phone

log = logging.getLogger(__name__)

CANDIDATE_NOT_FOUND = "Candidate not found"


@dataclass(frozen=True)
class StatusChange:
    candidate: dict[str, Any]
    employee: dict[str, Any] | None = None
    employee_created: bool = False


def public_candidate(doc: dict[str, Any], *, tz_name: str) -> dict[str, Any]:
    return to_public(doc, tz_name=tz_name)


def create_candidate(
    db,
    *,
    owner_id: ObjectId,
    data: dict[str, Any],
    store_resume: Callable[[], str | None] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Validate and insert a candidate; ``store_resume`` runs only once the fields are accepted."""
    require_fields(
        data,
        ["name", "email", "phone", "position", "experience"],
        "Name, email, phone, position and experience are required",
    )
    name = clean_str(data["name"])
    if len(name) < 2:
        raise ValidationError("Name must be at least 2 characters", details={"field": "name"})
    email = validate_email(data["email"])

    if db.candidates.find_one({"ownerId": owner_id, "email": email}, {"_id": 1}):
        raise ConflictError("Candidate with this email already exists")

    now = now or utc_now()
    doc = {
        "name": name,
        "email": email,
        "phone": validate_phone(data["phone"]),
        "position": clean_str(data["position"]),
        "status": CANDIDATE_INITIAL_STATUS,
        "experience": clean_str(data["experience"]),
        "resume": store_resume() if store_resume else None,
        "appliedDate": now,
        "notes": clean_str(data.get("notes")),
        "ownerId": owner_id,
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        result = db.candidates.insert_one(doc)
    except DuplicateKeyError as e:
        if doc["resume"]:
            log.warning("candidate insert lost a race; unreferenced resume handle=%s", doc["resume"])
        raise ConflictError("Candidate with this email already exists") from e
    doc["_id"] = result.inserted_id
    return doc


def find_owned_candidate(db, *, owner_id: ObjectId, candidate_id: Any) -> dict[str, Any]:
    oid = parse_object_id(candidate_id, not_found=CANDIDATE_NOT_FOUND)
    cand = db.candidates.find_one({"_id": oid, "ownerId": owner_id})
    if not cand:
        raise NotFoundError(CANDIDATE_NOT_FOUND)
    return cand


def search_candidates(
    db,
    *,
    owner_id: ObjectId,
    search: str = "",
    status: str = "",
    position: str = "",
    page: int = 1,
    limit: int = 10,
) -> Page:
    query: dict[str, Any] = {"ownerId": owner_id}

    search = clean_str(search)
    if search:
        query["$or"] = [{"name": contains_ci(search)}, {"email": contains_ci(search)}]
    if not is_all(status):
        query["status"] = clean_str(status)
    if not is_all(position):
        query["position"] = equals_ci(clean_str(position))

    return paginate(db.candidates, query, page=page, limit=limit, sort=[("createdAt", -1), ("_id", -1)])


def delete_candidate(db, *, owner_id: ObjectId, candidate_id: Any) -> None:
    """Remove the candidate only; an employee promoted from it stays."""
    cand = find_owned_candidate(db, owner_id=owner_id, candidate_id=candidate_id)
    db.candidates.delete_one({"_id": cand["_id"], "ownerId": owner_id})
    log.info("deleted candidate id=%s owner=%s", cand["_id"], owner_id)


def _promote(
    db, *, owner_id: ObjectId, cand: dict[str, Any], employee_data: Any, tz_name: str, now: datetime
) -> tuple[dict[str, Any], bool]:
    if not employee_data:
        raise ValidationError("Employee data is required to convert candidate to employee")
    terms = parse_employment_terms(employee_data, tz_name=tz_name)

    existing = db.employees.find_one({"ownerId": owner_id, "email": cand["email"]})
    if existing:
        if existing.get("candidateId") == cand["_id"]:
            # An earlier promotion created the employee but never marked the candidate.
            log.warning("resuming interrupted promotion candidate=%s employee=%s", cand["_id"], existing["_id"])
            return existing, False
        raise ConflictError("Employee with this email already exists")

    doc = new_employee_doc(owner_id=owner_id, candidate_id=cand["_id"], identity=cand, terms=terms, now=now)
    return insert_employee(db, doc), True


def update_candidate_status(
    db,
    *,
    owner_id: ObjectId,
    candidate_id: Any,
    status: Any,
    employee_data: Any = None,
    tz_name: str,
    now: datetime | None = None,
) -> StatusChange:
    target = CANDIDATE_MACHINE.validate(status)
    cand = find_owned_candidate(db, owner_id=owner_id, candidate_id=candidate_id)
    current = str(cand.get("status") or CANDIDATE_INITIAL_STATUS)
    target = CANDIDATE_MACHINE.require_transition(current, target)
    now = now or utc_now()

    employee: dict[str, Any] | None = None
    created = False
    if target == CANDIDATE_PROMOTED_STATUS and current != CANDIDATE_PROMOTED_STATUS:
        employee, created = _promote(
            db, owner_id=owner_id, cand=cand, employee_data=employee_data, tz_name=tz_name, now=now
        )

    try:
        db.candidates.update_one(
            {"_id": cand["_id"], "ownerId": owner_id},
            {"$set": {"status": target, "updatedAt": now}},
        )
    except PyMongoError:
        if created and employee is not None:
            _compensate_employee(db, employee)
        raise

    cand["status"] = target
    cand["updatedAt"] = now
    if created and employee is not None:
        log.info("promoted candidate=%s to employee=%s owner=%s", cand["_id"], employee["_id"], owner_id)
    return StatusChange(candidate=cand, employee=employee, employee_created=created)


def _compensate_employee(db, employee: dict[str, Any]) -> None:
    try:
        db.employees.delete_one({"_id": employee["_id"]})
        log.warning("rolled back employee=%s after candidate status write failed", employee["_id"])
    except PyMongoError:
        log.exception(
            "could not roll back employee=%s; left for reconcile_promotions", employee["_id"]
        )

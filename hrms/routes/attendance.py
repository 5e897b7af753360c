from __future__ import annotations

from flask import Blueprint, request

from hrms.services.attendance import list_attendance, public_attendance, record_attendance
from hrms.utils.auth import current_owner_id, login_required
from hrms.utils.responses import app_tz, mongo_db, ok
from hrms.utils.validators import request_payload

attendance_bp = Blueprint("attendance", __name__)


@attendance_bp.post("")
@login_required
def record():
    body = request_payload()
    tz = app_tz()
    db = mongo_db()
    owner_id = current_owner_id()
    doc, created = record_attendance(
        db,
        owner_id=owner_id,
        employee_id=body.get("employeeId"),
        date=body.get("date"),
        status=body.get("status"),
        tz_name=tz,
    )
    employee = db.employees.find_one({"_id": doc["employeeId"], "ownerId": owner_id})
    data = public_attendance(doc, tz_name=tz, employee=employee)
    if created:
        return ok(data, message="Attendance recorded successfully", status=201)
    return ok(data, message="Attendance updated successfully")


@attendance_bp.get("")
@login_required
def list_records():
    rows = list_attendance(
        mongo_db(),
        owner_id=current_owner_id(),
        employee_id=request.args.get("employeeId"),
        date=request.args.get("date"),
        tz_name=app_tz(),
    )
    return ok(rows)

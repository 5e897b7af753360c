from __future__ import annotations

from flask import Blueprint, current_app, request

from hrms.services.employees import (
    create_employee,
    delete_employee,
    find_owned_employee,
    public_employee,
    search_employees,
    update_employee,
    update_employee_status,
)
from hrms.storage import get_document_store
from hrms.utils.auth import current_owner_id, login_required
from hrms.utils.responses import app_tz, mongo_db, ok, paginated
from hrms.utils.uploads import optional_upload, send_document, store_upload
from hrms.utils.validators import parse_pagination, request_payload, require_json

employees_bp = Blueprint("employees", __name__)


@employees_bp.get("")
@login_required
def list_employees():
    page, limit = parse_pagination(request.args)
    result = search_employees(
        mongo_db(),
        owner_id=current_owner_id(),
        search=request.args.get("search", ""),
        status=request.args.get("status", ""),
        department=request.args.get("department", ""),
        page=page,
        limit=limit,
    )
    tz = app_tz()
    return paginated(result, [public_employee(e, tz_name=tz) for e in result.items])


@employees_bp.post("")
@login_required
def create():
    data = request_payload()
    upload = optional_upload("resume", max_bytes=current_app.config["CFG"].MAX_UPLOAD_BYTES)
    tz = app_tz()
    employee = create_employee(
        mongo_db(),
        owner_id=current_owner_id(),
        data=data,
        tz_name=tz,
        store_resume=lambda: store_upload(get_document_store(), upload),
    )
    return ok(public_employee(employee, tz_name=tz), message="Employee created successfully", status=201)


@employees_bp.get("/<employee_id>")
@login_required
def get_one(employee_id: str):
    emp = find_owned_employee(mongo_db(), owner_id=current_owner_id(), employee_id=employee_id)
    return ok(public_employee(emp, tz_name=app_tz()))


@employees_bp.patch("/<employee_id>")
@login_required
def update(employee_id: str):
    tz = app_tz()
    emp = update_employee(
        mongo_db(), owner_id=current_owner_id(), employee_id=employee_id, data=require_json(), tz_name=tz
    )
    return ok(public_employee(emp, tz_name=tz), message="Employee updated successfully")


@employees_bp.delete("/<employee_id>")
@login_required
def delete(employee_id: str):
    delete_employee(mongo_db(), owner_id=current_owner_id(), employee_id=employee_id)
    return ok(message="Employee deleted successfully")


@employees_bp.get("/<employee_id>/resume")
@login_required
def download_resume(employee_id: str):
    emp = find_owned_employee(mongo_db(), owner_id=current_owner_id(), employee_id=employee_id)
    return send_document(
        get_document_store(), emp.get("resume"), missing_message="No resume uploaded for this employee"
    )


@employees_bp.patch("/<employee_id>/status")
@login_required
def change_status(employee_id: str):
    body = require_json()
    emp = update_employee_status(
        mongo_db(), owner_id=current_owner_id(), employee_id=employee_id, status=body.get("status")
    )
    return ok(public_employee(emp, tz_name=app_tz()), message="Employee status updated successfully")

from __future__ import annotations

from flask import Blueprint, current_app, request

from hrms.services.leave import (
    create_leave_request,
    find_owned_leave,
    list_leave_requests,
    public_leave,
    update_leave_status,
)
from hrms.storage import get_document_store
from hrms.utils.auth import current_owner_id, login_required
from hrms.utils.responses import app_tz, mongo_db, ok
from hrms.utils.uploads import optional_upload, send_document, store_upload
from hrms.utils.validators import request_payload, require_json

leave_bp = Blueprint("leave", __name__)


@leave_bp.post("")
@login_required
def create():
    data = request_payload()
    upload = optional_upload("document", max_bytes=current_app.config["CFG"].MAX_UPLOAD_BYTES)
    tz = app_tz()
    db = mongo_db()
    owner_id = current_owner_id()
    leave = create_leave_request(
        db,
        owner_id=owner_id,
        data=data,
        tz_name=tz,
        store_document=lambda: store_upload(get_document_store(), upload),
    )
    employee = db.employees.find_one({"_id": leave["employeeId"], "ownerId": owner_id})
    return ok(
        public_leave(leave, tz_name=tz, employee=employee),
        message="Leave request created successfully",
        status=201,
    )


@leave_bp.get("")
@login_required
def list_requests():
    rows = list_leave_requests(
        mongo_db(),
        owner_id=current_owner_id(),
        search=request.args.get("search", ""),
        status=request.args.get("status", ""),
        tz_name=app_tz(),
    )
    return ok(rows)


@leave_bp.patch("/<leave_id>/status")
@login_required
def change_status(leave_id: str):
    body = require_json()
    db = mongo_db()
    owner_id = current_owner_id()
    leave = update_leave_status(db, owner_id=owner_id, leave_id=leave_id, status=body.get("status"))
    employee = db.employees.find_one({"_id": leave["employeeId"], "ownerId": owner_id})
    return ok(public_leave(leave, tz_name=app_tz(), employee=employee), message="Leave status updated successfully")


@leave_bp.get("/<leave_id>/document")
@login_required
def download_document(leave_id: str):
    leave = find_owned_leave(mongo_db(), owner_id=current_owner_id(), leave_id=leave_id)
    return send_document(
        get_document_store(), leave.get("document"), missing_message="No document uploaded for this leave"
    )

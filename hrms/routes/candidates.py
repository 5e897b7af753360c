from __future__ import annotations

from flask import Blueprint, current_app, request

from hrms.services.candidates import (
    create_candidate,
    delete_candidate,
    find_owned_candidate,
    public_candidate,
    search_candidates,
    update_candidate_status,
)
from hrms.services.employees import public_employee
from hrms.storage import get_document_store
from hrms.utils.auth import current_owner_id, login_required
from hrms.utils.responses import app_tz, mongo_db, ok, paginated
from hrms.utils.uploads import optional_upload, send_document, store_upload
from hrms.utils.validators import parse_pagination, request_payload

candidates_bp = Blueprint("candidates", __name__)


@candidates_bp.get("")
@login_required
def list_candidates():
    page, limit = parse_pagination(request.args)
    result = search_candidates(
        mongo_db(),
        owner_id=current_owner_id(),
        search=request.args.get("search", ""),
        status=request.args.get("status", ""),
        position=request.args.get("position", ""),
        page=page,
        limit=limit,
    )
    tz = app_tz()
    return paginated(result, [public_candidate(c, tz_name=tz) for c in result.items])


@candidates_bp.post("")
@login_required
def create():
    data = request_payload()
    upload = optional_upload("resume", max_bytes=current_app.config["CFG"].MAX_UPLOAD_BYTES)
    candidate = create_candidate(
        mongo_db(),
        owner_id=current_owner_id(),
        data=data,
        store_resume=lambda: store_upload(get_document_store(), upload),
    )
    return ok(public_candidate(candidate, tz_name=app_tz()), message="Candidate created successfully", status=201)


@candidates_bp.get("/<candidate_id>")
@login_required
def get_one(candidate_id: str):
    cand = find_owned_candidate(mongo_db(), owner_id=current_owner_id(), candidate_id=candidate_id)
    return ok(public_candidate(cand, tz_name=app_tz()))


@candidates_bp.delete("/<candidate_id>")
@login_required
def delete(candidate_id: str):
    delete_candidate(mongo_db(), owner_id=current_owner_id(), candidate_id=candidate_id)
    return ok(message="Candidate deleted successfully")


@candidates_bp.get("/<candidate_id>/resume")
@login_required
def download_resume(candidate_id: str):
    cand = find_owned_candidate(mongo_db(), owner_id=current_owner_id(), candidate_id=candidate_id)
    return send_document(
        get_document_store(), cand.get("resume"), missing_message="No resume uploaded for this candidate"
    )


@candidates_bp.patch("/<candidate_id>/status")
@login_required
def change_status(candidate_id: str):
    body = request_payload()
    tz = app_tz()
    change = update_candidate_status(
        mongo_db(),
        owner_id=current_owner_id(),
        candidate_id=candidate_id,
        status=body.get("status"),
        employee_data=body.get("employeeData"),
        tz_name=tz,
    )
    data = {"candidate": public_candidate(change.candidate, tz_name=tz)}
    if change.employee is not None:
        data["employee"] = public_employee(change.employee, tz_name=tz)
    return ok(data, message="Candidate status updated successfully")

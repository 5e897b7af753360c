from __future__ import annotations

import re
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from flask import request

from hrms.utils.errors import ApiError, NotFoundError, ValidationError

_EMAIL_RE = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")
_PHONE_RE = re.compile(r"^\+?[\d\s-]{10,}$")

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


def require_json() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ApiError("BAD_REQUEST", "JSON body must be an object", status=400)
    return body


def request_payload() -> dict[str, Any]:
    """JSON object body, or the form fields of a multipart/urlencoded request."""
    if request.is_json:
        return require_json()
    return {k: v for k, v in request.form.items()}


def clean_str(value: Any) -> str:
    return str(value if value is not None else "").strip()


def require_fields(data: dict[str, Any], fields: list[str], message: str) -> None:
    missing = [f for f in fields if data.get(f) is None or clean_str(data.get(f)) == ""]
    if missing:
        raise ValidationError(message, details={"missing": missing})


def is_valid_email(value: Any) -> bool:
    return bool(_EMAIL_RE.match(clean_str(value).lower()))


def validate_email(value: Any) -> str:
    email = clean_str(value).lower()
    if not is_valid_email(email):
        raise ValidationError("Please enter a valid email", details={"field": "email"})
    return email


def validate_phone(value: Any) -> str:
    phone = clean_str(value)
    if not phone or not _PHONE_RE.match(phone):
        raise ValidationError("Please enter a valid phone number", details={"field": "phone"})
    return phone


def validate_choice(value: Any, choices: tuple[str, ...], message: str) -> str:
    v = clean_str(value)
    if v not in choices:
        raise ValidationError(message, details={"allowed": list(choices)})
    return v


def is_all(value: Any) -> bool:
    v = clean_str(value)
    return not v or v.lower() == "all"


def parse_object_id(value: Any, *, not_found: str = "Not found") -> ObjectId:
    """Malformed ids are reported as NotFound so they leak nothing about storage."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(clean_str(value))
    except (InvalidId, TypeError) as e:
        raise NotFoundError(not_found) from e


def parse_pagination(args) -> tuple[int, int]:
    try:
        page = int(args.get("page") or 1)
        limit = int(args.get("limit") or DEFAULT_PAGE_LIMIT)
    except (TypeError, ValueError) as e:
        raise ValidationError("page and limit must be integers") from e
    page = max(1, page)
    limit = min(MAX_PAGE_LIMIT, max(1, limit))
    return page, limit

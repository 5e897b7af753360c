from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

from pymongo.errors import DuplicateKeyError

from hrms.utils.auth import create_access_token, get_current_user, hash_password, public_user, verify_password
from hrms.utils.errors import AuthError, ConflictError, ValidationError
from hrms.utils.validators import clean_str, is_valid_email, require_json


auth_bp = Blueprint("auth", __name__)


def _registration_errors(body: dict) -> list[dict[str, str]]:
    errors: list[dict[str, str]] = []
    if len(clean_str(body.get("name"))) < 2:
        errors.append({"field": "name", "message": "Name must be at least 2 characters"})
    if not is_valid_email(body.get("email")):
        errors.append({"field": "email", "message": "Please enter a valid email"})
    password = str(body.get("password") or "")
    if len(password) < 6:
        errors.append({"field": "password", "message": "Password must be at least 6 characters"})
    if str(body.get("confirmPassword") or "") != password:
        errors.append({"field": "confirmPassword", "message": "Passwords do not match"})
    return errors


@auth_bp.post("/register")
def register():
    body = require_json()
    errors = _registration_errors(body)
    if errors:
        raise ValidationError("Validation failed", details={"errors": errors})

    email = clean_str(body["email"]).lower()
    db = current_app.extensions["mongo_db"]
    if db.users.find_one({"email": email}, {"_id": 1}):
        raise ConflictError("User already exists with this email")

    now = datetime.now(timezone.utc)
    user = {
        "name": clean_str(body["name"]),
        "email": email,
        "passwordHash": hash_password(str(body["password"])),
        "status": "ACTIVE",
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        user["_id"] = db.users.insert_one(user).inserted_id
    except DuplicateKeyError as e:
        raise ConflictError("User already exists with this email") from e

    token = create_access_token(current_app, user)
    return (
        jsonify(
            {
                "success": True,
                "message": "User registered successfully",
                "data": {"token": token, "user": public_user(user)},
            }
        ),
        201,
    )


@auth_bp.post("/login")
def login():
    body = require_json()
    email = clean_str(body.get("email")).lower()
    password = str(body.get("password") or "")
    if not email or not password:
        missing = [f for f in ("email", "password") if not body.get(f)]
        raise ValidationError("Validation failed", details={"missing": missing})

    db = current_app.extensions["mongo_db"]
    user = db.users.find_one({"email": email})
    if not user:
        raise AuthError("Invalid email or password")

    if str(user.get("status") or "ACTIVE").upper() != "ACTIVE":
        raise AuthError("Account is deactivated. Please contact administrator.")

    if not verify_password(password, str(user.get("passwordHash") or "")):
        raise AuthError("Invalid email or password")

    token = create_access_token(current_app, user)
    db.users.update_one({"_id": user["_id"]}, {"$set": {"lastLoginAt": datetime.now(timezone.utc)}})

    return jsonify(
        {
            "success": True,
            "message": "Login successful",
            "data": {"token": token, "user": public_user(user)},
        }
    )


@auth_bp.get("/verify-token")
def verify_token():
    user = get_current_user()
    return jsonify({"success": True, "data": {"user": user}})

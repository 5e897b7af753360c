from __future__ import annotations

import functools
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, TypeVar

import bcrypt
import jwt
from bson import ObjectId
from bson.errors import InvalidId
from flask import current_app, g, request

from hrms.utils.errors import ApiError, AuthError


_T = TypeVar("_T", bound=Callable[..., Any])


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except Exception:
        return False


def create_access_token(app, user: dict[str, Any]) -> str:
    cfg = app.config["CFG"]
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user["_id"]),
        "email": str(user.get("email") or ""),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=cfg.JWT_EXP_MINUTES)).timestamp()),
    }
    return jwt.encode(payload, cfg.JWT_SECRET, algorithm="HS256")


def _decode_token(token: str) -> dict[str, Any]:
    cfg = current_app.config["CFG"]
    try:
        return jwt.decode(token, cfg.JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthError("Invalid token") from e


def _bearer_token() -> str:
    authz = str(request.headers.get("Authorization") or "").strip()
    if authz.lower().startswith("bearer "):
        return authz.split(" ", 1)[1].strip()
    return ""


def public_user(user: dict[str, Any]) -> dict[str, str]:
    return {
        "id": str(user["_id"]),
        "name": str(user.get("name") or ""),
        "email": str(user.get("email") or "").strip().lower(),
    }


def get_current_user() -> dict[str, str]:
    token = _bearer_token()
    if not token:
        raise AuthError("No token provided")

    payload = _decode_token(token)
    sub = str(payload.get("sub") or "").strip()
    if not sub:
        raise AuthError("Invalid token payload")

    try:
        user_id = ObjectId(sub)
    except (InvalidId, TypeError) as e:
        raise AuthError("Invalid token subject") from e

    db = current_app.extensions.get("mongo_db")
    if db is None:
        raise ApiError("INTERNAL", "Database not initialized", status=500)

    user = db.users.find_one({"_id": user_id})
    if not user:
        raise AuthError("User not found")
    if str(user.get("status") or "ACTIVE").upper() != "ACTIVE":
        raise AuthError("Unauthorized or account deactivated")

    return public_user(user)


def current_owner_id() -> ObjectId:
    """Principal id of the authenticated caller; scopes every record read/write."""
    user = getattr(g, "current_user", None)
    if not user:
        user = get_current_user()
        g.current_user = user
    return ObjectId(user["id"])


def login_required(fn: _T) -> _T:
    @functools.wraps(fn)
    def _wrapped(*args, **kwargs):
        g.current_user = get_current_user()
        return fn(*args, **kwargs)

    return _wrapped  # type: ignore[return-value]

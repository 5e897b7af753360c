from __future__ import annotations

import threading
from datetime import timezone

from flask import Flask
from pymongo import MongoClient


_client: MongoClient | None = None
_client_lock = threading.Lock()


def create_client(mongodb_uri: str, *, server_selection_timeout_ms: int) -> MongoClient:
    if mongodb_uri.startswith("mongomock://"):
        import mongomock  # type: ignore[import-not-found]

        return mongomock.MongoClient(tz_aware=True, tzinfo=timezone.utc)

    return MongoClient(
        mongodb_uri,
        serverSelectionTimeoutMS=server_selection_timeout_ms,
        tz_aware=True,
        tzinfo=timezone.utc,
        retryWrites=True,
    )


def get_client(app: Flask) -> MongoClient:
    global _client
    cfg = app.config["CFG"]
    with _client_lock:
        if _client is None:
            _client = create_client(cfg.MONGODB_URI, server_selection_timeout_ms=cfg.MONGO_SERVER_SELECTION_TIMEOUT_MS)
    return _client


def get_db(app: Flask):
    cfg = app.config["CFG"]
    return get_client(app)[cfg.DB_NAME]


def ping_db(db) -> bool:
    try:
        db.command("ping")
        return True
    except Exception:
        try:
            # Fallback for test doubles (e.g. mongomock) and restricted environments.
            _ = db.list_collection_names()
            return True
        except Exception:
            return False


def ensure_indexes(db) -> None:
    db.users.create_index([("email", 1)], unique=True, name="users_email_unique")

    # Email uniqueness is per owner; two principals may track the same person.
    db.candidates.create_index([("ownerId", 1), ("email", 1)], unique=True, name="candidates_owner_email_unique")
    db.candidates.create_index([("ownerId", 1), ("createdAt", -1)], name="candidates_owner_createdAt")

    db.employees.create_index([("ownerId", 1), ("email", 1)], unique=True, name="employees_owner_email_unique")
    db.employees.create_index(
        [("ownerId", 1), ("employeeId", 1)], unique=True, name="employees_owner_employeeId_unique"
    )
    # Exactly one employee per promoted candidate.
    db.employees.create_index([("candidateId", 1)], unique=True, name="employees_candidateId_unique")
    db.employees.create_index([("ownerId", 1), ("createdAt", -1)], name="employees_owner_createdAt")

    db.attendance.create_index([("employeeId", 1), ("date", 1)], unique=True, name="attendance_employee_date_unique")
    db.attendance.create_index([("ownerId", 1), ("date", -1)], name="attendance_owner_date")

    db.leaves.create_index([("employeeId", 1), ("startDate", 1)], name="leaves_employee_startDate")
    db.leaves.create_index([("ownerId", 1), ("createdAt", -1)], name="leaves_owner_createdAt")


def init_mongo(app: Flask) -> None:
    db = get_db(app)
    app.extensions["mongo_db"] = db
    ensure_indexes(db)


def reset_client_for_tests() -> None:
    global _client
    with _client_lock:
        _client = None

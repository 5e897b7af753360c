from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ApiError(Exception):
    code: str
    message: str
    status: int = 400
    details: Any | None = None


class ValidationError(ApiError):
    """Missing or malformed input, bad enum values, bad dates."""

    def __init__(self, message: str, *, details: Any | None = None):
        super().__init__("VALIDATION_ERROR", message, 400, details)


class AuthError(ApiError):
    def __init__(self, message: str = "Unauthorized", *, details: Any | None = None):
        super().__init__("AUTH_INVALID", message, 401, details)


class NotFoundError(ApiError):
    """Record absent or owned by another principal; callers cannot tell which."""

    def __init__(self, message: str = "Not found", *, details: Any | None = None):
        super().__init__("NOT_FOUND", message, 404, details)


class ConflictError(ApiError):
    def __init__(self, message: str, *, details: Any | None = None):
        super().__init__("CONFLICT", message, 400, details)


class StorageError(ApiError):
    def __init__(self, message: str = "Storage error", *, details: Any | None = None):
        super().__init__("STORAGE_ERROR", message, 500, details)

from __future__ import annotations

import re
from dataclasses import dataclass
from io import BytesIO

from flask import request, send_file
from werkzeug.datastructures import FileStorage

from hrms.storage import DocumentNotFound, DocumentStore, DocumentStoreError
from hrms.utils.errors import NotFoundError, StorageError, ValidationError

_CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
ALLOWED_EXTENSIONS = set(_CONTENT_TYPES)
ALLOWED_MIME_TYPES = set(_CONTENT_TYPES.values())

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1F\x7F]")
_WINDOWS_FORBIDDEN_RE = re.compile(r"[\\/:*?\"<>|]+")


def sanitize_filename(name: str) -> str:
    s = str(name or "").strip()
    s = _CONTROL_CHARS_RE.sub("", s)
    s = _WINDOWS_FORBIDDEN_RE.sub("_", s)
    s = re.sub(r"\s+", " ", s).strip()
    s = re.sub(r"_+", "_", s)
    if not s or s in {".", ".."}:
        s = "file"
    if len(s) > 120:
        s = s[:120]
    return s


@dataclass(frozen=True)
class Upload:
    data: bytes
    filename: str
    content_type: str


def validate_upload(file: FileStorage, *, max_bytes: int) -> Upload:
    filename = sanitize_filename(file.filename or "")
    ext = ("." + filename.rsplit(".", 1)[-1].lower()) if "." in filename else ""
    mimetype = str(file.mimetype or "").lower()
    mime_ok = not mimetype or mimetype == "application/octet-stream" or mimetype in ALLOWED_MIME_TYPES
    if ext not in ALLOWED_EXTENSIONS or not mime_ok:
        raise ValidationError(
            "Only PDF, DOC, and DOCX files are allowed",
            details={"field": "file", "allowed": sorted(ALLOWED_EXTENSIONS)},
        )

    # One byte past the limit is enough to detect an oversized stream.
    data = file.stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise ValidationError(
            f"File too large. Maximum size is {limit_mb}MB.", details={"field": "file", "maxBytes": max_bytes}
        )
    if not data:
        raise ValidationError("Uploaded file is empty", details={"field": "file"})

    return Upload(data=data, filename=filename, content_type=_CONTENT_TYPES[ext])


def optional_upload(field: str, *, max_bytes: int) -> Upload | None:
    """Validated upload for multipart ``field``, or None when nothing was sent."""
    file = request.files.get(field)
    if file is None or not (file.filename or ""):
        return None
    return validate_upload(file, max_bytes=max_bytes)


def store_upload(store: DocumentStore, upload: Upload | None) -> str | None:
    if upload is None:
        return None
    try:
        return store.put(upload.data, filename=upload.filename, content_type=upload.content_type)
    except DocumentStoreError as e:
        raise StorageError("Could not store uploaded file") from e


def send_document(store: DocumentStore, handle: str | None, *, missing_message: str):
    if not handle:
        raise NotFoundError(missing_message)
    try:
        doc = store.get(handle)
    except DocumentNotFound as e:
        raise NotFoundError("File not found on server") from e
    except DocumentStoreError as e:
        raise StorageError("Error downloading file") from e

    return send_file(
        BytesIO(doc.data),
        mimetype=doc.content_type,
        as_attachment=True,
        download_name=doc.filename,
    )

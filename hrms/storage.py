"""Handle-based blob store for resumes and leave documents.

Records only ever hold the opaque handle returned by :meth:`DocumentStore.put`;
nothing outside this module knows where or how bytes are kept.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from flask import Flask, current_app

log = logging.getLogger(__name__)

_HANDLE_RE = re.compile(r"^[0-9a-f]{64}$")


class DocumentStoreError(Exception):
    pass


class DocumentNotFound(DocumentStoreError):
    pass


@dataclass(frozen=True)
class StoredDocument:
    data: bytes
    filename: str
    content_type: str


class DocumentStore(Protocol):
    def put(self, data: bytes, *, filename: str, content_type: str) -> str:
        raise NotImplementedError

    def get(self, handle: str) -> StoredDocument:
        raise NotImplementedError


class LocalDocumentStore:
    """Content-addressed store on the local filesystem.

    The handle is the SHA-256 of the bytes; identical uploads share one blob.
    Metadata sits next to the blob as ``<handle>.json``.
    """

    def __init__(self, root: str | Path):
        self._root = Path(root)

    def _paths(self, handle: str) -> tuple[Path, Path]:
        if not _HANDLE_RE.match(str(handle or "")):
            raise DocumentNotFound(f"Unknown document handle: {handle!r}")
        folder = self._root / handle[:2]
        return folder / handle, folder / f"{handle}.json"

    def put(self, data: bytes, *, filename: str, content_type: str) -> str:
        handle = hashlib.sha256(data).hexdigest()
        blob_path, meta_path = self._paths(handle)
        try:
            blob_path.parent.mkdir(parents=True, exist_ok=True)
            if not blob_path.exists():
                # Write then rename so readers never see a partial blob.
                fd, tmp = tempfile.mkstemp(dir=blob_path.parent)
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                os.replace(tmp, blob_path)
            meta_path.write_text(
                json.dumps({"filename": filename, "contentType": content_type, "size": len(data)}),
                encoding="utf-8",
            )
        except OSError as e:
            raise DocumentStoreError(f"Could not store document: {e}") from e

        log.info("stored document handle=%s size=%d", handle, len(data))
        return handle

    def get(self, handle: str) -> StoredDocument:
        blob_path, meta_path = self._paths(handle)
        if not blob_path.exists():
            raise DocumentNotFound(f"Document {handle} not found")
        try:
            data = blob_path.read_bytes()
            meta = json.loads(meta_path.read_text(encoding="utf-8")) if meta_path.exists() else {}
        except (OSError, ValueError) as e:
            raise DocumentStoreError(f"Could not read document {handle}: {e}") from e

        return StoredDocument(
            data=data,
            filename=str(meta.get("filename") or handle),
            content_type=str(meta.get("contentType") or "application/octet-stream"),
        )


def init_document_store(app: Flask) -> None:
    cfg = app.config["CFG"]
    app.extensions["document_store"] = LocalDocumentStore(cfg.UPLOAD_DIR)


def get_document_store() -> DocumentStore:
    return current_app.extensions["document_store"]

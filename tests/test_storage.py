from __future__ import annotations

import hashlib
import io

import pytest
from werkzeug.datastructures import FileStorage

from hrms.storage import DocumentNotFound, LocalDocumentStore
from hrms.utils.errors import ValidationError
from hrms.utils.uploads import sanitize_filename, validate_upload


def test_put_and_get_roundtrip(tmp_path):
    store = LocalDocumentStore(tmp_path)
    data = b"%PDF-1.4 hello"
    handle = store.put(data, filename="cv.pdf", content_type="application/pdf")

    assert handle == hashlib.sha256(data).hexdigest()
    assert (tmp_path / handle[:2] / handle).read_bytes() == data

    doc = store.get(handle)
    assert doc.data == data
    assert doc.filename == "cv.pdf"
    assert doc.content_type == "application/pdf"


def test_identical_bytes_share_a_blob(tmp_path):
    store = LocalDocumentStore(tmp_path)
    a = store.put(b"same", filename="a.pdf", content_type="application/pdf")
    b = store.put(b"same", filename="b.pdf", content_type="application/pdf")
    assert a == b
    assert len(list((tmp_path / a[:2]).iterdir())) == 2


def test_unknown_and_malformed_handles(tmp_path):
    store = LocalDocumentStore(tmp_path)
    with pytest.raises(DocumentNotFound):
        store.get("0" * 64)
    with pytest.raises(DocumentNotFound):
        store.get("../../etc/passwd")


def _file(data: bytes, name: str, mimetype: str = "application/pdf") -> FileStorage:
    return FileStorage(stream=io.BytesIO(data), filename=name, content_type=mimetype)


def test_validate_upload_accepts_documents():
    up = validate_upload(_file(b"doc", "Offer Letter.docx", "application/octet-stream"), max_bytes=1024)
    assert up.filename == "Offer Letter.docx"
    assert up.content_type == "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@pytest.mark.parametrize(
    "data,name,mimetype,message",
    [
        (b"x", "photo.png", "image/png", "Only PDF, DOC, and DOCX files are allowed"),
        (b"x", "cv.pdf", "image/png", "Only PDF, DOC, and DOCX files are allowed"),
        (b"x" * 2048, "cv.pdf", "application/pdf", "File too large"),
        (b"", "cv.pdf", "application/pdf", "Uploaded file is empty"),
    ],
)
def test_validate_upload_rejects(data, name, mimetype, message):
    with pytest.raises(ValidationError, match=message):
        validate_upload(_file(data, name, mimetype), max_bytes=1024)


def test_sanitize_filename():
    assert sanitize_filename('a/b\\c:"d".pdf') == "a_b_c_d_.pdf"
    assert sanitize_filename("..") == "file"
    assert sanitize_filename("") == "file"

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from bson import ObjectId

from hrms.utils.datetime import to_iso_utc, to_local_date_str


def _convert(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return to_iso_utc(value)
    if isinstance(value, dict):
        return {k: _convert(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_convert(v) for v in value]
    return value


def to_public(doc: dict[str, Any], *, tz_name: str, day_fields: Iterable[str] = ()) -> dict[str, Any]:
    """Mongo document -> JSON-ready dict.

    ``_id`` becomes ``id``; ObjectIds become strings; instants become ISO-8601
    UTC. Fields listed in ``day_fields`` hold normalized days and are rendered as
    ``YYYY-MM-DD`` in the reference timezone.
    """
    out: dict[str, Any] = {}
    day_fields = set(day_fields)
    for key, value in doc.items():
        name = "id" if key == "_id" else key
        if key in day_fields and isinstance(value, datetime):
            out[name] = to_local_date_str(value, tz_name)
        else:
            out[name] = _convert(value)
    return out


def public_tasks(tasks: list[dict[str, Any]] | None, *, tz_name: str) -> list[dict[str, Any]]:
    return [to_public(t, tz_name=tz_name, day_fields=("dueDate",)) for t in (tasks or [])]

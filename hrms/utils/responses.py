from __future__ import annotations

from typing import Any

from flask import current_app, jsonify

from hrms.services.common import Page


def mongo_db():
    return current_app.extensions["mongo_db"]


def app_tz() -> str:
    return current_app.config["CFG"].APP_TIMEZONE


def ok(data: Any = None, *, message: str | None = None, status: int = 200, **extra: Any):
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def paginated(page: Page, items: list[dict[str, Any]]):
    return ok(items, total=page.total, totalPages=page.total_pages, currentPage=page.page)

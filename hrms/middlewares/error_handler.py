from __future__ import annotations

import logging
from typing import Any

from flask import Flask, current_app, g, jsonify
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from hrms.utils.errors import ApiError


def _error_payload(code: str, message: str, details: Any | None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "success": False,
        "message": message,
        "error": {"code": code, "message": message, "details": details},
    }
    if getattr(g, "request_id", None):
        payload["request_id"] = g.request_id
    return payload


def init_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def _api_error(err: ApiError):
        if err.status >= 500:
            logging.getLogger("hrms").error(
                "%s: %s request_id=%s", err.code, err.message, getattr(g, "request_id", "")
            )
        return jsonify(_error_payload(err.code, err.message, err.details)), err.status

    @app.errorhandler(RequestEntityTooLarge)
    def _too_large(err: RequestEntityTooLarge):
        cfg = current_app.config["CFG"]
        limit_mb = cfg.MAX_UPLOAD_BYTES // (1024 * 1024)
        return jsonify(_error_payload("FILE_TOO_LARGE", f"File too large. Maximum size is {limit_mb}MB.", None)), 413

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        status = int(err.code or 500)
        return jsonify(_error_payload(f"HTTP_{status}", str(err.description or "HTTP error"), None)), status

    @app.errorhandler(Exception)
    def _unhandled(err: Exception):
        logging.getLogger("hrms").exception(
            "Unhandled exception request_id=%s", getattr(g, "request_id", "")
        )
        cfg = current_app.config["CFG"]
        details = None if cfg.IS_PRODUCTION else f"{type(err).__name__}: {err}"
        return jsonify(_error_payload("INTERNAL", "Unexpected error", details)), 500

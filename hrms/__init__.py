from __future__ import annotations

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from hrms.config import BaseConfig, get_config
from hrms.db import init_mongo
from hrms.middlewares.error_handler import init_error_handlers
from hrms.middlewares.logging import init_request_logging
from hrms.middlewares.rate_limit import init_rate_limiting
from hrms.middlewares.request_id import init_request_id
from hrms.middlewares.security_headers import init_security_headers
from hrms.routes.attendance import attendance_bp
from hrms.routes.auth import auth_bp
from hrms.routes.candidates import candidates_bp
from hrms.routes.core import core_bp
from hrms.routes.employees import employees_bp
from hrms.routes.leave import leave_bp
from hrms.storage import init_document_store
from hrms.utils.logging import setup_logging


def create_app(cfg: BaseConfig | None = None) -> Flask:
    load_dotenv()

    cfg = cfg or get_config()
    setup_logging(cfg.LOG_LEVEL)

    app = Flask(__name__)
    app.config["CFG"] = cfg
    # Multipart bodies carry at most one document plus a few form fields.
    app.config["MAX_CONTENT_LENGTH"] = cfg.MAX_UPLOAD_BYTES + 1024 * 1024

    CORS(
        app,
        origins=cfg.CORS_ORIGINS,
        supports_credentials=cfg.CORS_ALLOW_CREDENTIALS,
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        max_age=3600,
    )

    init_request_id(app)
    init_security_headers(app)
    init_rate_limiting(app)
    init_request_logging(app)
    init_error_handlers(app)

    init_mongo(app)
    init_document_store(app)

    app.register_blueprint(core_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(candidates_bp, url_prefix="/api/candidates")
    app.register_blueprint(employees_bp, url_prefix="/api/employees")
    app.register_blueprint(attendance_bp, url_prefix="/api/attendance")
    app.register_blueprint(leave_bp, url_prefix="/api/leave")

    return app

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, request
from flask_cors import CORS

from kontrak.config import Settings

__version__ = "3.3.0"

_log = logging.getLogger(__name__)


def _parse_json_body() -> None:
    # Parse up front so oversized (413) and malformed (400) JSON never reach a view.
    if request.is_json and request.get_data(cache=True):
        request.get_json()


def _log_request() -> None:
    _log.info("%s %s from %s", request.method, request.path, request.headers.get("Origin", "no-origin"))


def create_app(settings: Optional[Settings] = None, repository=None) -> Flask:
    from kontrak.api.admin import admin_bp
    from kontrak.api.errors import register_error_handlers
    from kontrak.api.routes import api_bp, root_bp
    from kontrak.api.user import user_bp
    from kontrak.db.repository import MongoContractRepository
    from kontrak import extensions

    settings = settings or Settings.from_env()
    if repository is None:
        repository = MongoContractRepository(settings.mongodb_uri, tz=settings.tz)

    # Static files are served from the URL root; API rules always win over the
    # static catch-all, and a missing file becomes the JSON 404.
    app = Flask(__name__, static_folder=str(settings.static_dir), static_url_path="")
    app.config.update(
        MAX_CONTENT_LENGTH=settings.max_content_length,
        TESTING=settings.app_env == "testing",
    )
    extensions.init_app(app, settings, repository)

    CORS(app, origins=list(settings.allowed_origins), supports_credentials=True)

    app.before_request(_log_request)
    app.before_request(_parse_json_body)

    app.register_blueprint(root_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(user_bp)
    register_error_handlers(app)
    return app

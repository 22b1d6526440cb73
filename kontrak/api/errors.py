from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import Flask, current_app, jsonify, request
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException, InternalServerError

_log = logging.getLogger(__name__)

_HTTP_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
    415: "unsupported_media_type",
}


def json_error(message: str, *, status: int = 400, code: str = "bad_request", **extra):
    body = {"error": {"code": code, "message": message}}
    body.update(extra)
    return jsonify(body), status


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _only_static_matches() -> bool:
    """True when the path is known only to the root static-file rule."""
    adapter = current_app.url_map.bind_to_environ(request.environ)
    try:
        endpoint, _ = adapter.match(method="GET")
    except HTTPException:
        return False
    return endpoint == "static"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        status = exc.code or 500
        if status == 404 or (status == 405 and _only_static_matches()):
            _log.info("404 %s %s", request.method, request.path)
            return json_error(
                "Endpoint not found.",
                status=404,
                code="not_found",
                method=request.method,
                path=request.path,
                timestamp=_utc_timestamp(),
            )
        if status == 413:
            return json_error("Request body is too large.", status=413, code="payload_too_large")
        return json_error(exc.description or exc.name, status=status, code=_HTTP_CODES.get(status, "http_error"))

    @app.errorhandler(PyMongoError)
    def _db_error(exc: PyMongoError):
        _log.error("Database error on %s %s: %s", request.method, request.path, exc)
        return json_error("Database is unavailable.", status=503, code="db_unavailable")

    @app.errorhandler(InternalServerError)
    def _internal_error(exc: InternalServerError):
        _log.error("Unhandled error on %s %s", request.method, request.path, exc_info=exc.original_exception)
        return json_error("Internal server error.", status=500, code="internal_error", timestamp=_utc_timestamp())

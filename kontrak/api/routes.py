from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request

from kontrak import __version__
from kontrak.extensions import get_repository, get_settings

_log = logging.getLogger(__name__)

root_bp = Blueprint("root", __name__)
api_bp = Blueprint("api", __name__, url_prefix="/api")

SERVICE_NAME = "Kontrak Digital API"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _database_state() -> str:
    return "connected" if get_repository().connected else "disconnected"


@root_bp.get("/")
def index():
    return jsonify(
        {
            "message": f"{SERVICE_NAME} v{__version__}",
            "status": "Running",
            "version": __version__,
            "timestamp": _now_iso(),
            "database": _database_state(),
        }
    ), 200


@api_bp.get("/health")
def health():
    return jsonify(
        {
            "status": "OK",
            "timestamp": _now_iso(),
            "database": _database_state(),
            "version": __version__,
            "cors": {
                "allowed_origins": list(get_settings().allowed_origins),
                "credentials": True,
                "origin": request.headers.get("Origin"),
            },
        }
    ), 200


@api_bp.get("/test")
def cors_probe():
    """Echo what the browser sent so cross-origin setups can be checked by hand."""
    origin = request.headers.get("Origin")
    _log.info("CORS probe from %s", origin or "no-origin")
    return jsonify(
        {
            "message": "CORS test succeeded.",
            "timestamp": _now_iso(),
            "origin": origin or "none",
            "allowed": origin in get_settings().allowed_origins,
            "method": request.method,
            "headers": sorted(request.headers.keys()),
        }
    ), 200

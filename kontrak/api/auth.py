from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Dict, Union

from flask import g, request

from kontrak.api.errors import json_error
from kontrak.extensions import get_repository, get_settings
from kontrak.services.auth_service import TokenError, bearer_token, decode_token

_log = logging.getLogger(__name__)


def _claims_from_request() -> Union[Dict[str, Any], tuple]:
    """Decoded bearer claims, or a ready-made error response."""
    token = bearer_token(request.headers.get("Authorization"))
    if token is None:
        return json_error("Token is required.", status=401, code="unauthorized")
    try:
        return decode_token(token, secret=get_settings().jwt_secret)
    except TokenError as e:
        _log.warning("Rejected token on %s %s: %s", request.method, request.path, e)
        return json_error("Token is invalid.", status=403, code="invalid_token")


def admin_required(view: Callable) -> Callable:
    @wraps(view)
    def wrapper(*args, **kwargs):
        claims = _claims_from_request()
        if isinstance(claims, tuple):
            return claims

        admin_id = claims.get("adminId")
        admin = get_repository().get_admin(admin_id=admin_id) if isinstance(admin_id, str) else None
        if admin is None:
            return json_error("Token is invalid.", status=401, code="unauthorized")

        g.admin = admin
        return view(*args, **kwargs)

    return wrapper


def contract_token_required(view: Callable) -> Callable:
    @wraps(view)
    def wrapper(*args, **kwargs):
        claims = _claims_from_request()
        if isinstance(claims, tuple):
            return claims
        if not isinstance(claims.get("contractId"), str):
            return json_error("Token is invalid.", status=403, code="invalid_token")

        g.contract_claims = claims
        return view(*args, **kwargs)

    return wrapper

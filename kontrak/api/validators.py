from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from kontrak.domain.contracts import DEFAULT_CONTRACT_TEMPLATE
from kontrak.domain.models import NewContract
from kontrak.domain.money import parse_amount


class ApiValidationError(ValueError):
    """Raised when request payload validation fails."""


def require_object(data: object) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ApiValidationError("Request body must be a JSON object.")
    return data


def _optional_text(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ApiValidationError(f"'{key}' must be a string.")
    return value.strip() or None


def _required_text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        return ""
    return value.strip()


def parse_admin_login(data: object) -> Tuple[str, str]:
    body = require_object(data)
    email = _required_text(body, "email")
    password = body.get("password")
    if not email or not isinstance(password, str) or not password:
        raise ApiValidationError("Email and password are required.")
    return email.lower(), password


def parse_user_login(data: object) -> Tuple[str, str]:
    body = require_object(data)
    number = _required_text(body, "contractNumber")
    password = body.get("password")
    if not number or not isinstance(password, str) or not password:
        raise ApiValidationError("Contract number and password are required.")
    return number, password


def parse_signature(data: object) -> str:
    body = require_object(data)
    signature = body.get("signatureData")
    if not isinstance(signature, str) or not signature.strip():
        raise ApiValidationError("Signature data is required.")
    return signature


def parse_new_contract(data: object) -> NewContract:
    body = require_object(data)
    title = _required_text(body, "title")
    client_name = _required_text(body, "client_name")
    client_email = _required_text(body, "client_email")
    if not title or not client_name or not client_email:
        raise ApiValidationError("Title, client name and client email are required.")

    return NewContract(
        title=title,
        client_name=client_name,
        client_email=client_email.lower(),
        client_phone=_optional_text(body, "client_phone"),
        client_address=_optional_text(body, "client_address"),
        amount=parse_amount(body.get("amount")),
        content=_optional_text(body, "content") or DEFAULT_CONTRACT_TEMPLATE,
        admin_notes=_optional_text(body, "admin_notes"),
    )

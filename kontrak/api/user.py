from __future__ import annotations

import hmac
import logging
from datetime import datetime, timezone

from flask import Blueprint, g, jsonify, request

from kontrak.api.admin import pdf_response
from kontrak.api.auth import contract_token_required
from kontrak.api.errors import json_error
from kontrak.api.validators import ApiValidationError, parse_signature, parse_user_login
from kontrak.domain.contracts import render_contract
from kontrak.domain.models import ContractStatus
from kontrak.extensions import get_repository, get_settings
from kontrak.services.auth_service import issue_token

_log = logging.getLogger(__name__)

user_bp = Blueprint("user", __name__, url_prefix="/api/user")


def _contract_from_token():
    return get_repository().get_contract(contract_id=g.contract_claims["contractId"])


@user_bp.post("/login")
def login():
    try:
        number, password = parse_user_login(request.get_json(silent=True))
    except ApiValidationError as e:
        return json_error(str(e), status=400)

    settings = get_settings()
    if not hmac.compare_digest(password.encode("utf-8"), settings.user_password.encode("utf-8")):
        _log.warning("Wrong contract password for %s", number)
        return json_error(
            "Wrong password. Use the password provided by the admin.",
            status=401,
            code="invalid_credentials",
        )

    contract = get_repository().get_contract_by_number(number=number)
    if contract is None:
        return json_error("Contract number not found.", status=404, code="contract_not_found")
    if contract.status is not ContractStatus.ACTIVE:
        return json_error(
            "Contract is not active or has already been signed.",
            status=400,
            code="contract_not_active",
        )

    token = issue_token(
        {"contractId": contract.id, "contractNumber": contract.number},
        secret=settings.jwt_secret,
        ttl=settings.token_ttl,
    )
    _log.info("Contract login: %s", contract.number)
    return jsonify(
        {
            "message": "Login successful.",
            "token": token,
            "contract": {
                "id": contract.id,
                "number": contract.number,
                "title": contract.title,
                "client_name": contract.client_name,
                "status": contract.status.value,
                "canSign": contract.can_sign,
            },
        }
    ), 200


@user_bp.get("/contract")
@contract_token_required
def get_contract():
    contract = _contract_from_token()
    if contract is None:
        return json_error("Contract not found.", status=404, code="contract_not_found")

    data = contract.to_json()
    data["content"] = render_contract(contract, get_settings().tz)
    data["canSign"] = contract.can_sign
    return jsonify({"data": data}), 200


@user_bp.post("/sign")
@contract_token_required
def sign():
    try:
        signature = parse_signature(request.get_json(silent=True))
    except ApiValidationError as e:
        return json_error(str(e), status=400)

    repo = get_repository()
    contract = _contract_from_token()
    if contract is None:
        return json_error("Contract not found.", status=404, code="contract_not_found")
    if contract.is_signed:
        return json_error("Contract has already been signed.", status=400, code="already_signed")

    signed = repo.sign_contract(
        contract_id=contract.id,
        signature_data=signature,
        signed_at=datetime.now(timezone.utc),
    )
    if signed is None:
        # Lost a race with a concurrent signature.
        return json_error("Contract has already been signed.", status=400, code="already_signed")

    _log.info("Contract signed: %s", signed.number)
    return jsonify({"message": "Contract signed.", "downloadUrl": "/api/user/download"}), 200


@user_bp.get("/download")
@contract_token_required
def download():
    contract = _contract_from_token()
    if contract is None or not contract.is_signed:
        return json_error("Contract has not been signed.", status=400, code="not_signed")
    return pdf_response(contract)

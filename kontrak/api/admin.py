from __future__ import annotations

import io
import logging

from flask import Blueprint, g, jsonify, request, send_file

from kontrak.api.auth import admin_required
from kontrak.api.errors import json_error
from kontrak.api.validators import ApiValidationError, parse_admin_login, parse_new_contract
from kontrak.domain.models import ContractRecord
from kontrak.domain.money import format_idr
from kontrak.extensions import get_repository, get_settings
from kontrak.services.auth_service import issue_token, verify_password
from kontrak.services.pdf_service import render_contract_pdf

_log = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _login_info(contract: ContractRecord) -> dict:
    return {"contractNumber": contract.number, "password": get_settings().user_password}


def _not_found():
    return json_error("Contract not found.", status=404, code="contract_not_found")


def pdf_response(contract: ContractRecord):
    pdf = render_contract_pdf(contract, get_settings().tz)
    return send_file(
        io.BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"Kontrak_{contract.number}.pdf",
    )


@admin_bp.post("/login")
def login():
    try:
        email, password = parse_admin_login(request.get_json(silent=True))
    except ApiValidationError as e:
        return json_error(str(e), status=400)

    admin = get_repository().find_admin_by_email(email=email)
    if admin is None or not verify_password(password, admin.password_hash):
        _log.warning("Failed admin login for %s", email)
        return json_error("Invalid admin email or password.", status=401, code="invalid_credentials")

    settings = get_settings()
    token = issue_token({"adminId": admin.id}, secret=settings.jwt_secret, ttl=settings.token_ttl)
    _log.info("Admin login: %s", admin.email)
    return jsonify({"message": "Admin login successful.", "token": token, "admin": admin.to_public()}), 200


@admin_bp.get("/contracts")
@admin_required
def list_contracts():
    data = []
    for contract in get_repository().list_contracts():
        row = contract.to_json()
        row["formatted_amount"] = format_idr(contract.amount)
        row["can_download"] = contract.is_signed
        data.append(row)
    return jsonify({"data": data}), 200


@admin_bp.post("/contracts")
@admin_required
def create_contract():
    try:
        new = parse_new_contract(request.get_json(silent=True))
    except ApiValidationError as e:
        return json_error(str(e), status=400)

    contract = get_repository().create_contract(new=new, created_by=g.admin.id)
    _log.info("Contract created: %s by %s", contract.number, g.admin.email)
    return jsonify(
        {
            "message": "Contract created.",
            "data": contract.to_json(),
            "userLoginInfo": _login_info(contract),
        }
    ), 200


@admin_bp.post("/contracts/<contract_id>/activate")
@admin_required
def activate_contract(contract_id: str):
    contract = get_repository().activate_contract(contract_id=contract_id)
    if contract is None:
        return _not_found()

    _log.info("Contract activated: %s", contract.number)
    return jsonify({"message": "Contract activated.", "userLoginInfo": _login_info(contract)}), 200


@admin_bp.get("/contracts/<contract_id>/download")
@admin_required
def download_contract(contract_id: str):
    contract = get_repository().get_contract(contract_id=contract_id)
    if contract is None:
        return _not_found()
    return pdf_response(contract)


@admin_bp.delete("/contracts/<contract_id>")
@admin_required
def delete_contract(contract_id: str):
    if not get_repository().delete_contract(contract_id=contract_id):
        return _not_found()

    _log.info("Contract deleted: %s", contract_id)
    return jsonify({"message": "Contract deleted."}), 200


@admin_bp.get("/stats")
@admin_required
def stats():
    return jsonify({"data": get_repository().contract_stats()}), 200

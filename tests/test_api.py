import re
from datetime import datetime, timedelta, timezone

import bcrypt
from pymongo.errors import ServerSelectionTimeoutError

from kontrak.services.auth_service import issue_token
from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD, USER_PASSWORD


def _create_contract(client, admin_headers, **overrides):
    payload = {
        "title": "  Konsultasi Investasi  ",
        "client_name": "Budi Santoso",
        "client_email": "Budi@Example.COM ",
        "client_phone": "0812 3456 7890",
        "amount": "1500000",
    }
    payload.update(overrides)
    r = client.post("/api/admin/contracts", json=payload, headers=admin_headers)
    assert r.status_code == 200
    return r.get_json()


def _active_contract(client, admin_headers):
    created = _create_contract(client, admin_headers)
    contract_id = created["data"]["_id"]
    r = client.post(f"/api/admin/contracts/{contract_id}/activate", headers=admin_headers)
    assert r.status_code == 200
    return created["data"]


def _user_headers(client, number):
    r = client.post("/api/user/login", json={"contractNumber": number, "password": USER_PASSWORD})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.get_json()['token']}"}


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    body = r.get_json()
    assert body["status"] == "OK"
    assert body["database"] == "connected"
    assert "https://kontrakdigital.com" in body["cors"]["allowed_origins"]


def test_health_reports_disconnected_database(client, repo):
    repo.connected = False
    r = client.get("/")
    assert r.status_code == 200
    assert r.get_json()["database"] == "disconnected"


def test_cors_probe_echoes_origin(client):
    r = client.get("/api/test", headers={"Origin": "http://localhost:3000"})
    assert r.status_code == 200
    body = r.get_json()
    assert body["origin"] == "http://localhost:3000"
    assert body["allowed"] is True


def test_unknown_endpoint_is_json_404(client):
    r = client.get("/api/does-not-exist")
    assert r.status_code == 404
    body = r.get_json()
    assert body["error"]["code"] == "not_found"
    assert body["path"] == "/api/does-not-exist"


def test_unknown_endpoint_is_json_404_for_any_method(client):
    for method in ("post", "put", "patch", "delete"):
        r = getattr(client, method)("/api/does-not-exist", json={})
        assert r.status_code == 404, method
        body = r.get_json()
        assert body["error"]["code"] == "not_found"
        assert body["method"] == method.upper()


def test_wrong_method_on_known_route_is_405(client):
    r = client.post("/api/health", json={})
    assert r.status_code == 405
    assert r.get_json()["error"]["code"] == "method_not_allowed"


def test_admin_login_requires_fields(client):
    r = client.post("/api/admin/login", json={"email": ADMIN_EMAIL})
    assert r.status_code == 400
    assert "required" in r.get_json()["error"]["message"].lower()


def test_admin_login_rejects_wrong_password(client):
    r = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    assert r.status_code == 401
    assert r.get_json()["error"]["code"] == "invalid_credentials"


def test_admin_login_is_case_insensitive_on_email(client):
    r = client.post("/api/admin/login", json={"email": "  ADMIN@KontrakDigital.com ", "password": ADMIN_PASSWORD})
    assert r.status_code == 200
    body = r.get_json()
    assert body["token"]
    assert body["admin"]["email"] == ADMIN_EMAIL
    assert set(body["admin"]) == {"id", "name", "email"}


def test_admin_login_accepts_bcrypt_hash_from_existing_data(client, repo):
    legacy = bcrypt.hashpw(b"admin123", bcrypt.gensalt(rounds=4)).decode()
    repo.ensure_admin(name="Legacy Admin", email="legacy@kontrakdigital.com", password_hash=legacy)

    r = client.post("/api/admin/login", json={"email": "legacy@kontrakdigital.com", "password": "admin123"})
    assert r.status_code == 200
    assert r.get_json()["admin"]["name"] == "Legacy Admin"

    r = client.post("/api/admin/login", json={"email": "legacy@kontrakdigital.com", "password": "admin124"})
    assert r.status_code == 401


def test_admin_login_with_unreadable_hash_is_401(client, repo):
    repo.ensure_admin(name="Broken", email="broken@kontrakdigital.com", password_hash="not-a-hash")
    r = client.post("/api/admin/login", json={"email": "broken@kontrakdigital.com", "password": "whatever"})
    assert r.status_code == 401


def test_admin_routes_require_token(client):
    r = client.get("/api/admin/contracts")
    assert r.status_code == 401
    assert r.get_json()["error"]["code"] == "unauthorized"

    r = client.get("/api/admin/contracts", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 403
    assert r.get_json()["error"]["code"] == "invalid_token"


def test_expired_admin_token_is_rejected(client, settings, repo):
    admin = repo.find_admin_by_email(email=ADMIN_EMAIL)
    token = issue_token(
        {"adminId": admin.id},
        secret=settings.jwt_secret,
        ttl=timedelta(hours=24),
        now=datetime.now(timezone.utc) - timedelta(days=2),
    )
    r = client.get("/api/admin/stats", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 403


def test_token_for_unknown_admin_is_rejected(client, settings):
    token = issue_token({"adminId": "f" * 24}, secret=settings.jwt_secret, ttl=timedelta(hours=1))
    r = client.get("/api/admin/stats", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_create_contract_validates_payload(client, admin_headers):
    r = client.post("/api/admin/contracts", json={"title": "X", "client_name": " "}, headers=admin_headers)
    assert r.status_code == 400
    assert "required" in r.get_json()["error"]["message"].lower()


def test_create_contract_normalizes_and_defaults(client, admin_headers):
    body = _create_contract(client, admin_headers)
    data = body["data"]

    assert re.fullmatch(r"KTR\d{12}", data["number"])
    assert data["title"] == "Konsultasi Investasi"
    assert data["client_email"] == "budi@example.com"
    assert data["amount"] == 1500000.0
    assert data["status"] == "draft"
    assert "{{CLIENT_NAME}}" in data["content"]
    assert len(data["access_link"]) == 64
    assert body["userLoginInfo"] == {"contractNumber": data["number"], "password": USER_PASSWORD}


def test_list_contracts_adds_display_fields(client, admin_headers):
    _create_contract(client, admin_headers)
    r = client.get("/api/admin/contracts", headers=admin_headers)
    assert r.status_code == 200
    [row] = r.get_json()["data"]
    assert row["formatted_amount"] == "Rp\u00a01.500.000"
    assert row["can_download"] is False


def test_activate_unknown_contract_is_404(client, admin_headers):
    r = client.post("/api/admin/contracts/does-not-exist/activate", headers=admin_headers)
    assert r.status_code == 404


def test_user_login_rules(client, admin_headers):
    draft = _create_contract(client, admin_headers)["data"]

    r = client.post("/api/user/login", json={"contractNumber": draft["number"]})
    assert r.status_code == 400

    r = client.post("/api/user/login", json={"contractNumber": draft["number"], "password": "wrong"})
    assert r.status_code == 401

    r = client.post("/api/user/login", json={"contractNumber": "KTR000000000000", "password": USER_PASSWORD})
    assert r.status_code == 404

    r = client.post("/api/user/login", json={"contractNumber": draft["number"], "password": USER_PASSWORD})
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "contract_not_active"


def test_user_reads_rendered_contract(client, admin_headers):
    contract = _active_contract(client, admin_headers)

    r = client.post("/api/user/login", json={"contractNumber": contract["number"], "password": USER_PASSWORD})
    assert r.status_code == 200
    assert r.get_json()["contract"]["canSign"] is True

    headers = _user_headers(client, contract["number"])
    r = client.get("/api/user/contract", headers=headers)
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["canSign"] is True
    assert "{{" not in data["content"]
    assert contract["number"] in data["content"]
    assert "Budi Santoso" in data["content"]
    assert "Rp\u00a01.500.000" in data["content"]
    assert "[Belum Ditandatangani]" in data["content"]


def test_sign_then_download(client, admin_headers):
    contract = _active_contract(client, admin_headers)
    headers = _user_headers(client, contract["number"])

    r = client.get("/api/user/download", headers=headers)
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "not_signed"

    r = client.post("/api/user/sign", json={}, headers=headers)
    assert r.status_code == 400

    r = client.post("/api/user/sign", json={"signatureData": "data:image/png;base64,AAAA"}, headers=headers)
    assert r.status_code == 200
    assert r.get_json()["downloadUrl"] == "/api/user/download"

    r = client.post("/api/user/sign", json={"signatureData": "data:image/png;base64,BBBB"}, headers=headers)
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "already_signed"

    r = client.get("/api/user/download", headers=headers)
    assert r.status_code == 200
    assert r.mimetype == "application/pdf"
    assert r.data.startswith(b"%PDF")
    assert f"Kontrak_{contract['number']}.pdf" in r.headers["Content-Disposition"]

    r = client.get("/api/user/contract", headers=headers)
    data = r.get_json()["data"]
    assert data["status"] == "signed"
    assert data["canSign"] is False
    assert data["signature_data"] == "data:image/png;base64,AAAA"

    r = client.post("/api/user/login", json={"contractNumber": contract["number"], "password": USER_PASSWORD})
    assert r.status_code == 400


def test_sign_checks_token_before_payload(client):
    r = client.post("/api/user/sign", json={})
    assert r.status_code == 401


def test_tokens_are_not_interchangeable(client, admin_headers):
    contract = _active_contract(client, admin_headers)
    user_headers = _user_headers(client, contract["number"])

    assert client.get("/api/admin/contracts", headers=user_headers).status_code == 401
    assert client.get("/api/user/contract", headers=admin_headers).status_code == 403


def test_admin_download_delete_and_stats(client, admin_headers):
    first = _active_contract(client, admin_headers)
    second = _create_contract(client, admin_headers, amount=250000)["data"]

    r = client.get(f"/api/admin/contracts/{second['_id']}/download", headers=admin_headers)
    assert r.status_code == 200
    assert r.data.startswith(b"%PDF")

    r = client.get("/api/admin/stats", headers=admin_headers)
    assert r.get_json()["data"] == {
        "totalContracts": 2,
        "draftContracts": 1,
        "activeContracts": 1,
        "signedContracts": 0,
        "totalValue": 1750000.0,
    }

    r = client.delete(f"/api/admin/contracts/{first['_id']}", headers=admin_headers)
    assert r.status_code == 200
    r = client.delete(f"/api/admin/contracts/{first['_id']}", headers=admin_headers)
    assert r.status_code == 404
    r = client.get(f"/api/admin/contracts/{first['_id']}/download", headers=admin_headers)
    assert r.status_code == 404


def test_database_failure_is_503(client, admin_headers, repo, monkeypatch):
    def _down():
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(repo, "list_contracts", _down)
    r = client.get("/api/admin/contracts", headers=admin_headers)
    assert r.status_code == 503
    assert r.get_json()["error"]["code"] == "db_unavailable"

from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from kontrak import create_app
from kontrak.config import Settings
from kontrak.domain.contracts import generate_access_link, generate_contract_number
from kontrak.domain.models import AdminRecord, ContractRecord, ContractStatus
from kontrak.services.auth_service import hash_password

ADMIN_EMAIL = "admin@kontrakdigital.com"
ADMIN_PASSWORD = "correct horse"
USER_PASSWORD = "kontrak-test-password"


class InMemoryRepository:
    """Stands in for MongoContractRepository; same keyword-only surface."""

    def __init__(self):
        self.connected = True
        self.admins = {}
        self.contracts = {}
        self.calls = []
        self._ids = itertools.count(1)

    def _next_id(self) -> str:
        return f"{next(self._ids):024x}"

    def ensure_admin(self, *, name, email, password_hash):
        if any(a.email == email for a in self.admins.values()):
            return False
        admin = AdminRecord(id=self._next_id(), name=name, email=email, password_hash=password_hash)
        self.admins[admin.id] = admin
        return True

    def find_admin_by_email(self, *, email):
        self.calls.append("find_admin_by_email")
        return next((a for a in self.admins.values() if a.email == email), None)

    def get_admin(self, *, admin_id):
        return self.admins.get(admin_id)

    def list_contracts(self):
        return sorted(self.contracts.values(), key=lambda c: c.created_at, reverse=True)

    def get_contract(self, *, contract_id):
        return self.contracts.get(contract_id)

    def get_contract_by_number(self, *, number):
        return next((c for c in self.contracts.values() if c.number == number), None)

    def create_contract(self, *, new, created_by):
        self.calls.append("create_contract")
        now = datetime.now(timezone.utc)
        contract = ContractRecord(
            id=self._next_id(),
            title=new.title,
            number=generate_contract_number(now),
            client_name=new.client_name,
            client_email=new.client_email,
            client_phone=new.client_phone,
            client_address=new.client_address,
            amount=new.amount,
            content=new.content,
            access_link=generate_access_link(),
            created_by=created_by,
            admin_notes=new.admin_notes,
            created_at=now,
            updated_at=now,
        )
        self.contracts[contract.id] = contract
        return contract

    def activate_contract(self, *, contract_id):
        contract = self.contracts.get(contract_id)
        if contract is None:
            return None
        contract = replace(contract, status=ContractStatus.ACTIVE)
        self.contracts[contract_id] = contract
        return contract

    def sign_contract(self, *, contract_id, signature_data, signed_at):
        contract = self.contracts.get(contract_id)
        if contract is None or contract.is_signed:
            return None
        contract = replace(
            contract,
            signature_data=signature_data,
            signed_at=signed_at,
            status=ContractStatus.SIGNED,
        )
        self.contracts[contract_id] = contract
        return contract

    def delete_contract(self, *, contract_id):
        return self.contracts.pop(contract_id, None) is not None

    def contract_stats(self):
        rows = list(self.contracts.values())
        return {
            "totalContracts": len(rows),
            "draftContracts": sum(c.status is ContractStatus.DRAFT for c in rows),
            "activeContracts": sum(c.status is ContractStatus.ACTIVE for c in rows),
            "signedContracts": sum(c.status is ContractStatus.SIGNED for c in rows),
            "totalValue": sum(c.amount for c in rows),
        }


@pytest.fixture()
def settings(tmp_path):
    public = tmp_path / "public"
    public.mkdir()
    return Settings(
        jwt_secret="test-jwt-secret",
        user_password=USER_PASSWORD,
        admin_password=ADMIN_PASSWORD,
        app_env="testing",
        static_dir=public,
    )


@pytest.fixture()
def repo():
    repo = InMemoryRepository()
    repo.ensure_admin(name="Admin Kontrak Digital", email=ADMIN_EMAIL, password_hash=hash_password(ADMIN_PASSWORD))
    return repo


@pytest.fixture()
def app(settings, repo):
    return create_app(settings, repo)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_headers(client):
    r = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.get_json()['token']}"}

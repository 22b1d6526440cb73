from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, List, Mapping, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from kontrak.domain.contracts import generate_access_link, generate_contract_number
from kontrak.domain.models import AdminRecord, ContractRecord, ContractStatus, NewContract

_log = logging.getLogger(__name__)

DEFAULT_DATABASE = "kontrakdb"
SERVER_SELECTION_TIMEOUT_MS = 5000
CREATE_ATTEMPTS = 5


class RepositoryError(RuntimeError):
    pass


def _object_id(value: str) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def admin_from_doc(doc: Mapping[str, Any]) -> AdminRecord:
    return AdminRecord(
        id=str(doc["_id"]),
        name=doc["name"],
        email=doc["email"],
        password_hash=doc["password"],
        role=doc.get("role", "admin"),
    )


def contract_from_doc(doc: Mapping[str, Any]) -> ContractRecord:
    created_by = doc.get("created_by")
    return ContractRecord(
        id=str(doc["_id"]),
        title=doc.get("title", ""),
        number=doc["number"],
        client_name=doc.get("client_name", ""),
        client_email=doc.get("client_email", ""),
        client_phone=doc.get("client_phone"),
        client_address=doc.get("client_address"),
        amount=doc.get("amount") or 0,
        content=doc.get("content", ""),
        status=doc.get("status", ContractStatus.DRAFT.value),
        signature_data=doc.get("signature_data"),
        signed_at=doc.get("signed_at"),
        variables=dict(doc.get("variables") or {}),
        access_link=doc.get("access_link"),
        created_by=str(created_by) if created_by is not None else None,
        admin_notes=doc.get("admin_notes"),
        created_at=doc.get("createdAt"),
        updated_at=doc.get("updatedAt"),
    )


class MongoContractRepository:
    """
    Admin and contract storage on MongoDB.

    Documents keep the field names of the existing `admins` / `contracts`
    collections (`password`, `createdAt`, `updatedAt`, ObjectId `_id`).
    """

    def __init__(self, uri: str, *, client: Optional[MongoClient] = None, tz: Optional[tzinfo] = None):
        self.uri = uri.strip()
        self.tz = tz
        self._client = client
        self.connected = False

    def _db(self) -> Database:
        if self._client is None:
            self._client = MongoClient(
                self.uri,
                serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS,
                tz_aware=True,
            )
        return self._client.get_default_database(default=DEFAULT_DATABASE)

    def connect(self) -> None:
        """Ping the server and make sure indexes exist. Raises PyMongoError on failure."""
        db = self._db()
        db.command("ping")
        db.admins.create_index([("email", ASCENDING)], unique=True)
        db.contracts.create_index([("number", ASCENDING)], unique=True)
        db.contracts.create_index([("access_link", ASCENDING)], unique=True, sparse=True)
        db.contracts.create_index([("status", ASCENDING)])
        self.connected = True

    # Admins

    def ensure_admin(self, *, name: str, email: str, password_hash: str) -> bool:
        now = _utcnow()
        result = self._db().admins.update_one(
            {"email": email},
            {
                "$setOnInsert": {
                    "name": name,
                    "email": email,
                    "password": password_hash,
                    "role": "admin",
                    "createdAt": now,
                    "updatedAt": now,
                }
            },
            upsert=True,
        )
        return result.upserted_id is not None

    def find_admin_by_email(self, *, email: str) -> Optional[AdminRecord]:
        doc = self._db().admins.find_one({"email": email})
        return admin_from_doc(doc) if doc else None

    def get_admin(self, *, admin_id: str) -> Optional[AdminRecord]:
        oid = _object_id(admin_id)
        if oid is None:
            return None
        doc = self._db().admins.find_one({"_id": oid})
        return admin_from_doc(doc) if doc else None

    # Contracts

    def list_contracts(self) -> List[ContractRecord]:
        cursor = self._db().contracts.find().sort("createdAt", DESCENDING)
        return [contract_from_doc(doc) for doc in cursor]

    def get_contract(self, *, contract_id: str) -> Optional[ContractRecord]:
        oid = _object_id(contract_id)
        if oid is None:
            return None
        doc = self._db().contracts.find_one({"_id": oid})
        return contract_from_doc(doc) if doc else None

    def get_contract_by_number(self, *, number: str) -> Optional[ContractRecord]:
        doc = self._db().contracts.find_one({"number": number})
        return contract_from_doc(doc) if doc else None

    def create_contract(self, *, new: NewContract, created_by: str) -> ContractRecord:
        contracts = self._db().contracts
        for attempt in range(1, CREATE_ATTEMPTS + 1):
            now = _utcnow()
            doc: Dict[str, Any] = {
                "title": new.title,
                "number": generate_contract_number(now, self.tz),
                "client_name": new.client_name,
                "client_email": new.client_email,
                "client_phone": new.client_phone,
                "client_address": new.client_address,
                "amount": new.amount,
                "content": new.content,
                "status": ContractStatus.DRAFT.value,
                "variables": {},
                "access_link": generate_access_link(),
                "created_by": _object_id(created_by) or created_by,
                "admin_notes": new.admin_notes,
                "createdAt": now,
                "updatedAt": now,
            }
            try:
                result = contracts.insert_one(doc)
            except DuplicateKeyError:
                _log.warning("Contract number collision on attempt %d; retrying", attempt)
                continue
            doc["_id"] = result.inserted_id
            return contract_from_doc(doc)

        raise RepositoryError(f"Could not allocate a unique contract number after {CREATE_ATTEMPTS} attempts")

    def activate_contract(self, *, contract_id: str) -> Optional[ContractRecord]:
        oid = _object_id(contract_id)
        if oid is None:
            return None
        doc = self._db().contracts.find_one_and_update(
            {"_id": oid},
            {"$set": {"status": ContractStatus.ACTIVE.value, "updatedAt": _utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return contract_from_doc(doc) if doc else None

    def sign_contract(self, *, contract_id: str, signature_data: str, signed_at: datetime) -> Optional[ContractRecord]:
        """
        Store a signature exactly once. Returns None when the contract does not
        exist or already carries a signature.
        """
        oid = _object_id(contract_id)
        if oid is None:
            return None
        doc = self._db().contracts.find_one_and_update(
            {"_id": oid, "$or": [{"signature_data": None}, {"signature_data": ""}]},
            {
                "$set": {
                    "signature_data": signature_data,
                    "signed_at": signed_at,
                    "status": ContractStatus.SIGNED.value,
                    "updatedAt": _utcnow(),
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        return contract_from_doc(doc) if doc else None

    def delete_contract(self, *, contract_id: str) -> bool:
        oid = _object_id(contract_id)
        if oid is None:
            return False
        return self._db().contracts.delete_one({"_id": oid}).deleted_count > 0

    def contract_stats(self) -> Dict[str, float]:
        contracts = self._db().contracts
        total_rows = list(
            contracts.aggregate([{"$group": {"_id": None, "total": {"$sum": "$amount"}}}])
        )
        return {
            "totalContracts": contracts.count_documents({}),
            "draftContracts": contracts.count_documents({"status": ContractStatus.DRAFT.value}),
            "activeContracts": contracts.count_documents({"status": ContractStatus.ACTIVE.value}),
            "signedContracts": contracts.count_documents({"status": ContractStatus.SIGNED.value}),
            "totalValue": total_rows[0]["total"] if total_rows else 0,
        }

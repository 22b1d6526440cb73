# kontrak/domain/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ModelValidationError(ValueError):
    """Raised when a stored or incoming record fails basic validation."""


class ContractStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    SIGNED = "signed"
    COMPLETED = "completed"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _require_text(value: object, name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ModelValidationError(f"{name} must be a non-empty string")


@dataclass(frozen=True)
class AdminRecord:
    id: str
    name: str
    email: str
    password_hash: str
    role: str = "admin"

    def __post_init__(self) -> None:
        _require_text(self.id, "AdminRecord.id")
        _require_text(self.name, "AdminRecord.name")
        _require_text(self.email, "AdminRecord.email")
        _require_text(self.password_hash, "AdminRecord.password_hash")

    def to_public(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass(frozen=True)
class NewContract:
    """
    Validated admin input for a contract that has not been stored yet.
    Number, access link and status are assigned by the repository.
    """
    title: str
    client_name: str
    client_email: str
    content: str
    amount: float = 0.0
    client_phone: Optional[str] = None
    client_address: Optional[str] = None
    admin_notes: Optional[str] = None

    def __post_init__(self) -> None:
        _require_text(self.title, "NewContract.title")
        _require_text(self.client_name, "NewContract.client_name")
        _require_text(self.client_email, "NewContract.client_email")
        _require_text(self.content, "NewContract.content")


@dataclass(frozen=True)
class ContractRecord:
    """
    A stored contract.

    Wire format (to_json) keeps the document field names the web client reads:
    `_id`, snake_case business fields, camelCase timestamps.
    """
    id: str
    title: str
    number: str
    client_name: str
    client_email: str
    content: str
    status: ContractStatus = ContractStatus.DRAFT
    amount: float = 0.0
    client_phone: Optional[str] = None
    client_address: Optional[str] = None
    signature_data: Optional[str] = None
    signed_at: Optional[datetime] = None
    variables: Dict[str, Any] = field(default_factory=dict)
    access_link: Optional[str] = None
    created_by: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        _require_text(self.id, "ContractRecord.id")
        _require_text(self.number, "ContractRecord.number")
        if not isinstance(self.status, ContractStatus):
            try:
                object.__setattr__(self, "status", ContractStatus(self.status))
            except ValueError as e:
                raise ModelValidationError(f"unknown contract status: {self.status!r}") from e
        if isinstance(self.amount, bool) or not isinstance(self.amount, (int, float)):
            raise ModelValidationError("ContractRecord.amount must be a number")

    @property
    def is_signed(self) -> bool:
        return bool(self.signature_data)

    @property
    def can_sign(self) -> bool:
        return self.status is ContractStatus.ACTIVE and not self.is_signed

    def to_json(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "title": self.title,
            "number": self.number,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "client_phone": self.client_phone,
            "client_address": self.client_address,
            "amount": self.amount,
            "content": self.content,
            "status": self.status.value,
            "signature_data": self.signature_data,
            "signed_at": _iso(self.signed_at),
            "variables": dict(self.variables),
            "access_link": self.access_link,
            "created_by": self.created_by,
            "admin_notes": self.admin_notes,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

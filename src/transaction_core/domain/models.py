from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from transaction_core.domain.exceptions import MalformedValueError


class TransactionStatus(StrEnum):
    """Common status codes.

    Only ``NEW`` has meaning to the aggregate: it is assigned on first save when
    no status was set. The others are conventions shared with status policies;
    any string is accepted as a status.
    """

    NEW = "new"
    PENDING = "pending"
    PAID = "paid"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUND_PENDING = "refund_pending"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    CANCELLED = "cancelled"


class RelationshipRole(StrEnum):
    CUSTOMER = "customer"
    MERCHANT = "merchant"


@dataclass(frozen=True)
class Money:
    amount: int
    currency: str

    def __post_init__(self) -> None:
        if self.amount is None:
            raise MalformedValueError("Money", "amount is required")
        if self.currency is None or self.currency == "":
            raise MalformedValueError("Money", "currency is required")
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise MalformedValueError("Money", f"amount must be an integer of minor units, got {self.amount!r}")
        if not isinstance(self.currency, str) or len(self.currency) != 3 or not self.currency.isalpha():
            raise MalformedValueError("Money", f"currency must be ISO 4217 code (3 letters), got {self.currency!r}")

    def to_dict(self) -> dict[str, Any]:
        return {"amount": self.amount, "currency": self.currency}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Money":
        if not isinstance(data, dict):
            raise MalformedValueError("Money", f"expected a mapping, got {type(data).__name__}")
        return cls(amount=data.get("amount"), currency=data.get("currency"))  # type: ignore[arg-type]


@dataclass
class Entity:
    """Generic record exchanged with the entity store.

    Customers and merchants are plain entities. A transaction is persisted as an
    entity of subtype ``transaction`` whose metadata carries its fields.
    """

    subtype: str
    id: str | None = None
    title: str | None = None
    description: str | None = None
    owner_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subtype": self.subtype,
            "title": self.title,
            "description": self.description,
            "owner_id": self.owner_id,
            "metadata": dict(self.metadata),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entity":
        return cls(**data)

    def to_export(self) -> dict[str, Any]:
        return {
            "guid": self.id,
            "subtype": self.subtype,
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "time_created": self.created_at.isoformat() if self.created_at else None,
            "time_updated": self.updated_at.isoformat() if self.updated_at else None,
        }

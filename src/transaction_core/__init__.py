"""Payment transaction aggregate with vetoable status changes and snapshot rehydration."""

from transaction_core.application import HookRegistry, UnitOfWork
from transaction_core.domain import (
    CorruptedReferenceError,
    DomainError,
    Entity,
    MalformedValueError,
    Money,
    PersistenceFailure,
    TransactionStatus,
)
from transaction_core.domain.status import TransactionEvent
from transaction_core.domain.transaction import Transaction
from transaction_core.serialization import SnapshotCodec, ValueCodec, default_codec, register_value_type


__all__ = [
    "CorruptedReferenceError",
    "DomainError",
    "Entity",
    "HookRegistry",
    "MalformedValueError",
    "Money",
    "PersistenceFailure",
    "SnapshotCodec",
    "Transaction",
    "TransactionEvent",
    "TransactionStatus",
    "UnitOfWork",
    "ValueCodec",
    "default_codec",
    "register_value_type",
]

"""Domain layer - money, entities and the contracts the transaction depends on.

The transaction aggregate itself lives in ``transaction_core.domain.transaction``.
"""

from transaction_core.domain.exceptions import (
    CorruptedReferenceError,
    DomainError,
    MalformedValueError,
    PersistenceFailure,
    UnknownValueTypeError,
)
from transaction_core.domain.models import (
    Entity,
    Money,
    RelationshipRole,
    TransactionStatus,
)


__all__ = [
    "CorruptedReferenceError",
    "DomainError",
    "Entity",
    "MalformedValueError",
    "Money",
    "PersistenceFailure",
    "RelationshipRole",
    "TransactionStatus",
    "UnknownValueTypeError",
]

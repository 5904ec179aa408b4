"""Repository implementations."""

from transaction_core.infrastructure.repositories.entities import EntityRepository
from transaction_core.infrastructure.repositories.relationships import RelationshipRepository


__all__ = [
    "EntityRepository",
    "RelationshipRepository",
]

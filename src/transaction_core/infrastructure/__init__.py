"""Infrastructure layer - SQLAlchemy-backed stores."""

from transaction_core.infrastructure.database import Database
from transaction_core.infrastructure.repositories import EntityRepository, RelationshipRepository


__all__ = [
    "Database",
    "EntityRepository",
    "RelationshipRepository",
]

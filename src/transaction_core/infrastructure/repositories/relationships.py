from datetime import UTC, datetime

import structlog
from sqlalchemy import DateTime, bindparam, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transaction_core.domain.exceptions import PersistenceFailure
from transaction_core.domain.models import Entity
from transaction_core.infrastructure.repositories.entities import EntityRepository
from transaction_core.infrastructure.schema import entity_relationships


logger = structlog.get_logger()


class RelationshipRepository:
    """Directed, named links between entity ids (``guid_one --role--> guid_two``)."""

    def __init__(self, session: Session, entities: EntityRepository) -> None:
        self._session = session
        self._entities = entities

    def add_relationship(self, from_id: str, role: str, to_id: str) -> bool:
        """Link ``from_id`` to ``to_id``; returns False when the link already existed."""
        try:
            result = self._session.execute(
                text("""
                    INSERT INTO entity_relationships (guid_one, relationship, guid_two, created_at)
                    VALUES (:guid_one, :relationship, :guid_two, :created_at)
                    ON CONFLICT (guid_one, relationship, guid_two) DO NOTHING
                """).bindparams(bindparam("created_at", type_=DateTime(timezone=True))),
                {
                    "guid_one": from_id,
                    "relationship": role,
                    "guid_two": to_id,
                    "created_at": datetime.now(UTC),
                },
            )
        except SQLAlchemyError as e:
            raise PersistenceFailure("relate", to_id, str(e)) from e

        created = bool(result.rowcount)  # type: ignore[attr-defined]
        if created:
            logger.debug("relationship_added", guid_one=from_id, relationship=role, guid_two=to_id)
        return created

    def query_relationship(
        self,
        role: str,
        entity_id: str,
        inverse: bool = True,
        limit: int = 1,
    ) -> list[Entity]:
        """Return entities linked to ``entity_id`` by ``role``.

        With ``inverse`` the links pointing *at* ``entity_id`` are followed back
        to their source, which is how a transaction finds its customer.
        """
        if inverse:
            stmt = select(entity_relationships.c.guid_one).where(entity_relationships.c.guid_two == entity_id)
        else:
            stmt = select(entity_relationships.c.guid_two).where(entity_relationships.c.guid_one == entity_id)
        stmt = (
            stmt.where(entity_relationships.c.relationship == role)
            .order_by(entity_relationships.c.created_at.asc(), entity_relationships.c.id.asc())
            .limit(limit)
        )

        try:
            related_ids = self._session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceFailure("query", entity_id, str(e)) from e

        return self._entities.load_many(related_ids)

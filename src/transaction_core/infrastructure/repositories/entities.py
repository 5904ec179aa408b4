import json
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import Row, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from ulid import ULID

from transaction_core.domain.exceptions import PersistenceFailure
from transaction_core.domain.models import Entity
from transaction_core.infrastructure.schema import entities, entity_metadata


logger = structlog.get_logger()


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class EntityRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def load(self, entity_id: str) -> Entity | None:
        try:
            row = self._session.execute(select(entities).where(entities.c.id == entity_id)).fetchone()
            if not row:
                return None
            metadata_rows = self._session.execute(
                select(entity_metadata.c.name, entity_metadata.c.value).where(
                    entity_metadata.c.entity_id == entity_id
                )
            ).fetchall()
        except SQLAlchemyError as e:
            raise PersistenceFailure("load", entity_id, str(e)) from e
        return self._to_entity(row, metadata_rows)

    def save(self, entity: Entity) -> str:
        now = datetime.now(UTC)
        entity_id = entity.id or str(ULID())
        created_at = entity.created_at or now
        values = {
            "subtype": entity.subtype,
            "owner_id": entity.owner_id,
            "title": entity.title,
            "description": entity.description,
            "updated_at": now,
        }

        try:
            result = None
            if entity.id is not None:
                result = self._session.execute(update(entities).where(entities.c.id == entity_id).values(**values))
            if result is None or result.rowcount == 0:
                self._session.execute(insert(entities).values(id=entity_id, created_at=created_at, **values))

            self._session.execute(delete(entity_metadata).where(entity_metadata.c.entity_id == entity_id))
            if entity.metadata:
                self._session.execute(
                    insert(entity_metadata),
                    [
                        {"entity_id": entity_id, "name": name, "value": self._encode(value)}
                        for name, value in entity.metadata.items()
                    ],
                )
        except SQLAlchemyError as e:
            raise PersistenceFailure("save", entity.id, str(e)) from e

        entity.id = entity_id
        entity.created_at = created_at
        entity.updated_at = now
        logger.debug("entity_saved", entity_id=entity_id, subtype=entity.subtype)
        return entity_id

    def query_by_metadata(
        self,
        name: str,
        value: Any,
        limit: int = 1,
        order_by: str = "created_at",
        subtype: str | None = None,
    ) -> list[Entity]:
        if order_by == "created_at":
            ordering = (entities.c.created_at.asc(), entities.c.id.asc())
        elif order_by == "-created_at":
            ordering = (entities.c.created_at.desc(), entities.c.id.desc())
        else:
            raise ValueError(f"Unsupported ordering: {order_by}")

        stmt = (
            select(entities.c.id)
            .join(entity_metadata, entity_metadata.c.entity_id == entities.c.id)
            .where(entity_metadata.c.name == name, entity_metadata.c.value == self._encode(value))
        )
        if subtype is not None:
            stmt = stmt.where(entities.c.subtype == subtype)

        try:
            entity_ids = self._session.execute(stmt.order_by(*ordering).limit(limit)).scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceFailure("query", None, str(e)) from e

        return self.load_many(entity_ids)

    def load_many(self, entity_ids: Sequence[str]) -> list[Entity]:
        loaded = [self.load(entity_id) for entity_id in entity_ids]
        return [entity for entity in loaded if entity is not None]

    @staticmethod
    def _encode(value: Any) -> str:
        return json.dumps(value, sort_keys=True)

    @staticmethod
    def _decode(entity_id: str, name: str, value: str | None) -> Any:
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning("entity_metadata_undecodable", entity_id=entity_id, name=name)
            return value

    def _to_entity(self, row: Row[Any], metadata_rows: Sequence[Row[Any]]) -> Entity:
        return Entity(
            id=row.id,
            subtype=row.subtype,
            owner_id=row.owner_id,
            title=row.title,
            description=row.description,
            metadata={item.name: self._decode(row.id, item.name, item.value) for item in metadata_rows},
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

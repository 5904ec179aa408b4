import structlog

from transaction_core.domain.contracts import Order, RelationshipStore
from transaction_core.domain.models import Entity, RelationshipRole


logger = structlog.get_logger()


class RelationshipResolver:
    """Resolves the customer and merchant of a transaction.

    Resolution order for a role:

    1. the linked order, whenever one is resolvable;
    2. a value set explicitly on the transaction;
    3. an inbound relationship of that role in the relationship store.

    Only store lookups are cached, and only for the lifetime of the resolver.
    Misses return ``None``.
    """

    def __init__(self, relationships: RelationshipStore | None = None) -> None:
        self._relationships = relationships
        self._explicit: dict[RelationshipRole, Entity | None] = {}
        self._cached: dict[RelationshipRole, Entity] = {}

    def set(self, role: RelationshipRole, entity: Entity | None) -> None:
        self._explicit[role] = entity

    def resolve(self, role: RelationshipRole, order: Order | None, guid: str | None) -> Entity | None:
        if order is not None:
            if role is RelationshipRole.CUSTOMER:
                return order.get_customer()
            return order.get_merchant()

        explicit = self._explicit.get(role)
        if explicit is not None:
            return explicit

        if role in self._cached:
            return self._cached[role]

        if not guid or self._relationships is None:
            return None

        matches = self._relationships.query_relationship(role.value, guid, inverse=True, limit=1)
        if not matches:
            logger.debug("relationship_not_found", role=role.value, guid=guid)
            return None

        self._cached[role] = matches[0]
        return matches[0]

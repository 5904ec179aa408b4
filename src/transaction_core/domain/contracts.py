"""Contracts of the collaborators the transaction aggregate depends on."""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from transaction_core.domain.models import Entity, Money


if TYPE_CHECKING:
    from transaction_core.domain.status import TransactionEvent


@runtime_checkable
class Order(Protocol):
    def get_merchant(self) -> Entity | None: ...

    def get_customer(self) -> Entity | None: ...

    def get_total_amount(self) -> Money: ...


@runtime_checkable
class Payment(Protocol):
    """A single payment attempt recorded against a transaction."""

    def to_dict(self) -> dict[str, Any]: ...


@runtime_checkable
class FundingSource(Protocol):
    """Opaque reference to how funds were sourced (card, bank account, ...)."""

    def to_dict(self) -> dict[str, Any]: ...


class EntityStore(Protocol):
    def load(self, entity_id: str) -> Entity | None: ...

    def save(self, entity: Entity) -> str: ...

    def query_by_metadata(
        self,
        name: str,
        value: Any,
        limit: int = 1,
        order_by: str = "created_at",
        subtype: str | None = None,
    ) -> list[Entity]: ...


class RelationshipStore(Protocol):
    def add_relationship(self, from_id: str, role: str, to_id: str) -> bool: ...

    def query_relationship(
        self,
        role: str,
        entity_id: str,
        inverse: bool = True,
        limit: int = 1,
    ) -> list[Entity]: ...


class Stores(Protocol):
    """What a transaction needs from a unit of work."""

    entities: EntityStore
    relationships: RelationshipStore


class TransitionPolicy(Protocol):
    def can_transition(self, status: str, event: "TransactionEvent") -> bool: ...

    def on_refund_requested(self, event: "TransactionEvent") -> bool: ...

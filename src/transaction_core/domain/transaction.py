import hashlib
import json
import secrets
import time
from datetime import UTC, datetime
from typing import Any

import structlog

from transaction_core.domain.contracts import FundingSource, Order, Payment, Stores, TransitionPolicy
from transaction_core.domain.exceptions import CorruptedReferenceError, PersistenceFailure
from transaction_core.domain.models import Entity, Money, RelationshipRole
from transaction_core.domain.relationships import RelationshipResolver
from transaction_core.domain.status import StatusGate
from transaction_core.logging import transaction_log_context
from transaction_core.serialization.snapshot import SnapshotCodec
from transaction_core.serialization.values import ValueCodec, default_codec


logger = structlog.get_logger()


class Transaction:
    """A single payment attempt against an order.

    The transaction owns its amount, processor fee, status, order snapshot,
    payment log and funding source. Customer and merchant are resolved through
    a ``RelationshipResolver``; status changes go through a ``StatusGate``.

    Collaborators are injected: ``stores`` provides the entity and relationship
    stores (a ``UnitOfWork`` in practice), ``policy`` decides on status changes
    and refunds, ``codec`` encodes nested values.
    """

    SUBTYPE = "transaction"

    def __init__(
        self,
        stores: Stores | None = None,
        policy: TransitionPolicy | None = None,
        codec: ValueCodec = default_codec,
    ) -> None:
        self._stores = stores
        self._codec = codec
        self._gate = StatusGate(policy)
        self._resolver = RelationshipResolver(stores.relationships if stores is not None else None)

        self._guid: str | None = None
        self._transaction_id: str | None = None
        self._payment_method: str | None = None
        self._amount: int | None = None
        self._currency: str | None = None
        self._processor_fee: int | None = None
        self._order: Order | None = None
        self._order_payload: Any = None
        self._payments: list[Any] = []
        self._funding_source: Any = None
        self._details: dict[str, Any] | None = None
        self._details_payload: str | None = None
        self._created_at: datetime | None = None
        self._updated_at: datetime | None = None

    def __repr__(self) -> str:
        return f"Transaction(guid={self._guid!r}, transaction_id={self._transaction_id!r}, status={self.get_status()!r})"

    @property
    def guid(self) -> str | None:
        return self._guid

    @property
    def stores(self) -> Stores | None:
        return self._stores

    @property
    def created_at(self) -> datetime | None:
        return self._created_at

    @property
    def updated_at(self) -> datetime | None:
        return self._updated_at

    # Identity

    def set_id(self, transaction_id: str) -> "Transaction":
        self._transaction_id = transaction_id
        return self

    def get_id(self) -> str | None:
        return self._transaction_id

    # Status

    def set_status(self, status: str, params: dict[str, Any] | None = None) -> bool:
        """Request a status change; returns False when the policy vetoes it."""
        return self._gate.transition(self, status, params)

    def get_status(self) -> str | None:
        return self._gate.status

    def refund(self, params: dict[str, Any] | None = None) -> bool:
        """Announce a refund request; returns whether a handler accepted it.

        The status is left untouched. Callers set the refunded status themselves
        once a handler reports success.
        """
        return self._gate.request_refund(self, params)

    # Order

    def set_order(self, order: Order) -> "Transaction":
        if not isinstance(order, Order):
            raise TypeError(f"Expected an Order, got {type(order).__name__}")
        self._order = order
        self._order_payload = self._codec.encode(order)
        self.set_merchant(order.get_merchant())
        self.set_customer(order.get_customer())
        self.set_amount(order.get_total_amount())
        return self

    def get_order(self) -> Order | None:
        if self._order is not None:
            return self._order
        if self._order_payload is None:
            return None

        try:
            order = self._codec.decode(self._order_payload, "order")
        except CorruptedReferenceError as e:
            logger.error("transaction_order_corrupted", guid=self._guid, payload=self._order_payload, reason=e.reason)
            return None

        if not isinstance(order, Order):
            logger.error(
                "transaction_order_corrupted",
                guid=self._guid,
                payload=self._order_payload,
                reason=f"decoded to {type(order).__name__}",
            )
            return None

        self._order = order
        return order

    # Payments

    def add_payment(self, payment: Payment) -> "Transaction":
        self._payments.append(self._codec.encode(payment))
        return self

    def get_payments(self) -> list[Payment]:
        payments: list[Payment] = []
        for position, payload in enumerate(self._payments):
            try:
                payments.append(self._codec.decode(payload, "payment"))
            except CorruptedReferenceError as e:
                logger.error(
                    "transaction_payment_corrupted",
                    guid=self._guid,
                    position=position,
                    payload=payload,
                    reason=e.reason,
                )
        return payments

    # Money

    def set_amount(self, amount: Money) -> "Transaction":
        self._amount = amount.amount
        self._currency = amount.currency
        return self

    def get_amount(self) -> Money | None:
        if self._amount is None or self._currency is None:
            return None
        return Money(self._amount, self._currency)

    def set_processor_fee(self, fee: Money) -> "Transaction":
        if self._currency is not None and fee.currency != self._currency:
            logger.warning(
                "processor_fee_currency_mismatch",
                guid=self._guid,
                expected=self._currency,
                actual=fee.currency,
            )
        self._processor_fee = fee.amount
        return self

    def get_processor_fee(self) -> Money | None:
        if self._currency is None:
            return None
        return Money(self._processor_fee or 0, self._currency)

    def set_payment_method(self, payment_method: str | None) -> "Transaction":
        self._payment_method = payment_method
        return self

    def get_payment_method(self) -> str | None:
        return self._payment_method

    # Funding source

    def set_funding_source(self, funding_source: FundingSource) -> "Transaction":
        self._funding_source = self._codec.encode(funding_source)
        return self

    def get_funding_source(self) -> Any:
        """Return the funding source.

        When none was ever set the stored unset value itself is returned
        (``None``), not a lookup miss.
        """
        if not self._funding_source:
            return self._funding_source
        try:
            return self._codec.decode(self._funding_source, "funding_source")
        except CorruptedReferenceError as e:
            logger.error(
                "transaction_funding_source_corrupted",
                guid=self._guid,
                payload=self._funding_source,
                reason=e.reason,
            )
            return None

    # Parties

    def set_customer(self, customer: Entity | None = None) -> "Transaction":
        self._resolver.set(RelationshipRole.CUSTOMER, customer)
        return self

    def get_customer(self) -> Entity | None:
        return self._resolver.resolve(RelationshipRole.CUSTOMER, self.get_order(), self._guid)

    def set_merchant(self, merchant: Entity | None) -> "Transaction":
        self._resolver.set(RelationshipRole.MERCHANT, merchant)
        return self

    def get_merchant(self) -> Entity | None:
        return self._resolver.resolve(RelationshipRole.MERCHANT, self.get_order(), self._guid)

    # Legacy details

    def get_details(self, name: str | None = None) -> Any:
        """Read the legacy free-form details map.

        Deprecated: use the typed accessors. Kept for records written before
        those fields existed.
        """
        if self._details is None:
            self._details = {}
            if self._details_payload:
                try:
                    self._details = json.loads(self._details_payload)
                except json.JSONDecodeError as e:
                    logger.error(
                        "transaction_details_corrupted",
                        guid=self._guid,
                        payload=self._details_payload,
                        reason=str(e),
                    )
        if not name:
            return self._details
        return self._details.get(name)

    def set_details(self, name: str, value: Any = None) -> "Transaction":
        """Deprecated: use the typed accessors."""
        details = dict(self.get_details())
        details[name] = value
        self._details = details
        self._details_payload = json.dumps(details)
        return self

    # Persistence

    def save(self) -> str:
        """Persist the transaction and link its customer and merchant.

        On first save the status defaults to ``NEW`` and a transaction id is
        derived. A ``PersistenceFailure`` propagates; the derived transaction id
        is kept so that a retry reuses it.
        """
        if self._stores is None:
            raise PersistenceFailure("save", self._guid, "transaction is not bound to a store")

        self._gate.ensure_initial()
        if not self._transaction_id:
            self._transaction_id = self._generate_transaction_id()

        now = datetime.now(UTC)
        if self._created_at is None:
            self._created_at = now
        self._updated_at = now

        with transaction_log_context(self._guid, self._transaction_id):
            try:
                guid = self._stores.entities.save(self._to_entity())
            except PersistenceFailure as e:
                logger.error("transaction_save_failed", reason=e.reason)
                raise

        self._guid = guid

        with transaction_log_context(guid, self._transaction_id):
            for role in (RelationshipRole.CUSTOMER, RelationshipRole.MERCHANT):
                party = self._resolver.resolve(role, self.get_order(), guid)
                if party is None:
                    continue
                if not party.id:
                    logger.warning("relationship_skipped_unsaved_entity", role=role.value)
                    continue
                self._stores.relationships.add_relationship(party.id, role.value, guid)

            logger.info("transaction_saved", status=self.get_status(), amount=self._amount, currency=self._currency)
        return guid

    def reload(self, guid: str) -> bool:
        """Replace this instance's state with the durable record ``guid``."""
        if not guid or self._stores is None:
            return False
        entity = self._stores.entities.load(guid)
        if entity is None or entity.subtype != self.SUBTYPE:
            return False
        self._apply_entity(entity)
        return True

    def restore(
        self,
        *,
        status: str | None = None,
        transaction_id: str | None = None,
        created_at: datetime | None = None,
        payments: list[Any] | None = None,
        funding_source: Any = None,
    ) -> "Transaction":
        """Assign rehydrated fields directly, bypassing the status policy."""
        self._gate.assign(status)
        self._transaction_id = transaction_id
        self._created_at = created_at
        self._payments = [self._codec.encode(payment) for payment in payments or []]
        self._funding_source = self._codec.encode(funding_source) if funding_source else None
        return self

    @classmethod
    def load(
        cls,
        stores: Stores,
        guid: str,
        policy: TransitionPolicy | None = None,
        codec: ValueCodec = default_codec,
    ) -> "Transaction | None":
        transaction = cls(stores, policy, codec)
        if not transaction.reload(guid):
            return None
        return transaction

    @classmethod
    def get_from_id(
        cls,
        stores: Stores,
        transaction_id: str,
        policy: TransitionPolicy | None = None,
        codec: ValueCodec = default_codec,
    ) -> "Transaction | None":
        if not transaction_id:
            return None

        matches = stores.entities.query_by_metadata(
            "transaction_id", transaction_id, limit=1, order_by="created_at", subtype=cls.SUBTYPE
        )
        if not matches:
            return None

        transaction = cls(stores, policy, codec)
        transaction._apply_entity(matches[0])
        return transaction

    # Snapshots

    def to_array(self) -> dict[str, Any]:
        return SnapshotCodec(self._codec).to_array(self)

    def serialize(self) -> bytes:
        return SnapshotCodec(self._codec).serialize(self)

    @classmethod
    def unserialize(
        cls,
        data: bytes | str,
        stores: Stores | None = None,
        policy: TransitionPolicy | None = None,
        codec: ValueCodec = default_codec,
    ) -> "Transaction":
        transaction = cls(stores, policy, codec)
        SnapshotCodec(codec).restore(transaction, data)
        return transaction

    def _generate_transaction_id(self) -> str:
        order_payload = self._codec.encode(self._order) if self._order is not None else self._order_payload
        seed = f"{time.time_ns()}{secrets.token_hex(8)}{json.dumps(order_payload, sort_keys=True)}"
        return hashlib.sha1(seed.encode("utf-8")).hexdigest()

    def _to_entity(self) -> Entity:
        order_payload = self._codec.encode(self._order) if self._order is not None else self._order_payload
        return Entity(
            id=self._guid,
            subtype=self.SUBTYPE,
            created_at=self._created_at,
            updated_at=self._updated_at,
            metadata={
                "transaction_id": self._transaction_id,
                "payment_method": self._payment_method,
                "status": self.get_status(),
                "amount": self._amount,
                "processor_fee": self._processor_fee,
                "currency": self._currency,
                "order": order_payload,
                "payments": list(self._payments),
                "funding_source": self._funding_source,
                "details": self._details_payload,
            },
        )

    def _apply_entity(self, entity: Entity) -> None:
        metadata = entity.metadata
        self._guid = entity.id
        self._created_at = entity.created_at
        self._updated_at = entity.updated_at
        self._transaction_id = metadata.get("transaction_id")
        self._payment_method = metadata.get("payment_method")
        self._gate.assign(metadata.get("status"))
        self._amount = _minor_units(entity.id, "amount", metadata.get("amount"))
        self._processor_fee = _minor_units(entity.id, "processor_fee", metadata.get("processor_fee"))
        self._currency = _currency_code(entity.id, metadata.get("currency"))
        self._order = None
        self._order_payload = metadata.get("order")
        self._funding_source = metadata.get("funding_source")
        self._details = None
        self._details_payload = metadata.get("details")

        payments = metadata.get("payments") or []
        if not isinstance(payments, list):
            logger.error("transaction_payments_corrupted", guid=entity.id, payload=payments)
            payments = []
        self._payments = list(payments)


def _minor_units(guid: str | None, field: str, value: Any) -> int | None:
    """Read a stored amount; legacy records may hold it as a numeric string."""
    if value is None or (isinstance(value, int) and not isinstance(value, bool)):
        return value
    if isinstance(value, str) and value.strip().removeprefix("-").isdecimal():
        return int(value)
    logger.error("transaction_amount_corrupted", guid=guid, field=field, payload=value)
    return None


def _currency_code(guid: str | None, value: Any) -> str | None:
    if value is None or (isinstance(value, str) and len(value) == 3 and value.isalpha()):
        return value
    logger.error("transaction_amount_corrupted", guid=guid, field="currency", payload=value)
    return None

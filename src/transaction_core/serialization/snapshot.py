import re
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from transaction_core.config import settings
from transaction_core.domain.contracts import Order
from transaction_core.domain.exceptions import CorruptedReferenceError, PersistenceFailure
from transaction_core.domain.models import Entity, Money, RelationshipRole
from transaction_core.serialization.values import ValueCodec, default_codec


if TYPE_CHECKING:
    from transaction_core.domain.transaction import Transaction


logger = structlog.get_logger()

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def excerpt(text: str, limit: int) -> str:
    """Strip markup and cut ``text`` at a word boundary no longer than ``limit``."""
    plain = _WHITESPACE_RE.sub(" ", _TAG_RE.sub("", text)).strip()
    if len(plain) <= limit:
        return plain
    cut = plain[:limit]
    space = cut.rfind(" ")
    if space > 0:
        cut = cut[:space]
    return cut.rstrip() + "..."


class SnapshotCodec:
    """Exports transactions to flat snapshots and rebuilds them.

    A snapshot carries both the durable id (``_id``) and the inlined field
    values. Restoring prefers the durable record; the inlined values are used
    only when the id is missing or cannot be loaded. Customer and merchant
    sub-exports are always re-resolved by their own ids.

    The external transaction id is carried over from inlined values only for
    snapshots of never-saved transactions. A snapshot whose durable record
    could not be loaded comes back without it, so a later save derives a new
    id instead of writing a second record under the old one.
    """

    def __init__(self, codec: ValueCodec = default_codec, excerpt_length: int | None = None) -> None:
        self._codec = codec
        self._excerpt_length = settings.export_excerpt_length if excerpt_length is None else excerpt_length

    def to_array(self, transaction: "Transaction") -> dict[str, Any]:
        amount = transaction.get_amount()
        fee = transaction.get_processor_fee()
        created_at = transaction.created_at

        export: dict[str, Any] = {
            "guid": transaction.guid,
            "subtype": transaction.SUBTYPE,
            "transaction_id": transaction.get_id(),
            "payment_method": transaction.get_payment_method(),
            "status": transaction.get_status(),
            "amount": amount.amount if amount else None,
            "processor_fee": fee.amount if fee else None,
            "currency": amount.currency if amount else None,
            "time_created": created_at.isoformat() if created_at else None,
            "_id": transaction.guid,
            "_transaction_id": transaction.get_id(),
            "_time_created": created_at,
            "_order": transaction.get_order(),
            "_amount": amount,
            "_processor_fee": fee,
            "_payment_method": transaction.get_payment_method(),
            "_status": transaction.get_status(),
            "_merchant": transaction.get_merchant(),
            "_customer": transaction.get_customer(),
            "_payments": transaction.get_payments(),
            "_funding_source": transaction.get_funding_source(),
        }
        return self._prepare_export(export)

    def serialize(self, transaction: "Transaction") -> bytes:
        return self._codec.dumps(self.to_array(transaction))

    def restore(self, transaction: "Transaction", data: bytes | str) -> "Transaction":
        snapshot = self._codec.loads(data)
        if not isinstance(snapshot, dict):
            raise CorruptedReferenceError("snapshot", data, f"expected a mapping, got {type(snapshot).__name__}")

        guid = snapshot.get("_id")
        loaded = False
        if isinstance(guid, str) and guid:
            try:
                loaded = transaction.reload(guid)
            except PersistenceFailure as e:
                logger.warning("snapshot_reference_load_failed", guid=guid, reason=e.reason)

        if not loaded:
            self._restore_inline(transaction, snapshot)

        self._reattach(transaction, RelationshipRole.MERCHANT, snapshot.get("_merchant"))
        self._reattach(transaction, RelationshipRole.CUSTOMER, snapshot.get("_customer"))

        logger.info("transaction_unserialized", guid=transaction.guid, by_reference=loaded)
        return transaction

    def _prepare_export(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: self._prepare_export(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._prepare_export(item) for item in value]
        if isinstance(value, Entity):
            export = value.to_export()
            if export.get("description"):
                export["description"] = excerpt(export["description"], self._excerpt_length)
            export["_id"] = value.id
            return export
        return value

    def _restore_inline(self, transaction: "Transaction", snapshot: dict[str, Any]) -> None:
        order = snapshot.get("_order")
        if isinstance(order, Order):
            transaction.set_order(order)
        elif order is not None:
            logger.error("snapshot_order_corrupted", payload=order)

        payment_method = snapshot.get("_payment_method")
        transaction.set_payment_method(payment_method if isinstance(payment_method, str) else None)

        amount = snapshot.get("_amount")
        if isinstance(amount, Money):
            transaction.set_amount(amount)
        elif amount is not None:
            logger.error("snapshot_amount_corrupted", payload=amount)

        fee = snapshot.get("_processor_fee")
        if isinstance(fee, Money):
            transaction.set_processor_fee(fee)
        elif fee is not None:
            logger.error("snapshot_processor_fee_corrupted", payload=fee)

        status = snapshot.get("_status")
        created_at = snapshot.get("_time_created")
        transaction_id = snapshot.get("_transaction_id")
        payments = snapshot.get("_payments")
        if transaction_id and snapshot.get("_id"):
            logger.warning("snapshot_transaction_id_dropped", guid=snapshot.get("_id"), transaction_id=transaction_id)
            transaction_id = None

        transaction.restore(
            status=status if isinstance(status, str) else None,
            transaction_id=transaction_id if isinstance(transaction_id, str) else None,
            created_at=created_at if isinstance(created_at, datetime) else None,
            payments=payments if isinstance(payments, list) else [],
            funding_source=snapshot.get("_funding_source"),
        )

    def _reattach(self, transaction: "Transaction", role: RelationshipRole, export: Any) -> None:
        if not isinstance(export, dict):
            return
        entity_id = export.get("_id")
        stores = transaction.stores
        if not entity_id or stores is None:
            return

        try:
            entity = stores.entities.load(entity_id)
        except PersistenceFailure as e:
            logger.warning("snapshot_party_load_failed", role=role.value, entity_id=entity_id, reason=e.reason)
            return

        if entity is None:
            logger.warning("snapshot_party_not_found", role=role.value, entity_id=entity_id)
            return

        if role is RelationshipRole.CUSTOMER:
            transaction.set_customer(entity)
        else:
            transaction.set_merchant(entity)

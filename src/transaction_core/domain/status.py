from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from transaction_core.domain.contracts import TransitionPolicy
from transaction_core.domain.models import TransactionStatus


if TYPE_CHECKING:
    from transaction_core.domain.transaction import Transaction


logger = structlog.get_logger()

REFUND_EVENT = "refund"


@dataclass
class TransactionEvent:
    """Payload handed to transition and refund policies.

    Policies may inspect and mutate ``params``; the aggregate does not read it back.
    """

    name: str
    transaction: "Transaction"
    params: dict[str, Any] = field(default_factory=dict)


class StatusGate:
    """Holds a transaction's status and submits every change to a veto policy.

    The gate has no transition table. Whether a status may be entered, and what
    happens when it is, is decided entirely by the injected policy. Without a
    policy every transition is allowed and every refund request goes unhandled.
    """

    def __init__(self, policy: TransitionPolicy | None = None, status: str | None = None) -> None:
        self._policy = policy
        self._status = status

    @property
    def status(self) -> str | None:
        return self._status

    def assign(self, status: str | None) -> None:
        """Set the status without consulting the policy (rehydration only)."""
        self._status = status

    def ensure_initial(self) -> bool:
        if self._status is None:
            self._status = TransactionStatus.NEW.value
            return True
        return False

    def transition(
        self,
        transaction: "Transaction",
        status: str,
        params: dict[str, Any] | None = None,
    ) -> bool:
        event = TransactionEvent(name=status, transaction=transaction, params=dict(params or {}))
        allowed = True if self._policy is None else bool(self._policy.can_transition(status, event))

        log = logger.bind(guid=transaction.guid, from_status=self._status, to_status=status)
        if not allowed:
            log.info("transaction_status_vetoed")
            return False

        self._status = str(status)
        log.info("transaction_status_changed")
        return True

    def request_refund(self, transaction: "Transaction", params: dict[str, Any] | None = None) -> bool:
        if self._policy is None:
            return False
        event = TransactionEvent(name=REFUND_EVENT, transaction=transaction, params=dict(params or {}))
        accepted = bool(self._policy.on_refund_requested(event))
        logger.info("transaction_refund_requested", guid=transaction.guid, accepted=accepted)
        return accepted

"""Unit tests for StatusGate and HookRegistry."""

from unittest.mock import MagicMock

import pytest

from transaction_core.application.hooks import ANY_STATUS, HookRegistry
from transaction_core.domain.models import TransactionStatus
from transaction_core.domain.status import REFUND_EVENT, StatusGate, TransactionEvent
from transaction_core.domain.transaction import Transaction


class TestStatusGate:
    """Tests for StatusGate transitions."""

    @pytest.fixture
    def transaction(self) -> Transaction:
        return Transaction()

    def test_no_policy_allows_every_transition(self, transaction: Transaction) -> None:
        """Without a policy a transition is committed."""
        gate = StatusGate()
        assert gate.transition(transaction, "completed") is True
        assert gate.status == "completed"

    def test_policy_veto_leaves_status_unchanged(self, transaction: Transaction) -> None:
        """A falsy policy answer is a silent no-op."""
        policy = MagicMock()
        policy.can_transition.return_value = False
        gate = StatusGate(policy, status="pending")

        assert gate.transition(transaction, "completed") is False
        assert gate.status == "pending"

    def test_policy_receives_event_payload(self, transaction: Transaction) -> None:
        """The policy gets the status name, the transaction and caller params."""
        policy = MagicMock()
        policy.can_transition.return_value = True
        gate = StatusGate(policy)

        gate.transition(transaction, "failed", {"reason": "card_declined"})

        status, event = policy.can_transition.call_args.args
        assert status == "failed"
        assert isinstance(event, TransactionEvent)
        assert event.name == "failed"
        assert event.transaction is transaction
        assert event.params == {"reason": "card_declined"}

    def test_caller_params_are_copied(self, transaction: Transaction) -> None:
        """Policies mutating params do not touch the caller's dict."""
        params = {"reason": "x"}

        def mutate(status: str, event: TransactionEvent) -> bool:
            event.params["extra"] = True
            return True

        policy = MagicMock()
        policy.can_transition.side_effect = mutate
        StatusGate(policy).transition(transaction, "paid", params)
        assert params == {"reason": "x"}

    def test_enum_status_is_stored_as_plain_string(self, transaction: Transaction) -> None:
        """Enum members are stored by value."""
        gate = StatusGate()
        gate.transition(transaction, TransactionStatus.PAID)
        assert gate.status == "paid"
        assert type(gate.status) is str

    def test_ensure_initial_assigns_new_once(self) -> None:
        """The initial status is only assigned when unset."""
        gate = StatusGate()
        assert gate.ensure_initial() is True
        assert gate.status == TransactionStatus.NEW
        gate.assign("pending")
        assert gate.ensure_initial() is False
        assert gate.status == "pending"

    def test_assign_bypasses_policy(self) -> None:
        """assign never consults the policy."""
        policy = MagicMock()
        gate = StatusGate(policy)
        gate.assign("refunded")
        assert gate.status == "refunded"
        policy.can_transition.assert_not_called()

    def test_refund_without_policy_is_unhandled(self, transaction: Transaction) -> None:
        """Without a policy nobody accepts the refund."""
        assert StatusGate().request_refund(transaction) is False

    def test_refund_event_name(self, transaction: Transaction) -> None:
        """Refund requests are announced under the refund event name."""
        policy = MagicMock()
        policy.on_refund_requested.return_value = True
        assert StatusGate(policy).request_refund(transaction, {"amount": 100}) is True

        event = policy.on_refund_requested.call_args.args[0]
        assert event.name == REFUND_EVENT
        assert event.params == {"amount": 100}


class TestHookRegistry:
    """Tests for HookRegistry policy."""

    @pytest.fixture
    def event(self) -> TransactionEvent:
        return TransactionEvent(name="completed", transaction=Transaction())

    def test_no_handlers_allows(self, hooks: HookRegistry, event: TransactionEvent) -> None:
        """Transitions default to allowed."""
        assert hooks.can_transition("completed", event) is True

    def test_handler_veto(self, hooks: HookRegistry, event: TransactionEvent) -> None:
        """A handler returning False vetoes its status only."""
        hooks.on_transition("completed", lambda e: False)
        assert hooks.can_transition("completed", event) is False
        assert hooks.can_transition("pending", event) is True

    def test_none_keeps_running_result(self, hooks: HookRegistry, event: TransactionEvent) -> None:
        """Handlers returning None do not override earlier answers."""
        hooks.on_transition("completed", lambda e: False)
        hooks.on_transition("completed", lambda e: None)
        assert hooks.can_transition("completed", event) is False

    def test_later_handler_overrides(self, hooks: HookRegistry, event: TransactionEvent) -> None:
        """The last explicit answer wins."""
        hooks.on_transition("completed", lambda e: False)
        hooks.on_transition("completed", lambda e: True)
        assert hooks.can_transition("completed", event) is True

    def test_wildcard_handlers_run_for_every_status(self, hooks: HookRegistry, event: TransactionEvent) -> None:
        """ANY_STATUS handlers see every transition."""
        seen: list[str] = []

        @hooks.on_transition(ANY_STATUS)
        def record(e: TransactionEvent) -> None:
            seen.append(e.name)

        hooks.can_transition("completed", event)
        hooks.can_transition("failed", TransactionEvent(name="failed", transaction=event.transaction))
        assert seen == ["completed", "failed"]

    def test_enum_status_registration(self, hooks: HookRegistry, event: TransactionEvent) -> None:
        """Handlers registered by enum member match the plain status string."""
        hooks.on_transition(TransactionStatus.COMPLETED, lambda e: False)
        assert hooks.can_transition("completed", event) is False

    def test_refund_defaults_to_not_accepted(self, hooks: HookRegistry, event: TransactionEvent) -> None:
        """No refund handler means no refund."""
        assert hooks.on_refund_requested(event) is False

    def test_refund_accepted_by_any_handler(self, hooks: HookRegistry, event: TransactionEvent) -> None:
        """Any truthy handler result accepts the refund."""
        hooks.on_refund(lambda e: False)
        hooks.on_refund(lambda e: True)
        assert hooks.on_refund_requested(event) is True

    def test_refund_handler_failure_is_skipped(self, hooks: HookRegistry, event: TransactionEvent) -> None:
        """A raising refund handler does not stop the others."""

        def broken(e: TransactionEvent) -> bool:
            raise RuntimeError("gateway unavailable")

        later = MagicMock(return_value=True)
        hooks.on_refund(broken)
        hooks.on_refund(later)

        assert hooks.on_refund_requested(event) is True
        later.assert_called_once_with(event)

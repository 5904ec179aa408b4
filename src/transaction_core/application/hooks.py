from collections import defaultdict
from collections.abc import Callable
from typing import Any

import structlog

from transaction_core.domain.status import TransactionEvent


logger = structlog.get_logger()

ANY_STATUS = "*"

Handler = Callable[[TransactionEvent], bool | None]


class HookRegistry:
    """In-process transition and refund policy.

    Transition handlers are registered per status name, or for every status
    under ``ANY_STATUS``. They run in registration order, status-specific
    handlers first; each returns ``True``/``False`` to set the running result
    or ``None`` to leave it unchanged. The transition is allowed when the final
    result is truthy, and allowed by default.

    Refund handlers are best-effort: a handler that raises is logged and
    skipped. The refund counts as accepted when any handler returns a truthy
    value.
    """

    def __init__(self) -> None:
        self._transition_handlers: dict[str, list[Handler]] = defaultdict(list)
        self._refund_handlers: list[Handler] = []

    def on_transition(self, status: str, handler: Handler | None = None) -> Any:
        """Register ``handler`` for ``status``; usable as a decorator when ``handler`` is omitted."""

        def decorator(func: Handler) -> Handler:
            self._transition_handlers[str(status)].append(func)
            return func

        if handler is not None:
            return decorator(handler)
        return decorator

    def on_refund(self, handler: Handler) -> Handler:
        self._refund_handlers.append(handler)
        return handler

    def can_transition(self, status: str, event: TransactionEvent) -> bool:
        handlers = [
            *self._transition_handlers.get(str(status), []),
            *self._transition_handlers.get(ANY_STATUS, []),
        ]
        result = True
        for handler in handlers:
            outcome = handler(event)
            if outcome is not None:
                result = bool(outcome)
        return result

    def on_refund_requested(self, event: TransactionEvent) -> bool:
        accepted = False
        for handler in self._refund_handlers:
            try:
                outcome = handler(event)
            except Exception as e:
                logger.error(
                    "refund_handler_failed",
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    guid=event.transaction.guid,
                    error=str(e),
                    exc_info=True,
                )
                continue
            if outcome:
                accepted = True
        return accepted

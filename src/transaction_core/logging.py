import logging
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Literal

import structlog
from structlog.typing import EventDict

from transaction_core.config import settings


QUIET_LOGGERS = ("sqlalchemy", "sqlalchemy.engine")
PAYLOAD_KEYS = ("payload",)


class PayloadTruncator:
    """Cut raw payloads attached to corruption events down to ``limit`` characters."""

    def __init__(self, limit: int, keys: Sequence[str] = PAYLOAD_KEYS) -> None:
        self.limit = limit
        self.keys = tuple(keys)

    def __call__(self, logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key in self.keys:
            if key not in event_dict:
                continue
            value = event_dict[key]
            text = value if isinstance(value, str) else repr(value)
            if len(text) > self.limit:
                event_dict[key] = text[: self.limit] + "..."
        return event_dict


def configure_logging(
    level: str = "INFO",
    log_format: Literal["json", "console"] = "json",
    quiet_loggers: Sequence[str] = QUIET_LOGGERS,
    payload_max_length: int | None = None,
) -> None:
    timestamper = structlog.processors.TimeStamper(fmt="iso")
    truncator = PayloadTruncator(settings.log_payload_max_length if payload_max_length is None else payload_max_length)

    shared_processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.contextvars.merge_contextvars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        truncator,
        timestamper,
    ]

    if log_format == "json":
        renderer: structlog.typing.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper()))

    for logger_name in quiet_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


@contextmanager
def transaction_log_context(guid: str | None, transaction_id: str | None) -> Iterator[None]:
    """Bind the transaction identifiers to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(guid=guid, transaction_id=transaction_id):
        yield

"""Application layer - policies and units of work."""

from transaction_core.application.hooks import ANY_STATUS, HookRegistry
from transaction_core.application.unit_of_work import UnitOfWork


__all__ = [
    "ANY_STATUS",
    "HookRegistry",
    "UnitOfWork",
]

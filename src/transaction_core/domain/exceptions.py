from typing import Any


class DomainError(Exception):
    """Base exception for domain errors."""


class MalformedValueError(DomainError):
    """Raised when a value object is constructed from incomplete or invalid fields."""

    def __init__(self, value_type: str, reason: str) -> None:
        self.value_type = value_type
        self.reason = reason
        super().__init__(f"Malformed {value_type}: {reason}")


class CorruptedReferenceError(DomainError):
    """Raised when a stored payload cannot be decoded into its expected type."""

    def __init__(self, reference: str, payload: Any, reason: str) -> None:
        self.reference = reference
        self.payload = payload
        self.reason = reason
        super().__init__(f"Corrupted {reference} reference: {reason}")


class UnknownValueTypeError(DomainError):
    """Raised when encoding a value whose type has no registered codec."""

    def __init__(self, value_type: type) -> None:
        self.value_type = value_type
        super().__init__(f"No codec registered for {value_type.__qualname__}")


class PersistenceFailure(DomainError):
    """Raised when the underlying store fails to load or save an entity."""

    def __init__(self, operation: str, entity_id: str | None, reason: str) -> None:
        self.operation = operation
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Persistence {operation} failed for entity {entity_id or '<new>'}: {reason}")

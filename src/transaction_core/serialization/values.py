"""Tagged encoding of nested value objects.

Values stored inside a transaction (order, payments, funding source, money)
are kept as JSON-compatible payloads of the form::

    {"__type__": "<tag>", "__value__": {...}}

A type takes part by exposing ``to_dict()`` and a ``from_dict()`` classmethod
and being registered under a tag. Decoding happens when a field is read, so a
payload that no longer matches its type surfaces as
``CorruptedReferenceError`` at the point of use.
"""

import json
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

import structlog

from transaction_core.domain.exceptions import (
    CorruptedReferenceError,
    MalformedValueError,
    UnknownValueTypeError,
)
from transaction_core.domain.models import Entity, Money


logger = structlog.get_logger()

TYPE_KEY = "__type__"
VALUE_KEY = "__value__"
DATETIME_TAG = "datetime"

T = TypeVar("T", bound=type)


class ValueCodec:
    def __init__(self) -> None:
        self._types_by_tag: dict[str, type] = {}
        self._tags_by_type: dict[type, str] = {}

    def register(self, tag: str, value_type: type | None = None) -> Any:
        """Register ``value_type`` under ``tag``; usable as a class decorator."""

        def decorator(cls: T) -> T:
            if tag == DATETIME_TAG:
                raise ValueError(f"Tag {tag!r} is reserved")
            existing = self._types_by_tag.get(tag)
            if existing is not None and existing is not cls:
                raise ValueError(f"Tag {tag!r} is already registered for {existing.__qualname__}")
            self._types_by_tag[tag] = cls
            self._tags_by_type[cls] = tag
            return cls

        if value_type is not None:
            return decorator(value_type)
        return decorator

    def tag_for(self, value: Any) -> str | None:
        for cls in type(value).__mro__:
            tag = self._tags_by_type.get(cls)
            if tag is not None:
                return tag
        return None

    def encode(self, value: Any) -> Any:
        if value is None or isinstance(value, str | int | float | bool):
            return value
        if isinstance(value, datetime):
            return {TYPE_KEY: DATETIME_TAG, VALUE_KEY: value.isoformat()}
        if isinstance(value, list | tuple):
            return [self.encode(item) for item in value]
        if isinstance(value, dict):
            return {str(key): self.encode(item) for key, item in value.items()}

        tag = self.tag_for(value)
        if tag is None:
            raise UnknownValueTypeError(type(value))
        return {TYPE_KEY: tag, VALUE_KEY: self.encode(value.to_dict())}

    def decode(self, payload: Any, reference: str = "value") -> Any:
        """Decode ``payload``, raising ``CorruptedReferenceError`` on any mismatch."""
        if isinstance(payload, list):
            return [self.decode(item, reference) for item in payload]
        if not isinstance(payload, dict):
            return payload
        if TYPE_KEY not in payload:
            return {key: self.decode(item, reference) for key, item in payload.items()}

        tag = payload.get(TYPE_KEY)
        if VALUE_KEY not in payload:
            raise CorruptedReferenceError(reference, payload, f"tagged payload {tag!r} has no value")

        if tag == DATETIME_TAG:
            try:
                return datetime.fromisoformat(payload[VALUE_KEY])
            except (TypeError, ValueError) as e:
                raise CorruptedReferenceError(reference, payload, str(e)) from e

        value_type = self._types_by_tag.get(tag) if isinstance(tag, str) else None
        if value_type is None:
            raise CorruptedReferenceError(reference, payload, f"unknown value type {tag!r}")

        data = self.decode(payload[VALUE_KEY], reference)
        try:
            return value_type.from_dict(data)  # type: ignore[attr-defined]
        except (MalformedValueError, TypeError, KeyError, ValueError, AttributeError) as e:
            raise CorruptedReferenceError(reference, payload, str(e)) from e

    def decode_lenient(self, payload: Any) -> Any:
        """Decode what can be decoded; undecodable tagged nodes are left as raw payloads."""
        if isinstance(payload, list):
            return [self.decode_lenient(item) for item in payload]
        if not isinstance(payload, dict):
            return payload
        if TYPE_KEY not in payload:
            return {key: self.decode_lenient(item) for key, item in payload.items()}
        try:
            return self.decode(payload)
        except CorruptedReferenceError as e:
            logger.warning("value_decode_failed", type=payload.get(TYPE_KEY), reason=e.reason)
            return payload

    def dumps(self, value: Any) -> bytes:
        return json.dumps(self.encode(value), sort_keys=True, separators=(",", ":")).encode("utf-8")

    def loads(self, data: bytes | str) -> Any:
        try:
            raw = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptedReferenceError("snapshot", data, str(e)) from e
        return self.decode_lenient(raw)


default_codec = ValueCodec()
default_codec.register("money", Money)
default_codec.register("entity", Entity)

register_value_type: Callable[..., Any] = default_codec.register

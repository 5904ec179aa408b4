"""Value and snapshot codecs."""

from transaction_core.serialization.snapshot import SnapshotCodec
from transaction_core.serialization.values import ValueCodec, default_codec, register_value_type


__all__ = [
    "SnapshotCodec",
    "ValueCodec",
    "default_codec",
    "register_value_type",
]

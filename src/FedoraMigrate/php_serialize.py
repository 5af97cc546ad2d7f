"""Source id serialization and hashing for Drupal migrate map tables.

Drupal Migrate keys every ``migrate_map_*`` row by ``source_ids_hash``: the
SHA-256 of the PHP ``serialize()`` form of the row's ordered source ids. This
module reproduces that encoding for the only shape we need, a list of strings:

    serialize(["pid"]) == b'a:1:{i:0;s:3:"pid";}'

String lengths are byte lengths of the UTF-8 encoding, exactly as PHP reports
them. Values are not escaped; PHP does not escape them either, it relies on the
length prefix, so identifiers containing ``"`` or ``;`` are written verbatim.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence


class SerializationError(TypeError):
    """Raised when source ids cannot be serialized."""

    pass


def _encode_component(value: str) -> bytes:
    if not isinstance(value, str):
        raise SerializationError(
            f"Source id components must be strings, got {type(value).__name__}: {value!r}"
        )
    return value.encode("utf-8")


def serialize(values: Sequence[str]) -> bytes:
    """Serialize an ordered list of strings like PHP ``serialize()``.

    Args:
        values: Ordered source id components, at least one.

    Returns:
        The serialized bytes, e.g. ``a:2:{i:0;s:9:"vcu:38191";i:1;s:3:"JPG";}``.

    Raises:
        SerializationError: If ``values`` is empty, a bare string, or holds
            a non-string component.
    """
    if isinstance(values, (str, bytes)):
        raise SerializationError("Source ids must be a sequence of strings, not a single string")
    if len(values) == 0:
        raise SerializationError("At least one source id component is required")

    parts = [b"a:%d:{" % len(values)]
    for index, value in enumerate(values):
        encoded = _encode_component(value)
        parts.append(b'i:%d;s:%d:"%s";' % (index, len(encoded), encoded))
    parts.append(b"}")
    return b"".join(parts)


def content_hash(data: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def source_ids_hash(values: Sequence[str]) -> str:
    """Compute the migrate map ``source_ids_hash`` for ordered source ids.

    Args:
        values: Ordered source id components.

    Returns:
        64 character lowercase hex string.

    Raises:
        SerializationError: If the components cannot be serialized.
    """
    return content_hash(serialize(values))


__all__ = [
    "SerializationError",
    "content_hash",
    "serialize",
    "source_ids_hash",
]

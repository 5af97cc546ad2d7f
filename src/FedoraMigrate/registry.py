"""Per entity type mapping of source keys to destination ids.

One slice per :class:`~FedoraMigrate.entities.EntityType`. A slice is written
exactly once, by the processor for its type, and is read-only once sealed.
Later processors resolve references through :meth:`IdentifierRegistry.lookup`.

Destination ids are ``offset + positional_index`` where the positional index is
the order in which a source key was first reserved. Pinned keys map to fixed,
pre-existing ids and do not consume a positional index.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from FedoraMigrate.entities import EntityType
from FedoraMigrate.errors import ReferenceNotFound, RegistryError


@dataclass
class _Slice:
    offset: int
    ids: dict[str, int] = field(default_factory=dict)
    next_index: int = 0
    sealed: bool = False


class IdentifierRegistry:
    """Source key to destination id registry shared by one migration run."""

    def __init__(self) -> None:
        self._slices: dict[EntityType, _Slice] = {}

    def open_slice(self, entity_type: EntityType, offset: int = 0) -> None:
        """Start writing the slice for ``entity_type``.

        Raises:
            RegistryError: If the slice was already opened in this run.
        """
        if entity_type in self._slices:
            raise RegistryError(f"Registry slice for {entity_type.value} was already written")
        if offset < 0:
            raise RegistryError(f"Offset must be non-negative, got {offset}")
        self._slices[entity_type] = _Slice(offset=offset)

    def _writable(self, entity_type: EntityType) -> _Slice:
        slice_ = self._slices.get(entity_type)
        if slice_ is None:
            raise RegistryError(f"Registry slice for {entity_type.value} is not open")
        if slice_.sealed:
            raise RegistryError(f"Registry slice for {entity_type.value} is sealed")
        return slice_

    def reserve(self, entity_type: EntityType, source_key: str) -> int:
        """Return the destination id for ``source_key``, assigning the next one if new."""
        slice_ = self._writable(entity_type)
        existing = slice_.ids.get(source_key)
        if existing is not None:
            return existing
        destination_id = slice_.offset + slice_.next_index
        slice_.next_index += 1
        slice_.ids[source_key] = destination_id
        return destination_id

    def pin(self, entity_type: EntityType, source_key: str, destination_id: int) -> int:
        """Bind ``source_key`` to a fixed id outside the sequential range."""
        slice_ = self._writable(entity_type)
        existing = slice_.ids.get(source_key)
        if existing is not None and existing != destination_id:
            raise RegistryError(
                f"{entity_type.value} source key {source_key} already maps to {existing}"
            )
        slice_.ids[source_key] = destination_id
        return destination_id

    def seal(self, entity_type: EntityType) -> None:
        self._writable(entity_type).sealed = True

    def lookup(self, entity_type: EntityType, source_key: str) -> int:
        """Resolve ``source_key`` against a sealed slice.

        Raises:
            ReferenceNotFound: If the slice is not populated yet or has no such key.
        """
        slice_ = self._slices.get(entity_type)
        if slice_ is None or not slice_.sealed:
            raise ReferenceNotFound(entity_type, source_key)
        try:
            return slice_.ids[source_key]
        except KeyError:
            raise ReferenceNotFound(entity_type, source_key) from None

    def slice(self, entity_type: EntityType) -> Mapping[str, int]:
        """Read-only view of a slice in assignment order."""
        slice_ = self._slices.get(entity_type)
        if slice_ is None:
            raise RegistryError(f"Registry slice for {entity_type.value} was never written")
        return MappingProxyType(slice_.ids)

    def is_sealed(self, entity_type: EntityType) -> bool:
        slice_ = self._slices.get(entity_type)
        return slice_ is not None and slice_.sealed

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._slices

    def __iter__(self) -> Iterator[EntityType]:
        return iter(self._slices)

    def __len__(self) -> int:
        return len(self._slices)


__all__ = ["IdentifierRegistry"]

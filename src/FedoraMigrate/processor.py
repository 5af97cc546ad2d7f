"""Generic entity processor driven by :class:`EntityDescriptor`.

For one entity type the processor:

1. Keys every loaded row by the hash of its source ids.
2. Collapses duplicate keys: the last row wins, the first occurrence keeps
   its position in the assignment order.
3. Writes the registry slice for the type: pinned keys get their fixed ids,
   all other keys get ``offset + positional_index`` in first-seen order.
4. Resolves every declared reference against slices written by earlier types.
5. Returns the records and migrate map entries for the emitter.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import structlog
from pydantic import BaseModel

from FedoraMigrate.entities import (
    ADMIN_USER_ID,
    ADMIN_USER_NAME,
    EntityDescriptor,
    EntityType,
    Reference,
    RowPosition,
)
from FedoraMigrate.errors import ReferenceNotFound
from FedoraMigrate.loader import SourceRow
from FedoraMigrate.metrics import inc_counter
from FedoraMigrate.php_serialize import source_ids_hash
from FedoraMigrate.registry import IdentifierRegistry

log = structlog.get_logger()


@dataclass(frozen=True)
class MigrationMapEntry:
    """One ``migrate_map_*`` row: source key, original source ids, destination id."""

    source_key: str
    source_ids: tuple[str, ...]
    destination_id: int


@dataclass(frozen=True)
class ProcessedRecord:
    destination_id: int
    source_key: str
    source_ids: tuple[str, ...]
    row: BaseModel
    position: RowPosition
    references: Mapping[str, int] = field(default_factory=dict)
    # Pinned records map to entities that already exist in the destination.
    pinned: bool = False


@dataclass
class ProcessedEntity:
    entity_type: EntityType
    records: list[ProcessedRecord] = field(default_factory=list)
    rows_read: int = 0
    duplicates: int = 0

    @property
    def migration_map(self) -> list[MigrationMapEntry]:
        return [
            MigrationMapEntry(
                source_key=record.source_key,
                source_ids=record.source_ids,
                destination_id=record.destination_id,
            )
            for record in self.records
        ]

    @property
    def created(self) -> list[ProcessedRecord]:
        """Records that become new destination rows."""
        return [record for record in self.records if not record.pinned]


def resolve_user(registry: IdentifierRegistry, name: str) -> int:
    """Destination uid for a Fedora user name.

    ``admin`` is created by Drupal itself and is always uid 1; it is resolved
    without hashing or consulting the registry.
    """
    if name == ADMIN_USER_NAME:
        return ADMIN_USER_ID
    return registry.lookup(EntityType.USER, source_ids_hash([name]))


def resolve_media(registry: IdentifierRegistry, primary_id: str, sub_id: str) -> int:
    """Destination mid for a (pid, dsid) pair."""
    return registry.lookup(EntityType.MEDIA, source_ids_hash([primary_id, sub_id]))


def _resolve_reference(registry: IdentifierRegistry, reference: Reference, row: BaseModel) -> int:
    source_ids = reference.source_ids(row)
    if reference.target is EntityType.USER:
        return resolve_user(registry, *source_ids)
    return registry.lookup(reference.target, source_ids_hash(source_ids))


class EntityProcessor:
    """Assigns destination ids for one entity type and resolves its references."""

    def __init__(self, descriptor: EntityDescriptor, registry: IdentifierRegistry):
        self.descriptor = descriptor
        self.registry = registry

    @property
    def entity_type(self) -> EntityType:
        return self.descriptor.entity_type

    def process(self, rows: Iterable[SourceRow]) -> ProcessedEntity:
        """Run the full pass for this entity type.

        Args:
            rows: Validated rows in input order.

        Returns:
            ProcessedEntity with one record per distinct source key, in
            destination id assignment order.

        Raises:
            ReferenceNotFound: If any reference cannot be resolved.
            RegistryError: If the slice for this type was already written.
        """
        entity_type = self.entity_type.value
        log.info("phase_started", entity_type=entity_type)

        keyed, rows_read, duplicates = self._key_rows(rows)
        pinned_keys = self._assign_ids(keyed)
        ids = self.registry.slice(self.entity_type)

        result = ProcessedEntity(
            entity_type=self.entity_type, rows_read=rows_read, duplicates=duplicates
        )
        for source_key, (source_ids, source_row) in keyed.items():
            result.records.append(
                ProcessedRecord(
                    destination_id=ids[source_key],
                    source_key=source_key,
                    source_ids=source_ids,
                    row=source_row.row,
                    position=source_row.position,
                    references=self._resolve_references(source_row),
                    pinned=source_key in pinned_keys,
                )
            )

        reference_count = len(result.records) * len(self.descriptor.references)
        inc_counter(f"migrate.rows.{entity_type}", len(result.records))
        inc_counter(f"migrate.references.{entity_type}", reference_count)
        if duplicates:
            inc_counter(f"migrate.duplicates.{entity_type}", duplicates)
            log.warning(
                "duplicate_source_keys",
                entity_type=entity_type,
                duplicates=duplicates,
            )
        log.info(
            "phase_complete",
            entity_type=entity_type,
            rows_read=rows_read,
            records=len(result.records),
            pinned=len(result.records) - len(result.created),
            duplicates=duplicates,
            references_resolved=reference_count,
        )
        return result

    def _key_rows(
        self, rows: Iterable[SourceRow]
    ) -> tuple[dict[str, tuple[tuple[str, ...], SourceRow]], int, int]:
        # dict keeps the first insertion position when a key is overwritten.
        keyed: dict[str, tuple[tuple[str, ...], SourceRow]] = {}
        rows_read = 0
        duplicates = 0
        for source_row in rows:
            rows_read += 1
            source_ids = self.descriptor.source_ids(source_row.row)
            source_key = source_ids_hash(source_ids)
            if source_key in keyed:
                duplicates += 1
                log.debug(
                    "duplicate_source_key",
                    entity_type=self.entity_type.value,
                    source_ids=list(source_ids),
                    first=str(keyed[source_key][1].position),
                    replaced_by=str(source_row.position),
                )
            keyed[source_key] = (source_ids, source_row)
        return keyed, rows_read, duplicates

    def _assign_ids(self, keyed: Mapping[str, tuple[tuple[str, ...], SourceRow]]) -> set[str]:
        pinned = {
            source_ids_hash(source_ids): destination_id
            for source_ids, destination_id in self.descriptor.pinned.items()
        }
        pinned_seen: set[str] = set()
        self.registry.open_slice(self.entity_type, self.descriptor.offset)
        for source_key in keyed:
            if source_key in pinned:
                self.registry.pin(self.entity_type, source_key, pinned[source_key])
                pinned_seen.add(source_key)
            else:
                self.registry.reserve(self.entity_type, source_key)
        self.registry.seal(self.entity_type)
        return pinned_seen

    def _resolve_references(self, source_row: SourceRow) -> dict[str, int]:
        resolved: dict[str, int] = {}
        for reference in self.descriptor.references:
            try:
                resolved[reference.name] = _resolve_reference(
                    self.registry, reference, source_row.row
                )
            except ReferenceNotFound as exc:
                raise ReferenceNotFound(
                    reference.target,
                    exc.source_key,
                    reference=reference.name,
                    value=reference.source_ids(source_row.row),
                    referrer=self.entity_type,
                    position=source_row.position,
                ) from exc
        return resolved


__all__ = [
    "EntityProcessor",
    "MigrationMapEntry",
    "ProcessedEntity",
    "ProcessedRecord",
    "resolve_media",
    "resolve_user",
]

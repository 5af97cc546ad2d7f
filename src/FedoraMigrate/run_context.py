"""Per-run aggregation of processed entity types.

The context keeps every :class:`ProcessedEntity` of a run together with the
registry that produced it, and derives deterministic counts and a digest of
all migrate map entries. Two runs over the same input yield the same digest,
which is how reproducibility of source keys and destination ids is checked
without diffing SQL (the SQL carries random uuids and timestamps).
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

from FedoraMigrate.entities import PROCESSING_ORDER, EntityType
from FedoraMigrate.php_serialize import serialize
from FedoraMigrate.processor import MigrationMapEntry, ProcessedEntity
from FedoraMigrate.registry import IdentifierRegistry


@dataclass
class MigrationRunContext:
    registry: IdentifierRegistry = field(default_factory=IdentifierRegistry)
    duration_ms: int | None = None
    _processed: dict[EntityType, ProcessedEntity] = field(default_factory=dict, init=False)

    def record(self, processed: ProcessedEntity) -> None:
        if processed.entity_type in self._processed:
            raise ValueError(f"{processed.entity_type.value} was already recorded for this run")
        self._processed[processed.entity_type] = processed

    def processed(self, entity_type: EntityType) -> ProcessedEntity:
        return self._processed[entity_type]

    @property
    def entity_types(self) -> list[EntityType]:
        return [entity_type for entity_type in PROCESSING_ORDER if entity_type in self._processed]

    def summary_counts(self) -> dict[str, int]:
        """Records per entity type, in processing order."""
        return {
            entity_type.value: len(self._processed[entity_type].records)
            for entity_type in self.entity_types
        }

    def migration_map(self, entity_type: EntityType) -> list[MigrationMapEntry]:
        return self._processed[entity_type].migration_map

    def map_digest(self) -> str:
        """SHA-256 over every migrate map entry of the run, in processing order."""
        h = hashlib.sha256()
        for entity_type in self.entity_types:
            for entry in self.migration_map(entity_type):
                h.update(
                    serialize(
                        [
                            entity_type.value,
                            entry.source_key,
                            *entry.source_ids,
                            str(entry.destination_id),
                        ]
                    )
                )
        return h.hexdigest()

    def summary(self) -> dict[str, object]:
        return {
            "counts": self.summary_counts(),
            "duplicates": {
                entity_type.value: self._processed[entity_type].duplicates
                for entity_type in self.entity_types
            },
            "map_digest": self.map_digest(),
            "duration_ms": self.duration_ms,
        }


__all__ = ["MigrationRunContext"]

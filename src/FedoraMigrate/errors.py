"""Exceptions raised while generating the migration script.

Every error is fatal for the run. Messages carry the entity type and, where a
row is involved, the CSV file and line so the offending input can be located.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from FedoraMigrate.entities import EntityType, RowPosition


class MigrationError(Exception):
    """Base exception for migration errors."""

    pass


class InputUnavailable(MigrationError):
    """Raised when a required input file or directory cannot be read."""

    def __init__(self, path, reason: str = "does not exist"):
        self.path = path
        self.reason = reason
        super().__init__(f"Input '{path}' {reason}")


class MalformedRow(MigrationError):
    """Raised when a CSV row cannot be decoded into its entity's row model."""

    def __init__(self, entity_type: EntityType, position: RowPosition, detail: str):
        self.entity_type = entity_type
        self.position = position
        self.detail = detail
        super().__init__(f"Malformed {entity_type.value} row at {position}: {detail}")


class ReferenceNotFound(MigrationError):
    """Raised when a cross reference has no destination id in the registry.

    This is a referential integrity problem in the source data (e.g. a file
    owned by a user missing from users.csv) or a lookup against an entity type
    that has not been processed yet.
    """

    def __init__(
        self,
        entity_type: EntityType,
        source_key: str,
        *,
        reference: str | None = None,
        value: tuple[str, ...] | None = None,
        referrer: EntityType | None = None,
        position: RowPosition | None = None,
    ):
        self.entity_type = entity_type
        self.source_key = source_key
        self.reference = reference
        self.value = value
        self.referrer = referrer
        self.position = position
        if referrer is not None and position is not None:
            message = (
                f"{referrer.value} row at {position} references {entity_type.value} "
                f"{reference}={list(value or ())} which does not exist"
            )
        else:
            message = f"No {entity_type.value} destination id for source key {source_key}"
        super().__init__(message)


class RegistryError(MigrationError):
    """Raised when an identifier registry slice is written out of turn."""

    pass


class OutputWriteFailure(MigrationError):
    """Raised when the migration script cannot be written."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write output '{path}': {reason}")


__all__ = [
    "InputUnavailable",
    "MalformedRow",
    "MigrationError",
    "OutputWriteFailure",
    "ReferenceNotFound",
    "RegistryError",
]

"""Entity types, CSV row models and the declarative descriptor for each type.

The set of entity types is closed. Each :class:`EntityDescriptor` tells the
generic processor which CSV files to read, which fields form the source ids,
which destination id offset to use and which references to resolve.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field


class EntityType(str, enum.Enum):
    USER = "user"
    FILE = "file"
    MEDIA = "media"
    MEDIA_REVISION = "media_revision"
    NODE = "node"


# Later types resolve references against registry slices of earlier ones.
PROCESSING_ORDER: tuple[EntityType, ...] = (
    EntityType.USER,
    EntityType.FILE,
    EntityType.MEDIA,
    EntityType.MEDIA_REVISION,
    EntityType.NODE,
)

# Drupal creates uid 0 (anonymous) and uid 1 (admin) on install.
ANONYMOUS_USER_ID = 0
ADMIN_USER_ID = 1
ADMIN_USER_NAME = "admin"
RESERVED_USER_IDS = 2


@dataclass(frozen=True)
class RowPosition:
    """Location of a row in its CSV source (line 1 is the header)."""

    source: str
    line: int

    def __str__(self) -> str:
        return f"{self.source}:{self.line}"


class _SourceRow(BaseModel):
    # serde-style: extra CSV columns are ignored, missing ones are errors.
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class UserRow(_SourceRow):
    name: str
    password: str = Field(alias="pass")
    mail: str
    status: str
    timezone: str
    language: str


class FileRow(_SourceRow):
    primary_id: str = Field(alias="pid")
    sub_id: str = Field(alias="dsid")
    version: str
    created_date: int
    mime_type: str
    name: str
    path: str
    user: str
    content_hash: str = Field(alias="sha1")
    size: int


class MediaRow(_SourceRow):
    primary_id: str = Field(alias="pid")
    sub_id: str = Field(alias="dsid")
    version: str
    bundle: str
    created_date: int
    size: int = Field(alias="file_size")
    label: str
    mime_type: str
    name: str
    user: str


class MediaRevisionRow(MediaRow):
    pass


class NodeRow(_SourceRow):
    primary_id: str = Field(alias="pid")
    created_date: int
    label: str
    weight: str
    model: str
    modified_date: int
    state: str
    user: str
    display_hint: str
    parents: str


@dataclass(frozen=True)
class Reference:
    """A cross reference from a row to an entity of an earlier type.

    ``fields`` are the row attributes that, in order, form the target's source
    ids.
    """

    name: str
    target: EntityType
    fields: tuple[str, ...]

    def source_ids(self, row: BaseModel) -> tuple[str, ...]:
        return tuple(getattr(row, name) for name in self.fields)


USER_REFERENCE = Reference(name="user", target=EntityType.USER, fields=("user",))


@dataclass(frozen=True)
class EntityDescriptor:
    entity_type: EntityType
    row_model: type[_SourceRow]
    sources: tuple[str, ...]
    source_id_fields: tuple[str, ...]
    map_table: str
    offset: int = 0
    pinned: dict[tuple[str, ...], int] = field(default_factory=dict)
    references: tuple[Reference, ...] = ()

    def source_ids(self, row: BaseModel) -> tuple[str, ...]:
        return tuple(getattr(row, name) for name in self.source_id_fields)


DESCRIPTORS: dict[EntityType, EntityDescriptor] = {
    EntityType.USER: EntityDescriptor(
        entity_type=EntityType.USER,
        row_model=UserRow,
        sources=("users.csv",),
        source_id_fields=("name",),
        map_table="migrate_map_fedora_users",
        offset=RESERVED_USER_IDS,
        # The admin account already exists on the site; it is mapped, never created.
        pinned={(ADMIN_USER_NAME,): ADMIN_USER_ID},
    ),
    EntityType.FILE: EntityDescriptor(
        entity_type=EntityType.FILE,
        row_model=FileRow,
        sources=("files.csv",),
        source_id_fields=("primary_id", "sub_id", "version"),
        map_table="migrate_map_fedora_files",
        references=(USER_REFERENCE,),
    ),
    EntityType.MEDIA: EntityDescriptor(
        entity_type=EntityType.MEDIA,
        row_model=MediaRow,
        sources=("media.csv",),
        source_id_fields=("primary_id", "sub_id"),
        map_table="migrate_map_fedora_media",
        references=(USER_REFERENCE,),
    ),
    EntityType.MEDIA_REVISION: EntityDescriptor(
        entity_type=EntityType.MEDIA_REVISION,
        row_model=MediaRevisionRow,
        # Every media item is also its own first revision: media.csv rows come
        # first, in order, so revision ids line up with media ids.
        sources=("media.csv", "media_revisions.csv"),
        source_id_fields=("primary_id", "sub_id", "version"),
        map_table="migrate_map_fedora_media_revisions",
        references=(
            USER_REFERENCE,
            Reference(name="media", target=EntityType.MEDIA, fields=("primary_id", "sub_id")),
        ),
    ),
    EntityType.NODE: EntityDescriptor(
        entity_type=EntityType.NODE,
        row_model=NodeRow,
        sources=("nodes.csv",),
        source_id_fields=("primary_id",),
        map_table="migrate_map_fedora_nodes",
        references=(USER_REFERENCE,),
    ),
}

SOURCE_FILES: tuple[str, ...] = (
    "files.csv",
    "media.csv",
    "media_revisions.csv",
    "nodes.csv",
    "users.csv",
)


__all__ = [
    "ADMIN_USER_ID",
    "ADMIN_USER_NAME",
    "ANONYMOUS_USER_ID",
    "DESCRIPTORS",
    "EntityDescriptor",
    "EntityType",
    "FileRow",
    "MediaRevisionRow",
    "MediaRow",
    "NodeRow",
    "PROCESSING_ORDER",
    "RESERVED_USER_IDS",
    "Reference",
    "RowPosition",
    "SOURCE_FILES",
    "UserRow",
]

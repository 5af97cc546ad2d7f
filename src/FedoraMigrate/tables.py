# tables.py

"""Table definitions for the generated MySQL script.

Drupal core tables already exist on the target site; they are declared here
with only the columns this migration writes, purely so INSERT statements can
be compiled. The ``migrate_map_fedora_*`` tables do not exist until a Drupal
migration has run, so they are ORM models whose DDL goes into the script.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Column, Index, Integer, MetaData, String, Table, text
from sqlalchemy.dialects.mysql import INTEGER, TINYINT
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from FedoraMigrate.entities import DESCRIPTORS, EntityType

drupal_metadata = MetaData()


class Base(DeclarativeBase):
    pass


def _uuid() -> Column:
    return Column("uuid", String(128), nullable=False)


def _langcode() -> Column:
    return Column("langcode", String(12), nullable=False)


# --- Drupal core tables (insert targets only) ---

users = Table(
    "users",
    drupal_metadata,
    Column("uid", Integer, primary_key=True, autoincrement=False),
    _uuid(),
    _langcode(),
)

users_field_data = Table(
    "users_field_data",
    drupal_metadata,
    Column("uid", Integer, primary_key=True, autoincrement=False),
    _langcode(),
    Column("name", String(60), nullable=False),
    Column("created", Integer, nullable=False),
    Column("access", Integer, nullable=False),
    Column("default_langcode", Integer, nullable=False),
)

file_managed = Table(
    "file_managed",
    drupal_metadata,
    Column("fid", Integer, primary_key=True, autoincrement=False),
    _uuid(),
    _langcode(),
    Column("uid", Integer),
    Column("filename", String(255)),
    Column("uri", String(255), nullable=False),
    Column("filemime", String(255)),
    Column("filesize", BigInteger),
    Column("status", Integer, nullable=False),
    Column("created", Integer),
    Column("changed", Integer, nullable=False),
)

filehash = Table(
    "filehash",
    drupal_metadata,
    Column("fid", Integer, primary_key=True, autoincrement=False),
    Column("sha1", String(40)),
)

media = Table(
    "media",
    drupal_metadata,
    Column("mid", Integer, primary_key=True, autoincrement=False),
    Column("vid", Integer),
    Column("bundle", String(32), nullable=False),
    _uuid(),
    _langcode(),
)

media_field_data = Table(
    "media_field_data",
    drupal_metadata,
    Column("mid", Integer, primary_key=True, autoincrement=False),
    Column("vid", Integer, nullable=False),
    Column("bundle", String(32), nullable=False),
    _langcode(),
    Column("status", Integer, nullable=False),
    Column("uid", Integer),
    Column("name", String(255)),
    Column("created", Integer),
    Column("changed", Integer),
    Column("default_langcode", Integer, nullable=False),
)

media_revision = Table(
    "media_revision",
    drupal_metadata,
    Column("mid", Integer, nullable=False),
    Column("vid", Integer, primary_key=True, autoincrement=False),
    _langcode(),
    Column("revision_user", Integer),
    Column("revision_created", Integer),
    Column("revision_default", Integer),
)

media_field_revision = Table(
    "media_field_revision",
    drupal_metadata,
    Column("mid", Integer, nullable=False),
    Column("vid", Integer, primary_key=True, autoincrement=False),
    _langcode(),
    Column("status", Integer, nullable=False),
    Column("uid", Integer),
    Column("name", String(255)),
    Column("created", Integer),
    Column("changed", Integer),
    Column("default_langcode", Integer, nullable=False),
)

node = Table(
    "node",
    drupal_metadata,
    Column("nid", Integer, primary_key=True, autoincrement=False),
    Column("vid", Integer),
    Column("type", String(32), nullable=False),
    _uuid(),
    _langcode(),
)


def _node_revision_columns() -> list[Column]:
    return [
        _langcode(),
        Column("status", Integer, nullable=False),
        Column("uid", Integer, nullable=False),
        Column("title", String(255), nullable=False),
        Column("created", Integer, nullable=False),
        Column("changed", Integer, nullable=False),
        Column("promote", Integer, nullable=False),
        Column("sticky", Integer, nullable=False),
        Column("default_langcode", Integer, nullable=False),
    ]


node_field_data = Table(
    "node_field_data",
    drupal_metadata,
    Column("nid", Integer, primary_key=True, autoincrement=False),
    Column("vid", Integer, nullable=False),
    Column("type", String(32), nullable=False),
    *_node_revision_columns(),
)

node_field_revision = Table(
    "node_field_revision",
    drupal_metadata,
    Column("nid", Integer, nullable=False),
    Column("vid", Integer, primary_key=True, autoincrement=False),
    *_node_revision_columns(),
)


# --- Drupal Migrate map tables (created by the script) ---

_MAP_TABLE_COMMENT = "Mappings from source identifier value(s) to destination identifier value(s)."


def _map_table_args(source_id_count: int) -> tuple:
    columns = [f"sourceid{i}" for i in range(1, source_id_count + 1)]
    return (
        Index("source", *columns, mysql_length={name: 191 for name in columns}),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
            "comment": _MAP_TABLE_COMMENT,
        },
    )


def _sourceid() -> Mapped[str]:
    return mapped_column(String(255), nullable=False)


class MigrateMapMixin:
    # sort_order keeps the Drupal column layout: hash, sourceidN, destid1, bookkeeping.
    source_ids_hash: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Hash of source ids. Used as primary key",
        sort_order=-1,
    )
    destid1: Mapped[int | None] = mapped_column(
        INTEGER(unsigned=True), nullable=True, sort_order=1
    )
    source_row_status: Mapped[int] = mapped_column(
        TINYINT(unsigned=True),
        nullable=False,
        server_default=text("0"),
        comment="Indicates current status of the source row",
        sort_order=1,
    )
    rollback_action: Mapped[int] = mapped_column(
        TINYINT(unsigned=True),
        nullable=False,
        server_default=text("0"),
        comment="Flag indicating what to do for this item on rollback",
        sort_order=1,
    )
    last_imported: Mapped[int] = mapped_column(
        INTEGER(unsigned=True),
        nullable=False,
        server_default=text("0"),
        comment="UNIX timestamp of the last time this row was imported",
        sort_order=1,
    )
    # Row data hash for change detection; left NULL so the next real
    # migration run re-imports (and overwrites) every row.
    hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Hash of source row data, for detecting changes",
        sort_order=1,
    )


class MigrateMapUsers(MigrateMapMixin, Base):
    __tablename__ = DESCRIPTORS[EntityType.USER].map_table
    __table_args__ = _map_table_args(1)
    sourceid1: Mapped[str] = _sourceid()


class MigrateMapFiles(MigrateMapMixin, Base):
    __tablename__ = DESCRIPTORS[EntityType.FILE].map_table
    __table_args__ = _map_table_args(3)
    sourceid1: Mapped[str] = _sourceid()
    sourceid2: Mapped[str] = _sourceid()
    sourceid3: Mapped[str] = _sourceid()


class MigrateMapMedia(MigrateMapMixin, Base):
    __tablename__ = DESCRIPTORS[EntityType.MEDIA].map_table
    __table_args__ = _map_table_args(2)
    sourceid1: Mapped[str] = _sourceid()
    sourceid2: Mapped[str] = _sourceid()


class MigrateMapMediaRevisions(MigrateMapMixin, Base):
    __tablename__ = DESCRIPTORS[EntityType.MEDIA_REVISION].map_table
    __table_args__ = _map_table_args(3)
    sourceid1: Mapped[str] = _sourceid()
    sourceid2: Mapped[str] = _sourceid()
    sourceid3: Mapped[str] = _sourceid()


class MigrateMapNodes(MigrateMapMixin, Base):
    __tablename__ = DESCRIPTORS[EntityType.NODE].map_table
    __table_args__ = _map_table_args(1)
    sourceid1: Mapped[str] = _sourceid()


MIGRATE_MAP_MODELS: dict[EntityType, type[MigrateMapMixin]] = {
    EntityType.USER: MigrateMapUsers,
    EntityType.FILE: MigrateMapFiles,
    EntityType.MEDIA: MigrateMapMedia,
    EntityType.MEDIA_REVISION: MigrateMapMediaRevisions,
    EntityType.NODE: MigrateMapNodes,
}


def migrate_map_table(entity_type: EntityType) -> Table:
    return MIGRATE_MAP_MODELS[entity_type].__table__  # type: ignore[attr-defined]

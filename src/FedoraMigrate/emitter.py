"""MySQL script writer for processed entity types.

Statements are compiled with SQLAlchemy's MySQL dialect using literal binds,
so every value is quoted and escaped by the dialect rather than by string
formatting. Each table's INSERT is wrapped in the same LOCK/DISABLE KEYS block
``mysqldump`` produces so the script loads quickly into a fresh site.

The generated script assumes an empty destination: it drops and recreates the
migrate map tables and inserts with explicit ids.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
import time
import uuid
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, Protocol, TextIO

import structlog
from sqlalchemy import Table, insert
from sqlalchemy.dialects import mysql
from sqlalchemy.schema import CreateIndex, CreateTable, DropTable

from FedoraMigrate import tables
from FedoraMigrate.config import Settings
from FedoraMigrate.entities import PROCESSING_ORDER, EntityType
from FedoraMigrate.errors import OutputWriteFailure
from FedoraMigrate.processor import ProcessedEntity

log = structlog.get_logger()

# "named" paramstyle so literal '%' in values is not doubled as it would be for
# the driver's default format paramstyle.
DIALECT = mysql.dialect(paramstyle="named")

_STRUCTURE_TEMPLATE = """
--
-- Table structure for table `{table}`
--

{drop};
/*!40101 SET @saved_cs_client     = @@character_set_client */;
/*!40101 SET character_set_client = utf8 */;
{create};
{indexes}/*!40101 SET character_set_client = @saved_cs_client */;
"""

_DUMP_TEMPLATE = """
--
-- Dumping data for table `{table}`
--

LOCK TABLES `{table}` WRITE;
/*!40000 ALTER TABLE `{table}` DISABLE KEYS */;
set autocommit=0;
{insert};
/*!40000 ALTER TABLE `{table}` ENABLE KEYS */;
UNLOCK TABLES;
commit;
"""

Values = list[dict[str, Any]]


class RowEmitter(Protocol):
    def emit(self, processed: ProcessedEntity) -> None: ...


def compile_statement(statement) -> str:
    """Render a statement as MySQL with values inlined."""
    return str(
        statement.compile(dialect=DIALECT, compile_kwargs={"literal_binds": True})
    ).strip()


class SqlEmitter:
    """Writes destination rows and migrate map rows as a MySQL script."""

    def __init__(
        self,
        handle: TextIO,
        settings: Settings | None = None,
        *,
        uuid_factory: Callable[[], uuid.UUID] = uuid.uuid4,
        clock: Callable[[], float] = time.time,
    ):
        self.handle = handle
        self.settings = settings or Settings()
        self.uuid_factory = uuid_factory
        self.clock = clock
        self.statements_written = 0
        self._builders: dict[EntityType, Callable[[ProcessedEntity], list[tuple[Table, Values]]]] = {
            EntityType.USER: self._user_rows,
            EntityType.FILE: self._file_rows,
            EntityType.MEDIA: self._media_rows,
            EntityType.MEDIA_REVISION: self._media_revision_rows,
            EntityType.NODE: self._node_rows,
        }

    def _write(self, text: str) -> None:
        try:
            self.handle.write(text)
        except OSError as exc:
            raise OutputWriteFailure(getattr(self.handle, "name", "<stream>"), str(exc)) from exc

    def _uuid(self) -> str:
        return str(self.uuid_factory())

    def _now(self) -> int:
        return int(self.clock())

    def write_preamble(self) -> None:
        """Drop and create the migrate map tables; they only exist once a migration ran."""
        for entity_type in PROCESSING_ORDER:
            table = tables.migrate_map_table(entity_type)
            indexes = "".join(
                f"{compile_statement(CreateIndex(index))};\n"
                for index in sorted(table.indexes, key=lambda index: index.name or "")
            )
            self._write(
                _STRUCTURE_TEMPLATE.format(
                    table=table.name,
                    drop=compile_statement(DropTable(table, if_exists=True)),
                    create=compile_statement(CreateTable(table)),
                    indexes=indexes,
                )
            )

    def emit(self, processed: ProcessedEntity) -> None:
        builder = self._builders[processed.entity_type]
        for table, values in builder(processed):
            self.dump(table, values)
        self.dump(tables.migrate_map_table(processed.entity_type), self._map_rows(processed))

    def dump(self, table: Table, values: Values) -> None:
        if not values:
            log.debug("table_skipped_empty", table=table.name)
            return
        statement = insert(table).values(values)
        self._write(_DUMP_TEMPLATE.format(table=table.name, insert=compile_statement(statement)))
        self.statements_written += 1
        log.debug("table_dumped", table=table.name, rows=len(values))

    def _map_rows(self, processed: ProcessedEntity) -> Values:
        rows = []
        for entry in processed.migration_map:
            row: dict[str, Any] = {"source_ids_hash": entry.source_key}
            for index, source_id in enumerate(entry.source_ids, start=1):
                row[f"sourceid{index}"] = source_id
            row["destid1"] = entry.destination_id
            rows.append(row)
        return rows

    def _user_rows(self, processed: ProcessedEntity) -> list[tuple[Table, Values]]:
        langcode = self.settings.langcode
        now = self._now()
        created = processed.created
        return [
            (
                tables.users,
                [
                    {"uid": record.destination_id, "uuid": self._uuid(), "langcode": langcode}
                    for record in created
                ],
            ),
            (
                tables.users_field_data,
                [
                    {
                        "uid": record.destination_id,
                        "langcode": langcode,
                        "name": record.row.name,
                        "created": now,
                        "access": 0,
                        "default_langcode": 1,
                    }
                    for record in created
                ],
            ),
        ]

    def _file_rows(self, processed: ProcessedEntity) -> list[tuple[Table, Values]]:
        langcode = self.settings.langcode
        now = self._now()
        return [
            (
                tables.file_managed,
                [
                    {
                        "fid": record.destination_id,
                        "uuid": self._uuid(),
                        "langcode": langcode,
                        "uid": record.references["user"],
                        "filename": record.row.name,
                        "uri": record.row.path,
                        "filemime": record.row.mime_type,
                        "filesize": record.row.size,
                        "status": 1,
                        "created": record.row.created_date,
                        "changed": now,
                    }
                    for record in processed.created
                ],
            ),
            (
                tables.filehash,
                [
                    {"fid": record.destination_id, "sha1": record.row.content_hash}
                    for record in processed.created
                ],
            ),
        ]

    def _media_rows(self, processed: ProcessedEntity) -> list[tuple[Table, Values]]:
        langcode = self.settings.langcode
        return [
            (
                tables.media,
                [
                    {
                        "mid": record.destination_id,
                        # The default revision of a fresh media item shares its id.
                        "vid": record.destination_id,
                        "bundle": record.row.bundle,
                        "uuid": self._uuid(),
                        "langcode": langcode,
                    }
                    for record in processed.created
                ],
            ),
            (
                tables.media_field_data,
                [
                    {
                        "mid": record.destination_id,
                        "vid": record.destination_id,
                        "bundle": record.row.bundle,
                        "langcode": langcode,
                        "status": 1,
                        "uid": record.references["user"],
                        "name": record.row.name,
                        "created": record.row.created_date,
                        "changed": record.row.created_date,
                        "default_langcode": 1,
                    }
                    for record in processed.created
                ],
            ),
        ]

    def _media_revision_rows(self, processed: ProcessedEntity) -> list[tuple[Table, Values]]:
        langcode = self.settings.langcode
        return [
            (
                tables.media_revision,
                [
                    {
                        "mid": record.references["media"],
                        "vid": record.destination_id,
                        "langcode": langcode,
                        "revision_user": record.references["user"],
                        "revision_created": record.row.created_date,
                        "revision_default": 1,
                    }
                    for record in processed.created
                ],
            ),
            (
                tables.media_field_revision,
                [
                    {
                        "mid": record.references["media"],
                        "vid": record.destination_id,
                        "langcode": langcode,
                        "status": 1,
                        "uid": record.references["user"],
                        "name": record.row.name,
                        "created": record.row.created_date,
                        "changed": record.row.created_date,
                        "default_langcode": 1,
                    }
                    for record in processed.created
                ],
            ),
        ]

    def _node_rows(self, processed: ProcessedEntity) -> list[tuple[Table, Values]]:
        langcode = self.settings.langcode
        bundle = self.settings.node_bundle

        def revision_values(record) -> dict[str, Any]:
            return {
                "nid": record.destination_id,
                "vid": record.destination_id,
                "langcode": langcode,
                "status": 1,
                "uid": record.references["user"],
                "title": record.row.label,
                "created": record.row.created_date,
                "changed": record.row.modified_date,
                "promote": 1,
                "sticky": 0,
                "default_langcode": 1,
            }

        return [
            (
                tables.node,
                [
                    {
                        "nid": record.destination_id,
                        "vid": record.destination_id,
                        "type": bundle,
                        "uuid": self._uuid(),
                        "langcode": langcode,
                    }
                    for record in processed.created
                ],
            ),
            (
                tables.node_field_data,
                [{**revision_values(record), "type": bundle} for record in processed.created],
            ),
            (
                tables.node_field_revision,
                [revision_values(record) for record in processed.created],
            ),
        ]


@contextlib.contextmanager
def open_output(path: Path) -> Iterator[TextIO]:
    """Open ``path`` for writing so it only appears once complete.

    Output goes to a temporary file beside ``path`` that replaces it on
    success and is removed if the block raises.

    Raises:
        OutputWriteFailure: If the destination cannot be created or written.
    """
    path = Path(path)
    if not path.parent.is_dir():
        raise OutputWriteFailure(path, f"directory '{path.parent}' does not exist")
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".partial", dir=path.parent)
    except OSError as exc:
        raise OutputWriteFailure(path, exc.strerror or str(exc)) from exc

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            yield handle
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise OutputWriteFailure(path, exc.strerror or str(exc)) from exc
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


__all__ = ["DIALECT", "RowEmitter", "SqlEmitter", "compile_statement", "open_output"]

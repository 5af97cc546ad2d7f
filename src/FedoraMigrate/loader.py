"""CSV loading for the Fedora export files.

Rows are yielded lazily in file order together with their position so errors
can point at the offending line. Decoding into the entity's row model happens
here; processors only ever see validated rows.
"""

from __future__ import annotations

import csv
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import structlog
from pydantic import BaseModel, ValidationError

from FedoraMigrate.entities import SOURCE_FILES, EntityDescriptor, EntityType, RowPosition
from FedoraMigrate.errors import InputUnavailable, MalformedRow

log = structlog.get_logger()


@dataclass(frozen=True)
class SourceRow:
    position: RowPosition
    row: BaseModel


def validate_source_directory(path: Path) -> None:
    """Check that ``path`` is a directory holding every export CSV.

    Raises:
        InputUnavailable: Naming the first missing directory or file.
    """
    path = Path(path)
    if not path.is_dir():
        raise InputUnavailable(path, "is not a directory")
    for name in SOURCE_FILES:
        file_path = path / name
        if not file_path.is_file():
            raise InputUnavailable(file_path)


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors(include_url=False):
        location = ".".join(str(part) for part in error.get("loc", ()))
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(problems)


def read_csv(path: Path, entity_type: EntityType) -> Iterator[tuple[RowPosition, dict[str, str]]]:
    """Yield ``(position, record)`` for each data row of a CSV file with a header.

    Raises:
        InputUnavailable: If the file cannot be opened or decoded.
        MalformedRow: If a record's column count does not match the header.
    """
    path = Path(path)
    try:
        handle = open(path, encoding="utf-8", newline="")
    except OSError as exc:
        raise InputUnavailable(path, exc.strerror or str(exc)) from exc

    with handle:
        reader = csv.DictReader(handle)
        try:
            for record in reader:
                position = RowPosition(path.name, reader.line_num)
                if None in record:
                    raise MalformedRow(entity_type, position, "more values than header columns")
                missing = [column for column, value in record.items() if value is None]
                if missing:
                    raise MalformedRow(
                        entity_type, position, f"missing values for {', '.join(missing)}"
                    )
                yield position, record
        except csv.Error as exc:
            raise MalformedRow(entity_type, RowPosition(path.name, reader.line_num), str(exc)) from exc
        except UnicodeDecodeError as exc:
            raise InputUnavailable(path, f"is not valid UTF-8 ({exc.reason})") from exc


def load_rows(descriptor: EntityDescriptor, input_dir: Path) -> Iterator[SourceRow]:
    """Yield validated rows for an entity type from all of its source files in order."""
    input_dir = Path(input_dir)
    for source in descriptor.sources:
        count = 0
        for position, record in read_csv(input_dir / source, descriptor.entity_type):
            try:
                row = descriptor.row_model.model_validate(record)
            except ValidationError as exc:
                raise MalformedRow(
                    descriptor.entity_type, position, _format_validation_error(exc)
                ) from exc
            count += 1
            yield SourceRow(position=position, row=row)
        log.debug(
            "source_loaded",
            entity_type=descriptor.entity_type.value,
            source=source,
            rows=count,
        )


__all__ = ["SourceRow", "load_rows", "read_csv", "validate_source_directory"]

"""Run orchestration: every entity type in processing order, one script out."""

from __future__ import annotations

import time
from pathlib import Path

import structlog

from FedoraMigrate.config import Settings
from FedoraMigrate.emitter import RowEmitter, SqlEmitter, open_output
from FedoraMigrate.entities import DESCRIPTORS, PROCESSING_ORDER, EntityType
from FedoraMigrate.errors import MigrationError
from FedoraMigrate.loader import load_rows, validate_source_directory
from FedoraMigrate.metrics import inc_counter, observe_histogram
from FedoraMigrate.processor import EntityProcessor
from FedoraMigrate.registry import IdentifierRegistry
from FedoraMigrate.run_context import MigrationRunContext

log = structlog.get_logger()


def _record_abort(exc: MigrationError, entity_type: EntityType | None = None) -> None:
    inc_counter("migrate.aborted")
    log.error(
        "migrate_aborted",
        entity_type=entity_type.value if entity_type else None,
        error_type=type(exc).__name__,
        error=str(exc),
    )


def run_migration(
    input_dir: Path,
    emitter: RowEmitter,
    registry: IdentifierRegistry | None = None,
) -> MigrationRunContext:
    """Process every entity type and hand each result to ``emitter``.

    A type is fully processed and emitted before the next one starts, so later
    types can resolve references against the sealed slices of earlier ones.

    Args:
        input_dir: Directory holding the Fedora export CSV files.
        emitter: Receives each ``ProcessedEntity`` in processing order.
        registry: Registry to populate; a fresh one by default.

    Returns:
        The run context with every processed type recorded.

    Raises:
        MigrationError: On the first fatal error; nothing after it is emitted.
    """
    context = MigrationRunContext(registry=registry or IdentifierRegistry())
    start = time.perf_counter()
    current: EntityType | None = None
    try:
        for entity_type in PROCESSING_ORDER:
            current = entity_type
            descriptor = DESCRIPTORS[entity_type]
            processed = EntityProcessor(descriptor, context.registry).process(
                load_rows(descriptor, input_dir)
            )
            emitter.emit(processed)
            context.record(processed)
    except MigrationError as exc:
        _record_abort(exc, current)
        raise

    context.duration_ms = int((time.perf_counter() - start) * 1000)
    observe_histogram("migrate.duration_ms", context.duration_ms)
    log.info(
        "migrate_complete",
        counts=context.summary_counts(),
        map_digest=context.map_digest(),
        duration_ms=context.duration_ms,
    )
    return context


def generate_sql(
    input_dir: Path,
    output_dir: Path,
    settings: Settings | None = None,
) -> tuple[MigrationRunContext, Path]:
    """Write the complete migration script to ``output_dir``.

    The script only appears at ``output_dir / settings.output_filename`` once
    every entity type succeeded.

    Returns:
        The run context and the path of the written script.
    """
    settings = settings or Settings()
    input_dir = Path(input_dir)
    output_path = Path(output_dir) / settings.output_filename

    # run_migration records its own aborts; everything around it is recorded here.
    in_run = False
    try:
        validate_source_directory(input_dir)
        with open_output(output_path) as handle:
            emitter = SqlEmitter(handle, settings)
            emitter.write_preamble()
            in_run = True
            context = run_migration(input_dir, emitter)
            in_run = False
    except MigrationError as exc:
        if not in_run:
            _record_abort(exc)
        raise
    log.info("script_written", path=str(output_path), statements=emitter.statements_written)
    return context, output_path


__all__ = ["generate_sql", "run_migration"]

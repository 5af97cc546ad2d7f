"""
Command line for generating the Drupal migration script.

Examples:
  fedora-migrate generate ./export ./out
  fedora-migrate generate ./export ./out --output-filename site.sql --langcode fr
  fedora-migrate validate ./export
  fedora-migrate hash vcu:38191 JPG
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn

import click

from FedoraMigrate.config import load_settings
from FedoraMigrate.errors import MigrationError
from FedoraMigrate.loader import validate_source_directory
from FedoraMigrate.logging import setup_logging
from FedoraMigrate.metrics import get_counters
from FedoraMigrate.migrate import generate_sql
from FedoraMigrate.php_serialize import content_hash, serialize

_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "NONE"], case_sensitive=False)


def _fail(exc: MigrationError) -> NoReturn:
    click.echo(click.style(f"ERROR: {exc}", fg="red", bold=True), err=True)
    raise SystemExit(1)


@click.group(name="fedora-migrate")
def app() -> None:
    """Convert a Fedora 3 CSV export into a MySQL script for Drupal."""


@app.command()
@click.argument("input_dir", type=click.Path(path_type=Path))
@click.argument("output_dir", type=click.Path(path_type=Path))
@click.option("--output-filename", default=None, help="Script file name (default migrate.sql).")
@click.option("--langcode", default=None, help="Drupal langcode for created entities.")
@click.option("--log-level", type=_LEVELS, default=None, help="Overall and console log level.")
def generate(
    input_dir: Path,
    output_dir: Path,
    output_filename: str | None,
    langcode: str | None,
    log_level: str | None,
) -> None:
    """Write the migration script for INPUT_DIR into OUTPUT_DIR."""
    level = log_level.upper() if log_level else None
    settings = load_settings(
        output_filename=output_filename,
        langcode=langcode,
        logging_level=level,
        logging_console=level,
    )
    setup_logging(settings)

    try:
        context, path = generate_sql(input_dir, output_dir, settings)
    except MigrationError as exc:
        _fail(exc)

    summary = context.summary()
    summary["output"] = str(path)
    summary["metrics"] = get_counters()
    click.echo(json.dumps(summary, indent=2))


@app.command()
@click.argument("input_dir", type=click.Path(path_type=Path))
def validate(input_dir: Path) -> None:
    """Check that INPUT_DIR holds every export CSV."""
    try:
        validate_source_directory(input_dir)
    except MigrationError as exc:
        _fail(exc)
    click.echo(f"{input_dir}: ok")


@app.command(name="hash")
@click.argument("components", nargs=-1, required=True)
def hash_command(components: tuple[str, ...]) -> None:
    """Print the serialized form and source key of COMPONENTS."""
    data = serialize(list(components))
    click.echo(data.decode("utf-8"))
    click.echo(content_hash(data))


def main() -> None:  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()

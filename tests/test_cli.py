import json
from pathlib import Path

from click.testing import CliRunner

from FedoraMigrate.cli import app


def test_generate_prints_summary(export_dir: Path, tmp_path: Path):
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    result = CliRunner().invoke(
        app,
        ["generate", str(export_dir), str(out_dir), "--output-filename", "x.sql", "--log-level", "NONE"],
    )
    assert result.exit_code == 0, result.output
    summary = json.loads(result.stdout)
    assert summary["output"] == str(out_dir / "x.sql")
    assert summary["counts"]["user"] == 3
    assert len(summary["map_digest"]) == 64
    assert (out_dir / "x.sql").exists()
    assert summary["metrics"]["migrate.rows.node"] == 1


def test_generate_exit_code_on_error(tmp_path: Path):
    result = CliRunner().invoke(
        app, ["generate", str(tmp_path / "missing"), str(tmp_path), "--log-level", "NONE"]
    )
    assert result.exit_code == 1
    assert "ERROR" in result.stderr


def test_validate(export_dir: Path):
    result = CliRunner().invoke(app, ["validate", str(export_dir)])
    assert result.exit_code == 0
    assert "ok" in result.stdout

    (export_dir / "nodes.csv").unlink()
    result = CliRunner().invoke(app, ["validate", str(export_dir)])
    assert result.exit_code == 1
    assert "nodes.csv" in result.stderr


def test_hash_command():
    result = CliRunner().invoke(app, ["hash", "vcu:38191", "JPG"])
    assert result.exit_code == 0
    assert result.stdout.splitlines() == [
        'a:2:{i:0;s:9:"vcu:38191";i:1;s:3:"JPG";}',
        "000004fd2f49c175d5642673755c3ee43f90b5eebad2694ac52eda44496c611f",
    ]


def test_hash_requires_components():
    result = CliRunner().invoke(app, ["hash"])
    assert result.exit_code != 0

# tests/conftest.py

import csv
from pathlib import Path

import pytest

from FedoraMigrate.metrics import reset_counters

HEADERS = {
    "users.csv": ["name", "pass", "mail", "status", "timezone", "language"],
    "files.csv": [
        "pid", "dsid", "version", "created_date", "mime_type",
        "name", "path", "user", "sha1", "size",
    ],
    "media.csv": [
        "pid", "dsid", "version", "bundle", "created_date",
        "file_size", "label", "mime_type", "name", "user",
    ],
    "media_revisions.csv": [
        "pid", "dsid", "version", "bundle", "created_date",
        "file_size", "label", "mime_type", "name", "user",
    ],
    "nodes.csv": [
        "pid", "created_date", "label", "weight", "model",
        "modified_date", "state", "user", "display_hint", "parents",
    ],
}


def user(name, **overrides):
    row = {
        "name": name,
        "pass": "x",
        "mail": f"{name}@example.org",
        "status": "1",
        "timezone": "UTC",
        "language": "en",
    }
    row.update(overrides)
    return row


def file_row(pid, dsid, version, user="admin", **overrides):
    row = {
        "pid": pid,
        "dsid": dsid,
        "version": version,
        "created_date": "1500000000",
        "mime_type": "image/jpeg",
        "name": f"{dsid}.jpg",
        "path": f"fedora://{pid}/{dsid}/{version}",
        "user": user,
        "sha1": "da39a3ee5e6b4b0d3255bfef95601890afd80709",
        "size": "1024",
    }
    row.update(overrides)
    return row


def media_row(pid, dsid, version, user="admin", **overrides):
    row = {
        "pid": pid,
        "dsid": dsid,
        "version": version,
        "bundle": "image",
        "created_date": "1500000000",
        "file_size": "1024",
        "label": f"{pid} {dsid}",
        "mime_type": "image/jpeg",
        "name": f"{dsid}.jpg",
        "user": user,
    }
    row.update(overrides)
    return row


def node_row(pid, user="admin", **overrides):
    row = {
        "pid": pid,
        "created_date": "1500000000",
        "label": f"Object {pid}",
        "weight": "0",
        "model": "islandora:sp_basic_image",
        "modified_date": "1600000000",
        "state": "Active",
        "user": user,
        "display_hint": "",
        "parents": "",
    }
    row.update(overrides)
    return row


def write_csv(path: Path, rows, header=None):
    name = path.name
    header = header or HEADERS[name]
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=header)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return path


def write_export(directory: Path, **tables):
    """Write all five export CSVs; tables not given are header-only."""
    directory.mkdir(parents=True, exist_ok=True)
    for name in HEADERS:
        key = name.removesuffix(".csv")
        write_csv(directory / name, tables.get(key, []))
    return directory


@pytest.fixture(autouse=True)
def _reset_metrics():
    reset_counters()
    yield
    reset_counters()


@pytest.fixture
def export_dir(tmp_path: Path) -> Path:
    """A small consistent export: two users plus admin, one object with a revised datastream."""
    return write_export(
        tmp_path / "export",
        users=[user("admin"), user("alice"), user("bob")],
        files=[
            file_row("vcu:1", "OBJ", "OBJ.0", user="alice"),
            file_row("vcu:1", "OBJ", "OBJ.1", user="bob"),
            file_row("vcu:1", "TN", "TN.0"),
        ],
        media=[
            media_row("vcu:1", "OBJ", "OBJ.0", user="alice"),
            media_row("vcu:1", "TN", "TN.0"),
        ],
        media_revisions=[media_row("vcu:1", "OBJ", "OBJ.1", user="bob")],
        nodes=[node_row("vcu:1", user="alice", label="It's 100% \"quoted\"")],
    )

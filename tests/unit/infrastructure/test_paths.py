"""Tests for data path helpers: resolution, ensure_file, atomic_write, traversal guard."""

from pathlib import Path

import pytest

from backoffice.infrastructure.storage.paths import (
    PROJECT_ROOT,
    PathTraversalError,
    atomic_write,
    ensure_file,
    resolve_data_path,
    resolve_document_path,
)


def test_resolve_data_path_relative_uses_project_root():
    assert resolve_data_path("./data/users.json") == (PROJECT_ROOT / "data" / "users.json").resolve()


def test_resolve_data_path_absolute_passes_through(tmp_path: Path):
    target = tmp_path / "users.json"
    assert resolve_data_path(str(target)) == target


def test_ensure_file_creates_parents_and_default(tmp_path: Path):
    path = tmp_path / "nested" / "deeper" / "store.json"
    ensure_file(path, b"[]")
    assert path.read_bytes() == b"[]"


def test_ensure_file_never_overwrites(tmp_path: Path):
    path = tmp_path / "store.json"
    path.write_bytes(b'["kept"]')
    ensure_file(path, b"[]")
    assert path.read_bytes() == b'["kept"]'


def test_atomic_write_replaces_content_and_leaves_no_temp_files(tmp_path: Path):
    path = tmp_path / "store.json"
    path.write_bytes(b"old")
    atomic_write(path, b"new")
    assert path.read_bytes() == b"new"
    assert [p.name for p in tmp_path.iterdir()] == ["store.json"]


def test_atomic_write_failure_removes_temp_file(tmp_path: Path, monkeypatch):
    path = tmp_path / "store.json"
    path.write_bytes(b"old")

    def _fail(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("backoffice.infrastructure.storage.paths.os.replace", _fail)
    with pytest.raises(OSError, match="disk full"):
        atomic_write(path, b"new")
    assert path.read_bytes() == b"old"
    assert [p.name for p in tmp_path.iterdir()] == ["store.json"]


def test_resolve_document_path_inside_root(tmp_path: Path):
    resolved = resolve_document_path(tmp_path, "projects/p1/test/v1.md")
    assert resolved == (tmp_path / "projects" / "p1" / "test" / "v1.md").resolve()


def test_resolve_document_path_rejects_traversal(tmp_path: Path):
    with pytest.raises(PathTraversalError):
        resolve_document_path(tmp_path, "../outside.md")

"""Tests for idlmeta.toml loading."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from idlmeta.core.manifest import MANIFEST_NAME, ProjectManifest, find_manifest, load_manifest


def _write(directory: Path, text: str) -> Path:
    path = directory / MANIFEST_NAME
    path.write_text(text)
    return path


def test_defaults_without_manifest():
    manifest = load_manifest(None)
    assert manifest.name == "unnamed"
    assert manifest.resolver.max_workers == 4
    assert manifest.logging.level == "WARNING"


def test_full_manifest(tmp_path: Path):
    path = _write(
        tmp_path,
        """
[project]
name = "shop"
sources = ["idl"]

[resolver]
include_dirs = ["idl", "third_party"]
max_workers = 8

[logging]
level = "info"
format = "%(levelname)s %(message)s"
""",
    )
    manifest = load_manifest(path)

    root = tmp_path.resolve()
    assert manifest.name == "shop"
    assert manifest.root == root
    assert manifest.sources == [root / "idl"]
    assert manifest.resolver.include_dirs == [root / "idl", root / "third_party"]
    assert manifest.resolver.max_workers == 8
    assert manifest.logging.level == "INFO"
    assert manifest.logging.format == "%(levelname)s %(message)s"


def test_missing_sections_use_defaults(tmp_path: Path):
    manifest = load_manifest(_write(tmp_path, '[project]\nname = "bare"\n'))
    assert manifest.sources == [tmp_path.resolve() / "."]
    assert manifest.resolver.include_dirs == [tmp_path.resolve() / "."]


def test_max_workers_must_be_positive(tmp_path: Path):
    with pytest.raises(ValueError, match="max_workers"):
        load_manifest(_write(tmp_path, "[resolver]\nmax_workers = 0\n"))


def test_invalid_toml(tmp_path: Path):
    with pytest.raises(tomllib.TOMLDecodeError):
        load_manifest(_write(tmp_path, "[project\n"))


def test_find_manifest_walks_up(tmp_path: Path):
    path = _write(tmp_path, "")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert find_manifest(nested) == path.resolve()


def test_find_manifest_returns_none(tmp_path: Path):
    # tmp_path lives outside any project with a manifest
    assert find_manifest(tmp_path) is None


def test_discover_sources(tmp_path: Path):
    (tmp_path / "idl" / "nested").mkdir(parents=True)
    (tmp_path / "idl" / "a.thrift").write_text("")
    (tmp_path / "idl" / "nested" / "b.thrift").write_text("")
    (tmp_path / "idl" / "notes.txt").write_text("")
    single = tmp_path / "c.thrift"
    single.write_text("")

    manifest = ProjectManifest(sources=[tmp_path / "idl", single, tmp_path / "missing"])
    assert manifest.discover_sources() == sorted(
        [tmp_path / "idl" / "a.thrift", tmp_path / "idl" / "nested" / "b.thrift", single]
    )

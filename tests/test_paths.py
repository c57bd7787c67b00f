"""Tests for vault path <-> object key mapping."""

from __future__ import annotations

import pytest

from vaultsync.sync.paths import PathMapper, normalize_base_directory, normalize_path


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("", ""),
        ("/", ""),
        ("notes", "notes/"),
        ("notes/", "notes/"),
        ("/notes", "notes/"),
        ("//notes//daily", "notes/daily/"),
        ("notes///", "notes/"),
        ("  team/vault  ", "team/vault/"),
    ],
)
def test_normalize_base_directory(raw: str, expected: str):
    assert normalize_base_directory(raw) == expected


def test_normalize_base_directory_is_idempotent():
    once = normalize_base_directory("//a//b")
    assert normalize_base_directory(once) == once


def test_normalize_path_strips_outer_separators():
    assert normalize_path("/notes//a.md/") == "notes/a.md"
    assert normalize_path("notes\\a.md") == "notes/a.md"


def test_mapper_prefixes_and_strips_base_directory():
    mapper = PathMapper.from_base_directory("/base")

    assert mapper.prefix == "base/"
    assert mapper.to_remote_key("notes/a.md") == "base/notes/a.md"
    assert mapper.to_local_path("base/notes/a.md") == "notes/a.md"
    assert mapper.to_local_path(mapper.to_remote_key("x/y/z.md")) == "x/y/z.md"


def test_mapper_with_empty_base_is_identity():
    mapper = PathMapper.from_base_directory("")

    assert mapper.prefix == ""
    assert mapper.to_remote_key("a.md") == "a.md"
    assert mapper.to_local_path("a.md") == "a.md"
    assert mapper.owns("anything")


def test_mapper_owns_only_keys_under_base():
    mapper = PathMapper.from_base_directory("base")

    assert mapper.owns("base/a.md")
    assert not mapper.owns("basement/a.md")
    assert not mapper.owns("other/a.md")

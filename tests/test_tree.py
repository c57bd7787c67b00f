"""Tests for the filesystem-backed local tree."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from vaultsync.sync.exceptions import LocalIOError
from vaultsync.sync.tree import FilesystemTree


def _write(root: Path, rel: str, text: str = "x") -> Path:
    target = root / rel
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    return target


def test_list_files_reports_documents_in_sorted_order(tmp_path: Path):
    _write(tmp_path, "b.md")
    _write(tmp_path, "a/z.md")
    _write(tmp_path, "a/image.png")
    _write(tmp_path, ".obsidian/workspace.md")
    _write(tmp_path, ".vaultsync/remote/objects/a.md")
    _write(tmp_path, ".hidden.md")
    tree = FilesystemTree(tmp_path)

    files = asyncio.run(tree.list_files())

    assert [f.path for f in files] == ["a/z.md", "b.md"]
    assert all(f.mtime > 0 and f.size == 1 for f in files)


def test_extensions_are_configurable(tmp_path: Path):
    _write(tmp_path, "a.md")
    _write(tmp_path, "b.TXT")
    tree = FilesystemTree(tmp_path, extensions=(".md", ".txt"))

    assert [f.path for f in asyncio.run(tree.list_files())] == ["a.md", "b.TXT"]
    assert tree.is_document("notes/c.txt")
    assert not tree.is_document("notes/c.pdf")


def test_create_file_with_mtime(tmp_path: Path):
    tree = FilesystemTree(tmp_path)
    asyncio.run(tree.create_folder("notes"))

    asyncio.run(tree.create_file("notes/a.md", b"hello", mtime=1_700_000_000_123))

    local = asyncio.run(tree.get_file("notes/a.md"))
    assert local.mtime == 1_700_000_000_123
    assert asyncio.run(tree.read_file("notes/a.md")) == b"hello"


def test_create_file_refuses_existing_path(tmp_path: Path):
    _write(tmp_path, "a.md")
    tree = FilesystemTree(tmp_path)

    with pytest.raises(LocalIOError):
        asyncio.run(tree.create_file("a.md", b"other"))


def test_overwrite_requires_existing_file(tmp_path: Path):
    tree = FilesystemTree(tmp_path)

    with pytest.raises(LocalIOError):
        asyncio.run(tree.overwrite_file("missing.md", b"x"))

    _write(tmp_path, "a.md", "old")
    asyncio.run(tree.overwrite_file("a.md", b"new", mtime=5_000))
    assert (tmp_path / "a.md").read_text(encoding="utf-8") == "new"
    assert asyncio.run(tree.get_file("a.md")).mtime == 5_000


def test_set_mtime_and_delete(tmp_path: Path):
    _write(tmp_path, "a.md")
    tree = FilesystemTree(tmp_path)

    asyncio.run(tree.set_mtime("a.md", 123_456))
    assert asyncio.run(tree.get_file("a.md")).mtime == 123_456

    asyncio.run(tree.delete_file("a.md"))
    assert not asyncio.run(tree.path_exists("a.md"))
    assert asyncio.run(tree.get_file("a.md")) is None


def test_folders(tmp_path: Path):
    tree = FilesystemTree(tmp_path)

    asyncio.run(tree.create_folder("notes"))
    asyncio.run(tree.create_folder("notes"))

    assert asyncio.run(tree.is_folder("notes"))
    assert asyncio.run(tree.get_file("notes")) is None

    _write(tmp_path, "blocker")
    with pytest.raises(LocalIOError):
        asyncio.run(tree.create_folder("blocker"))


@pytest.mark.parametrize("bad", ["/etc/passwd", "../outside.md", "notes/../../x.md", ""])
def test_resolve_rejects_paths_outside_the_vault(tmp_path: Path, bad: str):
    tree = FilesystemTree(tmp_path)
    with pytest.raises(LocalIOError):
        tree.resolve(bad)

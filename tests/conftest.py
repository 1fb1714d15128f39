"""Shared test fixtures for docpush."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from docpush.storage.base import ListResult, StorageEntry, StorageResult
from docpush.sync.digest import compute_digest

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class FakeStorage:
    """In-memory storage backend with per-path failure injection."""

    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects: dict[str, bytes] = dict(objects or {})
        self.fail_uploads: set[str] = set()
        self.fail_remove: str | None = None
        self.fail_list: str | None = None
        self.uploaded: list[str] = []
        self.remove_calls: list[list[str]] = []

    def upload(self, remote_path: str, data: bytes, *, overwrite: bool = True) -> StorageResult:
        if remote_path in self.fail_uploads:
            return StorageResult(error="mock error")
        if not overwrite and remote_path in self.objects:
            return StorageResult(error="The resource already exists")
        self.objects[remote_path] = data
        self.uploaded.append(remote_path)
        return StorageResult()

    def remove(self, remote_paths: Sequence[str]) -> StorageResult:
        self.remove_calls.append(list(remote_paths))
        if self.fail_remove is not None:
            return StorageResult(error=self.fail_remove)
        for path in remote_paths:
            self.objects.pop(path, None)
        return StorageResult()

    def list(self, prefix: str) -> ListResult:
        if self.fail_list is not None:
            return ListResult(error=self.fail_list)
        folder = f"{prefix.strip('/')}/" if prefix.strip("/") else ""
        entries: dict[str, StorageEntry] = {}
        for key, data in self.objects.items():
            if not key.startswith(folder):
                continue
            rest = key[len(folder) :]
            head, sep, _ = rest.partition("/")
            if sep:
                entries.setdefault(head, StorageEntry(name=head))
            else:
                entries[head] = StorageEntry(name=head, digest=compute_digest(data))
        return ListResult(entries=list(entries.values()))

    def digests(self) -> dict[str, str]:
        return {key: compute_digest(data) for key, data in self.objects.items()}


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def docs_tree(tmp_path: Path) -> Path:
    """Create a small articles tree.

    docs/
      meta.yml
      00-intro.md
      01-Getting Started.md
      02-guides/00-install.md
      02-guides/notes.txt
      03-empty/
    """
    docs = tmp_path / "docs"
    (docs / "02-guides").mkdir(parents=True)
    (docs / "03-empty").mkdir()
    (docs / "meta.yml").write_text("title: Demo Project\n")
    (docs / "00-intro.md").write_text("# Intro\n")
    (docs / "01-Getting Started.md").write_text("# Getting started\n")
    (docs / "02-guides" / "00-install.md").write_text("# Install\n")
    (docs / "02-guides" / "notes.txt").write_text("not a doc\n")
    return docs

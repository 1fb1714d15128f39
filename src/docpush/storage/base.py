"""Storage backend interface consumed by the reconciler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass(frozen=True)
class StorageResult:
    """Outcome of a single storage call; ``error`` is None on success."""

    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class StorageEntry:
    """One listing entry.  A directory marker carries no digest."""

    name: str
    digest: str | None = None

    @property
    def is_directory(self) -> bool:
        return self.digest is None


@dataclass(frozen=True)
class ListResult:
    entries: list[StorageEntry] = field(default_factory=list)
    error: str | None = None


class StorageBackend(Protocol):
    """Object storage as seen by the sync core.

    Implementations report failures through the returned result objects
    and never raise for a single failed call.
    """

    def upload(self, remote_path: str, data: bytes, *, overwrite: bool = True) -> StorageResult:
        ...

    def remove(self, remote_paths: Sequence[str]) -> StorageResult:
        ...

    def list(self, prefix: str) -> ListResult:
        ...

"""Reconciler: diff → upload → delete → prune, against a storage backend."""

from __future__ import annotations

import logging
import posixpath
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from docpush.sync.diff import PathDiff, RemoteFileMetadata, diff_paths, fold_failures_into_removals
from docpush.sync.tree import prune_tree

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from docpush.storage.base import StorageBackend
    from docpush.sync.tree import Root

logger = logging.getLogger(__name__)


class RemoteListingError(Exception):
    """Raised when the remote metadata snapshot cannot be listed."""


class UploadFailedError(Exception):
    """Raised when every upload of a non-empty batch failed."""


@dataclass
class UploadOutcome:
    """Per-path upload results (remote paths)."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def failed_paths(self) -> set[str]:
        return set(self.failed)


@dataclass
class SyncResult:
    """Everything a reconcile run produced."""

    diff: PathDiff
    outcome: UploadOutcome
    removed: list[str]
    remove_ok: bool
    articles: Root


def fetch_remote_files_metadata(
    storage: StorageBackend,
    prefixes: str | Iterable[str],
) -> RemoteFileMetadata:
    """List everything stored under *prefixes* as ``{path: digest}``.

    Directory markers are descended into.

    Raises
    ------
    RemoteListingError
        If any listing call fails.
    """
    if isinstance(prefixes, str):
        prefixes = [prefixes]

    metadata: RemoteFileMetadata = {}

    def collect(dir_path: str) -> None:
        result = storage.list(dir_path)
        if result.error is not None:
            msg = f"Failed to list storage files: {result.error}"
            raise RemoteListingError(msg)
        for entry in result.entries:
            full_path = posixpath.join(dir_path, entry.name)
            if entry.digest is None:
                collect(full_path)
            else:
                metadata[full_path] = entry.digest

    for prefix in prefixes:
        collect(prefix.strip("/"))

    logger.info("Found %d files in storage", len(metadata))
    return metadata


def upload_files(
    storage: StorageBackend,
    upload: Mapping[str, str],
    *,
    max_workers: int | None = None,
) -> UploadOutcome:
    """Upload every ``remote → local`` pair concurrently.

    Single failures are logged and collected.

    Raises
    ------
    UploadFailedError
        If *upload* is non-empty and no upload succeeded.
    """
    if not upload:
        logger.info("No files to upload")
        return UploadOutcome()

    def attempt(item: tuple[str, str]) -> bool:
        remote_path, local_path = item
        try:
            data = Path(local_path).read_bytes()
        except OSError as exc:
            logger.warning("Failed to upload %s: %s", local_path, exc)
            return False
        result = storage.upload(remote_path, data, overwrite=True)
        if result.error is not None:
            logger.warning("Failed to upload %s: %s", local_path, result.error)
            return False
        return True

    items = list(upload.items())
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        flags = list(executor.map(attempt, items))

    outcome = UploadOutcome()
    for (remote_path, _), ok in zip(items, flags):
        (outcome.succeeded if ok else outcome.failed).append(remote_path)

    logger.info(
        "File uploads complete: %d succeeded, %d failed",
        outcome.success_count,
        outcome.failure_count,
    )
    if not outcome.success_count:
        msg = "All file uploads failed"
        raise UploadFailedError(msg)
    return outcome


def remove_files(storage: StorageBackend, paths: Sequence[str]) -> bool:
    """Delete *paths*; a failure is logged, not raised."""
    result = storage.remove(list(paths))
    if result.error is not None:
        logger.warning("Failed to remove files: %s", result.error)
        return False
    logger.info("Deleted %d files", len(paths))
    return True


class Reconciler:
    """Bring storage in line with the local tree and prune the document map.

    Args:
        storage: Backend to upload to and delete from.
        max_workers: Thread-pool size for hashing and uploads.
    """

    def __init__(self, storage: StorageBackend, *, max_workers: int | None = None) -> None:
        self.storage = storage
        self.max_workers = max_workers

    def plan(
        self,
        local_paths: Mapping[str, str],
        remote_metadata: Mapping[str, str],
    ) -> PathDiff:
        return diff_paths(local_paths, remote_metadata, max_workers=self.max_workers)

    def reconcile(
        self,
        local_paths: Mapping[str, str],
        remote_metadata: Mapping[str, str],
        articles: Root,
        *,
        article_suffix: str = ".md",
    ) -> SyncResult:
        """Run diff, upload, delete and prune.

        *local_paths* holds every local file to keep in storage (articles
        and assets), keyed by storage path.  Article storage paths are the
        article's ``remote_path`` plus *article_suffix*.
        """
        diff = self.plan(local_paths, remote_metadata)
        outcome = upload_files(self.storage, diff.upload, max_workers=self.max_workers)

        removed = fold_failures_into_removals(diff.remove, outcome.failed)
        remove_ok = True
        if removed:
            remove_ok = remove_files(self.storage, removed)
        else:
            logger.info("No files to remove")

        pruned = prune_tree(articles, removed, suffix=article_suffix)
        return SyncResult(
            diff=diff,
            outcome=outcome,
            removed=removed,
            remove_ok=remove_ok,
            articles=pruned,
        )

"""Diff engine: compare local paths against the remote metadata snapshot."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from docpush.sync.digest import has_file_changed

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)

# remote path -> ETag (quotes stripped)
RemoteFileMetadata = dict[str, str]


@dataclass(frozen=True)
class PathDiff:
    """Paths to upload (remote → local) and remote paths to delete."""

    upload: dict[str, str] = field(default_factory=dict)
    remove: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.upload or self.remove)


def diff_paths(
    local_paths: Mapping[str, str],
    remote_metadata: Mapping[str, str],
    *,
    max_workers: int | None = None,
) -> PathDiff:
    """Compute which local files must be uploaded and which remote ones removed.

    A local path is uploaded when :func:`has_file_changed` reports it as new
    or changed against its remote digest; digests are computed concurrently.
    Every remote path missing from *local_paths* is removed, in the order
    the remote snapshot lists them.
    """
    items = list(local_paths.items())

    def check(item: tuple[str, str]) -> bool:
        remote_path, local_path = item
        return has_file_changed(local_path, remote_metadata.get(remote_path))

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        changed = list(executor.map(check, items))

    upload = {remote: local for (remote, local), flag in zip(items, changed) if flag}
    remove = [remote for remote in remote_metadata if remote not in local_paths]

    logger.info(
        "Diff complete: %d to upload, %d unchanged, %d to remove",
        len(upload),
        len(items) - len(upload),
        len(remove),
    )
    return PathDiff(upload=upload, remove=remove)


def fold_failures_into_removals(remove: Iterable[str], failed: Iterable[str]) -> list[str]:
    """Append failed upload paths to *remove*, keeping order and skipping repeats.

    A path whose upload failed is deleted too, so storage never keeps a
    stale object the persisted document map no longer references.
    """
    folded = list(remove)
    seen = set(folded)
    for path in failed:
        if path not in seen:
            folded.append(path)
            seen.add(path)
    return folded

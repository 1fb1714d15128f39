"""Sync core: digests, name normalization, tree walking, diffing, reconciling."""

from docpush.sync.diff import PathDiff, RemoteFileMetadata, diff_paths, fold_failures_into_removals
from docpush.sync.digest import (
    CHUNK_SIZE,
    chunk_count,
    compute_digest,
    expected_chunk_count,
    file_digest,
    has_file_changed,
    normalize_etag,
)
from docpush.sync.naming import (
    InvalidNameError,
    NormalizedName,
    SlugTracker,
    kebab_case,
    process_name,
    process_project_name,
    slug_to_title,
)
from docpush.sync.reconciler import (
    Reconciler,
    RemoteListingError,
    SyncResult,
    UploadFailedError,
    UploadOutcome,
    fetch_remote_files_metadata,
    remove_files,
    upload_files,
)
from docpush.sync.tree import (
    Article,
    Directory,
    Root,
    article_paths,
    collect_asset_paths,
    generate_article_map,
    iter_articles,
    prune_tree,
)

__all__ = [
    "CHUNK_SIZE",
    "Article",
    "Directory",
    "InvalidNameError",
    "NormalizedName",
    "PathDiff",
    "Reconciler",
    "RemoteFileMetadata",
    "RemoteListingError",
    "Root",
    "SlugTracker",
    "SyncResult",
    "UploadFailedError",
    "UploadOutcome",
    "article_paths",
    "chunk_count",
    "collect_asset_paths",
    "compute_digest",
    "diff_paths",
    "expected_chunk_count",
    "fetch_remote_files_metadata",
    "file_digest",
    "fold_failures_into_removals",
    "generate_article_map",
    "has_file_changed",
    "iter_articles",
    "kebab_case",
    "normalize_etag",
    "process_name",
    "process_project_name",
    "prune_tree",
    "remove_files",
    "slug_to_title",
    "upload_files",
]

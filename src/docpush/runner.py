"""Run orchestration: one sync job from configuration to metadata record."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from docpush.meta.metadata import build_database_entry, load_metadata
from docpush.meta.repository import (
    RepositoryDetails,
    RepositoryError,
    fetch_repository_details,
)
from docpush.sync.naming import process_project_name
from docpush.sync.reconciler import Reconciler, SyncResult, fetch_remote_files_metadata
from docpush.sync.tree import article_paths, collect_asset_paths, generate_article_map

if TYPE_CHECKING:
    from docpush.config import SyncConfig
    from docpush.meta.metadata import ProjectMetadata
    from docpush.meta.records import RecordStore
    from docpush.storage.base import StorageBackend
    from docpush.sync.diff import PathDiff
    from docpush.sync.tree import Root

logger = logging.getLogger(__name__)

ARTICLE_EXTENSION = ".md"

RepoFetcher = Callable[["SyncConfig"], RepositoryDetails]


@dataclass
class LocalState:
    """Everything derived from the local tree before touching storage."""

    slug: str
    title: str
    metadata: ProjectMetadata
    repo_details: RepositoryDetails
    articles: Root
    local_paths: dict[str, str] = field(default_factory=dict)
    prefixes: list[str] = field(default_factory=list)


@dataclass
class RunReport:
    """Outcome of :func:`run_sync`."""

    slug: str
    title: str
    result: SyncResult
    entry: dict[str, Any] | None = None


def default_repo_fetcher(config: SyncConfig) -> RepositoryDetails:
    """Fetch repository details.

    Without a repository, or when the host cannot be reached, only the
    name is known and the sync goes on with it.
    """
    if not config.repository:
        logger.info("No repository configured, skipping repository details")
        return RepositoryDetails(title=config.articles_path.resolve().name)
    try:
        return fetch_repository_details(config.repository, config.github_token)
    except RepositoryError as exc:
        logger.warning("Could not retrieve repository details: %s", exc)
        return RepositoryDetails(title=config.repository.partition("/")[2] or config.repository)


def prepare_local_state(
    config: SyncConfig,
    repo_fetcher: RepoFetcher = default_repo_fetcher,
) -> LocalState:
    """Load metadata, resolve the project name and walk the local trees."""
    metadata = load_metadata(config.meta_path, config.column_mappings)
    repo_details = repo_fetcher(config)
    name = process_project_name(metadata, repo_details)

    articles_base = posixpath.join(name.slug, config.storage_articles_dir.strip("/"))
    exclude = [config.meta_path] if config.meta_path is not None else []
    articles = generate_article_map(
        config.articles_path,
        base_path=articles_base,
        exclude=exclude,
        trim_prefix=config.trim_prefixes,
        slug_scope=config.slug_scope,
        extension=ARTICLE_EXTENSION,
    )
    local_paths = article_paths(articles, suffix=ARTICLE_EXTENSION)
    prefixes = [articles_base]

    if config.assets_path is not None and config.storage_assets_dir:
        assets_base = posixpath.join(name.slug, config.storage_assets_dir.strip("/"))
        local_paths.update(collect_asset_paths(config.assets_path, assets_base))
        prefixes.append(assets_base)

    logger.info("Found %d local files for project %s", len(local_paths), name.slug)
    return LocalState(
        slug=name.slug,
        title=name.title,
        metadata=metadata,
        repo_details=repo_details,
        articles=articles,
        local_paths=local_paths,
        prefixes=prefixes,
    )


def plan_sync(
    config: SyncConfig,
    storage: StorageBackend,
    *,
    repo_fetcher: RepoFetcher = default_repo_fetcher,
) -> tuple[LocalState, PathDiff]:
    """Compute the upload/remove plan without changing anything."""
    state = prepare_local_state(config, repo_fetcher)
    remote = fetch_remote_files_metadata(storage, state.prefixes)
    diff = Reconciler(storage, max_workers=config.max_workers).plan(state.local_paths, remote)
    return state, diff


def run_sync(
    config: SyncConfig,
    storage: StorageBackend,
    *,
    record_store: RecordStore | None = None,
    repo_fetcher: RepoFetcher = default_repo_fetcher,
) -> RunReport:
    """Sync the local documentation to storage and upsert the metadata record.

    The record is only written when *record_store* is given; fatal errors
    from any step propagate and stop the run.
    """
    state = prepare_local_state(config, repo_fetcher)
    remote = fetch_remote_files_metadata(storage, state.prefixes)

    reconciler = Reconciler(storage, max_workers=config.max_workers)
    result = reconciler.reconcile(
        state.local_paths,
        remote,
        state.articles,
        article_suffix=ARTICLE_EXTENSION,
    )
    report = RunReport(slug=state.slug, title=state.title, result=result)

    if record_store is None:
        logger.info("Upload completed successfully (files only)")
        return report

    logger.info("Uploading metadata for project: %s", state.slug)
    record_store.create_schema()
    existing = record_store.fetch(state.slug)
    report.entry = build_database_entry(
        state.title,
        state.slug,
        result.articles,
        state.metadata,
        state.repo_details,
        existing,
        config.column_mappings,
    )
    record_store.upsert(report.entry)
    logger.info("Upload completed successfully")
    return report

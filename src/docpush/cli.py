"""docpush CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import click
from botocore.exceptions import BotoCoreError

from docpush import __version__
from docpush.config import DEFAULT_CONFIG_FILE, ConfigError, load_config
from docpush.meta.metadata import MetadataError
from docpush.meta.records import RecordStore, RecordStoreError, open_db
from docpush.storage.s3 import S3Storage, create_s3_client
from docpush.sync.naming import InvalidNameError
from docpush.sync.reconciler import RemoteListingError, UploadFailedError
from docpush.sync.tree import iter_articles

if TYPE_CHECKING:
    from docpush.config import SyncConfig
    from docpush.runner import RunReport
    from docpush.sync.diff import PathDiff

# Errors that abort a run with a readable message.
_FATAL_ERRORS = (
    BotoCoreError,
    ConfigError,
    InvalidNameError,
    MetadataError,
    OSError,
    RecordStoreError,
    RemoteListingError,
    UploadFailedError,
)


@click.group()
@click.version_option(version=__version__, prog_name="docpush")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """docpush - sync a documentation tree to object storage."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _sync_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by ``sync`` and ``diff``."""
    options = [
        click.option(
            "--config",
            "config_path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=DEFAULT_CONFIG_FILE,
            show_default=True,
            help="YAML config file.",
        ),
        click.option(
            "--articles-path",
            type=click.Path(path_type=Path),
            default=None,
            help="Local Markdown articles directory.",
        ),
        click.option(
            "--assets-path",
            type=click.Path(path_type=Path),
            default=None,
            help="Local static assets directory.",
        ),
        click.option(
            "--meta-path",
            type=click.Path(path_type=Path),
            default=None,
            help="Project metadata file (YAML or JSON).",
        ),
        click.option("--bucket", "storage_bucket", default=None, help="Storage bucket."),
        click.option("--meta-table", default=None, help="Metadata record table."),
        click.option(
            "--trim-prefixes/--no-trim-prefixes",
            default=None,
            help="Strip NN- ordering prefixes from names.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_storage(config: SyncConfig) -> S3Storage:
    client = create_s3_client(config.aws_profile, config.aws_region, config.endpoint_url)
    return S3Storage(config.storage_bucket, client=client)


def _fail(exc: Exception) -> None:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


def _render_report(report: RunReport) -> None:
    from rich.console import Console
    from rich.table import Table

    result = report.result
    console = Console()
    table = Table(title=f"docpush: {report.title} ({report.slug})")
    table.add_column("Step", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Uploaded", str(result.outcome.success_count))
    table.add_row("Failed uploads", str(result.outcome.failure_count))
    table.add_row("Articles in map", str(sum(1 for _ in iter_articles(result.articles))))
    table.add_row("Removed", str(len(result.removed)))
    console.print(table)

    for path in result.outcome.failed:
        console.print(f"[yellow]failed:[/yellow] {path}")
    if not result.remove_ok:
        console.print("[yellow]Warning: some remote files could not be removed.[/yellow]")
    if report.entry is not None:
        console.print(f"[green]Metadata record updated for {report.slug}[/green]")


@main.command()
@_sync_options
def sync(*, config_path: Path, **overrides: Any) -> None:
    """Upload changed documents, delete stale ones and update the record."""
    from docpush.runner import run_sync

    conn = None
    try:
        config = load_config(config_path, overrides)
        storage = _build_storage(config)
        record_store = None
        if config.meta_table:
            conn = open_db(config.database_path)
            record_store = RecordStore(conn, config.meta_table, config.slug_column)
        report = run_sync(config, storage, record_store=record_store)
    except _FATAL_ERRORS as exc:
        _fail(exc)
        return
    finally:
        if conn is not None:
            conn.close()

    _render_report(report)


def _diff_payload(slug: str, diff: PathDiff) -> dict[str, Any]:
    return {"project": slug, "upload": diff.upload, "remove": diff.remove}


@main.command()
@_sync_options
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
def diff(*, config_path: Path, output_json: bool, **overrides: Any) -> None:
    """Show what ``sync`` would upload and remove, without changing anything."""
    from docpush.runner import plan_sync

    try:
        config = load_config(config_path, overrides)
        state, path_diff = plan_sync(config, _build_storage(config))
    except _FATAL_ERRORS as exc:
        _fail(exc)
        return

    if output_json:
        click.echo(json.dumps(_diff_payload(state.slug, path_diff), indent=2))
        return

    if not path_diff.has_changes:
        click.echo(f"{state.slug}: up to date.")
        return
    for remote_path, local_path in path_diff.upload.items():
        click.echo(f"  + {remote_path}  ({local_path})")
    for remote_path in path_diff.remove:
        click.echo(f"  - {remote_path}")
    click.echo(
        f"{state.slug}: {len(path_diff.upload)} to upload, {len(path_diff.remove)} to remove."
    )

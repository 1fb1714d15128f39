"""Project metadata file loading and metadata-record overlay."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from collections.abc import Mapping

    from docpush.meta.repository import RepositoryDetails
    from docpush.sync.tree import Root

logger = logging.getLogger(__name__)

# Keys generated by docpush; only these may be renamed by column mappings.
GENERATED_KEYS = (
    "slug",
    "title",
    "description",
    "license",
    "source",
    "latest_version",
    "versions",
    "articles",
)

# Mapping a generated key to this drops it from the record.
DROP_COLUMN = "_"


class MetadataError(Exception):
    """Raised when the project metadata file cannot be loaded."""


@dataclass(frozen=True)
class ProjectMetadata:
    """User-supplied project data plus the slug/title read from it."""

    data: dict[str, Any] = field(default_factory=dict)
    slug: str | None = None
    title: str | None = None


def _parse(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in (".yml", ".yaml"):
        return yaml.safe_load(text)
    if suffix == ".json":
        return json.loads(text)
    msg = "Unsupported metadata file type"
    raise ValueError(msg)


def load_metadata(
    meta_path: Path | str | None,
    column_mappings: Mapping[str, str] | None = None,
) -> ProjectMetadata:
    """Load the YAML or JSON metadata file at *meta_path*.

    ``slug`` and ``title`` are read from the columns they are mapped to,
    so a metadata file written against a renamed schema still works.

    Raises
    ------
    MetadataError
        On unsupported extension, read or parse failure, or a non-mapping
        document.
    """
    if not meta_path:
        return ProjectMetadata()

    mappings = column_mappings or {}
    path = Path(meta_path)
    try:
        data = _parse(path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        msg = f"Could not load metadata: {exc}"
        raise MetadataError(msg) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"Could not load metadata: expected a mapping in {path}"
        raise MetadataError(msg)

    def read(key: str) -> str | None:
        value = data.get(mappings.get(key, key))
        return str(value) if value is not None else None

    logger.debug("Loaded metadata from %s (%d keys)", path, len(data))
    return ProjectMetadata(data=data, slug=read("slug"), title=read("title"))


def map_keys(record: Mapping[str, Any], mappings: Mapping[str, str]) -> dict[str, Any]:
    """Rename keys of *record* per *mappings*; keys mapped to ``_`` are dropped."""
    mapped: dict[str, Any] = {}
    for key, value in record.items():
        target = mappings.get(key, key)
        if target == DROP_COLUMN:
            continue
        mapped[target] = value
    return mapped


def build_database_entry(
    title: str,
    slug: str,
    articles: Root,
    metadata: ProjectMetadata,
    repo_details: RepositoryDetails,
    existing_entry: Mapping[str, Any] | None,
    column_mappings: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Merge the metadata record, last write wins, in this order:

    existing record ← repository details ← user metadata ← generated fields.

    Repository details and generated fields go through the column mappings.
    Release tags already on the record are kept and new ones appended.
    """
    mappings = column_mappings or {}
    generated = {"slug": slug, "title": title, "articles": articles.to_dict()}

    entry: dict[str, Any] = dict(existing_entry or {})
    entry.update(map_keys(repo_details.to_dict(), mappings))
    entry.update(metadata.data)
    entry.update(map_keys(generated, mappings))

    versions_key = mappings.get("versions", "versions")
    if versions_key != DROP_COLUMN and versions_key not in metadata.data:
        versions = merge_versions((existing_entry or {}).get(versions_key), repo_details.versions)
        if versions:
            entry[versions_key] = versions
    return entry


def merge_versions(existing: Any, fetched: list[str]) -> list[str]:
    """Known tags in their stored order, followed by newly fetched ones."""
    merged = [str(tag) for tag in existing] if isinstance(existing, list) else []
    merged.extend(tag for tag in fetched if tag not in merged)
    return merged

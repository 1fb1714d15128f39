"""Project metadata: metadata file, repository details and the metadata record."""

from docpush.meta.metadata import (
    GENERATED_KEYS,
    MetadataError,
    ProjectMetadata,
    build_database_entry,
    load_metadata,
    map_keys,
)
from docpush.meta.records import RecordStore, RecordStoreError, open_db
from docpush.meta.repository import RepositoryDetails, RepositoryError, fetch_repository_details

__all__ = [
    "GENERATED_KEYS",
    "MetadataError",
    "ProjectMetadata",
    "RecordStore",
    "RecordStoreError",
    "RepositoryDetails",
    "RepositoryError",
    "build_database_entry",
    "fetch_repository_details",
    "load_metadata",
    "map_keys",
    "open_db",
]

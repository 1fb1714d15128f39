"""Configuration: ``docpush.yml`` plus command-line overrides and environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from docpush.meta.metadata import GENERATED_KEYS
from docpush.sync.tree import SLUG_SCOPES

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "docpush.yml"

# Keys holding local paths, resolved relative to the config file.
_PATH_KEYS = ("articles_path", "assets_path", "meta_path", "database_path")


class ConfigError(ValueError):
    """Raised when the configuration is missing values or inconsistent."""


@dataclass(frozen=True)
class SyncConfig:
    """Validated settings for one sync run."""

    articles_path: Path
    storage_bucket: str
    assets_path: Path | None = None
    meta_path: Path | None = None
    storage_articles_dir: str = "articles"
    storage_assets_dir: str | None = None
    trim_prefixes: bool = True
    slug_scope: str = "directory"
    meta_table: str | None = None
    database_path: Path = Path("docpush.db")
    column_mappings: dict[str, str] = field(default_factory=dict)
    repository: str | None = None
    github_token: str | None = None
    aws_profile: str | None = None
    aws_region: str | None = None
    endpoint_url: str | None = None
    max_workers: int | None = None

    @property
    def slug_column(self) -> str:
        return self.column_mappings.get("slug", "slug")


def parse_column_mappings(raw: Any) -> dict[str, str]:
    """Validate column mappings given as a mapping or a YAML string.

    Only generated keys may be mapped, and every target must be a string.
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        try:
            raw = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            msg = f"Invalid column mappings: {exc}"
            raise ConfigError(msg) from exc
        if raw is None:
            return {}
    if not isinstance(raw, dict):
        msg = "Invalid column mappings: expected a mapping"
        raise ConfigError(msg)

    mappings: dict[str, str] = {}
    for key, value in raw.items():
        if key not in GENERATED_KEYS:
            msg = (
                f"Invalid column name mapping: {key}\n"
                f"Only generated keys can be mapped: {', '.join(GENERATED_KEYS)}"
            )
            raise ConfigError(msg)
        if not isinstance(value, str):
            msg = f"Invalid mapping for column: {key}. Mapping must be string"
            raise ConfigError(msg)
        mappings[key] = value
    return mappings


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Could not read config file {path}: {exc}"
        raise ConfigError(msg) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Config file {path} must contain a mapping"
        raise ConfigError(msg)
    return {str(key).replace("-", "_"): value for key, value in data.items()}


def _require_dir(path: Path) -> None:
    if not path.exists():
        msg = f"Directory does not exist: {path}"
        raise ConfigError(msg)
    if not path.is_dir():
        msg = f"Path is not a directory: {path}"
        raise ConfigError(msg)


def _require_file(path: Path) -> None:
    if not path.exists():
        msg = f"File does not exist: {path}"
        raise ConfigError(msg)
    if not path.is_file():
        msg = f"Path is not a file: {path}"
        raise ConfigError(msg)


def load_config(
    config_path: Path | str | None = None,
    overrides: Mapping[str, Any] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> SyncConfig:
    """Build a :class:`SyncConfig`.

    Values come from the YAML file at *config_path* (when given and present),
    then from non-None *overrides*; ``GITHUB_TOKEN`` and ``GITHUB_REPOSITORY``
    fill in missing credentials.  Relative paths in the file resolve against
    the file's directory.

    Raises
    ------
    ConfigError
        On unknown keys, missing required values or invalid paths.
    """
    environ = os.environ if env is None else env
    raw: dict[str, Any] = {}
    base_dir = Path.cwd()

    if config_path is not None:
        path = Path(config_path)
        if path.is_file():
            raw.update(_read_config_file(path))
            base_dir = path.resolve().parent
        elif str(config_path) != DEFAULT_CONFIG_FILE:
            msg = f"File does not exist: {path}"
            raise ConfigError(msg)

    known = {f.name for f in fields(SyncConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        msg = f"Unknown config keys: {', '.join(unknown)}"
        raise ConfigError(msg)

    for key in _PATH_KEYS:
        if raw.get(key):
            raw[key] = base_dir / Path(raw[key])

    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = Path(value) if key in _PATH_KEYS else value

    raw.setdefault("github_token", environ.get("GITHUB_TOKEN") or None)
    raw.setdefault("repository", environ.get("GITHUB_REPOSITORY") or None)

    for key in ("articles_path", "storage_bucket"):
        if not raw.get(key):
            msg = f"Input '{key}' is required"
            raise ConfigError(msg)

    raw["column_mappings"] = parse_column_mappings(raw.get("column_mappings"))
    for key in ("assets_path", "meta_path", "storage_assets_dir", "meta_table"):
        if not raw.get(key):
            raw[key] = None

    config = SyncConfig(**raw)
    _validate(config)
    logger.debug("Loaded config: bucket=%s articles=%s", config.storage_bucket, config.articles_path)
    return config


def _validate(config: SyncConfig) -> None:
    _require_dir(config.articles_path)
    if config.assets_path is not None:
        _require_dir(config.assets_path)
        if not config.storage_assets_dir:
            msg = "Input 'storage_assets_dir' is required when 'assets_path' is specified"
            raise ConfigError(msg)
    if config.meta_path is not None:
        _require_file(config.meta_path)
    if config.slug_scope not in SLUG_SCOPES:
        msg = f"Invalid slug_scope: {config.slug_scope!r}. Use one of: {', '.join(SLUG_SCOPES)}"
        raise ConfigError(msg)
    if not config.storage_articles_dir.strip("/"):
        msg = "Input 'storage_articles_dir' must not be empty"
        raise ConfigError(msg)
    if config.meta_table and config.slug_column == "_":
        msg = "Column 'slug' cannot be dropped when 'meta_table' is specified"
        raise ConfigError(msg)
    if config.max_workers is not None and config.max_workers < 1:
        msg = "Input 'max_workers' must be at least 1"
        raise ConfigError(msg)

"""Tree walker: build the hierarchical document map from a local directory."""

from __future__ import annotations

import logging
import os
import posixpath
import stat
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

from docpush.sync.naming import SlugTracker, process_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

SLUG_SCOPES = ("directory", "global")


@dataclass(frozen=True)
class Article:
    """A single Markdown document.

    ``local_path`` is cleared once the article is prepared for persistence.
    """

    title: str
    remote_path: str
    local_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": "article", "title": self.title, "path": self.remote_path}


@dataclass(frozen=True)
class Directory:
    """A directory holding at least one article somewhere below it."""

    title: str
    children: tuple[DocumentNode, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "directory",
            "title": self.title,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class Root:
    """Top of the document map."""

    children: tuple[DocumentNode, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"type": "root", "children": [child.to_dict() for child in self.children]}


DocumentNode = Union[Article, Directory]


def _list_dir(path: Path, *, top: bool = False) -> list[str]:
    """Sorted entry names of *path*.

    An unreadable subdirectory counts as empty; an unreadable *top*
    directory raises :class:`OSError`.
    """
    try:
        return sorted(os.listdir(path))
    except OSError as exc:
        if top:
            raise
        logger.warning("Cannot read directory %s, skipping: %s", path, exc)
        return []


def _entry_kind(path: Path) -> str | None:
    """Return ``"dir"``, ``"file"`` or None for links and special files."""
    try:
        mode = path.lstat().st_mode
    except OSError:
        logger.warning("Cannot stat %s, skipping", path)
        return None
    if stat.S_ISDIR(mode):
        return "dir"
    if stat.S_ISREG(mode):
        return "file"
    return None


def generate_article_map(
    root_dir: Path | str,
    *,
    base_path: str = "",
    exclude: Iterable[Path | str] = (),
    trim_prefix: bool = True,
    slug_scope: str = "directory",
    extension: str = ".md",
) -> Root:
    """Walk *root_dir* and return the document map of its Markdown files.

    Parameters
    ----------
    root_dir:
        Local articles directory.
    base_path:
        Remote path every article path is joined onto.
    exclude:
        Full local paths to leave out (e.g. a co-located metadata file).
    trim_prefix:
        Strip ``NN-`` ordering prefixes from names.
    slug_scope:
        ``"directory"`` de-duplicates slugs among siblings only,
        ``"global"`` across the whole walk.
    extension:
        Document extension; other files are ignored.
    """
    if slug_scope not in SLUG_SCOPES:
        msg = f"Unknown slug scope: {slug_scope!r}. Use one of: {', '.join(SLUG_SCOPES)}"
        raise ValueError(msg)

    excluded = {os.path.abspath(p) for p in exclude}
    shared_tracker: SlugTracker | None = {} if slug_scope == "global" else None

    root_path = Path(root_dir)

    def walk(local_dir: Path, remote_dir: str) -> tuple[DocumentNode, ...]:
        tracker: SlugTracker = shared_tracker if shared_tracker is not None else {}
        children: list[DocumentNode] = []

        for name in _list_dir(local_dir, top=local_dir == root_path):
            full_path = local_dir / name
            if os.path.abspath(full_path) in excluded:
                continue

            kind = _entry_kind(full_path)
            if kind is None:
                continue
            if kind == "file" and not name.lower().endswith(extension.lower()):
                continue

            normalized = process_name(
                name,
                trim_prefix=trim_prefix or kind == "dir",
                strip_extension=kind == "file",
                extension=extension,
                tracker=tracker,
            )
            remote_path = posixpath.join(remote_dir, normalized.slug)

            if kind == "dir":
                sub_children = walk(full_path, remote_path)
                if not sub_children:
                    continue
                children.append(Directory(title=normalized.title, children=sub_children))
            else:
                children.append(
                    Article(
                        title=normalized.title,
                        remote_path=remote_path,
                        local_path=str(full_path),
                    )
                )

        return tuple(children)

    return Root(children=walk(root_path, base_path))


def iter_articles(root: Root | Directory) -> Iterator[Article]:
    """Yield every article below *root*, depth first, in tree order."""
    for child in root.children:
        if isinstance(child, Article):
            yield child
        else:
            yield from iter_articles(child)


def article_paths(root: Root, suffix: str = "") -> dict[str, str]:
    """Flatten *root* into ``{remote_path + suffix: local_path}``."""
    return {
        article.remote_path + suffix: article.local_path
        for article in iter_articles(root)
        if article.local_path is not None
    }


def prune_tree(root: Root, removed_paths: Iterable[str], suffix: str = "") -> Root:
    """Prepare *root* for persistence.

    Drops articles whose ``remote_path + suffix`` is in *removed_paths*,
    drops directories left without articles and clears every
    ``local_path``.  *root* itself is not modified.
    """
    removed = set(removed_paths)

    def prune(children: tuple[DocumentNode, ...]) -> tuple[DocumentNode, ...]:
        kept: list[DocumentNode] = []
        for child in children:
            if isinstance(child, Article):
                if child.remote_path + suffix in removed:
                    continue
                kept.append(replace(child, local_path=None))
            else:
                sub_children = prune(child.children)
                if sub_children:
                    kept.append(replace(child, children=sub_children))
        return tuple(kept)

    return Root(children=prune(root.children))


def collect_asset_paths(assets_dir: Path | str, base_path: str) -> dict[str, str]:
    """Map every regular file under *assets_dir* to ``base_path/<relative path>``.

    Asset names are kept verbatim so links inside articles stay valid.
    """
    assets_root = Path(assets_dir)
    paths: dict[str, str] = {}

    def walk(local_dir: Path) -> None:
        for name in _list_dir(local_dir, top=local_dir == assets_root):
            full_path = local_dir / name
            kind = _entry_kind(full_path)
            if kind == "dir":
                walk(full_path)
            elif kind == "file":
                rel = full_path.relative_to(assets_root).as_posix()
                paths[posixpath.join(base_path, rel)] = str(full_path)

    walk(assets_root)
    return paths

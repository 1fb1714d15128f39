"""Name normalizer: turn file and directory names into (slug, title) pairs.

Conversion rules:

- The document extension is stripped from article names.
- A leading ordinal prefix (``00-``) is stripped when prefix trimming is on.
- Words are split on spaces, underscores, punctuation and case changes,
  folded to ASCII, lowercased and joined with hyphens.
- Titles are rebuilt from the slug: ``getting-started`` → ``Getting Started``.

Examples:
    - ``"00-Getting Started.md"`` → ``getting-started`` / ``Getting Started``
    - ``"XMLHttpRequest.md"`` → ``xml-http-request``
    - a second ``"Getting_Started.md"`` in the same tracker →
      ``getting-started-2`` / ``Getting Started 2``
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docpush.meta.metadata import ProjectMetadata
    from docpush.meta.repository import RepositoryDetails

# base slug -> last counter handed out for it
SlugTracker = dict[str, int]

# First suffix handed to a colliding slug.
FIRST_DUPLICATE_SUFFIX = 2

_PREFIX_RE = re.compile(r"^\d+-")
_WORD_RE = re.compile(r"[A-Z]{2,}(?=[A-Z][a-z]|[^A-Za-z]|$)|[A-Z]?[a-z]+|[A-Z]+|\d+")


class InvalidNameError(ValueError):
    """Raised when a name normalizes to an empty slug."""


@dataclass(frozen=True)
class NormalizedName:
    """URL-safe slug plus human-readable title."""

    slug: str
    title: str


def kebab_case(text: str) -> str:
    """Convert *text* to an ASCII, hyphen-delimited, lowercase slug."""
    folded = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return "-".join(word.lower() for word in _WORD_RE.findall(folded))


def slug_to_title(slug: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in slug.split("-") if word)


def _dedupe(slug: str, tracker: SlugTracker) -> str:
    if slug not in tracker:
        tracker[slug] = 1
        return slug

    counter = max(tracker[slug] + 1, FIRST_DUPLICATE_SUFFIX)
    candidate = f"{slug}-{counter}"
    # A literal "foo-2" sibling may already hold the candidate.
    while candidate in tracker:
        counter += 1
        candidate = f"{slug}-{counter}"
    tracker[slug] = counter
    tracker[candidate] = 1
    return candidate


def process_name(
    name: str,
    *,
    trim_prefix: bool,
    strip_extension: bool = True,
    extension: str = ".md",
    tracker: SlugTracker | None = None,
) -> NormalizedName:
    """Normalize a raw file or directory *name*.

    When *tracker* is given, the slug is de-duplicated against every slug
    previously recorded in it: the first occurrence is kept as is, later
    ones get ``-2``, ``-3`` and so on.

    Raises
    ------
    InvalidNameError
        If nothing slug-worthy remains of *name*.
    """
    base = name
    if strip_extension and extension and base.lower().endswith(extension.lower()):
        base = base[: -len(extension)]
    if trim_prefix:
        base = _PREFIX_RE.sub("", base)

    slug = kebab_case(base)
    if not slug:
        msg = f"Name {name!r} does not produce a valid slug"
        raise InvalidNameError(msg)

    if tracker is not None:
        slug = _dedupe(slug, tracker)

    return NormalizedName(slug=slug, title=slug_to_title(slug))


def process_project_name(
    metadata: ProjectMetadata,
    repo_details: RepositoryDetails,
) -> NormalizedName:
    """Derive the project slug and title.

    The slug comes from the metadata slug, else the metadata title, else
    the repository name.  An explicit metadata title is kept verbatim;
    otherwise the title is rebuilt from the slug source.
    """
    slug_source = metadata.slug or metadata.title or repo_details.title
    slug = kebab_case(slug_source)
    if not slug:
        msg = f"Project name {slug_source!r} does not produce a valid slug"
        raise InvalidNameError(msg)

    if metadata.title:
        title = metadata.title
    else:
        title = slug_to_title(kebab_case(metadata.slug or repo_details.title))
    return NormalizedName(slug=slug, title=title)

"""Repository details from the GitHub REST API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"

# Largest page size the releases endpoint accepts.
RELEASES_PER_PAGE = 100


class RepositoryError(Exception):
    """Raised when repository details cannot be retrieved."""


@dataclass(frozen=True)
class RepositoryDetails:
    """Project facts taken from the source-code host."""

    title: str
    description: str | None = None
    license: str | None = None
    source: str | None = None
    latest_version: str | None = None
    versions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Record fields; unknown values and an empty tag list are left out."""
        fields = {
            "title": self.title,
            "description": self.description,
            "license": self.license,
            "source": self.source,
            "latest_version": self.latest_version,
            "versions": list(self.versions),
        }
        return {key: value for key, value in fields.items() if value is not None and value != []}


def _get_json(client: httpx.Client, url: str, params: dict[str, Any] | None = None) -> Any:
    response = client.get(url, params=params)
    if response.status_code != 200:
        msg = f"GitHub API error {response.status_code}: {response.text}"
        raise RepositoryError(msg)
    return response.json()


def _get_releases(client: httpx.Client, url: str) -> list[dict[str, Any]]:
    releases: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = _get_json(client, url, params={"per_page": RELEASES_PER_PAGE, "page": page})
        releases.extend(batch)
        if len(batch) < RELEASES_PER_PAGE:
            return releases
        page += 1


def fetch_repository_details(
    repository: str,
    token: str | None = None,
    *,
    client: httpx.Client | None = None,
    api_url: str = GITHUB_API_URL,
) -> RepositoryDetails:
    """Fetch description, license, URL and release tags of *repository*.

    *repository* is ``owner/name``.  Draft releases are ignored; the first
    published release is the latest version.

    Raises
    ------
    RepositoryError
        If the repository or its releases cannot be fetched.
    """
    owner, sep, name = repository.partition("/")
    if not sep or not owner or not name:
        msg = f"Failed to retrieve repository details: invalid repository {repository!r}"
        raise RepositoryError(msg)

    headers = {"Accept": "application/vnd.github+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    own_client = client is None
    http = client if client is not None else httpx.Client(headers=headers, timeout=30.0)
    try:
        repo = _get_json(http, f"{api_url}/repos/{owner}/{name}")
        releases = _get_releases(http, f"{api_url}/repos/{owner}/{name}/releases")
    except (httpx.HTTPError, RepositoryError, TypeError, ValueError) as exc:
        msg = f"Failed to retrieve repository details: {exc}"
        raise RepositoryError(msg) from exc
    finally:
        if own_client:
            http.close()

    versions = [
        str(release["tag_name"])
        for release in releases
        if not release.get("draft") and release.get("tag_name")
    ]
    if not versions:
        logger.info("No releases found for this repository")

    license_info = repo.get("license") or {}
    return RepositoryDetails(
        title=name,
        description=repo.get("description") or None,
        license=license_info.get("name"),
        source=repo.get("html_url"),
        latest_version=versions[0] if versions else None,
        versions=versions,
    )

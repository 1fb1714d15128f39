"""Digest engine: reproduce the storage provider's (multipart) ETag locally."""

from __future__ import annotations

import hashlib
import logging
import math
import os
import stat
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# Multipart boundary used by the storage provider (5 MiB).
CHUNK_SIZE = 5_242_880


def chunk_count(size: int) -> int:
    """Number of parts a file of *size* bytes is stored as (at least 1)."""
    return max(1, math.ceil(size / CHUNK_SIZE))


def expected_chunk_count(digest: str) -> int:
    """Read the part count from a digest's ``-N`` suffix, defaulting to 1."""
    _, sep, suffix = digest.rpartition("-")
    if not sep or not suffix.isdigit():
        return 1
    return int(suffix)


def normalize_etag(raw: str) -> str:
    """Strip quotes and whitespace from a backend ETag."""
    return raw.strip().strip('"').lower()


def _render(chunk_digests: list[bytes]) -> str:
    if len(chunk_digests) == 1:
        return chunk_digests[0].hex()
    combined = hashlib.md5(b"".join(chunk_digests))  # noqa: S324 - matches provider ETag
    return f"{combined.hexdigest()}-{len(chunk_digests)}"


def compute_digest(data: bytes) -> str:
    """Compute the ETag the storage provider reports for *data*.

    Inputs up to :data:`CHUNK_SIZE` bytes get the plain hex MD5.  Larger
    inputs are split into ``CHUNK_SIZE`` parts; the raw MD5 of every part
    is concatenated and hashed again, then ``-<part count>`` is appended.
    """
    if len(data) <= CHUNK_SIZE:
        return hashlib.md5(data).hexdigest()  # noqa: S324
    parts = [
        hashlib.md5(data[offset : offset + CHUNK_SIZE]).digest()  # noqa: S324
        for offset in range(0, len(data), CHUNK_SIZE)
    ]
    return _render(parts)


def file_digest(path: Path | str) -> str:
    """Same as :func:`compute_digest`, streaming *path* one part at a time."""
    parts: list[bytes] = []
    with open(path, "rb") as fh:
        while True:
            chunk = fh.read(CHUNK_SIZE)
            if not chunk:
                break
            parts.append(hashlib.md5(chunk).digest())  # noqa: S324
    if not parts:
        return hashlib.md5(b"").hexdigest()  # noqa: S324
    return _render(parts)


def has_file_changed(path: Path | str, expected_digest: str | None) -> bool:
    """Return True unless *path* provably matches *expected_digest*.

    The part count implied by the file size is compared to the digest's
    suffix first, so a size change never costs a full hash.  Files that
    cannot be stat'd, are not regular files, or cannot be read count as
    changed.
    """
    if not expected_digest:
        return True

    try:
        st = os.stat(path)
    except OSError as exc:
        logger.debug("Cannot stat %s: %s", path, exc)
        return True
    if not stat.S_ISREG(st.st_mode):
        return True

    if chunk_count(st.st_size) != expected_chunk_count(expected_digest):
        return True

    try:
        actual = file_digest(path)
    except OSError as exc:
        logger.debug("Cannot read %s: %s", path, exc)
        return True
    return actual != normalize_etag(expected_digest)

"""S3 storage backend built on boto3."""

from __future__ import annotations

import io
import logging
import mimetypes
from typing import TYPE_CHECKING, Any

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError

from docpush.storage.base import ListResult, StorageEntry, StorageResult
from docpush.sync.digest import CHUNK_SIZE, normalize_etag

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

# delete_objects accepts at most this many keys per request.
DELETE_BATCH_SIZE = 1000

# Objects above CHUNK_SIZE go up in CHUNK_SIZE parts so the stored ETag
# carries the "-N" suffix the digest engine reproduces.
MULTIPART_CONFIG = TransferConfig(
    multipart_threshold=CHUNK_SIZE + 1,
    multipart_chunksize=CHUNK_SIZE,
)


def create_s3_client(
    profile_name: str | None = None,
    region_name: str | None = None,
    endpoint_url: str | None = None,
) -> Any:
    """Create an S3 client from a (possibly named-profile) boto3 session."""
    session = boto3.Session(profile_name=profile_name, region_name=region_name)
    return session.client("s3", endpoint_url=endpoint_url)


def _describe(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        return str(error.get("Message") or error.get("Code") or exc)
    return str(exc)


class S3Storage:
    """:class:`~docpush.storage.base.StorageBackend` for one S3 bucket.

    Args:
        bucket_name: Target bucket.
        client: Pre-built boto3 S3 client; one is created when omitted.
    """

    def __init__(self, bucket_name: str, client: Any = None) -> None:
        self.bucket_name = bucket_name
        self.client = client if client is not None else create_s3_client()

    def _exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            raise
        return True

    def upload(self, remote_path: str, data: bytes, *, overwrite: bool = True) -> StorageResult:
        content_type = mimetypes.guess_type(remote_path)[0] or "application/octet-stream"
        try:
            if not overwrite and self._exists(remote_path):
                return StorageResult(error="The resource already exists")
            if len(data) > CHUNK_SIZE:
                self.client.upload_fileobj(
                    io.BytesIO(data),
                    self.bucket_name,
                    remote_path,
                    ExtraArgs={"ContentType": content_type},
                    Config=MULTIPART_CONFIG,
                )
            else:
                self.client.put_object(
                    Bucket=self.bucket_name,
                    Key=remote_path,
                    Body=data,
                    ContentType=content_type,
                )
        except (BotoCoreError, ClientError, S3UploadFailedError) as exc:
            return StorageResult(error=_describe(exc))
        return StorageResult()

    def remove(self, remote_paths: Sequence[str]) -> StorageResult:
        errors: list[str] = []
        keys = list(remote_paths)
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start : start + DELETE_BATCH_SIZE]
            try:
                response = self.client.delete_objects(
                    Bucket=self.bucket_name,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
            except (BotoCoreError, ClientError) as exc:
                errors.append(_describe(exc))
                continue
            for err in response.get("Errors", []):
                errors.append(f"{err.get('Key')}: {err.get('Message') or err.get('Code')}")

        if errors:
            return StorageResult(error="; ".join(errors))
        return StorageResult()

    def list(self, prefix: str) -> ListResult:
        """List one level below *prefix*; sub-prefixes become directory markers."""
        folder = prefix.strip("/")
        folder = f"{folder}/" if folder else ""
        entries: list[StorageEntry] = []

        try:
            paginator = self.client.get_paginator("list_objects_v2")
            pages = paginator.paginate(Bucket=self.bucket_name, Prefix=folder, Delimiter="/")
            for page in pages:
                for common in page.get("CommonPrefixes", []):
                    name = common["Prefix"][len(folder) :].rstrip("/")
                    if name:
                        entries.append(StorageEntry(name=name))
                for obj in page.get("Contents", []):
                    name = obj["Key"][len(folder) :]
                    # Skip the folder placeholder object itself.
                    if not name:
                        continue
                    entries.append(StorageEntry(name=name, digest=normalize_etag(obj["ETag"])))
        except (BotoCoreError, ClientError) as exc:
            return ListResult(error=_describe(exc))

        logger.debug("Listed %d entries under %s", len(entries), folder or "/")
        return ListResult(entries=entries)

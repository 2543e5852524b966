"""Artifact stores: named binary objects with durable fetch URLs.

Each generation produces two artifacts that share an opaque token:

- ``<token>.png``: the full image
- ``<token>_thumb.jpg``: its thumbnail

The token is never derived from the prompt, so user input cannot collide
with or influence storage names.  It starts with a countdown of milliseconds
to a fixed horizon, so plain key order lists newer generations first.
Listings include both kinds of artifact; :func:`is_thumbnail` lets readers
skip thumbnails when building the primary gallery sequence.

Two implementations are provided and selected once at startup:

:class:`LocalArtifactStore`
    Files in a local directory, served by the API under a URL prefix.  The
    listing comes from an in-process ordered list, not from a directory scan.
:class:`S3ArtifactStore`
    Public-read objects in an S3 bucket.  :meth:`~ArtifactStore.list` pages
    through the whole prefix; :meth:`~ArtifactStore.list_recent` reads a
    single ``list_objects_v2`` page, bounding the work of a gallery read.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path, PurePosixPath

from botocore.exceptions import BotoCoreError, ClientError

from sketchy.core.errors import StorageError
from sketchy.core.records import Artifact, utcnow

logger = logging.getLogger(__name__)

THUMBNAIL_SUFFIX = "_thumb"
IMAGE_EXTENSION = ".png"
THUMBNAIL_EXTENSION = ".jpg"

# Milliseconds since the epoch at 2286-11-20; tokens count down towards it.
TOKEN_HORIZON_MS = 10**13


def new_token(at: datetime | None = None) -> str:
    """Return a fresh token for naming a generation's artifacts.

    Tokens minted later sort lexicographically before tokens minted earlier.

    Args:
        at: Creation time; defaults to now.
    """
    millis = int((at or utcnow()).timestamp() * 1000)
    return f"{TOKEN_HORIZON_MS - millis:013d}{uuid.uuid4().hex[:16]}"


def image_name(token: str) -> str:
    """Name of the full-size artifact for *token*."""
    return f"{token}{IMAGE_EXTENSION}"


def thumbnail_name(name: str) -> str:
    """Name of the thumbnail paired with the full-size artifact *name*."""
    stem = PurePosixPath(name).stem
    return f"{stem}{THUMBNAIL_SUFFIX}{THUMBNAIL_EXTENSION}"


def is_thumbnail(name: str) -> bool:
    """Whether *name* refers to a thumbnail artifact."""
    return PurePosixPath(name).stem.endswith(THUMBNAIL_SUFFIX)


class ArtifactStore(ABC):
    """Abstract store of named blobs."""

    @abstractmethod
    def save(self, name: str, data: bytes, content_type: str) -> str:
        """Persist *data* under *name* and return its durable URL.

        Raises:
            StorageError: If the write fails.
        """

    @abstractmethod
    def list(self) -> list[Artifact]:
        """Return every stored artifact (full images and thumbnails)."""

    def list_recent(self) -> list[Artifact]:
        """Return a bounded listing holding at least the newest artifacts.

        Stores that can enumerate cheaply return everything.
        """
        return self.list()

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Delete the artifact *name*.

        Returns:
            True if the artifact was deleted, False if the store could not
            delete it.
        """

    @abstractmethod
    def name_for_url(self, url: str) -> str | None:
        """Map a URL issued by this store back to its artifact name."""

    @abstractmethod
    def clear(self) -> int:
        """Delete every artifact and return how many were removed."""


class LocalArtifactStore(ArtifactStore):
    """Store artifacts as files in a local directory.

    The store owns an append-only, in-process list of the artifacts it has
    written.  That list is the listing source; nothing is read back from the
    directory, so files placed there by other means are not part of the
    gallery.  Appends are not synchronised: concurrent saves are recorded in
    completion order.

    Args:
        directory: Directory the files are written to.  Created if missing.
        url_prefix: URL prefix under which the API serves ``directory``.
    """

    def __init__(self, directory: Path, url_prefix: str = "/images"):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.url_prefix = url_prefix.rstrip("/")
        self._artifacts: list[Artifact] = []
        logger.info(f"Local artifact store at {self.directory} ({self.url_prefix})")

    def _url(self, name: str) -> str:
        return f"{self.url_prefix}/{name}"

    def save(self, name: str, data: bytes, content_type: str) -> str:
        path = self.directory / name
        try:
            path.write_bytes(data)
        except OSError as e:
            raise StorageError("Failed to save image", str(e)) from e

        artifact = Artifact(name=name, url=self._url(name), uploaded_at=utcnow(), size=len(data))
        self._artifacts.append(artifact)
        logger.debug(f"Saved {name} ({len(data)} bytes, {content_type})")
        return artifact.url

    def list(self) -> list[Artifact]:
        return list(self._artifacts)

    def delete(self, name: str) -> bool:
        artifact = next((a for a in self._artifacts if a.name == name), None)
        if artifact is None:
            return False

        (self.directory / name).unlink(missing_ok=True)
        self._artifacts = [a for a in self._artifacts if a.name != name]
        logger.debug(f"Deleted {name}")
        return True

    def name_for_url(self, url: str) -> str | None:
        artifact = next((a for a in self._artifacts if a.url == url), None)
        return artifact.name if artifact else None

    def clear(self) -> int:
        # Swap the list first so readers see an empty gallery immediately.
        removed, self._artifacts = self._artifacts, []
        for artifact in removed:
            (self.directory / artifact.name).unlink(missing_ok=True)
        return len(removed)


class S3ArtifactStore(ArtifactStore):
    """Store artifacts as public-read objects in an S3 bucket.

    Args:
        s3_client: A boto3 S3 client.
        bucket: Bucket name.
        public_base_url: Base URL objects are publicly reachable under.
        prefix: Key prefix for all artifacts.
        page_size: Keys per ``list_objects_v2`` page; also the size of the
            single page read by :meth:`list_recent`.
    """

    def __init__(
        self,
        s3_client,
        bucket: str,
        public_base_url: str,
        prefix: str = "images/",
        page_size: int = 1000,
    ):
        if not bucket:
            raise ValueError("bucket is required")

        self.s3_client = s3_client
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.prefix = prefix
        self.page_size = page_size
        logger.info(f"S3 artifact store s3://{bucket}/{prefix}")

    def _key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def _url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def save(self, name: str, data: bytes, content_type: str) -> str:
        key = self._key(name)
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL="public-read",
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError("Failed to upload image", str(e)) from e

        logger.debug(f"Uploaded s3://{self.bucket}/{key} ({len(data)} bytes)")
        return self._url(key)

    def _artifacts(self, contents: list[dict]) -> list[Artifact]:
        artifacts = []
        for obj in contents:
            key = obj["Key"]
            name = key[len(self.prefix) :]
            if not name:
                continue
            artifacts.append(
                Artifact(
                    name=name,
                    url=self._url(key),
                    uploaded_at=obj["LastModified"],
                    size=obj.get("Size", 0),
                )
            )
        return artifacts

    def list(self) -> list[Artifact]:
        artifacts: list[Artifact] = []
        paginator = self.s3_client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(
                Bucket=self.bucket,
                Prefix=self.prefix,
                PaginationConfig={"PageSize": self.page_size},
            ):
                artifacts.extend(self._artifacts(page.get("Contents", [])))
        except (BotoCoreError, ClientError) as e:
            raise StorageError("Failed to list images", str(e)) from e
        return artifacts

    def list_recent(self) -> list[Artifact]:
        # Keys start with a countdown token, so the first page is the newest.
        try:
            response = self.s3_client.list_objects_v2(
                Bucket=self.bucket,
                Prefix=self.prefix,
                MaxKeys=self.page_size,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError("Failed to list images", str(e)) from e
        return self._artifacts(response.get("Contents", []))

    def delete(self, name: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=self._key(name))
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to delete s3://{self.bucket}/{self._key(name)}: {e}")
            return False
        return True

    def name_for_url(self, url: str) -> str | None:
        base = self._url(self.prefix)
        if not url.startswith(base):
            return None
        name = url[len(base) :]
        return name or None

    def clear(self) -> int:
        removed = 0
        paginator = self.s3_client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix):
                keys = [{"Key": obj["Key"]} for obj in page.get("Contents", [])]
                # delete_objects accepts at most 1000 keys per call.
                for start in range(0, len(keys), 1000):
                    batch = keys[start : start + 1000]
                    self.s3_client.delete_objects(
                        Bucket=self.bucket,
                        Delete={"Objects": batch, "Quiet": True},
                    )
                    removed += len(batch)
        except (BotoCoreError, ClientError) as e:
            raise StorageError("Failed to clear images", str(e)) from e
        return removed

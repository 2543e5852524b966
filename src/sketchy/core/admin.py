"""Admin maintenance: bulk and single deletions across both backends.

None of these operations is transactional with respect to concurrent
generations.  A generation committed while a sweep runs may or may not
survive it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sketchy.core.artifact_store import ArtifactStore, is_thumbnail, thumbnail_name
from sketchy.core.errors import InvalidRequestError, NotFoundError, StorageError
from sketchy.core.gallery import newest_first, primary_artifacts
from sketchy.core.metadata_index import MetadataIndex
from sketchy.core.records import Artifact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClearResult:
    artifacts: int
    records: int


@dataclass(frozen=True)
class ReduceResult:
    kept: int
    deleted: int


class GalleryAdmin:
    """Destructive maintenance operations on the gallery.

    Args:
        store: Artifact store holding images and thumbnails.
        index: Metadata index holding generation records.
    """

    def __init__(self, store: ArtifactStore, index: MetadataIndex):
        self.store = store
        self.index = index

    def clear_all(self) -> ClearResult:
        """Delete every artifact and every metadata record."""
        artifacts = self.store.clear()
        records = self.index.clear()
        logger.info(f"Cleared gallery: {artifacts} artifacts, {records} records")
        return ClearResult(artifacts=artifacts, records=records)

    def _delete_generation(self, name: str, url: str) -> bool:
        deleted = self.store.delete(name)
        # The thumbnail may legitimately be absent (thumbnails disabled).
        self.store.delete(thumbnail_name(name))
        self.index.delete(url)
        return deleted

    def remove(self, image_url: str) -> None:
        """Delete one image, its thumbnail and its record.

        Raises:
            InvalidRequestError: If *image_url* is empty.
            NotFoundError: If the URL does not belong to a stored full-size
                image.  Thumbnail URLs are not accepted.
            StorageError: If the store reports the delete failed.
        """
        if not image_url:
            raise InvalidRequestError("imageUrl is required")

        name = self.store.name_for_url(image_url)
        if name is None or is_thumbnail(name):
            raise NotFoundError("Image not found", image_url)

        if not self._delete_generation(name, image_url):
            raise StorageError("Failed to delete image", image_url)
        logger.info(f"Removed {image_url}")

    def retain_newest(self, count: int) -> ReduceResult:
        """Keep the *count* newest generations and delete the rest.

        Applying the same count twice deletes nothing the second time.

        Raises:
            InvalidRequestError: If *count* is negative.
        """
        if count < 0:
            raise InvalidRequestError("count must be a non-negative integer", str(count))

        ordered = newest_first(primary_artifacts(self.store.list()))
        surplus: list[Artifact] = ordered[count:]

        deleted = 0
        for artifact in surplus:
            if self._delete_generation(artifact.name, artifact.url):
                deleted += 1

        kept = len(ordered) - deleted
        logger.info(f"Reduced gallery to {count}: kept {kept}, deleted {deleted}")
        return ReduceResult(kept=kept, deleted=deleted)

"""Gallery reconstruction: join stored artifacts with their metadata.

The gallery owns no state.  Every read:

1. takes the artifact store's recent listing (one page remotely) and drops
   thumbnails, leaving one entry per generation,
2. orders entries newest first by the artifact's upload time,
3. truncates to the requested window *before* any metadata lookup, so a read
   issues at most one batched metadata call for at most ``max_items`` keys,
4. joins each entry with its record, degrading to URL + upload time when the
   record is missing.

The artifact upload time is the only sort key, whichever backend is in use.
It exists for every artifact, including those whose metadata is lost.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from sketchy.core.artifact_store import ArtifactStore, is_thumbnail
from sketchy.core.metadata_index import MetadataIndex
from sketchy.core.records import Artifact, GalleryItem, GalleryView

logger = logging.getLogger(__name__)


def primary_artifacts(artifacts: Iterable[Artifact]) -> list[Artifact]:
    """Drop thumbnails, leaving one artifact per generation."""
    return [a for a in artifacts if not is_thumbnail(a.name)]


def newest_first(artifacts: Iterable[Artifact]) -> list[Artifact]:
    """Sort artifacts by upload time, newest first.

    Equal timestamps keep reverse listing order, so of two artifacts saved
    within the clock's resolution the one listed later comes first.
    """
    return sorted(reversed(list(artifacts)), key=lambda a: a.uploaded_at, reverse=True)


class Gallery:
    """Read-side view over an artifact store and a metadata index.

    Args:
        store: Artifact store to enumerate.
        index: Metadata index to join against.
        max_items: Upper bound on items returned by a single read.
    """

    def __init__(self, store: ArtifactStore, index: MetadataIndex, max_items: int = 20):
        self.store = store
        self.index = index
        self.max_items = max_items

    def _window(self, limit: int | None) -> int:
        if limit is None or limit <= 0:
            return self.max_items
        return min(limit, self.max_items)

    def iter_items(self, artifacts: list[Artifact]) -> Iterator[GalleryItem]:
        """Yield gallery items for *artifacts*, preserving their order."""
        records = self.index.get_many(a.url for a in artifacts)
        for artifact in artifacts:
            record = records.get(artifact.url)
            if record is None:
                logger.warning(f"No metadata for {artifact.url}; returning degraded item")
                yield GalleryItem.degraded(artifact)
            else:
                yield GalleryItem.from_record(record)

    def view(self, limit: int | None = None, offset: int = 0) -> GalleryView:
        """Return the newest gallery items.

        Args:
            limit: Maximum number of items; capped at ``max_items``.
            offset: Number of newest items to skip.

        Returns:
            A :class:`GalleryView` with the selected items and the total
            number of generations in the recent listing.
        """
        ordered = newest_first(primary_artifacts(self.store.list_recent()))
        offset = max(offset, 0)
        window = ordered[offset : offset + self._window(limit)]
        return GalleryView(items=list(self.iter_items(window)), total=len(ordered))

"""Generation service: one prompt in, one persisted GenerationRecord out.

Pipeline (each step completes before the next starts)::

    expand prompt -> produce image -> derive thumbnail
        -> save image -> save thumbnail -> put metadata

Persistence spans two independent backends, so it cannot be atomic.  When a
later write fails, the artifacts already written for this generation are
deleted again before the error is re-raised, so a failed request leaves no
image without metadata.  A process crash between the writes can still leave
an orphaned image; the gallery tolerates that by showing a degraded item.
"""

from __future__ import annotations

import logging

from sketchy.core.artifact_store import ArtifactStore, image_name, new_token, thumbnail_name
from sketchy.core.errors import InvalidRequestError
from sketchy.core.image_producer import ImageProducer
from sketchy.core.metadata_index import MetadataIndex
from sketchy.core.prompt_expander import PromptExpander
from sketchy.core.records import GenerationRecord, utcnow
from sketchy.core.thumbnails import THUMBNAIL_CONTENT_TYPE, derive_thumbnail

logger = logging.getLogger(__name__)


class GenerationService:
    """Orchestrate a single image generation.

    Args:
        expander: Prompt expander (identity when expansion is disabled).
        producer: Image producer (live or mock).
        store: Artifact store receiving the image and thumbnail.
        index: Metadata index receiving the record.
        thumbnails: Whether to derive and store a thumbnail.  When False the
            record's ``thumbnail_url`` equals its ``image_url``.
        thumbnail_size: Thumbnail edge length in pixels.
        thumbnail_quality: Thumbnail JPEG quality.
    """

    def __init__(
        self,
        expander: PromptExpander,
        producer: ImageProducer,
        store: ArtifactStore,
        index: MetadataIndex,
        *,
        thumbnails: bool = True,
        thumbnail_size: int = 300,
        thumbnail_quality: int = 80,
    ):
        self.expander = expander
        self.producer = producer
        self.store = store
        self.index = index
        self.thumbnails = thumbnails
        self.thumbnail_size = thumbnail_size
        self.thumbnail_quality = thumbnail_quality

    def generate(self, prompt: str) -> GenerationRecord:
        """Run the full pipeline for *prompt*.

        Raises:
            InvalidRequestError: If *prompt* is empty after trimming.
            SketchyError: Any upstream, processing or storage failure.
        """
        original = (prompt or "").strip()
        if not original:
            raise InvalidRequestError("Prompt is required")

        logger.info(f"Generating image for prompt: {original!r}")
        generated = self.expander.expand(original)
        image_bytes = self.producer.produce(generated)

        thumb_bytes = None
        if self.thumbnails:
            thumb_bytes = derive_thumbnail(
                image_bytes,
                size=self.thumbnail_size,
                quality=self.thumbnail_quality,
            )

        created_at = utcnow()
        name = image_name(new_token(created_at))
        written: list[str] = []

        try:
            image_url = self.store.save(name, image_bytes, self.producer.content_type)
            written.append(name)

            thumbnail_url = image_url
            if thumb_bytes is not None:
                thumb = thumbnail_name(name)
                thumbnail_url = self.store.save(thumb, thumb_bytes, THUMBNAIL_CONTENT_TYPE)
                written.append(thumb)

            record = GenerationRecord(
                original_prompt=original,
                generated_prompt=generated,
                image_url=image_url,
                thumbnail_url=thumbnail_url,
                created_at=created_at,
            )
            self.index.put(record)
        except Exception:
            self._compensate(written)
            raise

        logger.info(f"Stored generation {record.image_url}")
        return record

    def _compensate(self, names: list[str]) -> None:
        for name in names:
            if not self.store.delete(name):
                logger.error(f"Could not remove {name} after a failed generation")
        if names:
            logger.error(f"Rolled back {len(names)} artifact(s) after a failed write", exc_info=True)

"""Data model for generations, stored artifacts and gallery projections.

GenerationRecord
    The persisted metadata for one completed generation.  Serialised with
    camelCase keys (``originalPrompt``, ``imageUrl`` ...) to match the JSON
    the HTTP API exchanges.
Artifact
    A stored binary object (full image or thumbnail) as reported by an
    artifact store listing.
GalleryItem / GalleryView
    The read-side projection joining artifacts with their records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class GenerationRecord(BaseModel):
    """Metadata describing one completed image generation.

    The record is frozen: ``createdAt`` and the other fields never change
    after creation.  ``imageUrl`` is the record's unique key.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    original_prompt: str = Field(..., alias="originalPrompt", min_length=1)
    generated_prompt: str = Field(..., alias="generatedPrompt")
    image_url: str = Field(..., alias="imageUrl", min_length=1)
    thumbnail_url: str = Field(..., alias="thumbnailUrl")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    def to_json(self) -> dict:
        """Return the record as a JSON-ready dictionary with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


class GalleryItem(BaseModel):
    """One entry of the gallery view.

    When the artifact has no metadata record, only ``image_url`` and
    ``created_at`` (the artifact's upload time) are populated and the
    remaining fields are empty strings.
    """

    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(..., alias="imageUrl")
    thumbnail_url: str = Field(default="", alias="thumbnailUrl")
    original_prompt: str = Field(default="", alias="originalPrompt")
    generated_prompt: str = Field(default="", alias="generatedPrompt")
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_record(cls, record: GenerationRecord) -> GalleryItem:
        return cls(
            image_url=record.image_url,
            thumbnail_url=record.thumbnail_url,
            original_prompt=record.original_prompt,
            generated_prompt=record.generated_prompt,
            created_at=record.created_at,
        )

    @classmethod
    def degraded(cls, artifact: Artifact) -> GalleryItem:
        return cls(image_url=artifact.url, created_at=artifact.uploaded_at)

    @property
    def has_metadata(self) -> bool:
        return bool(self.original_prompt)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


@dataclass(frozen=True)
class Artifact:
    """A stored blob reported by an artifact store.

    Attributes:
        name: Store-relative object name (e.g. ``"<token>.png"``).
        url: Durable, fetchable URL for the object.
        uploaded_at: When the store received the object (UTC).
        size: Object size in bytes.
    """

    name: str
    url: str
    uploaded_at: datetime
    size: int = 0


@dataclass
class GalleryView:
    """An ordered, truncated gallery read.

    Attributes:
        items: Gallery items, newest first.
        total: Number of primary artifacts before truncation.
    """

    items: list[GalleryItem] = field(default_factory=list)
    total: int = 0

    def to_json(self) -> dict:
        return {
            "galleryItems": [item.to_json() for item in self.items],
            "totalItems": self.total,
            "returnedItems": len(self.items),
        }

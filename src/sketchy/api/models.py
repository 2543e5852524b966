"""Pydantic request models for the Sketchy API.

Models
------
GenerateRequest
    Payload for ``POST /generate-image``.
RemoveImageRequest
    Payload for ``DELETE /remove-image``.
ReduceGalleryRequest
    Payload for ``POST /reduce-gallery``.

Responses are built from :mod:`sketchy.core.records` and plain dictionaries,
so only request bodies are modelled here.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    """Request body for ``POST /generate-image``.

    Attributes:
        prompt: Song or artist name.  Must be non-empty after trimming; no
            other length or content policy is applied.
    """

    prompt: str = Field(
        ...,
        description="Song or artist name to illustrate.",
    )


class RemoveImageRequest(BaseModel):
    """Request body for ``DELETE /remove-image``."""

    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(
        ...,
        alias="imageUrl",
        min_length=1,
        description="URL of the image to remove, as returned by the gallery.",
    )


class ReduceGalleryRequest(BaseModel):
    """Request body for ``POST /reduce-gallery``.

    Attributes:
        count: Number of newest generations to keep.  Strings and floats are
            rejected rather than coerced.
    """

    count: int = Field(
        ...,
        ge=0,
        strict=True,
        description="Number of newest images to keep (>= 0).",
    )

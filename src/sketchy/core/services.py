"""Build the concrete service graph from configuration.

Backend variants are chosen here, once, at application startup.  Nothing
downstream inspects the configuration flags again; business logic only sees
the abstract :class:`ArtifactStore`, :class:`MetadataIndex`,
:class:`PromptExpander` and :class:`ImageProducer` interfaces.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import boto3
import httpx
import openai

from sketchy.core.admin import GalleryAdmin
from sketchy.core.artifact_store import ArtifactStore, LocalArtifactStore, S3ArtifactStore
from sketchy.core.config import SketchyConfig
from sketchy.core.errors import ConfigurationError
from sketchy.core.gallery import Gallery
from sketchy.core.generation import GenerationService
from sketchy.core.image_producer import (
    CanvasImageProducer,
    ImageProducer,
    OpenAIImageProducer,
    PlaceholderImageProducer,
)
from sketchy.core.metadata_index import DynamoMetadataIndex, InMemoryMetadataIndex, MetadataIndex
from sketchy.core.prompt_expander import (
    IdentityPromptExpander,
    OpenAIPromptExpander,
    PromptExpander,
)

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the HTTP layer needs, wired for one deployment."""

    store: ArtifactStore
    index: MetadataIndex
    generator: GenerationService
    gallery: Gallery
    admin: GalleryAdmin
    http_client: httpx.Client | None = None

    def close(self) -> None:
        if self.http_client is not None:
            self.http_client.close()


def build_storage(cfg: SketchyConfig) -> tuple[ArtifactStore, MetadataIndex]:
    """Create the artifact store and metadata index for *cfg*."""
    if cfg.resolved_storage_backend == "local":
        return (
            LocalArtifactStore(cfg.gallery_dir, cfg.static_url_prefix),
            InMemoryMetadataIndex(),
        )

    if not cfg.s3_bucket:
        raise ConfigurationError("Remote storage requires SKETCHY_S3_BUCKET")

    s3_client = boto3.client("s3", region_name=cfg.s3_region)
    table = boto3.resource("dynamodb", region_name=cfg.s3_region).Table(cfg.metadata_table)
    store = S3ArtifactStore(
        s3_client,
        cfg.s3_bucket,
        cfg.resolved_s3_public_base_url,
        prefix=cfg.s3_prefix,
    )
    return store, DynamoMetadataIndex(table)


def build_generation(
    cfg: SketchyConfig,
    http_client: httpx.Client,
) -> tuple[PromptExpander, ImageProducer]:
    """Create the prompt expander and image producer for *cfg*."""
    client = None
    if cfg.use_openai_api or cfg.prompt_expansion_enabled:
        try:
            client = openai.OpenAI(api_key=cfg.openai_api_key)
        except openai.OpenAIError as e:
            raise ConfigurationError("OpenAI client could not be created", str(e)) from e

    expander: PromptExpander
    if cfg.prompt_expansion_enabled:
        expander = OpenAIPromptExpander(client, cfg.text_model, cfg.prompt_max_words)
    else:
        expander = IdentityPromptExpander()

    producer: ImageProducer
    if cfg.use_openai_api:
        producer = OpenAIImageProducer(client, http_client, cfg.image_model, cfg.image_size)
    elif cfg.mock_style == "placeholder":
        producer = PlaceholderImageProducer(http_client, cfg.placeholder_url)
    else:
        producer = CanvasImageProducer(cfg.mock_width, cfg.mock_height)

    logger.info(
        f"Generation: {'live' if cfg.use_openai_api else 'mock/' + cfg.mock_style}, "
        f"prompt expansion {'on' if cfg.prompt_expansion_enabled else 'off'}"
    )
    return expander, producer


def build_services(
    cfg: SketchyConfig,
    *,
    store: ArtifactStore | None = None,
    index: MetadataIndex | None = None,
    expander: PromptExpander | None = None,
    producer: ImageProducer | None = None,
) -> Services:
    """Assemble :class:`Services` for *cfg*.

    Any component passed explicitly replaces the one the configuration would
    select, which lets tests inject fakes without touching the environment.
    """
    if store is None or index is None:
        default_store, default_index = build_storage(cfg)
        # Explicit None checks: an empty index is falsy.
        store = default_store if store is None else store
        index = default_index if index is None else index

    http_client = None
    if expander is None or producer is None:
        http_client = httpx.Client(timeout=cfg.http_timeout, follow_redirects=True)
        default_expander, default_producer = build_generation(cfg, http_client)
        expander = default_expander if expander is None else expander
        producer = default_producer if producer is None else producer

    generator = GenerationService(
        expander,
        producer,
        store,
        index,
        thumbnails=cfg.generate_thumbnails,
        thumbnail_size=cfg.thumbnail_size,
        thumbnail_quality=cfg.thumbnail_quality,
    )
    logger.info(f"Storage backend: {cfg.resolved_storage_backend}")
    return Services(
        store=store,
        index=index,
        generator=generator,
        gallery=Gallery(store, index, cfg.gallery_max_items),
        admin=GalleryAdmin(store, index),
        http_client=http_client,
    )

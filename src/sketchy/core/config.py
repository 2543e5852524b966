"""Configuration management for the Sketchy gallery service.

All configuration is loaded once at process start using Pydantic Settings.
Values come from environment variables with the ``SKETCHY_`` prefix, a
``.env`` file in the working directory, or the defaults defined here.  There
is no hot-reload: change the environment and restart.

Example .env file::

    SKETCHY_USE_OPENAI_API=true
    SKETCHY_OPENAI_API_KEY=sk-...
    SKETCHY_ENVIRONMENT=production
    SKETCHY_S3_BUCKET=my-sketchy-bucket
    SKETCHY_ADMIN_SECRET=change-me

Mode Selection
--------------
Two independent switches select the deployment shape:

- ``use_openai_api`` toggles live generation (OpenAI) against mock
  generation (local placeholder images).  Prompt expansion follows this
  switch unless ``expand_prompts`` is set explicitly.
- ``environment`` picks the storage backends: ``development`` stores files
  locally and keeps metadata in memory, ``production`` uses S3 and DynamoDB.
  ``storage_backend`` overrides the choice directly.

Usage Example
-------------
::

    from sketchy.core.config import config

    print(config.resolved_storage_backend)
    print(config.gallery_dir)
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SketchyConfig(BaseSettings):
    """Main configuration for the Sketchy gallery service.

    Attributes
    ----------
    Generation:
        use_openai_api : bool
            Call the OpenAI API (True) or synthesise mock images (False).
        expand_prompts : bool | None
            Expand prompts with a chat completion.  ``None`` follows
            ``use_openai_api``.
        mock_style : Literal["canvas", "placeholder"]
            How mock images are produced.
        openai_api_key : str | None
            OpenAI key.  When unset the SDK reads ``OPENAI_API_KEY``.

    Storage:
        environment : Literal["development", "production"]
            Deployment environment; production selects remote storage.
        storage_backend : Literal["local", "s3"] | None
            Explicit backend override.
        gallery_dir : Path
            Directory for locally stored artifacts.
        s3_bucket, s3_region, s3_prefix, s3_public_base_url
            Remote artifact store settings.
        metadata_table : str
            DynamoDB table holding generation records.

    Admin:
        admin_secret : str | None
            Shared secret required by maintenance endpoints.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SKETCHY_",
        case_sensitive=False,
        extra="ignore",
    )

    # Generation settings
    use_openai_api: bool = Field(
        default=False,
        description="Use the OpenAI API for generation instead of mock images",
    )
    expand_prompts: bool | None = Field(
        default=None,
        description="Expand prompts via chat completion (None follows use_openai_api)",
    )
    mock_style: Literal["canvas", "placeholder"] = Field(
        default="canvas",
        description="Mock image source: local Pillow canvas or placeholder service",
    )
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    text_model: str = Field(default="gpt-3.5-turbo", description="Prompt expansion model")
    image_model: str = Field(default="dall-e-3", description="Image generation model")
    image_size: str = Field(default="1024x1024", description="Requested image resolution")
    prompt_max_words: int | None = Field(
        default=None,
        description="Advisory length hint passed to the prompt expander",
        ge=1,
    )
    placeholder_url: str = Field(
        default="https://placehold.co/600x400/random/white/png",
        description="Placeholder image service used by the placeholder mock style",
    )
    mock_width: int = Field(default=1024, ge=64, le=4096)
    mock_height: int = Field(default=1024, ge=64, le=4096)
    http_timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for fetching generated images",
        gt=0,
    )

    # Thumbnail settings
    generate_thumbnails: bool = Field(
        default=True,
        description="Derive a thumbnail for every generation",
    )
    thumbnail_size: int = Field(default=300, ge=16, le=2048)
    thumbnail_quality: int = Field(default=80, ge=1, le=95)

    # Storage settings
    environment: Literal["development", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    storage_backend: Literal["local", "s3"] | None = Field(
        default=None,
        description="Storage backend override (None derives it from environment)",
    )
    gallery_dir: Path = Field(
        default=Path("images"),
        description="Directory for locally stored images",
    )
    static_url_prefix: str = Field(
        default="/images",
        description="URL prefix under which local images are served",
    )
    s3_bucket: str | None = Field(default=None, description="S3 bucket for artifacts")
    s3_region: str = Field(default="us-east-1", description="AWS region")
    s3_prefix: str = Field(default="images/", description="Key prefix for artifacts")
    s3_public_base_url: str | None = Field(
        default=None,
        description="Public base URL for objects (defaults to the bucket's S3 URL)",
    )
    metadata_table: str = Field(
        default="sketchy-gallery",
        description="DynamoDB table holding generation records",
    )
    gallery_max_items: int = Field(
        default=20,
        description="Maximum number of gallery items returned per read",
        ge=1,
        le=100,
    )

    # Admin settings
    admin_secret: str | None = Field(
        default=None,
        description="Shared secret for maintenance endpoints",
    )

    # Server settings
    server_host: str = Field(default="0.0.0.0", description="Server bind address")
    server_port: int = Field(default=3001, description="Server port", ge=1, le=65535)
    log_level: str = Field(default="INFO", description="Root logging level")

    @property
    def prompt_expansion_enabled(self) -> bool:
        """Whether prompts are expanded before image generation."""
        if self.expand_prompts is None:
            return self.use_openai_api
        return self.expand_prompts

    @property
    def resolved_storage_backend(self) -> str:
        """The storage backend in effect for this deployment."""
        if self.storage_backend is not None:
            return self.storage_backend
        return "s3" if self.environment == "production" else "local"

    @property
    def resolved_s3_public_base_url(self) -> str:
        """Base URL prepended to S3 keys to build public object URLs."""
        if self.s3_public_base_url:
            return self.s3_public_base_url.rstrip("/")
        return f"https://{self.s3_bucket}.s3.{self.s3_region}.amazonaws.com"


# Global configuration instance, loaded from SKETCHY_* variables and .env.
config = SketchyConfig()

"""Image producers: turn a descriptive prompt into encoded image bytes.

Live mode
---------
:class:`OpenAIImageProducer` issues one image-generation call and fetches the
short-lived URL the API returns.  The fetch is attempted exactly once; the
bytes must be persisted by the caller before the URL expires.

Mock mode
---------
Used during development to avoid API cost:

- :class:`CanvasImageProducer` paints a solid random colour with the prompt
  overlaid, entirely locally.
- :class:`PlaceholderImageProducer` fetches a placeholder image from a
  third-party service with the prompt as caption.

Every producer returns PNG bytes (the OpenAI payload is passed through as
returned); failures raise :class:`~sketchy.core.errors.UpstreamError` and nothing is persisted.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import random
import textwrap
from abc import ABC, abstractmethod
from urllib.parse import quote

import httpx
import openai
from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from sketchy.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class ImageProducer(ABC):
    """Abstract producer of image bytes from a prompt."""

    #: MIME type of the bytes returned by :meth:`produce`.
    content_type: str = "image/png"

    @abstractmethod
    def produce(self, prompt: str) -> bytes:
        """Return encoded image bytes depicting *prompt*.

        Raises:
            UpstreamError: If the image cannot be produced.
        """


def _fetch(http_client: httpx.Client, url: str, what: str) -> bytes:
    try:
        response = http_client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise UpstreamError(f"Failed to fetch {what}", str(e)) from e
    return response.content


class OpenAIImageProducer(ImageProducer):
    """Generate images with the OpenAI Images API.

    Args:
        client: An ``openai.OpenAI`` client.
        http_client: ``httpx.Client`` used to download the generated image.
        model: Image model name (e.g. ``"dall-e-3"``).
        size: Target resolution, e.g. ``"1024x1024"``.
    """

    def __init__(
        self,
        client: openai.OpenAI,
        http_client: httpx.Client,
        model: str = "dall-e-3",
        size: str = "1024x1024",
    ):
        self.client = client
        self.http_client = http_client
        self.model = model
        self.size = size

    def produce(self, prompt: str) -> bytes:
        logger.info(f"Requesting {self.size} image from {self.model}")
        try:
            response = self.client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=self.size,
            )
        except openai.OpenAIError as e:
            raise UpstreamError("Image generation failed", str(e)) from e

        if not response.data:
            raise UpstreamError("Image generation failed", "No image returned")

        image = response.data[0]
        if getattr(image, "b64_json", None):
            try:
                return base64.b64decode(image.b64_json, validate=True)
            except binascii.Error as e:
                raise UpstreamError("Image generation failed", f"Invalid image payload: {e}") from e
        if not getattr(image, "url", None):
            raise UpstreamError("Image generation failed", "No image URL returned")

        return _fetch(self.http_client, image.url, "generated image")


class CanvasImageProducer(ImageProducer):
    """Paint a placeholder: random solid background with the prompt as text.

    Args:
        width: Canvas width in pixels.
        height: Canvas height in pixels.
        rng: Random source for the background colour.
    """

    def __init__(self, width: int = 1024, height: int = 1024, rng: random.Random | None = None):
        self.width = width
        self.height = height
        self.rng = rng or random.Random()

    def produce(self, prompt: str) -> bytes:
        background = tuple(self.rng.randint(0, 255) for _ in range(3))
        canvas = Image.new("RGB", (self.width, self.height), background)
        draw = ImageDraw.Draw(canvas)
        font = ImageFont.load_default(size=max(12, self.width // 40))

        lines = textwrap.wrap(f"Mock Image: {prompt}", width=40) or [""]
        draw.multiline_text(
            (self.width / 2, self.height / 2),
            "\n".join(lines),
            fill="white",
            font=font,
            anchor="mm",
            align="center",
        )

        buffer = io.BytesIO()
        canvas.save(buffer, format="PNG")
        return buffer.getvalue()


class PlaceholderImageProducer(ImageProducer):
    """Fetch a captioned placeholder image from a third-party service.

    placehold.co answers with SVG unless a raster format is named in the
    path, so the default URL asks for PNG.  Whatever raster format arrives is
    re-encoded to PNG to match :attr:`content_type`.

    Args:
        http_client: ``httpx.Client`` used for the request.
        base_url: Placeholder service URL, without query string.
    """

    def __init__(
        self,
        http_client: httpx.Client,
        base_url: str = "https://placehold.co/600x400/random/white/png",
    ):
        self.http_client = http_client
        self.base_url = base_url

    def url_for(self, prompt: str) -> str:
        return f"{self.base_url}?text={quote(prompt)}"

    def produce(self, prompt: str) -> bytes:
        data = _fetch(self.http_client, self.url_for(prompt), "placeholder image")
        try:
            with Image.open(io.BytesIO(data)) as image:
                buffer = io.BytesIO()
                image.save(buffer, format="PNG")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise UpstreamError("Placeholder service returned an unreadable image", str(e)) from e
        return buffer.getvalue()

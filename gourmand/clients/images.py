"""OpenAI image generation client."""

import base64
import binascii
import os
from dataclasses import dataclass, field
from typing import Any, Protocol

from openai import OpenAI, OpenAIError

from gourmand.exceptions import ImageGenerationError
from gourmand.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_IMAGE_MODEL = "gpt-image-1"


@dataclass
class ImageGenerationConfig:
    """Configuration for the image generation client."""

    model: str = DEFAULT_IMAGE_MODEL
    size: str = "1024x1024"
    n: int = 1
    max_retries: int = 2
    timeout: float = 120.0


@dataclass
class GeneratedImages:
    """Decoded images returned for one prompt."""

    trace_id: str | None
    images: list[bytes] = field(default_factory=list)


class ImageGenerator(Protocol):
    def generate(self, prompt: str) -> GeneratedImages: ...


class OpenAIImageGenerator:
    """Text-to-image generation through the OpenAI Images API."""

    def __init__(self, api_key: str | None = None, config: ImageGenerationConfig | None = None, client: Any = None):
        """Initialize the generator.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            config: Generation configuration
            client: Preconfigured OpenAI client, mainly for tests
        """
        self.config = config or ImageGenerationConfig()
        if client is not None:
            self.client = client
            return

        openai_api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not openai_api_key:
            raise ValueError("OPENAI_API_KEY environment variable is required")

        self.client = OpenAI(api_key=openai_api_key, max_retries=self.config.max_retries, timeout=self.config.timeout)

    def generate(self, prompt: str) -> GeneratedImages:
        """Generate images for ``prompt``.

        Returns:
            The decoded images, possibly none

        Raises:
            ImageGenerationError: The service rejected or failed the request
        """
        params: dict[str, Any] = {
            "model": self.config.model,
            "prompt": prompt,
            "n": self.config.n,
            "size": self.config.size,
        }
        # gpt-image models always return base64; dall-e models need asking
        if self.config.model.startswith("dall-e"):
            params["response_format"] = "b64_json"

        logger.debug(f"Requesting {self.config.n} image(s) from {self.config.model}: {prompt[:80]}")
        try:
            response = self.client.images.generate(**params)
        except OpenAIError as e:
            raise ImageGenerationError(f"Image generation failed: {e}") from e

        trace_id = getattr(response, "_request_id", None) or str(getattr(response, "created", "")) or None
        images = _decode_images(response.data or [])
        logger.info(f"Image generation {trace_id} returned {len(images)} image(s)")
        return GeneratedImages(trace_id=trace_id, images=images)


def _decode_images(items: list[Any]) -> list[bytes]:
    images: list[bytes] = []
    for idx, item in enumerate(items):
        blob = getattr(item, "b64_json", None)
        if not isinstance(blob, str) or not blob:
            logger.warning(f"Image {idx} carried no inline data, skipping")
            continue
        try:
            images.append(base64.b64decode(blob))
        except (binascii.Error, ValueError):
            logger.warning(f"Image {idx} carried invalid base64 data, skipping")
    return images

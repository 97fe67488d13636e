"""Image-generation capability used by the ``generate_image`` tool."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Literal

from pydantic import BaseModel

from ragchat.config import Settings, settings
from ragchat.errors import CapabilityUnavailable

logger = logging.getLogger(__name__)

ImageSize = Literal["256x256", "512x512", "1024x1024", "1024x1792", "1792x1024"]
ImageQuality = Literal["standard", "hd"]
ImageStyle = Literal["vivid", "natural"]


class ImageResult(BaseModel):
    url: str
    revised_prompt: str | None = None


class ImageGenerator(ABC):
    """Black-box text-to-image capability."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        size: ImageSize = "1024x1024",
        quality: ImageQuality = "standard",
        style: ImageStyle = "vivid",
    ) -> ImageResult:
        ...


class OpenAIImageGenerator(ImageGenerator):
    """DALL·E via the official ``openai`` async client.

    The client is created on first use so that constructing the generator
    never fails when the key is missing; :meth:`generate` raises
    :class:`~ragchat.errors.CapabilityUnavailable` instead.
    """

    def __init__(
        self,
        api_key: str = settings.openai_api_key,
        *,
        model: str = settings.image_model,
        timeout: float = settings.request_timeout,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: Any = None

    @classmethod
    def from_settings(cls, config: Settings = settings) -> OpenAIImageGenerator:
        return cls(config.openai_api_key, model=config.image_model, timeout=config.request_timeout)

    def reset(self) -> None:
        self._client = None

    def _get_client(self) -> Any:
        if not self._api_key:
            raise CapabilityUnavailable("OpenAI API key not configured")
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self._api_key, timeout=self.timeout)
        return self._client

    async def generate(
        self,
        prompt: str,
        *,
        size: ImageSize = "1024x1024",
        quality: ImageQuality = "standard",
        style: ImageStyle = "vivid",
    ) -> ImageResult:
        from openai import OpenAIError

        client = self._get_client()
        logger.info("Generating image with prompt: %r", prompt)
        try:
            response = await client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=size,
                quality=quality,
                style=style,
            )
        except OpenAIError as exc:
            raise CapabilityUnavailable(f"Image generation failed: {exc}") from exc

        if not response.data or not response.data[0].url:
            raise CapabilityUnavailable("No image URL returned from image model")

        image = response.data[0]
        return ImageResult(url=image.url, revised_prompt=image.revised_prompt)

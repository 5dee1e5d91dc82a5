"""OpenAI text and image generation."""

from __future__ import annotations

import base64
from typing import Callable

import httpx
from openai import APIStatusError, AsyncOpenAI, OpenAIError

from openvideogen.common.config import Settings
from openvideogen.common.errors import ProviderError
from openvideogen.common.logging import get_logger
from openvideogen.providers.base import (
    GeneratedMedia,
    HttpProvider,
    ImageRequest,
    TextRequest,
    require_media,
)

logger = get_logger(__name__)

IMAGE_SIZE = "1024x1024"


class OpenAIProvider(HttpProvider):
    """Streams chat completions for scripts and renders images."""

    provider = "openai"

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        client_factory: Callable[[str], AsyncOpenAI] | None = None,
    ):
        super().__init__(settings=settings, http_client=http_client)
        self._client_factory = client_factory or self._default_client

    def _default_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=api_key,
            timeout=self.settings.http_timeout_seconds,
            http_client=self._http_client,
        )

    def _translate(self, error: OpenAIError) -> ProviderError:
        if isinstance(error, APIStatusError):
            return ProviderError(
                error.message,
                provider=self.provider,
                code="http_error",
                status_code=error.status_code,
            )
        return ProviderError(str(error), provider=self.provider, code="api_error")

    async def generate_text(self, request: TextRequest) -> str:
        """Stream a script and return it once the stream is exhausted."""
        client = self._client_factory(self.api_key(request.key))
        parts: list[str] = []
        try:
            stream = await client.chat.completions.create(
                model=request.model,
                messages=[
                    {"role": "system", "content": self.settings.script_system_prompt},
                    {"role": "user", "content": request.prompt},
                ],
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    parts.append(delta)
        except OpenAIError as e:
            raise self._translate(e) from e

        logger.debug("openai_text_streamed", model=request.model, chunks=len(parts))
        return "".join(parts)

    async def generate_image(self, request: ImageRequest) -> GeneratedMedia:
        client = self._client_factory(self.api_key(request.key))
        options: dict = {"n": 1, "size": IMAGE_SIZE}
        if request.model.startswith("dall-e"):
            options.update(quality="standard", style="vivid", response_format="b64_json")

        try:
            response = await client.images.generate(
                model=request.model,
                prompt=request.prompt,
                **options,
            )
        except OpenAIError as e:
            raise self._translate(e) from e

        image = response.data[0] if response.data else None
        if image is None:
            raise ProviderError("No image generated", provider=self.provider, code="empty_result")

        if image.b64_json:
            media = GeneratedMedia(base64.b64decode(image.b64_json), "image/png")
            return require_media(media, self.provider)

        if image.url:
            async with self.client() as http:
                return await self.download(http, image.url, "image/png")

        raise ProviderError("No image generated", provider=self.provider, code="empty_result")

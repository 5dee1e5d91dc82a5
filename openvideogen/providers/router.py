"""Routes each generation request to the provider that serves its model."""

from __future__ import annotations

import httpx

from openvideogen.common.config import Settings, get_settings
from openvideogen.common.logging import get_logger
from openvideogen.providers.anthropic_provider import AnthropicProvider
from openvideogen.providers.base import (
    AudioGenerator,
    AudioRequest,
    GeneratedMedia,
    ImageGenerator,
    ImageRequest,
    TextGenerator,
    TextRequest,
    VideoGenerator,
    VideoRequest,
)
from openvideogen.providers.elevenlabs_provider import ElevenLabsProvider
from openvideogen.providers.openai_provider import OpenAIProvider
from openvideogen.providers.replicate_provider import ReplicateProvider

logger = get_logger(__name__)


def route_text_model(model: str) -> str:
    if model.startswith("gpt-"):
        return "openai"
    elif model.startswith("claude-"):
        return "anthropic"
    elif "meta-llama" in model:
        return "replicate"
    return "openai"


def route_image_model(model: str) -> str:
    if "black-forest-labs" in model:
        return "replicate"
    return "openai"


def route_audio_model(model: str) -> str:
    if "resemble-ai" in model:
        return "replicate"
    return "elevenlabs"


def route_video_model(model: str) -> str:
    return "replicate"


class ProviderRouter:
    """One object that satisfies all four generation contracts."""

    def __init__(
        self,
        openai: OpenAIProvider,
        anthropic: AnthropicProvider,
        replicate: ReplicateProvider,
        elevenlabs: ElevenLabsProvider,
    ):
        self._text: dict[str, TextGenerator] = {
            "openai": openai,
            "anthropic": anthropic,
            "replicate": replicate,
        }
        self._image: dict[str, ImageGenerator] = {"openai": openai, "replicate": replicate}
        self._audio: dict[str, AudioGenerator] = {"elevenlabs": elevenlabs, "replicate": replicate}
        self._video: dict[str, VideoGenerator] = {"replicate": replicate}

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "ProviderRouter":
        settings = settings or get_settings()
        return cls(
            openai=OpenAIProvider(settings, http_client=http_client),
            anthropic=AnthropicProvider(settings, http_client=http_client),
            replicate=ReplicateProvider(settings, http_client=http_client),
            elevenlabs=ElevenLabsProvider(settings, http_client=http_client),
        )

    async def generate_text(self, request: TextRequest) -> str:
        provider = route_text_model(request.model)
        logger.debug("route_text", model=request.model, provider=provider)
        return await self._text[provider].generate_text(request)

    async def generate_image(self, request: ImageRequest) -> GeneratedMedia:
        provider = route_image_model(request.model)
        logger.debug("route_image", model=request.model, provider=provider)
        return await self._image[provider].generate_image(request)

    async def generate_audio(self, request: AudioRequest) -> GeneratedMedia:
        provider = route_audio_model(request.model)
        logger.debug("route_audio", model=request.model, provider=provider)
        return await self._audio[provider].generate_audio(request)

    async def generate_video(self, request: VideoRequest) -> GeneratedMedia:
        provider = route_video_model(request.model)
        logger.debug("route_video", model=request.model, provider=provider)
        return await self._video[provider].generate_video(request)


_ROUTES = {
    "text": route_text_model,
    "image": route_image_model,
    "audio": route_audio_model,
    "video": route_video_model,
}


def provider_for(category: str, model: str) -> str:
    """Provider id that serves model for a catalog category."""
    try:
        route = _ROUTES[category]
    except KeyError:
        raise ValueError(f"Unknown model category: {category}") from None
    return route(model)

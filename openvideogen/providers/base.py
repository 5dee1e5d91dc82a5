"""Generation collaborator contracts and shared provider plumbing."""

from __future__ import annotations

import base64
import mimetypes
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict

from openvideogen.common.config import Settings, get_settings
from openvideogen.common.errors import ApiKeyMissingError, ProviderError
from openvideogen.common.logging import get_logger

logger = get_logger(__name__)

# Settings attribute holding the server-side key for each provider.
PROVIDER_KEY_SETTINGS = {
    "openai": "openai_api_key",
    "anthropic": "anthropic_api_key",
    "replicate": "replicate_api_token",
    "elevenlabs": "elevenlabs_api_key",
}


class TextRequest(BaseModel):
    """Script generation request."""

    model_config = ConfigDict(frozen=True)

    model: str
    prompt: str
    key: str | None = None


class ImageRequest(BaseModel):
    """Image generation request, optionally with an image to edit."""

    model_config = ConfigDict(frozen=True)

    model: str
    prompt: str
    input_image: bytes | None = None
    input_image_type: str = "image/jpeg"
    key: str | None = None


class AudioRequest(BaseModel):
    """Speech synthesis request."""

    model_config = ConfigDict(frozen=True)

    model: str
    text: str
    key: str | None = None


class VideoRequest(BaseModel):
    """Talking-head video request: a face image driven by an audio track."""

    model_config = ConfigDict(frozen=True)

    model: str
    image: bytes
    audio: bytes
    image_type: str = "image/png"
    audio_type: str = "audio/mpeg"
    key: str | None = None


@dataclass(frozen=True)
class GeneratedMedia:
    """Raw bytes returned by a collaborator, with their MIME type."""

    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@runtime_checkable
class TextGenerator(Protocol):
    async def generate_text(self, request: TextRequest) -> str:
        """Return the complete generated text."""
        ...


@runtime_checkable
class ImageGenerator(Protocol):
    async def generate_image(self, request: ImageRequest) -> GeneratedMedia:
        ...


@runtime_checkable
class AudioGenerator(Protocol):
    async def generate_audio(self, request: AudioRequest) -> GeneratedMedia:
        ...


@runtime_checkable
class VideoGenerator(Protocol):
    async def generate_video(self, request: VideoRequest) -> GeneratedMedia:
        ...


def resolve_api_key(
    provider: str,
    user_key: str | None,
    settings: Settings | None = None,
) -> str:
    """Pick the key for a provider call.

    The configured key wins; the per-request user key is the fallback.

    Raises:
        ApiKeyMissingError: If neither is available.
    """
    settings = settings or get_settings()
    attr = PROVIDER_KEY_SETTINGS.get(provider)
    configured = getattr(settings, attr, "") if attr else ""
    key = configured or user_key
    if not key:
        raise ApiKeyMissingError(provider)
    return key


def require_media(media: GeneratedMedia, provider: str) -> GeneratedMedia:
    """Reject empty collaborator output."""
    if not media.data:
        raise ProviderError("Provider returned no data", provider=provider, code="empty_result")
    return media


def to_data_uri(data: bytes, content_type: str) -> str:
    """Inline bytes as a data URI for APIs that take file inputs by URL."""
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def guess_content_type(url: str, default: str) -> str:
    guessed, _ = mimetypes.guess_type(url.split("?", 1)[0])
    return guessed or default


class HttpProvider:
    """Base for providers reached over plain HTTP.

    A shared httpx.AsyncClient may be injected (tests use MockTransport);
    otherwise each call opens its own client.
    """

    provider: str = "unknown"

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self._http_client = http_client

    def api_key(self, user_key: str | None) -> str:
        return resolve_api_key(self.provider, user_key, self.settings)

    @asynccontextmanager
    async def client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
        else:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout_seconds,
                follow_redirects=True,
            ) as client:
                yield client

    async def request(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs,
    ) -> httpx.Response:
        """Send a request, translating transport and status failures."""
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = e.response.text[:300]
            logger.error(
                "provider_http_error",
                provider=self.provider,
                status=e.response.status_code,
                url=url,
            )
            raise ProviderError(
                body or f"HTTP {e.response.status_code}",
                provider=self.provider,
                code="http_error",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error("provider_transport_error", provider=self.provider, error=str(e))
            raise ProviderError(str(e), provider=self.provider, code="transport_error") from e
        return response

    async def download(
        self,
        client: httpx.AsyncClient,
        url: str,
        default_type: str,
    ) -> GeneratedMedia:
        """Fetch a generated file from the provider's delivery URL."""
        response = await self.request(client, "GET", url)
        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not content_type or content_type == "application/octet-stream":
            content_type = guess_content_type(url, default_type)
        return require_media(GeneratedMedia(response.content, content_type), self.provider)

"""Unit tests for provider clients, routed through httpx.MockTransport."""

import base64
import json
from types import SimpleNamespace

import httpx
import pytest

from openvideogen.common.config import Settings
from openvideogen.common.errors import ApiKeyMissingError, ProviderError
from openvideogen.providers import (
    AnthropicProvider,
    ElevenLabsProvider,
    OpenAIProvider,
    ProviderRouter,
    ReplicateProvider,
    resolve_api_key,
)
from openvideogen.providers.base import (
    AudioRequest,
    GeneratedMedia,
    ImageRequest,
    TextRequest,
    VideoRequest,
    to_data_uri,
)
from openvideogen.providers.router import (
    provider_for,
    route_audio_model,
    route_image_model,
    route_text_model,
)


def make_settings(**overrides) -> Settings:
    values = {
        "openai_api_key": "",
        "anthropic_api_key": "",
        "replicate_api_token": "",
        "elevenlabs_api_key": "",
        "replicate_poll_interval_seconds": 0.0,
        "replicate_max_poll_attempts": 5,
    }
    values.update(overrides)
    return Settings(**values)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestResolveApiKey:
    """Tests for key precedence."""

    def test_configured_key_wins(self):
        settings = make_settings(elevenlabs_api_key="server-key")
        assert resolve_api_key("elevenlabs", "user-key", settings) == "server-key"

    def test_user_key_fallback(self):
        assert resolve_api_key("anthropic", "user-key", make_settings()) == "user-key"

    def test_missing_key(self):
        with pytest.raises(ApiKeyMissingError) as exc_info:
            resolve_api_key("replicate", None, make_settings())
        assert exc_info.value.code == "api_key_missing"
        assert exc_info.value.provider == "replicate"


class TestElevenLabsProvider:
    """Tests for ElevenLabsProvider."""

    @pytest.mark.asyncio
    async def test_generate_audio(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=b"mp3-bytes")

        settings = make_settings(elevenlabs_api_key="el-key")
        async with mock_client(handler) as client:
            provider = ElevenLabsProvider(settings, http_client=client)
            media = await provider.generate_audio(
                AudioRequest(model="eleven_multilingual_v2", text="Hello")
            )

        assert media == GeneratedMedia(b"mp3-bytes", "audio/mpeg")
        assert f"/text-to-speech/{settings.elevenlabs_voice_id}" in seen["url"]
        assert "output_format=mp3_44100_128" in seen["url"]
        assert seen["headers"]["xi-api-key"] == "el-key"
        assert seen["body"] == {"text": "Hello", "model_id": "eleven_multilingual_v2"}

    @pytest.mark.asyncio
    async def test_http_error_translated(self):
        def handler(request):
            return httpx.Response(401, text="invalid api key")

        async with mock_client(handler) as client:
            provider = ElevenLabsProvider(make_settings(), http_client=client)
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate_audio(AudioRequest(model="m", text="x", key="bad"))

        assert exc_info.value.code == "http_error"
        assert exc_info.value.status_code == 401
        assert "invalid api key" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_audio_rejected(self):
        async with mock_client(lambda r: httpx.Response(200, content=b"")) as client:
            provider = ElevenLabsProvider(make_settings(), http_client=client)
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate_audio(AudioRequest(model="m", text="x", key="k"))
        assert exc_info.value.code == "empty_result"


class TestAnthropicProvider:
    """Tests for AnthropicProvider."""

    @pytest.mark.asyncio
    async def test_generate_text(self):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "content": [
                        {"type": "text", "text": "Part one. "},
                        {"type": "tool_use", "id": "x"},
                        {"type": "text", "text": "Part two."},
                    ]
                },
            )

        async with mock_client(handler) as client:
            provider = AnthropicProvider(make_settings(), http_client=client)
            text = await provider.generate_text(
                TextRequest(model="claude-sonnet-4-20250514", prompt="Pitch", key="user-key")
            )

        assert text == "Part one. Part two."
        assert seen["headers"]["x-api-key"] == "user-key"
        assert seen["headers"]["anthropic-version"] == "2023-06-01"
        assert seen["body"]["model"] == "claude-sonnet-4-20250514"
        assert seen["body"]["messages"] == [{"role": "user", "content": "Pitch"}]
        assert seen["body"]["system"]

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        async with mock_client(handler) as client:
            provider = AnthropicProvider(make_settings(), http_client=client)
            with pytest.raises(ApiKeyMissingError):
                await provider.generate_text(TextRequest(model="claude-x", prompt="p"))


class TestReplicateProvider:
    """Tests for ReplicateProvider."""

    @pytest.mark.asyncio
    async def test_video_prediction_polls_and_downloads(self):
        calls = []

        def handler(request):
            calls.append((request.method, str(request.url)))
            if request.method == "POST":
                body = json.loads(request.content)
                assert body["version"] == "abc123"
                assert body["input"]["keep_resolution"] is True
                assert body["input"]["image"] == to_data_uri(b"img", "image/png")
                return httpx.Response(
                    201,
                    json={"id": "p1", "status": "starting", "urls": {"get": "https://api.replicate.com/v1/predictions/p1"}},
                )
            if "predictions/p1" in str(request.url):
                polls = sum(1 for m, u in calls if "predictions/p1" in u and m == "GET")
                if polls < 2:
                    return httpx.Response(200, json={"id": "p1", "status": "processing"})
                return httpx.Response(
                    200,
                    json={"id": "p1", "status": "succeeded", "output": "https://files.example/out.mp4"},
                )
            return httpx.Response(200, content=b"mp4-bytes", headers={"content-type": "video/mp4"})

        async with mock_client(handler) as client:
            provider = ReplicateProvider(make_settings(replicate_api_token="r8"), http_client=client)
            media = await provider.generate_video(
                VideoRequest(model="zsxkib/sonic:abc123", image=b"img", audio=b"aud")
            )

        assert media == GeneratedMedia(b"mp4-bytes", "video/mp4")
        assert calls[0] == ("POST", "https://api.replicate.com/v1/predictions")
        assert calls[-1] == ("GET", "https://files.example/out.mp4")

    @pytest.mark.asyncio
    async def test_unversioned_model_uses_model_endpoint(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            if request.method == "POST":
                return httpx.Response(
                    201,
                    json={"id": "p2", "status": "succeeded", "output": ["https://files.example/a.jpg"]},
                )
            return httpx.Response(200, content=b"jpg", headers={"content-type": "application/octet-stream"})

        async with mock_client(handler) as client:
            provider = ReplicateProvider(make_settings(replicate_api_token="r8"), http_client=client)
            media = await provider.generate_image(
                ImageRequest(model="black-forest-labs/flux-kontext-pro", prompt="p")
            )

        assert seen[0] == "https://api.replicate.com/v1/models/black-forest-labs/flux-kontext-pro/predictions"
        assert media.content_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_text_output_tokens_joined(self):
        def handler(request):
            return httpx.Response(201, json={"id": "p3", "status": "succeeded", "output": ["Hel", "lo"]})

        async with mock_client(handler) as client:
            provider = ReplicateProvider(make_settings(replicate_api_token="r8"), http_client=client)
            text = await provider.generate_text(
                TextRequest(model="meta/meta-llama-3-70b-instruct", prompt="p")
            )

        assert text == "Hello"

    @pytest.mark.asyncio
    async def test_failed_prediction(self):
        def handler(request):
            return httpx.Response(201, json={"id": "p4", "status": "failed", "error": "NSFW"})

        async with mock_client(handler) as client:
            provider = ReplicateProvider(make_settings(replicate_api_token="r8"), http_client=client)
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate_audio(AudioRequest(model="resemble-ai/chatterbox", text="t"))

        assert exc_info.value.code == "prediction_failed"
        assert "NSFW" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_poll_timeout(self):
        def handler(request):
            return httpx.Response(200, json={"id": "p5", "status": "processing"})

        settings = make_settings(replicate_api_token="r8", replicate_max_poll_attempts=2)
        async with mock_client(handler) as client:
            provider = ReplicateProvider(settings, http_client=client)
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate_audio(AudioRequest(model="resemble-ai/chatterbox", text="t"))

        assert exc_info.value.code == "timeout"


class TestOpenAIProvider:
    """Tests for OpenAIProvider with a stubbed SDK client."""

    @pytest.mark.asyncio
    async def test_streams_text(self):
        chunks = [
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content="Hi "))]),
            SimpleNamespace(choices=[]),
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=None))]),
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content="there"))]),
        ]

        async def stream():
            for chunk in chunks:
                yield chunk

        recorded = {}

        async def create(**kwargs):
            recorded.update(kwargs)
            return stream()

        sdk = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
        provider = OpenAIProvider(make_settings(openai_api_key="sk"), client_factory=lambda key: sdk)

        text = await provider.generate_text(TextRequest(model="gpt-4o", prompt="Pitch"))

        assert text == "Hi there"
        assert recorded["stream"] is True
        assert recorded["messages"][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_image_b64(self):
        recorded = {}

        async def generate(**kwargs):
            recorded.update(kwargs)
            return SimpleNamespace(
                data=[SimpleNamespace(b64_json=base64.b64encode(b"png").decode(), url=None)]
            )

        sdk = SimpleNamespace(images=SimpleNamespace(generate=generate))
        keys = []
        provider = OpenAIProvider(
            make_settings(),
            client_factory=lambda key: keys.append(key) or sdk,
        )

        media = await provider.generate_image(ImageRequest(model="dall-e-3", prompt="face", key="user"))

        assert media == GeneratedMedia(b"png", "image/png")
        assert keys == ["user"]
        assert recorded["response_format"] == "b64_json"
        assert recorded["size"] == "1024x1024"


class TestRouter:
    """Tests for model routing."""

    @pytest.mark.parametrize(
        "model,provider",
        [
            ("gpt-4o", "openai"),
            ("claude-sonnet-4-20250514", "anthropic"),
            ("meta/meta-llama-3-70b-instruct", "replicate"),
            ("something-else", "openai"),
        ],
    )
    def test_text_routes(self, model, provider):
        assert route_text_model(model) == provider

    def test_media_routes(self):
        assert route_image_model("black-forest-labs/flux-kontext-max") == "replicate"
        assert route_image_model("dall-e-3") == "openai"
        assert route_audio_model("resemble-ai/chatterbox") == "replicate"
        assert route_audio_model("eleven_multilingual_v2") == "elevenlabs"
        assert provider_for("video", "zsxkib/sonic:abc") == "replicate"

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            provider_for("smell", "x")

    @pytest.mark.asyncio
    async def test_router_dispatches_audio(self):
        hits = []

        def handler(request):
            hits.append(request.url.host)
            return httpx.Response(200, content=b"mp3")

        async with mock_client(handler) as client:
            router = ProviderRouter.from_settings(make_settings(elevenlabs_api_key="k"), http_client=client)
            media = await router.generate_audio(AudioRequest(model="eleven_multilingual_v2", text="x"))

        assert media.data == b"mp3"
        assert hits == ["api.elevenlabs.io"]

"""ElevenLabs text-to-speech."""

from __future__ import annotations

from openvideogen.providers.base import (
    AudioRequest,
    GeneratedMedia,
    HttpProvider,
    require_media,
)

ELEVENLABS_API_BASE = "https://api.elevenlabs.io/v1"
DEFAULT_TTS_MODEL = "eleven_multilingual_v2"


class ElevenLabsProvider(HttpProvider):
    """Synthesises the script with a fixed narrator voice."""

    provider = "elevenlabs"

    async def generate_audio(self, request: AudioRequest) -> GeneratedMedia:
        voice_id = self.settings.elevenlabs_voice_id
        url = f"{ELEVENLABS_API_BASE}/text-to-speech/{voice_id}"
        headers = {
            "xi-api-key": self.api_key(request.key),
            "accept": "audio/mpeg",
        }
        payload = {
            "text": request.text,
            "model_id": request.model or DEFAULT_TTS_MODEL,
        }

        async with self.client() as client:
            response = await self.request(
                client,
                "POST",
                url,
                headers=headers,
                params={"output_format": self.settings.elevenlabs_output_format},
                json=payload,
            )

        return require_media(GeneratedMedia(response.content, "audio/mpeg"), self.provider)

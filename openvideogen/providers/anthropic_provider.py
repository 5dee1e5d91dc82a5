"""Anthropic Messages API for script generation."""

from __future__ import annotations

from openvideogen.common.errors import ProviderError
from openvideogen.providers.base import HttpProvider, TextRequest

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 1024


class AnthropicProvider(HttpProvider):
    provider = "anthropic"

    async def generate_text(self, request: TextRequest) -> str:
        headers = {
            "x-api-key": self.api_key(request.key),
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        payload = {
            "model": request.model,
            "max_tokens": MAX_TOKENS,
            "system": self.settings.script_system_prompt,
            "messages": [{"role": "user", "content": request.prompt}],
        }

        async with self.client() as client:
            response = await self.request(
                client, "POST", ANTHROPIC_API_URL, headers=headers, json=payload
            )

        try:
            blocks = response.json().get("content", [])
        except ValueError as e:
            raise ProviderError(
                "Malformed response body", provider=self.provider, code="malformed_response"
            ) from e

        return "".join(
            block.get("text", "") for block in blocks if block.get("type") == "text"
        )

"""Replicate predictions: Llama scripts, Flux Kontext images, Chatterbox speech, Sonic video."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from openvideogen.common.errors import ProviderError
from openvideogen.common.logging import get_logger
from openvideogen.providers.base import (
    AudioRequest,
    GeneratedMedia,
    HttpProvider,
    ImageRequest,
    TextRequest,
    VideoRequest,
    to_data_uri,
)

logger = get_logger(__name__)

REPLICATE_API_BASE = "https://api.replicate.com/v1"

TERMINAL_STATUSES = ("succeeded", "failed", "canceled")


class ReplicateProvider(HttpProvider):
    """Runs a prediction, waits for it to settle and fetches its output.

    Model references are either ``owner/name`` (latest version) or
    ``owner/name:version``.
    """

    provider = "replicate"

    def _headers(self, key: str | None) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key(key)}",
            "Content-Type": "application/json",
            "Prefer": "wait",
        }

    @staticmethod
    def _create_call(model: str, inputs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        if ":" in model:
            _, version = model.split(":", 1)
            return f"{REPLICATE_API_BASE}/predictions", {"version": version, "input": inputs}
        return f"{REPLICATE_API_BASE}/models/{model}/predictions", {"input": inputs}

    async def run(
        self,
        client: httpx.AsyncClient,
        model: str,
        inputs: dict[str, Any],
        key: str | None,
    ) -> Any:
        """Create a prediction and poll it until it reaches a terminal state.

        Returns:
            The prediction's ``output`` field.
        """
        headers = self._headers(key)
        url, payload = self._create_call(model, inputs)

        logger.info(
            "replicate_prediction_create",
            model=model,
            inputs=sorted(inputs),
        )
        response = await self.request(client, "POST", url, headers=headers, json=payload)
        prediction = response.json()

        attempts = 0
        while prediction.get("status") not in TERMINAL_STATUSES:
            if attempts >= self.settings.replicate_max_poll_attempts:
                raise ProviderError(
                    f"Prediction {prediction.get('id')} did not finish",
                    provider=self.provider,
                    code="timeout",
                )
            attempts += 1
            await asyncio.sleep(self.settings.replicate_poll_interval_seconds)

            poll_url = prediction.get("urls", {}).get("get") or (
                f"{REPLICATE_API_BASE}/predictions/{prediction['id']}"
            )
            response = await self.request(client, "GET", poll_url, headers=headers)
            prediction = response.json()

        status = prediction.get("status")
        logger.info(
            "replicate_prediction_settled",
            id=prediction.get("id"),
            status=status,
            polls=attempts,
        )
        if status != "succeeded":
            raise ProviderError(
                str(prediction.get("error") or f"Prediction {status}"),
                provider=self.provider,
                code="prediction_failed",
            )

        output = prediction.get("output")
        if output in (None, "", []):
            raise ProviderError("Prediction produced no output", provider=self.provider, code="empty_result")
        return output

    async def _run_for_file(
        self,
        model: str,
        inputs: dict[str, Any],
        key: str | None,
        default_type: str,
    ) -> GeneratedMedia:
        async with self.client() as client:
            output = await self.run(client, model, inputs, key)
            # Multi-file outputs: the first file is the result.
            url = output[0] if isinstance(output, list) else output
            if not isinstance(url, str):
                raise ProviderError(
                    f"Unexpected output type {type(url).__name__}",
                    provider=self.provider,
                    code="malformed_response",
                )
            return await self.download(client, url, default_type)

    async def generate_text(self, request: TextRequest) -> str:
        inputs = {
            "prompt": request.prompt,
            "system_prompt": self.settings.script_system_prompt,
        }
        async with self.client() as client:
            output = await self.run(client, request.model, inputs, request.key)
        # Language models stream tokens into a list.
        if isinstance(output, list):
            return "".join(str(token) for token in output)
        return str(output)

    async def generate_image(self, request: ImageRequest) -> GeneratedMedia:
        inputs: dict[str, Any] = {"prompt": request.prompt, "output_format": "jpg"}
        if request.input_image:
            inputs["input_image"] = to_data_uri(request.input_image, request.input_image_type)
        return await self._run_for_file(request.model, inputs, request.key, "image/jpeg")

    async def generate_audio(self, request: AudioRequest) -> GeneratedMedia:
        inputs = {"prompt": request.text}
        return await self._run_for_file(request.model, inputs, request.key, "audio/wav")

    async def generate_video(self, request: VideoRequest) -> GeneratedMedia:
        inputs = {
            "image": to_data_uri(request.image, request.image_type),
            "audio": to_data_uri(request.audio, request.audio_type),
            "keep_resolution": True,
        }
        return await self._run_for_file(request.model, inputs, request.key, "video/mp4")

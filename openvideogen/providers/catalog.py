"""Provider and model catalog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ModelCategory = Literal["text", "image", "audio", "video"]


@dataclass(frozen=True)
class ProviderInfo:
    id: str
    name: str
    website: str


@dataclass(frozen=True)
class ModelInfo:
    """A selectable model. `name` is what the provider API expects."""

    id: str
    name: str
    display_name: str
    provider_id: str
    category: ModelCategory
    description: str = ""


PROVIDERS: dict[str, ProviderInfo] = {
    "openai": ProviderInfo("openai", "OpenAI", "https://openai.com"),
    "anthropic": ProviderInfo("anthropic", "Anthropic", "https://anthropic.com"),
    "elevenlabs": ProviderInfo("elevenlabs", "ElevenLabs", "https://elevenlabs.io"),
    "replicate": ProviderInfo("replicate", "Replicate", "https://replicate.com"),
    "resemble": ProviderInfo("resemble", "Resemble AI", "https://resemble.ai"),
    "blackforest": ProviderInfo("blackforest", "Black Forest Labs", "https://blackforestlabs.ai"),
}

MODELS: list[ModelInfo] = [
    # Text
    ModelInfo(
        "gpt-4o", "gpt-4o", "GPT-4o", "openai", "text",
        "Most capable model for complex reasoning and creative tasks",
    ),
    ModelInfo(
        "claude-4-sonnet", "claude-sonnet-4-20250514", "Claude 4 Sonnet", "anthropic", "text",
        "High-performance model with strong reasoning and efficiency",
    ),
    ModelInfo(
        "llama-3-70b", "meta/meta-llama-3-70b-instruct", "Llama 3 70B", "replicate", "text",
        "Open-source large language model with 70 billion parameters",
    ),
    # Image
    ModelInfo(
        "dall-e-3", "dall-e-3", "DALL-E 3", "openai", "image",
        "Image generation with strong prompt adherence",
    ),
    ModelInfo(
        "flux-kontext-pro", "black-forest-labs/flux-kontext-pro", "Flux Kontext Pro",
        "blackforest", "image",
        "Context-aware image editing and generation model",
    ),
    ModelInfo(
        "flux-kontext-max", "black-forest-labs/flux-kontext-max", "Flux Kontext Max",
        "blackforest", "image",
        "Maximum performance for typography and transformation",
    ),
    # Audio
    ModelInfo(
        "eleven_multilingual_v2", "eleven_multilingual_v2", "Multilingual v2",
        "elevenlabs", "audio",
        "High-quality voices across 32 languages",
    ),
    ModelInfo(
        "chatterbox", "resemble-ai/chatterbox", "Chatterbox", "resemble", "audio",
        "Open-source TTS with emotion control and natural speech quality",
    ),
    # Video
    ModelInfo(
        "zsxkib/sonic",
        "zsxkib/sonic:a2aad29ea95f19747a5ea22ab14fc6594654506e5815f7f5ba4293e888d3e20f",
        "Sonic", "replicate", "video",
        "Realistic talking face animations with expressive movements",
    ),
]

DEFAULT_MODELS: dict[ModelCategory, str] = {
    "text": "gpt-4o",
    "image": "dall-e-3",
    "audio": "eleven_multilingual_v2",
    "video": "zsxkib/sonic",
}


def get_models_by_category(category: ModelCategory) -> list[ModelInfo]:
    return [m for m in MODELS if m.category == category]


def get_model_by_id(model_id: str) -> ModelInfo | None:
    for model in MODELS:
        if model.id == model_id:
            return model
    return None


def get_provider_by_id(provider_id: str) -> ProviderInfo | None:
    return PROVIDERS.get(provider_id)


def resolve_model_name(model_id: str) -> str:
    """Map a catalog id to the provider's model name.

    Ids that are not in the catalog are taken to be raw model names.
    """
    model = get_model_by_id(model_id)
    return model.name if model else model_id


def get_model_display_name(model_id: str) -> str:
    """Provider-qualified display name, e.g. "OpenAI GPT-4o"."""
    model = get_model_by_id(model_id)
    if model is None:
        return model_id
    provider = get_provider_by_id(model.provider_id)
    if provider is None:
        return model.display_name
    return f"{provider.name} {model.display_name}"


def supports_input_image(model_name: str) -> bool:
    """Edit-style image models take the current image as context."""
    return "flux-kontext" in model_name

"""Generation collaborators: contracts, model catalog and provider clients."""

from openvideogen.providers.base import (
    AudioGenerator,
    AudioRequest,
    GeneratedMedia,
    HttpProvider,
    ImageGenerator,
    ImageRequest,
    TextGenerator,
    TextRequest,
    VideoGenerator,
    VideoRequest,
    resolve_api_key,
)
from openvideogen.providers.catalog import (
    DEFAULT_MODELS,
    MODELS,
    PROVIDERS,
    ModelInfo,
    ProviderInfo,
    get_model_by_id,
    get_model_display_name,
    get_models_by_category,
    resolve_model_name,
    supports_input_image,
)
from openvideogen.providers.anthropic_provider import AnthropicProvider
from openvideogen.providers.elevenlabs_provider import ElevenLabsProvider
from openvideogen.providers.openai_provider import OpenAIProvider
from openvideogen.providers.replicate_provider import ReplicateProvider
from openvideogen.providers.router import ProviderRouter
from openvideogen.providers.stub import StubProvider

__all__ = [
    # Contracts
    "AudioGenerator",
    "AudioRequest",
    "GeneratedMedia",
    "HttpProvider",
    "ImageGenerator",
    "ImageRequest",
    "TextGenerator",
    "TextRequest",
    "VideoGenerator",
    "VideoRequest",
    "resolve_api_key",
    # Catalog
    "DEFAULT_MODELS",
    "MODELS",
    "PROVIDERS",
    "ModelInfo",
    "ProviderInfo",
    "get_model_by_id",
    "get_model_display_name",
    "get_models_by_category",
    "resolve_model_name",
    "supports_input_image",
    # Providers
    "AnthropicProvider",
    "ElevenLabsProvider",
    "OpenAIProvider",
    "ReplicateProvider",
    "ProviderRouter",
    "StubProvider",
]

"""Configuration management."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SCRIPT_WRITER_SYSTEM_PROMPT = (
    "You are a creative scriptwriter for short-form videos. Generate concise, "
    "engaging scripts that can be spoken in 30 seconds or less. Focus on clear, "
    "conversational language that works well for video content. Keep it punchy "
    "and memorable. Don't include any background cues - these will be verbatim "
    "spoken by one person. Ensure they're extremely short."
)


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "openvideogen"
    log_level: str = "INFO"
    json_logs: bool = False

    # Local storage
    storage_backend: Literal["filesystem", "sqlite", "memory"] = "filesystem"
    storage_dir: Path = Path(".openvideogen")
    handle_cache_dir: Path | None = None

    # Provider keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    replicate_api_token: str = ""
    elevenlabs_api_key: str = ""

    # Default models (catalog ids)
    default_text_model: str = "gpt-4o"
    default_image_model: str = "dall-e-3"
    default_audio_model: str = "eleven_multilingual_v2"
    default_video_model: str = "zsxkib/sonic"

    # ElevenLabs
    elevenlabs_voice_id: str = "Fxt4GZnlXkUGMtWSYIcm"
    elevenlabs_output_format: str = "mp3_44100_128"

    # Replicate
    replicate_poll_interval_seconds: float = 2.0
    replicate_max_poll_attempts: int = 300

    # Transport
    http_timeout_seconds: float = 60.0

    # Prompts
    default_script_prompt: str = (
        "Generate a short, engaging script for a 30-second video about AI "
        "technology. Keep it conversational and exciting."
    )
    default_image_prompt: str = "A professional portrait of a person speaking to camera"
    script_system_prompt: str = Field(default=SCRIPT_WRITER_SYSTEM_PROMPT)

    @property
    def resolved_handle_cache_dir(self) -> Path:
        """Directory display handles are materialised into."""
        return self.handle_cache_dir or self.storage_dir / "handles"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

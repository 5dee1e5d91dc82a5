"""In-memory pipeline selection state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from openvideogen.common.errors import InvalidAssetError
from openvideogen.common.models import MEDIA_ASSET_TYPES, AssetType, now_ms
from openvideogen.providers.catalog import DEFAULT_MODELS


class Stage(str, Enum):
    """One step of the generation pipeline."""

    SCRIPT = "script"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"


def require_media_type(asset_type: AssetType | str) -> AssetType:
    """Coerce to one of the selectable media types."""
    try:
        kind = AssetType(asset_type)
    except ValueError as e:
        raise InvalidAssetError(f"Unknown asset type: {asset_type!r}") from e
    if kind not in MEDIA_ASSET_TYPES:
        raise InvalidAssetError(f"Assets of type {kind.value!r} are not selectable")
    return kind


@dataclass
class PipelineSelection:
    """Script text plus the active asset per media type.

    Lives only as long as the session; startup recovery rebuilds it from
    the manifest.
    """

    script: str = ""
    image_asset_id: str | None = None
    audio_asset_id: str | None = None
    video_asset_id: str | None = None

    def get(self, asset_type: AssetType) -> str | None:
        return getattr(self, f"{require_media_type(asset_type).value}_asset_id")

    def set(self, asset_type: AssetType, asset_id: str | None) -> None:
        setattr(self, f"{require_media_type(asset_type).value}_asset_id", asset_id)

    def type_of(self, asset_id: str) -> AssetType | None:
        """Media type under which asset_id is currently selected."""
        for kind in MEDIA_ASSET_TYPES:
            if self.get(kind) == asset_id:
                return kind
        return None

    def clear(self) -> None:
        self.script = ""
        for kind in MEDIA_ASSET_TYPES:
            self.set(kind, None)

    def to_dict(self) -> dict:
        return {
            "script": self.script,
            "image_asset_id": self.image_asset_id,
            "audio_asset_id": self.audio_asset_id,
            "video_asset_id": self.video_asset_id,
        }


@dataclass
class StageModels:
    """Model choice (catalog id or raw model name) for each stage."""

    text: str = DEFAULT_MODELS["text"]
    image: str = DEFAULT_MODELS["image"]
    audio: str = DEFAULT_MODELS["audio"]
    video: str = DEFAULT_MODELS["video"]

    @classmethod
    def from_settings(cls, settings) -> "StageModels":
        return cls(
            text=settings.default_text_model,
            image=settings.default_image_model,
            audio=settings.default_audio_model,
            video=settings.default_video_model,
        )


@dataclass
class StageMetrics:
    """Counters collected for one stage."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    total_duration_seconds: float = 0.0
    last_error: str | None = None
    last_run_at: int | None = None

    def record_success(self, duration: float) -> None:
        self.total_calls += 1
        self.successful_calls += 1
        self.total_duration_seconds += duration
        self.last_run_at = now_ms()

    def record_failure(self, duration: float, error: Exception) -> None:
        self.total_calls += 1
        self.failed_calls += 1
        self.total_duration_seconds += duration
        self.last_error = f"{type(error).__name__}: {error}"
        self.last_run_at = now_ms()

    @property
    def success_rate(self) -> float:
        if self.total_calls == 0:
            return 0.0
        return self.successful_calls / self.total_calls

    def to_dict(self) -> dict:
        return {
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "success_rate": self.success_rate,
            "total_duration_seconds": round(self.total_duration_seconds, 3),
            "last_error": self.last_error,
        }


@dataclass
class StageMetricsBook:
    """StageMetrics for every stage."""

    stages: dict[Stage, StageMetrics] = field(
        default_factory=lambda: {stage: StageMetrics() for stage in Stage}
    )

    def __getitem__(self, stage: Stage) -> StageMetrics:
        return self.stages[stage]

    def to_dict(self) -> dict:
        return {stage.value: m.to_dict() for stage, m in self.stages.items()}

"""Asset models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AssetType(str, Enum):
    """Type of persisted asset."""

    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    SCRIPT = "script"


# Asset types that hold media the pipeline selects and displays.
MEDIA_ASSET_TYPES = (AssetType.IMAGE, AssetType.AUDIO, AssetType.VIDEO)


class AssetDraft(BaseModel):
    """Descriptive metadata supplied when storing an asset.

    The store fills in id, size and created_at.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: AssetType
    name: str
    prompt: str | None = None
    model: str | None = None
    content_type: str | None = None


class AssetMetadata(BaseModel):
    """Full metadata record for a stored asset, as listed in the manifest."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    type: AssetType
    name: str
    prompt: str | None = None
    model: str | None = None
    content_type: str | None = None
    created_at: int = Field(ge=0, description="Epoch milliseconds")
    size: int = Field(ge=0, description="Blob length in bytes")

    @classmethod
    def from_draft(
        cls,
        asset_id: str,
        draft: AssetDraft,
        size: int,
        created_at: int,
    ) -> "AssetMetadata":
        """Build the stored record from a caller's draft."""
        return cls(
            id=asset_id,
            size=size,
            created_at=created_at,
            **draft.model_dump(),
        )

    def summary(self) -> dict:
        """Return summary for logging."""
        return {
            "id": self.id,
            "type": self.type.value,
            "size": self.size,
            "model": self.model,
        }


@dataclass(frozen=True)
class StoredAsset:
    """A blob together with its metadata, as read back from the store."""

    blob: bytes
    metadata: AssetMetadata

    @property
    def id(self) -> str:
        return self.metadata.id

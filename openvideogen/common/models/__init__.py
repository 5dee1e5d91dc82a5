"""Data models for OpenVideoGen."""

from openvideogen.common.models.base import Clock, now_ms
from openvideogen.common.models.asset import (
    MEDIA_ASSET_TYPES,
    AssetDraft,
    AssetMetadata,
    AssetType,
    StoredAsset,
)

__all__ = [
    # Base
    "Clock",
    "now_ms",
    # Asset
    "MEDIA_ASSET_TYPES",
    "AssetDraft",
    "AssetMetadata",
    "AssetType",
    "StoredAsset",
]

"""Asset identifier scheme.

Ids look like ``{type}_{timestamp_ms}_{promptHash}_{random}``, for example
``audio_1718000000000_SGVsbG8g_k3x9qa``. The timestamp prefix keeps ids of one
type sortable by creation time, the prompt slice makes them recognisable, and
the random suffix separates ids minted in the same millisecond.
"""

from __future__ import annotations

import base64
import re
import secrets
import string
import threading
from dataclasses import dataclass

from openvideogen.common.errors import InvalidAssetError
from openvideogen.common.models import AssetType, Clock, now_ms

PROMPT_HASH_LENGTH = 8
RANDOM_SUFFIX_LENGTH = 6
MAX_ASSET_ID_LENGTH = 200

_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase
_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")
_ID_PATTERN = re.compile(
    r"^(?P<type>image|audio|video|script)_(?P<ts>\d+)_(?P<hash>.*)_(?P<rand>[0-9a-z]+)$"
)


@dataclass(frozen=True)
class AssetIdParts:
    """Components of a parsed asset id."""

    asset_type: AssetType
    timestamp: int
    prompt_hash: str
    random_suffix: str


def prompt_hash(prompt: str | None) -> str:
    """Short, reversible slice of the prompt used inside ids."""
    if not prompt:
        return ""
    encoded = base64.urlsafe_b64encode(prompt.encode("utf-8")).decode("ascii")
    return encoded.rstrip("=")[:PROMPT_HASH_LENGTH]


def random_suffix(length: int = RANDOM_SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def _coerce_type(asset_type: AssetType | str) -> AssetType:
    try:
        return AssetType(asset_type)
    except ValueError as e:
        raise InvalidAssetError(f"Unknown asset type: {asset_type!r}") from e


class AssetIdGenerator:
    """Mints asset ids with a strictly increasing timestamp component.

    Two ids requested in the same millisecond get consecutive timestamps, so
    ids from one generator never collide on the time component.
    """

    def __init__(self, clock: Clock = now_ms):
        self._clock = clock
        self._last_timestamp = 0
        self._lock = threading.Lock()

    def _next_timestamp(self) -> int:
        with self._lock:
            ts = max(self._clock(), self._last_timestamp + 1)
            self._last_timestamp = ts
            return ts

    def generate(self, asset_type: AssetType | str, prompt: str | None = None) -> str:
        """Return a new id for an asset of the given type."""
        kind = _coerce_type(asset_type)
        return (
            f"{kind.value}_{self._next_timestamp()}_"
            f"{prompt_hash(prompt)}_{random_suffix()}"
        )


_default_generator = AssetIdGenerator()


def generate_asset_id(asset_type: AssetType | str, prompt: str | None = None) -> str:
    """Generate an asset id using the process-wide generator."""
    return _default_generator.generate(asset_type, prompt)


def parse_asset_id(asset_id: str) -> AssetIdParts | None:
    """Split an id into its components, or None if it is not a generated id."""
    match = _ID_PATTERN.match(asset_id)
    if match is None:
        return None
    return AssetIdParts(
        asset_type=AssetType(match.group("type")),
        timestamp=int(match.group("ts")),
        prompt_hash=match.group("hash"),
        random_suffix=match.group("rand"),
    )


def is_safe_asset_id(asset_id: str) -> bool:
    """Check that an id can be used directly as a storage key or file name."""
    return (
        isinstance(asset_id, str)
        and 0 < len(asset_id) <= MAX_ASSET_ID_LENGTH
        and _SAFE_ID.match(asset_id) is not None
    )

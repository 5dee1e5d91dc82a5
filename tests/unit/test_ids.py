"""Unit tests for the asset id scheme."""

import base64

import pytest

from openvideogen.common.errors import InvalidAssetError
from openvideogen.common.models import AssetType
from openvideogen.storage.ids import (
    MAX_ASSET_ID_LENGTH,
    AssetIdGenerator,
    generate_asset_id,
    is_safe_asset_id,
    parse_asset_id,
    prompt_hash,
)


class TestPromptHash:
    """Tests for the prompt slice embedded in ids."""

    def test_empty_prompt(self):
        assert prompt_hash(None) == ""
        assert prompt_hash("") == ""

    def test_first_eight_characters_of_urlsafe_base64(self):
        expected = base64.urlsafe_b64encode(b"Hello world").decode().rstrip("=")[:8]
        assert prompt_hash("Hello world") == expected == "SGVsbG8g"

    def test_non_ascii_prompt_is_safe(self):
        """Unicode prompts still yield storage-safe characters."""
        value = prompt_hash("Ünïcødé prompt / with + symbols?")
        assert len(value) == 8
        assert is_safe_asset_id(value)


class TestAssetIdGenerator:
    """Tests for AssetIdGenerator."""

    def test_id_format(self):
        gen = AssetIdGenerator(clock=lambda: 1718000000000)
        asset_id = gen.generate(AssetType.AUDIO, "Hello world")

        parts = parse_asset_id(asset_id)
        assert parts is not None
        assert parts.asset_type == AssetType.AUDIO
        assert parts.timestamp == 1718000000000
        assert parts.prompt_hash == "SGVsbG8g"
        assert len(parts.random_suffix) == 6
        assert asset_id.startswith("audio_1718000000000_SGVsbG8g_")

    def test_accepts_type_string(self):
        asset_id = AssetIdGenerator().generate("image", "cat")
        assert asset_id.startswith("image_")

    def test_unknown_type_rejected(self):
        with pytest.raises(InvalidAssetError):
            AssetIdGenerator().generate("gif", "cat")

    def test_timestamps_strictly_increase_on_frozen_clock(self):
        """Ids minted in the same millisecond still differ and sort in order."""
        gen = AssetIdGenerator(clock=lambda: 5000)
        ids = [gen.generate(AssetType.IMAGE, "same") for _ in range(20)]

        stamps = [parse_asset_id(i).timestamp for i in ids]
        assert stamps == list(range(5000, 5020))
        assert len(set(ids)) == 20

    def test_ids_without_prompt(self):
        asset_id = AssetIdGenerator(clock=lambda: 42).generate(AssetType.VIDEO)
        parts = parse_asset_id(asset_id)
        assert parts.prompt_hash == ""
        assert asset_id.startswith("video_42__")

    def test_module_level_generator(self):
        a = generate_asset_id(AssetType.SCRIPT, "x")
        b = generate_asset_id(AssetType.SCRIPT, "x")
        assert a != b
        assert is_safe_asset_id(a)


class TestIdValidation:
    """Tests for parse_asset_id and is_safe_asset_id."""

    def test_parse_rejects_foreign_ids(self):
        assert parse_asset_id("not-an-id") is None
        assert parse_asset_id("gif_123_abc_def") is None

    @pytest.mark.parametrize(
        "asset_id",
        ["../escape", "a/b", "", "with space", "x" * (MAX_ASSET_ID_LENGTH + 1), "dot.dot"],
    )
    def test_unsafe_ids(self, asset_id):
        assert not is_safe_asset_id(asset_id)

    def test_safe_ids(self):
        assert is_safe_asset_id("image_1_SGVsbG8g_abc123")
        assert is_safe_asset_id("custom-id_1")

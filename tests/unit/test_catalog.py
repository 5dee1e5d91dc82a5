"""Unit tests for the model catalog, settings and selection state."""

from pathlib import Path

import pytest

from openvideogen.common.config import Settings
from openvideogen.common.errors import InvalidAssetError
from openvideogen.common.models import AssetType
from openvideogen.pipeline import PipelineSelection, StageMetrics, StageModels
from openvideogen.providers.catalog import (
    DEFAULT_MODELS,
    MODELS,
    get_model_by_id,
    get_model_display_name,
    get_models_by_category,
    resolve_model_name,
    supports_input_image,
)


class TestCatalog:
    """Tests for catalog lookups."""

    def test_ids_are_unique(self):
        ids = [m.id for m in MODELS]
        assert len(ids) == len(set(ids))

    def test_defaults_exist_in_their_category(self):
        for category, model_id in DEFAULT_MODELS.items():
            model = get_model_by_id(model_id)
            assert model is not None
            assert model.category == category

    def test_categories(self):
        assert {m.id for m in get_models_by_category("image")} == {
            "dall-e-3",
            "flux-kontext-pro",
            "flux-kontext-max",
        }
        assert len(get_models_by_category("video")) == 1

    def test_resolve_model_name(self):
        assert resolve_model_name("llama-3-70b") == "meta/meta-llama-3-70b-instruct"
        assert resolve_model_name("chatterbox") == "resemble-ai/chatterbox"
        # Raw names pass through
        assert resolve_model_name("gpt-4o-mini") == "gpt-4o-mini"

    def test_display_name(self):
        assert get_model_display_name("gpt-4o") == "OpenAI GPT-4o"
        assert get_model_display_name("flux-kontext-max") == "Black Forest Labs Flux Kontext Max"
        assert get_model_display_name("unknown") == "unknown"

    def test_supports_input_image(self):
        assert supports_input_image("black-forest-labs/flux-kontext-pro")
        assert not supports_input_image("dall-e-3")


class TestSettings:
    """Tests for Settings."""

    def test_handle_dir_defaults_under_storage(self, tmp_path):
        settings = Settings(storage_dir=tmp_path)
        assert settings.resolved_handle_cache_dir == tmp_path / "handles"

    def test_explicit_handle_dir(self, tmp_path):
        settings = Settings(storage_dir=tmp_path, handle_cache_dir=tmp_path / "h")
        assert settings.resolved_handle_cache_dir == Path(tmp_path / "h")

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "sqlite")
        monkeypatch.setenv("DEFAULT_IMAGE_MODEL", "flux-kontext-pro")
        settings = Settings()

        assert settings.storage_backend == "sqlite"
        assert StageModels.from_settings(settings).image == "flux-kontext-pro"


class TestPipelineSelection:
    """Tests for PipelineSelection."""

    def test_get_set_by_type(self):
        selection = PipelineSelection()
        selection.set(AssetType.VIDEO, "video_1")

        assert selection.get("video") == "video_1"
        assert selection.type_of("video_1") == AssetType.VIDEO
        assert selection.type_of("other") is None

    def test_script_type_rejected(self):
        with pytest.raises(InvalidAssetError):
            PipelineSelection().get(AssetType.SCRIPT)

    def test_clear(self):
        selection = PipelineSelection(script="s", image_asset_id="i")
        selection.clear()
        assert selection == PipelineSelection()


class TestStageMetrics:
    """Tests for StageMetrics."""

    def test_success_rate(self):
        metrics = StageMetrics()
        assert metrics.success_rate == 0.0

        metrics.record_success(1.0)
        metrics.record_failure(0.5, RuntimeError("nope"))

        assert metrics.success_rate == 0.5
        assert metrics.last_error == "RuntimeError: nope"
        assert metrics.to_dict()["total_duration_seconds"] == 1.5

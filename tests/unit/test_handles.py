"""Unit tests for display handles."""

import pytest

from openvideogen.common.errors import StorageWriteError
from openvideogen.common.models import AssetDraft, AssetType
from openvideogen.pipeline.handles import DisplayHandleRegistry, extension_for


@pytest.fixture
async def image_id(memory_store):
    await memory_store.store_asset(
        "image_1_x_a",
        b"png-bytes",
        AssetDraft(type=AssetType.IMAGE, name="I", content_type="image/png"),
    )
    return "image_1_x_a"


class TestExtensionFor:
    """Tests for content type to file extension mapping."""

    @pytest.mark.parametrize(
        "content_type,expected",
        [
            ("image/png", ".png"),
            ("image/jpeg", ".jpg"),
            ("audio/mpeg", ".mp3"),
            ("audio/wav", ".wav"),
            ("video/mp4", ".mp4"),
            (None, ".bin"),
            ("application/x-unknown-thing", ".bin"),
        ],
    )
    def test_mapping(self, content_type, expected):
        assert extension_for(content_type) == expected


class TestDisplayHandleRegistry:
    """Tests for DisplayHandleRegistry."""

    @pytest.mark.asyncio
    async def test_acquire_materialises_file(self, handles, image_id):
        handle = await handles.acquire(image_id)

        assert handle.path.name == "image_1_x_a.png"
        assert handle.path.read_bytes() == b"png-bytes"
        assert handle.uri.startswith("file://")
        assert handles.refcount(image_id) == 1
        assert handles.active == [handle]

    @pytest.mark.asyncio
    async def test_acquire_missing_asset(self, handles):
        assert await handles.acquire("image_404_x_a") is None
        assert handles.active == []

    @pytest.mark.asyncio
    async def test_refcount_and_release(self, handles, image_id):
        first = await handles.acquire(image_id)
        second = await handles.acquire(image_id)

        assert first is second
        assert handles.refcount(image_id) == 2

        await handles.release(image_id)
        assert handles.refcount(image_id) == 1
        assert first.path.exists()

        await handles.release(image_id)
        assert handles.refcount(image_id) == 0
        assert not first.path.exists()
        assert handles.get(image_id) is None

    @pytest.mark.asyncio
    async def test_release_unknown_is_noop(self, handles):
        await handles.release("never-acquired")
        assert handles.active == []

    @pytest.mark.asyncio
    async def test_release_all(self, memory_store, image_id, tmp_path):
        registry = DisplayHandleRegistry(memory_store, tmp_path / "cache")
        await memory_store.store_asset(
            "audio_1_x_a", b"mp3", AssetDraft(type=AssetType.AUDIO, name="A", content_type="audio/mpeg")
        )
        image = await registry.acquire(image_id)
        audio = await registry.acquire("audio_1_x_a")
        await registry.acquire("audio_1_x_a")

        await registry.release_all()

        assert registry.active == []
        assert not image.path.exists()
        assert not audio.path.exists()

    @pytest.mark.asyncio
    async def test_release_all_keeps_requested_files(self, handles, memory_store, image_id):
        await memory_store.store_asset(
            "video_1_x_a", b"mp4", AssetDraft(type=AssetType.VIDEO, name="V", content_type="video/mp4")
        )
        image = await handles.acquire(image_id)
        video = await handles.acquire("video_1_x_a")

        await handles.release_all(keep=["video_1_x_a"])

        assert handles.active == []
        assert handles.refcount("video_1_x_a") == 0
        assert not image.path.exists()
        assert video.path.read_bytes() == b"mp4"

    @pytest.mark.asyncio
    async def test_write_failure_raises_storage_error(self, handles, image_id, monkeypatch):
        def broken_write(path, data):
            raise PermissionError("denied")

        monkeypatch.setattr(handles, "_write", broken_write)

        with pytest.raises(StorageWriteError, match=image_id):
            await handles.acquire(image_id)
        assert handles.active == []
        assert handles.refcount(image_id) == 0

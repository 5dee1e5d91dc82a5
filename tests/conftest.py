"""Pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from openvideogen.common.errors import ProviderError
from openvideogen.pipeline import DisplayHandleRegistry, PipelineOrchestrator
from openvideogen.providers.base import (
    AudioRequest,
    GeneratedMedia,
    ImageRequest,
    TextRequest,
    VideoRequest,
)
from openvideogen.storage import (
    FileSystemBackend,
    MemoryBackend,
    SQLiteBackend,
    open_store,
)

START_MS = 1_700_000_000_000


class FakeClock:
    """Deterministic epoch-ms clock that moves forward by `step` per reading."""

    def __init__(self, start: int = START_MS, step: int = 1):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingGenerator:
    """Fake for all four generation contracts.

    Records each request; set `fail` to make the next calls raise.
    """

    def __init__(self):
        self.requests: list = []
        self.fail = False
        self.script = "Hello world, this is the script."
        self.image_bytes = b"\x89PNG fake image"
        self.audio_bytes = b"ID3 fake audio"
        self.video_bytes = b"\x00\x00\x00\x18ftypmp42 fake video"

    def calls(self, kind: type) -> list:
        return [r for r in self.requests if isinstance(r, kind)]

    def _check(self, request) -> None:
        self.requests.append(request)
        if self.fail:
            raise ProviderError("generation failed", provider="fake", code="boom")

    async def generate_text(self, request: TextRequest) -> str:
        self._check(request)
        return self.script

    async def generate_image(self, request: ImageRequest) -> GeneratedMedia:
        self._check(request)
        return GeneratedMedia(self.image_bytes, "image/png")

    async def generate_audio(self, request: AudioRequest) -> GeneratedMedia:
        self._check(request)
        return GeneratedMedia(self.audio_bytes, "audio/mpeg")

    async def generate_video(self, request: VideoRequest) -> GeneratedMedia:
        self._check(request)
        return GeneratedMedia(self.video_bytes, "video/mp4")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=["memory", "filesystem", "sqlite"])
def backend(request, tmp_path):
    """Every storage backend, each in a fresh location."""
    if request.param == "memory":
        return MemoryBackend()
    elif request.param == "filesystem":
        return FileSystemBackend(tmp_path / "fs-store")
    return SQLiteBackend(tmp_path / "sqlite-store")


@pytest.fixture
async def store(backend, clock):
    store = await open_store(backend, clock=clock)
    yield store
    await store.close()


@pytest.fixture
async def memory_store(clock):
    store = await open_store(MemoryBackend(), clock=clock)
    yield store
    await store.close()


@pytest.fixture
def generator():
    return RecordingGenerator()


@pytest.fixture
def handles(memory_store, tmp_path):
    return DisplayHandleRegistry(memory_store, tmp_path / "handles")


@pytest.fixture
async def pipeline(memory_store, generator, handles):
    orchestrator = PipelineOrchestrator(
        store=memory_store,
        text=generator,
        image=generator,
        audio=generator,
        video=generator,
        handles=handles,
    )
    yield orchestrator
    await orchestrator.close()

"""Pipeline orchestrator: script -> audio -> image -> video over an asset store."""

from __future__ import annotations

import mimetypes
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Iterable

from openvideogen.common.errors import (
    AssetNotFoundError,
    InvalidAssetError,
    PipelineBusyError,
    PrerequisiteMissingError,
    ProviderError,
    StorageError,
)
from openvideogen.common.logging import get_logger
from openvideogen.common.models import AssetDraft, AssetMetadata, AssetType
from openvideogen.pipeline.handles import DisplayHandle, DisplayHandleRegistry
from openvideogen.pipeline.selection import (
    PipelineSelection,
    Stage,
    StageMetricsBook,
    StageModels,
    require_media_type,
)
from openvideogen.providers.base import (
    AudioGenerator,
    AudioRequest,
    ImageGenerator,
    ImageRequest,
    TextGenerator,
    TextRequest,
    VideoGenerator,
    VideoRequest,
)
from openvideogen.providers.catalog import resolve_model_name, supports_input_image
from openvideogen.providers.router import provider_for
from openvideogen.storage.ids import AssetIdGenerator
from openvideogen.storage.store import AssetStore

logger = get_logger(__name__)

AUDIO_PROMPT_CHARS = 100
UPLOAD_MODEL = "user-upload"

_STAGE_CATEGORY = {
    Stage.SCRIPT: "text",
    Stage.IMAGE: "image",
    Stage.AUDIO: "audio",
    Stage.VIDEO: "video",
}


@dataclass(frozen=True)
class GalleryItem:
    """A manifest entry as shown in a gallery, with its selection state."""

    metadata: AssetMetadata
    selected: bool

    @property
    def id(self) -> str:
        return self.metadata.id


@dataclass(frozen=True)
class PipelineRun:
    """Everything produced by one run_all() pass."""

    script: str
    audio: AssetMetadata
    image: AssetMetadata
    video: AssetMetadata


def _generated_name(kind: str) -> str:
    return f"Generated {kind} - {datetime.now().strftime('%H:%M:%S')}"


class PipelineOrchestrator:
    """
    Drives the four generation stages and owns the session's selection.

    Collaborators are injected. Only one stage runs at a time; the
    selection changes only after a stage has produced and stored its
    output.
    """

    def __init__(
        self,
        store: AssetStore,
        text: TextGenerator,
        image: ImageGenerator,
        audio: AudioGenerator,
        video: VideoGenerator,
        handles: DisplayHandleRegistry,
        models: StageModels | None = None,
        user_keys: dict[str, str] | None = None,
    ):
        self.store = store
        self.text = text
        self.image = image
        self.audio = audio
        self.video = video
        self.handles = handles
        self.models = models or StageModels()
        self.user_keys = dict(user_keys or {})

        self.selection = PipelineSelection()
        self.metrics = StageMetricsBook()
        self.generating: Stage | None = None
        self._ids = AssetIdGenerator()

    # Session lifecycle

    async def startup(self) -> PipelineSelection:
        """Select the newest stored asset of each media type."""
        for kind in (AssetType.IMAGE, AssetType.AUDIO, AssetType.VIDEO):
            newest = await self.store.newest_asset(kind)
            if newest is not None:
                await self._activate(kind, newest.id)

        logger.info("pipeline_restored", **self.selection.to_dict())
        return self.selection

    async def close(self, keep_handles: Iterable[str] = ()) -> None:
        """Release display handles, leaving the files of keep_handles in place."""
        await self.handles.release_all(keep=keep_handles)
        logger.debug("pipeline_closed")

    # Stage plumbing

    @asynccontextmanager
    async def _stage(self, stage: Stage, **context: Any) -> AsyncIterator[None]:
        """Mark a stage in flight, with logging and metrics around it."""
        if self.generating is not None:
            raise PipelineBusyError(stage.value, self.generating.value)

        self.generating = stage
        start_time = time.time()
        logger.info("stage_started", stage=stage.value, **context)
        try:
            yield
        except Exception as e:
            duration = time.time() - start_time
            self.metrics[stage].record_failure(duration, e)
            logger.error(
                "stage_failed",
                stage=stage.value,
                duration_seconds=round(duration, 3),
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise
        else:
            duration = time.time() - start_time
            self.metrics[stage].record_success(duration)
            logger.info(
                "stage_succeeded",
                stage=stage.value,
                duration_seconds=round(duration, 3),
            )
        finally:
            self.generating = None

    def _user_key(self, stage: Stage, model_name: str) -> str | None:
        return self.user_keys.get(provider_for(_STAGE_CATEGORY[stage], model_name))

    async def _activate(self, kind: AssetType, asset_id: str) -> DisplayHandle | None:
        """Select asset_id for kind, swapping the display handle."""
        handle = await self.handles.acquire(asset_id)
        previous = self.selection.get(kind)
        if previous is not None and previous != asset_id:
            await self.handles.release(previous)
        elif previous == asset_id and handle is not None:
            # Already held by the selection; keep a single reference.
            await self.handles.release(asset_id)
        self.selection.set(kind, asset_id)
        return handle

    async def _deactivate(self, kind: AssetType) -> None:
        previous = self.selection.get(kind)
        if previous is not None:
            self.selection.set(kind, None)
            await self.handles.release(previous)

    async def _store_output(
        self,
        kind: AssetType,
        data: bytes,
        name: str,
        prompt: str | None,
        model: str | None,
        content_type: str | None,
    ) -> AssetMetadata:
        asset_id = self._ids.generate(kind, prompt)
        draft = AssetDraft(
            type=kind,
            name=name,
            prompt=prompt,
            model=model,
            content_type=content_type,
        )
        metadata = await self.store.store_asset(asset_id, data, draft)
        await self._activate(kind, metadata.id)
        return metadata

    # Stages

    async def generate_script(self, prompt: str, model: str | None = None) -> str:
        """Generate a voice-over script and make it the current script."""
        model_id = model or self.models.text
        model_name = resolve_model_name(model_id)

        async with self._stage(Stage.SCRIPT, model=model_id):
            script = await self.text.generate_text(
                TextRequest(
                    model=model_name,
                    prompt=prompt,
                    key=self._user_key(Stage.SCRIPT, model_name),
                )
            )
            if not script or not script.strip():
                raise ProviderError(
                    "No script was generated",
                    provider=provider_for("text", model_name),
                    code="empty_result",
                )
            self.selection.script = script

        return script

    async def generate_image(self, prompt: str, model: str | None = None) -> AssetMetadata:
        """Generate a portrait and select it.

        Edit-style models receive the currently selected image as input.
        """
        model_id = model or self.models.image
        model_name = resolve_model_name(model_id)

        async with self._stage(Stage.IMAGE, model=model_id):
            input_image = None
            input_type = "image/jpeg"
            selected_id = self.selection.image_asset_id
            if supports_input_image(model_name) and selected_id:
                try:
                    existing = await self.store.get_asset(selected_id)
                except StorageError as e:
                    logger.warning(
                        "input_image_load_failed",
                        id=selected_id,
                        error_message=str(e),
                    )
                else:
                    if existing is not None:
                        input_image = existing.blob
                        input_type = existing.metadata.content_type or input_type

            media = await self.image.generate_image(
                ImageRequest(
                    model=model_name,
                    prompt=prompt,
                    input_image=input_image,
                    input_image_type=input_type,
                    key=self._user_key(Stage.IMAGE, model_name),
                )
            )
            metadata = await self._store_output(
                AssetType.IMAGE,
                media.data,
                name=_generated_name("Image"),
                prompt=prompt,
                model=model_id,
                content_type=media.content_type,
            )

        return metadata

    async def generate_audio(self, model: str | None = None) -> AssetMetadata:
        """Synthesize the current script as speech and select it."""
        script = self.selection.script
        if not script or not script.strip():
            raise PrerequisiteMissingError(Stage.AUDIO.value, ["script"])

        model_id = model or self.models.audio
        model_name = resolve_model_name(model_id)

        async with self._stage(Stage.AUDIO, model=model_id):
            media = await self.audio.generate_audio(
                AudioRequest(
                    model=model_name,
                    text=script,
                    key=self._user_key(Stage.AUDIO, model_name),
                )
            )
            metadata = await self._store_output(
                AssetType.AUDIO,
                media.data,
                name=_generated_name("Audio"),
                prompt=f"{script[:AUDIO_PROMPT_CHARS]}...",
                model=model_id,
                content_type=media.content_type,
            )

        return metadata

    async def generate_video(self, model: str | None = None) -> AssetMetadata:
        """Animate the selected image with the selected audio."""
        image_id = self.selection.image_asset_id
        audio_id = self.selection.audio_asset_id
        missing = [
            name for name, value in (("image", image_id), ("audio", audio_id)) if not value
        ]
        if missing:
            raise PrerequisiteMissingError(Stage.VIDEO.value, missing)

        model_id = model or self.models.video
        model_name = resolve_model_name(model_id)

        async with self._stage(Stage.VIDEO, model=model_id):
            image = await self.store.get_asset(image_id)
            if image is None:
                raise AssetNotFoundError(image_id)
            audio = await self.store.get_asset(audio_id)
            if audio is None:
                raise AssetNotFoundError(audio_id)

            media = await self.video.generate_video(
                VideoRequest(
                    model=model_name,
                    image=image.blob,
                    audio=audio.blob,
                    image_type=image.metadata.content_type or "image/png",
                    audio_type=audio.metadata.content_type or "audio/mpeg",
                    key=self._user_key(Stage.VIDEO, model_name),
                )
            )
            metadata = await self._store_output(
                AssetType.VIDEO,
                media.data,
                name=_generated_name("Video"),
                prompt=f"Image: {image_id}, Audio: {audio_id}",
                model=model_id,
                content_type=media.content_type,
            )

        return metadata

    async def run_all(self, script_prompt: str, image_prompt: str) -> PipelineRun:
        """Run every stage in order, stopping at the first failure."""
        script = await self.generate_script(script_prompt)
        audio = await self.generate_audio()
        image = await self.generate_image(image_prompt)
        video = await self.generate_video()
        return PipelineRun(script=script, audio=audio, image=image, video=video)

    # User actions

    def set_script(self, text: str) -> None:
        self.selection.script = text

    async def upload_asset(
        self,
        asset_type: AssetType | str,
        data: bytes,
        filename: str,
        content_type: str | None = None,
    ) -> AssetMetadata:
        """Store a user-provided file and select it."""
        kind = require_media_type(asset_type)
        content_type = content_type or mimetypes.guess_type(filename)[0]
        if not content_type or not content_type.startswith(f"{kind.value}/"):
            raise InvalidAssetError(
                f"Please upload a valid {kind.value} file (got {content_type or 'unknown type'})"
            )
        if not data:
            raise InvalidAssetError(f"Uploaded file is empty: {filename}")

        metadata = await self._store_output(
            kind,
            data,
            name=f"Uploaded {kind.value} - {filename}",
            prompt=f"User uploaded: {filename}",
            model=UPLOAD_MODEL,
            content_type=content_type,
        )
        logger.info("asset_uploaded", id=metadata.id, filename=filename)
        return metadata

    async def select(self, asset_type: AssetType | str, asset_id: str) -> DisplayHandle | None:
        """Toggle the selection of asset_id for its type.

        Returns the new display handle, or None when the call deselected.
        """
        kind = require_media_type(asset_type)
        if self.selection.get(kind) == asset_id:
            await self._deactivate(kind)
            logger.info("asset_deselected", type=kind.value, id=asset_id)
            return None

        metadata = (await self.store.get_manifest()).get(asset_id)
        if metadata is None:
            raise AssetNotFoundError(asset_id)
        if metadata.type != kind:
            raise InvalidAssetError(
                f"Asset {asset_id} is a {metadata.type.value}, not a {kind.value}"
            )

        handle = await self._activate(kind, asset_id)
        logger.info("asset_selected", type=kind.value, id=asset_id)
        return handle

    def current_handle(self, asset_type: AssetType | str) -> DisplayHandle | None:
        asset_id = self.selection.get(require_media_type(asset_type))
        return self.handles.get(asset_id) if asset_id else None

    async def delete_asset(self, asset_id: str) -> bool:
        """Delete an asset, dropping it from the selection if selected."""
        deleted = await self.store.delete_asset(asset_id)
        kind = self.selection.type_of(asset_id)
        if kind is not None:
            await self._deactivate(kind)
        return deleted

    async def gallery(self, asset_type: AssetType | str) -> list[GalleryItem]:
        kind = require_media_type(asset_type)
        selected = self.selection.get(kind)
        entries = await self.store.list_assets(kind, newest_first=True)
        return [GalleryItem(metadata=m, selected=m.id == selected) for m in entries]

    async def clear_all(self) -> None:
        """Delete every asset and reset the session."""
        await self.store.clear_all()
        self.selection.clear()
        await self.handles.release_all()
        logger.info("pipeline_cleared")

    async def status(self) -> dict[str, Any]:
        return {
            "generating": self.generating.value if self.generating else None,
            "selection": self.selection.to_dict(),
            "models": {
                "text": self.models.text,
                "image": self.models.image,
                "audio": self.models.audio,
                "video": self.models.video,
            },
            "metrics": self.metrics.to_dict(),
            "store": await self.store.stats(),
        }

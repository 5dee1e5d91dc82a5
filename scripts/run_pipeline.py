#!/usr/bin/env python3
"""
OpenVideoGen command line

Drives the script -> audio -> image -> video pipeline against a local
asset store. Every invocation restores the selection from the store (the
newest asset of each type), runs one command and exits.

Usage:
    python scripts/run_pipeline.py status
    python scripts/run_pipeline.py run --prompt "A 30 second pitch for solar roofs"
    python scripts/run_pipeline.py script --prompt "..." --model claude-4-sonnet
    python scripts/run_pipeline.py image --prompt "..." --model flux-kontext-pro
    python scripts/run_pipeline.py upload image ./face.png
    python scripts/run_pipeline.py list --type video
    python scripts/run_pipeline.py export <asset_id> ./out.mp4
    python scripts/run_pipeline.py --offline run   # no API keys, uses ffmpeg

Scripts are not persisted: audio needs --script or --script-file unless the
same invocation generated one (as `run` does).

Selection is not persisted either. `video` always animates the newest image
with the newest audio; `select` only writes the chosen asset to a display
file and prints its location. Files printed by `select` and `video` stay in
the handle cache directory after the command exits.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from openvideogen.common.config import Settings, get_settings
from openvideogen.common.errors import OpenVideoGenError
from openvideogen.common.logging import bind_context, clear_context, get_logger, setup_logging
from openvideogen.common.models import AssetType
from openvideogen.pipeline import (
    DisplayHandleRegistry,
    PipelineOrchestrator,
    StageModels,
)
from openvideogen.providers import (
    MODELS,
    ProviderRouter,
    StubProvider,
    get_model_display_name,
)
from openvideogen.storage import create_backend, open_store

logger = get_logger(__name__)

MEDIA_TYPES = [t.value for t in (AssetType.IMAGE, AssetType.AUDIO, AssetType.VIDEO)]


def build_settings(args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.storage_dir:
        overrides["storage_dir"] = Path(args.storage_dir)
    if args.backend:
        overrides["storage_backend"] = args.backend
    if not overrides:
        return get_settings()
    return Settings(**overrides)


def print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def print_asset(prefix: str, metadata) -> None:
    print(f"{prefix} {metadata.id}")
    print(f"   Name: {metadata.name}")
    print(f"   Size: {metadata.size} bytes ({metadata.content_type})")


def read_script(args: argparse.Namespace) -> str | None:
    if getattr(args, "script_file", None):
        return Path(args.script_file).read_text(encoding="utf-8")
    return getattr(args, "script", None)


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    """Open the store, restore the session and dispatch one command."""
    if args.command == "models":
        for model in MODELS:
            print(f"{model.category:6} {model.id:24} {get_model_display_name(model.id)}")
        return 0

    backend = create_backend(settings=settings)
    store = await open_store(backend)

    if args.offline:
        stub = StubProvider()
        text = image = audio = video = stub
    else:
        router = ProviderRouter.from_settings(settings)
        text = image = audio = video = router

    pipeline = PipelineOrchestrator(
        store=store,
        text=text,
        image=image,
        audio=audio,
        video=video,
        handles=DisplayHandleRegistry(store, settings.resolved_handle_cache_dir),
        models=StageModels.from_settings(settings),
    )

    # Display files printed to the user outlive this process.
    shown: list[str] = []

    try:
        await pipeline.startup()
        script = read_script(args)
        if script:
            pipeline.set_script(script)

        if args.command == "status":
            print_json(await pipeline.status())

        elif args.command == "list":
            types = [args.type] if args.type else MEDIA_TYPES
            for asset_type in types:
                print(f"\n{asset_type.upper()}")
                for item in await pipeline.gallery(asset_type):
                    marker = "*" if item.selected else " "
                    meta = item.metadata
                    print(f" {marker} {meta.id}  {meta.name}  ({meta.size} bytes)")

        elif args.command == "script":
            text_out = await pipeline.generate_script(
                args.prompt or settings.default_script_prompt, model=args.model
            )
            print(text_out)

        elif args.command == "image":
            metadata = await pipeline.generate_image(
                args.prompt or settings.default_image_prompt, model=args.model
            )
            print_asset("🖼️  Image:", metadata)

        elif args.command == "audio":
            metadata = await pipeline.generate_audio(model=args.model)
            print_asset("🔊 Audio:", metadata)

        elif args.command == "video":
            metadata = await pipeline.generate_video(model=args.model)
            print_asset("🎬 Video:", metadata)
            handle = pipeline.current_handle(AssetType.VIDEO)
            if handle:
                print(f"   File: {handle.uri}")
                shown.append(handle.asset_id)

        elif args.command == "run":
            result = await pipeline.run_all(
                args.prompt or settings.default_script_prompt,
                args.image_prompt or settings.default_image_prompt,
            )
            print("\n📝 Script:")
            print(f"   {result.script}")
            print_asset("🔊 Audio:", result.audio)
            print_asset("🖼️  Image:", result.image)
            print_asset("🎬 Video:", result.video)

        elif args.command == "upload":
            path = Path(args.file)
            metadata = await pipeline.upload_asset(
                args.type, path.read_bytes(), path.name, args.content_type
            )
            print_asset("📤 Uploaded:", metadata)

        elif args.command == "select":
            # Startup already selected the newest asset; toggling it would deselect.
            if pipeline.selection.get(args.type) == args.asset_id:
                handle = pipeline.current_handle(args.type)
            else:
                handle = await pipeline.select(args.type, args.asset_id)
            if handle is None:
                print(f"No display file for {args.asset_id}")
                return 1
            else:
                print(f"Selected {args.asset_id}: {handle.uri}")
                shown.append(handle.asset_id)

        elif args.command == "delete":
            deleted = await pipeline.delete_asset(args.asset_id)
            print(f"{'Deleted' if deleted else 'Not found'}: {args.asset_id}")
            if not deleted:
                return 1

        elif args.command == "export":
            asset = await store.get_asset(args.asset_id)
            if asset is None:
                print(f"Not found: {args.asset_id}")
                return 1
            dest = Path(args.dest)
            dest.write_bytes(asset.blob)
            print(f"Wrote {asset.metadata.size} bytes to {dest}")

        elif args.command == "reconcile":
            report = await store.reconcile()
            print_json(report.to_dict())

        elif args.command == "clear":
            if not args.yes:
                print("Refusing to delete every asset without --yes")
                return 1
            await pipeline.clear_all()
            print("Cleared all assets")

        return 0

    finally:
        await pipeline.close(keep_handles=shown)
        await store.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate talking-head videos: script, voice, portrait, animation"
    )
    parser.add_argument("--storage-dir", help="Directory holding the asset store")
    parser.add_argument(
        "--backend",
        choices=["filesystem", "sqlite", "memory"],
        help="Storage backend (default from settings)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use local stub generators instead of provider APIs",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    parser.add_argument("--log-level", default=None, help="Log level (default from settings)")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show selection, metrics and store summary")
    sub.add_parser("models", help="List the model catalog")
    sub.add_parser("reconcile", help="Repair the manifest against stored blobs")

    list_cmd = sub.add_parser("list", help="List assets, newest first")
    list_cmd.add_argument("--type", choices=MEDIA_TYPES)

    for name, help_text in (
        ("script", "Generate a voice-over script"),
        ("image", "Generate a portrait image"),
        ("audio", "Synthesize the script as speech"),
        ("video", "Animate the selected image with the selected audio"),
        ("run", "Run every stage in order"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--model", help="Catalog model id or raw model name")
        if name in ("script", "image", "run"):
            cmd.add_argument("--prompt")
        if name == "run":
            cmd.add_argument("--image-prompt")
        if name in ("audio", "video"):
            cmd.add_argument("--script", help="Script text for this session")
            cmd.add_argument("--script-file", help="Read the script from a file")

    upload = sub.add_parser("upload", help="Store a local file as an asset")
    upload.add_argument("type", choices=MEDIA_TYPES)
    upload.add_argument("file")
    upload.add_argument("--content-type", default=None)

    select = sub.add_parser(
        "select",
        help="Write an asset to a display file and print it (selection lasts for this command only)",
    )
    select.add_argument("type", choices=MEDIA_TYPES)
    select.add_argument("asset_id")

    delete = sub.add_parser("delete", help="Delete an asset")
    delete.add_argument("asset_id")

    export = sub.add_parser("export", help="Copy an asset's bytes to a file")
    export.add_argument("asset_id")
    export.add_argument("dest")

    clear = sub.add_parser("clear", help="Delete every asset")
    clear.add_argument("--yes", action="store_true")

    return parser


def main():
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = build_settings(args)
    setup_logging(
        log_level=args.log_level or settings.log_level,
        json_logs=args.json_logs or settings.json_logs,
    )

    bind_context(app=settings.app_name, command=args.command)
    try:
        code = asyncio.run(run_command(args, settings))
    except OpenVideoGenError as e:
        logger.error("command_failed", error=str(e))
        print(f"\n❌ {e}")
        code = 1
    finally:
        clear_context()
    sys.exit(code)


if __name__ == "__main__":
    main()

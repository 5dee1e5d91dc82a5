"""Offline stand-ins for the generation providers.

Useful for trying the pipeline without API keys or costs. The output is
clearly synthetic: a templated script, a labelled portrait card, a tone
whose length follows the script, and a still-image MP4 rendered with ffmpeg.
"""

from __future__ import annotations

import asyncio
import hashlib
import io
import math
import mimetypes
import struct
import tempfile
import wave
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from openvideogen.common.errors import ProviderError
from openvideogen.common.logging import get_logger
from openvideogen.providers.base import (
    AudioRequest,
    GeneratedMedia,
    ImageRequest,
    TextRequest,
    VideoRequest,
)

logger = get_logger(__name__)

IMAGE_SIZE = 512
SAMPLE_RATE = 22050
SECONDS_PER_WORD = 0.4
MIN_AUDIO_SECONDS = 1.0
MAX_AUDIO_SECONDS = 30.0


def _seed_color(text: str) -> tuple[int, int, int]:
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return (40 + digest[0] % 120, 40 + digest[1] % 120, 40 + digest[2] % 120)


def _wrap(text: str, width: int = 32, max_lines: int = 6) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split():
        if len(current) + len(word) + 1 <= width:
            current = f"{current} {word}".strip()
        else:
            if current:
                lines.append(current)
            current = word
        if len(lines) >= max_lines:
            return lines
    if current:
        lines.append(current)
    return lines[:max_lines]


def render_portrait_card(prompt: str, base_image: bytes | None = None) -> bytes:
    """Draw a PNG placeholder portrait for a prompt."""
    bg = _seed_color(prompt)
    img = Image.new("RGB", (IMAGE_SIZE, IMAGE_SIZE), bg)
    draw = ImageDraw.Draw(img)
    for y in range(IMAGE_SIZE):
        factor = 1.0 - (y / IMAGE_SIZE) * 0.3
        draw.line([(0, y), (IMAGE_SIZE, y)], fill=tuple(int(c * factor) for c in bg))

    if base_image:
        try:
            with Image.open(io.BytesIO(base_image)) as src:
                src = src.convert("RGB").resize((IMAGE_SIZE, IMAGE_SIZE))
                img = Image.blend(img, src, 0.6)
        except OSError:
            logger.warning("stub_input_image_unreadable")

    draw = ImageDraw.Draw(img)

    # Head and shoulders silhouette
    center = IMAGE_SIZE // 2
    draw.ellipse([center - 70, 120, center + 70, 280], fill=(230, 210, 190))
    draw.pieslice([center - 160, 300, center + 160, 620], 180, 360, fill=(60, 70, 90))

    try:
        font = ImageFont.truetype("DejaVuSans.ttf", 16)
    except OSError:
        font = ImageFont.load_default()

    draw.text((16, 16), "OFFLINE STUB", fill=(255, 220, 120), font=font)
    y = IMAGE_SIZE - 24 * (len(_wrap(prompt)) + 1)
    for line in _wrap(prompt):
        draw.text((16, y), line, fill=(255, 255, 255), font=font)
        y += 22

    out = io.BytesIO()
    img.save(out, "PNG")
    return out.getvalue()


def synthesize_tone(text: str) -> bytes:
    """A WAV tone whose length tracks the number of words in the text."""
    words = max(1, len(text.split()))
    duration = min(MAX_AUDIO_SECONDS, max(MIN_AUDIO_SECONDS, words * SECONDS_PER_WORD))
    num_samples = int(duration * SAMPLE_RATE)
    base_freq = 180 + (sum(map(ord, text)) % 80)

    samples = []
    for i in range(num_samples):
        t = i / SAMPLE_RATE
        # Syllable-rate amplitude wobble
        envelope = 0.5 + 0.5 * math.sin(2 * math.pi * 3.0 * t)
        sample = math.sin(2 * math.pi * base_freq * t) * envelope * 0.3
        samples.append(max(-32767, min(32767, int(sample * 32767))))

    out = io.BytesIO()
    with wave.open(out, "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(SAMPLE_RATE)
        wav_file.writeframes(struct.pack(f"<{len(samples)}h", *samples))
    return out.getvalue()


def _extension(content_type: str, default: str) -> str:
    return mimetypes.guess_extension(content_type) or default


class StubProvider:
    """Implements every generation contract locally."""

    provider = "stub"

    def __init__(self, ffmpeg_binary: str = "ffmpeg"):
        self.ffmpeg_binary = ffmpeg_binary

    async def generate_text(self, request: TextRequest) -> str:
        topic = request.prompt.strip().rstrip(".") or "something new"
        return (
            f"Here's the thing about {topic[:80].lower()}. "
            "It moves fast, it surprises everyone, and it is already here. "
            "Stick around, because the next thirty seconds will change how you see it."
        )

    async def generate_image(self, request: ImageRequest) -> GeneratedMedia:
        data = await asyncio.to_thread(render_portrait_card, request.prompt, request.input_image)
        return GeneratedMedia(data, "image/png")

    async def generate_audio(self, request: AudioRequest) -> GeneratedMedia:
        data = await asyncio.to_thread(synthesize_tone, request.text)
        return GeneratedMedia(data, "audio/wav")

    async def generate_video(self, request: VideoRequest) -> GeneratedMedia:
        """Mux the still image with the audio track into an MP4."""
        with tempfile.TemporaryDirectory(prefix="openvideogen-stub-") as tmp:
            tmp_dir = Path(tmp)
            image_path = tmp_dir / f"face{_extension(request.image_type, '.png')}"
            audio_path = tmp_dir / f"voice{_extension(request.audio_type, '.mp3')}"
            output_path = tmp_dir / "video.mp4"
            image_path.write_bytes(request.image)
            audio_path.write_bytes(request.audio)

            cmd = [
                self.ffmpeg_binary,
                "-y",
                "-loop", "1",
                "-i", str(image_path),
                "-i", str(audio_path),
                "-c:v", "libx264",
                "-tune", "stillimage",
                "-c:a", "aac",
                "-pix_fmt", "yuv420p",
                "-vf", "scale=trunc(iw/2)*2:trunc(ih/2)*2",
                "-shortest",
                str(output_path),
            ]
            logger.debug("ffmpeg_command", cmd=" ".join(cmd))

            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except FileNotFoundError as e:
                raise ProviderError(
                    "ffmpeg is required for offline video generation",
                    provider=self.provider,
                    code="ffmpeg_unavailable",
                ) from e

            _, stderr = await process.communicate()
            if process.returncode != 0:
                raise ProviderError(
                    f"ffmpeg failed: {stderr.decode(errors='replace')[-500:]}",
                    provider=self.provider,
                    code="render_failed",
                )

            return GeneratedMedia(output_path.read_bytes(), "video/mp4")

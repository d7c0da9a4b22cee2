"""Helpers for interacting with ffmpeg and ffprobe.

:class:`FfmpegEncoder` is the encoding collaborator handed to
:meth:`crop_selector.workflow.CropWorkflow.export`.
"""
from __future__ import annotations

import json
import shutil
import subprocess
import time
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

from .core import CropBox
from .errors import ExportFailure
from .logger import get_logger
from .workflow import EncodedOutput, ExportRequest

_logger = get_logger("ffmpeg")

ProgressCallback = Callable[[str], None]


def ensure_ffmpeg_available() -> None:
    """Raise a helpful error when ffmpeg is not on PATH."""
    if shutil.which("ffmpeg") is None:
        raise EnvironmentError(
            "ffmpeg is required but was not found on PATH. Install ffmpeg and try again."
        )
    if shutil.which("ffprobe") is None:
        raise EnvironmentError(
            "ffprobe is required but was not found on PATH. Install ffmpeg and try again."
        )


def run_command(args: list[str]) -> subprocess.CompletedProcess:
    """Run a subprocess command and return the completed process."""
    _logger.debug("running: %s", " ".join(args))
    return subprocess.run(args, capture_output=True, text=True, check=False)


def probe_video(video_path: Path) -> Dict[str, Any]:
    """Return basic video metadata using ffprobe."""
    ensure_ffmpeg_available()
    result = run_command(
        [
            "ffprobe",
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-show_streams",
            "-print_format",
            "json",
            str(video_path),
        ]
    )
    if result.returncode != 0:
        raise RuntimeError(f"Could not probe video: {result.stderr}")
    return json.loads(result.stdout)


def extract_frame(video_path: Path, output_path: Path, timestamp: float = 0.0) -> None:
    """Extract a single frame at the given timestamp for preview purposes."""
    ensure_ffmpeg_available()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    args = [
        "ffmpeg",
        "-y",
        "-ss",
        str(timestamp),
        "-i",
        str(video_path),
        "-vframes",
        "1",
        str(output_path),
    ]
    result = run_command(args)
    if result.returncode != 0:
        raise RuntimeError(f"Could not extract frame: {result.stderr}")


def build_crop_args(
    video_path: Path,
    output_path: Path,
    crop_box: Tuple[int, int, int, int],
    *,
    video_codec: str = "libx264",
    audio_codec: str = "copy",
) -> list[str]:
    """Command line for cropping ``video_path`` to (x, y, width, height)."""
    x, y, width, height = crop_box
    return [
        "ffmpeg",
        "-y",
        "-i",
        str(video_path),
        "-filter:v",
        f"crop={width}:{height}:{x}:{y}",
        "-c:v",
        video_codec,
        "-c:a",
        audio_codec,
        "-progress",
        "pipe:1",
        "-nostats",
        "-loglevel",
        "error",
        str(output_path),
    ]


def _format_timecode(seconds: float) -> str:
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:06.3f}"


def progress_message(line: str) -> str | None:
    """Turn one ``-progress`` line from ffmpeg into a status message, if any."""
    cleaned = line.strip()
    if not cleaned:
        return None
    if cleaned.startswith("out_time_ms="):
        try:
            out_time_us = int(cleaned.split("=", 1)[1])
        except ValueError:
            return cleaned
        return f"Processing timestamp: {_format_timecode(out_time_us / 1_000_000)}"
    if cleaned.startswith("progress="):
        if cleaned.split("=", 1)[1] == "end":
            return "ffmpeg processing complete."
        return None
    if "error" in cleaned.lower():
        return f"ffmpeg: {cleaned}"
    return None


def crop_video(
    video_path: Path,
    output_path: Path,
    crop_box: Tuple[int, int, int, int],
    progress_callback: ProgressCallback | None = None,
    *,
    video_codec: str = "libx264",
    audio_codec: str = "copy",
) -> None:
    """Crop the video using ffmpeg with the provided crop box (x, y, width, height)."""
    ensure_ffmpeg_available()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    args = build_crop_args(
        video_path,
        output_path,
        crop_box,
        video_codec=video_codec,
        audio_codec=audio_codec,
    )
    _logger.info("cropping %s to %s", video_path.name, crop_box)

    process = subprocess.Popen(
        args,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
        bufsize=1,
    )
    assert process.stdout is not None

    try:
        for line in process.stdout:
            message = progress_message(line)
            if message and progress_callback:
                progress_callback(message)
        process.wait()
    finally:
        if process.poll() is None:
            process.kill()
            process.wait()
    if process.returncode != 0:
        raise RuntimeError("Cropping failed. See logs for details.")


def validate_crop(crop: CropBox) -> None:
    """Reject crop boxes ffmpeg cannot take before spawning it."""
    values = crop.as_tuple()
    if any(not isinstance(v, int) for v in values):
        raise ExportFailure("Missing crop dimensions.")
    if crop.x < 0 or crop.y < 0 or crop.width < 1 or crop.height < 1:
        raise ExportFailure(f"Invalid crop dimensions: {crop.width}x{crop.height}+{crop.x}+{crop.y}")


def output_filename() -> str:
    return f"cropped-{int(time.time() * 1000)}.mp4"


class FfmpegEncoder:
    """Encodes a crop with a local ffmpeg into ``output_dir``."""

    def __init__(
        self,
        output_dir: Path,
        *,
        video_codec: str = "libx264",
        audio_codec: str = "copy",
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.output_dir = output_dir
        self.video_codec = video_codec
        self.audio_codec = audio_codec
        self.progress_callback = progress_callback

    def encode(self, request: ExportRequest) -> EncodedOutput:
        validate_crop(request.crop)
        filename = output_filename()
        output = self.output_dir / filename
        try:
            crop_video(
                request.source,
                output,
                request.crop.as_tuple(),
                progress_callback=self.progress_callback,
                video_codec=self.video_codec,
                audio_codec=self.audio_codec,
            )
        except (RuntimeError, OSError, ValueError) as exc:
            output.unlink(missing_ok=True)
            raise ExportFailure(str(exc)) from exc
        return EncodedOutput(output, filename)

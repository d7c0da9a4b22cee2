"""Core, UI-agnostic geometry for the crop selector.

This module contains:
  - The value types shared across the app (container, native resolution,
    display rect, on-screen box, native crop box)
  - The letterbox mapping from container to displayed video
  - The export mapping from an on-screen box to a native-pixel crop box
  - Small utilities for formatting metadata

It intentionally has no dependencies on Tkinter, VLC, or other UI layers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Tuple

from .errors import NotReadyError


@dataclass(frozen=True)
class ContainerFrame:
    """Size of the viewport hosting the video, in screen pixels."""

    width: float
    height: float

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class NativeResolution:
    """Pixel size of the loaded video. Zero sides mean "unknown"."""

    width: int
    height: int

    @property
    def is_known(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def ratio(self) -> float:
        return self.width / self.height


@dataclass(frozen=True)
class DisplayRect:
    """Letterboxed part of the container that actually shows video."""

    width: float
    height: float
    offset_x: float
    offset_y: float

    @property
    def is_ready(self) -> bool:
        return self.width > 0 and self.height > 0


NOT_READY = DisplayRect(0.0, 0.0, 0.0, 0.0)


@dataclass(frozen=True)
class BoxGeometry:
    """A selection box in container pixels (floats)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class CropBox:
    """Represents a crop region in native pixel coordinates."""

    x: int
    y: int
    width: int
    height: int

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return self.x, self.y, self.width, self.height


def compute_display_rect(container: ContainerFrame, native: NativeResolution) -> DisplayRect:
    """Compute how the video is letterboxed inside the container.

    The wider side (relative to the container) fills the container and the
    other axis is centered. Unknown metadata or an unsized container yields
    :data:`NOT_READY`.
    """
    if not native.is_known or container.is_degenerate:
        return NOT_READY

    video_ratio = native.ratio
    container_ratio = container.width / container.height
    if video_ratio > container_ratio:
        display_width = float(container.width)
        display_height = container.width / video_ratio
        offset_x = 0.0
        offset_y = (container.height - display_height) / 2
    else:
        display_height = float(container.height)
        display_width = container.height * video_ratio
        offset_x = (container.width - display_width) / 2
        offset_y = 0.0
    return DisplayRect(display_width, display_height, offset_x, offset_y)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward +infinity."""
    return int(math.floor(value + 0.5))


def _fit_span(start: int, length: int, limit: int) -> tuple[int, int]:
    """Correct one axis of a crop so it lies in ``[0, limit)`` with length >= 1."""
    if start < 0:
        length += start
        start = 0
    if start + length > limit:
        length = limit - start
    length = max(1, length)
    start = min(start, limit - length)
    return start, length


def compute_crop_rect(
    display: DisplayRect,
    native: NativeResolution,
    selection: BoxGeometry,
) -> CropBox:
    """Translate an on-screen selection into a native-resolution crop box.

    The selection is first made relative to the displayed video, then scaled
    by ``native / display`` and rounded. Parts that fall onto the letterbox
    bars are cut off, and the result always has at least one pixel per side.
    """
    if not native.is_known:
        raise NotReadyError("Video resolution is not known yet.")
    if not display.is_ready:
        raise NotReadyError("Video is not displayed yet.")

    scale_x = native.width / display.width
    scale_y = native.height / display.height

    rel_x = selection.x - display.offset_x
    rel_y = selection.y - display.offset_y

    x, width = _fit_span(
        round_half_up(rel_x * scale_x),
        round_half_up(selection.width * scale_x),
        native.width,
    )
    y, height = _fit_span(
        round_half_up(rel_y * scale_y),
        round_half_up(selection.height * scale_y),
        native.height,
    )
    return CropBox(x, y, width, height)


def native_resolution_from_metadata(metadata: Mapping[str, Any]) -> NativeResolution:
    """Pick the first video stream of an ffprobe payload."""
    streams = metadata.get("streams") or []
    for stream in streams:
        if stream.get("codec_type", "video") == "video" and stream.get("width"):
            return NativeResolution(int(stream["width"]), int(stream["height"]))
    return NativeResolution(0, 0)


def describe_video(
    video_path: Path,
    metadata: Mapping[str, Any],
) -> tuple[str, float]:
    """Return a human-readable info string and duration in seconds."""
    duration = float(metadata.get("format", {}).get("duration") or 0.0)
    native = native_resolution_from_metadata(metadata)
    msg = f"Loaded: {video_path.name}\n{native.width}x{native.height} • {duration:.2f}s"
    return msg, duration

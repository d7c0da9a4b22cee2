"""Runtime settings with environment overrides."""
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping

from .logger import get_logger

_logger = get_logger("config")

ENV_PREFIX = "CROP_SELECTOR_"


def _default_output_dir() -> Path:
    return Path(tempfile.gettempdir()) / "crop_selector"


@dataclass(frozen=True)
class Settings:
    """Knobs for the selection engine and the Tk host."""

    # Smallest edge, in container pixels, a resize gesture may produce.
    min_edge: float = 50.0
    # Fraction of the container left free on each side of the default box.
    default_inset: float = 0.10
    handle_size: float = 10.0
    canvas_width: int = 900
    canvas_height: int = 520
    output_dir: Path = field(default_factory=_default_output_dir)
    video_codec: str = "libx264"
    audio_codec: str = "copy"
    log_level: str = "info"


_FLOAT_KEYS = ("min_edge", "default_inset", "handle_size")
_INT_KEYS = ("canvas_width", "canvas_height")
_STR_KEYS = ("video_codec", "audio_codec", "log_level")


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from ``CROP_SELECTOR_*`` variables.

    Malformed values are logged and the default is kept.
    """
    env = os.environ if environ is None else environ
    settings = Settings()
    overrides: dict[str, object] = {}

    for key in _FLOAT_KEYS + _INT_KEYS + _STR_KEYS:
        raw = env.get(ENV_PREFIX + key.upper())
        if raw is None or not raw.strip():
            continue
        raw = raw.strip()
        try:
            if key in _FLOAT_KEYS:
                overrides[key] = float(raw)
            elif key in _INT_KEYS:
                overrides[key] = int(raw)
            else:
                overrides[key] = raw
        except ValueError:
            _logger.warning("ignoring %s%s=%r: not a number", ENV_PREFIX, key.upper(), raw)

    raw_dir = env.get(ENV_PREFIX + "OUTPUT_DIR")
    if raw_dir and raw_dir.strip():
        overrides["output_dir"] = Path(raw_dir.strip()).expanduser()

    inset = overrides.get("default_inset")
    if inset is not None and not 0.0 <= float(inset) < 0.5:
        _logger.warning("ignoring default_inset=%s: must be in [0, 0.5)", inset)
        overrides.pop("default_inset")

    if overrides:
        _logger.debug("settings overrides: %s", overrides)
        settings = replace(settings, **overrides)
    return settings

"""Command-line entry point: ``python -m crop_selector [video]``."""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .config import load_settings
from .logger import parse_level, setup_logger


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="crop-selector", description="Select a crop region on a video.")
    parser.add_argument("video", nargs="?", type=Path, help="Video file to open on start")
    parser.add_argument("--log-level", default=None, help="debug, info, warning or error")
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    settings = load_settings()
    if args.log_level:
        settings = replace(settings, log_level=args.log_level)
    setup_logger(parse_level(settings.log_level, logging.INFO))

    # Tk, Pillow and VLC are only needed once the window opens.
    from .app import run

    run(args.video, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())

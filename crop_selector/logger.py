"""Project logger setup.

Every module asks for a child of the ``crop_selector`` logger through
:func:`get_logger`. The base logger owns exactly one stderr handler and does
not propagate to the root logger, so embedding hosts keep their own output.
"""
from __future__ import annotations

import logging
import os
import sys

LOGGER_NAME = "crop_selector"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def parse_level(value: str | None, default: int = logging.INFO) -> int:
    """Map a level name such as ``"debug"`` to its ``logging`` constant."""
    if not value:
        return default
    return _LEVELS.get(value.strip().lower(), default)


def setup_logger(level: int = logging.INFO, name: str = LOGGER_NAME) -> logging.Logger:
    """Create or update the project logger.

    - ``CROP_SELECTOR_LOG_LEVEL`` overrides ``level`` on every call, so a late
      CLI parse can still take effect.
    - Re-running this never stacks handlers; the existing stderr handler is
      reused and its formatter refreshed.
    """
    logger = logging.getLogger(name)
    logger.setLevel(parse_level(os.getenv("CROP_SELECTOR_LOG_LEVEL"), level))

    stream_handler: logging.StreamHandler | None = None
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and getattr(handler, "stream", None) is sys.stderr:
            stream_handler = handler
            break

    if stream_handler is None:
        stream_handler = logging.StreamHandler(stream=sys.stderr)
        logger.addHandler(stream_handler)

    stream_handler.setFormatter(
        logging.Formatter(fmt="[%(asctime)s] %(levelname)s: %(message)s", datefmt="%H:%M:%S")
    )

    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = logging.getLogger(LOGGER_NAME)
    if not base.handlers:
        base = setup_logger()
    return base if not name else base.getChild(name)

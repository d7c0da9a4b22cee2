"""Interactive crop-region selection for videos."""

__version__ = "0.1.0"

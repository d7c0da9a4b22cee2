"""Exception types shared by the crop selector."""
from __future__ import annotations


class CropSelectorError(Exception):
    """Base class for every error raised by this package."""


class NotReadyError(CropSelectorError):
    """Raised when geometry is requested before a source video is usable."""


class InvalidGeometryError(CropSelectorError):
    """Raised when a caller hands over geometry that clamping should have prevented."""


class SessionLockedError(CropSelectorError):
    """Raised when the session has already exported and no longer accepts edits."""


class ExportInProgressError(CropSelectorError):
    """Raised when an export is requested while another one is outstanding."""


class ExportFailure(CropSelectorError):
    """The encoding collaborator rejected the request or could not be reached."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

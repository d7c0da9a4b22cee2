"""Lifecycle gate deciding whether the selection may be edited or exported."""
from __future__ import annotations

from enum import Enum

from .errors import NotReadyError, SessionLockedError
from .logger import get_logger

_logger = get_logger("session")


class SessionState(Enum):
    AWAITING_SOURCE = "awaiting_source"
    EDITABLE = "editable"
    LOCKED = "locked"


class SessionGate:
    """AwaitingSource -> Editable -> Locked.

    Locked is terminal until :meth:`reset`, which stands in for reloading
    the window. A failed export never locks.
    """

    def __init__(self) -> None:
        self._state = SessionState.AWAITING_SOURCE

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_editable(self) -> bool:
        return self._state is SessionState.EDITABLE

    def source_ready(self) -> None:
        if self._state is SessionState.LOCKED:
            raise SessionLockedError("Session already exported; reset before loading another video.")
        self._transition(SessionState.EDITABLE)

    def lock(self) -> None:
        self.require_editable()
        self._transition(SessionState.LOCKED)

    def reset(self) -> None:
        self._transition(SessionState.AWAITING_SOURCE)

    def require_editable(self) -> None:
        if self._state is SessionState.AWAITING_SOURCE:
            raise NotReadyError("Load a video first.")
        if self._state is SessionState.LOCKED:
            raise SessionLockedError("Crop already exported for this session.")

    def _transition(self, new_state: SessionState) -> None:
        if new_state is not self._state:
            _logger.debug("session %s -> %s", self._state.value, new_state.value)
        self._state = new_state

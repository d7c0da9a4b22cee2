"""Pointer-driven editing of the crop selection.

Transition table of :class:`InteractionController`:

    IDLE         --down on body-->      TRANSLATING
    IDLE         --down on handle h-->  RESIZING(h)
    TRANSLATING  --up-->                IDLE   (geometry kept)
    RESIZING     --up-->                IDLE   (geometry kept)
    TRANSLATING  --cancel-->            IDLE   (geometry restored)
    RESIZING     --cancel-->            IDLE   (geometry restored)

A pointer down during a gesture is ignored, and every pointer down is
rejected unless the session is editable and the container has a size.
"""
from __future__ import annotations

from dataclasses import astuple, dataclass, replace
from enum import Enum
from typing import Any, Callable

from .core import BoxGeometry, ContainerFrame
from .logger import get_logger
from .selection import SelectionModel, SelectionRegion
from .session import SessionGate

_logger = get_logger("interaction")


class Handle(Enum):
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"

    @property
    def moves_left(self) -> bool:
        return self in (Handle.TOP_LEFT, Handle.BOTTOM_LEFT)

    @property
    def moves_top(self) -> bool:
        return self in (Handle.TOP_LEFT, Handle.TOP_RIGHT)

    def corner(self, box: BoxGeometry) -> tuple[float, float]:
        x = box.x if self.moves_left else box.right
        y = box.y if self.moves_top else box.bottom
        return x, y


class GestureKind(Enum):
    IDLE = "idle"
    TRANSLATING = "translating"
    RESIZING = "resizing"


@dataclass(frozen=True)
class PointerSample:
    """One pointer position in container coordinates."""

    x: float
    y: float
    source: str = "mouse"


def pointer_from_event(event: Any) -> PointerSample:
    """Extract a pointer position from a mouse-like or touch-like event.

    Touch-like events expose a non-empty ``touches`` sequence whose first
    entry is either an object with ``x``/``y`` or an ``(x, y)`` pair; anything
    else must carry ``x``/``y`` itself (Tk mouse events do).
    """
    touches = getattr(event, "touches", None)
    if touches:
        first = touches[0]
        if isinstance(first, (tuple, list)):
            return PointerSample(float(first[0]), float(first[1]), "touch")
        return PointerSample(float(first.x), float(first.y), "touch")
    return PointerSample(float(event.x), float(event.y), "mouse")


def box_contains(box: BoxGeometry, x: float, y: float) -> bool:
    return box.x <= x <= box.right and box.y <= y <= box.bottom


def hit_handle(box: BoxGeometry, x: float, y: float, handle_size: float) -> Handle | None:
    """Return the handle whose corner lies within ``handle_size`` of (x, y)."""
    for handle in Handle:
        cx, cy = handle.corner(box)
        if abs(x - cx) <= handle_size and abs(y - cy) <= handle_size:
            return handle
    return None


def translate_box(
    reference: BoxGeometry,
    dx: float,
    dy: float,
    container: ContainerFrame,
) -> BoxGeometry:
    """Move the box by (dx, dy), clamping each axis into the container."""
    width = min(reference.width, container.width)
    height = min(reference.height, container.height)
    x = max(0.0, min(reference.x + dx, container.width - width))
    y = max(0.0, min(reference.y + dy, container.height - height))
    return BoxGeometry(x, y, width, height)


def _resize_span(
    start: float,
    length: float,
    delta: float,
    limit: float,
    min_edge: float,
    moves_start: bool,
) -> tuple[float, float]:
    # The floor is capped by the room between the pinned edge and the
    # container bound, so containment wins over the minimum size.
    if moves_start:
        pinned = start + length
        floor = max(0.0, min(min_edge, pinned))
        new_length = min(max(floor, length - delta), pinned)
        return pinned - new_length, new_length
    room = limit - start
    floor = max(0.0, min(min_edge, room))
    new_length = min(max(floor, length + delta), room)
    return start, new_length


def resize_box(
    handle: Handle,
    reference: BoxGeometry,
    dx: float,
    dy: float,
    container: ContainerFrame,
    min_edge: float,
) -> BoxGeometry:
    """Resize from ``handle``, keeping the opposite corner where it was."""
    x, width = _resize_span(
        reference.x, reference.width, dx, container.width, min_edge, handle.moves_left
    )
    y, height = _resize_span(
        reference.y, reference.height, dy, container.height, min_edge, handle.moves_top
    )
    return BoxGeometry(x, y, width, height)


@dataclass(frozen=True)
class _Gesture:
    kind: GestureKind
    handle: Handle | None
    anchor: PointerSample
    reference: BoxGeometry
    start_region: SelectionRegion
    container: ContainerFrame


class InteractionController:
    """Turns pointer input into selection updates.

    ``container`` is called whenever the current container size is needed.
    ``on_change`` receives the new absolute box after every applied move and
    after a cancel restores the original geometry.
    """

    def __init__(
        self,
        selection: SelectionModel,
        gate: SessionGate,
        container: Callable[[], ContainerFrame],
        *,
        min_edge: float = 50.0,
        on_change: Callable[[BoxGeometry], None] | None = None,
    ) -> None:
        self._selection = selection
        self._gate = gate
        self._container = container
        self._min_edge = min_edge
        self._on_change = on_change
        self._gesture: _Gesture | None = None

    @property
    def state(self) -> GestureKind:
        return self._gesture.kind if self._gesture else GestureKind.IDLE

    @property
    def active_handle(self) -> Handle | None:
        return self._gesture.handle if self._gesture else None

    def pointer_down(self, point: PointerSample, handle: Handle | None = None) -> bool:
        """Start translating (``handle`` is None) or resizing from ``handle``."""
        if self._gesture is not None:
            _logger.debug("pointer down ignored: %s in progress", self._gesture.kind.value)
            return False
        if not self._gate.is_editable:
            _logger.debug("pointer down rejected: session is %s", self._gate.state.value)
            return False
        container = self._container()
        if container.is_degenerate:
            _logger.debug("pointer down rejected: container %s has no size", container)
            return False

        kind = GestureKind.TRANSLATING if handle is None else GestureKind.RESIZING
        self._gesture = _Gesture(
            kind=kind,
            handle=handle,
            anchor=point,
            reference=self._selection.to_absolute(container),
            start_region=self._selection.region,
            container=container,
        )
        return True

    def pointer_move(self, point: PointerSample) -> BoxGeometry | None:
        gesture = self._gesture
        if gesture is None:
            return None
        container = self._container()
        if container.is_degenerate:
            return None

        if container != gesture.container:
            gesture = self._rebase(gesture, container)
            self._gesture = gesture

        dx = point.x - gesture.anchor.x
        dy = point.y - gesture.anchor.y
        if gesture.handle is None:
            box = translate_box(gesture.reference, dx, dy, container)
        else:
            box = resize_box(gesture.handle, gesture.reference, dx, dy, container, self._min_edge)

        self._selection.from_absolute(container, box)
        self._notify(box)
        return box

    def _rebase(self, gesture: _Gesture, container: ContainerFrame) -> _Gesture:
        # Container resized mid-gesture: re-project the start state into it.
        old = gesture.container
        sx = container.width / old.width
        sy = container.height / old.height
        self._selection.reset(*astuple(gesture.start_region))
        return replace(
            gesture,
            anchor=PointerSample(gesture.anchor.x * sx, gesture.anchor.y * sy, gesture.anchor.source),
            reference=self._selection.to_absolute(container),
            container=container,
        )

    def pointer_up(self) -> None:
        self._gesture = None

    def pointer_cancel(self) -> None:
        gesture = self._gesture
        if gesture is None:
            return
        self._gesture = None
        self._selection.reset(*astuple(gesture.start_region))
        container = self._container()
        if not container.is_degenerate:
            self._notify(self._selection.to_absolute(container))

    def _notify(self, box: BoxGeometry) -> None:
        if self._on_change is not None:
            self._on_change(box)

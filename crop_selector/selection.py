"""Resolution-independent storage of the crop selection."""
from __future__ import annotations

from dataclasses import dataclass

from .core import BoxGeometry, ContainerFrame
from .errors import InvalidGeometryError


@dataclass(frozen=True)
class SelectionRegion:
    """Crop box as fractions of the container (each in ``[0, 1]``)."""

    left: float
    top: float
    width: float
    height: float


def default_region(inset: float = 0.10) -> SelectionRegion:
    """Box inset by ``inset`` from every edge of the container."""
    span = 1.0 - 2 * inset
    return SelectionRegion(inset, inset, span, span)


class SelectionModel:
    """Holds the selection in fractional form and renders it to pixels.

    Fractions survive container resizes: a window resize only needs
    :meth:`to_absolute` again. Nothing here clamps; callers hand over
    geometry that is already valid for the container.
    """

    def __init__(self, region: SelectionRegion | None = None) -> None:
        self._region = region or default_region()

    @property
    def region(self) -> SelectionRegion:
        return self._region

    def reset(self, left: float, top: float, width: float, height: float) -> None:
        self._region = SelectionRegion(left, top, width, height)

    def to_absolute(self, container: ContainerFrame) -> BoxGeometry:
        r = self._region
        return BoxGeometry(
            x=r.left * container.width,
            y=r.top * container.height,
            width=r.width * container.width,
            height=r.height * container.height,
        )

    def from_absolute(self, container: ContainerFrame, box: BoxGeometry) -> None:
        if container.is_degenerate:
            raise InvalidGeometryError(f"cannot normalize against container {container}")
        self._region = SelectionRegion(
            left=box.x / container.width,
            top=box.y / container.height,
            width=box.width / container.width,
            height=box.height / container.height,
        )

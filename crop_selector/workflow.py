"""One editing session: source, selection, gestures and the export handoff."""
from __future__ import annotations

from dataclasses import astuple, dataclass
from pathlib import Path
from typing import Callable, Protocol

from .config import Settings
from .core import (
    BoxGeometry,
    ContainerFrame,
    CropBox,
    DisplayRect,
    NativeResolution,
    compute_crop_rect,
    compute_display_rect,
)
from .errors import ExportFailure, ExportInProgressError, NotReadyError
from .interaction import InteractionController
from .logger import get_logger
from .selection import SelectionModel, default_region
from .session import SessionGate, SessionState

_logger = get_logger("workflow")


@dataclass(frozen=True)
class ExportRequest:
    """What the encoding collaborator receives."""

    source: Path
    crop: CropBox

    def form_fields(self) -> dict[str, int]:
        return {
            "cropWidth": self.crop.width,
            "cropHeight": self.crop.height,
            "cropX": self.crop.x,
            "cropY": self.crop.y,
        }


@dataclass(frozen=True)
class EncodedOutput:
    path: Path
    filename: str


class Encoder(Protocol):
    def encode(self, request: ExportRequest) -> EncodedOutput:
        """Encode the cropped video or raise :class:`ExportFailure`."""
        ...


class CropWorkflow:
    """Glue between the geometry engine and whatever hosts it.

    The host supplies a callable returning the current container size. The
    export is split in three steps so that only the encoder call needs to
    leave the UI thread: :meth:`begin_export`, the encoder call, then
    :meth:`finish_export` or :meth:`fail_export`. :meth:`export` runs all three
    in a row.
    """

    def __init__(
        self,
        container: Callable[[], ContainerFrame],
        settings: Settings | None = None,
        *,
        on_change: Callable[[BoxGeometry], None] | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self._container = container
        self.gate = SessionGate()
        self.selection = SelectionModel(default_region(self.settings.default_inset))
        self.controller = InteractionController(
            self.selection,
            self.gate,
            container,
            min_edge=self.settings.min_edge,
            on_change=on_change,
        )
        self.source: Path | None = None
        self.native = NativeResolution(0, 0)
        self._export_in_flight = False

    @property
    def state(self) -> SessionState:
        return self.gate.state

    @property
    def export_in_flight(self) -> bool:
        return self._export_in_flight

    @property
    def can_export(self) -> bool:
        return self.gate.is_editable and not self._export_in_flight

    def load_source(self, source: Path, native: NativeResolution) -> None:
        """Accept a video whose metadata is known and seed the default box."""
        if not native.is_known:
            raise NotReadyError(f"{source.name} reports no video resolution.")
        self.controller.pointer_up()
        self.gate.source_ready()
        self.source = source
        self.native = native
        inset = self.settings.default_inset
        self.selection.reset(inset, inset, 1.0 - 2 * inset, 1.0 - 2 * inset)
        _logger.info("loaded %s (%dx%d)", source.name, native.width, native.height)

    def reset(self) -> None:
        """Start over as if the window had been reopened."""
        self.controller.pointer_cancel()
        self.gate.reset()
        self.source = None
        self.native = NativeResolution(0, 0)
        self._export_in_flight = False
        self.selection.reset(*astuple(default_region(self.settings.default_inset)))

    def display_rect(self) -> DisplayRect:
        return compute_display_rect(self._container(), self.native)

    def selection_box(self) -> BoxGeometry:
        return self.selection.to_absolute(self._container())

    def crop_rect(self) -> CropBox:
        if self.source is None:
            raise NotReadyError("Load a video first.")
        return compute_crop_rect(self.display_rect(), self.native, self.selection_box())

    def begin_export(self) -> ExportRequest:
        if self._export_in_flight:
            raise ExportInProgressError("An export is already running.")
        self.gate.require_editable()
        request = ExportRequest(self.source, self.crop_rect())
        self._export_in_flight = True
        _logger.info("export requested: %s", request.form_fields())
        return request

    def finish_export(self, output: EncodedOutput) -> None:
        self._export_in_flight = False
        self.gate.lock()
        _logger.info("export complete: %s", output.path)

    def fail_export(self, error: ExportFailure) -> None:
        self._export_in_flight = False
        _logger.warning("export failed: %s", error.message)

    @staticmethod
    def run_encoder(encoder: Encoder, request: ExportRequest) -> EncodedOutput:
        """Call the encoder, reporting every error it raises as :class:`ExportFailure`.

        Safe to call off the UI thread; it touches no session state.
        """
        try:
            return encoder.encode(request)
        except ExportFailure:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ExportFailure(str(exc) or type(exc).__name__) from exc

    def export(self, encoder: Encoder) -> EncodedOutput:
        request = self.begin_export()
        try:
            output = self.run_encoder(encoder, request)
        except ExportFailure as exc:
            self.fail_export(exc)
            raise
        self.finish_export(output)
        return output

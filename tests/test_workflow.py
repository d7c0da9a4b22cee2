from __future__ import annotations

from pathlib import Path

import pytest

from crop_selector.config import Settings
from crop_selector.core import ContainerFrame, CropBox, NativeResolution
from crop_selector.errors import (
    ExportFailure,
    ExportInProgressError,
    NotReadyError,
    SessionLockedError,
)
from crop_selector.interaction import Handle, PointerSample
from crop_selector.session import SessionState
from crop_selector.workflow import CropWorkflow, EncodedOutput, ExportRequest

SOURCE = Path("clip.mp4")
HD = NativeResolution(1920, 1080)


class RecordingEncoder:
    def __init__(self) -> None:
        self.requests: list[ExportRequest] = []

    def encode(self, request: ExportRequest) -> EncodedOutput:
        self.requests.append(request)
        return EncodedOutput(Path("/tmp/cropped-1.mp4"), "cropped-1.mp4")


class FailingEncoder:
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls = 0

    def encode(self, request: ExportRequest) -> EncodedOutput:
        self.calls += 1
        raise self.error


@pytest.fixture
def frame() -> dict:
    return {"container": ContainerFrame(800, 450)}


@pytest.fixture
def workflow(frame) -> CropWorkflow:
    return CropWorkflow(lambda: frame["container"], Settings())


def test_load_seeds_default_box_and_exports_scenario_rect(workflow) -> None:
    workflow.load_source(SOURCE, HD)
    encoder = RecordingEncoder()

    output = workflow.export(encoder)

    assert output.filename == "cropped-1.mp4"
    (request,) = encoder.requests
    assert request.source == SOURCE
    assert request.crop == CropBox(192, 108, 1536, 864)
    assert request.form_fields() == {"cropWidth": 1536, "cropHeight": 864, "cropX": 192, "cropY": 108}
    assert workflow.state is SessionState.LOCKED


def test_export_while_locked_never_reaches_encoder(workflow) -> None:
    workflow.load_source(SOURCE, HD)
    workflow.export(RecordingEncoder())
    encoder = RecordingEncoder()

    with pytest.raises(SessionLockedError):
        workflow.export(encoder)

    assert encoder.requests == []


def test_locked_session_rejects_pointer_input(workflow) -> None:
    workflow.load_source(SOURCE, HD)
    workflow.export(RecordingEncoder())

    assert not workflow.controller.pointer_down(PointerSample(400, 200))


def test_export_before_load_is_not_ready(workflow) -> None:
    encoder = RecordingEncoder()

    with pytest.raises(NotReadyError):
        workflow.export(encoder)
    with pytest.raises(NotReadyError):
        workflow.crop_rect()
    assert encoder.requests == []


def test_failed_export_stays_editable_and_can_retry(workflow) -> None:
    workflow.load_source(SOURCE, HD)
    before = workflow.selection.region
    failing = FailingEncoder(ExportFailure("Video processing failed."))

    with pytest.raises(ExportFailure, match="Video processing failed"):
        workflow.export(failing)

    assert workflow.state is SessionState.EDITABLE
    assert not workflow.export_in_flight
    assert workflow.selection.region == before

    workflow.export(RecordingEncoder())
    assert workflow.state is SessionState.LOCKED


def test_delivery_error_becomes_export_failure(workflow) -> None:
    workflow.load_source(SOURCE, HD)

    with pytest.raises(ExportFailure, match="connection refused"):
        workflow.export(FailingEncoder(ConnectionRefusedError("connection refused")))

    assert workflow.can_export


@pytest.mark.parametrize(
    "error",
    [
        UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"),
        KeyError("cropWidth"),
        TypeError("unexpected"),
    ],
)
def test_unexpected_encoder_error_clears_in_flight_export(workflow, error) -> None:
    workflow.load_source(SOURCE, HD)

    with pytest.raises(ExportFailure) as excinfo:
        workflow.export(FailingEncoder(error))

    assert excinfo.value.__cause__ is error
    assert not workflow.export_in_flight
    assert workflow.can_export
    workflow.export(RecordingEncoder())
    assert workflow.state is SessionState.LOCKED


def test_run_encoder_leaves_session_untouched(workflow) -> None:
    workflow.load_source(SOURCE, HD)
    request = workflow.begin_export()

    with pytest.raises(ExportFailure, match="unexpected"):
        CropWorkflow.run_encoder(FailingEncoder(TypeError("unexpected")), request)

    assert workflow.export_in_flight


def test_only_one_export_in_flight(workflow) -> None:
    workflow.load_source(SOURCE, HD)

    request = workflow.begin_export()
    assert not workflow.can_export
    with pytest.raises(ExportInProgressError):
        workflow.begin_export()

    workflow.finish_export(EncodedOutput(Path("/tmp/out.mp4"), "out.mp4"))
    assert request.crop.width == 1536
    assert workflow.state is SessionState.LOCKED
    assert not workflow.can_export


def test_gesture_then_export_uses_new_geometry(workflow) -> None:
    workflow.load_source(SOURCE, HD)
    controller = workflow.controller

    controller.pointer_down(PointerSample(80, 45), Handle.TOP_LEFT)
    controller.pointer_move(PointerSample(0, 0))
    controller.pointer_up()

    assert workflow.crop_rect() == CropBox(0, 0, 1728, 972)


def test_window_resize_keeps_selection_proportional(workflow, frame) -> None:
    workflow.load_source(SOURCE, HD)
    before = workflow.crop_rect()

    frame["container"] = ContainerFrame(1600, 900)

    box = workflow.selection_box()
    assert box.x == pytest.approx(160)
    assert box.width == pytest.approx(1280)
    assert workflow.crop_rect() == before


def test_reset_returns_to_awaiting_source(workflow) -> None:
    workflow.load_source(SOURCE, HD)
    workflow.export(RecordingEncoder())

    with pytest.raises(SessionLockedError):
        workflow.load_source(SOURCE, HD)

    workflow.reset()

    assert workflow.state is SessionState.AWAITING_SOURCE
    assert workflow.source is None
    assert not workflow.display_rect().is_ready
    workflow.load_source(SOURCE, HD)
    assert workflow.can_export


def test_load_rejects_unknown_resolution(workflow) -> None:
    with pytest.raises(NotReadyError):
        workflow.load_source(SOURCE, NativeResolution(0, 0))

    assert workflow.state is SessionState.AWAITING_SOURCE

from __future__ import annotations

import pytest

from crop_selector.core import BoxGeometry, ContainerFrame
from crop_selector.errors import InvalidGeometryError
from crop_selector.selection import SelectionModel, SelectionRegion, default_region


def test_default_region_is_ten_percent_inset() -> None:
    region = default_region()

    assert region.left == pytest.approx(0.1)
    assert region.top == pytest.approx(0.1)
    assert region.width == pytest.approx(0.8)
    assert region.height == pytest.approx(0.8)


def test_to_absolute_scales_by_container() -> None:
    model = SelectionModel()
    box = model.to_absolute(ContainerFrame(800, 450))

    assert box.x == pytest.approx(80)
    assert box.y == pytest.approx(45)
    assert box.width == pytest.approx(640)
    assert box.height == pytest.approx(360)


def test_fractions_survive_container_resize() -> None:
    model = SelectionModel()
    model.from_absolute(ContainerFrame(400, 400), BoxGeometry(100, 50, 200, 100))

    box = model.to_absolute(ContainerFrame(800, 200))

    assert (box.x, box.y, box.width, box.height) == (200, 25, 400, 50)


def test_round_trip_is_stable_for_fixed_container() -> None:
    container = ContainerFrame(733, 411)
    model = SelectionModel(SelectionRegion(0.137, 0.29, 0.5, 0.333))
    before = model.region

    model.from_absolute(container, model.to_absolute(container))
    model.from_absolute(container, model.to_absolute(container))

    after = model.region
    assert after.left == pytest.approx(before.left)
    assert after.top == pytest.approx(before.top)
    assert after.width == pytest.approx(before.width)
    assert after.height == pytest.approx(before.height)


def test_reset_replaces_region() -> None:
    model = SelectionModel()
    model.reset(0.0, 0.25, 1.0, 0.5)

    assert model.region == SelectionRegion(0.0, 0.25, 1.0, 0.5)


def test_from_absolute_rejects_unsized_container() -> None:
    model = SelectionModel()

    with pytest.raises(InvalidGeometryError):
        model.from_absolute(ContainerFrame(0, 0), BoxGeometry(0, 0, 10, 10))

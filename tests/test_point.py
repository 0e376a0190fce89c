from __future__ import annotations

import numpy as np
import pytest
from helpers import dataclasses_are_equal

from fusbeam import Point
from fusbeam.geo import rotation_matrix
from fusbeam.util.errors import DegenerateFocus, DimensionMismatch


@pytest.fixture()
def example_point() -> Point:
    return Point(
        id = "example_point",
        name="Example point",
        color=(0.,0.7, 0.2),
        radius=1.5,
        position=np.array([-10.,0,25]),
        dims = ("R", "A", "S"),
        units = "m",
    )

@pytest.mark.parametrize("compact_representation", [True, False])
@pytest.mark.parametrize("default_point", [True, False])
def test_serialize_deserialize_point(example_point : Point, compact_representation: bool, default_point: bool):
    """Verify that turning a point into json and then re-constructing it gets back to the original point"""
    point = Point() if default_point else example_point
    reconstructed_point = point.from_json(point.to_json(compact_representation))
    assert dataclasses_are_equal(point, reconstructed_point)

def test_point_from_dict():
    point = Point.from_dict({'position' : [10,20,30],})
    assert (point.position == np.array([10,20,30], dtype=float)).all()

def test_point_position_must_be_3d():
    with pytest.raises(DimensionMismatch):
        Point(position=[1., 2.])

def test_rescale_returns_new_point(example_point: Point):
    point_mm = example_point.rescale("mm")
    np.testing.assert_allclose(point_mm.position, [-10000., 0., 25000.])
    assert point_mm.radius == 1500.
    assert example_point.units == "m"
    np.testing.assert_equal(example_point.position, [-10., 0., 25.])
    assert point_mm.get_position(dim="S", units="m") == pytest.approx(25.)

def test_transform_returns_new_point(example_point: Point):
    rotated = example_point.transform(rotation_matrix("y", 90), new_dims=("x", "y", "z"))
    np.testing.assert_allclose(rotated.position, [25., 0., 10.], atol=1e-12)
    assert rotated.dims == ("x", "y", "z")
    np.testing.assert_equal(example_point.position, [-10., 0., 25.])

@pytest.mark.parametrize("position", [[0., 0., 1.], [3., -2., 40.], [-5., 7., -1.], [0., 4., 0.]])
def test_get_matrix_is_orthonormal(position):
    m = Point(position=position).get_matrix()
    np.testing.assert_allclose(m[:3, :3].T @ m[:3, :3], np.eye(3), atol=1e-12)
    np.testing.assert_allclose(np.cross(m[:3, 0], m[:3, 1]), m[:3, 2], atol=1e-12)
    np.testing.assert_allclose(m[:3, 2], np.array(position)/np.linalg.norm(position))
    np.testing.assert_allclose(m[:3, 3], position)
    assert m[1, 0] == 0.0

def test_get_matrix_degenerate():
    with pytest.raises(DegenerateFocus):
        Point(position=[0., 0., 0.]).get_matrix()

from __future__ import annotations

import numpy as np
import pytest
from xarray import DataArray, Dataset

from fusbeam.axis import Axis
from fusbeam.bf import calc_dist_from_focus, get_focus_matrix, offset_grid
from fusbeam.geo import Point, apply_transform, translation_matrix
from fusbeam.util.errors import DegenerateFocus


@pytest.fixture()
def example_xarr() -> Dataset:
    rng = np.random.default_rng(147)
    return Dataset(
            {
                'p': DataArray(
                    data=rng.random((3, 2, 3)),
                    dims=["x", "y", "z"],
                    attrs={'units': "Pa"}
                )
            },
            coords={
                'x': DataArray(dims=["x"], data=np.linspace(0, 1, 3), attrs={'units': "mm"}),
                'y': DataArray(dims=["y"], data=np.linspace(0, 1, 2), attrs={'units': "mm"}),
                'z': DataArray(dims=["z"], data=np.linspace(0, 1, 3), attrs={'units': "mm"})
            }
        )

@pytest.fixture()
def example_coords():
    return [Axis(values=[0., 1.], id="x", units="mm"),
            Axis(values=[0.], id="y", units="mm"),
            Axis(values=[10., 12.], id="z", units="mm")]

def test_offset_grid(example_xarr: Dataset):
    """Test that the offset grid from the focus point is correct."""
    expected = np.array([
        [[[ 0. ,  0. , -1. ],
         [ 0. ,  0. , -0.5],
         [ 0. ,  0. ,  0. ]],

        [[ 0. ,  1. , -1. ],
         [ 0. ,  1. , -0.5],
         [ 0. ,  1. ,  0. ]]],


       [[[ 0.5,  0. , -1. ],
         [ 0.5,  0. , -0.5],
         [ 0.5,  0. ,  0. ]],

        [[ 0.5,  1. , -1. ],
         [ 0.5,  1. , -0.5],
         [ 0.5,  1. ,  0. ]]],


       [[[ 1. ,  0. , -1. ],
         [ 1. ,  0. , -0.5],
         [ 1. ,  0. ,  0. ]],

        [[ 1. ,  1. , -1. ],
         [ 1. ,  1. , -0.5],
         [ 1. ,  1. ,  0. ]]]])
    focus = Point(position=[0.0, 0.0, 1.0], units="mm")
    offset = offset_grid(example_xarr, focus)

    np.testing.assert_almost_equal(offset, expected)

def test_offset_grid_units(example_xarr: Dataset):
    focus = Point(position=[0.0, 0.0, 0.001], units="m")
    offset_mm = offset_grid(example_xarr, focus)
    offset_m = offset_grid(example_xarr, focus, units="m")
    np.testing.assert_allclose(offset_m, offset_mm * 1e-3)
    np.testing.assert_allclose(offset_mm[0, 0, 0], [0., 0., -1.])

def test_offset_grid_with_matrix(example_coords):
    focus = Point(position=[0.0, 0.0, 12.0], units="mm")
    offset = offset_grid(example_coords, focus, matrix=translation_matrix("z", 2.))
    np.testing.assert_allclose(offset[:, 0, 0], [[0., 0., 0.], [1., 0., 0.]], atol=1e-12)

def test_calc_dist_from_focus_aspect_ratio(example_coords):
    focus = Point(position=[0.0, 0.0, 10.0], units="mm")
    dist = calc_dist_from_focus(example_coords, focus, aspect_ratio=(1., 1., 2.))
    assert dist.shape == (2, 1, 2)
    np.testing.assert_allclose(dist[:, 0, :], [[0., 1.], [1., np.sqrt(2)]])

@pytest.mark.parametrize("aspect_ratio", [(1., 1.), (1., 0., 1.), (1., -1., 1.)])
def test_calc_dist_from_focus_invalid_aspect_ratio(example_coords, aspect_ratio):
    focus = Point(position=[0.0, 0.0, 10.0], units="mm")
    with pytest.raises(ValueError, match="Aspect ratio"):
        calc_dist_from_focus(example_coords, focus, aspect_ratio=aspect_ratio)

def test_focus_matrix_points_at_focus():
    focus = Point(position=[3.0, 4.0, 12.0], units="mm")
    m = get_focus_matrix(focus)
    R = m[:3, :3]
    np.testing.assert_allclose(R.T @ R, np.eye(3), atol=1e-12)
    assert np.linalg.det(R) == pytest.approx(1.)
    np.testing.assert_allclose(R[:, 2], np.array([3., 4., 12.]) / 13.)
    assert R[1, 0] == pytest.approx(0.)
    np.testing.assert_allclose(m[:3, 3], [3., 4., 12.])
    np.testing.assert_allclose(apply_transform(m, [0., 0., 0.]), focus.position)

def test_focus_matrix_units_and_centering():
    focus = Point(position=[3.0, 4.0, 12.0], units="mm")
    m_m = get_focus_matrix(focus, units="m")
    np.testing.assert_allclose(m_m[:3, 3], [3e-3, 4e-3, 12e-3])
    m_origin = get_focus_matrix(focus, center_on="origin")
    np.testing.assert_allclose(m_origin[:3, 3], 0.)
    np.testing.assert_allclose(m_origin[:3, :3], m_m[:3, :3])
    with pytest.raises(ValueError, match="center_on"):
        get_focus_matrix(focus, center_on="target")

def test_focus_matrix_degenerate_focus():
    with pytest.raises(DegenerateFocus):
        get_focus_matrix(Point(position=[0., 0., 0.]))

from __future__ import annotations

import numpy as np
import pytest
from helpers import NoCopyArray, dataclasses_are_equal

from fusbeam.axis import Axis
from fusbeam.geo import rotation_matrix, translation_matrix
from fusbeam.util.errors import DimensionMismatch, InvalidUnit, MaterialNotFound, OutOfBoundsSample
from fusbeam.volume import Volume, get_param_volume


def _cube_coords(units="mm"):
    return [Axis(values=np.linspace(-1, 1, 3), id=dim, units=units) for dim in "xyz"]

@pytest.fixture()
def example_volume() -> Volume:
    return Volume(data=np.arange(27, dtype=np.float64).reshape(3, 3, 3),
                  coords=_cube_coords(),
                  id="example",
                  name="Example",
                  units="Pa")

@pytest.fixture()
def linear_volume() -> Volume:
    coords = [Axis(values=np.linspace(0, 4, 5), id="x", units="mm"),
              Axis(values=np.linspace(0, 2, 3), id="y", units="mm"),
              Axis(values=np.linspace(-1, 1, 3), id="z", units="mm")]
    X, Y, Z = np.meshgrid(*[c.values for c in coords], indexing="ij")
    return Volume(data=2*X + 3*Y - Z + 1, coords=coords, id="linear")

def test_volume_validation():
    with pytest.raises(DimensionMismatch):
        Volume(data=np.zeros((2, 2, 2)), coords=_cube_coords())
    with pytest.raises(DimensionMismatch):
        Volume(data=np.zeros((3, 3)), coords=_cube_coords()[:2])
    coords = _cube_coords()
    coords[2] = Axis(values=np.linspace(-1, 1, 3), id="z", units="m")
    with pytest.raises(InvalidUnit):
        Volume(data=np.zeros((3, 3, 3)), coords=coords)
    with pytest.raises(DimensionMismatch):
        Volume(data=np.zeros((3, 3, 3)), coords=_cube_coords(), matrix=np.eye(3))

def test_volume_defaults(example_volume: Volume):
    assert example_volume.dims == ("x", "y", "z")
    assert example_volume.shape == (3, 3, 3)
    assert example_volume.get_units() == "mm"
    assert example_volume.get_coord("y").id == "y"
    assert Volume(data=np.zeros((3, 3, 3)), coords=_cube_coords()).name == "volume"

def test_rescale_returns_new_volume(example_volume: Volume):
    vol = example_volume.transform(_cube_coords(), translation_matrix("x", 2.))
    vol_m = vol.rescale("m")
    np.testing.assert_allclose(vol_m.get_coord("x").values, [-1e-3, 0., 1e-3])
    np.testing.assert_allclose(vol_m.matrix[0, 3], 2e-3)
    assert vol.get_units() == "mm"
    assert vol.matrix[0, 3] == 2.

def test_rescale_data(example_volume: Volume):
    vol = example_volume.rescale_data("MPa")
    assert vol.units == "MPa"
    np.testing.assert_allclose(vol.data, example_volume.data * 1e-6)

def test_ndgrid_transform():
    vol = Volume(data=np.zeros((3, 3, 3)), coords=_cube_coords(), matrix=translation_matrix("x", 10.))
    X, Y, Z = vol.ndgrid(transform=True)
    np.testing.assert_allclose(X[:, 0, 0], [9., 10., 11.])
    np.testing.assert_allclose(vol.ndgrid(transform=True, units="m")[0][:, 0, 0], [9e-3, 10e-3, 11e-3])
    Xm, Ym, Zm = vol.meshgrid()
    assert Xm.shape == (3, 3, 3)
    np.testing.assert_allclose(Xm[0, :, 0], [-1., 0., 1.])

def test_transform_rotation_nearest(example_volume: Volume):
    R = rotation_matrix("z", 90)
    vol2 = example_volume.transform(_cube_coords(), R, method="nearest")
    np.testing.assert_equal(vol2.data, np.transpose(example_volume.data[::-1], (1, 0, 2)))
    np.testing.assert_allclose(vol2.matrix, R)
    # the source is left untouched
    np.testing.assert_equal(example_volume.data, np.arange(27).reshape(3, 3, 3))
    np.testing.assert_equal(example_volume.matrix, np.eye(4))
    vol3 = vol2.transform(_cube_coords(), np.eye(4), method="nearest")
    np.testing.assert_allclose(vol3.data, example_volume.data, atol=1e-6)

def test_rescale_share_data(example_volume: Volume):
    assert not np.shares_memory(example_volume.rescale("m").data, example_volume.data)
    shared = example_volume.rescale("m", share_data=True)
    assert np.shares_memory(shared.data, example_volume.data)
    np.testing.assert_allclose(shared.coords[0].values, [-1e-3, 0., 1e-3])

def test_transform_does_not_copy_source_data(linear_volume: Volume):
    expected = linear_volume.transform(_cube_coords(), np.eye(4)).data
    linear_volume.data = linear_volume.data.view(NoCopyArray)
    vol = linear_volume.transform(_cube_coords(), np.eye(4))
    np.testing.assert_allclose(vol.data, expected)
    assert not np.shares_memory(vol.data, linear_volume.data)

def test_transform_onto_finer_grid(linear_volume: Volume):
    coords = [Axis(values=np.linspace(0.5, 3.5, 7), id="x", units="mm"),
              Axis(values=np.linspace(0.25, 1.75, 4), id="y", units="mm"),
              Axis(values=np.linspace(-0.5, 0.5, 5), id="z", units="mm")]
    vol = linear_volume.transform(coords, np.eye(4))
    X, Y, Z = vol.ndgrid()
    np.testing.assert_allclose(vol.data, 2*X + 3*Y - Z + 1, atol=1e-12)

def test_interp_linear_is_exact_for_linear_fields(linear_volume: Volume):
    rng = np.random.default_rng(0)
    X = rng.uniform(0, 4, 20)
    Y = rng.uniform(0, 2, 20)
    Z = rng.uniform(-1, 1, 20)
    np.testing.assert_allclose(linear_volume.interp(X, Y, Z), 2*X + 3*Y - Z + 1, atol=1e-12)
    np.testing.assert_allclose(linear_volume.interp(X*1e-3, Y*1e-3, Z*1e-3, units="m"), 2*X + 3*Y - Z + 1, atol=1e-12)

@pytest.mark.parametrize("method", ["nearest", "cubic", "spline"])
def test_interp_methods_at_grid_points(method):
    # cubic and spline need at least four samples per axis
    coords = [Axis(values=np.linspace(0, 4, 5), id=dim, units="mm") for dim in "xyz"]
    X, Y, Z = np.meshgrid(*[c.values for c in coords], indexing="ij")
    vol = Volume(data=np.sin(X) + Y*Z, coords=coords)
    np.testing.assert_allclose(vol.interp(X, Y, Z, method=method), vol.data, atol=1e-9)

def test_interp_bounds(linear_volume: Volume):
    assert np.isnan(linear_volume.interp(5., 1., 0.))
    assert linear_volume.interp(5., 1., 0., bounds="clamp") == pytest.approx(2*4 + 3*1 - 0 + 1)
    with pytest.raises(OutOfBoundsSample):
        linear_volume.interp([1., 5.], 1., 0., bounds="error")
    values = linear_volume.interp([1., 5.], 1., 0.)
    assert values[0] == pytest.approx(6.)
    assert np.isnan(values[1])
    # points on the boundary are inside
    assert linear_volume.interp(4., 2., 1.) == pytest.approx(2*4 + 3*2 - 1 + 1)
    with pytest.raises(ValueError):
        linear_volume.interp(1., 1., 0., method="quadratic")
    with pytest.raises(ValueError):
        linear_volume.interp(1., 1., 0., bounds="wrap")

def test_interp_descending_axis(linear_volume: Volume):
    flipped = Volume(data=linear_volume.data[::-1],
                     coords=[Axis(values=linear_volume.get_coord("x").values[::-1], id="x", units="mm")] + linear_volume.coords[1:])
    np.testing.assert_allclose(flipped.interp([0.3, 2.7], [1.1, 0.4], [0.2, -0.9]),
                               linear_volume.interp([0.3, 2.7], [1.1, 0.4], [0.2, -0.9]), atol=1e-12)

def test_interp_world_coordinates(linear_volume: Volume):
    placed = Volume(data=linear_volume.data, coords=linear_volume.coords, matrix=translation_matrix("x", 10.))
    assert placed.interp(11., 1., 0., transform=True) == pytest.approx(linear_volume.interp(1., 1., 0.))
    assert np.isnan(placed.interp(1., 1., 0., transform=True))

def test_interp_singleton_axis():
    vol = Volume(data=np.array([[[1.], [2.]], [[3.], [4.]]]),
                 coords=[Axis(values=[0., 1.], id="x", units="mm"),
                         Axis(values=[0., 1.], id="y", units="mm"),
                         Axis(values=[5.], id="z", units="mm")])
    assert vol.interp(0.5, 0.5, 5.) == pytest.approx(2.5)
    assert np.isnan(vol.interp(0.5, 0.5, 6.))

def test_get_edges():
    vol = Volume(data=np.zeros((3, 2, 1)),
                 coords=[Axis(values=[0., 1., 2.], id="x", units="mm"),
                         Axis(values=[0., 2.], id="y", units="mm"),
                         Axis(values=[5.], id="z", units="mm")])
    Xe, Ye, Ze = vol.get_edges()
    assert Xe.shape == Ye.shape == Ze.shape == (4, 3)
    np.testing.assert_allclose(Xe[:, 0], [-0.5, 0.5, 1.5, 2.5])
    np.testing.assert_allclose(Ye[0], [-1., 1., 3.])
    np.testing.assert_allclose(Ze, 5.)
    Ye_t, Xe_t, _ = vol.get_edges(order=(1, 0, 2))
    assert Ye_t.shape == (3, 4)
    np.testing.assert_allclose(Ye_t[:, 0], [-1., 1., 3.])
    np.testing.assert_allclose(Xe_t, Xe.T)
    placed = Volume(data=vol.data, coords=vol.coords, matrix=translation_matrix("z", 1.))
    np.testing.assert_allclose(placed.get_edges(transform=True)[2], 6.)
    np.testing.assert_allclose(vol.get_edges(units="m")[0][:, 0], [-0.5e-3, 0.5e-3, 1.5e-3, 2.5e-3])
    with pytest.raises(ValueError):
        vol.get_edges(order=(0, 0, 1))

def test_isel(example_volume: Volume):
    vol = example_volume.isel("x", 1)
    assert vol.shape == (1, 3, 3)
    np.testing.assert_equal(vol.get_coord("x").values, [0.])
    np.testing.assert_equal(vol.data[0], example_volume.data[1])
    assert example_volume.isel(2, slice(0, 2)).shape == (3, 3, 2)

def test_sel(example_volume: Volume):
    vol = example_volume.sel("z", 0.5)
    assert vol.shape == (3, 3, 1)
    np.testing.assert_allclose(vol.data[..., 0], 0.5*example_volume.data[..., 1] + 0.5*example_volume.data[..., 2])
    np.testing.assert_allclose(vol.get_coord("z").values, [0.5])
    assert dataclasses_are_equal(example_volume.sel("z", 0.), example_volume.isel("z", 1))
    np.testing.assert_allclose(example_volume.sel("z", 0.0005, units="m").data, vol.data)
    with pytest.raises(OutOfBoundsSample):
        example_volume.sel("z", 2.)

def test_crop(example_volume: Volume):
    vol = example_volume.crop("x", (-0.5, 1.0))
    assert vol.shape == (2, 3, 3)
    np.testing.assert_equal(vol.get_coord("x").values, [0., 1.])
    assert example_volume.crop("x", (-1e-3, 0.), units="m").shape == (2, 3, 3)
    with pytest.raises(ValueError, match="selects no samples"):
        example_volume.crop("x", (0.2, 0.8))

def test_xarray_round_trip(example_volume: Volume):
    vol = Volume(data=example_volume.data, coords=_cube_coords(), id="example", name="Example",
                 matrix=translation_matrix("y", 3.), units="Pa")
    da = vol.to_xarray()
    assert da.dims == ("x", "y", "z")
    assert da.attrs["units"] == "Pa"
    assert da.coords["x"].attrs["units"] == "mm"
    assert dataclasses_are_equal(Volume.from_xarray(da), vol)

def test_get_param_volume(example_volume: Volume):
    sound_speed = Volume(data=np.full((3, 3, 3), 1500.), coords=_cube_coords(), id="sound_speed", units="m/s")
    assert get_param_volume(sound_speed, "sound_speed") is sound_speed
    assert get_param_volume([example_volume, sound_speed], "sound_speed") is sound_speed
    assert get_param_volume({"sound_speed": sound_speed}, "sound_speed") is sound_speed
    ds = sound_speed.to_xarray().to_dataset()
    assert dataclasses_are_equal(get_param_volume(ds, "sound_speed"), sound_speed)
    with pytest.raises(MaterialNotFound):
        get_param_volume([example_volume], "sound_speed")
    with pytest.raises(MaterialNotFound):
        get_param_volume(None, "sound_speed")

def test_transform_inverse_placement(linear_volume: Volume):
    # resampling onto a grid placed by M, then back onto the original grid, recovers the data inside the overlap
    M = translation_matrix("x", 1.)
    moved = linear_volume.transform(linear_volume.coords, M)
    back = moved.transform(linear_volume.coords, np.eye(4))
    np.testing.assert_allclose(back.data[1:4], linear_volume.data[1:4], atol=1e-12)

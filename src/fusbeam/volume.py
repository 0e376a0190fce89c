from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Literal, Mapping, Sequence, Tuple

import numpy as np
import xarray as xa
from scipy.interpolate import RegularGridInterpolator

from fusbeam import axis
from fusbeam.axis import Axis
from fusbeam.geo import apply_transform, inv_transform, pinv_transform, rescale_matrix, validate_matrix
from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.errors import DimensionMismatch, MaterialNotFound, OutOfBoundsSample
from fusbeam.util.units import getunitconversion, validate_distance_unit

InterpMethod = Literal["linear", "nearest", "cubic", "spline"]
BoundsPolicy = Literal["nan", "clamp", "error"]

INTERP_METHODS = {"linear": "linear",
                  "nearest": "nearest",
                  "spline": "cubic",
                  "cubic": "pchip"}

# Queries this close to the sampled extent (relative to its span) are treated as on the boundary
EXTENT_TOLERANCE = 1e-9


@dataclass
class Volume:
    """A 3-D sampled field over three axes, placed in the world by a 4x4 local-to-world matrix."""

    data: Annotated[np.ndarray, FUSFieldData("Data", "3-D array of samples, one axis per coordinate")]
    """3-D array of samples, one axis per coordinate"""

    coords: Annotated[List[Axis], FUSFieldData("Coordinates", "The three axes, in data axis order")]
    """The three axes, in data axis order"""

    id: Annotated[str, FUSFieldData("Volume ID", "Unique identifier of the volume")] = "volume"
    """Unique identifier of the volume"""

    name: Annotated[str, FUSFieldData("Volume name", "Display name of the volume")] = ""
    """Display name of the volume. Defaults to the ID."""

    matrix: Annotated[np.ndarray, FUSFieldData("Matrix", "4x4 local-to-world transform, in coordinate units")] = field(default_factory=lambda: np.eye(4))
    """4x4 local-to-world transform. Its translation is in the units of the coordinates."""

    attrs: Annotated[Dict[str, Any], FUSFieldData("Attributes", "Additional attributes, e.g. a reference material")] = field(default_factory=dict)
    """Additional attributes, e.g. a reference material ("ref_material") or value ("ref_value")"""

    units: Annotated[str, FUSFieldData("Data units", "Units of the data values")] = ""
    """Units of the data values"""

    def __post_init__(self):
        self.data = np.asarray(self.data)
        self.coords = axis.as_axes(self.coords)
        expected_shape = tuple(c.length for c in self.coords)
        if self.data.shape != expected_shape:
            raise DimensionMismatch(f"Data shape {self.data.shape} does not match coordinate lengths {expected_shape}.")
        self.matrix = validate_matrix(self.matrix).copy()
        axis.get_units(self.coords)
        if not self.name:
            self.name = self.id

    @property
    def dims(self) -> Tuple[str, ...]:
        return tuple(c.id for c in self.coords)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.data.shape

    def copy(self) -> Volume:
        return copy.deepcopy(self)

    def get_units(self) -> str:
        """Length units shared by the coordinates."""
        return axis.get_units(self.coords)

    def get_coord(self, dim: int | str) -> Axis:
        return self.coords[axis.dim_index(self.coords, dim)]

    def get_coords(self, dims: Sequence[int | str] | None = None) -> List[Axis]:
        dims = range(3) if dims is None else dims
        return [self.get_coord(dim) for dim in dims]

    def get_matrix(self, units: str | None = None) -> np.ndarray:
        units = self.get_units() if units is None else units
        return rescale_matrix(self.matrix, self.get_units(), units)

    def _replace(self, **kwargs) -> Volume:
        """New Volume with `kwargs` overriding fields; fields not overridden are copied."""
        defaults = {"data": lambda: self.data.copy(),
                    "coords": lambda: [c.copy() for c in self.coords],
                    "id": lambda: self.id,
                    "name": lambda: self.name,
                    "matrix": lambda: self.matrix.copy(),
                    "attrs": lambda: copy.deepcopy(self.attrs),
                    "units": lambda: self.units}
        fields = {k: kwargs[k] if k in kwargs else default() for k, default in defaults.items()}
        return Volume(**fields)

    def rescale(self, units: str, share_data: bool = False) -> Volume:
        """Return a copy with coordinates (and matrix translation) in `units`.

        With `share_data` the new volume holds the same data array instead of a copy.
        """
        validate_distance_unit(units)
        return self._replace(data=self.data if share_data else self.data.copy(),
                             coords=[c.rescale(units) for c in self.coords],
                             matrix=self.get_matrix(units))

    def rescale_data(self, units: str) -> Volume:
        """Return a copy with the data values converted to `units`."""
        scl = getunitconversion(self.units, units)
        return self._replace(data=self.data * scl, units=units)

    def ndgrid(self, dims=None, units: str | None = None, transform: bool = False, vectorize: bool = False) -> List[np.ndarray]:
        """Sample-coordinate grids ("ij" ordering), optionally moved into world coordinates."""
        units = self.get_units() if units is None else units
        matrix = self.get_matrix(units) if transform else None
        return axis.ndgrid(self.coords, dims=dims, units=units, matrix=matrix, vectorize=vectorize)

    def meshgrid(self, dims=None, units: str | None = None, transform: bool = False, vectorize: bool = False) -> List[np.ndarray]:
        """Sample-coordinate grids ("xy" ordering), optionally moved into world coordinates."""
        units = self.get_units() if units is None else units
        matrix = self.get_matrix(units) if transform else None
        return axis.meshgrid(self.coords, dims=dims, units=units, matrix=matrix, vectorize=vectorize)

    def interp(self, X, Y, Z,
               transform: bool = False,
               units: str | None = None,
               method: InterpMethod = "linear",
               bounds: BoundsPolicy = "nan") -> np.ndarray:
        """Interpolate the volume data at arbitrary points.

        Args:
            X, Y, Z: query coordinates (broadcastable arrays), along the three volume dimensions.
            transform: the queries are world coordinates; map them through the inverse of the volume matrix first.
            units: units of the queries. Defaults to the coordinate units.
            method: "linear", "nearest", "cubic" or "spline".
            bounds: what to do with queries outside the sampled extent.
                "nan" returns NaN there, "clamp" moves them onto the nearest face of the extent,
                "error" raises OutOfBoundsSample.

        Returns: array of interpolated values with the broadcast shape of the queries.
        """
        units = self.get_units() if units is None else units
        if method not in INTERP_METHODS:
            raise ValueError(f"Unknown interpolation method '{method}'. Choose from {list(INTERP_METHODS)}.")
        if bounds not in ("nan", "clamp", "error"):
            raise ValueError(f"Unknown bounds policy '{bounds}'.")
        X, Y, Z = np.broadcast_arrays(*[np.asarray(q, dtype=np.float64) for q in (X, Y, Z)])
        out_shape = X.shape
        points = np.stack([X.ravel(), Y.ravel(), Z.ravel()], axis=-1)
        if transform:
            points = apply_transform(inv_transform(self.get_matrix(units)), points)
        vectors = [c.rescale(units).values for c in self.coords]
        data = self.data.astype(np.float64, copy=False)
        # RegularGridInterpolator needs ascending axes with at least two samples
        for i, vec in enumerate(vectors):
            if len(vec) > 1 and vec[0] > vec[-1]:
                vectors[i] = vec[::-1]
                data = np.flip(data, axis=i)
        lo = np.array([vec[0] for vec in vectors])
        hi = np.array([vec[-1] for vec in vectors])
        tol = EXTENT_TOLERANCE * np.maximum(1.0, np.abs(hi - lo))
        near = (points >= lo - tol) & (points <= hi + tol)
        points = np.where(near, np.clip(points, lo, hi), points)
        inside = np.all(near, axis=-1)
        if not np.all(inside):
            if bounds == "error":
                raise OutOfBoundsSample(f"{np.count_nonzero(~inside)} query points lie outside the extent of volume '{self.id}'.")
            elif bounds == "clamp":
                points = np.clip(points, lo, hi)
                inside[:] = True
        for i, vec in enumerate(vectors):
            if len(vec) == 1:
                vectors[i] = np.array([vec[0], vec[0] + 1.0])
                data = np.concatenate([data, data], axis=i)
        interpolator = RegularGridInterpolator(vectors, data,
                                               method=INTERP_METHODS[method],
                                               bounds_error=False,
                                               fill_value=np.nan)
        values = np.full(points.shape[0], np.nan)
        if np.any(inside):
            values[inside] = interpolator(points[inside])
        return values.reshape(out_shape)

    def transform(self, coords: Sequence[Axis], matrix: np.ndarray,
                  method: InterpMethod = "linear",
                  bounds: BoundsPolicy = "nan") -> Volume:
        """Resample the volume onto a new grid.

        Every destination point p (in `coords`, placed in the world by `matrix`) is mapped into the
        source frame by pinv(self.matrix) @ matrix @ p and the source data is interpolated there.

        Args:
            coords: the three destination axes.
            matrix: 4x4 destination-to-world transform, in the units of `coords`.
            method: interpolation method, see `interp`.
            bounds: out-of-extent policy, see `interp`.

        Returns: a new Volume with `coords` and `matrix`. The source volume is left untouched.
        """
        coords = axis.validate_coords(coords)
        units = axis.get_units(coords)
        matrix = validate_matrix(matrix)
        source = self.rescale(units, share_data=True)
        XP = axis.ndgrid(coords)
        points = np.stack([g.ravel() for g in XP], axis=-1)
        points = apply_transform(pinv_transform(source.matrix) @ matrix, points)
        data = source.interp(points[:, 0], points[:, 1], points[:, 2], method=method, bounds=bounds)
        return self._replace(data=data.reshape(XP[0].shape),
                             coords=[c.copy() for c in coords],
                             matrix=matrix)

    def get_edges(self, order: Sequence[int] = (0, 1, 2), transform: bool = False, units: str | None = None) -> List[np.ndarray]:
        """Voxel-boundary grids.

        Each axis contributes the midpoints between adjacent samples plus one edge half a step beyond each
        end (a single-sample axis keeps its value). The edge grids are returned in `order`, squeezed, and
        optionally moved into world coordinates.
        """
        units = self.get_units() if units is None else units
        order = list(order)
        if sorted(order) != [0, 1, 2]:
            raise ValueError(f"Order must be a permutation of (0, 1, 2), got {order}.")
        edges = []
        for coord in self.coords:
            x = coord.rescale(units).values
            if len(x) > 1:
                mid = (x[:-1] + x[1:]) / 2
                edges.append(np.concatenate([[x[0] - (x[1] - x[0]) / 2], mid, [x[-1] + (x[-1] - x[-2]) / 2]]))
            else:
                edges.append(x)
        grid = np.meshgrid(*edges, indexing="ij")
        if transform:
            points = np.stack([g.ravel() for g in grid], axis=-1)
            points = apply_transform(self.get_matrix(units), points)
            grid = [points[:, i].reshape(grid[0].shape) for i in range(3)]
        return [np.squeeze(np.transpose(grid[i], order)) for i in order]

    def isel(self, dim: int | str, index) -> Volume:
        """Select samples along one dimension by index, keeping all three dimensions."""
        didx = axis.dim_index(self.coords, dim)
        index = np.atleast_1d(np.arange(self.shape[didx])[index])
        coords = [c.copy() for c in self.coords]
        coords[didx] = Axis(values=coords[didx].values[index], id=coords[didx].id, name=coords[didx].name, units=coords[didx].units)
        return self._replace(data=np.take(self.data, index, axis=didx), coords=coords)

    def sel(self, dim: int | str, value: float, units: str | None = None) -> Volume:
        """Slice the volume at a coordinate value, blending linearly between the bracketing samples."""
        didx = axis.dim_index(self.coords, dim)
        coord = self.coords[didx]
        units = coord.units if units is None else units
        z = value * getunitconversion(units, coord.units)
        values = coord.values
        if coord.length == 1 or values[0] > values[-1]:
            ascending_index = np.arange(coord.length)[::-1] if coord.length > 1 else np.arange(1)
        else:
            ascending_index = np.arange(coord.length)
        zs = values[ascending_index]
        if z < zs[0] - EXTENT_TOLERANCE or z > zs[-1] + EXTENT_TOLERANCE:
            raise OutOfBoundsSample(f"Value {value} {units} is outside the extent of dimension '{coord.id}'.")
        exact = np.isclose(values, z, rtol=0, atol=EXTENT_TOLERANCE * max(1.0, abs(zs[-1] - zs[0])))
        if np.any(exact):
            return self.isel(didx, int(np.argmax(exact)))
        k = int(np.searchsorted(zs, z)) - 1
        i0, i1 = ascending_index[k], ascending_index[k + 1]
        w1 = (z - values[i0]) / (values[i1] - values[i0])
        data = (1 - w1) * np.take(self.data, [i0], axis=didx) + w1 * np.take(self.data, [i1], axis=didx)
        coords = [c.copy() for c in self.coords]
        coords[didx] = Axis(values=[z], id=coord.id, name=coord.name, units=coord.units)
        return self._replace(data=data, coords=coords)

    def crop(self, dim: int | str, range_: Tuple[float, float], units: str | None = None) -> Volume:
        """Keep only the samples whose coordinate along `dim` lies within `range_`."""
        coord = self.get_coord(dim)
        units = coord.units if units is None else units
        lo, hi = np.sort(np.asarray(range_, dtype=np.float64) * getunitconversion(units, coord.units))
        index = np.flatnonzero((coord.values >= lo) & (coord.values <= hi))
        if index.size == 0:
            raise ValueError(f"Crop range {range_} {units} selects no samples along '{coord.id}'.")
        return self.isel(dim, index)

    def to_xarray(self) -> xa.DataArray:
        """Express the volume as an xarray DataArray; the matrix and data units travel in the attrs."""
        attrs = copy.deepcopy(self.attrs)
        attrs.update({"units": self.units, "long_name": self.name, "matrix": self.matrix.copy()})
        return xa.DataArray(data=self.data.copy(),
                            coords=axis.to_xarray_coords(self.coords),
                            dims=self.dims,
                            name=self.id,
                            attrs=attrs)

    @staticmethod
    def from_xarray(data_arr: xa.DataArray, id: str | None = None) -> Volume:
        """Build a Volume from a DataArray whose coordinates carry 'units' attributes."""
        attrs = dict(data_arr.attrs)
        units = attrs.pop("units", "")
        matrix = np.array(attrs.pop("matrix", np.eye(4)), dtype=np.float64)
        id = id if id is not None else (str(data_arr.name) if data_arr.name is not None else "volume")
        name = attrs.pop("long_name", id)
        return Volume(data=np.asarray(data_arr.values),
                      coords=axis.as_axes(data_arr),
                      id=id,
                      name=name,
                      matrix=matrix,
                      attrs=attrs,
                      units=units)


def get_param_volume(params, param_id: str) -> Volume:
    """Find the material-property volume `param_id` in a Volume, a sequence or mapping of Volumes, or an xarray Dataset."""
    if isinstance(params, Volume):
        params = [params]
    if isinstance(params, xa.Dataset):
        if param_id in params.data_vars:
            return Volume.from_xarray(params[param_id], id=param_id)
    elif isinstance(params, Mapping):
        if param_id in params:
            return params[param_id]
    elif params is not None:
        for vol in params:
            if vol.id == param_id:
                return vol
    raise MaterialNotFound(f"No '{param_id}' volume found in the provided parameters.")

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Annotated, List, Sequence

import numpy as np
import xarray as xa

from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.dict_conversion import DictMixin
from fusbeam.util.errors import DimensionMismatch, InvalidUnit
from fusbeam.util.units import getunitconversion, validate_distance_unit


@dataclass
class Axis(DictMixin):
    """A labelled, unit-bearing, monotonic 1-D coordinate sequence."""

    values: Annotated[np.ndarray, FUSFieldData("Values", "Monotonic coordinate values along the axis")]
    """Monotonic coordinate values along the axis"""

    id: Annotated[str, FUSFieldData("Axis ID", "Short symbolic name of the axis, e.g. 'x' or 'lat'")] = "x"
    """Short symbolic name of the axis, e.g. 'x' or 'lat'"""

    name: Annotated[str, FUSFieldData("Axis name", "Display label of the axis")] = ""
    """Display label of the axis. Defaults to the axis ID."""

    units: Annotated[str, FUSFieldData("Units", "Length units of the axis values")] = "m"
    """Length units of the axis values"""

    def __post_init__(self):
        self.values = np.atleast_1d(np.asarray(self.values, dtype=np.float64))
        if self.values.ndim != 1 or self.values.size == 0:
            raise DimensionMismatch(f"Axis values must be a non-empty 1-D sequence, got shape {self.values.shape}.")
        if self.values.size > 1:
            steps = np.diff(self.values)
            if not (np.all(steps > 0) or np.all(steps < 0)):
                raise DimensionMismatch(f"Axis '{self.id}' values must be strictly monotonic.")
        validate_distance_unit(self.units)
        if not self.name:
            self.name = self.id

    @property
    def length(self) -> int:
        return len(self.values)

    def copy(self) -> Axis:
        return copy.deepcopy(self)

    def extent(self, units: str | None = None) -> np.ndarray:
        """Return [min, max] of the axis, optionally in other units."""
        units = self.units if units is None else validate_distance_unit(units)
        scl = getunitconversion(self.units, units)
        return np.array([self.values.min(), self.values.max()]) * scl

    def spacing(self, units: str | None = None) -> float:
        """Mean absolute step between samples (0 for a single-sample axis)."""
        units = self.units if units is None else validate_distance_unit(units)
        if self.length < 2:
            return 0.0
        return float(np.mean(np.abs(np.diff(self.values)))) * getunitconversion(self.units, units)

    def label(self) -> str:
        return f"{self.name} ({self.units})"

    def rescale(self, units: str) -> Axis:
        """Return a copy of the axis with its values expressed in `units`."""
        validate_distance_unit(units)
        scl = getunitconversion(self.units, units)
        return Axis(values=self.values * scl, id=self.id, name=self.name, units=units)

    def to_dict(self):
        return {"values": self.values.tolist(),
                "id": self.id,
                "name": self.name,
                "units": self.units}


def validate_coords(coords: Sequence[Axis]) -> List[Axis]:
    coords = list(coords)
    if len(coords) != 3:
        raise DimensionMismatch(f"Expected exactly 3 axes, got {len(coords)}.")
    if not all(isinstance(c, Axis) for c in coords):
        raise TypeError("All coordinates must be Axis objects.")
    return coords


def get_units(coords: Sequence[Axis]) -> str:
    """Return the units shared by all axes."""
    units = {c.units for c in coords}
    if len(units) != 1:
        raise InvalidUnit(f"Axes do not share units: {sorted(units)}")
    return units.pop()


def dim_index(coords: Sequence[Axis], dim: int | str) -> int:
    """Resolve a dimension given as an index or an axis ID."""
    if isinstance(dim, (int, np.integer)):
        if not -len(coords) <= dim < len(coords):
            raise ValueError(f"Dimension index {dim} out of range.")
        return int(dim) % len(coords)
    ids = [c.id for c in coords]
    if dim not in ids:
        raise ValueError(f"Dimension '{dim}' not found in {ids}.")
    return ids.index(dim)


def ndgrid(coords: Sequence[Axis],
           dims: Sequence[int | str] | None = None,
           units: str | None = None,
           matrix: np.ndarray | None = None,
           vectorize: bool = False,
           indexing: str = "ij") -> List[np.ndarray]:
    """Build coordinate grids from three axes.

    Args:
        coords: the three axes spanning the grid
        dims: which components to return (IDs or indices). Defaults to all three.
        units: units of the returned grids. Defaults to the axes' shared units.
        matrix: optional 4x4 transform applied to every grid point (homogeneous multiply).
        vectorize: flatten each grid to 1-D.
        indexing: "ij" for ndgrid ordering, "xy" for meshgrid ordering.

    Returns: list of arrays, one per requested dimension.
    """
    coords = validate_coords(coords)
    units = get_units(coords) if units is None else units
    vectors = [c.rescale(units).values for c in coords]
    grid = np.meshgrid(*vectors, indexing=indexing)
    if matrix is not None and not np.allclose(matrix, np.eye(4)):
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise DimensionMismatch(f"Transform must be 4x4, got {matrix.shape}.")
        shape = grid[0].shape
        XYZ = np.vstack([g.ravel() for g in grid] + [np.ones(grid[0].size)])
        XYZt = matrix @ XYZ
        grid = [XYZt[i].reshape(shape) for i in range(3)]
    dims = range(3) if dims is None else [dim_index(coords, d) for d in dims]
    grid = [grid[i] for i in dims]
    if vectorize:
        grid = [g.ravel() for g in grid]
    return grid


def meshgrid(coords: Sequence[Axis],
             dims: Sequence[int | str] | None = None,
             units: str | None = None,
             matrix: np.ndarray | None = None,
             vectorize: bool = False) -> List[np.ndarray]:
    """Same as `ndgrid` with meshgrid ("xy") ordering of the first two dimensions."""
    return ndgrid(coords, dims=dims, units=units, matrix=matrix, vectorize=vectorize, indexing="xy")


def as_axes(obj) -> List[Axis]:
    """Coerce three Axis objects, a Volume, or an xarray object with unit-tagged coordinates into a list of Axis."""
    if isinstance(obj, (xa.DataArray, xa.Dataset, xa.Coordinates)):
        if isinstance(obj, xa.Dataset) and len(obj.data_vars) > 0:
            dims = obj[next(iter(obj.data_vars))].dims
        else:
            dims = tuple(obj.dims)
        coords = []
        for dim in dims:
            attrs = obj.coords[dim].attrs
            if 'units' not in attrs:
                raise InvalidUnit(f"Coordinate '{dim}' has no 'units' attribute.")
            coords.append(Axis(values=obj.coords[dim].values,
                               id=str(dim),
                               name=attrs.get('long_name', str(dim)),
                               units=attrs['units']))
        return validate_coords(coords)
    if hasattr(obj, "coords") and not isinstance(obj, (list, tuple)):
        return validate_coords(obj.coords)
    return validate_coords(obj)


def to_xarray_coords(coords: Sequence[Axis]) -> xa.Coordinates:
    """Express three axes as xarray Coordinates carrying 'units' and 'long_name' attributes."""
    coords = validate_coords(coords)
    return xa.Coordinates({c.id: (c.id, c.values.copy(), {'units': c.units, 'long_name': c.name}) for c in coords})

from __future__ import annotations

import numpy as np

from fusbeam.axis import as_axes, get_units, ndgrid
from fusbeam.bf.get_focus_matrix import get_focus_matrix
from fusbeam.geo import Point, apply_transform, inv_transform


def offset_grid(coords, focus: Point, units: str | None = None, matrix: np.ndarray | None = None) -> np.ndarray:
    """
    Calculates the offset of every grid point from the focus, in the focus-centered frame.

    Offsets are returned in a coordinate system rotated in azimuth,
    then elevation, so that the 'z' axis points at the focus.

    Args:
        coords: three Axis (or a Volume / xarray object carrying them)
        focus: The focus point to be used as reference.
        units: Distance units of the offsets. Defaults to the units of the coordinates.
        matrix: Optional 4x4 grid-to-world transform (in `units`) applied to the grid before
            it is expressed in the focus frame.

    Returns:
        Array of shape (*grid_shape, 3) holding the offsets (dx, dy, dz).
    """
    coords = as_axes(coords)
    units = get_units(coords) if units is None else units
    m = get_focus_matrix(focus, units=units)
    xyz = np.stack(ndgrid(coords, units=units, matrix=matrix), axis=-1)
    return apply_transform(inv_transform(m), xyz)

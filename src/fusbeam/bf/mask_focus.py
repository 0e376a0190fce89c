from __future__ import annotations

from enum import Enum
from math import inf
from typing import List, Tuple

import numpy as np

from fusbeam.axis import as_axes, get_units, ndgrid
from fusbeam.bf.calc_dist_from_focus import calc_dist_from_focus
from fusbeam.geo import Point


class MaskOp(Enum):
    GREATER = ">"
    GREATER_EQUAL = ">="
    LESS = "<"
    LESS_EQUAL = "<="


_COMPARISONS = {MaskOp.GREATER: np.greater,
                MaskOp.GREATER_EQUAL: np.greater_equal,
                MaskOp.LESS: np.less,
                MaskOp.LESS_EQUAL: np.less_equal}


def mask_focus(
        coords,
        foci: Point | List[Point],
        distance: float,
        operation: MaskOp | str = MaskOp.LESS_EQUAL,
        units: str | None = None,
        aspect_ratio: Tuple[float, float, float] = (1., 1., 10.),
        zmin: float = -inf
        ) -> np.ndarray:
    """
    Creates a mask for points within a (scaled) distance from one or more foci.

    Args:
        coords: three Axis (or a Volume / xarray object carrying them)
        foci: The focus point(s) to be used as reference for masking. The mask is the union over all foci.
        distance: The distance limit in units defined by 'units'. Must be positive.
        operation: Comparison of the scaled distance against the limit,
            one of ">", ">=", "<", "<=" or a MaskOp (Default: "<=").
        units: Distance units (Default: units of the coordinates).
        aspect_ratio: Aspect ratio to calculate distance (Default: (1, 1, 10)).
        zmin: Points whose third coordinate is not above this value are masked out (Default: -inf).

    Returns:
        A boolean array indicating which points are within the specified range.
    """
    if distance <= 0:
        raise ValueError(f"Mask distance must be positive, got {distance}.")
    try:
        operation = MaskOp(operation)
    except ValueError as e:
        raise ValueError(f"Mask operation {operation} is not defined!") from e
    compare = _COMPARISONS[operation]
    coords = as_axes(coords)
    units = get_units(coords) if units is None else units
    if isinstance(foci, Point):
        foci = [foci]
    if len(foci) == 0:
        raise ValueError("At least one focus is required to build a mask.")

    mask = np.zeros(tuple(c.length for c in coords), dtype=bool)
    for focus in foci:
        dist = calc_dist_from_focus(coords, focus, units=units, aspect_ratio=aspect_ratio)
        mask |= compare(dist, distance)
    if zmin > -inf:
        Z = ndgrid(coords, dims=[2], units=units)[0]
        mask &= Z > zmin
    return mask

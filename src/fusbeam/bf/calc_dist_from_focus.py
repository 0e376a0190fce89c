from __future__ import annotations

from typing import Tuple

import numpy as np

from fusbeam.bf.offset_grid import offset_grid
from fusbeam.geo import Point


def calc_dist_from_focus(
        coords,
        focus: Point,
        units: str | None = None,
        aspect_ratio: Tuple[float, float, float] = (1., 1., 1.)
        ) -> np.ndarray:
    """
    Calculates the distance from the focus point for each point in the coordinate system.

    The distance is calculated by first transforming the coordinate system so that the focus point is on
    the z' axis, adjusting the x and y axes to be orthogonal to the z' axis, and then dividing the
    linear offsets by the aspect ratio,
    e.g. d = sqrt(((x'-x0')/ax)^2 + ((y'-y0')/ay)^2 + ((z'-z0')/az)^2). This is useful for calculating how far
    away from an oblong focal spot each point is.

    Args:
        coords: three Axis (or a Volume / xarray object carrying them)
        focus: The focus point to be used as reference.
        units: Distance units. Defaults to the units of the coordinates.
        aspect_ratio: Aspect ratio to calculate distance (Default: (1., 1., 1.)).

    Returns:
        Array of distances from focus point.
    """
    aspect_ratio = np.asarray(aspect_ratio, dtype=np.float64)
    if aspect_ratio.shape != (3,) or np.any(aspect_ratio <= 0):
        raise ValueError(f"Aspect ratio must be three positive numbers, got {aspect_ratio}.")
    ogrid = offset_grid(coords, focus, units=units)
    ogrid_aspect_corrected = ogrid / aspect_ratio
    return np.sqrt(np.sum(ogrid_aspect_corrected**2, axis=-1))

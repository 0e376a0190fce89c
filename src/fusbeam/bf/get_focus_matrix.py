from __future__ import annotations

from enum import Enum

import numpy as np

from fusbeam.geo import Point

CenterOnOpts = Enum('CenterOnOpts', ['focus', 'origin'])


def get_focus_matrix(focus: Point, units: str | None = None, center_on: CenterOnOpts | str = CenterOnOpts.focus) -> np.ndarray:
    """
    Get transformation matrix for a focus point.

    The transformation matrix is a 4x4 matrix that transforms points
    in the focus-centered frame to the global coordinate system. Its z axis points
    from the global origin toward the focus, its x axis lies in the azimuthal (x-z) plane,
    and its y axis completes the right-handed basis.

    Args:
        focus: The focus point to be used as reference.
        units: Distance units of the translation. Defaults to the units of the focus.
        center_on: Whether the frame is centered on the focus or on the origin.
            Choice between ["focus", "origin"]. Defaults to "focus".

    Returns:
        A 4x4 np.ndarray transformation matrix.
    """
    units = focus.units if units is None else units
    if isinstance(center_on, str):
        if center_on not in CenterOnOpts.__members__:
            raise ValueError(f"center_on must be one of {list(CenterOnOpts.__members__)}, got '{center_on}'.")
        center_on = CenterOnOpts[center_on]
    focus_rescaled = focus.rescale(units)
    return focus_rescaled.get_matrix(center_on_point=center_on is CenterOnOpts.focus)

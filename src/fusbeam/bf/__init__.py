from __future__ import annotations

from . import apod_methods, delay_methods, focal_patterns
from .apod_methods import ApodizationMethod
from .calc_dist_from_focus import calc_dist_from_focus
from .delay_methods import DelayMethod
from .focal_patterns import FocalPattern, SinglePoint, Wheel
from .get_beamwidth import BeamwidthResult, get_beamwidth
from .get_focus_matrix import CenterOnOpts, get_focus_matrix
from .mask_focus import MaskOp, mask_focus
from .offset_grid import offset_grid

__all__ = [
    "apod_methods",
    "delay_methods",
    "focal_patterns",
    "DelayMethod",
    "ApodizationMethod",
    "FocalPattern",
    "SinglePoint",
    "Wheel",
    "BeamwidthResult",
    "CenterOnOpts",
    "MaskOp",
    "calc_dist_from_focus",
    "get_beamwidth",
    "get_focus_matrix",
    "mask_focus",
    "offset_grid",
]

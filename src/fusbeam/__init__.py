"""
fusbeam: focused ultrasound geometry and beamforming

Coordinate axes, homogeneous transforms, transducer geometry, sampled volumes,
focus-relative masks and beamwidths, and the delay/apodization calculations that
steer a transducer array onto a focal pattern.
"""

from __future__ import annotations

from fusbeam.axis import Axis
from fusbeam.bf import (
    ApodizationMethod,
    DelayMethod,
    FocalPattern,
    apod_methods,
    delay_methods,
    focal_patterns,
)
from fusbeam.geo import Point
from fusbeam.plan import BeamformingPlan, Solution
from fusbeam.seg import (
    AIR,
    MATERIALS,
    SKULL,
    STANDOFF,
    TISSUE,
    WATER,
    Material,
)
from fusbeam.volume import Volume
from fusbeam.xdc import Element, Transducer

from ._version import version as __version__

__all__ = [
    "Axis",
    "Point",
    "Volume",
    "Element",
    "Transducer",
    "BeamformingPlan",
    "Solution",
    "Material",
    "MATERIALS",
    "WATER",
    "TISSUE",
    "SKULL",
    "AIR",
    "STANDOFF",
    "DelayMethod",
    "ApodizationMethod",
    "FocalPattern",
    "focal_patterns",
    "delay_methods",
    "apod_methods",
    "__version__",
]

from __future__ import annotations

from .apodmethod import ApodizationMethod
from .maxangle import MaxAngle
from .piecewiselinear import PiecewiseLinear
from .uniform import Uniform

APOD_METHODS = {"Uniform": Uniform,
                "MaxAngle": MaxAngle,
                "PiecewiseLinear": PiecewiseLinear}

__all__ = [
    "ApodizationMethod",
    "Uniform",
    "MaxAngle",
    "PiecewiseLinear",
    "APOD_METHODS",
]

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import numpy as np
import pandas as pd

from fusbeam.bf.apod_methods.apodmethod import ApodizationMethod, element_angles
from fusbeam.geo import Point
from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.units import getunittype
from fusbeam.xdc import Transducer


@dataclass
class PiecewiseLinear(ApodizationMethod):
    """Full weight up to the rolloff angle, falling linearly to zero at the zero angle."""

    zero_angle: Annotated[float, FUSFieldData("Zero Apodization Angle", "Angle at and beyond which the piecewise linear apodization is 0%")] = 90.0
    """Angle at and beyond which the piecewise linear apodization is 0%"""

    rolloff_angle: Annotated[float, FUSFieldData("Rolloff start angle", "Angle below which the piecewise linear apodization is 100%")] = 45.0
    """Angle below which the piecewise linear apodization is 100%"""

    units: Annotated[str, FUSFieldData("Angle units", "Angle units")] = "deg"
    """Angle units"""

    def __post_init__(self):
        if not isinstance(self.zero_angle, (int, float)):
            raise TypeError(f"Zero angle must be a number, got {type(self.zero_angle).__name__}.")
        if self.zero_angle < 0:
            raise ValueError(f"Zero angle must be non-negative, got {self.zero_angle}.")
        if not isinstance(self.rolloff_angle, (int, float)):
            raise TypeError(f"Rolloff angle must be a number, got {type(self.rolloff_angle).__name__}.")
        if self.rolloff_angle < 0:
            raise ValueError(f"Rolloff angle must be non-negative, got {self.rolloff_angle}.")
        if self.rolloff_angle >= self.zero_angle:
            raise ValueError(f"Rolloff angle must be less than zero angle, got {self.rolloff_angle} >= {self.zero_angle}.")
        if getunittype(self.units) != "angle":
            raise ValueError(f"Units must be an angle type, got {self.units}.")

    def calc_apodization(self, arr: Transducer, target: Point, params=None, transform: np.ndarray | None = None):
        angles = element_angles(arr, target, self.units, transform=transform)
        f = (self.zero_angle - angles) / (self.zero_angle - self.rolloff_angle)
        return np.clip(f, 0, 1)

    def to_table(self) -> pd.DataFrame:
        """
        Get a table of the apodization method parameters

        :returns: Pandas DataFrame of the apodization method parameters
        """
        records = [
            {"Name": "Type", "Value": "Piecewise-Linear", "Unit": ""},
            {"Name": "Zero Angle", "Value": self.zero_angle, "Unit": self.units},
            {"Name": "Rolloff Angle", "Value": self.rolloff_angle, "Unit": self.units},
        ]
        return pd.DataFrame.from_records(records)

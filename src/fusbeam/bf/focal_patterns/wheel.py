from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import numpy as np
import pandas as pd

from fusbeam.bf.focal_patterns.focal_pattern import FocalPattern
from fusbeam.geo import Point
from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.units import getunitconversion, validate_distance_unit


@dataclass
class Wheel(FocalPattern):
    """
    Class for representing a wheel pattern

    Spokes are spread evenly in azimuth around the target, at `spoke_radius` in the x-y plane
    through the target. Spoke k sits at angle 2*pi*k/num_spokes from the x axis.
    """

    center: Annotated[bool, FUSFieldData("Include center point?", "Whether to include the center for the wheel pattern")] = True
    """Whether to include the center for the wheel pattern"""

    num_spokes: Annotated[int, FUSFieldData("Number of spokes", "Number of spokes in the wheel pattern")] = 4
    """Number of spokes in the wheel pattern"""

    spoke_radius: Annotated[float, FUSFieldData("Spoke radius", "Radius of the spokes in the wheel pattern")] = 1e-3
    """Radius of the spokes in the wheel pattern"""

    units: Annotated[str, FUSFieldData("Units", "Units of the spoke radius")] = "m"
    """Units of the spoke radius"""

    def __post_init__(self):
        if not isinstance(self.center, bool):
            raise TypeError(f"Center must be a boolean, got {type(self.center).__name__}.")
        if not isinstance(self.num_spokes, int) or self.num_spokes < 1:
            raise ValueError(f"Number of spokes must be a positive integer, got {self.num_spokes}.")
        if not isinstance(self.spoke_radius, (int, float)) or self.spoke_radius < 0:
            raise ValueError(f"Spoke radius must be a non-negative number, got {self.spoke_radius}.")
        validate_distance_unit(self.units)
        super().__post_init__()

    def get_targets(self, target: Point, units: str | None = None):
        """
        Get the targets of the focal pattern

        :param target: Target point of the focal pattern
        :param units: Units of the returned points. Defaults to the units of the target.
        :returns: List of target points, the center first when it is included
        """
        units = target.units if units is None else units
        target = target.rescale(units)
        radius = self.spoke_radius * getunitconversion(self.units, units)
        if self.center:
            center = target.copy()
            center.id = f"{target.id}_center"
            center.name = f"{target.name} (Center)"
            targets = [center]
        else:
            targets = []
        for i in range(self.num_spokes):
            theta = 2*np.pi*i/self.num_spokes
            position = target.position + radius * np.array([np.cos(theta), np.sin(theta), 0.0])
            spoke = Point(id=f"{target.id}_{np.rad2deg(theta):.0f}deg",
                          name=f"{target.name} ({np.rad2deg(theta):.0f}°)",
                          position=position,
                          color=target.color,
                          radius=target.radius,
                          dims=target.dims,
                          units=units)
            targets.append(spoke)
        return targets

    def num_foci(self) -> int:
        """
        Get the number of foci in the focal pattern

        :returns: Number of foci
        """
        return int(self.center) + self.num_spokes

    def to_table(self) -> pd.DataFrame:
        """
        Get a table of the focal pattern parameters

        :returns: Pandas DataFrame of the focal pattern parameters
        """
        records = [
            {"Name": "Type", "Value": "Wheel", "Unit": ""},
            {"Name": "Target Pressure", "Value": self.target_pressure, "Unit": self.pressure_units},
            {"Name": "Center", "Value": self.center, "Unit": ""},
            {"Name": "Number of Spokes", "Value": self.num_spokes, "Unit": ""},
            {"Name": "Spoke Radius", "Value": self.spoke_radius, "Unit": self.units},
        ]
        return pd.DataFrame.from_records(records)

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from fusbeam.bf.focal_patterns.focal_pattern import FocalPattern
from fusbeam.geo import Point


@dataclass
class SinglePoint(FocalPattern):
    """
    Class for representing a single focus

    :ivar target_pressure: Target pressure of the focal pattern in `pressure_units`
    """
    def get_targets(self, target: Point, units: str | None = None):
        """
        Get the targets of the focal pattern

        :param target: Target point of the focal pattern
        :param units: Units of the returned point. Defaults to the units of the target.
        :returns: List holding a copy of the target point
        """
        if units is not None:
            return [target.rescale(units)]
        return [target.copy()]

    def num_foci(self):
        """
        Get the number of foci in the focal pattern

        :returns: Number of foci (1)
        """
        return 1

    def to_table(self) -> pd.DataFrame:
        records = [{"Name": "Type", "Value": "Single Point", "Unit": ""},
                   {"Name": "Target Pressure", "Value": self.target_pressure, "Unit": self.pressure_units}]
        return pd.DataFrame.from_records(records)

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import numpy as np
import pandas as pd

from fusbeam.bf.delay_methods.delaymethod import DelayMethod, element_frame, reference_sound_speed
from fusbeam.geo import Point
from fusbeam.util.annotations import FUSFieldData
from fusbeam.volume import get_param_volume
from fusbeam.xdc import Transducer


@dataclass
class Direct(DelayMethod):
    """Time-of-flight delays through a homogeneous medium."""

    c0: Annotated[float, FUSFieldData("Speed of Sound (m/s)", "Speed of sound in the medium (m/s)")] = 1480.0
    """Speed of sound in the medium (m/s)"""

    def __post_init__(self):
        if not isinstance(self.c0, (int, float)):
            raise TypeError(f"Speed of sound must be a number, got {type(self.c0).__name__}.")
        if self.c0 <= 0:
            raise ValueError(f"Speed of sound must be positive, got {self.c0}.")

    def calc_delays(self, arr: Transducer, target: Point, params=None, transform: np.ndarray | None = None):
        if params is None:
            c = self.c0
        else:
            c = reference_sound_speed(get_param_volume(params, "sound_speed"))
        if arr.numelements() == 0:
            return np.zeros(0)
        target_pos = target.get_position(units="m")
        matrix = element_frame(arr, transform)
        dists = np.array([el.distance_to_point(target_pos, units="m", matrix=matrix) for el in arr.elements])
        tof = dists / c
        delays = max(tof) - tof
        return delays

    def to_table(self) -> pd.DataFrame:
        """
        Get a table of the delay method parameters

        :returns: Pandas DataFrame of the delay method parameters
        """
        records = [{"Name": "Type", "Value": "Direct", "Unit": ""},
                   {"Name": "Default Sound Speed", "Value": self.c0, "Unit": "m/s"}]
        return pd.DataFrame.from_records(records)

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

import numpy as np
import pandas as pd

from fusbeam.bf.delay_methods.delaymethod import DelayMethod, element_frame
from fusbeam.geo import Point
from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.errors import MaterialNotFound, OutOfBoundsSample
from fusbeam.volume import INTERP_METHODS, get_param_volume
from fusbeam.xdc import Transducer

logger = logging.getLogger(__name__)


@dataclass
class Raytraced(DelayMethod):
    """
    Time-of-flight delays along straight rays through a heterogeneous sound-speed volume.

    Each ray runs from an element to the focus and is sampled every `interp_spacing` meters.
    The travel time is the ray length over the mean of the sampled speeds. Samples that fall
    outside the sound-speed volume are dropped from the mean, and a ray with no sample
    inside the volume raises OutOfBoundsSample.
    """

    interp_method: Annotated[str, FUSFieldData("Interpolation method", "Method used to sample the sound speed along each ray (linear, nearest, cubic or spline)")] = "nearest"
    """Method used to sample the sound speed along each ray (linear, nearest, cubic or spline)"""

    interp_spacing: Annotated[float, FUSFieldData("Sampling interval (m)", "Distance between sound speed samples along each ray (m)")] = 1e-5
    """Distance between sound speed samples along each ray (m)"""

    def __post_init__(self):
        if self.interp_method not in INTERP_METHODS:
            raise ValueError(f"Interpolation method must be one of {list(INTERP_METHODS)}, got '{self.interp_method}'.")
        if not isinstance(self.interp_spacing, (int, float)):
            raise TypeError(f"Sampling interval must be a number, got {type(self.interp_spacing).__name__}.")
        if self.interp_spacing <= 0:
            raise ValueError(f"Sampling interval must be positive, got {self.interp_spacing}.")

    def calc_delays(self, arr: Transducer, target: Point, params=None, transform: np.ndarray | None = None):
        if params is None:
            raise MaterialNotFound("Raytraced delays require a 'sound_speed' volume.")
        sound_speed = get_param_volume(params, "sound_speed").rescale("m", share_data=True)
        if sound_speed.units and sound_speed.units != "m/s":
            sound_speed = sound_speed.rescale_data("m/s")
        if arr.numelements() == 0:
            return np.zeros(0)
        target_pos = target.get_position(units="m")
        positions = arr.get_positions(transform=element_frame(arr, transform), units="m")

        tof = np.zeros(arr.numelements())
        num_clipped = 0
        for i, (el, pos) in enumerate(zip(arr.elements, positions)):
            r = np.linalg.norm(target_pos - pos)
            nr = max(int(np.ceil(r / self.interp_spacing)), 2)
            w = np.linspace(0, 1, nr)[:, np.newaxis]
            ray = pos * (1 - w) + target_pos * w
            c = sound_speed.interp(ray[:, 0], ray[:, 1], ray[:, 2],
                                   transform=True,
                                   units="m",
                                   method=self.interp_method,
                                   bounds="nan")
            in_bounds = ~np.isnan(c)
            if not np.any(in_bounds):
                raise OutOfBoundsSample(f"The ray from element {el.index} to {target.id} never enters the sound speed volume.")
            if not np.all(in_bounds):
                num_clipped += 1
            tof[i] = r / np.mean(c[in_bounds])
        if num_clipped > 0:
            logger.warning(f"{num_clipped} of {arr.numelements()} rays leave the sound speed volume; "
                           "their speeds are averaged over in-bounds samples only.")
        delays = -tof
        delays = delays - np.min(delays)
        return delays

    def to_table(self) -> pd.DataFrame:
        """
        Get a table of the delay method parameters

        :returns: Pandas DataFrame of the delay method parameters
        """
        records = [{"Name": "Type", "Value": "Raytraced", "Unit": ""},
                   {"Name": "Interpolation Method", "Value": self.interp_method, "Unit": ""},
                   {"Name": "Sampling Interval", "Value": self.interp_spacing, "Unit": "m"}]
        return pd.DataFrame.from_records(records)

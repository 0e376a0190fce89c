from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import numpy as np
import pandas as pd

from fusbeam.bf.apod_methods.apodmethod import ApodizationMethod
from fusbeam.geo import Point
from fusbeam.util.annotations import FUSFieldData
from fusbeam.xdc import Transducer


@dataclass
class Uniform(ApodizationMethod):
    value: Annotated[float, FUSFieldData("Value", "Uniform apodization value between 0 and 1.")] = 1.0
    """Uniform apodization value between 0 and 1."""

    def __post_init__(self):
        if not 0 <= self.value <= 1:
            raise ValueError(f"Apodization value must be between 0 and 1, got {self.value}.")

    def calc_apodization(self, arr: Transducer, target: Point, params=None, transform: np.ndarray | None = None):
        return np.full(arr.numelements(), self.value, dtype=np.float64)

    def to_table(self) -> pd.DataFrame:
        """
        Get a table of the apodization method parameters

        :returns: Pandas DataFrame of the apodization method parameters
        """
        records = [{"Name": "Type", "Value": "Uniform", "Unit": ""},
                   {"Name": "Value", "Value": self.value, "Unit": ""}]
        return pd.DataFrame.from_records(records)

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Literal

import pandas as pd

from fusbeam.bf import focal_patterns
from fusbeam.geo import Point
from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.dict_conversion import filter_constructor_kwargs
from fusbeam.util.units import getunittype


@dataclass
class FocalPattern(ABC):
    """
    Abstract base class for representing a focal pattern
    """

    target_pressure: Annotated[float, FUSFieldData("Target pressure", "Target pressure of the focal pattern in given units")] = 1.0
    """Target pressure of the focal pattern in given units"""

    pressure_units: Annotated[str, FUSFieldData("Pressure units", "Pressure units")] = "Pa"
    """Pressure units"""

    def __post_init__(self):
        if self.target_pressure <= 0:
            raise ValueError("Target pressure must be greater than 0")
        if not isinstance(self.pressure_units, str):
            raise TypeError("Pressure units must be a string")
        if getunittype(self.pressure_units) != 'pressure':
            raise ValueError(f"Pressure units must be a pressure unit, got {self.pressure_units}")

    @abstractmethod
    def get_targets(self, target: Point, units: str | None = None) -> List[Point]:
        """
        Get the targets of the focal pattern

        :param target: Target point of the focal pattern
        :param units: Units of the returned points. Defaults to the units of the target.
        :returns: List of target points
        """
        pass

    @abstractmethod
    def num_foci(self) -> int:
        """
        Get the number of foci in the focal pattern

        :returns: Number of foci
        """
        pass

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the focal pattern to a dictionary

        :returns: Dictionary of the focal pattern parameters
        """
        d = self.__dict__.copy()
        d['class'] = self.__class__.__name__
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any], on_keyword_mismatch: Literal['warn', 'raise', 'ignore'] = 'warn') -> FocalPattern:
        """
        Create a focal pattern from a dictionary

        :param d: Dictionary of the focal pattern parameters
        :returns: FocalPattern object
        """
        d = dict(d)
        short_classname = d.pop("class", "SinglePoint")
        if short_classname not in focal_patterns.FOCAL_PATTERNS:
            raise ValueError(f"Unknown focal pattern '{short_classname}'. Choose from {list(focal_patterns.FOCAL_PATTERNS)}.")
        class_constructor = focal_patterns.FOCAL_PATTERNS[short_classname]
        return class_constructor(**filter_constructor_kwargs(class_constructor, d, on_keyword_mismatch))

    @abstractmethod
    def to_table(self) -> pd.DataFrame:
        """
        Get a table of the focal pattern parameters

        :returns: Pandas DataFrame of the focal pattern parameters
        """
        pass

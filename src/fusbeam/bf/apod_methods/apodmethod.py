from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Literal

import numpy as np
import pandas as pd

from fusbeam.bf import apod_methods
from fusbeam.geo import Point
from fusbeam.util.dict_conversion import filter_constructor_kwargs
from fusbeam.xdc import Transducer


@dataclass
class ApodizationMethod(ABC):
    @abstractmethod
    def calc_apodization(self, arr: Transducer, target: Point, params=None, transform: np.ndarray | None = None) -> np.ndarray:
        """
        Calculate per-element amplitude weights in [0, 1].

        :param arr: Transducer whose elements are weighted
        :param target: Focus point
        :param params: Material-property volumes (unused by the geometric methods)
        :param transform: 4x4 transducer-to-world transform in meters. Defaults to the transducer placement.
        :returns: Array of apodizations, one per element
        """
        pass

    @abstractmethod
    def to_table(self) -> pd.DataFrame:
        pass

    def to_dict(self) -> Dict[str, Any]:
        d = self.__dict__.copy()
        d['class'] = self.__class__.__name__
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any], on_keyword_mismatch: Literal['warn', 'raise', 'ignore'] = 'warn') -> ApodizationMethod:
        d = dict(d)
        short_classname = d.pop("class", "Uniform")
        if short_classname not in apod_methods.APOD_METHODS:
            raise ValueError(f"Unknown apodization method '{short_classname}'. Choose from {list(apod_methods.APOD_METHODS)}.")
        class_constructor = apod_methods.APOD_METHODS[short_classname]
        return class_constructor(**filter_constructor_kwargs(class_constructor, d, on_keyword_mismatch))


def element_angles(arr: Transducer, target: Point, units: str, transform: np.ndarray | None = None) -> np.ndarray:
    """Angle between each element normal and the direction to `target`, in angle `units`."""
    target_pos = target.get_position(units="m")
    matrix = arr.get_matrix(units="m") if transform is None else transform
    return np.array([el.angle_to_point(target_pos, units="m", matrix=matrix, return_as=units) for el in arr.elements])

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Literal

import numpy as np
import pandas as pd

from fusbeam.bf import delay_methods
from fusbeam.geo import Point
from fusbeam.seg.material import Material
from fusbeam.util.dict_conversion import filter_constructor_kwargs
from fusbeam.util.errors import MaterialNotFound
from fusbeam.volume import Volume
from fusbeam.xdc import Transducer


@dataclass
class DelayMethod(ABC):
    @abstractmethod
    def calc_delays(self, arr: Transducer, target: Point, params=None, transform: np.ndarray | None = None) -> np.ndarray:
        """
        Calculate per-element transmit delays (s) that focus the array on `target`.

        :param arr: Transducer whose elements are delayed
        :param target: Focus point
        :param params: Material-property volumes (a Volume, a list or dict of Volumes, or an xarray Dataset)
        :param transform: 4x4 transducer-to-world transform in meters. Defaults to the transducer placement.
        :returns: Array of delays, one per element, with a minimum of zero
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
    def from_dict(d: Dict[str, Any], on_keyword_mismatch: Literal['warn', 'raise', 'ignore'] = 'warn') -> DelayMethod:
        d = dict(d)
        short_classname = d.pop("class", "Direct")
        if short_classname not in delay_methods.DELAY_METHODS:
            raise ValueError(f"Unknown delay method '{short_classname}'. Choose from {list(delay_methods.DELAY_METHODS)}.")
        class_constructor = delay_methods.DELAY_METHODS[short_classname]
        return class_constructor(**filter_constructor_kwargs(class_constructor, d, on_keyword_mismatch))


def reference_sound_speed(sound_speed: Volume) -> float:
    """Reference speed of sound (m/s) carried in the attributes of a sound-speed volume."""
    ref_material = sound_speed.attrs.get("ref_material")
    if ref_material is not None:
        if isinstance(ref_material, (str, dict)):
            ref_material = Material.from_dict(ref_material)
        return float(ref_material.sound_speed)
    if "ref_value" in sound_speed.attrs:
        return float(sound_speed.attrs["ref_value"])
    raise MaterialNotFound(f"Volume '{sound_speed.id}' has no reference material or reference value.")


def element_frame(arr: Transducer, transform: np.ndarray | None) -> np.ndarray:
    return arr.get_matrix(units="m") if transform is None else transform

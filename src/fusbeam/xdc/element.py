from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Annotated

import numpy as np

from fusbeam.geo import apply_transform, validate_matrix
from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.errors import DimensionMismatch
from fusbeam.util.units import getunitconversion, validate_distance_unit

logger = logging.getLogger(__name__)

GIMBAL_LOCK_TOLERANCE = 1e-12


def _rotation(az: float, el: float, roll: float) -> np.ndarray:
    Raz = np.array([[np.cos(az), 0, np.sin(az)],
                    [0, 1, 0],
                    [-np.sin(az), 0, np.cos(az)]])
    Rel = np.array([[1, 0, 0],
                    [0, np.cos(el), -np.sin(el)],
                    [0, np.sin(el), np.cos(el)]])
    Rroll = np.array([[np.cos(roll), -np.sin(roll), 0],
                      [np.sin(roll), np.cos(roll), 0],
                      [0, 0, 1]])
    return Raz @ Rel @ Rroll


def xyz2matrix(x: float, y: float, z: float, az: float, el: float, roll: float) -> np.ndarray:
    """Element frame from a position and intrinsic (az about y, el about x', roll about z'') rotations."""
    m = np.eye(4)
    m[:3, :3] = _rotation(az, el, roll)
    m[:3, 3] = [x, y, z]
    return m


def matrix2xyz(matrix):
    """Recover (x, y, z, az, el, roll) from an element frame.

    Inverse of `xyz2matrix` for el in (-pi/2, pi/2). At el = ±pi/2 (gimbal lock) azimuth and roll
    rotate about the same axis and only their combination is determined; azimuth then comes out
    as atan2(0, 0) = 0 and the whole combined rotation is attributed to roll.
    """
    matrix = validate_matrix(matrix)
    x, y, z = matrix[:3, 3]
    cos_el = np.sqrt(matrix[2, 2]**2 + matrix[0, 2]**2)
    if cos_el < GIMBAL_LOCK_TOLERANCE:
        logger.warning("Element matrix is at the gimbal-lock singularity (el = ±pi/2); azimuth and roll are not separable.")
    az = np.arctan2(matrix[0, 2], matrix[2, 2])
    el = -np.arctan2(matrix[1, 2], cos_el)
    Razel = _rotation(az, el, 0.0)
    xv = matrix[:3, 0]
    roll = np.arctan2(np.dot(xv, Razel[:, 1]), np.dot(xv, Razel[:, 0]))
    return x, y, z, az, el, roll


@dataclass
class Element:
    index: Annotated[int, FUSFieldData("Element index", "Element index")] = 0
    """Element index to identify the element in the array."""

    position: Annotated[np.ndarray, FUSFieldData("Position", "Position of the element in 3D space")] = field(default_factory=lambda: np.array([0., 0., 0.]))
    """Position of the element in the transducer frame as a numpy array [x, y, z]."""

    orientation: Annotated[np.ndarray, FUSFieldData("Orientation", "Orientation of the element in 3D space")] = field(repr=False, default_factory=lambda: np.array([0., 0., 0.]))
    """Orientation of the element as rotations about the [y, x', z''] axes [az, el, roll] in radians."""

    size: Annotated[np.ndarray, FUSFieldData("Size", "Size of the element in 2D")] = field(default_factory=lambda: np.array([1., 1.]))
    """Size of the element in 2D as a numpy array [width, length]."""

    sensitivity: Annotated[float | None, FUSFieldData("Sensitivity", "Sensitivity of the element (Pa/V)")] = None
    """Sensitivity of the element (Pa/V)"""

    impulse_response: Annotated[np.ndarray | None, FUSFieldData("Impulse response", "Impulse response of the element")] = None
    """Impulse response of the element, a single value or an array sampled every `impulse_dt` seconds."""

    impulse_dt: Annotated[float | None, FUSFieldData("Impulse response timestep", "Impulse response timestep")] = None
    """Impulse response timestep. Required when `impulse_response` has more than one sample."""

    pin: Annotated[int, FUSFieldData("Pin", "Channel pin to which the element is connected")] = -1
    """Channel pin to which the element is connected."""

    units: Annotated[str, FUSFieldData("Units", "Spatial units")] = "mm"
    """Spatial units of the element specification."""

    def __post_init__(self):
        self.position = np.array(self.position, dtype=np.float64)
        if self.position.shape != (3,):
            raise DimensionMismatch("Position must be a 3-element array.")
        self.orientation = np.array(self.orientation, dtype=np.float64)
        if self.orientation.shape != (3,):
            raise DimensionMismatch("Orientation must be a 3-element array.")
        self.size = np.array(self.size, dtype=np.float64)
        if self.size.shape != (2,):
            raise DimensionMismatch("Size must be a 2-element array.")
        validate_distance_unit(self.units)
        if self.impulse_response is not None:
            self.impulse_response = np.atleast_1d(np.array(self.impulse_response, dtype=np.float64))
            if self.impulse_response.ndim != 1:
                raise ValueError("Impulse response must be a 1-dimensional array.")
            if len(self.impulse_response)>1 and self.impulse_dt is None:
                raise ValueError("Impulse response timestep must be set if impulse response is an array.")

    @property
    def x(self):
        return self.position[0]

    @property
    def y(self):
        return self.position[1]

    @property
    def z(self):
        return self.position[2]

    @property
    def az(self):
        return self.orientation[0]

    @property
    def el(self):
        return self.orientation[1]

    @property
    def roll(self):
        return self.orientation[2]

    @property
    def width(self):
        return self.size[0]

    @property
    def length(self):
        return self.size[1]

    def copy(self) -> Element:
        return copy.deepcopy(self)

    def rescale(self, units: str) -> Element:
        """Return a copy of the element with position and size in `units`."""
        validate_distance_unit(units)
        el = self.copy()
        if self.units != units:
            scl = getunitconversion(self.units, units)
            el.position = self.position * scl
            el.size = self.size * scl
            el.units = units
        return el

    def get_position(self, units=None, matrix=None):
        units = self.units if units is None else units
        pos = self.position * getunitconversion(self.units, units)
        if matrix is not None:
            pos = apply_transform(matrix, pos)
        return pos

    def get_size(self, units=None):
        units = self.units if units is None else units
        scl = getunitconversion(self.units, units)
        return self.size[0] * scl, self.size[1] * scl

    def get_area(self, units=None):
        ele_width, ele_length = self.get_size(units)
        return ele_width * ele_length

    def get_corners(self, units=None, matrix=None):
        """Corners of the element face, shape (3, 4), optionally moved by `matrix` (acting in `units`)."""
        units = self.units if units is None else units
        width, length = self.get_size(units)
        rect = np.array([np.array([-1, -1.,  1,  1]) * 0.5 * width,
                         np.array([-1,  1,  1, -1]) * 0.5 * length,
                         np.zeros(4)])
        corners = apply_transform(self.get_matrix(units=units), rect.T)
        if matrix is not None:
            corners = apply_transform(matrix, corners)
        return corners.T

    def get_matrix(self, units=None):
        """4x4 element-to-transducer transform [Raz·Rel·Rroll | t]."""
        x, y, z = self.get_position(units=units)
        return xyz2matrix(x, y, z, self.az, self.el, self.roll)

    def get_angle(self, units="rad"):
        """Return the orientation angles (az, el, roll) in radians or degrees."""
        if units == "deg":
            return tuple(np.degrees(self.orientation))
        return tuple(self.orientation)

    def distance_to_point(self, point, units=None, matrix=None):
        """Euclidean distance from the element center, optionally moved by `matrix`, to `point` (in `units`)."""
        gpos = self.get_position(units=units, matrix=matrix)
        return np.linalg.norm(np.asarray(point, dtype=np.float64) - gpos, 2)

    def angle_to_point(self, point, units=None, return_as="rad", matrix=None):
        """Angle between the element normal and the direction from the element to `point`."""
        gm = self.get_matrix(units=units)
        if matrix is not None:
            gm = validate_matrix(matrix) @ gm
        v1 = np.asarray(point, dtype=np.float64) - gm[:3, 3]
        v2 = gm[:3, 2]
        v1 = v1 / np.linalg.norm(v1, 2)
        v2 = v2 / np.linalg.norm(v2, 2)
        theta = np.arccos(np.clip(np.dot(v1, v2), -1.0, 1.0))
        return theta * getunitconversion("rad", return_as)

    def set_matrix(self, matrix, units=None) -> Element:
        """Return a copy of the element placed by `matrix`, which is expressed in `units` (default: element units)."""
        el = self.rescale(units) if units is not None else self.copy()
        x, y, z, az, el_angle, roll = matrix2xyz(matrix)
        el.position = np.array([x, y, z])
        el.orientation = np.array([az, el_angle, roll])
        return el

    def to_dict(self):
        d = {"index": self.index,
             "position": self.position.tolist(),
             "orientation": self.orientation.tolist(),
             "size": self.size.tolist(),
             "pin": self.pin,
             "units": self.units}
        if self.sensitivity is not None:
            d["sensitivity"] = self.sensitivity
        if self.impulse_response is not None:
            d["impulse_response"] = self.impulse_response.tolist()
        if self.impulse_dt is not None:
            d["impulse_dt"] = self.impulse_dt
        return d

    @staticmethod
    def from_dict(d):
        d = copy.deepcopy(d)
        if 'x' in d:
            d["position"] = np.array([d.pop('x'), d.pop('y'), d.pop('z')])
            d["orientation"] = np.array([d.pop('az'), d.pop('el'), d.pop('roll')])
            d["size"] = np.array([d.pop('w'), d.pop('l')])
        if d.get("impulse_response") is not None:
            d["impulse_response"] = np.array(d["impulse_response"])
        if d.get("impulse_dt") is not None:
            d["impulse_dt"] = float(d["impulse_dt"])
        return Element(**d)

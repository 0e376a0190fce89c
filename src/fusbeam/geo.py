from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from functools import reduce
from typing import Annotated, Any, Dict, Literal, Tuple

import numpy as np

from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.errors import DegenerateFocus, DimensionMismatch
from fusbeam.util.units import getunitconversion, validate_angle_unit, validate_distance_unit

DIMS = ('x', 'y', 'z')
LDIMS = Literal['x', 'y', 'z']


# === Homogeneous transforms ===

def validate_matrix(matrix) -> np.ndarray:
    """Return `matrix` as a float 4x4 array, raising DimensionMismatch for any other shape."""
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.shape != (4, 4):
        raise DimensionMismatch(f"Transform must be 4x4, got {matrix.shape}.")
    return matrix


def translation_matrix(dim: LDIMS | int, amount: float) -> np.ndarray:
    matrix = np.eye(4)
    dim_index = DIMS.index(dim) if isinstance(dim, str) else int(dim)
    matrix[dim_index, 3] = amount
    return matrix


def rotation_matrix(dim: LDIMS | int, angle: float, units: str = "deg") -> np.ndarray:
    """Right-handed rotation about one of the principal axes."""
    validate_angle_unit(units)
    angle_rad = angle * getunitconversion(units, "rad")
    dim_index = DIMS.index(dim) if isinstance(dim, str) else int(dim)
    c, s = np.cos(angle_rad), np.sin(angle_rad)
    matrix = np.eye(4)
    # indices of the plane being rotated, ordered so the rotation is right-handed
    i, j = [(1, 2), (2, 0), (0, 1)][dim_index]
    matrix[i, i] = c
    matrix[i, j] = -s
    matrix[j, i] = s
    matrix[j, j] = c
    return matrix


def inv_transform(matrix) -> np.ndarray:
    """True matrix inverse. Scale may be non-uniform, so the transpose is not used."""
    return np.linalg.inv(validate_matrix(matrix))


def pinv_transform(matrix) -> np.ndarray:
    """Pseudo-inverse (MᵀM)⁻¹Mᵀ of a 4x4 transform."""
    matrix = validate_matrix(matrix)
    return np.linalg.solve(matrix.T @ matrix, matrix.T)


def compose(*matrices) -> np.ndarray:
    """Matrix product of the given transforms, applied right-to-left."""
    return reduce(np.dot, [validate_matrix(m) for m in matrices], np.eye(4))


def apply_transform(matrix, points) -> np.ndarray:
    """Apply a 4x4 transform to an array of points shaped (..., 3)."""
    matrix = validate_matrix(matrix)
    points = np.asarray(points, dtype=np.float64)
    if points.shape[-1] != 3:
        raise DimensionMismatch(f"Points must have a trailing dimension of 3, got {points.shape}.")
    return points @ matrix[:3, :3].T + matrix[:3, 3]


def rescale_matrix(matrix, from_units: str, to_units: str) -> np.ndarray:
    """Express a transform acting on `from_units` coordinates as one acting on `to_units` coordinates."""
    matrix = validate_matrix(matrix).copy()
    matrix[:3, 3] *= getunitconversion(from_units, to_units)
    return matrix


# === Tools to work with points ===
@dataclass
class Point:
    position: Annotated[np.ndarray, FUSFieldData("Position", "3D position of the point in the provided units")] = field(default_factory=lambda: np.array([0.0, 0.0, 0.0]))
    """3D position of the point in the provided units"""

    id: Annotated[str, FUSFieldData("Point ID", "Unique identifier for the point")] = "point"
    """Unique identifier for the point"""

    name: Annotated[str, FUSFieldData("Point name", "Name of the point")] = "Point"
    """Name of the point"""

    color: Annotated[Any, FUSFieldData("Color (RGB)", "RGB color of the point")] = (1.0, 0.0, 0.0)
    """RGB color of the point"""

    radius: Annotated[float, FUSFieldData("Radius", "Display radius of the point in the provided units")] = 1.0
    """Display radius of the point in the provided units"""

    dims: Annotated[Tuple[str, str, str], FUSFieldData("Dimensions", "Names of the axes of the coordinate system being used")] = ("x", "y", "z")
    """Names of the axes of the coordinate system being used"""

    units: Annotated[str, FUSFieldData("Units", "Units for the point")] = "mm"
    """Units for the point"""

    def __post_init__(self):
        position = np.asarray(self.position, dtype=np.float64).ravel()
        if position.size != 3 or len(self.dims) != 3:
            raise DimensionMismatch(f"Position and dims must both have 3 entries, got {position.size} and {len(self.dims)}.")
        self.position = position
        self.dims = tuple(self.dims)
        validate_distance_unit(self.units)

    def copy(self) -> Point:
        return copy.deepcopy(self)

    def get_position(self, dim=None, units: str | None = None):
        units = self.units if units is None else units
        scl = getunitconversion(self.units, units)
        if dim is None:
            return self.position*scl
        return self.position[self.dims.index(dim)]*scl

    def get_matrix(self, origin: np.ndarray | None = None, center_on_point: bool = True, local: bool = False) -> np.ndarray:
        """Focus-centered frame of this point.

        The frame's z axis points from the origin of `origin` toward the point, its x axis lies in the
        azimuthal (x-z) plane, and y = z × x. The frame is centered on the point when `center_on_point`
        is set, otherwise on the origin.

        Args:
            origin: 4x4 transform of the reference frame. Defaults to identity.
            center_on_point: place the frame origin at the point rather than at the reference origin.
            local: return the frame relative to `origin` instead of composing it with `origin`.

        Returns: 4x4 frame-to-parent transform.
        """
        origin = np.eye(4) if origin is None else validate_matrix(origin)
        pos = apply_transform(inv_transform(origin), self.position)
        norm = np.linalg.norm(pos)
        if norm == 0:
            raise DegenerateFocus(f"Point '{self.id}' lies at the frame origin; its direction is undefined.")
        zvec = pos / norm
        az = -np.arctan2(zvec[0], zvec[2])
        xvec = np.array([np.cos(az), 0.0, np.sin(az)])
        yvec = np.cross(zvec, xvec)
        center = pos if center_on_point else np.zeros(3)
        m = np.eye(4)
        m[:3, 0] = xvec
        m[:3, 1] = yvec
        m[:3, 2] = zvec
        m[:3, 3] = center
        if not local:
            m = origin @ m
        return m

    def rescale(self, units: str) -> Point:
        """Return a copy of the point expressed in `units`."""
        validate_distance_unit(units)
        scl = getunitconversion(self.units, units)
        point = self.copy()
        point.position = self.position * scl
        point.radius = self.radius * scl
        point.units = units
        return point

    def transform(self,
                  matrix: np.ndarray,
                  units: str | None = None,
                  new_dims: Tuple[str, str, str] | None=None) -> Point:
        """Return a copy of the point moved by `matrix`, which acts on coordinates in `units` (default: point units)."""
        point = self.rescale(units) if units is not None else self.copy()
        point.position = apply_transform(matrix, point.position)
        if new_dims is not None:
            point.dims = tuple(new_dims)
        return point

    def to_dict(self):
        return {"id": self.id,
                "name": self.name,
                "color": list(self.color),
                "radius": self.radius,
                "position": self.position.tolist(),
                "dims": list(self.dims),
                "units": self.units}

    @staticmethod
    def from_dict(point_data: Dict) -> Point:
        """Create a Point object from a dictionary."""
        point_data = dict(point_data)
        if "color" in point_data:
            if len(point_data["color"]) != 3:
                raise ValueError(f"Color should have three components; got {point_data['color']}.")
            point_data["color"] = tuple(float(c) for c in point_data["color"])
        if "radius" in point_data:
            point_data["radius"] = float(point_data["radius"])
        if "position" in point_data:
            point_data["position"] = np.array(point_data["position"], dtype=np.float64)
        if "dims" in point_data:
            point_data["dims"] = tuple(point_data["dims"])
        return Point(**point_data)

    @staticmethod
    def from_json(json_string : str) -> Point:
        """Load a Point from a json string"""
        return Point.from_dict(json.loads(json_string))

    def to_json(self, compact:bool) -> str:
        """Serialize a Point to a json string

        Args:
            compact: if enabled then the string is compact (not pretty). Disable for pretty.

        Returns: A json string representing the complete Point object.
        """
        if compact:
            return json.dumps(self.to_dict(), separators=(',', ':'))
        else:
            return json.dumps(self.to_dict(), indent=4)

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Literal

import numpy as np

from fusbeam.geo import (
    LDIMS,
    apply_transform,
    inv_transform,
    rescale_matrix,
    rotation_matrix,
    translation_matrix,
    validate_matrix,
)
from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.types import PathLike
from fusbeam.util.units import validate_distance_unit
from fusbeam.xdc.element import Element

logger = logging.getLogger(__name__)

MergeReference = Literal["first", "average"]


@dataclass
class Transducer:
    id: Annotated[str, FUSFieldData("Transducer ID", "Unique identifier for transducer")] = "transducer"
    """Unique identifier for transducer"""

    name: Annotated[str, FUSFieldData("Transducer name", "Human readable name for transducer")] = ""
    """Human readable name for transducer"""

    elements: Annotated[List[Element], FUSFieldData("Elements", "Collection of transducer Elements, in the transducer frame")] = field(default_factory=list)
    """Collection of transducer Elements, in the transducer frame"""

    frequency: Annotated[float, FUSFieldData("Frequency (Hz)", "Nominal array frequency (Hz)")] = 400.6e3
    """Nominal array frequency (Hz)"""

    units: Annotated[str, FUSFieldData("Units", "Native units of transducer local coordinate space")] = "m"
    """Native units of transducer local coordinate space"""

    matrix: Annotated[np.ndarray, FUSFieldData("Placement matrix", "4x4 transform from the transducer frame to the scene frame, in transducer units")] = field(default_factory=lambda: np.eye(4))
    """4x4 transform from the transducer frame to the scene frame. Its translation is in the transducer's native units."""

    attrs: Annotated[Dict[str, Any], FUSFieldData("Attributes", "Additional transducer attributes")] = field(default_factory=dict)
    """Additional transducer attributes"""

    sensitivity: Annotated[float | None, FUSFieldData("Sensitivity", "Sensitivity of the array (Pa/V)")] = None
    """Sensitivity of the array (Pa/V)"""

    def __post_init__(self):
        logger.info("Initializing transducer array")
        if self.name == "":
            self.name = self.id
        validate_distance_unit(self.units)
        self.matrix = validate_matrix(self.matrix).copy()
        self.elements = [element.rescale(self.units) for element in self.elements]

    def copy(self) -> Transducer:
        return copy.deepcopy(self)

    def numelements(self) -> int:
        return len(self.elements)

    def get_matrix(self, units: str | None = None) -> np.ndarray:
        """Placement matrix with its translation expressed in `units`."""
        units = self.units if units is None else units
        return rescale_matrix(self.matrix, self.units, units)

    def get_area(self, units=None):
        units = self.units if units is None else units
        return sum(element.get_area(units=units) for element in self.elements)

    def get_corners(self, transform: np.ndarray | None = None, units: str | None = None):
        units = self.units if units is None else units
        matrix = self.get_matrix(units) if transform is None else transform
        return [element.get_corners(units=units, matrix=matrix) for element in self.elements]

    def get_positions(self, transform: np.ndarray | None = None, units: str | None = None) -> np.ndarray:
        """Element positions, shape (N, 3).

        Args:
            transform: transform applied to the element positions. Defaults to the placement matrix,
                so positions are returned in the scene frame. Pass np.eye(4) for the transducer frame.
            units: units of the positions (and of `transform`). Defaults to transducer units.
        """
        units = self.units if units is None else units
        matrix = self.get_matrix(units) if transform is None else transform
        if self.numelements() == 0:
            return np.zeros((0, 3))
        return np.array([element.get_position(units=units, matrix=matrix) for element in self.elements])

    def get_effective_origin(self, apodizations: np.ndarray, units: str | None = None):
        """Get the centroid of the effective active region of the transducer based on apodizations.

        Args:
            apodizations: vector of apodizations for the transducer elements
            units: units in which to describe the centroid. If not provided then transducer native units are used.

        Returns: a 3-element array describing the centroid in the transducer coordinate system
        """
        units = self.units if units is None else units
        positions = self.get_positions(transform=np.eye(4), units=units)
        return (apodizations.reshape(-1,1) * positions).sum(axis=0)/apodizations.sum()

    def get_unit_vectors(self, transform: bool = True, scale: float = 1.0, units: str | None = None) -> List[np.ndarray]:
        """Segments [origin, origin + scale * axis] for each transducer axis, each of shape (2, 3)."""
        units = self.units if units is None else units
        unit_vectors = [np.array([[0., 0., 0.], axis]) * scale for axis in np.eye(3)]
        if transform:
            matrix = self.get_matrix(units)
            unit_vectors = [apply_transform(matrix, uv) for uv in unit_vectors]
        return unit_vectors

    def convert_transform(self, matrix: np.ndarray, units: str) -> np.ndarray:
        """Given a transform matrix in some units, convert it to this transducer's native units.

        Args:
            matrix: 4x4 affine transform matrix
            units: units of the coordinate space on which the provided transform matrix operates

        Returns: 4x4 affine transform matrix, now operating on a the transducer's native coordinate space
            (i.e. in the transducer's native units)
        """
        return rescale_matrix(matrix, units, self.units)

    def rescale(self, units: str) -> Transducer:
        """Return a copy of the transducer with elements and placement in `units`."""
        validate_distance_unit(units)
        trans = self.copy()
        if self.units != units:
            trans.elements = [element.rescale(units) for element in self.elements]
            trans.matrix = self.get_matrix(units)
            trans.units = units
        return trans

    def transform(self, matrix: np.ndarray, units: str | None = None, transform_elements: bool = False) -> Transducer:
        """Return a transformed copy of the transducer.

        Args:
            matrix: 4x4 transform, acting on coordinates in `units`.
            units: units of `matrix`, and of the returned transducer. Defaults to transducer units.
            transform_elements: if set, re-express every element frame through inv(matrix) and leave the
                placement matrix untouched. Otherwise right-multiply the placement matrix by inv(matrix).
        """
        trans = self.rescale(units) if units is not None else self.copy()
        inv_matrix = inv_transform(matrix)
        if transform_elements:
            trans.elements = [el.set_matrix(inv_matrix @ el.get_matrix()) for el in trans.elements]
        else:
            trans.matrix = trans.matrix @ inv_matrix
        return trans

    def translate(self, dim: LDIMS, amount: float, units: str | None = None, transform_elements: bool = True) -> Transducer:
        return self.transform(translation_matrix(dim, amount), units=units, transform_elements=transform_elements)

    def rotate(self, dim: LDIMS, angle: float, units: Literal["deg", "rad"] = "deg", transform_elements: bool = True) -> Transducer:
        return self.transform(rotation_matrix(dim, angle, units=units), transform_elements=transform_elements)

    @staticmethod
    def merge(list_of_transducers: List[Transducer],
              reference: MergeReference = "first",
              offset_pins: bool = False,
              offset_indices: bool = False,
              merged_attrs: Dict[str, Any] | None = None) -> Transducer:
        """Combine several transducers into one by expressing all elements in a common frame.

        Args:
            list_of_transducers: transducers to merge. Units of the first transducer are used.
            reference: "first" to use the first transducer's placement as the common frame, or
                "average" to use the mean of all placements, Gram-Schmidt orthonormalized.
            offset_pins: shift the pins of each subsequent transducer past those already merged.
            offset_indices: shift the element indices of each subsequent transducer past those already merged.
            merged_attrs: attribute overrides to set on the merged transducer.

        Returns: a new Transducer whose placement matrix is the reference frame.
        """
        if len(list_of_transducers) == 0:
            raise ValueError("At least one transducer is required to merge.")
        units = list_of_transducers[0].units
        arrays = [arr.rescale(units) for arr in list_of_transducers]
        if reference == "first":
            ref_matrix = arrays[0].get_matrix()
        elif reference == "average":
            ref_matrix = np.mean([arr.get_matrix() for arr in arrays], axis=0)
            ref_matrix[:3, 0] /= np.linalg.norm(ref_matrix[:3, 0])
            ref_matrix[:3, 1] -= ref_matrix[:3, 0] * np.dot(ref_matrix[:3, 0], ref_matrix[:3, 1])
            ref_matrix[:3, 1] /= np.linalg.norm(ref_matrix[:3, 1])
            ref_matrix[:3, 2] = np.cross(ref_matrix[:3, 0], ref_matrix[:3, 1])
        else:
            raise ValueError(f"Merge reference must be 'first' or 'average', got '{reference}'.")

        merged = arrays[0].copy()
        merged.elements = []
        for arr in arrays:
            xform = arr.transform(inv_transform(arr.get_matrix()) @ ref_matrix, transform_elements=True)
            elements = xform.elements
            if offset_pins:
                elements = [_offset(el, "pin", len(merged.elements)) for el in elements]
            if offset_indices:
                elements = [_offset(el, "index", len(merged.elements)) for el in elements]
            merged.elements += elements
        merged.matrix = ref_matrix
        for k, v in (merged_attrs or {}).items():
            setattr(merged, k, v)
        return merged

    def sort_by_index(self) -> Transducer:
        """Return a copy with the elements sorted by their element index."""
        trans = self.copy()
        trans.elements = sorted(trans.elements, key=lambda el: el.index)
        return trans

    def sort_by_pin(self) -> Transducer:
        """Return a copy with the elements sorted by their pin number."""
        trans = self.copy()
        trans.elements = sorted(trans.elements, key=lambda el: el.pin)
        return trans

    def to_dict(self):
        return {"id": self.id,
                "name": self.name,
                "elements": [element.to_dict() for element in self.elements],
                "frequency": self.frequency,
                "units": self.units,
                "matrix": self.matrix.tolist(),
                "attrs": self.attrs,
                "sensitivity": self.sensitivity}

    def to_file(self, filename: PathLike):
        from fusbeam.util.json import to_json
        to_json(self.to_dict(), filename)

    @staticmethod
    def from_file(filename: PathLike) -> Transducer:
        with open(filename) as file:
            data = json.load(file)
        return Transducer.from_dict(data)

    @staticmethod
    def from_dict(d, **kwargs) -> Transducer:
        d = dict(d)
        d["elements"] = [Element.from_dict(element) for element in d.get("elements", [])]
        if d.get("matrix") is not None:
            d["matrix"] = np.array(d["matrix"], dtype=np.float64)
        else:
            d.pop("matrix", None)
        return Transducer(**d, **kwargs)

    @staticmethod
    def from_json(json_string : str) -> Transducer:
        """Load a Transducer from a json string"""
        return Transducer.from_dict(json.loads(json_string))

    def to_json(self, compact:bool=False) -> str:
        """Serialize a Transducer to a json string

        Args:
            compact: if enabled then the string is compact (not pretty). Disable for pretty.

        Returns: A json string representing the complete Transducer object.
        """
        from fusbeam.util.json import FUSEncoder
        if compact:
            return json.dumps(self.to_dict(), separators=(',', ':'), cls=FUSEncoder)
        else:
            return json.dumps(self.to_dict(), indent=4, cls=FUSEncoder)

    @staticmethod
    def gen_matrix_array(nx=2, ny=2, pitch=1, kerf=0, units="mm", **kwargs) -> Transducer:
        """Generate a 2D flat matrix array

        Args:
            nx: number of elements in the x direction
            ny: number of elements in the y direction
            pitch: distance between element centers
            kerf: distance between element edges
            units: units of the array dimensions
            **kwargs: other Transducer fields (id, name, frequency, matrix, attrs, ...)

        Returns: a Transducer object representing the array
        """
        xpos = (np.arange(nx) - (nx - 1) / 2) * pitch
        ypos = -(np.arange(ny) - (ny - 1) / 2) * pitch
        elements = []
        for i in range(nx * ny):
            elements.append(Element(
                index=i+1,
                pin=i+1,
                position=np.array([xpos[i // ny], ypos[i % ny], 0]),
                orientation=np.array([0, 0, 0]),
                size=np.array([pitch - kerf, pitch - kerf]),
                units=units
            ))
        return Transducer(elements=elements, units=units, **kwargs)


def _offset(element: Element, attr: str, amount: int) -> Element:
    element = element.copy()
    setattr(element, attr, getattr(element, attr) + amount)
    return element

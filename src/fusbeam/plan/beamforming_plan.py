from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, Dict, List, Tuple

import numpy as np
import pandas as pd

from fusbeam import axis, bf
from fusbeam.geo import Point
from fusbeam.plan.solution import Solution
from fusbeam.seg.material import MATERIALS, Material
from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.errors import MaterialNotFound
from fusbeam.util.json import FUSEncoder
from fusbeam.util.types import PathLike
from fusbeam.volume import Volume
from fusbeam.xdc import Transducer

REF_PARAMS = ("sound_speed", "density", "attenuation")


@dataclass
class BeamformingPlan:
    id: Annotated[str, FUSFieldData("Plan ID", "The unique identifier of the beamforming plan")] = "plan"
    """The unique identifier of the beamforming plan"""

    name: Annotated[str, FUSFieldData("Plan name", "The name of the beamforming plan")] = "Plan"
    """The name of the beamforming plan"""

    description: Annotated[str, FUSFieldData("Plan description", "A more detailed description of the plan")] = ""
    """A more detailed description of the plan"""

    delay_method: Annotated[bf.DelayMethod, FUSFieldData("Delay method", "The method used to calculate transmit delays. By default, delays are calculated using a nominal speed of sound")] = field(default_factory=bf.delay_methods.Direct)
    """The method used to calculate transmit delays. By default, delays are calculated using a nominal speed of sound"""

    apod_method: Annotated[bf.ApodizationMethod, FUSFieldData("Apodization method", "The method used to calculate transmit apodizations. By default, apodizations are uniform")] = field(default_factory=bf.apod_methods.Uniform)
    """The method used to calculate transmit apodizations. By default, apodizations are uniform"""

    focal_pattern: Annotated[bf.FocalPattern, FUSFieldData("Focal pattern", "The focal pattern used in the plan. By default, a single point is used")] = field(default_factory=bf.SinglePoint)
    """The focal pattern used in the plan. By default, a single point is used"""

    materials: Annotated[Dict[str, Material], FUSFieldData("Materials", "Dictionary mapping of material IDs to material definitions")] = field(default_factory=lambda: copy.deepcopy(MATERIALS))
    """Dictionary mapping of material IDs to material definitions"""

    ref_material: Annotated[str, FUSFieldData("Reference material", "Material that fills the reference property volumes")] = "water"
    """Material that fills the reference property volumes"""

    def __post_init__(self):
        self.logger = logging.getLogger(__name__)
        if not isinstance(self.materials, dict):
            raise TypeError(f"Materials must be a dictionary, got {type(self.materials).__name__}.")
        if not all(isinstance(m, Material) for m in self.materials.values()):
            raise TypeError("All materials must be instances of Material class.")
        if self.ref_material not in self.materials:
            raise MaterialNotFound(f"Reference material {self.ref_material} not found.")

    def get_ref_volumes(self, coords, material_id: str | None = None, matrix: np.ndarray | None = None) -> List[Volume]:
        """Uniform material-property volumes over a grid.

        Args:
            coords: three Axis (or a Volume / xarray object carrying them)
            material_id: material filling the volumes. Defaults to the plan's reference material.
            matrix: 4x4 grid-to-world transform of the volumes. Defaults to identity.

        Returns: "sound_speed", "density" and "attenuation" volumes whose attrs hold the material
            ("ref_material") and its value ("ref_value").
        """
        material_id = self.ref_material if material_id is None else material_id
        if material_id not in self.materials:
            raise MaterialNotFound(f"Material {material_id} not found.")
        material = self.materials[material_id]
        coords = axis.as_axes(coords)
        shape = tuple(c.length for c in coords)
        matrix = np.eye(4) if matrix is None else matrix
        volumes = []
        for param_id in REF_PARAMS:
            info = Material.param_info(param_id)
            value = material.get_param(param_id)
            volumes.append(Volume(data=np.full(shape, value, dtype=np.float64),
                                  coords=[c.copy() for c in coords],
                                  id=param_id,
                                  name=info["name"],
                                  matrix=matrix,
                                  attrs={"ref_material": material, "ref_value": value},
                                  units=info["units"]))
        return volumes

    def beamform(self, arr: Transducer, target: Point, params=None, transform: np.ndarray | None = None) -> Tuple[np.ndarray, np.ndarray]:
        delays = self.delay_method.calc_delays(arr, target, params=params, transform=transform)
        apod = self.apod_method.calc_apodization(arr, target, params=params, transform=transform)
        return delays, apod

    def calc_solution(self,
                      arr: Transducer,
                      target: Point,
                      params=None,
                      transform: np.ndarray | None = None,
                      solution_id: str | None = None) -> Solution:
        """Compute the delays and apodizations for each focus of the focal pattern.

        Args:
            arr: the Transducer to steer
            target: the nominal target. The focal pattern expands it into the foci.
            params: material-property volumes (a Volume, a list or dict of Volumes, or an xarray Dataset)
            transform: 4x4 transducer-to-world transform in meters. Defaults to the transducer placement.
            solution_id: ID of the new solution. Defaults to "<plan id>_<transducer id>".

        Returns: a Solution whose delays and apodizations have shape (number of foci, number of elements).
        """
        foci: List[Point] = self.focal_pattern.get_targets(target)
        delays_to_stack: List[np.ndarray] = []
        apodizations_to_stack: List[np.ndarray] = []
        for focus in foci:
            self.logger.info(f"Beamform for focus {focus.id} at {focus.position} {focus.units}...")
            delays, apodization = self.beamform(arr=arr, target=focus, params=params, transform=transform)
            delays_to_stack.append(delays)
            apodizations_to_stack.append(apodization)
        solution_id = f"{self.id}_{arr.id}" if solution_id is None else solution_id
        return Solution(id=solution_id,
                        name=f"{self.name} ({arr.name})",
                        plan_id=self.id,
                        transducer=arr.copy(),
                        focal_pattern=self.focal_pattern,
                        target=target.copy(),
                        foci=foci,
                        delays=np.stack(delays_to_stack, axis=0),
                        apodizations=np.stack(apodizations_to_stack, axis=0))

    def to_table(self) -> pd.DataFrame:
        """
        Get a table of the plan parameters

        :returns: Pandas DataFrame of the delay method, apodization method and focal pattern parameters
        """
        tables = []
        for category, method in (("Delay Method", self.delay_method),
                                 ("Apodization Method", self.apod_method),
                                 ("Focal Pattern", self.focal_pattern)):
            table = method.to_table()
            table.insert(0, "Category", category)
            tables.append(table)
        return pd.concat(tables, ignore_index=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "delay_method": self.delay_method.to_dict(),
            "apod_method": self.apod_method.to_dict(),
            "focal_pattern": self.focal_pattern.to_dict(),
            "materials": {k: v.to_dict() for k, v in self.materials.items()},
            "ref_material": self.ref_material,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> BeamformingPlan:
        d = dict(d)
        d["delay_method"] = bf.DelayMethod.from_dict(d.get("delay_method", {}))
        d["apod_method"] = bf.ApodizationMethod.from_dict(d.get("apod_method", {}))
        d["focal_pattern"] = bf.FocalPattern.from_dict(d.get("focal_pattern", {}))
        if "materials" in d:
            d["materials"] = {k: Material.from_dict(v) for k, v in d["materials"].items()}
        return BeamformingPlan(**d)

    @staticmethod
    def from_json(json_string: str) -> BeamformingPlan:
        """Load a BeamformingPlan from a json string"""
        return BeamformingPlan.from_dict(json.loads(json_string))

    def to_json(self, compact: bool = False) -> str:
        """Serialize a BeamformingPlan to a json string

        Args:
            compact: if enabled then the string is compact (not pretty). Disable for pretty.

        Returns: A json string representing the complete BeamformingPlan object.
        """
        if compact:
            return json.dumps(self.to_dict(), separators=(',', ':'), cls=FUSEncoder)
        else:
            return json.dumps(self.to_dict(), indent=4, cls=FUSEncoder)

    def to_file(self, filename: PathLike):
        """
        Save the plan to a file

        Args:
            filename: Name of the file
        """
        filename = Path(filename)
        filename.parent.mkdir(parents=True, exist_ok=True)
        filename.write_text(self.to_json(compact=False))

    @staticmethod
    def from_file(filename: PathLike) -> BeamformingPlan:
        with open(filename) as f:
            d = json.load(f)
        return BeamformingPlan.from_dict(d)

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Dict

import pandas as pd

from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.dict_conversion import DictMixin
from fusbeam.util.errors import MaterialNotFound

PARAM_INFO = {"sound_speed":{"id":"sound_speed",
                             "name": "Speed of Sound",
                             "units": "m/s"},
              "density":{"id":"density",
                         "name": "Density",
                         "units": "kg/m^3"},
              "attenuation":{"id":"attenuation",
                             "name": "Attenuation",
                             "units": "dB/cm/MHz"},
              "specific_heat":{"id":"specific_heat",
                               "name": "Specific Heat",
                               "units": "J/kg/K"},
              "thermal_conductivity":{"id":"thermal_conductivity",
                                      "name": "Thermal Conductivity",
                                      "units": "W/m/K"}}

@dataclass
class Material(DictMixin):
    """Reference acoustic and thermal properties of a tissue class."""

    id: Annotated[str, FUSFieldData("Material ID", "The unique identifier of the material")] = "material"
    """The unique identifier of the material"""

    name: Annotated[str, FUSFieldData("Material name", "Name for the material")] = "Material"
    """Name for the material"""

    sound_speed: Annotated[float, FUSFieldData("Sound speed (m/s)", "Speed of sound in the material (m/s)")] = 1500.0
    """Speed of sound in the material (m/s)"""

    density: Annotated[float, FUSFieldData("Density (kg/m^3)", "Mass density of the material (kg/m^3)")] = 1000.0
    """Mass density of the material (kg/m^3)"""

    attenuation: Annotated[float, FUSFieldData("Attenuation (dB/cm/MHz)", "Ultrasound attenuation in the material (dB/cm/MHz)")] = 0.0
    """Ultrasound attenuation in the material (dB/cm/MHz)"""

    specific_heat: Annotated[float, FUSFieldData("Specific heat (J/kg/K)", "Specific heat capacity of the material (J/kg/K)")] = 4182.0
    """Specific heat capacity of the material (J/kg/K)"""

    thermal_conductivity: Annotated[float, FUSFieldData("Thermal conductivity (W/m/K)", "Thermal conductivity of the material (W/m/K)")] = 0.598
    """Thermal conductivity of the material (W/m/K)"""

    def __post_init__(self):
        if self.sound_speed <= 0:
            raise ValueError(f"Sound speed must be positive, got {self.sound_speed}.")
        if self.density <= 0:
            raise ValueError(f"Density must be positive, got {self.density}.")

    @classmethod
    def param_info(cls, param_id: str):
        if param_id not in PARAM_INFO:
            raise MaterialNotFound(f"Parameter {param_id} not found.")
        return PARAM_INFO[param_id]

    def get_param(self, param_id: str) -> float:
        if param_id not in PARAM_INFO:
            raise MaterialNotFound(f"Parameter {param_id} not found.")
        return getattr(self, param_id)

    @staticmethod
    def get_materials(material_id="all", as_dict=True):
        material_id = tuple(MATERIALS) if material_id == "all" else material_id
        if isinstance(material_id, (list, tuple)):
            return {m: Material.get_materials(m, as_dict=False) for m in material_id}
        if material_id not in MATERIALS:
            raise MaterialNotFound(f"Material {material_id} not found.")
        material = MATERIALS[material_id]
        if as_dict:
            return {material.id: material}
        return material

    @staticmethod
    def from_dict(d):
        if isinstance(d, (list, tuple)):
            return {dd['id']: Material.from_dict(dd) for dd in d}
        elif isinstance(d, str):
            return Material.get_materials(d, as_dict=False)
        elif isinstance(d, Material):
            return d
        else:
            return Material(**d)

    def to_table(self) -> pd.DataFrame:
        records = [{"Name": info["name"], "Value": self.get_param(param_id), "Unit": info["units"]}
                   for param_id, info in PARAM_INFO.items()]
        return pd.DataFrame.from_records(records)


WATER = Material(id="water",
                 name="water",
                 sound_speed=1500.0,
                 density=1000.0,
                 attenuation=0.0,
                 specific_heat=4182.0,
                 thermal_conductivity=0.598)

TISSUE = Material(id="tissue",
                  name="tissue",
                  sound_speed=1540.0,
                  density=1000.0,
                  attenuation=0.0,
                  specific_heat=3600.0,
                  thermal_conductivity=0.5)

SKULL = Material(id="skull",
                 name="skull",
                 sound_speed=4080.0,
                 density=1900.0,
                 attenuation=0.0,
                 specific_heat=1100.0,
                 thermal_conductivity=0.3)

AIR = Material(id="air",
               name="air",
               sound_speed=344.0,
               density=1.25,
               attenuation=0.0,
               specific_heat=1012.0,
               thermal_conductivity=0.025)

STANDOFF = Material(id="standoff",
                    name="standoff",
                    sound_speed=1420.0,
                    density=1000.0,
                    attenuation=1.0,
                    specific_heat=4182.0,
                    thermal_conductivity=0.598)

MATERIALS: Dict[str, Material] = {"water": WATER,
                                  "tissue": TISSUE,
                                  "skull": SKULL,
                                  "air": AIR,
                                  "standoff": STANDOFF}

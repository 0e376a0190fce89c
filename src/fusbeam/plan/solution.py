from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, Dict, List

import numpy as np

from fusbeam.bf.focal_patterns import FocalPattern, SinglePoint
from fusbeam.geo import Point
from fusbeam.util.annotations import FUSFieldData
from fusbeam.util.errors import DimensionMismatch
from fusbeam.util.json import FUSEncoder
from fusbeam.util.types import PathLike
from fusbeam.xdc import Transducer


@dataclass
class Solution:
    """
    Delays and apodizations that steer a transducer onto every focus of a focal pattern.
    """

    id: Annotated[str, FUSFieldData("Solution ID", "ID of this solution")] = "solution"
    """ID of this solution"""

    name: Annotated[str, FUSFieldData("Solution name", "Name of this solution")] = "Solution"
    """Name of this solution"""

    plan_id: Annotated[str | None, FUSFieldData("Plan ID", "ID of the beamforming plan that was used when generating this solution")] = None
    """ID of the beamforming plan that was used when generating this solution"""

    date_created: Annotated[datetime, FUSFieldData("Creation date", "Solution creation time")] = field(default_factory=datetime.now)
    """Solution creation time"""

    description: Annotated[str, FUSFieldData("Description", "Description of this solution")] = ""
    """Description of this solution"""

    transducer: Annotated[Transducer | None, FUSFieldData("Transducer", "The transducer that was beamformed")] = None
    """The transducer that was beamformed"""

    focal_pattern: Annotated[FocalPattern, FUSFieldData("Focal pattern", "The focal pattern that produced the foci")] = field(default_factory=SinglePoint)
    """The focal pattern that produced the foci"""

    target: Annotated[Point | None, FUSFieldData("Target point", "The nominal target around which the focal pattern is centered")] = None
    """The nominal target around which the focal pattern is centered"""

    foci: Annotated[List[Point], FUSFieldData("Foci", "Points that are focused on in this Solution, in focal pattern order")] = field(default_factory=list)
    """Points that are focused on in this Solution, in focal pattern order"""

    delays: Annotated[np.ndarray | None, FUSFieldData("Delays", "Vectors of time delays (s) to steer the beam. Shape is (number of foci, number of transducer elements).")] = None
    """Vectors of time delays (s) to steer the beam. Shape is (number of foci, number of transducer elements)."""

    apodizations: Annotated[np.ndarray | None, FUSFieldData("Apodizations", "Vectors of apodizations to steer the beam. Shape is (number of foci, number of transducer elements).")] = None
    """Vectors of apodizations to steer the beam. Shape is (number of foci, number of transducer elements)."""

    def __post_init__(self):
        if self.delays is not None:
            self.delays = np.array(self.delays, dtype=np.float64, ndmin=2)
        if self.apodizations is not None:
            self.apodizations = np.array(self.apodizations, dtype=np.float64, ndmin=2)
        expected = None
        if self.transducer is not None and len(self.foci) > 0:
            expected = (self.num_foci(), self.transducer.numelements())
        for name in ("delays", "apodizations"):
            value = getattr(self, name)
            if value is not None and expected is not None and value.shape != expected:
                raise DimensionMismatch(f"{name} shape {value.shape} does not match (num_foci, num_elements) = {expected}.")

    def num_foci(self) -> int:
        """Get the number of foci"""
        return len(self.foci)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize a Solution to a dictionary"""
        return {"id": self.id,
                "name": self.name,
                "plan_id": self.plan_id,
                "date_created": self.date_created.isoformat(),
                "description": self.description,
                "transducer": self.transducer.to_dict() if self.transducer is not None else None,
                "focal_pattern": self.focal_pattern.to_dict(),
                "target": self.target.to_dict() if self.target is not None else None,
                "foci": [focus.to_dict() for focus in self.foci],
                "delays": self.delays.tolist() if self.delays is not None else None,
                "apodizations": self.apodizations.tolist() if self.apodizations is not None else None}

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> Solution:
        d = dict(d)
        if isinstance(d.get("date_created"), str):
            d["date_created"] = datetime.fromisoformat(d["date_created"])
        if d.get("transducer") is not None:
            d["transducer"] = Transducer.from_dict(d["transducer"])
        if "focal_pattern" in d:
            d["focal_pattern"] = FocalPattern.from_dict(d["focal_pattern"])
        if d.get("target") is not None:
            d["target"] = Point.from_dict(d["target"])
        d["foci"] = [Point.from_dict(focus) for focus in d.get("foci", [])]
        return Solution(**d)

    def to_json(self, compact: bool = False) -> str:
        """Serialize a Solution to a json string

        Args:
            compact: if enabled then the string is compact (not pretty). Disable for pretty.

        Returns: A json string representing the complete Solution object.
        """
        if compact:
            return json.dumps(self.to_dict(), separators=(',', ':'), cls=FUSEncoder)
        else:
            return json.dumps(self.to_dict(), indent=4, cls=FUSEncoder)

    @staticmethod
    def from_json(json_string: str) -> Solution:
        """Load a Solution from a json string"""
        return Solution.from_dict(json.loads(json_string))

    def to_file(self, filename: PathLike):
        """Save the solution to a json file, creating parent directories as needed."""
        filename = Path(filename)
        filename.parent.mkdir(parents=True, exist_ok=True)
        filename.write_text(self.to_json(compact=False))

    @staticmethod
    def from_file(filename: PathLike) -> Solution:
        return Solution.from_json(Path(filename).read_text())

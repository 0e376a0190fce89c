from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import numpy as np

from fusbeam.axis import Axis
from fusbeam.geo import Point
from fusbeam.seg.material import Material
from fusbeam.util.types import PathLike
from fusbeam.xdc.element import Element
from fusbeam.xdc.transducer import Transducer


class FUSEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Point):
            return obj.to_dict()
        if isinstance(obj, Axis):
            return obj.to_dict()
        if isinstance(obj, Transducer):
            return obj.to_dict()
        if isinstance(obj, Element):
            return obj.to_dict()
        if isinstance(obj, Material):
            return obj.to_dict()
        return super().default(obj)

def to_json(obj, filename: PathLike):
    dirname = Path(filename).parent
    if dirname and not dirname.exists():
        dirname.mkdir(parents=True)
    with open(filename, 'w') as file:
        json.dump(obj, file, cls=FUSEncoder, indent=4)

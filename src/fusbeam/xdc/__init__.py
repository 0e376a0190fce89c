from __future__ import annotations

from .element import Element, matrix2xyz, xyz2matrix
from .transducer import Transducer

__all__ = [
    "element",
    "transducer",
    "Element",
    "Transducer",
    "matrix2xyz",
    "xyz2matrix",
]

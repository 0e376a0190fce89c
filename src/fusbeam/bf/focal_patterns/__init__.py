from __future__ import annotations

from .focal_pattern import FocalPattern
from .single import SinglePoint
from .wheel import Wheel

FOCAL_PATTERNS = {"SinglePoint": SinglePoint,
                  "Wheel": Wheel}

__all__ = [
    "FocalPattern",
    "SinglePoint",
    "Wheel",
    "FOCAL_PATTERNS",
]

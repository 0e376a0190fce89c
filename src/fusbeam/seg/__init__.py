from __future__ import annotations

from .material import AIR, MATERIALS, PARAM_INFO, SKULL, STANDOFF, TISSUE, WATER, Material

__all__ = [
    "Material",
    "MATERIALS",
    "PARAM_INFO",
    "WATER",
    "TISSUE",
    "SKULL",
    "AIR",
    "STANDOFF",
]

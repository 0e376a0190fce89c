from __future__ import annotations

from .beamforming_plan import BeamformingPlan
from .solution import Solution

__all__ = [
    "BeamformingPlan",
    "Solution",
]

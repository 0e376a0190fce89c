from __future__ import annotations

from .delaymethod import DelayMethod, reference_sound_speed
from .direct import Direct
from .raytraced import Raytraced

DELAY_METHODS = {"Direct": Direct,
                 "Raytraced": Raytraced}

__all__ = [
    "DelayMethod",
    "Direct",
    "Raytraced",
    "DELAY_METHODS",
    "reference_sound_speed",
]

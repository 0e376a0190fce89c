"""Typed errors raised by the geometry, resampling and beamforming routines.

All of them subclass ValueError, so code that guards calls with
``except ValueError`` keeps working.
"""
from __future__ import annotations


class InvalidUnit(ValueError):
    """A unit string is unrecognized, or is not of the kind required (e.g. not a length)."""


class DegenerateFocus(ValueError):
    """A focus coincides with the frame origin, so its direction is undefined."""


class DimensionMismatch(ValueError):
    """Array shapes, axis counts or matrix sizes do not agree."""


class MaterialNotFound(ValueError):
    """A required material-property volume or reference material is missing."""


class OutOfBoundsSample(ValueError):
    """An interpolation query falls outside the sampled extent of a volume."""


class InsufficientPoints(ValueError):
    """Too few (or degenerate) points to build a convex hull."""

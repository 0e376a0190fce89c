from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.spatial import ConvexHull, QhullError

from fusbeam.bf.get_focus_matrix import get_focus_matrix
from fusbeam.geo import Point, apply_transform, inv_transform
from fusbeam.util.errors import InsufficientPoints
from fusbeam.volume import Volume

logger = logging.getLogger(__name__)


@dataclass
class BeamwidthResult:
    dims: tuple
    beamwidth: float
    units: str
    reason: str | None = None
    inlier_mask: np.ndarray | None = None
    fit_mask: np.ndarray | None = None
    inlier_points: np.ndarray | None = None
    fit_points: np.ndarray | None = None
    inlier_hull: ConvexHull | None = None
    fit_hull: ConvexHull | None = None


def convex_hull(points: np.ndarray) -> ConvexHull:
    """Convex hull of (N, d) points, raising InsufficientPoints when qhull cannot build one."""
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[0] < points.shape[1] + 1:
        raise InsufficientPoints(f"A convex hull in {points.shape[-1]} dimensions needs at least "
                                 f"{points.shape[-1] + 1} points, got {points.shape[0]}.")
    try:
        return ConvexHull(points)
    except (QhullError, ValueError) as e:
        raise InsufficientPoints(f"Degenerate point set for convex hull: {e}") from e


def get_beamwidth(vol: Volume,
                  focus: Point,
                  cutoff: float,
                  units: str | None = None,
                  dims: Sequence[int] = (0, 1),
                  mask: np.ndarray | None = None,
                  hulls: bool = False,
                  points: bool = False,
                  masks: bool = False,
                  rng: np.random.Generator | None = None) -> BeamwidthResult:
    """
    Calculates the beam width of a volume at a given point.

    Voxels above `cutoff` (within `mask`) are collected in world coordinates and their convex hull is built.
    The beamwidth is the largest distance between two hull vertices, measured in the focus-centered frame
    along `dims`. If the hull cannot be built, the inliers are jittered by up to a quarter of the mean grid
    spacing and the hull is attempted once more; if that fails too, the beamwidth is NaN and `reason` says why.

    Args:
        vol: The input Volume (e.g. a pressure field).
        focus: The focus point to be used as reference.
        cutoff: Cutoff value for the volume data.
        units: Distance units of the result. Defaults to the units of the focus.
        dims: Focus-frame dimension indices to measure along. Defaults (0, 1).
        mask: Boolean search mask, shaped like the volume data.
        hulls: Whether to output the convex hulls.
        points: Whether to output the inlier and fit points.
        masks: Whether to output the inlier and fit masks.
        rng: Random generator used for the jitter.

    Returns:
        A BeamwidthResult containing beam width, units and optionally other data.
    """
    units = focus.units if units is None else units
    dims = tuple(int(d) for d in dims)
    if len(dims) == 0 or not all(0 <= d < 3 for d in dims):
        raise ValueError(f"Beamwidth dimensions must be indices in 0..2, got {dims}.")
    vol = vol.rescale(units)

    if mask is None:
        search_mask = np.ones(vol.shape, dtype=bool)
    else:
        search_mask = np.asarray(mask, dtype=bool)
        if search_mask.shape != vol.shape:
            raise ValueError(f"Mask shape {search_mask.shape} does not match volume shape {vol.shape}.")

    xyz = np.stack(vol.ndgrid(transform=True), axis=-1)
    ogrid = apply_transform(inv_transform(get_focus_matrix(focus, units=units)), xyz)
    inlier_mask = search_mask & (vol.data > cutoff)
    inlier_points = xyz[inlier_mask]
    omask = ogrid[inlier_mask]

    res = BeamwidthResult(dims=dims, beamwidth=np.nan, units=units)
    try:
        inlier_hull = convex_hull(inlier_points)
    except InsufficientPoints as e:
        # If convex hull creation fails (e.g., too few points), add jitter and try again
        logger.warning(f"Invalid inliers ({e}), attempting to add jitter to create a valid volume...")
        spacings = [c.spacing() for c in vol.coords if c.length > 1]
        dx = np.mean(np.abs(spacings)) if spacings else 0.0
        rng = np.random.default_rng() if rng is None else rng
        inlier_points = inlier_points + (rng.random(inlier_points.shape) - 0.5) * dx / 2
        try:
            inlier_hull = convex_hull(inlier_points)
        except InsufficientPoints as e2:
            logger.warning(f"Beamwidth could not be computed: {e2}")
            res.reason = str(e2)
            if masks:
                res.inlier_mask = inlier_mask
            return res

    hull_points = omask[inlier_hull.vertices][:, dims]
    omat = hull_points[:, np.newaxis, :] - hull_points[np.newaxis, :, :]
    dists = np.sqrt(np.sum(omat**2, axis=-1))
    beamwidth = float(np.max(dists))
    d_dims = np.sqrt(np.sum(ogrid[..., dims]**2, axis=-1))
    fit_mask = d_dims <= (beamwidth / 2)

    res.beamwidth = beamwidth
    if masks:
        res.inlier_mask = inlier_mask
        res.fit_mask = fit_mask
    if points or hulls:
        res.inlier_points = inlier_points
        res.fit_points = xyz[fit_mask]
    if hulls:
        res.inlier_hull = inlier_hull
        try:
            res.fit_hull = convex_hull(res.fit_points)
        except InsufficientPoints as e:
            logger.warning(f"Fit hull could not be built: {e}")
    return res

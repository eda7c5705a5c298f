"""
Weighted local Helmert fit: scale and rotation in the neighbourhood of a point.

For a query point (x, y) in destination coordinates:
  1) select control links whose destination point lies strictly inside the
     radius of influence r (squared distance < r^2)
  2) weight each selected link by w = exp(-k * d^2), k = -ln(0.001) / r^2,
     so a link at distance r would get weight 0.001
  3) fit a Helmert transformation src -> dst by weighted least squares and
     keep its scale and rotation

Fewer than 2 links inside the radius gives (nan, nan). With r much larger than
the point extent every weight tends to 1 and the result equals the global
Helmert scale and rotation.
"""
from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from ..types import FloatArray, Points2D, as_point_pair

WEIGHT_AT_MAX_DIST = 0.001

DEFAULT_RADIUS_OF_INFLUENCE = 10000.0

# Fractions of the larger point extent that bound a useful radius of influence.
MIN_RADIUS_OF_INFLUENCE_PERC = 0.1
MAX_RADIUS_OF_INFLUENCE_PERC = 0.6

# Query points per vectorised block in sample_scale_rotation (bounds memory at chunk * n).
_CHUNK = 2048


def weight_constant(radius: float) -> float:
    """k such that exp(-k * radius^2) == WEIGHT_AT_MAX_DIST."""
    if radius <= 0:
        raise ValueError(f"radius of influence must be > 0, got {radius}")
    return -math.log(WEIGHT_AT_MAX_DIST) / (radius * radius)


def local_scale_rotation(
    x: float,
    y: float,
    src: Points2D,
    dst: Points2D,
    radius: float,
) -> Tuple[float, float]:
    """
    Scale and counter-clockwise rotation (radians, [0, 2*pi)) of the weighted
    local Helmert fit at (x, y). Returns (nan, nan) when fewer than 2 points
    are within the radius.
    """
    scale, rot = sample_scale_rotation(np.array([x]), np.array([y]), src, dst, radius)
    return float(scale[0]), float(rot[0])


def sample_scale_rotation(
    xs,
    ys,
    src: Points2D,
    dst: Points2D,
    radius: float,
) -> Tuple[FloatArray, FloatArray]:
    """
    Vectorised local_scale_rotation for many query points.

    xs, ys: 1D arrays of query coordinates (destination space), same length.
    Returns (scale, rotation) arrays of that length.
    """
    src, dst = as_point_pair(src, dst)
    xs = np.asarray(xs, dtype=np.float64).ravel()
    ys = np.asarray(ys, dtype=np.float64).ravel()
    if xs.shape != ys.shape:
        raise ValueError(f"xs and ys must have the same length, got {xs.shape} and {ys.shape}")

    cutoff_sqr = radius * radius
    k = weight_constant(radius)

    scale = np.full(xs.shape, np.nan, dtype=np.float64)
    rot = np.full(xs.shape, np.nan, dtype=np.float64)
    if src.shape[0] < 2 or xs.size == 0:
        return scale, rot

    for start in range(0, xs.size, _CHUNK):
        sl = slice(start, start + _CHUNK)
        s, r = _fit_block(xs[sl], ys[sl], src, dst, cutoff_sqr, k)
        scale[sl] = s
        rot[sl] = r
    return scale, rot


# ---------- Weighted fit on a block of query points ----------
def _fit_block(
    xs: FloatArray,
    ys: FloatArray,
    src: Points2D,
    dst: Points2D,
    cutoff_sqr: float,
    k: float,
) -> Tuple[FloatArray, FloatArray]:
    # (m, n) squared distances from each query to each destination point
    dx = xs[:, None] - dst[None, :, 0]
    dy = ys[:, None] - dst[None, :, 1]
    dist_sqr = dx * dx + dy * dy

    inside = dist_sqr < cutoff_sqr
    w = np.where(inside, np.exp(-k * dist_sqr), 0.0)
    count = inside.sum(axis=1)
    w_sum = w.sum(axis=1)

    with np.errstate(invalid="ignore", divide="ignore"):
        # weighted centroids of both point sets
        cxs = (w @ src[:, 0]) / w_sum
        cys = (w @ src[:, 1]) / w_sum
        cxd = (w @ dst[:, 0]) / w_sum
        cyd = (w @ dst[:, 1]) / w_sum

        x2 = src[None, :, 0] - cxs[:, None]
        y2 = src[None, :, 1] - cys[:, None]
        X2 = dst[None, :, 0] - cxd[:, None]
        Y2 = dst[None, :, 1] - cyd[:, None]

        denom = np.sum(w * (x2 * x2 + y2 * y2), axis=1)
        a1 = np.sum(w * (X2 * x2 + Y2 * y2), axis=1) / denom
        a2 = np.sum(w * (Y2 * x2 - X2 * y2), axis=1) / denom

    scale = np.hypot(a1, a2)
    rot = np.mod(np.arctan2(a2, a1), 2.0 * np.pi)

    undefined = (count < 2) | ~np.isfinite(scale) | (denom <= 0.0)
    scale[undefined] = np.nan
    rot[undefined] = np.nan
    return scale, rot


# ---------- Radius of influence helpers ----------
def recommended_radius(width: float, height: float) -> float:
    """Mean of the smallest and largest useful radius for a point extent."""
    extent = max(width, height)
    return extent * (MAX_RADIUS_OF_INFLUENCE_PERC + MIN_RADIUS_OF_INFLUENCE_PERC) / 2.0


def radius_range(width: float, height: float) -> Tuple[float, float]:
    extent = max(width, height)
    return extent * MIN_RADIUS_OF_INFLUENCE_PERC, extent * MAX_RADIUS_OF_INFLUENCE_PERC


def is_radius_valid(radius: float, width: float, height: float) -> bool:
    lo, hi = radius_range(width, height)
    return lo < radius < hi

"""
Shared typed primitives.

Defines:
- Typed NumPy aliases for geometry
    - Points are (N,2) float64 arrays, a single point is a (2,) array
    - Polylines are (N,2), polygons are closed (M,2) rings (first == last)
- Input coercion helpers that validate shapes once at the API boundary
"""
from __future__ import annotations

from typing import List, TypeAlias

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
FloatArray: TypeAlias = npt.NDArray[np.float64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]

Point2D: TypeAlias = FloatArray       # shape: (2,)
Points2D: TypeAlias = FloatArray      # shape: (N, 2)
Polyline: TypeAlias = FloatArray      # shape: (N, 2)
Polygon: TypeAlias = FloatArray       # shape: (M, 2), closed
Polylines: TypeAlias = List[Polyline]


# ---------- Helper Functions ----------
def as_points(pts, name: str = "points") -> Points2D:
    """
    Coerce input to a (N,2) float64 array.
    Accepts lists of pairs or arrays; raises ValueError on any other shape.
    """
    arr = np.asarray(pts, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Expected {name} shape (N, 2) but got {arr.shape}")
    return arr


def as_point_pair(src, dst) -> tuple[Points2D, Points2D]:
    """Coerce two parallel point arrays and check that they have the same length."""
    src = as_points(src, "src")
    dst = as_points(dst, "dst")
    if src.shape != dst.shape:
        raise ValueError(f"src and dst must have the same shape, got {src.shape} and {dst.shape}")
    return src, dst


def is_closed(polygon: FloatArray) -> bool:
    return polygon.shape[0] > 0 and bool(np.array_equal(polygon[0], polygon[-1]))

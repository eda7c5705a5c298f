"""
Typed interface for global transformations between two point sets.

A transformation is fitted with `init(dst, src)`: src points (old map, say) are
mapped into the coordinate system of the dst points (new map) by least squares.
After fitting, the parameters are fixed and recorded in a TransformationResult.

Two variants implement the Transformation protocol:
- HelmertTransformation: 4 parameters (translation, one scale, one rotation)
- Affine6Transformation: 6 parameters (translation, two scales, two rotations)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Literal, Protocol, TypeAlias

import numpy as np

from ..types import FloatArray, Points2D

TransformationKind: TypeAlias = Literal["helmert", "affine6"]

# Scales smaller than this are printed inverted in reports.
SCALE_TO_INVERT = 0.01


# ---------- Fit output container ----------
@dataclass(frozen=True)
class TransformationResult:
    name: str                       # human readable name of the variant
    parameters: Dict[str, float]    # fitted parameters in model order
    sigmas: Dict[str, float]        # standard deviation per parameter
    residuals: FloatArray           # (n, 2): transformed src - dst
    sigma0: float                   # a-posteriori standard deviation of unit weight
    dof: int                        # redundancy, 2n - number of parameters
    rms: float                      # sqrt(sum(v^2) / n)
    n_points: int = field(default=0)

    @property
    def standard_error_of_position(self) -> float:
        return self.sigma0 * float(np.sqrt(2.0))


# ---------- Transformation interface ----------
class Transformation(Protocol):
    """
    Interface shared by the global transformation variants.

    Methods raise RuntimeError when called before `init`.
    """

    name: str

    def init(self, dst: Points2D, src: Points2D) -> TransformationResult:
        """Fit the parameters mapping src onto dst. Returns the immutable result."""
        ...

    @property
    def result(self) -> TransformationResult:
        ...

    @property
    def is_initialized(self) -> bool:
        ...

    def transform(self, points) -> FloatArray:
        """Map a (2,) point or (N,2) points from src space into dst space. Returns a new array."""
        ...

    def transform_in_place(self, points: Points2D) -> Points2D:
        """Map (N,2) points, overwriting the input array."""
        ...

    def inverse_transform(self, points) -> FloatArray:
        """Map points from dst space back into src space."""
        ...

    def get_scale(self, invert: bool = False) -> float:
        ...

    def get_rotation(self, invert: bool = False) -> float:
        """Rotation in radians, counter-clockwise, in [0, 2*pi)."""
        ...

    def report(self, invert: bool = False) -> str:
        ...

    def short_report(self, invert: bool = False) -> str:
        ...

    def residuals_report(self, threshold: float = 0.0) -> str:
        ...

    def short_description(self) -> str:
        ...


# ---------- Helper Functions ----------
def normalize_angle(rad: float) -> float:
    """Wrap an angle into [0, 2*pi)."""
    two_pi = 2.0 * np.pi
    rot = float(np.fmod(rad, two_pi))
    if rot < 0.0:
        rot += two_pi
    # fmod of a tiny negative value can land exactly on 2*pi after the shift
    if rot >= two_pi:
        rot -= two_pi
    return rot


def apply_points(points, fn) -> FloatArray:
    """
    Run a vectorised (N,2) -> (N,2) mapping on either a single (2,) point or on
    (N,2) points, returning the same shape that came in.
    """
    arr = np.asarray(points, dtype=np.float64)
    if arr.shape == (2,):
        return fn(arr.reshape(1, 2))[0]
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Expected point shape (2,) or (N, 2) but got {arr.shape}")
    return fn(arr)

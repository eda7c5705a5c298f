"""
Transformation package

This module provides:
- Global least squares transformations (Helmert, affine with 6 parameters)
- Weighted local Helmert fits for scale and rotation fields
- Multiquadric interpolation of residual displacements
- Text reports of fitted parameters and their precision
"""

from .types import (
    TransformationKind, TransformationResult, Transformation,
    SCALE_TO_INVERT, normalize_angle,
)

from .helmert import HelmertTransformation

from .affine import Affine6Transformation

from .factory import AnyTransformation, create_transformation, compare_transformations

from .weighted import (
    WEIGHT_AT_MAX_DIST, DEFAULT_RADIUS_OF_INFLUENCE,
    local_scale_rotation, sample_scale_rotation,
    recommended_radius, radius_range, is_radius_valid,
)

from .multiquadric import MultiquadricInterpolation

__all__ = [
    "TransformationKind", "TransformationResult", "Transformation",
    "SCALE_TO_INVERT", "normalize_angle",
    "HelmertTransformation",
    "Affine6Transformation",
    "AnyTransformation", "create_transformation", "compare_transformations",
    "WEIGHT_AT_MAX_DIST", "DEFAULT_RADIUS_OF_INFLUENCE",
    "local_scale_rotation", "sample_scale_rotation",
    "recommended_radius", "radius_range", "is_radius_valid",
    "MultiquadricInterpolation",
]

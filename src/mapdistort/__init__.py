"""
mapdistort: planimetric accuracy and distortion analysis of old maps.

Control links pair points of an old map with points of a modern reference map.
From them the package fits global transformations, interpolates the remaining
residuals, and derives error vectors, distortion grids and isolines of local
scale and rotation.
"""

from .errors import (
    MapAnalysisError, InsufficientDataError, GridSizeError,
    SingularMatrixError, DuplicateLinkError,
)

from .logging_config import setup_logging

from .projection import Projector, SphericalMercator

from .transform import (
    HelmertTransformation, Affine6Transformation, MultiquadricInterpolation,
    create_transformation, compare_transformations,
)

from .analysis import (
    LinkSet, ControlLink, AnalysisConfig, AnalysisResult, DistortionAnalysis,
)

from .warp import GeoImage, WarpParams, warp_image

__all__ = [
    "MapAnalysisError", "InsufficientDataError", "GridSizeError",
    "SingularMatrixError", "DuplicateLinkError",
    "setup_logging",
    "Projector", "SphericalMercator",
    "HelmertTransformation", "Affine6Transformation", "MultiquadricInterpolation",
    "create_transformation", "compare_transformations",
    "LinkSet", "ControlLink", "AnalysisConfig", "AnalysisResult", "DistortionAnalysis",
    "GeoImage", "WarpParams", "warp_image",
]

__version__ = "0.1.0"

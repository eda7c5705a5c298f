"""
Analysis package

This module provides:
- LinkSet / ControlLink: named pairs of old map and new map points
- DistortionAnalysis: fits the transformations and runs the analyzers
- ErrorVectors, DistortionGrid, Isolines: the individual analyzers
"""

from .links import COORD_TOLERANCE, ControlLink, LinkSet

from .params import VisualizationParams

from .error_vectors import (
    ErrorVectorParams, ErrorVector, ErrorCircle, ErrorVectorResult, ErrorVectors,
)

from .distortion_grid import (
    MeshUnit, ClipMode, DistortionGridParams, GridLabel, GridSegment, GridLines,
    DistortionGridResult, DistortionGrid,
)

from .isolines import IsolineParams, IsolineResult, Isolines

from .manager import AnalysisConfig, AnalysisResult, DistortionAnalysis

__all__ = [
    "COORD_TOLERANCE", "ControlLink", "LinkSet",
    "VisualizationParams",
    "ErrorVectorParams", "ErrorVector", "ErrorCircle", "ErrorVectorResult", "ErrorVectors",
    "MeshUnit", "ClipMode", "DistortionGridParams", "GridLabel", "GridSegment", "GridLines",
    "DistortionGridResult", "DistortionGrid",
    "IsolineParams", "IsolineResult", "Isolines",
    "AnalysisConfig", "AnalysisResult", "DistortionAnalysis",
]

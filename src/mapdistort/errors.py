"""
Error kinds raised by the distortion analysis.

Four kinds of failure are reported to callers:
- InsufficientDataError: too few points for a method, or a grid with too few / too many lines
- SingularMatrixError: a normal-equation or interpolation system cannot be solved
- DuplicateLinkError: a control link collides with an existing one
- plain ValueError: malformed input (shapes, open polygons, bad parameters)

NaN results (for example a weighted local fit with fewer than 2 points in range)
are valid "undefined" values and never raise.
"""
from __future__ import annotations

from typing import Optional


class MapAnalysisError(Exception):
    """
    Base class for analysis failures.

    analyzer: name of the analyzer that failed, filled in by the analysis driver
    so a caller can tell which part of a run went wrong.
    """

    def __init__(self, message: str, analyzer: Optional[str] = None) -> None:
        super().__init__(message)
        self.analyzer = analyzer

    def __str__(self) -> str:
        msg = super().__str__()
        if self.analyzer:
            return f"{self.analyzer}: {msg}"
        return msg


class InsufficientDataError(MapAnalysisError):
    """Not enough points (or grid lines) to run a method."""


class GridSizeError(InsufficientDataError):
    """
    A lattice would have fewer than the minimum or more than the maximum number
    of lines in one direction. Carries a cell size that would work.
    """

    def __init__(
        self,
        message: str,
        suggested_mesh_size: Optional[float] = None,
        analyzer: Optional[str] = None,
    ) -> None:
        if suggested_mesh_size is not None and suggested_mesh_size > 0:
            message = f"{message} Try a cell size of about {suggested_mesh_size:g}."
        super().__init__(message, analyzer)
        self.suggested_mesh_size = suggested_mesh_size


class SingularMatrixError(MapAnalysisError):
    """Linear system is singular or too ill-conditioned to trust."""


class DuplicateLinkError(ValueError):
    """A control point lies on top of a point of an existing link."""

"""
Analysis driver: runs a complete distortion analysis on a set of control links.

run(links):
  1) pick source and destination maps (analyze_old_map swaps them)
  2) fit the global transformation src -> dst and move the source points
  3) solve the multiquadric interpolation transformed src -> dst; a failure is
     logged and leaves the interpolation undefined
  4) collect points, hulls and fits in VisualizationParams
  5) run each enabled analyzer; a MapAnalysisError in one analyzer is recorded
     and the others still run

Errors of step 2 (too few points, degenerate geometry) abort the run.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Literal, Optional, Tuple

from ..errors import InsufficientDataError, MapAnalysisError
from ..geometry.hull import convex_hull
from ..projection import Projector
from ..transform.factory import AnyTransformation, compare_transformations, create_transformation
from ..transform.multiquadric import MultiquadricInterpolation
from ..transform.types import TransformationKind, TransformationResult
from ..types import Points2D, Polygon
from ..warp import GeoImage, WarpParams, warp_image
from .distortion_grid import DistortionGrid, DistortionGridParams, DistortionGridResult
from .error_vectors import ErrorVectorParams, ErrorVectorResult, ErrorVectors
from .isolines import IsolineParams, IsolineResult, Isolines
from .links import LinkSet
from .params import VisualizationParams

logger = logging.getLogger(__name__)

AnalyzerName = Literal["error_vectors", "distortion_grid", "isolines"]

ALL_ANALYZERS: Tuple[AnalyzerName, ...] = ("error_vectors", "distortion_grid", "isolines")


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Parameters:
    - transformation: global transformation, "helmert" or "affine6"
    - analyze_old_map: draw the results in the old map instead of the new one
    - exaggeration: factor on the interpolated residual displacement, 1 = true distortion.
      It fades in over taper_radius around each control point, so between
      closely spaced points the effective factor stays below the requested one
    - taper_radius: fade-in distance of the exaggeration in destination units,
      None = median spacing of neighbouring control points
    - smoothing: multiquadric shape parameter in coordinate units
    - analyzers: analyzers to run, in order
    - projector: planar <-> longitude / latitude conversion for graticules
    """
    transformation: TransformationKind = "helmert"
    analyze_old_map: bool = False
    exaggeration: float = 1.0
    smoothing: float = 0.0
    taper_radius: Optional[float] = None
    analyzers: Tuple[AnalyzerName, ...] = ALL_ANALYZERS
    error_vectors: ErrorVectorParams = field(default_factory=ErrorVectorParams)
    distortion_grid: DistortionGridParams = field(default_factory=DistortionGridParams)
    isolines: IsolineParams = field(default_factory=IsolineParams)
    projector: Optional[Projector] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        for name in self.analyzers:
            if name not in ALL_ANALYZERS:
                raise ValueError(f"Unknown analyzer {name!r}, expected one of {ALL_ANALYZERS}")
        if self.smoothing < 0:
            raise ValueError("AnalysisConfig.smoothing must be >= 0")
        if self.taper_radius is not None and self.taper_radius <= 0:
            raise ValueError("AnalysisConfig.taper_radius must be > 0")


@dataclass
class AnalysisResult:
    vis: VisualizationParams
    outputs: Dict[str, object] = field(default_factory=dict)
    failures: Dict[str, MapAnalysisError] = field(default_factory=dict)
    interpolation_error: Optional[MapAnalysisError] = None

    @property
    def transformation(self) -> AnyTransformation:
        return self.vis.transformation

    @property
    def transformation_result(self) -> TransformationResult:
        return self.vis.transformation.result

    @property
    def transformed_src_points(self) -> Points2D:
        return self.vis.transformed_src_points

    @property
    def interpolation(self) -> Optional[MultiquadricInterpolation]:
        return self.vis.interpolation

    @property
    def ok(self) -> bool:
        return not self.failures and self.interpolation_error is None

    @property
    def error_vectors(self) -> Optional[ErrorVectorResult]:
        return self.outputs.get("error_vectors")

    @property
    def distortion_grid(self) -> Optional[DistortionGridResult]:
        return self.outputs.get("distortion_grid")

    @property
    def isolines(self) -> Optional[IsolineResult]:
        return self.outputs.get("isolines")


def _hull_or_none(points: Points2D, label: str) -> Optional[Polygon]:
    try:
        return convex_hull(points)
    except InsufficientDataError as exc:
        logger.debug("No %s hull: %s", label, exc)
        return None


class DistortionAnalysis:
    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = config if config is not None else AnalysisConfig()

    def _analyzer(self, name: str):
        if name == "error_vectors":
            return ErrorVectors(self.config.error_vectors)
        if name == "distortion_grid":
            return DistortionGrid(self.config.distortion_grid)
        return Isolines(self.config.isolines)

    # ---------- Shared inputs ----------
    def visualization_params(self, links: LinkSet, analyze_old_map: Optional[bool] = None) -> Tuple[
            VisualizationParams, Optional[MapAnalysisError]]:
        """
        Fit the transformation and the interpolation for links.

        Returns the parameters and the interpolation error (None when the
        interpolation was solved).
        """
        if analyze_old_map is None:
            analyze_old_map = self.config.analyze_old_map

        old, new = links.linked_points()
        dst, src = (old, new) if analyze_old_map else (new, old)

        transformation = create_transformation(self.config.transformation)
        transformation.init(dst, src)
        transformed = transformation.transform(src)
        logger.debug("%s fitted to %d links", transformation.name, len(links))

        interpolation: Optional[MultiquadricInterpolation] = None
        interpolation_error: Optional[MapAnalysisError] = None
        try:
            interpolation = MultiquadricInterpolation().solve(
                transformed, dst,
                exaggeration=self.config.exaggeration,
                smoothing=self.config.smoothing,
                taper_radius=self.config.taper_radius,
            )
        except MapAnalysisError as exc:
            logger.error("A system of linear equations cannot be solved, some results are not available: %s", exc)
            interpolation_error = exc

        vis = VisualizationParams(
            transformation=transformation,
            old_points=old,
            new_points=new,
            old_hull=_hull_or_none(old, "old map"),
            new_hull=_hull_or_none(new, "new map"),
            transformed_src_points=transformed,
            analyze_old_map=analyze_old_map,
            interpolation=interpolation,
            projector=self.config.projector,
        )
        return vis, interpolation_error

    # ---------- Analysis ----------
    def run(self, links: LinkSet) -> AnalysisResult:
        vis, interpolation_error = self.visualization_params(links)
        result = AnalysisResult(vis, interpolation_error=interpolation_error)

        for name in self.config.analyzers:
            analyzer = self._analyzer(name)
            try:
                result.outputs[name] = analyzer.analyze(vis)
            except MapAnalysisError as exc:
                if exc.analyzer is None:
                    exc.analyzer = analyzer.name
                logger.warning("Analysis failed: %s", exc)
                result.failures[name] = exc

        logger.info(
            "Analysis of %d links: %d analyzers ok, %d failed",
            len(links), len(result.outputs), len(result.failures),
        )
        return result

    # ---------- Reports ----------
    def transformation_report(self, links: LinkSet, invert: bool = False) -> str:
        vis, _ = self.visualization_params(links)
        return vis.transformation.report(invert) + vis.transformation.residuals_report()

    def compare_transformations(self, links: LinkSet, invert: bool = False) -> str:
        old, new = links.linked_points()
        if self.config.analyze_old_map:
            return compare_transformations(old, new, invert)
        return compare_transformations(new, old, invert)

    # ---------- Warping ----------
    def warp_map(self, links: LinkSet, old_map: GeoImage, params: WarpParams = WarpParams()) -> GeoImage:
        """Warp the old map image into the new map with the links' transformation."""
        vis, _ = self.visualization_params(links, analyze_old_map=True)
        return warp_image(old_map, vis.transformation, vis.interpolation, vis.new_points, params=params)

"""
Distortion grid.

A regular grid is laid over the source points and drawn three times:
- source lines: the undistorted grid in the source map
- undistorted lines (optional): the grid moved by the global transformation
- distorted lines: the grid moved by the global transformation and the
  multiquadric interpolation of the residuals

Mesh size is given in destination map units and converted into source map
units with VisualizationParams.mesh_size_scale. With mesh_unit "degrees" the
grid is a graticule of longitude / latitude lines (old map analysis with a
projector only).

Destination lines are split into certain and uncertain runs: a vertex farther
than a reference distance from any destination point and any transformed
source point is uncertain. The reference distance is a quantile of the
distances between destination points and their nearest neighbour, but at
least one mesh.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Tuple

import numpy as np

from ..errors import MapAnalysisError
from ..geometry.polygon import clip_polyline
from ..grid.lattice import Lattice, build_geographic_lattice, build_lattice
from ..types import FloatArray, Point2D, Points2D, Polygon, Polyline
from .params import VisualizationParams

logger = logging.getLogger(__name__)

MeshUnit = Literal["meters", "degrees"]
ClipMode = Literal["none", "hull", "custom"]


@dataclass(frozen=True)
class DistortionGridParams:
    """
    Parameters:
    - mesh_size: grid spacing in destination map units (or degrees)
    - mesh_unit: "meters" for a planar grid, "degrees" for a graticule
    - offset: shift of the grid against multiples of the mesh size
    - clip_mode: "none", "hull" (convex hulls of the points) or "custom"
    - old_clip_polygon, new_clip_polygon: closed polygons for clip_mode "custom"
    - uncertainty_quantile: quantile of nearest neighbour distances, (0, 1]
    - label_sequence: label every n-th line, 0 for no labels
    - show_undistorted: also draw the grid moved by the global transformation only
    - show_uncertainty: split destination lines into certain / uncertain runs
    """
    mesh_size: float = 5000.0
    mesh_unit: MeshUnit = "meters"
    offset: Tuple[float, float] = (0.0, 0.0)
    clip_mode: ClipMode = "none"
    old_clip_polygon: Optional[Polygon] = field(default=None, compare=False)
    new_clip_polygon: Optional[Polygon] = field(default=None, compare=False)
    uncertainty_quantile: float = 0.75
    label_sequence: int = 4
    show_undistorted: bool = False
    show_uncertainty: bool = True

    def __post_init__(self) -> None:
        if self.mesh_size <= 0:
            raise ValueError("DistortionGridParams.mesh_size must be > 0")
        if self.mesh_unit not in ("meters", "degrees"):
            raise ValueError(f"Unknown mesh_unit: {self.mesh_unit}")
        if self.clip_mode not in ("none", "hull", "custom"):
            raise ValueError(f"Unknown clip_mode: {self.clip_mode}")
        if not 0 < self.uncertainty_quantile <= 1:
            raise ValueError("DistortionGridParams.uncertainty_quantile must be in (0, 1]")
        if self.label_sequence < 0:
            raise ValueError("DistortionGridParams.label_sequence must be >= 0")


@dataclass(frozen=True)
class GridLabel:
    text: str
    value: float
    position: Point2D
    vertical_line: bool


@dataclass(frozen=True)
class GridSegment:
    points: Polyline
    uncertain: bool = False


@dataclass(frozen=True)
class GridLines:
    segments: List[GridSegment]
    labels: List[GridLabel]

    @property
    def polylines(self) -> List[Polyline]:
        return [s.points for s in self.segments]


@dataclass(frozen=True)
class DistortionGridResult:
    lattice: Lattice                       # nodes in the source map
    source: GridLines
    distorted: GridLines
    undistorted: Optional[GridLines]
    uncertainty_distance: float            # destination units, 0 when not used


# ---------- Helpers ----------
def quantile_nearest_neighbour_distance(points: Points2D, quantile: float) -> float:
    """Quantile of the distances from every point to its closest other point."""
    pts = np.asarray(points, dtype=np.float64)
    if pts.shape[0] < 2:
        return 0.0
    d = pts[:, None, :] - pts[None, :, :]
    d2 = np.einsum("ijk,ijk->ij", d, d)
    np.fill_diagonal(d2, np.inf)
    return float(np.sqrt(np.quantile(d2.min(axis=1), quantile)))


def distance_to_closest_point(points: Points2D, xy: Points2D) -> FloatArray:
    """Distance from each row of xy to the closest of points."""
    d = xy[:, None, :] - points[None, :, :]
    return np.sqrt(np.einsum("ijk,ijk->ij", d, d).min(axis=1))


def split_by_uncertainty(line: Polyline, uncertain: np.ndarray) -> List[GridSegment]:
    """
    Split a line into runs of certain and uncertain vertices.

    Consecutive runs share their boundary vertex so the pieces connect. A run
    with fewer than 2 vertices is merged into the following one.
    """
    n = line.shape[0]
    segments: List[GridSegment] = []
    first = 0
    current = bool(uncertain[0])
    for i in range(1, n):
        nxt = bool(uncertain[i])
        last = i == n - 1
        if current != nxt or last:
            count = i - first
            if not current or last:
                count += 1
            if count >= 2:
                segments.append(GridSegment(line[first:first + count].copy(), current))
                first = i - 1 if current else i
            current = nxt
    return segments


def _format_label(value: float, geographic: bool) -> str:
    text = f"{value:,.10g}".rstrip(".")
    return text + "°" if geographic else text


# ---------- Analyzer ----------
class DistortionGrid:
    name = "Distortion Grid"

    def __init__(self, params: DistortionGridParams = DistortionGridParams()) -> None:
        self.params = params

    def is_geographic(self, vis: VisualizationParams) -> bool:
        return self.params.mesh_unit == "degrees" and vis.analyze_old_map and vis.projector is not None

    def scaled_mesh_size(self, vis: VisualizationParams) -> float:
        """Mesh size in source map units."""
        return self.params.mesh_size / vis.mesh_size_scale

    def build_lattice(self, vis: VisualizationParams) -> Lattice:
        if self.params.mesh_unit == "degrees":
            if not self.is_geographic(vis):
                raise MapAnalysisError(
                    "Graticules of longitude / latitude lines can only be generated "
                    "with a projector, and when the old map is analyzed.",
                    self.name,
                )
            return build_geographic_lattice(
                vis.src_points, self.params.mesh_size, vis.projector, offset=self.params.offset
            )
        return build_lattice(vis.src_bounds, self.scaled_mesh_size(vis), offset=self.params.offset)

    def _masks(self, vis: VisualizationParams) -> Tuple[Optional[Polygon], Optional[Polygon]]:
        mode = self.params.clip_mode
        if mode == "hull":
            return vis.src_hull, vis.dst_hull
        if mode == "custom":
            polygon = self.params.old_clip_polygon if vis.analyze_old_map else self.params.new_clip_polygon
            return None, polygon
        return None, None

    def uncertainty_distance(self, vis: VisualizationParams) -> float:
        if not self.params.show_uncertainty:
            return 0.0
        q = quantile_nearest_neighbour_distance(vis.dst_points, self.params.uncertainty_quantile)
        if self.is_geographic(vis):
            return q
        # one mesh, converted from source into destination units
        mesh = self.scaled_mesh_size(vis) * vis.transformation_scale
        return max(q, mesh)

    def analyze(self, vis: VisualizationParams) -> DistortionGridResult:
        if vis.interpolation is None or not vis.interpolation.is_solved:
            raise MapAnalysisError("Undefined Interpolation", self.name)

        lattice = self.build_lattice(vis)
        geographic = lattice.geographic
        src_mask, dst_mask = self._masks(vis)
        ref = self.uncertainty_distance(vis)
        near = np.vstack([vis.transformed_src_points, vis.dst_points])

        source = self._lines(lattice, src_mask, geographic, None, 0.0)

        moved = vis.transformation.transform(lattice.flat_nodes())
        undistorted = None
        if self.params.show_undistorted:
            undistorted = self._lines(lattice.with_nodes(moved), dst_mask, geographic, near, ref)

        distorted_nodes = vis.interpolation.transform(moved)
        distorted = self._lines(lattice.with_nodes(distorted_nodes), dst_mask, geographic, near, ref)

        logger.info(
            "Distortion grid: %d x %d lines, %d distorted segments",
            lattice.cols, lattice.rows, len(distorted.segments),
        )
        return DistortionGridResult(lattice, source, distorted, undistorted, ref)

    # ---------- Lines ----------
    def _lines(
        self,
        lattice: Lattice,
        mask: Optional[Polygon],
        geographic: bool,
        near: Optional[Points2D],
        ref: float,
    ) -> GridLines:
        segments: List[GridSegment] = []
        labels: List[GridLabel] = []
        seq = self.params.label_sequence

        for vertical, lines, values in (
            (True, lattice.vertical_lines(), lattice.col_labels),
            (False, lattice.horizontal_lines(), lattice.row_labels[::-1]),
        ):
            for i, line in enumerate(lines):
                pieces = [line]
                ends = (line[0], line[-1])
                if mask is not None:
                    clipped = clip_polyline(line, mask)
                    if clipped.is_empty:
                        continue
                    pieces = clipped.lines
                    ends = (clipped.first_point, clipped.last_point)

                for piece in pieces:
                    segments.extend(self._segments(piece, near, ref))

                if seq > 0 and i % seq == 0:
                    labels.append(self._label(float(values[i]), ends, vertical, geographic))
        return GridLines(segments, labels)

    @staticmethod
    def _segments(line: Polyline, near: Optional[Points2D], ref: float) -> List[GridSegment]:
        if line.shape[0] < 2:
            return []
        if near is None or ref <= 0:
            return [GridSegment(line.copy())]
        return split_by_uncertainty(line, distance_to_closest_point(near, line) > ref)

    @staticmethod
    def _label(value: float, ends, vertical: bool, geographic: bool) -> GridLabel:
        a, b = ends
        if vertical:
            # lower end of a vertical line
            pos = a if a[1] < b[1] else b
        else:
            # right end of a horizontal line
            pos = a if a[0] > b[0] else b
        return GridLabel(_format_label(value, geographic), value, np.array(pos, dtype=np.float64), vertical)

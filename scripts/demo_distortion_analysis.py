from pathlib import Path

import cv2
import numpy as np

from mapdistort import AnalysisConfig, DistortionAnalysis, GeoImage, LinkSet, setup_logging
from mapdistort.analysis import DistortionGridParams, IsolineParams


def synthetic_links(rng: np.random.Generator, n: int = 60) -> LinkSet:
    # New map: metric coordinates over a 40 x 30 km area
    new = rng.uniform([600000, 200000], [640000, 230000], size=(n, 2))

    # Old map: 1:50000 sheet in metres on paper, rotated by 3 degrees
    scale = 1.0 / 50000
    rot = np.radians(3.0)
    c, s = np.cos(rot), np.sin(rot)
    centered = new - new.mean(axis=0)
    old = scale * centered @ np.array([[c, s], [-s, c]])

    # Local distortion: a smooth bulge plus drawing noise (~0.3 mm on paper)
    bulge = 0.004 * np.exp(-np.sum((centered / 10000.0) ** 2, axis=1))
    old[:, 0] += bulge
    old += rng.normal(0.0, 0.0003, size=old.shape)
    return LinkSet.from_arrays(old, new)


def main() -> None:
    setup_logging()
    rng = np.random.default_rng(0)
    links = synthetic_links(rng)

    config = AnalysisConfig(
        transformation="helmert",
        distortion_grid=DistortionGridParams(mesh_size=2500, clip_mode="hull", show_undistorted=True),
        isolines=IsolineParams(radius=12000, isoscale_interval=500, isorotation_interval=0.5),
    )
    analysis = DistortionAnalysis(config)
    result = analysis.run(links)

    print(result.transformation.report())
    print(result.transformation.residuals_report(threshold=3 * result.transformation.sigma0))
    print(analysis.compare_transformations(links))

    if result.error_vectors is not None:
        print("error vectors:", len(result.error_vectors.vectors),
              "outliers:", result.error_vectors.n_outliers)
    if result.distortion_grid is not None:
        grid = result.distortion_grid
        print("distortion grid:", grid.lattice.cols, "x", grid.lattice.rows,
              "segments:", len(grid.distorted.segments),
              "uncertain:", sum(s.uncertain for s in grid.distorted.segments))
    if result.isolines is not None:
        iso = result.isolines
        print("isoscale levels:", [c.level for c in iso.scale_contours])
        print("isorotation levels:", [c.level for c in iso.rotation_contours])
    for name, exc in result.failures.items():
        print("failed:", name, exc)

    # Warp a checkerboard "old map" into the new map
    old_pts, _ = links.linked_points()
    lo = old_pts.min(axis=0) - 0.05
    hi = old_pts.max(axis=0) + 0.05
    cell = 0.001
    h = int(np.ceil((hi[1] - lo[1]) / cell))
    w = int(np.ceil((hi[0] - lo[0]) / cell))
    yy, xx = np.mgrid[0:h, 0:w]
    board = (((xx // 20) + (yy // 20)) % 2 * 255).astype(np.uint8)
    old_map = GeoImage(cv2.cvtColor(board, cv2.COLOR_GRAY2BGRA), lo[0], hi[1], cell)

    warped = analysis.warp_map(links, old_map)
    out = Path("warped_old_map.png")
    cv2.imwrite(str(out), warped.image)
    print("warped:", warped.width, "x", warped.height, "cell size:", warped.cell_size, "->", out)


if __name__ == "__main__":
    main()

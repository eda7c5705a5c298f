"""
Control links: pairs of corresponding points in the old map and the new map.

LinkSet keeps links in insertion order with unique names. Two links may not
share a point: a new link is rejected if its old point is within
COORD_TOLERANCE of any existing old point, or its new point within the same
tolerance of any existing new point (coordinate-wise). Coincident points make
the interpolation systems singular.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import numpy as np

from ..errors import DuplicateLinkError
from ..geometry.hull import convex_hull
from ..types import Point2D, Points2D, Polygon

COORD_TOLERANCE = 1e-6


def _as_point(pt) -> Point2D:
    arr = np.asarray(pt, dtype=np.float64)
    if arr.shape != (2,):
        raise ValueError(f"Expected point shape (2,) but got {arr.shape}")
    return arr.copy()


def _is_close(a: Point2D, b: Point2D, tol: float = COORD_TOLERANCE) -> bool:
    return abs(a[0] - b[0]) < tol and abs(a[1] - b[1]) < tol


@dataclass
class ControlLink:
    name: str
    old_point: Point2D
    new_point: Point2D
    selected: bool = False


class LinkSet:
    def __init__(self) -> None:
        self._links: List[ControlLink] = []

    @classmethod
    def from_arrays(cls, old_points, new_points, names: Optional[List[str]] = None) -> "LinkSet":
        old = np.asarray(old_points, dtype=np.float64)
        new = np.asarray(new_points, dtype=np.float64)
        if old.shape != new.shape or old.ndim != 2 or old.shape[1] != 2:
            raise ValueError(f"Expected two (N, 2) arrays, got {old.shape} and {new.shape}")
        links = cls()
        for i in range(old.shape[0]):
            links.add_link(old[i], new[i], names[i] if names else None)
        return links

    # ---------- Container ----------
    def __len__(self) -> int:
        return len(self._links)

    def __iter__(self) -> Iterator[ControlLink]:
        return iter(self._links)

    def __getitem__(self, index: int) -> ControlLink:
        return self._links[index]

    @property
    def names(self) -> List[str]:
        return [link.name for link in self._links]

    def find(self, name: str) -> Optional[ControlLink]:
        for link in self._links:
            if link.name == name:
                return link
        return None

    def generate_unique_name(self, base_name: str) -> str:
        name = base_name
        j = 1
        while self.find(name) is not None:
            name = f"{base_name}_{j}"
            j += 1
        return name

    # ---------- Editing ----------
    def add_link(self, old_point, new_point, name: Optional[str] = None) -> ControlLink:
        """
        Append a link. Raises DuplicateLinkError when either point collides
        with the corresponding point of an existing link.
        """
        old = _as_point(old_point)
        new = _as_point(new_point)
        if not (np.isfinite(old).all() and np.isfinite(new).all()):
            raise ValueError("Control point coordinates must be finite")

        for link in self._links:
            if _is_close(old, link.old_point) or _is_close(new, link.new_point):
                raise DuplicateLinkError(
                    "A linked point with same coordinates already exists. "
                    f'The name of the conflicting point is "{link.name}"'
                )

        if name is None:
            name = f"Point {len(self._links) + 1}"
        link = ControlLink(self.generate_unique_name(name), old, new)
        self._links.append(link)
        return link

    def remove_link(self, name: str) -> ControlLink:
        link = self.find(name)
        if link is None:
            raise KeyError(name)
        self._links.remove(link)
        return link

    def rename(self, old_name: str, new_name: str) -> ControlLink:
        link = self.find(old_name)
        if link is None:
            raise KeyError(old_name)
        if new_name != old_name:
            link.name = self.generate_unique_name(new_name)
        return link

    # ---------- Selection ----------
    def select(self, name: str, selected: bool = True) -> ControlLink:
        link = self.find(name)
        if link is None:
            raise KeyError(name)
        link.selected = selected
        return link

    def deselect_all(self) -> None:
        for link in self._links:
            link.selected = False

    def selected_links(self) -> List[ControlLink]:
        return [link for link in self._links if link.selected]

    def remove_selected(self) -> int:
        before = len(self._links)
        self._links = [link for link in self._links if not link.selected]
        return before - len(self._links)

    # ---------- Points ----------
    def linked_points(self, only_selected: bool = False) -> Tuple[Points2D, Points2D]:
        """Parallel (N, 2) copies of the old and the new points."""
        links = self.selected_links() if only_selected else self._links
        old = np.array([link.old_point for link in links], dtype=np.float64).reshape(-1, 2)
        new = np.array([link.new_point for link in links], dtype=np.float64).reshape(-1, 2)
        return old, new

    def old_hull(self) -> Polygon:
        return convex_hull(self.linked_points()[0])

    def new_hull(self) -> Polygon:
        return convex_hull(self.linked_points()[1])

    def scale_old_points(self, scale: float) -> None:
        for link in self._links:
            link.old_point = link.old_point * scale

    # ---------- Report ----------
    def report(self, separator: str = ",\t", header: bool = True, old_to_new=None) -> str:
        """
        Table of link names and coordinates. With an old-to-new transformation,
        the length and azimuth (degrees clockwise from north) of the residual
        vector in the new map are appended.
        """
        width = max([10] + [len(name) for name in self.names])
        lines = []
        if header:
            cols = ["X Old Map", "Y Old Map", "X New Map", "Y New Map"]
            if old_to_new is not None:
                cols += ["Vector Length", "Vector Azimuth"]
            lines.append("Link Name".ljust(width) + separator + separator.join(c.ljust(20) for c in cols))

        for link in self._links:
            values = [*link.old_point, *link.new_point]
            if old_to_new is not None:
                moved = old_to_new.transform(link.old_point)
                dx, dy = moved - link.new_point
                azimuth = -math.degrees(math.atan2(dy, dx)) + 90.0
                if azimuth < 0:
                    azimuth += 360.0
                values += [math.hypot(dx, dy), azimuth]
            lines.append(link.name.ljust(width) + separator + separator.join(f"{v:20.6f}" for v in values))
        return "\n".join(lines) + "\n"

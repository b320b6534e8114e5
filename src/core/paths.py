"""
Vector paths for the drawing context.

A Path is a list of sub-paths, each a polyline of float points plus a closed
flag. Curves (ellipses, arcs, rounded corners) are flattened into line
segments when they are added, so rasterization only ever sees polygons.
"""

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from common.base import Rect

# Flattening resolution for curves
MIN_CURVE_SEGMENTS = 16
SEGMENTS_PER_RADIUS_PIXEL = 0.5


def _curve_segments(radius: float, sweep: float) -> int:
    full = max(MIN_CURVE_SEGMENTS, int(math.ceil(abs(radius) * SEGMENTS_PER_RADIUS_PIXEL * 2)))
    return max(2, int(math.ceil(full * abs(sweep) / (2 * math.pi))))


class SubPath:
    """A single polyline, optionally closed."""

    __slots__ = ("points", "closed")

    def __init__(self, points: Optional[List[Tuple[float, float]]] = None, closed: bool = False):
        self.points = points if points is not None else []
        self.closed = closed

    def as_array(self) -> np.ndarray:
        return np.asarray(self.points, dtype=np.float64).reshape(-1, 2)

    def copy(self) -> "SubPath":
        return SubPath(list(self.points), self.closed)


class Path:
    """
    Mutable vector path built from lines and flattened curves.

    Example:
        >>> path = Path()
        >>> path.move_to(0, 0)
        >>> path.line_to(10, 0)
        >>> path.line_to(10, 10)
        >>> path.close()
    """

    def __init__(self):
        self.subpaths: List[SubPath] = []

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def rect(cls, rect: Rect) -> "Path":
        path = cls()
        path.add_rect(rect)
        return path

    @classmethod
    def ellipse(cls, rect: Rect) -> "Path":
        path = cls()
        path.add_ellipse(rect)
        return path

    @classmethod
    def rounded_rect(cls, rect: Rect, corner_width: float, corner_height: float) -> "Path":
        path = cls()
        path.add_rounded_rect(rect, corner_width, corner_height)
        return path

    @classmethod
    def polygon(cls, points: Sequence[Tuple[float, float]]) -> "Path":
        path = cls()
        path.add_polygon(points)
        return path

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    @property
    def _current(self) -> SubPath:
        if not self.subpaths or self.subpaths[-1].closed:
            self.subpaths.append(SubPath())
        return self.subpaths[-1]

    def move_to(self, x: float, y: float) -> "Path":
        if self.subpaths and not self.subpaths[-1].closed and len(self.subpaths[-1].points) <= 1:
            # A lone move_to is replaced by the next one
            self.subpaths[-1].points = [(float(x), float(y))]
        else:
            self.subpaths.append(SubPath([(float(x), float(y))]))
        return self

    def line_to(self, x: float, y: float) -> "Path":
        self._current.points.append((float(x), float(y)))
        return self

    def close(self) -> "Path":
        if self.subpaths and self.subpaths[-1].points:
            self.subpaths[-1].closed = True
        return self

    def add_polygon(self, points: Sequence[Tuple[float, float]]) -> "Path":
        if len(points) < 2:
            return self
        self.subpaths.append(SubPath([(float(x), float(y)) for x, y in points], closed=True))
        return self

    def add_rect(self, rect: Rect) -> "Path":
        return self.add_polygon(
            [
                (rect.x, rect.y),
                (rect.max_x, rect.y),
                (rect.max_x, rect.max_y),
                (rect.x, rect.max_y),
            ]
        )

    def add_ellipse(self, rect: Rect) -> "Path":
        rx = rect.width / 2.0
        ry = rect.height / 2.0
        cx = rect.x + rx
        cy = rect.y + ry
        n = _curve_segments(max(rx, ry), 2 * math.pi)
        points = [
            (cx + rx * math.cos(2 * math.pi * i / n), cy + ry * math.sin(2 * math.pi * i / n))
            for i in range(n)
        ]
        return self.add_polygon(points)

    def add_arc(
        self,
        cx: float,
        cy: float,
        radius: float,
        start_angle: float,
        end_angle: float,
        clockwise: bool = False,
    ) -> "Path":
        """
        Append a circular arc, connecting it to the current point with a line.

        Angles are in radians, measured from the +x axis towards +y. With
        y pointing down, increasing angles run clockwise on screen, so
        `clockwise=False` sweeps from start to end through increasing angles.
        """
        sweep = end_angle - start_angle
        if clockwise:
            if sweep > 0:
                sweep -= 2 * math.pi * math.ceil(sweep / (2 * math.pi))
        elif sweep < 0:
            sweep += 2 * math.pi * math.ceil(-sweep / (2 * math.pi))

        n = _curve_segments(radius, sweep)
        for i in range(n + 1):
            angle = start_angle + sweep * i / n
            x = cx + radius * math.cos(angle)
            y = cy + radius * math.sin(angle)
            if i == 0 and (not self.subpaths or self.subpaths[-1].closed):
                self.move_to(x, y)
            else:
                self.line_to(x, y)
        return self

    def add_rounded_rect(self, rect: Rect, corner_width: float, corner_height: float) -> "Path":
        rx = max(0.0, min(corner_width, rect.width / 2.0))
        ry = max(0.0, min(corner_height, rect.height / 2.0))
        if rx == 0 or ry == 0:
            return self.add_rect(rect)

        n = _curve_segments(max(rx, ry), math.pi / 2)
        corners = [
            (rect.max_x - rx, rect.y + ry, -math.pi / 2),
            (rect.max_x - rx, rect.max_y - ry, 0.0),
            (rect.x + rx, rect.max_y - ry, math.pi / 2),
            (rect.x + rx, rect.y + ry, math.pi),
        ]
        points = []
        for cx, cy, start in corners:
            for i in range(n + 1):
                angle = start + (math.pi / 2) * i / n
                points.append((cx + rx * math.cos(angle), cy + ry * math.sin(angle)))
        return self.add_polygon(points)

    def add_path(self, other: "Path") -> "Path":
        self.subpaths.extend(sp.copy() for sp in other.subpaths)
        return self

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_empty(self) -> bool:
        return not any(len(sp.points) >= 2 for sp in self.subpaths)

    @property
    def bounds(self) -> Optional[Rect]:
        """Bounding box of all points, or None for an empty path."""
        points = [p for sp in self.subpaths for p in sp.points]
        if not points:
            return None
        arr = np.asarray(points, dtype=np.float64)
        x1, y1 = arr.min(axis=0)
        x2, y2 = arr.max(axis=0)
        return Rect.from_points(float(x1), float(y1), float(x2), float(y2))

    def transformed(self, matrix: np.ndarray) -> "Path":
        """Return a copy with every point mapped through a 3x3 affine matrix."""
        result = Path()
        for sp in self.subpaths:
            if not sp.points:
                continue
            pts = sp.as_array()
            mapped = pts @ matrix[:2, :2].T + matrix[:2, 2]
            result.subpaths.append(SubPath([tuple(p) for p in mapped.tolist()], sp.closed))
        return result

    def polylines(self) -> List[Tuple[np.ndarray, bool]]:
        """Sub-paths as (N x 2 float array, closed) pairs, skipping degenerate ones."""
        return [(sp.as_array(), sp.closed) for sp in self.subpaths if len(sp.points) >= 2]

    def copy(self) -> "Path":
        result = Path()
        result.add_path(self)
        return result

    def __repr__(self) -> str:
        return f"Path(subpaths={len(self.subpaths)}, bounds={self.bounds})"

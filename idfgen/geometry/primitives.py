"""
Elementary geometric types: points, vectors, line segments and extents.

Coordinates are plain floats; angles are expressed in degrees, counter
clockwise from the positive x-axis.
"""

import math
from dataclasses import dataclass
from typing import Iterator, NamedTuple, Optional

import numpy as np

from idfgen.typing import FloatArray


class Point(NamedTuple):
    x: float
    y: float


class Vector(NamedTuple):
    dx: float
    dy: float

    @classmethod
    def between(cls, p1: Point, p2: Point) -> "Vector":
        return cls(p2.x - p1.x, p2.y - p1.y)

    @property
    def length(self) -> float:
        return math.hypot(self.dx, self.dy)


class LineSegment(NamedTuple):
    p1: Point
    p2: Point

    @property
    def length(self) -> float:
        return math.hypot(self.p2.x - self.p1.x, self.p2.y - self.p1.y)

    @property
    def direction(self) -> Vector:
        return Vector.between(self.p1, self.p2)

    def angle(self) -> float:
        """
        Angle of the segment in degrees within [0, 360): 0 points east, 90
        north. Returns NaN for a segment of zero length.
        """
        dx = self.p2.x - self.p1.x
        dy = self.p2.y - self.p1.y
        if dx == 0.0:
            if dy == 0.0:
                return math.nan
            return 90.0 if dy > 0.0 else 270.0

        angle = math.degrees(math.atan(dy / dx))
        if dx < 0.0:
            angle += 180.0
        elif dy < 0.0:
            angle += 360.0
        return angle


def move_point(point: Point, direction: Vector, distance: float) -> Point:
    """
    Move point over distance along direction.
    """
    if direction.dx != 0.0:
        angle = math.atan2(direction.dy, direction.dx)
        return Point(
            point.x + distance * math.cos(angle), point.y + distance * math.sin(angle)
        )
    return Point(point.x, point.y + math.copysign(distance, direction.dy))


@dataclass(frozen=True)
class Extent:
    """
    Axis-aligned rectangle. Bounds are inclusive.
    """

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    def __post_init__(self):
        if self.xmin > self.xmax or self.ymin > self.ymax:
            raise ValueError(
                f"Invalid extent: ({self.xmin}, {self.ymin}, {self.xmax}, {self.ymax})"
            )

    def __iter__(self) -> Iterator[float]:
        return iter((self.xmin, self.ymin, self.xmax, self.ymax))

    @classmethod
    def from_points(cls, xy: FloatArray) -> "Extent":
        xy = np.asarray(xy, dtype=np.float64).reshape((-1, 2))
        if xy.shape[0] == 0:
            raise ValueError("Cannot compute extent of zero points")
        xmin, ymin = xy.min(axis=0)
        xmax, ymax = xy.max(axis=0)
        return cls(float(xmin), float(ymin), float(xmax), float(ymax))

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def area(self) -> float:
        return self.width * self.height

    def contains(self, x: float, y: float) -> bool:
        return (self.xmin <= x <= self.xmax) and (self.ymin <= y <= self.ymax)

    def contains_extent(self, other: "Extent") -> bool:
        return (
            self.xmin <= other.xmin
            and other.xmax <= self.xmax
            and self.ymin <= other.ymin
            and other.ymax <= self.ymax
        )

    def intersects(self, other: "Extent") -> bool:
        return (
            self.xmin <= other.xmax
            and other.xmin <= self.xmax
            and self.ymin <= other.ymax
            and other.ymin <= self.ymax
        )

    def intersect(self, other: "Extent") -> Optional["Extent"]:
        if not self.intersects(other):
            return None
        return Extent(
            max(self.xmin, other.xmin),
            max(self.ymin, other.ymin),
            min(self.xmax, other.xmax),
            min(self.ymax, other.ymax),
        )

    def union(self, other: Optional["Extent"]) -> "Extent":
        if other is None:
            return self
        return Extent(
            min(self.xmin, other.xmin),
            min(self.ymin, other.ymin),
            max(self.xmax, other.xmax),
            max(self.ymax, other.ymax),
        )

    def snap(self, dx: float, dy: Optional[float] = None, enlarge: bool = True):
        """
        Snap the bounds to multiples of the cellsize.

        With ``enlarge``, the lower bounds are floored and the upper bounds
        ceiled so the snapped extent covers the original one. A width or
        height that collapses to zero is widened by one cell.
        """
        if dy is None:
            dy = dx
        if enlarge:
            xmin = math.floor(self.xmin / dx) * dx
            ymin = math.floor(self.ymin / dy) * dy
            xmax = math.ceil(self.xmax / dx) * dx
            ymax = math.ceil(self.ymax / dy) * dy
        else:
            xmin = round(self.xmin / dx) * dx
            ymin = round(self.ymin / dy) * dy
            xmax = round(self.xmax / dx) * dx
            ymax = round(self.ymax / dy) * dy
        if xmax <= xmin:
            xmax = xmin + dx
        if ymax <= ymin:
            ymax = ymin + dy
        return Extent(xmin, ymin, xmax, ymax)

    def to_points(self) -> FloatArray:
        """Closed, clockwise ring along the boundary."""
        return np.array(
            [
                [self.xmin, self.ymin],
                [self.xmin, self.ymax],
                [self.xmax, self.ymax],
                [self.xmax, self.ymin],
                [self.xmin, self.ymin],
            ]
        )

"""
Convex and concave hulls around point sets.

The concave hull follows the k-nearest neighbours approach of:

    Moreira, A. and Santos, M.Y., 2007. Concave hull: a k-nearest neighbours
    approach for the computation of the region occupied by a set of points.
    GRAPP 2007, pp. 61-68.

Both hulls are returned as open clockwise rings (no repeated closing vertex).
"""

import math
from typing import Optional

import numpy as np
import shapely
from scipy.spatial import cKDTree

from idfgen.geometry.polygon import is_clockwise
from idfgen.logging import logger
from idfgen.typing import FloatArray

TWO_PI = 2.0 * math.pi


def _unique_points(points) -> FloatArray:
    xy = np.asarray(points, dtype=np.float64).reshape((-1, 2))
    _, index = np.unique(xy, axis=0, return_index=True)
    return xy[np.sort(index)]


def _cross(o, a, b) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(points: FloatArray) -> Optional[FloatArray]:
    """
    Convex hull by Andrew's monotone chain.

    Parameters
    ----------
    points: np.ndarray of floats with shape (n, 2)

    Returns
    -------
    hull: np.ndarray of floats with shape (m, 2) or None
        Clockwise vertices of the hull, not closed. None when fewer than
        three distinct points are given, or when all points are collinear.
    """
    xy = _unique_points(points)
    if xy.shape[0] < 3:
        return None
    order = np.lexsort((xy[:, 1], xy[:, 0]))
    xy = xy[order]

    lower = []
    for p in xy:
        while len(lower) >= 2 and _cross(lower[-2], lower[-1], p) <= 0.0:
            lower.pop()
        lower.append(p)
    upper = []
    for p in xy[::-1]:
        while len(upper) >= 2 and _cross(upper[-2], upper[-1], p) <= 0.0:
            upper.pop()
        upper.append(p)

    # Chain is counter clockwise, reverse for a clockwise ring
    hull = np.array(lower[:-1] + upper[:-1])
    if hull.shape[0] < 3:
        return None
    return hull[::-1].copy()


def segments_intersect(p1, p2, p3, p4) -> bool:
    """
    Test whether segment p1-p2 and segment p3-p4 intersect. Touching end
    points count as an intersection; parallel segments never intersect.
    """
    a1 = p2[1] - p1[1]
    b1 = p1[0] - p2[0]
    c1 = a1 * p1[0] + b1 * p1[1]
    a2 = p4[1] - p3[1]
    b2 = p3[0] - p4[0]
    c2 = a2 * p3[0] + b2 * p3[1]
    det = a1 * b2 - a2 * b1
    if det == 0.0:
        return False

    x = (b2 * c1 - b1 * c2) / det
    y = (a1 * c2 - a2 * c1) / det
    return (
        min(p1[0], p2[0]) <= x <= max(p1[0], p2[0])
        and min(p1[1], p2[1]) <= y <= max(p1[1], p2[1])
        and min(p3[0], p4[0]) <= x <= max(p3[0], p4[0])
        and min(p3[1], p4[1]) <= y <= max(p3[1], p4[1])
    )


def _angle(a, b) -> float:
    """Direction from a to b in radians, within [0, 2 pi)."""
    angle = math.atan2(b[1] - a[1], b[0] - a[0])
    if angle < 0.0:
        angle += TWO_PI
    return angle


def _angle_difference(a: float, b: float) -> float:
    diff = b - a
    if diff < 0.0:
        diff += TWO_PI
    return diff


class _NeighbourSearch:
    """
    k-nearest neighbour queries restricted to the points that are still
    available for the hull.
    """

    def __init__(self, xy: FloatArray):
        self.xy = xy
        self.tree = cKDTree(xy)
        self.available = np.ones(xy.shape[0], dtype=bool)

    def remove(self, index: int) -> None:
        self.available[index] = False

    def add(self, index: int) -> None:
        self.available[index] = True

    def nearest(self, index: int, k: int) -> list[int]:
        n = self.xy.shape[0]
        n_query = min(n, k + int((~self.available).sum()) + 1)
        _, found = self.tree.query(self.xy[index], k=n_query)
        found = np.atleast_1d(found)
        return [int(i) for i in found if i != index and self.available[i]][:k]


def _encloses(hull: list[int], xy: FloatArray) -> bool:
    ring = shapely.polygons(xy[hull + [hull[0]]])
    others = np.setdiff1d(np.arange(xy.shape[0]), hull)
    if others.size == 0:
        return True
    return bool(shapely.dwithin(ring, shapely.points(xy[others]), 1.0e-6).all())


def _knn_hull(xy: FloatArray, k: int) -> Optional[FloatArray]:
    search = _NeighbourSearch(xy)
    first = int(np.argmin(xy[:, 1]))
    hull = [first]
    current = first
    search.remove(first)
    previous_angle = 0.0
    step = 1

    while current != first or step == 1:
        # The first point becomes a candidate again once a triangle exists
        if step == 4:
            search.add(first)

        candidates = search.nearest(current, k)
        # Sort in descending order of right-hand turn
        candidates.sort(
            key=lambda i: _angle_difference(previous_angle, _angle(xy[current], xy[i])),
            reverse=True,
        )

        chosen = None
        for candidate in candidates:
            last = 1 if candidate == first else 0
            crossing = False
            for j in range(2, len(hull) - last):
                if segments_intersect(
                    xy[hull[step - 1]],
                    xy[candidate],
                    xy[hull[step - j - 1]],
                    xy[hull[step - j]],
                ):
                    crossing = True
                    break
            if not crossing:
                chosen = candidate
                break

        if chosen is None:
            logger.debug(
                f"Self-intersection after {step} hull points, retry with more neighbours"
            )
            return None

        current = chosen
        hull.append(current)
        previous_angle = _angle(xy[hull[step]], xy[hull[step - 1]])
        search.remove(current)
        step += 1

    hull = hull[:-1]
    if len(hull) < 3 or not _encloses(hull, xy):
        logger.debug(f"Hull with {k} neighbours does not enclose all points")
        return None
    return xy[hull]


def concave_hull(points: FloatArray, k: int = 3) -> Optional[FloatArray]:
    """
    Concave hull around points with the k-nearest neighbours algorithm.

    When no valid hull is found for k neighbours, k is increased by one and
    the hull is searched again, until k reaches the number of points.

    Parameters
    ----------
    points: np.ndarray of floats with shape (n, 2)
        Duplicate points are removed first.
    k: int
        Initial number of neighbours, at least 3. Larger values produce
        smoother, more convex hulls.

    Returns
    -------
    hull: np.ndarray of floats with shape (m, 2) or None
        Clockwise vertices of the hull, not closed. None if no hull could be
        constructed, or when all points lie on a single line.
    """
    if k < 3:
        raise ValueError(f"k should be 3 or larger, received {k}")
    xy = _unique_points(points)
    n = xy.shape[0]
    if n < 3:
        raise ValueError(f"At least 3 distinct points are required, received {n}")
    if convex_hull(xy) is None:
        return None
    if n == 3:
        return xy if is_clockwise(xy) else xy[::-1].copy()

    logger.debug(f"Retrieving concave hull for {n} points, starting with k={k}")
    while k < n:
        hull = _knn_hull(xy, k)
        if hull is not None:
            return hull if is_clockwise(hull) else hull[::-1].copy()
        k += 1
    return None

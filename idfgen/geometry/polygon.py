"""
Polygon predicates and measures on rings given as (n, 2) coordinate arrays.

Rings may be open or closed (first vertex repeated at the end); the closing
edge is always taken into account.
"""

import numba
import numpy as np

from idfgen.typing import BoolArray, FloatArray


@numba.njit
def _pnpoly(x, y, xs, ys):
    """
    Crossing number test by W. Randolph Franklin.

    Points on a left or bottom edge are inside, points on a right or top edge
    are outside.
    """
    n = xs.size
    inside = False
    j = n - 1
    for i in range(n):
        if ((ys[i] > y) != (ys[j] > y)) and (
            x < (xs[j] - xs[i]) * (y - ys[i]) / (ys[j] - ys[i]) + xs[i]
        ):
            inside = not inside
        j = i
    return inside


@numba.njit
def _pnpoly_many(x, y, xs, ys, out):
    for k in range(x.size):
        out[k] = _pnpoly(x[k], y[k], xs, ys)
    return out


def _as_ring(xy) -> tuple[FloatArray, FloatArray]:
    xy = np.asarray(xy, dtype=np.float64).reshape((-1, 2))
    return np.ascontiguousarray(xy[:, 0]), np.ascontiguousarray(xy[:, 1])


def is_point_in_polygon(x: float, y: float, polygon: FloatArray) -> bool:
    """
    Test whether (x, y) lies inside the polygon ring.

    Parameters
    ----------
    x: float
    y: float
    polygon: np.ndarray of floats with shape (n, 2)

    Returns
    -------
    inside: bool
    """
    xs, ys = _as_ring(polygon)
    return bool(_pnpoly(float(x), float(y), xs, ys))


def points_in_polygon(x: FloatArray, y: FloatArray, polygon: FloatArray) -> BoolArray:
    """Vectorized version of :func:`is_point_in_polygon`."""
    xs, ys = _as_ring(polygon)
    x = np.ascontiguousarray(x, dtype=np.float64).ravel()
    y = np.ascontiguousarray(y, dtype=np.float64).ravel()
    out = np.zeros(x.size, dtype=np.bool_)
    return _pnpoly_many(x, y, xs, ys, out)


def calculate_area(polygon: FloatArray) -> float:
    """
    Signed area of the ring: positive for clockwise rings, negative for
    counter clockwise rings.
    """
    xs, ys = _as_ring(polygon)
    if xs.size < 3:
        return 0.0
    x_next = np.roll(xs, -1)
    y_next = np.roll(ys, -1)
    return float(0.5 * np.sum((x_next - xs) * (y_next + ys)))


def is_clockwise(polygon: FloatArray) -> bool:
    return calculate_area(polygon) > 0.0

"""
Cohen-Sutherland line clipping against an axis-aligned rectangle.
"""

from typing import Optional

from idfgen.geometry.primitives import Extent, LineSegment, Point

INSIDE = 0
LEFT = 1
RIGHT = 2
BOTTOM = 4
TOP = 8


def _outcode(x: float, y: float, extent: Extent) -> int:
    code = INSIDE
    if x < extent.xmin:
        code |= LEFT
    elif x > extent.xmax:
        code |= RIGHT
    if y < extent.ymin:
        code |= BOTTOM
    elif y > extent.ymax:
        code |= TOP
    return code


def clip_line(segment: LineSegment, extent: Extent) -> Optional[LineSegment]:
    """
    Clip a line segment to an extent.

    The boundary of the extent counts as inside. The direction of the segment
    is preserved: the first point of the result lies closest to the first
    point of the input.

    Parameters
    ----------
    segment: LineSegment
    extent: Extent

    Returns
    -------
    clipped: LineSegment or None
        None if the segment lies completely outside of the extent. A segment
        touching the extent in a single point results in a zero length segment.
    """
    x1, y1 = segment.p1
    x2, y2 = segment.p2
    code1 = _outcode(x1, y1, extent)
    code2 = _outcode(x2, y2, extent)

    while True:
        if not (code1 | code2):
            return LineSegment(Point(x1, y1), Point(x2, y2))
        if code1 & code2:
            return None

        code = code1 if code1 else code2
        if code & TOP:
            x = x1 + (x2 - x1) * (extent.ymax - y1) / (y2 - y1)
            y = extent.ymax
        elif code & BOTTOM:
            x = x1 + (x2 - x1) * (extent.ymin - y1) / (y2 - y1)
            y = extent.ymin
        elif code & RIGHT:
            y = y1 + (y2 - y1) * (extent.xmax - x1) / (x2 - x1)
            x = extent.xmax
        else:
            y = y1 + (y2 - y1) * (extent.xmin - x1) / (x2 - x1)
            x = extent.xmin

        if code == code1:
            x1, y1 = x, y
            code1 = _outcode(x1, y1, extent)
        else:
            x2, y2 = x, y
            code2 = _outcode(x2, y2, extent)

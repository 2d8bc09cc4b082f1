from idfgen.geometry.clipping import clip_line
from idfgen.geometry.hull import concave_hull, convex_hull, segments_intersect
from idfgen.geometry.polygon import (
    calculate_area,
    is_clockwise,
    is_point_in_polygon,
    points_in_polygon,
)
from idfgen.geometry.primitives import (
    Extent,
    LineSegment,
    Point,
    Vector,
    move_point,
)

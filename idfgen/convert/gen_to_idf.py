"""
Rasterize the polygons and lines of a GEN file to IDF grids.

Polygons assign their value to the cells they cover; overlapping polygons are
resolved with one of the strategies of :mod:`idfgen.convert.resolution`.
Lines are followed cell by cell, keeping track of the length of the line in
every cell and, optionally, its direction.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import shapely

from idfgen.convert.resolution import Candidate, ResolutionStrategy, get_strategy
from idfgen.convert.settings import CellOverlapMethod, ConversionSettings
from idfgen.convert.values import resolve_feature_value
from idfgen.features import Feature, FeatureCollection, FeatureType
from idfgen.formats import gen, idf
from idfgen.formats.metadata import Metadata
from idfgen.geometry import (
    LineSegment,
    Point,
    clip_line,
    is_clockwise,
    move_point,
    points_in_polygon,
)
from idfgen.grid import Grid
from idfgen.logging import logger
from idfgen.logging.logging_decorators import standard_log_decorator
from idfgen.typing import FloatArray, IntArray

# Allowed difference between the length of a line and its length in the grid
ERROR_MARGIN = 0.05
# Relative distance within which points count as lying on a grid line
EDGE_TOLERANCE = 1.0e-9


# Polygons
# --------
def _overlap_areas(grid: Grid, feature: Feature, x: FloatArray, y: FloatArray):
    polygon = shapely.make_valid(shapely.polygons(feature.points))
    boxes = shapely.box(
        x - 0.5 * grid.dx, y - 0.5 * grid.dy, x + 0.5 * grid.dx, y + 0.5 * grid.dy
    )
    return shapely.area(shapely.intersection(boxes, polygon))


def polygon_cells(
    grid: Grid,
    feature: Feature,
    method: CellOverlapMethod = CellOverlapMethod.CENTER,
    with_areas: bool = False,
) -> tuple[IntArray, IntArray, FloatArray]:
    """
    Cells covered by a polygon.

    Only the cells within the extent of the polygon are tested. With
    ``CellOverlapMethod.CENTER`` a cell is covered when its centre lies within
    the polygon, with ``CellOverlapMethod.OVERLAP`` when the polygon and the
    cell share a positive area.

    Returns
    -------
    rows: np.ndarray of int
    cols: np.ndarray of int
    areas: np.ndarray of float
        Area of the polygon within each cell; NaN unless computed, which is
        the case for ``with_areas`` or ``CellOverlapMethod.OVERLAP``.
    """
    extent = feature.extent
    row0 = max(grid.row_index(extent.ymax), 0)
    row1 = min(grid.row_index(extent.ymin), grid.nrow - 1)
    col0 = max(grid.col_index(extent.xmin), 0)
    col1 = min(grid.col_index(extent.xmax), grid.ncol - 1)
    if row0 > row1 or col0 > col1:
        return np.empty(0, dtype=int), np.empty(0, dtype=int), np.empty(0)

    yy, xx = np.meshgrid(
        grid.ycoords()[row0 : row1 + 1], grid.xcoords()[col0 : col1 + 1], indexing="ij"
    )
    xx = xx.ravel()
    yy = yy.ravel()
    if method == CellOverlapMethod.CENTER:
        selected = points_in_polygon(xx, yy, feature.points)
        if with_areas:
            areas = _overlap_areas(grid, feature, xx[selected], yy[selected])
        else:
            areas = np.full(int(selected.sum()), np.nan)
    else:
        areas = _overlap_areas(grid, feature, xx, yy)
        selected = areas > 0.0
        areas = areas[selected]

    index = np.flatnonzero(selected)
    ncol = col1 - col0 + 1
    return row0 + index // ncol, col0 + index % ncol, areas


class PolygonRasterizer:
    """
    Collects the candidate values of all polygons per cell; :meth:`finish`
    writes the resolved values to the grid.

    Parameters
    ----------
    grid: Grid
        Grid receiving the values.
    strategy: ResolutionStrategy
        Resolution of cells covered by more than one polygon.
    cell_overlap: CellOverlapMethod
    area: Grid, optional
        When given, receives the summed area of the polygons per cell.
    """

    def __init__(
        self,
        grid: Grid,
        strategy: ResolutionStrategy,
        cell_overlap: CellOverlapMethod = CellOverlapMethod.CENTER,
        area: Optional[Grid] = None,
    ):
        self.grid = grid
        self.strategy = strategy
        self.cell_overlap = cell_overlap
        self.area = area
        self._candidates: dict[tuple[int, int], list[Candidate]] = {}

    def add(self, feature: Feature, value: float) -> int:
        """Register a polygon, returns the number of covered cells."""
        with_areas = self.strategy.needs_areas or self.area is not None
        rows, cols, areas = polygon_cells(
            self.grid, feature, self.cell_overlap, with_areas
        )
        total_area = abs(feature.area)
        for row, col, cell_area in zip(rows.tolist(), cols.tolist(), areas.tolist()):
            self._candidates.setdefault((row, col), []).append(
                Candidate(value, cell_area, total_area)
            )
            if self.area is not None:
                self.area.add_at(row, col, cell_area)
        return rows.size

    def finish(self) -> None:
        for (row, col), candidates in self._candidates.items():
            self.grid.values[row, col] = self.strategy.resolve(candidates)
        self._candidates = {}

    def remove(self, feature: Feature) -> None:
        """Reset the cells covered by an island to NoData."""
        rows, cols, _ = polygon_cells(self.grid, feature, self.cell_overlap)
        self.grid.values[rows, cols] = self.grid.nodata
        if self.area is not None:
            self.area.values[rows, cols] = self.area.nodata


# Lines
# -----
@dataclass
class LineWalk:
    """
    State of a line being followed through the grid.

    Parameters
    ----------
    row, col: int
        Current cell.
    entry: Point
        Point where the line entered the current cell.
    end: Point
        Last processed point of the line.
    distance: float
        Length of the line within the grid processed so far.
    cell_length: float
        Length of the line within the current cell.
    cell_index: int
        Number of cells left so far.
    """

    row: int
    col: int
    entry: Point
    end: Point
    distance: float = 0.0
    cell_length: float = 0.0
    cell_index: int = 0

    @classmethod
    def start(cls, grid: Grid, point: Point) -> "LineWalk":
        return cls(grid.row_index(point.y), grid.col_index(point.x), point, point)

    @property
    def cell(self) -> tuple[int, int]:
        return self.row, self.col

    def enter(self, row: int, col: int) -> None:
        self.row = row
        self.col = col
        self.entry = self.end
        self.cell_length = 0.0
        self.cell_index += 1


class LineRasterizer:
    """
    Follows lines through the grid. Every cell a line passes receives the
    value of the line (the last line wins) and the length of the line within
    the cell (summed over lines). The optional angle grid receives the
    direction of the first line through a cell.

    Every segment is split at the grid lines it crosses, so the pieces lie in
    a single cell each and their lengths add up to the segment length. A
    piece running along the edge of the current cell stays in that cell.
    """

    def __init__(self, values: Grid, length: Grid, angle: Optional[Grid] = None):
        self.values = values
        self.length = length
        self.angle = angle
        self.footprint = np.zeros(values.values.shape, dtype=bool)
        self._edge_tolerance = EDGE_TOLERANCE * max(values.dx, values.dy)

    def rasterize(self, feature: Feature, value: float) -> LineWalk:
        points = [Point(float(x), float(y)) for x, y in feature.points]
        walk = LineWalk.start(self.values, points[0])
        for p1, p2 in zip(points[:-1], points[1:]):
            self._follow_segment(walk, LineSegment(p1, p2), value)
        self._finish_cell(walk, value)
        self.correct()
        if abs(walk.distance - feature.length) > ERROR_MARGIN:
            logger.warning(
                f"Line {feature.id} has a length of {feature.length:.3f}, of which "
                f"{walk.distance:.3f} lies within the grid"
            )
        return walk

    def crossings(self, segment: LineSegment) -> FloatArray:
        """
        Fractions along the segment where it crosses a grid line, including 0
        and 1. Crossings closer together than ``EDGE_TOLERANCE`` are merged.
        """
        grid = self.values
        fractions = [np.array([0.0, 1.0])]
        # Distances from the upper left corner, rows count southward
        for start, end, size in (
            (segment.p1.x - grid.extent.xmin, segment.p2.x - grid.extent.xmin, grid.dx),
            (grid.extent.ymax - segment.p1.y, grid.extent.ymax - segment.p2.y, grid.dy),
        ):
            if start == end:
                continue
            low, high = sorted((start, end))
            lines = np.arange(math.floor(low / size) + 1, math.ceil(high / size)) * size
            fractions.append((lines - start) / (end - start))
        t = np.unique(np.concatenate(fractions))
        t = t[(t >= 0.0) & (t <= 1.0)]
        t = t[np.concatenate([[True], np.diff(t) > EDGE_TOLERANCE])]
        t[-1] = 1.0
        return t

    def _in_cell(self, walk: LineWalk, a: Point, b: Point) -> bool:
        cell = self.values.cell_extent(walk.row, walk.col)
        eps = self._edge_tolerance
        return all(
            (cell.xmin - eps <= p.x <= cell.xmax + eps)
            and (cell.ymin - eps <= p.y <= cell.ymax + eps)
            for p in (a, b)
        )

    def _follow_segment(self, walk: LineWalk, segment: LineSegment, value: float):
        clipped = clip_line(segment, self.values.extent)
        if clipped is None or clipped.length == 0.0:
            if segment.length > 0.0:
                logger.debug(
                    f"Segment {tuple(segment.p1)} - {tuple(segment.p2)} lies "
                    "outside of the grid"
                )
            return

        direction = clipped.direction
        length = clipped.length
        t = self.crossings(clipped)
        ends = [move_point(clipped.p1, direction, f * length) for f in t[1:-1]]
        ends.append(clipped.p2)
        start = clipped.p1
        for end, fraction in zip(ends, np.diff(t)):
            piece_length = float(fraction) * length
            if not self._in_cell(walk, start, end):
                middle = Point(0.5 * (start.x + end.x), 0.5 * (start.y + end.y))
                # A piece along the outer edge of the grid maps just outside
                row = min(max(self.values.row_index(middle.y), 0), self.values.nrow - 1)
                col = min(max(self.values.col_index(middle.x), 0), self.values.ncol - 1)
                self._finish_cell(walk, value)
                walk.end = start
                walk.enter(row, col)
            self.length.add_at(walk.row, walk.col, piece_length)
            walk.distance += piece_length
            walk.cell_length += piece_length
            walk.end = end
            start = end

    def _finish_cell(self, walk: LineWalk, value: float) -> None:
        row, col = walk.cell
        if walk.cell_length <= 0.0 or not self.values.contains_cell(row, col):
            return
        self.values.values[row, col] = value
        self.footprint[row, col] = True
        if self.angle is None:
            return
        if self.angle.is_nodata(self.angle.values[row, col]):
            angle = LineSegment(walk.entry, walk.end).angle()
            if not math.isnan(angle):
                self.angle.values[row, col] = angle

    def correct(self) -> None:
        """
        Reset line cells without length to NoData, and lengths of cells
        without value.
        """
        length = self.length.values
        no_length = self.length.is_nodata(length) | (length == 0.0)
        reset = self.footprint & no_length
        self.values.values[reset] = self.values.nodata
        self.footprint[reset] = False
        no_value = self.values.is_nodata(self.values.values)
        length[no_value & ~self.length.is_nodata(length)] = self.length.nodata


# GEN file
# --------
@dataclass
class RasterizedGrids:
    values: Grid
    length: Grid
    angle: Optional[Grid] = None
    area: Optional[Grid] = None


def _feature_size(feature: Feature) -> float:
    if feature.is_polygon:
        return abs(feature.area)
    return feature.length


def create_grid(collection: FeatureCollection, cellsize: float, nodata: float) -> Grid:
    """Empty grid covering all features, with bounds snapped to the cellsize."""
    extent = collection.extent
    if extent is None:
        raise ValueError("Cannot create a grid for an empty collection")
    return Grid(extent.snap(cellsize), cellsize, nodata=nodata)


def rasterize(
    collection: FeatureCollection, settings: ConversionSettings
) -> RasterizedGrids:
    """
    Rasterize all features of a collection.

    Polygons are processed first: outer polygons, then islands. Lines follow
    and overwrite polygon values. Point features are skipped.
    """
    values = create_grid(collection, settings.cellsize, settings.nodata)
    grids = RasterizedGrids(
        values=values,
        length=Grid.like(values),
        angle=Grid.like(values) if settings.add_angle else None,
        area=Grid.like(values) if settings.add_length_area else None,
    )
    polygons = PolygonRasterizer(
        values,
        get_strategy(settings.overlap_resolution),
        settings.cell_overlap,
        grids.area,
    )
    lines = LineRasterizer(values, grids.length, grids.angle)

    indexed = list(enumerate(collection.features))
    if settings.sort_features:
        indexed.sort(key=lambda item: _feature_size(item[1]), reverse=True)

    islands = []
    line_features = []
    for index, feature in indexed:
        value = resolve_feature_value(
            feature,
            index,
            collection.table,
            settings.value_column,
            settings.skipped_values,
        )
        if math.isnan(value):
            logger.info(f"Feature {feature.id} is skipped: its value is excluded")
            continue

        match feature.feature_type:
            case FeatureType.POLYGON:
                if not settings.ignore_point_order and not is_clockwise(feature.points):
                    if settings.include_islands:
                        logger.warning(
                            f"Polygon {feature.id} is defined counter clockwise and is "
                            "rasterized as an island"
                        )
                        islands.append(feature)
                        continue
                    logger.warning(
                        f"Polygon {feature.id} is defined counter clockwise, which "
                        "denotes an island; it is rasterized as a normal polygon"
                    )
                polygons.add(feature, value)
            case FeatureType.LINE:
                line_features.append((feature, value))
            case FeatureType.POINT:
                logger.warning(
                    f"Feature {feature.id} is a point, points are not rasterized"
                )

    polygons.finish()
    for feature in islands:
        polygons.remove(feature)
    for feature, value in line_features:
        lines.rasterize(feature, value)
    return grids


def _process_description(value_column: int) -> str:
    if value_column >= 0:
        return f"Gridded features: value from GEN-column {value_column}"
    return "Gridded features: value 1 for cells within polygon"


class GenIdfConverter:
    """
    Converts GEN files to IDF files, each with a MET file.
    """

    def __init__(self, settings: ConversionSettings):
        self.settings = settings

    @standard_log_decorator()
    def convert(
        self,
        input_path: Path,
        output_path: Path,
        output_filename: Optional[str] = None,
    ) -> Optional[list[Path]]:
        """
        Rasterize one GEN file.

        Parameters
        ----------
        input_path: Path
            GEN file; a DAT file with the same name is read along.
        output_path: Path
            Directory of the results.
        output_filename: str, optional
            Name of the resulting IDF file, defaults to the name of the GEN
            file.

        Returns
        -------
        written: list of Path or None
            Paths of the written IDF and MET files. None when the GEN file
            holds no features.
        """
        input_path = Path(input_path)
        output_path = Path(output_path)
        logger.info(f"Reading GEN-file {input_path.name} ...")
        collection = gen.read(input_path)
        if len(collection) == 0:
            logger.warning(f"GEN-file {input_path.name} is empty and is skipped")
            return None

        logger.info(f"Rasterizing {len(collection)} features ...")
        grids = rasterize(collection, self.settings)

        name = Path(output_filename or input_path.name).stem
        output_path.mkdir(parents=True, exist_ok=True)
        idf_path = output_path / f"{name}.IDF"
        metadata = Metadata(
            description="Converted from GEN-file to IDF-file",
            source=input_path.name,
            process_description=_process_description(self.settings.value_column),
            resolution=f"{self.settings.cellsize:g}",
        )
        written = self._write(grids.values, idf_path, metadata)

        if grids.angle is not None and grids.angle.count() > 0:
            metadata.process_description = "Angle in degrees of the first line through a cell"
            written += self._write(grids.angle, output_path / f"{name}_angle.IDF", metadata)
        if self.settings.add_length_area:
            metadata.process_description = "Length of lines within a cell"
            written += self._write(grids.length, output_path / f"{name}_length.IDF", metadata)
            metadata.process_description = "Area of polygons within a cell"
            written += self._write(grids.area, output_path / f"{name}_area.IDF", metadata)
        return written

    def _write(self, grid: Grid, path: Path, metadata: Metadata) -> list[Path]:
        logger.info(f"Writing IDF-file {path.name} ...")
        idf.write(path, grid.to_dataarray(), nodata=grid.nodata)
        met = metadata.write(path, data_path=path)
        return [path, met]

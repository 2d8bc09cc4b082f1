"""
Extract vector features from the data cells of IDF files.

Depending on the hull type, the cells are written as IPF points, or enclosed
by a convex hull, a concave hull, or polygons following the outer cell edges.
Every extracted polygon receives an attribute row with statistics of the
cell values it encloses.
"""

from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
import shapely

from idfgen.convert.errors import ConversionError
from idfgen.convert.settings import ConversionSettings, HullType
from idfgen.convert.statistics import STATISTICS_COLUMNS, ValueStatistics, zonal_values
from idfgen.features import AttributeTable, Feature, FeatureCollection
from idfgen.formats import gen, idf, ipf
from idfgen.formats.metadata import Metadata
from idfgen.geometry import concave_hull, convex_hull, is_clockwise
from idfgen.grid import Grid
from idfgen.logging import logger
from idfgen.logging.logging_decorators import standard_log_decorator
from idfgen.typing import BoolArray, FloatArray

# Resolution of the integer keys of edge end points
QUANTUM = 1.0e-6


@dataclass
class Extraction:
    """
    Result of the extraction from one grid.

    Feature IDs are numbered from 1 and are replaced when the features are
    added to a collection. ``rows`` holds the attribute values (without ID)
    per feature ID; ``points`` the cells to write to an IPF file.
    """

    features: list[Feature] = field(default_factory=list)
    rows: dict[str, list[str]] = field(default_factory=dict)
    points: Optional[pd.DataFrame] = None


def read_grid(path: Path, skipped_values=()) -> Grid:
    """Read an IDF file; cells within the skipped ranges become NoData."""
    grid = Grid.from_dataarray(idf.read(path))
    for value_range in skipped_values:
        grid.replace_range(value_range.v1, value_range.v2, grid.nodata)
    return grid


def _cell_points(grid: Grid, mask: BoolArray) -> pd.DataFrame:
    rows, cols = np.nonzero(mask)
    return pd.DataFrame(
        {
            "x": grid.xcoords()[cols],
            "y": grid.ycoords()[rows],
            "value": grid.values[rows, cols].astype(np.float64),
        }
    )


def qualifying_points(grid: Grid) -> pd.DataFrame:
    """Centres and values of the cells with a non-zero value."""
    return _cell_points(grid, grid.data_mask() & (grid.values != 0.0))


def _padded_data_mask(grid: Grid) -> BoolArray:
    padded = np.zeros((grid.nrow + 2, grid.ncol + 2), dtype=bool)
    padded[1:-1, 1:-1] = grid.data_mask()
    return padded


def outer_cell_mask(grid: Grid) -> BoolArray:
    """
    Data cells of which at least one of the eight neighbours is missing.
    Positions outside of the grid count as missing.
    """
    padded = _padded_data_mask(grid)
    nrow, ncol = grid.nrow, grid.ncol
    enclosed = np.ones((nrow, ncol), dtype=bool)
    for i in range(3):
        for j in range(3):
            enclosed &= padded[i : i + nrow, j : j + ncol]
    return grid.data_mask() & ~enclosed


def cell_edges(grid: Grid) -> FloatArray:
    """
    Edges between data cells and missing neighbours (north, east, south,
    west). Edges run clockwise around the data cells and are ordered by row,
    column, and side.

    Returns
    -------
    edges: np.ndarray of floats with shape (n, 4)
        Columns x1, y1, x2, y2.
    """
    padded = _padded_data_mask(grid)
    missing = np.stack(
        [
            ~padded[:-2, 1:-1],
            ~padded[1:-1, 2:],
            ~padded[2:, 1:-1],
            ~padded[1:-1, :-2],
        ],
        axis=-1,
    )
    rows, cols, sides = np.nonzero(missing & grid.data_mask()[..., np.newaxis])
    left = grid.extent.xmin + cols * grid.dx
    right = left + grid.dx
    top = grid.extent.ymax - rows * grid.dy
    bottom = top - grid.dy
    return np.column_stack(
        [
            np.choose(sides, [left, right, right, left]),
            np.choose(sides, [top, top, bottom, bottom]),
            np.choose(sides, [right, right, left, left]),
            np.choose(sides, [top, bottom, bottom, top]),
        ]
    )


def _key(x: float, y: float) -> tuple[int, int]:
    return int(round(x / QUANTUM)), int(round(y / QUANTUM))


def stitch_edges(edges: FloatArray) -> tuple[list[FloatArray], list[FloatArray]]:
    """
    Connect edges into rings. From every point, the first unused edge
    starting at that point is followed, until the ring returns to its first
    point.

    Returns
    -------
    rings: list of np.ndarray
        Closed rings.
    chains: list of np.ndarray
        Chains that could not be closed.
    """
    outgoing: dict[tuple[int, int], deque] = {}
    for index, (x1, y1, _, _) in enumerate(edges):
        outgoing.setdefault(_key(x1, y1), deque()).append(index)
    used = np.zeros(len(edges), dtype=bool)

    def next_edge(key) -> Optional[int]:
        queue = outgoing.get(key)
        while queue:
            index = queue.popleft()
            if not used[index]:
                return index
        return None

    rings = []
    chains = []
    for first in range(len(edges)):
        if used[first]:
            continue
        used[first] = True
        x1, y1, x2, y2 = edges[first]
        start = _key(x1, y1)
        current = _key(x2, y2)
        chain = [(x1, y1), (x2, y2)]
        while current != start:
            index = next_edge(current)
            if index is None:
                break
            used[index] = True
            x, y = edges[index, 2:]
            chain.append((x, y))
            current = _key(x, y)

        points = np.array(chain)
        if current == start:
            points[-1] = points[0]
            rings.append(points)
        else:
            logger.warning(
                f"Cell edges starting at ({x1}, {y1}) do not form a closed ring, "
                "they are added as a line"
            )
            chains.append(points)
    return rings, chains


def _clockwise(feature: Feature, clockwise: bool = True) -> Feature:
    if is_clockwise(feature.points) != clockwise:
        feature.reverse()
    return feature


def remove_islands(polygons: list[Feature]) -> list[Feature]:
    """
    Remove polygons lying inside another polygon: the extent of the other
    polygon contains the extent of the polygon, and the other polygon
    overlaps both the extent and the convex hull of the polygon.
    """
    geometries = [shapely.make_valid(shapely.polygons(p.points)) for p in polygons]
    kept = []
    for i, polygon1 in enumerate(polygons):
        extent1 = polygon1.extent
        box = shapely.box(*extent1)
        hull = shapely.convex_hull(geometries[i])
        is_island = False
        for j, polygon2 in enumerate(polygons):
            if i == j or not polygon2.extent.contains_extent(extent1):
                continue
            if (
                shapely.intersection(geometries[j], box).area > 0.0
                and shapely.intersection(geometries[j], hull).area > 0.0
            ):
                is_island = True
                break
        if is_island:
            logger.debug(f"Polygon {polygon1.id} lies within another polygon, removed")
        else:
            kept.append(polygon1)
    return kept


def extract_convex_hull(grid: Grid, source: str) -> Extraction:
    points = qualifying_points(grid)
    if len(points) == 0:
        raise ConversionError("No cells with non-zero values, no hull can be created")
    hull = convex_hull(points[["x", "y"]].to_numpy())
    if hull is None:
        logger.warning("Convex hull could not be created, the extent of the data is used")
        ring = grid.data_extent().to_points()
    else:
        ring = hull
    statistics = ValueStatistics.from_values(points["value"])
    return Extraction(
        features=[Feature.polygon("1", ring)],
        rows={"1": statistics.to_row(source, 1)},
    )


def extract_concave_hull(grid: Grid, source: str, k: int) -> Extraction:
    points = qualifying_points(grid)
    if len(points) == 0:
        raise ConversionError("No cells with non-zero values, no hull can be created")
    xy = _cell_points(grid, outer_cell_mask(grid))[["x", "y"]].to_numpy()
    if convex_hull(xy) is None:
        logger.warning(
            "Concave hull could not be created for fewer than 3 cells or cells on "
            "a single line, the extent of the data is used"
        )
        hull = grid.data_extent().to_points()
    else:
        try:
            hull = concave_hull(xy, int(k))
        except ValueError as e:
            raise ConversionError(f"Concave hull could not be created: {e}") from e
        if hull is None:
            raise ConversionError(
                f"Concave hull could not be created, starting with k={int(k)}"
            )
    statistics = ValueStatistics.from_values(points["value"])
    return Extraction(
        features=[Feature.polygon("1", hull)],
        rows={"1": statistics.to_row(source, 1)},
    )


def extract_cell_edges(
    grid: Grid, source: str, without_islands: bool = False
) -> Extraction:
    """
    Polygons along the outer edges of the data cells. Cells are assigned to
    the smallest polygon enclosing them; polygons without cells, which are
    the holes in the data, are made counter clockwise.
    """
    if grid.count() == 0:
        raise ConversionError("No cells with data, no cell edges can be traced")
    rings, chains = stitch_edges(cell_edges(grid))
    polygons = [
        _clockwise(Feature.polygon(str(i + 1), ring)) for i, ring in enumerate(rings)
    ]
    if without_islands:
        polygons = remove_islands(polygons)

    extraction = Extraction()
    for idx, (polygon, values) in enumerate(zip(polygons, zonal_values(grid, polygons))):
        _clockwise(polygon, clockwise=values.size > 0)
        extraction.features.append(polygon)
        extraction.rows[polygon.id] = ValueStatistics.from_values(values).to_row(
            source, idx
        )
    offset = len(rings)
    for i, chain in enumerate(chains):
        extraction.features.append(Feature.line(str(offset + i + 1), chain))
    return extraction


def extract(grid: Grid, source: str, hull_type: HullType, k: int = 3) -> Extraction:
    """Extract the features of one grid for a hull type."""
    match HullType(hull_type):
        case HullType.POINTS:
            return Extraction(points=qualifying_points(grid))
        case HullType.CONVEX:
            return extract_convex_hull(grid, source)
        case HullType.CONCAVE:
            return extract_concave_hull(grid, source, k)
        case HullType.EDGES:
            return extract_cell_edges(grid, source)
        case HullType.EDGES_WITH_POINTS:
            extraction = extract_cell_edges(grid, source)
            extraction.points = _cell_points(grid, outer_cell_mask(grid))
            return extraction
        case HullType.EDGES_WITHOUT_ISLANDS:
            return extract_cell_edges(grid, source, without_islands=True)


class IdfGenConverter:
    """
    Converts IDF files to GEN features, which are collected in a
    FeatureCollection. Point results are written to IPF files.
    """

    def __init__(self, settings: ConversionSettings):
        self.settings = settings
        self.merged_points: list[pd.DataFrame] = []

    def new_collection(self) -> FeatureCollection:
        return FeatureCollection(table=AttributeTable(STATISTICS_COLUMNS))

    def metadata(self, source: str) -> Metadata:
        return Metadata(
            description=(
                f"Automatic conversion from IDF to GEN-file with "
                f"{self.settings.hull_type.description} around non-NoData and "
                "non-zero cells"
            ),
            source=source,
        )

    def _ipf_path(self, input_path: Path, output_path: Path) -> Path:
        if self.settings.is_merged and self.settings.hull_type == HullType.POINTS:
            name = self.settings.merged_filename
        else:
            name = self.settings.output_filename or input_path.name
        return output_path / f"{Path(name).stem}.IPF"

    @standard_log_decorator()
    def convert(
        self, input_path: Path, collection: FeatureCollection, output_path: Path
    ) -> list[Path]:
        """
        Extract the features of an IDF file and add them to collection under
        sequential IDs, with their attribute rows.

        Returns
        -------
        written: list of Path
            IPF files written for this input file.
        """
        input_path = Path(input_path)
        output_path = Path(output_path)
        logger.info(
            f"Converting {input_path.name} to '{self.settings.hull_type.description}' ..."
        )
        grid = read_grid(input_path, self.settings.skipped_values)
        extraction = extract(
            grid, input_path.name, self.settings.hull_type, self.settings.k
        )

        for feature in extraction.features:
            row = extraction.rows.get(feature.id)
            if row is None:
                logger.warning(f"No DAT-row found for GEN-feature {feature.id}")
            collection.add_feature(feature, new_id=collection.next_id(), row=row)

        written = []
        if extraction.points is not None:
            points = extraction.points
            if self.settings.hull_type == HullType.POINTS and self.settings.is_merged:
                points = points.assign(source=input_path.name)
                self.merged_points.append(points)
            else:
                path = self._ipf_path(input_path, output_path)
                output_path.mkdir(parents=True, exist_ok=True)
                logger.info(f"Writing IPF-file {path.name} ...")
                ipf.write(path, points)
                written.append(path)
        return written

    def write_merged_points(self, output_path: Path) -> list[Path]:
        """Write the points gathered in merge mode to one IPF file."""
        if not self.merged_points:
            return []
        path = self._ipf_path(Path(self.settings.merged_filename), Path(output_path))
        Path(output_path).mkdir(parents=True, exist_ok=True)
        logger.info(f"Writing IPF-file {path.name} ...")
        ipf.write(path, pd.concat(self.merged_points, ignore_index=True))
        self.merged_points = []
        return [path]

    def write_collection(
        self, collection: FeatureCollection, path: Path, metadata: Metadata
    ) -> list[Path]:
        """Write a GEN file with its DAT and MET file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Writing GEN-file {path.name} with {len(collection)} features ...")
        gen.write(path, collection)
        written = [path]
        if collection.has_table:
            written.append(gen.dat_path(path))
        written.append(metadata.write(path, data_path=path))
        return written

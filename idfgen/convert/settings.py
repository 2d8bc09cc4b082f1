import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import Optional

from idfgen.convert.errors import ConfigurationError

DEFAULT_MERGED_FILENAME = "IDFconversion.GEN"
DEFAULT_CELLSIZE = 25.0
DEFAULT_HULL_K = 3
DEFAULT_NODATA = -9999.0


class HullType(IntEnum):
    """
    Shape extracted from the data cells of a raster.
    """

    POINTS = 0
    """IPF point per cell, no GEN features."""
    CONVEX = 1
    """Convex hull around the cell centres."""
    CONCAVE = 2
    """k-nearest neighbours concave hull around the outer cell centres."""
    EDGES = 3
    """Exact outline of the cells."""
    EDGES_WITH_POINTS = 4
    """Exact outline, plus an IPF with the outer cells."""
    EDGES_WITHOUT_ISLANDS = 5
    """Exact outline, without polygons lying inside other polygons."""

    @property
    def description(self) -> str:
        return _HULL_DESCRIPTIONS[self]


_HULL_DESCRIPTIONS = {
    HullType.POINTS: "IPF-points",
    HullType.CONVEX: "convex hull",
    HullType.CONCAVE: "concave hull",
    HullType.EDGES: "outer cell edges",
    HullType.EDGES_WITH_POINTS: "outer cell edges and outer cell points",
    HullType.EDGES_WITHOUT_ISLANDS: "outer cell edges without islands",
}


class CellOverlapMethod(IntEnum):
    """
    Criterion for a cell to be covered by a polygon.
    """

    CENTER = 1
    """The cell centre lies within the polygon."""
    OVERLAP = 2
    """The polygon overlaps part of the cell."""


class OverlapResolution(IntEnum):
    """
    Value of a cell covered by more than one polygon.
    """

    FIRST = 1
    MIN = 2
    MAX = 3
    SUM = 4
    LARGEST_CELL_AREA = 5
    """Value of the polygon that covers the largest part of the cell."""
    WEIGHTED_AVERAGE = 6
    """Average weighted by the covered part of the cell."""
    SMALLEST_CELL_AREA = 7
    LARGEST_TOTAL_AREA = 8
    """Value of the largest polygon."""
    SMALLEST_TOTAL_AREA = 9
    LAST = 10


class Direction(Enum):
    GEN_TO_IDF = "gen-to-idf"
    IDF_TO_GEN = "idf-to-gen"

    @classmethod
    def from_path(cls, path) -> Optional["Direction"]:
        suffix = Path(path).suffix.lower()
        if suffix == ".gen":
            return cls.GEN_TO_IDF
        elif suffix == ".idf":
            return cls.IDF_TO_GEN
        return None


_NUMBER = r"\s*[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?\s*"
_RANGE_PATTERN = re.compile(rf"^({_NUMBER})-({_NUMBER})$")


@dataclass(frozen=True)
class ValueRange:
    """
    Inclusive range of values. The bounds are ordered on construction.
    """

    v1: float
    v2: float

    def __post_init__(self):
        if self.v1 > self.v2:
            v1 = self.v1
            object.__setattr__(self, "v1", self.v2)
            object.__setattr__(self, "v2", v1)

    def contains(self, value: float) -> bool:
        return self.v1 <= value <= self.v2

    @property
    def is_single_value(self) -> bool:
        return self.v1 == self.v2

    @classmethod
    def parse(cls, text: str) -> "ValueRange":
        """
        Parse a single value ("-9999") or a range ("1-5", "-10--5").
        """
        text = text.strip()
        match = _RANGE_PATTERN.match(text)
        try:
            if match:
                return cls(float(match.group(1)), float(match.group(2)))
            value = float(text)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value or value range: {text}") from e
        return cls(value, value)


def parse_skipped_values(text: str) -> list[ValueRange]:
    """Parse a comma separated list of values and value ranges."""
    parts = [part for part in text.split(",") if part.strip() != ""]
    if len(parts) == 0:
        raise ConfigurationError("No values specified to skip")
    return [ValueRange.parse(part) for part in parts]


@dataclass
class ConversionSettings:
    """
    Options of a conversion run. Options for rasterizing GEN files are
    ignored for IDF files and vice versa.

    Parameters
    ----------
    cellsize: float
        Cellsize of rasterized GEN files.
    value_column: int
        One-based DAT column with the values to rasterize. Without DAT file,
        a non-negative value is used as constant value. Features are numbered
        sequentially otherwise.
    skipped_values: list of ValueRange
        Features with these values are not rasterized; raster cells with these
        values are treated as NoData.
    hull_type: HullType
    hull_k: float, optional
        Initial number of neighbours for the concave hull, 3 if not given.
        Fractions are truncated.
    add_angle: bool
        Write an IDF with the direction of the (first) line through a cell.
    add_length_area: bool
        Write IDFs with the line length and polygon area per cell.
    include_islands: bool
        Treat counter clockwise polygons as holes.
    ignore_point_order: bool
        Do not check the orientation of polygons.
    sort_features: bool
        Rasterize large features first.
    cell_overlap: CellOverlapMethod
    overlap_resolution: OverlapResolution
    merged_filename: str, optional
        When given, all extracted GEN features are merged into this file.
    output_filename: str, optional
        Name of the result when a single file is converted.
    nodata: float
        NoData value of rasterized GEN files.
    """

    cellsize: float = DEFAULT_CELLSIZE
    value_column: int = -1
    skipped_values: list[ValueRange] = field(default_factory=list)
    hull_type: HullType = HullType.CONVEX
    hull_k: Optional[float] = None
    add_angle: bool = False
    add_length_area: bool = False
    include_islands: bool = False
    ignore_point_order: bool = False
    sort_features: bool = False
    cell_overlap: CellOverlapMethod = CellOverlapMethod.CENTER
    overlap_resolution: OverlapResolution = OverlapResolution.FIRST
    merged_filename: Optional[str] = None
    output_filename: Optional[str] = None
    nodata: float = DEFAULT_NODATA

    @property
    def is_merged(self) -> bool:
        return self.merged_filename is not None

    @property
    def k(self) -> int:
        return DEFAULT_HULL_K if self.hull_k is None else int(self.hull_k)

    def validate(self) -> "ConversionSettings":
        """
        Check the settings, converting plain integers to their enums.

        Raises
        ------
        ConfigurationError
        """
        if not self.cellsize > 0.0:
            raise ConfigurationError(f"Cellsize should be positive, received {self.cellsize}")
        try:
            self.hull_type = HullType(self.hull_type)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid hull type, only values 0 - 5 are allowed: {self.hull_type}"
            ) from e
        if self.hull_k is not None and self.hull_k < 3:
            raise ConfigurationError(
                f"For the concave hull, the minimum k-value is 3, received {self.hull_k}"
            )
        try:
            self.cell_overlap = CellOverlapMethod(self.cell_overlap)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid cell overlap method, only 1 or 2 is allowed: {self.cell_overlap}"
            ) from e
        try:
            self.overlap_resolution = OverlapResolution(self.overlap_resolution)
        except ValueError as e:
            raise ConfigurationError(
                "Invalid overlap resolution method, only values 1 - 10 are allowed: "
                f"{self.overlap_resolution}"
            ) from e
        if self.output_filename is not None:
            if Path(self.output_filename).suffix.lower() not in (".gen", ".idf"):
                raise ConfigurationError(
                    f"Output filename should have .GEN or .IDF-extension: {self.output_filename}"
                )
        return self

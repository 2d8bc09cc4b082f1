"""
Summary statistics of raster values, written as attribute rows of extracted
polygons.
"""

from dataclasses import dataclass

import numpy as np

from idfgen.convert.errors import TopologyError
from idfgen.features import ID_COLUMN, Feature
from idfgen.geometry import points_in_polygon
from idfgen.grid import Grid
from idfgen.typing import FloatArray

DECIMALS = 3
STATISTICS_COLUMNS = [
    ID_COLUMN,
    "SourceFile",
    "Idx",
    "Count",
    "Average",
    "SD",
    "Median",
    "IQR",
    "Min",
    "Max",
]


def _percentile(sorted_values, percentage: float) -> float:
    # Lower rank, no interpolation
    index = int(percentage / 100.0 * (sorted_values.size - 1))
    return float(sorted_values[index])


def _format(value: float) -> str:
    if np.isnan(value):
        return "NaN"
    return f"{round(value, DECIMALS):.{DECIMALS}f}"


@dataclass
class ValueStatistics:
    count: int
    mean: float
    sd: float
    median: float
    iqr: float
    min: float
    max: float

    @classmethod
    def from_values(cls, values) -> "ValueStatistics":
        """
        Statistics of a set of values. The standard deviation is the
        population standard deviation; percentiles take the value at the
        lower rank. An empty set results in NaN statistics.
        """
        values = np.sort(np.asarray(values, dtype=np.float64).ravel())
        if values.size == 0:
            return cls(0, np.nan, np.nan, np.nan, np.nan, np.nan, np.nan)
        return cls(
            count=int(values.size),
            mean=float(values.mean()),
            sd=float(values.std()),
            median=_percentile(values, 50.0),
            iqr=_percentile(values, 75.0) - _percentile(values, 25.0),
            min=float(values[0]),
            max=float(values[-1]),
        )

    def to_row(self, source: str, idx: int) -> list[str]:
        """Attribute values in the order of STATISTICS_COLUMNS, without ID."""
        return [
            source,
            str(idx),
            str(self.count),
            _format(self.mean),
            _format(self.sd),
            _format(self.median),
            _format(self.iqr),
            _format(self.min),
            _format(self.max),
        ]


def zonal_values(grid: Grid, polygons: list[Feature]) -> list[FloatArray]:
    """
    Values of the data cells per polygon. Every data cell is assigned to the
    smallest polygon containing its centre.

    Raises
    ------
    TopologyError
        When the centre of a data cell lies outside all polygons.
    """
    rows, cols = np.nonzero(grid.data_mask())
    x = grid.xcoords()[cols]
    y = grid.ycoords()[rows]
    values = grid.values[rows, cols].astype(np.float64)
    owner = np.full(rows.size, -1)

    areas = [abs(polygon.area) for polygon in polygons]
    for i in np.argsort(areas, kind="stable"):
        extent = polygons[i].extent
        index = np.flatnonzero(
            (owner == -1)
            & (x >= extent.xmin)
            & (x <= extent.xmax)
            & (y >= extent.ymin)
            & (y <= extent.ymax)
        )
        if index.size == 0:
            continue
        inside = points_in_polygon(x[index], y[index], polygons[i].points)
        owner[index[inside]] = i

    unmatched = np.flatnonzero(owner == -1)
    if unmatched.size > 0:
        first = unmatched[0]
        raise TopologyError(
            f"No polygon found for cell ({rows[first]}, {cols[first]}) with centre "
            f"({x[first]}, {y[first]}), {unmatched.size} cell(s) unmatched"
        )
    return [values[owner == i] for i in range(len(polygons))]

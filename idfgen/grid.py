"""
Regular raster grid with a NoData sentinel, addressable by coordinates.

Rows run from north to south, columns from west to east. A coordinate on an
interior row boundary belongs to the northern cell, a coordinate on an
interior column boundary to the eastern cell.
"""

from typing import Optional

import numpy as np
import xarray as xr

from idfgen.geometry import Extent
from idfgen.typing import BoolArray, FloatArray

# Shifts coordinates on the upper boundary into the first row
ROW_TOLERANCE = 1.0e-5


def _xycoords(extent: Extent, dx: float, dy: float) -> dict:
    """Cell centre coordinates, dy negative as for IDF files."""
    ncol = int(round(extent.width / dx))
    nrow = int(round(extent.height / dy))
    return {
        "y": extent.ymax - (np.arange(nrow) + 0.5) * dy,
        "x": extent.xmin + (np.arange(ncol) + 0.5) * dx,
        "dx": float(dx),
        "dy": -float(dy),
    }


def spatial_reference(da: xr.DataArray) -> tuple[float, float, float, float, float, float]:
    """
    Extract (dx, xmin, xmax, dy, ymin, ymax) from an equidistant DataArray
    with cell centre coordinates. Cellsizes are returned positive.
    """
    reference = []
    for dim in ("x", "y"):
        coord = da[dim].values.astype(np.float64)
        name = f"d{dim}"
        if name in da.coords:
            cellsize = abs(float(da.coords[name]))
        elif coord.size > 1:
            steps = np.abs(np.diff(coord))
            cellsize = float(steps[0])
            if not np.allclose(steps, cellsize, atol=abs(1.0e-4 * cellsize)):
                raise ValueError(f"DataArray has to be equidistant along {dim}")
        else:
            raise ValueError(
                f"DataArray has size 1 along {dim}, so cellsize must be provided"
                f" as a coordinate named {name}."
            )
        reference.extend(
            [
                cellsize,
                float(coord.min()) - 0.5 * cellsize,
                float(coord.max()) + 0.5 * cellsize,
            ]
        )
    return tuple(reference)


class Grid:
    """
    Raster of float32 values covering an extent with square or rectangular
    cells.

    Parameters
    ----------
    extent: Extent
        Outer bounds of the raster; width and height should be multiples of
        the cellsizes.
    dx: float
        Cell width.
    dy: float, optional
        Cell height, defaults to dx.
    nodata: float
        Value marking cells without data.
    values: np.ndarray, optional
        Initial values with shape (nrow, ncol). When omitted, the grid is
        filled with nodata.
    """

    def __init__(
        self,
        extent: Extent,
        dx: float,
        dy: Optional[float] = None,
        nodata: float = -9999.0,
        values: Optional[FloatArray] = None,
    ):
        if dy is None:
            dy = dx
        if dx <= 0.0 or dy <= 0.0:
            raise ValueError(f"Cellsizes must be positive, received {dx}, {dy}")
        self.extent = extent
        self.dx = float(dx)
        self.dy = float(dy)
        self.nodata = float(np.float32(nodata))
        self.nrow = max(int(round(extent.height / self.dy)), 1)
        self.ncol = max(int(round(extent.width / self.dx)), 1)
        if values is None:
            self.values = np.full((self.nrow, self.ncol), self.nodata, dtype=np.float32)
        else:
            values = np.asarray(values, dtype=np.float32)
            if values.shape != (self.nrow, self.ncol):
                raise ValueError(
                    f"Shape of values {values.shape} does not match grid shape "
                    f"{(self.nrow, self.ncol)}"
                )
            self.values = values

    def __repr__(self) -> str:
        return (
            f"Grid(extent={tuple(self.extent)}, dx={self.dx}, dy={self.dy}, "
            f"shape={(self.nrow, self.ncol)}, nodata={self.nodata})"
        )

    @classmethod
    def like(cls, other: "Grid", nodata: Optional[float] = None) -> "Grid":
        """Empty grid with the same geometry as other."""
        return cls(
            other.extent, other.dx, other.dy, other.nodata if nodata is None else nodata
        )

    def copy(self) -> "Grid":
        return Grid(self.extent, self.dx, self.dy, self.nodata, self.values.copy())

    # Coordinates
    # -----------
    def row_index(self, y: float) -> int:
        return int((self.extent.ymax - ROW_TOLERANCE - y) / self.dy)

    def col_index(self, x: float) -> int:
        return int((x - self.extent.xmin) / self.dx)

    def x(self, col: int) -> float:
        return self.extent.xmin + (col + 0.5) * self.dx

    def y(self, row: int) -> float:
        return self.extent.ymax - (row + 0.5) * self.dy

    def xcoords(self) -> FloatArray:
        return self.extent.xmin + (np.arange(self.ncol) + 0.5) * self.dx

    def ycoords(self) -> FloatArray:
        return self.extent.ymax - (np.arange(self.nrow) + 0.5) * self.dy

    def cell_extent(self, row: int, col: int) -> Extent:
        x = self.x(col)
        y = self.y(row)
        return Extent(
            x - 0.5 * self.dx, y - 0.5 * self.dy, x + 0.5 * self.dx, y + 0.5 * self.dy
        )

    def contains_cell(self, row: int, col: int) -> bool:
        return (0 <= row < self.nrow) and (0 <= col < self.ncol)

    def contains(self, x: float, y: float) -> bool:
        return self.extent.contains(x, y) and self.contains_cell(
            self.row_index(y), self.col_index(x)
        )

    # Values
    # ------
    def is_nodata(self, values) -> BoolArray:
        values = np.asarray(values)
        return (values == np.float32(self.nodata)) | np.isnan(values)

    def get_value(self, x: float, y: float) -> float:
        """Value at (x, y); NaN outside of the grid."""
        if not self.contains(x, y):
            return np.nan
        return float(self.values[self.row_index(y), self.col_index(x)])

    def set_value(self, x: float, y: float, value: float) -> None:
        if self.contains(x, y):
            self.values[self.row_index(y), self.col_index(x)] = value

    def add_value(self, x: float, y: float, value: float) -> None:
        """Add value to the cell at (x, y); a NoData cell counts as zero."""
        if self.contains(x, y):
            self.add_at(self.row_index(y), self.col_index(x), value)

    def add_at(self, row: int, col: int, value: float) -> None:
        if not self.contains_cell(row, col):
            return
        current = self.values[row, col]
        if self.is_nodata(current):
            self.values[row, col] = value
        else:
            self.values[row, col] = current + value

    def window(self, row: int, col: int) -> FloatArray:
        """
        3 x 3 block of values centred on (row, col). Positions outside of the
        grid are NaN.
        """
        block = np.full((3, 3), np.nan)
        for i in range(3):
            for j in range(3):
                r = row + i - 1
                c = col + j - 1
                if self.contains_cell(r, c):
                    block[i, j] = self.values[r, c]
        return block

    def replace_where(self, other: "Grid", match: float, value: float) -> None:
        """Set cells to value where the cell of other equals match."""
        if match == other.nodata:
            mask = other.is_nodata(other.values)
        else:
            mask = other.values == np.float32(match)
        self.values[mask] = value

    def replace_range(self, vmin: float, vmax: float, value: float) -> None:
        """Set cells with a value within [vmin, vmax] to value."""
        mask = (self.values >= vmin) & (self.values <= vmax)
        self.values[mask] = value

    def data_mask(self) -> BoolArray:
        return ~self.is_nodata(self.values)

    def count(self) -> int:
        """Number of cells with data."""
        return int(self.data_mask().sum())

    def data_extent(self) -> Optional[Extent]:
        """Extent of the cells with data, None for an empty grid."""
        rows, cols = np.nonzero(self.data_mask())
        if rows.size == 0:
            return None
        return Extent(
            self.extent.xmin + cols.min() * self.dx,
            self.extent.ymax - (rows.max() + 1) * self.dy,
            self.extent.xmin + (cols.max() + 1) * self.dx,
            self.extent.ymax - rows.min() * self.dy,
        )

    # Conversion
    # ----------
    def to_dataarray(self, name: Optional[str] = None) -> xr.DataArray:
        """DataArray with NaN for NoData and the sentinel in ``attrs``."""
        values = self.values.copy()
        values[self.is_nodata(values)] = np.nan
        coords = _xycoords(self.extent, self.dx, self.dy)
        return xr.DataArray(
            values, coords=coords, dims=("y", "x"), name=name, attrs={"nodata": self.nodata}
        )

    @classmethod
    def from_dataarray(cls, da: xr.DataArray, nodata: Optional[float] = None) -> "Grid":
        """
        Grid from a DataArray with dims ("y", "x"). NaN becomes nodata, which
        defaults to ``da.attrs["nodata"]`` or -9999.0.
        """
        if da.dims != ("y", "x"):
            raise ValueError(
                f"Dimensions must be exactly ('y', 'x'). Received {da.dims} instead."
            )
        if nodata is None:
            nodata = da.attrs.get("nodata", -9999.0)
        if not da.indexes["x"].is_monotonic_increasing:
            da = da.isel(x=slice(None, None, -1))
        if not da.indexes["y"].is_monotonic_decreasing:
            da = da.isel(y=slice(None, None, -1))
        dx, xmin, xmax, dy, ymin, ymax = spatial_reference(da)
        values = da.values.astype(np.float32)
        values[np.isnan(values)] = nodata
        return cls(Extent(xmin, ymin, xmax, ymax), dx, dy, nodata, values)

"""
Functions for reading and writing iMOD Data Files (IDFs) to ``xarray`` objects.

An IDF is a little-endian binary file: a header with the raster geometry,
followed by the values row by row from north to south. Only equidistant IDFs
are supported. On reading, nodata values become NaN and the sentinel is kept
in ``attrs["nodata"]``.
"""

import struct
from dataclasses import dataclass
from typing import BinaryIO, NamedTuple

import numpy as np
import xarray as xr

from idfgen.geometry import Extent
from idfgen.grid import _xycoords, spatial_reference
from idfgen.typing import PathLike


class Precision(NamedTuple):
    """Layout of the header fields for one floating point precision."""

    reclen_id: int
    float_format: str
    int_format: str
    dtype: type
    # Bytes following the record length identifier and the flags
    padding: int

    @property
    def float_size(self) -> int:
        return struct.calcsize(f"<{self.float_format}")

    def unpack(self, fmt: str, f: BinaryIO) -> tuple:
        fmt = "<" + fmt.replace("F", self.float_format).replace("I", self.int_format)
        return struct.unpack(fmt, f.read(struct.calcsize(fmt)))

    def pack(self, fmt: str, *values) -> bytes:
        fmt = "<" + fmt.replace("F", self.float_format).replace("I", self.int_format)
        return struct.pack(fmt, *values)


SINGLE_PRECISION = Precision(1271, "f", "i", np.float32, 0)
DOUBLE_PRECISION = Precision(2295, "d", "q", np.float64, 4)
# 2296 was a typo in the iMOD manual; some files were written with it.
RECLEN_IDS = {1271: SINGLE_PRECISION, 2295: DOUBLE_PRECISION, 2296: DOUBLE_PRECISION}


@dataclass
class IdfHeader:
    ncol: int
    nrow: int
    xmin: float
    xmax: float
    ymin: float
    ymax: float
    dx: float
    dy: float
    nodata: float
    dmin: float = 0.0
    dmax: float = 0.0
    precision: Precision = SINGLE_PRECISION

    @property
    def extent(self) -> Extent:
        return Extent(self.xmin, self.ymin, self.xmax, self.ymax)

    @property
    def dtype(self) -> type:
        return self.precision.dtype

    @classmethod
    def from_file(cls, f: BinaryIO, path: PathLike = "") -> "IdfHeader":
        """
        Parse the header, leaving ``f`` positioned at the start of the values.
        """
        (reclen_id,) = struct.unpack("<i", f.read(4))
        precision = RECLEN_IDS.get(reclen_id)
        if precision is None:
            raise ValueError(
                f"Not a supported IDF file: {path}\n"
                "Record length identifier should be 1271 or 2295, "
                f"received {reclen_id} instead."
            )
        f.read(precision.padding)
        ncol, nrow = precision.unpack("II", f)
        xmin, xmax, ymin, ymax, dmin, dmax, nodata = precision.unpack("7F", f)
        # ieq is False for equidistant files, itb flags a top and bottom
        ieq, itb = precision.unpack("??xx", f)
        f.read(precision.padding)
        if ieq:
            raise ValueError(f"Non-equidistant IDF files are not supported: {path}")
        dx, dy = precision.unpack("FF", f)
        if itb:
            f.read(2 * precision.float_size)
        return cls(
            ncol, nrow, xmin, xmax, ymin, ymax, dx, dy, nodata, dmin, dmax, precision
        )

    def to_bytes(self) -> bytes:
        p = self.precision
        return b"".join(
            [
                struct.pack("<i", p.reclen_id),
                p.pack("i", p.reclen_id) if p.padding else b"",
                p.pack("II", self.ncol, self.nrow),
                p.pack(
                    "7F",
                    self.xmin,
                    self.xmax,
                    self.ymin,
                    self.ymax,
                    self.dmin,
                    self.dmax,
                    self.nodata,
                ),
                p.pack("??xx", False, False),
                bytes(p.padding),
                p.pack("FF", abs(self.dx), abs(self.dy)),
            ]
        )


def header(path: PathLike) -> IdfHeader:
    """Read the IDF header."""
    with open(path, "rb") as f:
        return IdfHeader.from_file(f, path)


def read(path: PathLike) -> xr.DataArray:
    """
    Read a single IDF file to an xarray.DataArray with dims ("y", "x").

    Parameters
    ----------
    path : str or Path

    Returns
    -------
    xarray.DataArray
        Nodata values are replaced by NaN; the nodata value of the file is
        stored in ``attrs["nodata"]``.
    """
    with open(path, "rb") as f:
        attrs = IdfHeader.from_file(f, path)
        count = attrs.nrow * attrs.ncol
        a = np.fromfile(f, np.dtype(attrs.dtype).newbyteorder("<"), count)
    if a.size != count:
        raise ValueError(
            f"IDF file {path} holds {a.size} values, expected {attrs.nrow} x {attrs.ncol}"
        )
    a = a.astype(attrs.dtype).reshape((attrs.nrow, attrs.ncol))
    a[a == attrs.dtype(attrs.nodata)] = np.nan
    coords = _xycoords(attrs.extent, attrs.dx, attrs.dy)
    return xr.DataArray(a, coords=coords, dims=("y", "x"), attrs={"nodata": attrs.nodata})


def write(path: PathLike, a: xr.DataArray, nodata: float = 1.0e20, dtype=np.float32):
    """
    Write a 2D xarray.DataArray to an IDF file.

    Parameters
    ----------
    path : str or Path
        Path to the IDF file to be written
    a : xarray.DataArray
        DataArray to be written. It needs to have exactly a.dims == ('y', 'x').
    nodata : float, optional
        Nodata value in the saved IDF file, NaN values are replaced by it.
        Defaults to a value of 1.0e20.
    dtype : np.float32 or np.float64
    """
    if not isinstance(a, xr.DataArray):
        raise TypeError("Data to write must be an xarray.DataArray")
    if not a.dims == ("y", "x"):
        raise ValueError(
            f"Dimensions must be exactly ('y', 'x'). Received {a.dims} instead."
        )
    if dtype == np.float32:
        precision = SINGLE_PRECISION
    elif dtype == np.float64:
        precision = DOUBLE_PRECISION
    else:
        raise ValueError("Invalid dtype, IDF allows only np.float32 and np.float64")

    flip = slice(None, None, -1)
    if not a.indexes["x"].is_monotonic_increasing:
        a = a.isel(x=flip)
    if not a.indexes["y"].is_monotonic_decreasing:
        a = a.isel(y=flip)

    values = a.values.astype(precision.dtype)
    data = values[~np.isnan(values)]
    values[np.isnan(values)] = nodata
    dx, xmin, xmax, dy, ymin, ymax = spatial_reference(a)
    attrs = IdfHeader(
        ncol=a.x.size,
        nrow=a.y.size,
        xmin=xmin,
        xmax=xmax,
        ymin=ymin,
        ymax=ymax,
        dx=dx,
        dy=dy,
        nodata=nodata,
        dmin=float(data.min()) if data.size else nodata,
        dmax=float(data.max()) if data.size else nodata,
        precision=precision,
    )
    with open(path, "wb") as f:
        f.write(attrs.to_bytes())
        values.astype(np.dtype(precision.dtype).newbyteorder("<")).tofile(f)

"""
Functions for reading and writing iMOD GEN files, in ASCII and binary form,
together with the DAT attribute file that accompanies an ASCII GEN file.
"""

import io
import warnings
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
import shapely
from scipy.io import FortranFile, FortranFormattingError

from idfgen.features import (
    ID_COLUMN,
    AttributeTable,
    Feature,
    FeatureCollection,
    FeatureType,
    format_value,
)
from idfgen.typing import PathLike

# DAT text format:
# ----------------


def dat_path(path: PathLike) -> Path:
    return Path(path).with_suffix(".DAT")


def _find_dat(path: PathLike) -> Optional[Path]:
    """Case-insensitive lookup of the DAT file next to a GEN file."""
    path = Path(path)
    for suffix in (".DAT", ".dat", ".Dat"):
        candidate = path.with_suffix(suffix)
        if candidate.exists():
            return candidate
    return None


def _quote(value: str) -> str:
    if ("," in value or " " in value) and not value.startswith("'"):
        return f"'{value}'"
    return value


def read_dat(path: PathLike) -> AttributeTable:
    """
    Read a DAT file: a header line with column names followed by one row per
    feature. Values are separated by commas, or by spaces when the header
    contains no comma. Single quotes protect separators within a value.
    """
    with open(path, "r") as f:
        lines = [line.strip() for line in f if line.strip() != ""]
    if len(lines) == 0:
        raise ValueError(f"DAT file is empty: {path}")

    separator = "," if ("," in lines[0] or " " not in lines[0]) else r"\s+"
    # The header is read as a row, so rows with too many values raise
    try:
        df = pd.read_csv(
            io.StringIO("\n".join(lines)),
            header=None,
            sep=separator,
            quotechar="'",
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
        )
    except pd.errors.ParserError as e:
        raise ValueError(f"Invalid number of values in DAT file {path}: {e}") from e

    missing = df.isna().any(axis=1).to_numpy()
    if missing.any():
        number = int(np.argmax(missing)) + 1
        raise ValueError(
            f"Invalid number of values in line {number} of DAT file {path}: "
            f"expected {df.shape[1]}, found {int(df.iloc[number - 1].notna().sum())}"
        )
    df = df.apply(lambda column: column.str.strip())
    columns = [c.replace('"', "") for c in df.iloc[0]]
    return AttributeTable.from_dataframe(df.iloc[1:].set_axis(columns, axis=1))


def write_dat(path: PathLike, table: AttributeTable) -> None:
    df = table.to_dataframe()
    for column in df.columns:
        df[column] = df[column].map(_quote)
    rows = np.vstack([[_quote(c) for c in table.columns], df.to_numpy(dtype=str)])
    np.savetxt(path, rows, fmt="%s", delimiter=",", encoding="utf-8")


# ASCII text format:
# ------------------


def parse_ascii_points(lines: list[str]) -> list[Feature]:
    features = []
    for line in lines:
        if line.lower() == "end":
            break
        fid, x, y = (v.strip() for v in line.split(",")[:3])
        features.append(Feature.point(fid, float(x), float(y)))
    return features


def _split_vertex(line: str) -> list[str]:
    return line.replace(",", " ").replace("\t", " ").split()


def parse_ascii_segments(lines: list[str]) -> list[Feature]:
    features = []
    i = 0
    n = len(lines)
    while i < n:
        if lines[i].lower() == "end":
            i += 1
            continue
        fid = lines[i]
        i += 1
        coords = []
        while i < n and lines[i].lower() != "end":
            values = _split_vertex(lines[i])
            if len(values) not in (2, 3):
                raise ValueError(f"Unexpected coordinate count in line: {lines[i]}")
            coords.append((float(values[0]), float(values[1])))
            i += 1
        i += 1  # skip "end"
        if len(coords) == 0:
            continue
        xy = np.array(coords)
        features.append(Feature(FeatureType.infer(xy), fid, xy))
    return features


def read_ascii(path: PathLike) -> FeatureCollection:
    """
    Read an ASCII GEN file, and the DAT file next to it when present.

    Parameters
    ----------
    path: Union[str, Path]

    Returns
    -------
    collection: FeatureCollection
    """
    with open(path, "r") as f:
        lines = [line.strip() for line in f.readlines() if line.strip() != ""]

    if len(lines) == 0:
        features = []
    elif len(lines[0].split(",")) == 3:
        features = parse_ascii_points(lines)
    else:
        features = parse_ascii_segments(lines)

    table = None
    datfile = _find_dat(path)
    if datfile is not None:
        table = read_dat(datfile)
    return FeatureCollection(features, table)


def write_ascii(path: PathLike, collection: FeatureCollection) -> None:
    """
    Write features to an ASCII GEN file. When the collection has an attribute
    table, it is written to a DAT file with the same name.
    """
    points = [f for f in collection if f.feature_type is FeatureType.POINT]
    if points and len(points) != len(collection):
        raise ValueError("Points cannot be mixed with lines or polygons in a GEN file")

    with open(path, "w") as f:
        if points:
            for feature in points:
                x, y = feature.points[0]
                f.write(f"{feature.id},{format_value(x)},{format_value(y)}\n")
        else:
            for feature in collection:
                f.write(f"{_quote(feature.id)}\n")
                for x, y in feature.points:
                    f.write(f" {format_value(x)}, {format_value(y)}\n")
                f.write("END\n")
        f.write("END\n")

    if collection.table is not None:
        write_dat(dat_path(path), collection.table)


# Binary format:
# --------------
#
# From the iMOD User Manual
FLOAT_TYPE = np.float64
INT_TYPE = np.int32
HEADER_TYPE = np.int32
CIRCLE = 1024
POLYGON = 1025
RECTANGLE = 1026
POINT = 1027
LINE = 1028
MAX_NAME_WIDTH = 11

FEATURETYPE_TO_GENTYPE = {
    FeatureType.POLYGON: POLYGON,
    FeatureType.LINE: LINE,
    FeatureType.POINT: POINT,
}


class GenFortranFile(FortranFile):
    """
    Binary GEN files are Fortran record files. The scipy FortranFile lacks
    methods for char records (always ascii encoded), which are added here.
    """

    def read_char_record(self) -> str:
        first_size = self._read_size(eof_ok=True)
        string = self._fp.read(first_size).decode("utf-8")
        if len(string) != first_size:
            raise FortranFormattingError("End of file in the middle of a record")
        second_size = self._read_size(eof_ok=True)
        if first_size != second_size:
            raise IOError("Sizes do not agree in the header and footer for this record")
        return string

    def write_char_record(self, string: str) -> None:
        bytes_string = string.encode("ascii")
        nb = np.array([len(bytes_string)], dtype=self._header_dtype)
        nb.tofile(self._fp)
        self._fp.write(bytes_string)
        nb.tofile(self._fp)


def _from_binary_vertices(gentype: int, fid: str, xy: np.ndarray) -> Feature:
    # Circles and rectangles are stored by two vertices each
    if gentype == CIRCLE:
        radius = np.sqrt(np.sum((xy[1] - xy[0]) ** 2))
        polygon = shapely.Point(xy[0]).buffer(radius)
        return Feature.polygon(fid, np.asarray(polygon.exterior.coords))
    elif gentype == RECTANGLE:
        polygon = shapely.box(xy[0, 0], xy[0, 1], xy[1, 0], xy[1, 1])
        return Feature.polygon(fid, np.asarray(polygon.exterior.coords))
    elif gentype == POLYGON:
        return Feature.polygon(fid, xy)
    elif gentype == LINE:
        return Feature.line(fid, xy)
    elif gentype == POINT:
        return Feature.point(fid, xy[0, 0], xy[0, 1])
    raise ValueError(f"Unknown GEN feature type: {gentype}")


def read_binary(path: PathLike) -> FeatureCollection:
    """
    Read a binary GEN file. The attribute columns stored in the file form the
    attribute table; its first column provides the feature IDs.

    Parameters
    ----------
    path: Union[str, Path]

    Returns
    -------
    collection: FeatureCollection
    """
    with warnings.catch_warnings(record=True):
        warnings.filterwarnings(
            "ignore", message="Given a dtype which is not unsigned."
        )
        with GenFortranFile(path, mode="r", header_dtype=HEADER_TYPE) as f:
            f.read_reals(dtype=FLOAT_TYPE)  # Skip the bounding box
            n_feature, n_column = f.read_ints(dtype=INT_TYPE)
            if n_column > 0:
                widths = f.read_ints(dtype=INT_TYPE)
                indices = range(0, (n_column + 1) * MAX_NAME_WIDTH, MAX_NAME_WIDTH)
                string = f.read_char_record()
                names = [string[i:j].strip() for i, j in zip(indices[:-1], indices[1:])]

            xy = []
            rows = []
            gentypes = []
            for _ in range(n_feature):
                _, gentype = f.read_ints(dtype=INT_TYPE)
                gentypes.append(int(gentype))
                if n_column > 0:
                    rows.append(f.read_char_record())
                f.read_reals(dtype=FLOAT_TYPE)  # skip the bounding box
                xy.append(f.read_reals(dtype=FLOAT_TYPE).reshape((-1, 2)))

    table = None
    ids = [str(i + 1) for i in range(n_feature)]
    if n_column > 0:
        df = pd.read_fwf(
            io.StringIO("\n".join(rows)),
            widths=list(widths),
            names=names,
            header=None,
            dtype=str,
        ).fillna("")
        ids = df.iloc[:, 0].astype(str).tolist()
        table = AttributeTable.from_dataframe(df)

    features = [
        _from_binary_vertices(gentype, fid, vertices)
        for gentype, fid, vertices in zip(gentypes, ids, xy)
    ]
    return FeatureCollection(features, table)


def write_binary(path: PathLike, collection: FeatureCollection) -> None:
    """
    Write features to a binary GEN file, including the attribute table. Without
    a table, the feature IDs are written as the only column.
    """
    if collection.table is not None:
        df = collection.table.to_dataframe().set_index(ID_COLUMN, drop=False)
        df = df.reindex([f.id for f in collection]).fillna("")
        df[ID_COLUMN] = [f.id for f in collection]
    else:
        df = pd.DataFrame({ID_COLUMN: [f.id for f in collection]})
    df = df.astype(str)

    n_feature, n_column = df.shape
    # Truncate column names to 11 chars, then make everything at least 11 chars
    column_names = "".join([c[:MAX_NAME_WIDTH].ljust(MAX_NAME_WIDTH) for c in df])
    widths = []
    for column in df:
        width = max(MAX_NAME_WIDTH, int(df[column].str.len().max()))
        df[column] = df[column].str.pad(width, side="right")
        widths.append(width)

    extent = collection.extent
    with warnings.catch_warnings(record=True):
        warnings.filterwarnings(
            "ignore", message="Given a dtype which is not unsigned."
        )
        with GenFortranFile(path, mode="w", header_dtype=HEADER_TYPE) as f:
            f.write_record(
                np.array(
                    [extent.xmin, extent.ymin, extent.xmax, extent.ymax],
                    dtype=FLOAT_TYPE,
                )
            )
            f.write_record(np.array([n_feature, n_column], dtype=INT_TYPE))
            f.write_record(np.array(widths).astype(INT_TYPE))
            f.write_char_record(column_names)
            for feature, row in zip(collection, df.itertuples(index=False)):
                gentype = FEATURETYPE_TO_GENTYPE[feature.feature_type]
                f.write_record(
                    np.array([feature.points.shape[0], gentype], dtype=INT_TYPE)
                )
                f.write_char_record("".join(row))
                bounds = feature.extent
                f.write_record(
                    np.array(
                        [bounds.xmin, bounds.ymin, bounds.xmax, bounds.ymax],
                        dtype=FLOAT_TYPE,
                    )
                )
                f.write_record(feature.points.astype(FLOAT_TYPE))


def read(path: PathLike) -> FeatureCollection:
    """
    Read a GEN file. The function first tries to read it as binary; if this
    fails, it reads it as ASCII.

    Parameters
    ----------
    path: Union[str, Path]

    Returns
    -------
    collection: FeatureCollection
    """
    try:
        return read_binary(path)
    except Exception:
        try:
            return read_ascii(path)
        except Exception as e:
            raise type(e)(f'{e}\nWhile reading GEN file "{path}"') from e


def write(path: PathLike, collection: FeatureCollection, binary: bool = False) -> None:
    if binary:
        write_binary(path, collection)
    else:
        write_ascii(path, collection)

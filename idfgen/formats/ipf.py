"""
Functions for reading and writing iMOD Point Files (IPFs) to ``pandas.DataFrame``.

An IPF starts with the number of rows, the number of columns, one line per
column name and a line with the index of the column referring to associated
files plus their extension. Associated (timeseries) files are not supported:
the index is always written as zero.
"""

import csv
import io
from typing import Optional, TextIO

import numpy as np
import pandas as pd

from idfgen.typing import PathLike

ASSOCIATED_FILES = "0,TXT"


def _read_header(f: TextIO) -> tuple[int, list[str]]:
    nrow = int(f.readline())
    ncol = int(f.readline())
    colnames = [f.readline().strip().strip("'\"") for _ in range(ncol)]
    f.readline()
    return nrow, colnames


def _separator(line: str, ncol: int) -> Optional[str]:
    """
    Comma separated rows give None (the default of read_csv), whitespace
    separated rows a regular expression.
    """
    n_elem = len(next(csv.reader([line])))
    if n_elem == ncol:
        return None
    elif n_elem == 1:
        return r"\s+"
    raise ValueError(
        f"Inconsistent IPF: header states {ncol} columns, first line contains {n_elem}"
    )


def read(path: PathLike) -> pd.DataFrame:
    """
    Read an IPF file to a pandas.DataFrame.

    Parameters
    ----------
    path: pathlib.Path or str

    Returns
    -------
    pandas.DataFrame
    """
    with open(path) as f:
        nrow, colnames = _read_header(f)
        rows = f.read().splitlines()[:nrow]

    if not rows:
        return pd.DataFrame(columns=colnames)
    kwargs = {"header": None, "names": colnames, "skipinitialspace": True}
    separator = _separator(rows[0], len(colnames))
    if separator is not None:
        kwargs["sep"] = separator
    return pd.read_csv(io.StringIO("\n".join(rows)), **kwargs)


def _quote(text: str) -> str:
    if "," in text or " " in text:
        return f'"{text}"'
    return text


def write(path: PathLike, df: pd.DataFrame, nodata: float = 1.0e20) -> None:
    """
    Write a DataFrame to an IPF file.

    Parameters
    ----------
    path : pathlib.Path or str
        path of the written IPF file.
    df : pandas.DataFrame
        The first two columns should hold the x and y coordinates. Missing
        values are written as ``nodata``, text columns between double quotes.
    nodata : float
        Value written for missing values.
    """
    df = df.fillna(nodata)
    for column in df.columns:
        if df[column].dtype == np.dtype("O"):
            df[column] = '"' + df[column].astype(str) + '"'

    header = [str(len(df)), str(len(df.columns))]
    header.extend(_quote(str(name)) for name in df.columns)
    header.append(ASSOCIATED_FILES)
    with open(path, "w", newline="") as f:
        f.write("\n".join(header) + "\n")
        # Text columns are quoted already: QUOTE_NONNUMERIC would quote more
        # than iMOD accepts
        df.to_csv(
            f, index=False, header=False, quoting=csv.QUOTE_NONE, lineterminator="\n"
        )

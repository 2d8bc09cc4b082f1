"""
Conversion between GEN features and IDF grids.

:func:`idfgen.convert.convert` converts all matching files of a directory;
the extension of a file determines the direction of its conversion. Options
are collected in :class:`idfgen.convert.ConversionSettings`.
"""

from idfgen.convert.errors import ConfigurationError, ConversionError, TopologyError
from idfgen.convert.gen_to_idf import GenIdfConverter, rasterize
from idfgen.convert.idf_to_gen import IdfGenConverter, extract
from idfgen.convert.run import RunSummary, convert, convert_files
from idfgen.convert.settings import (
    CellOverlapMethod,
    ConversionSettings,
    HullType,
    OverlapResolution,
    ValueRange,
    parse_skipped_values,
)

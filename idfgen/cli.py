"""
Command line interface: ``python -m idfgen INPATH FILTER OUTPATH [options]``.
"""

import argparse
import sys
from typing import Optional

from idfgen.convert.errors import ConversionError
from idfgen.convert.run import convert
from idfgen.convert.settings import (
    DEFAULT_CELLSIZE,
    DEFAULT_HULL_K,
    DEFAULT_MERGED_FILENAME,
    CellOverlapMethod,
    ConversionSettings,
    HullType,
    OverlapResolution,
    parse_skipped_values,
)
from idfgen.logging import LoggerType, LogLevel, configure, logger
from idfgen.logging.ilogger import DEFAULT_LOG_FILE


def _numbers(text: str, name: str, maximum: int) -> list[str]:
    parts = [part.strip() for part in text.split(",")]
    if len(parts) > maximum or any(part == "" for part in parts):
        raise argparse.ArgumentTypeError(f"Invalid {name} option: {text}")
    return parts


def parse_hull(text: str) -> tuple[int, Optional[float]]:
    """Parse ``TYPE[,K]``; a fractional k is truncated when the hull is built."""
    parts = _numbers(text, "hull", 2)
    try:
        hull_type = HullType(int(parts[0]))
        k = float(parts[1]) if len(parts) > 1 else None
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid hull option: {text}") from e
    return hull_type, k


def parse_grid(text: str) -> tuple[float, int]:
    """Parse ``CELLSIZE[,COLUMN]``."""
    parts = _numbers(text, "grid", 2)
    try:
        cellsize = float(parts[0])
        column = int(parts[1]) if len(parts) > 1 else -1
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid grid option: {text}") from e
    return cellsize, column


def _skipped(text: str):
    try:
        return parse_skipped_values(text)
    except ConversionError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _enum_choice(enum):
    def parse(text: str):
        try:
            return enum(int(text))
        except ValueError:
            pass
        try:
            return enum[text.upper().replace("-", "_")]
        except KeyError as e:
            raise argparse.ArgumentTypeError(
                f"Invalid value {text}, choose from {[m.name.lower() for m in enum]}"
            ) from e

    return parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="idfgen",
        description=(
            "Convert GEN-files to IDF-files and IDF-files to GEN-files. The "
            "extension of an input file determines the direction."
        ),
    )
    parser.add_argument("inpath", help="Directory with the input files")
    parser.add_argument("filter", help="Filename filter, e.g. *.GEN")
    parser.add_argument(
        "outpath",
        help="Output directory; a GEN or IDF filename sets the output filename "
        "for a single input file",
    )
    parser.add_argument(
        "--hull",
        "-H",
        type=parse_hull,
        default=(HullType.CONVEX, None),
        metavar="TYPE[,K]",
        help="IDF to GEN: 0 IPF-points, 1 convex hull (default), 2 concave hull "
        f"with k neighbours (default {DEFAULT_HULL_K}), 3 outer cell edges, 4 "
        "outer cell edges and outer cell points, 5 outer cell edges without "
        "islands",
    )
    parser.add_argument(
        "--merge",
        "-m",
        nargs="?",
        const=DEFAULT_MERGED_FILENAME,
        default=None,
        metavar="FILENAME",
        help="IDF to GEN: merge all features into one GEN-file "
        f"(default name {DEFAULT_MERGED_FILENAME})",
    )
    parser.add_argument(
        "--skip",
        "-s",
        type=_skipped,
        default=[],
        metavar="VALUES",
        help="Comma separated values or ranges (v1-v2) to skip, e.g. -9999,1-5",
    )
    parser.add_argument(
        "--grid",
        "-g",
        type=parse_grid,
        default=(DEFAULT_CELLSIZE, -1),
        metavar="CELLSIZE[,COLUMN]",
        help="GEN to IDF: cellsize (default 25) and the one-based DAT column "
        "with values; without DAT-file the column number is the value",
    )
    parser.add_argument(
        "--angle", "-a", action="store_true", help="GEN to IDF: write line angles"
    )
    parser.add_argument(
        "--length-area",
        "-l",
        action="store_true",
        help="GEN to IDF: write line length and polygon area per cell",
    )
    parser.add_argument(
        "--islands",
        "-i",
        action="store_true",
        help="GEN to IDF: treat counter clockwise polygons as islands",
    )
    parser.add_argument(
        "--ignore-order",
        "-o",
        action="store_true",
        help="GEN to IDF: do not check the point order of polygons",
    )
    parser.add_argument(
        "--sort",
        "-r",
        action="store_true",
        help="GEN to IDF: rasterize large features first",
    )
    parser.add_argument(
        "--overlap-method",
        type=_enum_choice(CellOverlapMethod),
        default=CellOverlapMethod.CENTER,
        metavar="METHOD",
        help="GEN to IDF: 1 cell centre in polygon (default), 2 any overlap",
    )
    parser.add_argument(
        "--overlap-resolution",
        type=_enum_choice(OverlapResolution),
        default=OverlapResolution.FIRST,
        metavar="METHOD",
        help="GEN to IDF: value of cells covered by more polygons, 1-10 or a "
        "name such as first, max, weighted_average (default first)",
    )
    parser.add_argument(
        "--log-level",
        type=LogLevel.from_name,
        default=LogLevel.INFO,
        metavar="LEVEL",
        help="DEBUG, INFO (default), WARNING, ERROR or CRITICAL",
    )
    parser.add_argument(
        "--logger",
        choices=["python", "loguru"],
        default="python",
        help="Logging framework (default python)",
    )
    parser.add_argument(
        "--log-file",
        nargs="?",
        const=DEFAULT_LOG_FILE,
        default=None,
        metavar="FILENAME",
        help=f"Write the log to a file as well (default name {DEFAULT_LOG_FILE})",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> ConversionSettings:
    hull_type, k = args.hull
    cellsize, column = args.grid
    return ConversionSettings(
        cellsize=cellsize,
        value_column=column,
        skipped_values=args.skip,
        hull_type=hull_type,
        hull_k=k,
        add_angle=args.angle,
        add_length_area=args.length_area,
        include_islands=args.islands,
        ignore_point_order=args.ignore_order,
        sort_features=args.sort,
        cell_overlap=args.overlap_method,
        overlap_resolution=args.overlap_resolution,
        merged_filename=args.merge,
    )


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure(
        LoggerType[args.logger.upper()],
        args.log_level,
        add_default_file_handler=args.log_file is not None,
        log_file=args.log_file or DEFAULT_LOG_FILE,
    )
    try:
        summary = convert(args.inpath, args.filter, args.outpath, settings_from_args(args))
    except ConversionError as e:
        logger.error(str(e))
        return 1
    print(f"Finished processing {summary.file_count} file(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Batch conversion of GEN and IDF files. The extension of every input file
determines the direction of its conversion.
"""

import fnmatch
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from idfgen.convert.errors import ConversionError
from idfgen.convert.gen_to_idf import GenIdfConverter
from idfgen.convert.idf_to_gen import IdfGenConverter
from idfgen.convert.settings import ConversionSettings, Direction
from idfgen.features import FeatureCollection
from idfgen.logging import logger
from idfgen.typing import PathLike

OUTPUT_EXTENSIONS = (".gen", ".idf")


@dataclass
class RunSummary:
    """Number of converted input files and the paths of all written files."""

    file_count: int = 0
    output_files: list[Path] = field(default_factory=list)


def find_files(input_path: PathLike, input_filter: str) -> list[Path]:
    """Files in input_path matching input_filter, ignoring case."""
    pattern = input_filter.lower()
    return sorted(
        path
        for path in Path(input_path).iterdir()
        if path.is_file() and fnmatch.fnmatch(path.name.lower(), pattern)
    )


def _gen_filename(input_path: Path, output_filename: Optional[str]) -> str:
    if output_filename is not None and Path(output_filename).suffix.lower() == ".gen":
        return f"{Path(output_filename).stem}.GEN"
    return f"{input_path.stem}.GEN"


def convert_files(
    filenames: list[PathLike],
    output_path: PathLike,
    settings: ConversionSettings,
    source: Optional[str] = None,
) -> RunSummary:
    """
    Convert files one after another.

    Parameters
    ----------
    filenames: list of str or Path
        GEN and IDF files; files with other extensions are skipped.
    output_path: str or Path
        Directory of the results. A path ending in a GEN or IDF filename sets
        the output filename when it is not set in the settings.
    settings: ConversionSettings
    source: str, optional
        Description of the input for the metadata of a merged GEN file.

    Returns
    -------
    summary: RunSummary

    Raises
    ------
    ConversionError
        For invalid settings, and for any error while converting a file.
    """
    settings.validate()
    filenames = [Path(f) for f in filenames]
    output_path = Path(output_path)
    output_filename = settings.output_filename
    if output_path.suffix.lower() in OUTPUT_EXTENSIONS:
        if output_filename is None:
            output_filename = output_path.name
        output_path = output_path.parent
    if len(filenames) > 1 and output_filename is not None:
        logger.info("More than one input file, the output filename is ignored")
        output_filename = None

    gen_idf = GenIdfConverter(settings)
    idf_gen = IdfGenConverter(settings)
    merged: Optional[FeatureCollection] = None
    summary = RunSummary()
    for path in filenames:
        logger.info(f"Processing file '{path.name}' ...")
        try:
            match Direction.from_path(path):
                case Direction.IDF_TO_GEN:
                    if settings.is_merged:
                        if merged is None:
                            merged = idf_gen.new_collection()
                        collection = merged
                    else:
                        collection = idf_gen.new_collection()
                    summary.output_files += idf_gen.convert(path, collection, output_path)
                    if not settings.is_merged and len(collection) > 0:
                        summary.output_files += idf_gen.write_collection(
                            collection,
                            output_path / _gen_filename(path, output_filename),
                            idf_gen.metadata(path.name),
                        )
                    converted = True
                case Direction.GEN_TO_IDF:
                    written = gen_idf.convert(path, output_path, output_filename)
                    converted = written is not None
                    if converted:
                        summary.output_files += written
                case _:
                    logger.warning(f"Skipping unknown file '{path.name}' ...")
                    converted = False
        except ConversionError:
            raise
        except Exception as e:
            raise ConversionError(
                f"Unexpected error while converting file: {path.name}: {e}"
            ) from e
        if converted:
            summary.file_count += 1

    if merged is not None and len(merged) > 0:
        if source is None:
            source = "; ".join(str(f) for f in filenames)
        summary.output_files += idf_gen.write_collection(
            merged,
            output_path / settings.merged_filename,
            idf_gen.metadata(source),
        )
    summary.output_files += idf_gen.write_merged_points(output_path)

    logger.info(f"Finished processing {summary.file_count} file(s)")
    return summary


def convert(
    input_path: PathLike,
    input_filter: str,
    output_path: PathLike,
    settings: Optional[ConversionSettings] = None,
) -> RunSummary:
    """
    Convert all files in input_path that match input_filter.

    Examples
    --------
    Rasterize all GEN files of a directory with 100 m cells:

    >>> settings = ConversionSettings(cellsize=100.0)
    >>> summary = convert("input", "*.GEN", "output", settings)

    Trace the data cells of IDF files into a single GEN file:

    >>> settings = ConversionSettings(hull_type=3, merged_filename="zones.GEN")
    >>> summary = convert("input", "*.IDF", "output", settings)
    """
    if settings is None:
        settings = ConversionSettings()
    input_path = Path(input_path)
    if not input_path.is_dir():
        raise ConversionError(f"Input path does not exist: {input_path}")
    filenames = find_files(input_path, input_filter)
    if len(filenames) == 0:
        logger.warning(f"No files found in {input_path} for filter {input_filter}")
    return convert_files(
        filenames, output_path, settings, source=f"{input_path}; {input_filter}"
    )

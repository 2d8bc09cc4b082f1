from unittest.mock import patch

import pytest

from idfgen.convert.errors import ConfigurationError, ConversionError
from idfgen.convert.run import convert, convert_files, find_files
from idfgen.convert.settings import ConversionSettings, HullType
from idfgen.formats import gen, ipf


def test_find_files(gen_directory):
    (gen_directory / "upper.gen").write_text("END\n")
    names = [path.name for path in find_files(gen_directory, "*.GEN")]
    assert names == ["empty.GEN", "line.GEN", "squares.GEN", "upper.gen"]
    assert [p.name for p in find_files(gen_directory, "sq*")] == [
        "squares.DAT",
        "squares.GEN",
    ]


def test_convert_gen_files(gen_directory, tmp_path):
    output = tmp_path / "out"
    with patch("idfgen.convert.gen_to_idf.logger") as mock_logger:
        summary = convert(gen_directory, "*.GEN", output, ConversionSettings(cellsize=10.0))
        # The empty GEN file is skipped
        assert "is empty" in mock_logger.warning.call_args[0][0]
    assert summary.file_count == 2
    assert sorted(path.name for path in summary.output_files) == [
        "line.IDF",
        "line.MET",
        "squares.IDF",
        "squares.MET",
    ]
    assert all(path.exists() for path in summary.output_files)


def test_convert_skips_unknown_files(idf_directory, tmp_path):
    with patch("idfgen.convert.run.logger") as mock_logger:
        summary = convert(idf_directory, "*", tmp_path)
        warnings = [call[0][0] for call in mock_logger.warning.call_args_list]
    assert warnings == ["Skipping unknown file 'notes.txt' ..."]
    assert summary.file_count == 2
    assert sorted(path.name for path in summary.output_files) == [
        "block.DAT",
        "block.GEN",
        "block.MET",
        "blocks.DAT",
        "blocks.GEN",
        "blocks.MET",
    ]


def test_convert_merged(idf_directory, tmp_path):
    settings = ConversionSettings(hull_type=HullType.EDGES, merged_filename="zones.GEN")
    summary = convert(idf_directory, "*.IDF", tmp_path, settings)
    assert summary.file_count == 2
    assert [path.name for path in summary.output_files] == [
        "zones.GEN",
        "zones.DAT",
        "zones.MET",
    ]
    collection = gen.read(tmp_path / "zones.GEN")
    # One polygon from block.IDF, two from blocks.IDF
    assert [f.id for f in collection] == ["1", "2", "3"]
    sources = [collection.table.get_row(f.id)[1] for f in collection]
    assert sources == ["block.IDF", "blocks.IDF", "blocks.IDF"]


def test_convert_merged_points(idf_directory, tmp_path):
    settings = ConversionSettings(hull_type=HullType.POINTS, merged_filename="cells.GEN")
    summary = convert(idf_directory, "*.IDF", tmp_path, settings)
    assert [path.name for path in summary.output_files] == ["cells.IPF"]
    assert len(ipf.read(tmp_path / "cells.IPF")) == 11


def test_convert_single_file_output_filename(idf_directory, tmp_path):
    summary = convert_files(
        [idf_directory / "block.IDF"], tmp_path / "hull.GEN", ConversionSettings()
    )
    assert [path.name for path in summary.output_files] == [
        "hull.GEN",
        "hull.DAT",
        "hull.MET",
    ]


def test_convert_output_filename_ignored_for_more_files(idf_directory, tmp_path):
    settings = ConversionSettings(output_filename="hull.GEN")
    with patch("idfgen.convert.run.logger") as mock_logger:
        summary = convert_files(
            [idf_directory / "block.IDF", idf_directory / "blocks.IDF"],
            tmp_path,
            settings,
        )
        infos = [call[0][0] for call in mock_logger.info.call_args_list]
    assert "More than one input file, the output filename is ignored" in infos
    assert {path.stem for path in summary.output_files} == {"block", "blocks"}


def test_convert_invalid_settings(idf_directory, tmp_path):
    with pytest.raises(ConfigurationError):
        convert(idf_directory, "*.IDF", tmp_path, ConversionSettings(cellsize=-1.0))


def test_convert_missing_directory(tmp_path):
    with pytest.raises(ConversionError, match="does not exist"):
        convert(tmp_path / "missing", "*.IDF", tmp_path)


def test_convert_no_files(tmp_path):
    with patch("idfgen.convert.run.logger") as mock_logger:
        summary = convert(tmp_path, "*.IDF", tmp_path / "out")
        assert "No files found" in mock_logger.warning.call_args[0][0]
    assert summary.file_count == 0
    assert summary.output_files == []


def test_convert_wraps_unexpected_errors(tmp_path):
    path = tmp_path / "broken.IDF"
    path.write_bytes(b"\x01\x02")
    with pytest.raises(ConversionError, match="broken.IDF") as excinfo:
        convert_files([path], tmp_path, ConversionSettings())
    assert excinfo.value.__cause__ is not None


def test_convert_conversion_error_not_wrapped(idf_directory, tmp_path):
    settings = ConversionSettings(hull_type=HullType.CONCAVE)
    grid_path = idf_directory / "block.IDF"
    with patch(
        "idfgen.convert.idf_to_gen.concave_hull", side_effect=ValueError("too few")
    ):
        with pytest.raises(ConversionError) as excinfo:
            convert_files([grid_path], tmp_path, settings)
    assert str(excinfo.value) == "Concave hull could not be created: too few"

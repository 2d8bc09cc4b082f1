from unittest.mock import patch

import numpy as np
import pytest

from idfgen.convert.errors import ConversionError
from idfgen.convert.idf_to_gen import (
    IdfGenConverter,
    cell_edges,
    extract,
    outer_cell_mask,
    qualifying_points,
    read_grid,
    remove_islands,
    stitch_edges,
)
from idfgen.convert.settings import ConversionSettings, HullType, ValueRange
from idfgen.formats import gen, ipf
from idfgen.formats.metadata import Metadata
from idfgen.geometry import calculate_area, is_clockwise
from idfgen.tests.fixtures.feature_fixture import square
from idfgen.tests.fixtures.grid_fixture import NODATA, make_grid

BLOCK_ROW = ["block.IDF", "1", "4", "7.000", "0.000", "7.000", "0.000", "7.000", "7.000"]


def test_read_grid_skipped_values(idf_directory):
    grid = read_grid(idf_directory / "blocks.IDF", [ValueRange(2.0, 2.0)])
    assert grid.nodata == NODATA
    assert grid.count() == 5
    assert np.sort(grid.values[grid.data_mask()]).tolist() == [0.0, 1.0, 1.0, 1.0, 1.0]


def test_qualifying_points(two_blocks_grid):
    points = qualifying_points(two_blocks_grid)
    assert list(points.columns) == ["x", "y", "value"]
    assert len(points) == 7
    assert points["value"].sum() == 10.0
    assert points.iloc[0].tolist() == [5.0, 25.0, 1.0]


def test_outer_cell_mask():
    grid = make_grid(np.ones((4, 4)))
    mask = outer_cell_mask(grid)
    assert mask.sum() == 12
    assert not mask[1:3, 1:3].any()


def test_cell_edges(block_grid):
    edges = cell_edges(block_grid)
    assert edges.shape == (8, 4)
    # Upper side of the upper left data cell, running east
    assert edges[0].tolist() == [1.0, 3.0, 2.0, 3.0]
    # Left side, running north
    assert edges[1].tolist() == [1.0, 2.0, 1.0, 3.0]


def test_stitch_edges(block_grid):
    rings, chains = stitch_edges(cell_edges(block_grid))
    assert chains == []
    assert len(rings) == 1
    ring = rings[0]
    assert ring.shape == (9, 2)
    assert np.array_equal(ring[0], ring[-1])
    assert is_clockwise(ring)
    assert calculate_area(ring) == pytest.approx(4.0)


def test_stitch_edges_open_chain():
    edges = np.array([[0.0, 0.0, 1.0, 0.0], [1.0, 0.0, 1.0, 1.0]])
    with patch("idfgen.convert.idf_to_gen.logger") as mock_logger:
        rings, chains = stitch_edges(edges)
        assert "do not form a closed ring" in mock_logger.warning.call_args[0][0]
    assert rings == []
    assert len(chains) == 1
    assert chains[0].tolist() == [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]]


def test_stitch_edges_touching_corners():
    values = np.full((2, 2), NODATA)
    values[0, 0] = 1.0
    values[1, 1] = 1.0
    rings, chains = stitch_edges(cell_edges(make_grid(values)))
    assert chains == []
    assert sum(abs(calculate_area(ring)) for ring in rings) == pytest.approx(2.0)


def test_remove_islands():
    outer = square("1", 0.0, 0.0, 10.0)
    inner = square("2", 2.0, 2.0, 2.0)
    separate = square("3", 20.0, 0.0, 5.0)
    kept = remove_islands([outer, inner, separate])
    assert [p.id for p in kept] == ["1", "3"]


class TestExtract:
    def test_points(self, block_grid):
        extraction = extract(block_grid, "block.IDF", HullType.POINTS)
        assert extraction.features == []
        assert len(extraction.points) == 4
        assert (extraction.points["value"] == 7.0).all()

    def test_convex(self, block_grid):
        extraction = extract(block_grid, "block.IDF", HullType.CONVEX)
        (feature,) = extraction.features
        assert feature.is_polygon
        assert is_clockwise(feature.points)
        assert abs(feature.area) == pytest.approx(1.0)
        assert extraction.rows == {"1": BLOCK_ROW}
        assert extraction.points is None

    def test_convex_excludes_zero(self, two_blocks_grid):
        extraction = extract(two_blocks_grid, "blocks.IDF", HullType.CONVEX)
        row = extraction.rows["1"]
        assert row[2] == "7"
        assert row[3] == "1.429"

    def test_convex_collinear_uses_extent(self):
        grid = make_grid([[1.0, 2.0, 3.0]])
        with patch("idfgen.convert.idf_to_gen.logger") as mock_logger:
            extraction = extract(grid, "row.IDF", HullType.CONVEX)
            mock_logger.warning.assert_called_once()
        assert abs(extraction.features[0].area) == pytest.approx(3.0)
        assert extraction.rows["1"][2] == "3"

    def test_convex_without_data(self):
        grid = make_grid([[0.0, NODATA]])
        with pytest.raises(ConversionError, match="non-zero"):
            extract(grid, "zero.IDF", HullType.CONVEX)

    def test_concave(self):
        grid = make_grid(np.full((4, 4), 2.0))
        extraction = extract(grid, "full.IDF", HullType.CONCAVE, k=3)
        (feature,) = extraction.features
        assert is_clockwise(feature.points)
        assert abs(feature.area) <= 9.0 + 1.0e-9
        assert extraction.rows["1"][2] == "16"

    def test_concave_single_cell_uses_extent(self):
        grid = make_grid([[1.0, NODATA], [NODATA, NODATA]])
        with patch("idfgen.convert.idf_to_gen.logger") as mock_logger:
            extraction = extract(grid, "single.IDF", HullType.CONCAVE)
            mock_logger.warning.assert_called_once()
        assert abs(extraction.features[0].area) == pytest.approx(1.0)
        assert extraction.rows["1"][2] == "1"

    @pytest.mark.parametrize("ncol", [3, 5])
    def test_concave_collinear_uses_extent(self, ncol):
        grid = make_grid([np.arange(1.0, ncol + 1.0)])
        with patch("idfgen.convert.idf_to_gen.logger") as mock_logger:
            extraction = extract(grid, "row.IDF", HullType.CONCAVE, k=3)
            assert "single line" in mock_logger.warning.call_args[0][0]
        (feature,) = extraction.features
        assert feature.is_polygon
        assert abs(feature.area) == pytest.approx(float(ncol))
        assert extraction.rows["1"][2] == str(ncol)

    def test_concave_without_data(self):
        grid = make_grid([[0.0, NODATA]])
        with pytest.raises(ConversionError, match="non-zero"):
            extract(grid, "zero.IDF", HullType.CONCAVE)

    def test_edges(self, block_grid):
        extraction = extract(block_grid, "block.IDF", HullType.EDGES)
        (feature,) = extraction.features
        assert is_clockwise(feature.points)
        assert abs(feature.area) == pytest.approx(4.0)
        assert extraction.rows["1"][1:] == ["0"] + BLOCK_ROW[2:]

    def test_edges_two_blocks(self, two_blocks_grid):
        extraction = extract(two_blocks_grid, "blocks.IDF", HullType.EDGES)
        assert [f.id for f in extraction.features] == ["1", "2"]
        counts = sorted(row[2] for row in extraction.rows.values())
        assert counts == ["4", "4"]
        averages = sorted(row[3] for row in extraction.rows.values())
        assert averages == ["1.000", "1.500"]

    def test_edges_donut(self, donut_grid):
        extraction = extract(donut_grid, "donut.IDF", HullType.EDGES)
        outer, hole = sorted(extraction.features, key=lambda f: -abs(f.area))
        assert abs(outer.area) == pytest.approx(25.0)
        assert is_clockwise(outer.points)
        assert abs(hole.area) == pytest.approx(1.0)
        assert not is_clockwise(hole.points)
        assert extraction.rows[outer.id][2] == "24"
        assert extraction.rows[hole.id][2:] == ["0"] + ["NaN"] * 6

    def test_edges_island(self, island_grid):
        extraction = extract(island_grid, "island.IDF", HullType.EDGES)
        assert len(extraction.features) == 3
        counts = {
            round(abs(f.area)): extraction.rows[f.id][2] for f in extraction.features
        }
        assert counts == {49: "24", 25: "0", 1: "1"}

    def test_edges_without_islands(self, island_grid):
        extraction = extract(island_grid, "island.IDF", HullType.EDGES_WITHOUT_ISLANDS)
        (feature,) = extraction.features
        assert abs(feature.area) == pytest.approx(49.0)
        assert extraction.rows[feature.id][2] == "25"

    def test_edges_with_points(self, donut_grid):
        extraction = extract(donut_grid, "donut.IDF", HullType.EDGES_WITH_POINTS)
        assert len(extraction.features) == 2
        # Every cell of the donut borders on NoData or on the grid boundary
        assert len(extraction.points) == 24

    def test_edges_without_data(self):
        grid = make_grid([[NODATA]])
        with pytest.raises(ConversionError, match="No cells with data"):
            extract(grid, "empty.IDF", HullType.EDGES)


class TestIdfGenConverter:
    def test_convert(self, idf_directory, tmp_path):
        converter = IdfGenConverter(ConversionSettings(hull_type=HullType.CONVEX))
        collection = converter.new_collection()
        written = converter.convert(idf_directory / "block.IDF", collection, tmp_path)
        assert written == []
        assert [f.id for f in collection] == ["1"]
        assert collection.table.get_row("1") == ["1"] + BLOCK_ROW

        converter.convert(idf_directory / "blocks.IDF", collection, tmp_path)
        assert [f.id for f in collection] == ["1", "2"]
        assert collection.table.get_row("2")[1] == "blocks.IDF"

    def test_convert_points(self, idf_directory, tmp_path):
        converter = IdfGenConverter(ConversionSettings(hull_type=HullType.POINTS))
        collection = converter.new_collection()
        written = converter.convert(idf_directory / "blocks.IDF", collection, tmp_path)
        assert written == [tmp_path / "blocks.IPF"]
        assert len(collection) == 0
        df = ipf.read(tmp_path / "blocks.IPF")
        assert list(df.columns) == ["x", "y", "value"]
        assert len(df) == 7

    def test_convert_points_output_filename(self, idf_directory, tmp_path):
        settings = ConversionSettings(hull_type=HullType.POINTS, output_filename="cells.GEN")
        converter = IdfGenConverter(settings)
        written = converter.convert(
            idf_directory / "block.IDF", converter.new_collection(), tmp_path
        )
        assert written == [tmp_path / "cells.IPF"]

    def test_merged_points(self, idf_directory, tmp_path):
        settings = ConversionSettings(hull_type=HullType.POINTS, merged_filename="all.GEN")
        converter = IdfGenConverter(settings)
        collection = converter.new_collection()
        for name in ("block.IDF", "blocks.IDF"):
            assert converter.convert(idf_directory / name, collection, tmp_path) == []
        written = converter.write_merged_points(tmp_path)
        assert written == [tmp_path / "all.IPF"]
        df = ipf.read(tmp_path / "all.IPF")
        assert len(df) == 11
        assert df["source"].tolist() == ["block.IDF"] * 4 + ["blocks.IDF"] * 7
        assert converter.write_merged_points(tmp_path) == []

    def test_convert_edges_with_points(self, idf_directory, tmp_path):
        converter = IdfGenConverter(ConversionSettings(hull_type=HullType.EDGES_WITH_POINTS))
        collection = converter.new_collection()
        written = converter.convert(idf_directory / "block.IDF", collection, tmp_path)
        assert written == [tmp_path / "block.IPF"]
        assert len(collection) == 1

    def test_convert_skipped_everything(self, idf_directory, tmp_path):
        settings = ConversionSettings(skipped_values=[ValueRange(7.0, 7.0)])
        converter = IdfGenConverter(settings)
        with pytest.raises(ConversionError):
            converter.convert(
                idf_directory / "block.IDF", converter.new_collection(), tmp_path
            )

    def test_write_collection(self, idf_directory, tmp_path):
        settings = ConversionSettings(hull_type=HullType.EDGES)
        converter = IdfGenConverter(settings)
        collection = converter.new_collection()
        converter.convert(idf_directory / "block.IDF", collection, tmp_path)
        path = tmp_path / "out" / "block.GEN"
        written = converter.write_collection(
            collection, path, converter.metadata("block.IDF")
        )
        assert written == [path, path.with_suffix(".DAT"), path.with_suffix(".MET")]

        back = gen.read(path)
        assert len(back) == 1
        assert back.table.columns[:4] == ["ID", "SourceFile", "Idx", "Count"]
        assert back.table.get_row("1")[3] == "4"
        metadata = Metadata.read(path.with_suffix(".MET"))
        assert "outer cell edges" in metadata.description
        assert metadata.source == "block.IDF"

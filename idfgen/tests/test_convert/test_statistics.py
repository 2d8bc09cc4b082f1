import numpy as np
import pytest

from idfgen.convert.errors import TopologyError
from idfgen.convert.statistics import ValueStatistics, zonal_values
from idfgen.features import Feature
from idfgen.tests.fixtures.feature_fixture import square


def test_statistics():
    statistics = ValueStatistics.from_values([4.0, 1.0, 3.0, 2.0])
    assert statistics.count == 4
    assert statistics.mean == pytest.approx(2.5)
    assert statistics.sd == pytest.approx(np.sqrt(1.25))
    # Lower rank: index int(0.5 * 3) == 1
    assert statistics.median == 2.0
    # int(0.75 * 3) == 2, int(0.25 * 3) == 0
    assert statistics.iqr == 2.0
    assert statistics.min == 1.0
    assert statistics.max == 4.0


def test_statistics_to_row():
    row = ValueStatistics.from_values([7.0, 7.0, 7.0, 7.0]).to_row("block.IDF", 1)
    assert row == [
        "block.IDF",
        "1",
        "4",
        "7.000",
        "0.000",
        "7.000",
        "0.000",
        "7.000",
        "7.000",
    ]


def test_statistics_rounding():
    row = ValueStatistics.from_values([1.0 / 3.0]).to_row("a", 0)
    assert row[3] == "0.333"


def test_statistics_empty():
    statistics = ValueStatistics.from_values([])
    assert statistics.count == 0
    assert np.isnan(statistics.mean)
    row = statistics.to_row("a", 2)
    assert row[2] == "0"
    assert row[3:] == ["NaN"] * 6


def test_zonal_values_smallest_polygon(island_grid):
    outer = square("1", 0.0, 0.0, 7.0)
    inner = square("2", 3.0, 3.0, 1.0)
    values = zonal_values(island_grid, [outer, inner])
    assert values[0].size == 24
    assert np.all(values[0] == 1.0)
    assert values[1].tolist() == [5.0]


def test_zonal_values_includes_zero(two_blocks_grid):
    west = square("1", 0.0, 10.0, 20.0)
    east = square("2", 40.0, 0.0, 20.0)
    values = zonal_values(two_blocks_grid, [west, east])
    assert sorted(values[1].tolist()) == [0.0, 2.0, 2.0, 2.0]
    assert values[0].tolist() == [1.0] * 4


def test_zonal_values_unmatched(block_grid):
    polygon = Feature.polygon("1", [[1.0, 1.0], [1.0, 2.0], [2.0, 2.0], [2.0, 1.0]])
    with pytest.raises(TopologyError, match="3 cell"):
        zonal_values(block_grid, [polygon])

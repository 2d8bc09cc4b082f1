import numpy as np
import pytest

from idfgen.formats import idf
from idfgen.geometry import Extent
from idfgen.grid import Grid

NODATA = -9999.0


def make_grid(values, cellsize=1.0, xmin=0.0, ymin=0.0):
    values = np.asarray(values, dtype=np.float32)
    nrow, ncol = values.shape
    extent = Extent(xmin, ymin, xmin + ncol * cellsize, ymin + nrow * cellsize)
    return Grid(extent, cellsize, nodata=NODATA, values=values)


@pytest.fixture(scope="function")
def block_grid():
    """4 x 4 grid with a 2 x 2 block of value 7 in the middle."""
    values = np.full((4, 4), NODATA)
    values[1:3, 1:3] = 7.0
    return make_grid(values)


@pytest.fixture(scope="function")
def two_blocks_grid():
    """Two separate blocks: value 1 in the west, 2 (and a zero) in the east."""
    values = np.full((3, 6), NODATA)
    values[0:2, 0:2] = 1.0
    values[1:3, 4:6] = [[2.0, 2.0], [2.0, 0.0]]
    return make_grid(values, cellsize=10.0)


@pytest.fixture(scope="function")
def donut_grid():
    """5 x 5 data ring around a NoData centre."""
    values = np.full((5, 5), 3.0)
    values[2, 2] = NODATA
    return make_grid(values)


@pytest.fixture(scope="function")
def island_grid():
    """Ring of 1, a NoData moat and a single cell of 5 in the centre."""
    values = np.full((7, 7), 1.0)
    values[1:6, 1:6] = NODATA
    values[3, 3] = 5.0
    return make_grid(values)


@pytest.fixture(scope="function")
def idf_directory(tmp_path, block_grid, two_blocks_grid):
    directory = tmp_path / "idf"
    directory.mkdir()
    idf.write(directory / "block.IDF", block_grid.to_dataarray(), nodata=NODATA)
    idf.write(directory / "blocks.IDF", two_blocks_grid.to_dataarray(), nodata=NODATA)
    (directory / "notes.txt").write_text("not converted")
    return directory

import pytest

import idfgen.logging
from idfgen.logging.nulllogger import NullLogger

from .fixtures.feature_fixture import (
    crossing_line,
    gen_directory,
    nested_squares,
    square_collection,
    two_squares,
)
from .fixtures.grid_fixture import (
    block_grid,
    donut_grid,
    idf_directory,
    island_grid,
    two_blocks_grid,
)


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    idfgen.logging.logger.instance = NullLogger()

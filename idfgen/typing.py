"""
Module to define type aliases.
"""

from pathlib import Path
from typing import TypeAlias, Union

import numpy as np
from numpy.typing import NDArray

FloatArray: TypeAlias = NDArray[np.floating]
IntArray: TypeAlias = NDArray[np.int_]
BoolArray: TypeAlias = NDArray[np.bool_]
PathLike: TypeAlias = Union[str, Path]

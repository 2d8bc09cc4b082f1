"""
Value of a raster cell that is covered by more than one polygon.

Every polygon covering a cell contributes a :class:`Candidate`; once all
polygons have been processed, a strategy reduces the candidates of a cell to
a single value.
"""

import abc
from dataclasses import dataclass

import numpy as np

from idfgen.convert.settings import OverlapResolution


@dataclass(frozen=True)
class Candidate:
    """
    Contribution of one polygon to a cell.

    Parameters
    ----------
    value: float
        Value of the polygon.
    cell_area: float
        Area of the intersection of the polygon and the cell. NaN when areas
        were not computed.
    total_area: float
        Absolute area of the complete polygon.
    """

    value: float
    cell_area: float = np.nan
    total_area: float = np.nan


class ResolutionStrategy(abc.ABC):
    """Reduce the candidates of a cell to one value."""

    needs_areas: bool = False

    @abc.abstractmethod
    def resolve(self, candidates: list[Candidate]) -> float:
        raise NotImplementedError


class FirstValue(ResolutionStrategy):
    def resolve(self, candidates):
        return candidates[0].value


class LastValue(ResolutionStrategy):
    def resolve(self, candidates):
        return candidates[-1].value


class MinimumValue(ResolutionStrategy):
    def resolve(self, candidates):
        return min(c.value for c in candidates)


class MaximumValue(ResolutionStrategy):
    def resolve(self, candidates):
        return max(c.value for c in candidates)


class SumValue(ResolutionStrategy):
    def resolve(self, candidates):
        return sum(c.value for c in candidates)


class _AreaSelection(ResolutionStrategy):
    """
    Value of the candidate with the largest or smallest area. Ties go to the
    first candidate.
    """

    needs_areas = True
    attribute = "cell_area"
    largest = True

    def resolve(self, candidates):
        areas = np.array([getattr(c, self.attribute) for c in candidates])
        index = np.argmax(areas) if self.largest else np.argmin(areas)
        return candidates[int(index)].value


class LargestCellArea(_AreaSelection):
    pass


class SmallestCellArea(_AreaSelection):
    largest = False


class LargestTotalArea(_AreaSelection):
    attribute = "total_area"


class SmallestTotalArea(_AreaSelection):
    attribute = "total_area"
    largest = False


class WeightedAverage(ResolutionStrategy):
    """
    Average of the values weighted by the covered part of the cell. Falls back
    to the plain average when the candidates cover no area.
    """

    needs_areas = True

    def resolve(self, candidates):
        values = np.array([c.value for c in candidates])
        weights = np.array([c.cell_area for c in candidates])
        total = weights.sum()
        if not total > 0.0:
            return float(values.mean())
        return float((values * weights).sum() / total)


_STRATEGIES = {
    OverlapResolution.FIRST: FirstValue,
    OverlapResolution.MIN: MinimumValue,
    OverlapResolution.MAX: MaximumValue,
    OverlapResolution.SUM: SumValue,
    OverlapResolution.LARGEST_CELL_AREA: LargestCellArea,
    OverlapResolution.WEIGHTED_AVERAGE: WeightedAverage,
    OverlapResolution.SMALLEST_CELL_AREA: SmallestCellArea,
    OverlapResolution.LARGEST_TOTAL_AREA: LargestTotalArea,
    OverlapResolution.SMALLEST_TOTAL_AREA: SmallestTotalArea,
    OverlapResolution.LAST: LastValue,
}


def get_strategy(method) -> ResolutionStrategy:
    """
    Strategy for an OverlapResolution member or its integer value.
    """
    return _STRATEGIES[OverlapResolution(method)]()

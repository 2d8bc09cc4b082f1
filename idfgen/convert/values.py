import math
from typing import Optional

from idfgen.features import AttributeTable, Feature
from idfgen.logging import logger


def _sequence_or_id(feature: Feature, index: int) -> float:
    try:
        return float(int(feature.id))
    except ValueError:
        return float(index + 1)


def resolve_feature_value(
    feature: Feature,
    index: int,
    table: Optional[AttributeTable],
    value_column: int,
    skipped_values=(),
) -> float:
    """
    Value to rasterize for a feature.

    * With an attribute table and a row for the feature, the one-based
      ``value_column`` of that row is used. An unparseable value falls back to
      the integer feature ID, or to the sequence number.
    * With an attribute table but without a usable row or column, the
      sequence number (``index + 1``) is used.
    * Without attribute table, a non-negative ``value_column`` is used as a
      constant value; otherwise the sequence number.

    NaN becomes 1.0. A value within one of the ``skipped_values`` ranges
    results in NaN, meaning the feature should be skipped.
    """
    if table is not None:
        row = table.get_row(feature.id)
        if row is not None and 0 < value_column <= len(row):
            text = row[value_column - 1]
            try:
                value = float(text)
            except ValueError:
                logger.warning(
                    f"Value not defined for feature {index} ({feature.id}): {text}"
                )
                value = _sequence_or_id(feature, index)
        else:
            value = float(index + 1)
    elif value_column >= 0:
        value = float(value_column)
    else:
        value = float(index + 1)

    if math.isnan(value):
        value = 1.0
    for value_range in skipped_values:
        if value_range.contains(value):
            return math.nan
    return value

"""
Vector features as read from and written to GEN files, with their attribute
table (the DAT file).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

import geopandas as gpd
import numpy as np
import pandas as pd
import shapely

from idfgen.geometry import Extent, calculate_area
from idfgen.typing import FloatArray

ID_COLUMN = "ID"


class FeatureType(Enum):
    POLYGON = "polygon"
    LINE = "line"
    POINT = "point"

    @classmethod
    def infer(cls, points: FloatArray) -> "FeatureType":
        """
        A single vertex is a point, a closed ring of at least four vertices a
        polygon, anything else a line.
        """
        if len(points) == 1:
            return cls.POINT
        if len(points) >= 4 and np.array_equal(points[0], points[-1]):
            return cls.POLYGON
        return cls.LINE


@dataclass
class Feature:
    """
    A polygon, line or point with an identifier.

    Polygon rings are stored closed: an open ring is closed on construction.
    """

    feature_type: FeatureType
    id: str
    points: FloatArray

    def __post_init__(self):
        self.id = str(self.id)
        points = np.asarray(self.points, dtype=np.float64).reshape((-1, 2))
        if self.feature_type is FeatureType.POLYGON and not np.array_equal(
            points[0], points[-1]
        ):
            points = np.vstack([points, points[:1]])
        self.points = points

    @classmethod
    def polygon(cls, id, points) -> "Feature":
        return cls(FeatureType.POLYGON, id, points)

    @classmethod
    def line(cls, id, points) -> "Feature":
        return cls(FeatureType.LINE, id, points)

    @classmethod
    def point(cls, id, x: float, y: float) -> "Feature":
        return cls(FeatureType.POINT, id, [[x, y]])

    @property
    def is_polygon(self) -> bool:
        return self.feature_type is FeatureType.POLYGON

    @property
    def is_line(self) -> bool:
        return self.feature_type is FeatureType.LINE

    @property
    def extent(self) -> Extent:
        return Extent.from_points(self.points)

    @property
    def length(self) -> float:
        """Line length, or perimeter of a polygon."""
        steps = np.diff(self.points, axis=0)
        return float(np.hypot(steps[:, 0], steps[:, 1]).sum())

    @property
    def area(self) -> float:
        """Signed area, positive for clockwise rings, zero for non-polygons."""
        if not self.is_polygon:
            return 0.0
        return calculate_area(self.points)

    def reverse(self) -> None:
        self.points = self.points[::-1].copy()

    def copy(self, id: Optional[str] = None) -> "Feature":
        return Feature(
            self.feature_type, self.id if id is None else id, self.points.copy()
        )

    def to_shapely(self):
        match self.feature_type:
            case FeatureType.POLYGON:
                return shapely.polygons(self.points)
            case FeatureType.LINE:
                return shapely.linestrings(self.points)
            case FeatureType.POINT:
                return shapely.points(self.points[0])

    @classmethod
    def from_shapely(cls, id, geometry) -> "Feature":
        if isinstance(geometry, shapely.Polygon):
            return cls.polygon(id, np.asarray(geometry.exterior.coords)[:, :2])
        elif isinstance(geometry, shapely.LineString):
            return cls.line(id, np.asarray(geometry.coords)[:, :2])
        elif isinstance(geometry, shapely.Point):
            return cls.point(id, geometry.x, geometry.y)
        raise TypeError(
            "Geometry type not allowed. Should be Polygon, LineString, or Point."
            f" Got {type(geometry)} instead."
        )


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


class AttributeTable:
    """
    Rows of string values keyed by feature ID, in insertion order. The first
    column holds the ID.
    """

    def __init__(self, columns: Optional[list[str]] = None):
        self.columns: list[str] = [ID_COLUMN]
        self.rows: dict[str, list[str]] = {}
        if columns:
            self.columns = []
            self.add_columns(columns)

    def __len__(self) -> int:
        return len(self.rows)

    def __contains__(self, id) -> bool:
        return _unquote(str(id)) in self.rows

    def add_column(self, name: str, default: str = "") -> None:
        if name in self.columns:
            raise ValueError(f"Column {name} already exists")
        self.columns.append(name)
        for row in self.rows.values():
            row.append(default)

    def add_columns(self, names: list[str]) -> None:
        for name in names:
            self.add_column(name)

    def add_row(self, values: list) -> None:
        """Add or replace a row; the first value is the feature ID."""
        values = [str(v) for v in values]
        if len(values) != len(self.columns):
            raise ValueError(
                f"Expected {len(self.columns)} values, received {len(values)}: {values}"
            )
        id = _unquote(values[0])
        self.rows[id] = [id] + values[1:]

    def remove_row(self, id) -> None:
        self.rows.pop(_unquote(str(id)), None)

    def get_row(self, id) -> Optional[list[str]]:
        return self.rows.get(_unquote(str(id)))

    def renumber(self, old_id, new_id) -> None:
        row = self.rows.pop(_unquote(str(old_id)), None)
        if row is not None:
            new_id = str(new_id)
            self.rows[new_id] = [new_id] + row[1:]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.rows.values()), columns=self.columns, dtype=str)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "AttributeTable":
        table = cls([str(c) for c in df.columns])
        for values in df.astype(str).itertuples(index=False):
            table.add_row(list(values))
        return table


@dataclass
class FeatureCollection:
    """
    Ordered features of one GEN file plus their optional attribute table.
    """

    features: list[Feature] = field(default_factory=list)
    table: Optional[AttributeTable] = None

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    @property
    def has_table(self) -> bool:
        return self.table is not None

    @property
    def extent(self) -> Optional[Extent]:
        extent = None
        for feature in self.features:
            extent = feature.extent.union(extent)
        return extent

    def polygons(self) -> list[Feature]:
        return [f for f in self.features if f.is_polygon]

    def add_feature(self, feature: Feature, new_id=None, row=None) -> Feature:
        """
        Append a feature. With ``new_id`` the feature is added under that ID;
        ``row`` (attribute values without the ID) is stored for the feature
        when this collection has a table.
        """
        if new_id is not None:
            feature = feature.copy(id=str(new_id))
        self.features.append(feature)
        if row is not None and self.table is not None:
            self.table.add_row([feature.id] + list(row))
        return feature

    def next_id(self) -> int:
        """Sequence number for the next feature."""
        return len(self.features) + 1

    def to_geodataframe(self) -> gpd.GeoDataFrame:
        geometry = [f.to_shapely() for f in self.features]
        df = pd.DataFrame(
            {
                "id": [f.id for f in self.features],
                "feature_type": [f.feature_type.value for f in self.features],
            }
        )
        if self.table is not None:
            attributes = self.table.to_dataframe().rename(columns={ID_COLUMN: "id"})
            df = df.merge(attributes, on="id", how="left")
        return gpd.GeoDataFrame(df, geometry=geometry)

    @classmethod
    def from_geodataframe(
        cls, gdf: gpd.GeoDataFrame, id_column: Optional[str] = "id"
    ) -> "FeatureCollection":
        """
        Collection from a GeoDataFrame. Columns other than the ID column, the
        geometry and ``feature_type`` end up in the attribute table.
        """
        if id_column is not None and id_column in gdf.columns:
            ids = gdf[id_column].astype(str).tolist()
        else:
            ids = [str(i + 1) for i in range(len(gdf))]
        features = [
            Feature.from_shapely(id, geometry) for id, geometry in zip(ids, gdf.geometry)
        ]
        attributes = pd.DataFrame(gdf.drop(columns="geometry")).drop(
            columns=[c for c in (id_column, "feature_type") if c in gdf.columns]
        )
        table = None
        if len(attributes.columns) > 0:
            attributes.insert(0, ID_COLUMN, ids)
            table = AttributeTable.from_dataframe(attributes.fillna(""))
        return cls(features, table)


def format_value(value) -> str:
    """
    Shortest text representation of a number for its precision: integral
    values without decimals, NaN as "NaN".
    """
    if np.isnan(value):
        return "NaN"
    return np.format_float_positional(value, trim="-")

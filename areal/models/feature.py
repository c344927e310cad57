"""Feature and FeatureCollection models.

A Feature pairs one Shapely geometry with an attribute mapping. A
FeatureCollection is an ordered, immutable set of features sharing a CRS
and a geometry family; it is backed by a GeoDataFrame with a positional
index so that every operation can hand off to GeoPandas and Shapely.
"""

from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import Any

import geopandas as gpd
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator
from shapely.geometry.base import BaseGeometry

from areal.config import CONSTANTS
from areal.models.enums import GeometryType

GEOMETRY_FAMILIES: dict[str, GeometryType] = {
    "Polygon": GeometryType.POLYGON,
    "MultiPolygon": GeometryType.POLYGON,
    "Point": GeometryType.POINT,
    "MultiPoint": GeometryType.POINT,
    "LineString": GeometryType.LINE,
    "MultiLineString": GeometryType.LINE,
    "LinearRing": GeometryType.LINE,
}


def geometry_family(geom_type: str) -> GeometryType:
    """Map a Shapely geometry type name to its family.

    Raises:
        ValueError: If the geometry type has no supported family
    """
    try:
        return GEOMETRY_FAMILIES[geom_type]
    except KeyError:
        msg = f"Unsupported geometry type: {geom_type}"
        raise ValueError(msg) from None


class Feature(BaseModel):
    """One geometry plus its attributes.

    Attributes:
        geometry: Shapely geometry in the collection's planar CRS
        attributes: Ordered mapping of field name to scalar value
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    geometry: BaseGeometry = Field(description="Feature geometry")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Attribute values")

    @field_validator("attributes")
    @classmethod
    def geometry_name_is_reserved(cls, v: dict[str, Any]) -> dict[str, Any]:
        if CONSTANTS.GEOMETRY_COLUMN in v:
            msg = f"Attribute name '{CONSTANTS.GEOMETRY_COLUMN}' is reserved"
            raise ValueError(msg)
        return v

    @property
    def geometry_type(self) -> GeometryType:
        return geometry_family(self.geometry.geom_type)


class FeatureCollection:
    """Ordered, immutable collection of features sharing CRS and geometry family.

    The backing GeoDataFrame is copied on the way in and on the way out, so
    callers can never mutate a collection in place.

    Args:
        frame: GeoDataFrame with an active geometry column
        geometry_type: Expected geometry family. Inferred from the data when
            omitted; required to type an empty collection.

    Raises:
        ValueError: On null geometries, mixed geometry families, unsupported
            geometry types or a geometry family differing from geometry_type
    """

    def __init__(
        self,
        frame: gpd.GeoDataFrame,
        geometry_type: GeometryType | None = None,
    ):
        if not isinstance(frame, gpd.GeoDataFrame):
            msg = f"Expected a GeoDataFrame, got {type(frame).__name__}"
            raise TypeError(msg)

        try:
            active_name = frame.geometry.name
        except AttributeError:
            msg = "GeoDataFrame has no active geometry column"
            raise ValueError(msg) from None

        gdf = frame.copy()
        if active_name != CONSTANTS.GEOMETRY_COLUMN:
            if CONSTANTS.GEOMETRY_COLUMN in gdf.columns:
                msg = f"Column '{CONSTANTS.GEOMETRY_COLUMN}' is reserved for the active geometry"
                raise ValueError(msg)
            gdf = gdf.rename_geometry(CONSTANTS.GEOMETRY_COLUMN)

        gdf = gdf.reset_index(drop=True)

        null_count = int(gdf.geometry.isna().sum())
        if null_count > 0:
            msg = f"Found {null_count} null geometries"
            raise ValueError(msg)

        families = {geometry_family(t) for t in gdf.geometry.geom_type.unique()}
        if len(families) > 1:
            names = ", ".join(sorted(f.value for f in families))
            msg = f"Mixed geometry families in one collection: {names}"
            raise ValueError(msg)

        inferred = families.pop() if families else None
        if geometry_type is not None and inferred is not None and inferred != geometry_type:
            msg = f"Expected {geometry_type.value} geometries, found {inferred.value}"
            raise ValueError(msg)

        self._frame = gdf
        self._geometry_type = geometry_type or inferred

    @classmethod
    def from_features(
        cls,
        features: Iterable[Feature],
        crs: Any = None,
        geometry_type: GeometryType | None = None,
    ) -> "FeatureCollection":
        """Build a collection from Feature objects, keeping their order."""
        features = list(features)
        attributes = pd.DataFrame.from_records([dict(f.attributes) for f in features])
        gdf = gpd.GeoDataFrame(
            attributes,
            geometry=[f.geometry for f in features],
            crs=crs,
        )
        return cls(gdf, geometry_type=geometry_type)

    @classmethod
    def from_file(cls, path: Path | str, layer: str | None = None) -> "FeatureCollection":
        """Read a vector file (GeoPackage, GeoJSON, shapefile...) into a collection."""
        kwargs = {"layer": layer} if layer else {}
        return cls(gpd.read_file(path, **kwargs))

    @property
    def crs(self) -> Any:
        return self._frame.crs

    @property
    def geometry_type(self) -> GeometryType | None:
        return self._geometry_type

    @property
    def fields(self) -> tuple[str, ...]:
        """Attribute names in column order (geometry excluded)."""
        return tuple(c for c in self._frame.columns if c != CONSTANTS.GEOMETRY_COLUMN)

    @property
    def geometry(self) -> gpd.GeoSeries:
        return self._frame.geometry.copy()

    @property
    def is_empty(self) -> bool:
        return len(self._frame) == 0

    @property
    def total_bounds(self) -> tuple[float, float, float, float]:
        minx, miny, maxx, maxy = self._frame.total_bounds
        return float(minx), float(miny), float(maxx), float(maxy)

    def to_geodataframe(self) -> gpd.GeoDataFrame:
        """Return a copy of the backing GeoDataFrame (positional index)."""
        return self._frame.copy()

    def attributes(self) -> pd.DataFrame:
        """Return the attribute table without geometry."""
        return pd.DataFrame(self._frame.drop(columns=CONSTANTS.GEOMETRY_COLUMN))

    def take(self, positions: Sequence[int]) -> "FeatureCollection":
        """Return the features at the given positions, in the given order."""
        return FeatureCollection(
            self._frame.iloc[list(positions)], geometry_type=self._geometry_type
        )

    def to_file(self, path: Path | str, driver: str | None = None) -> None:
        """Write the collection to a vector file."""
        kwargs = {"driver": driver} if driver else {}
        self._frame.to_file(path, **kwargs)

    def __len__(self) -> int:
        return len(self._frame)

    def __iter__(self) -> Iterator[Feature]:
        if self.fields:
            records = self.attributes().to_dict(orient="records")
        else:
            records = [{} for _ in range(len(self))]
        for geom, attributes in zip(self._frame.geometry, records, strict=True):
            yield Feature(geometry=geom, attributes=attributes)

    def __getitem__(self, position: int) -> Feature:
        row = self._frame.iloc[position]
        return Feature(
            geometry=row[CONSTANTS.GEOMETRY_COLUMN],
            attributes={name: row[name] for name in self.fields},
        )

    def __repr__(self) -> str:
        kind = self._geometry_type.value if self._geometry_type else "untyped"
        return f"FeatureCollection({len(self)} {kind} features, crs={self.crs})"

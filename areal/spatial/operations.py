"""Collection-level geometry operations.

This module provides the everyday operations applied to whole collections:
- Attribute projection with geometry retained
- Simplification, centroids, buffers and dissolve via the geometry provider
- Distance from every feature to a reference geometry
- Geometry repair on explicit request
"""

from collections.abc import Iterable

import geopandas as gpd
import pandas as pd
from shapely.geometry.base import BaseGeometry
from shapely.validation import make_valid as shapely_make_valid

from areal import geometry
from areal.config import CONSTANTS
from areal.models import FeatureCollection, GeometryType
from areal.spatial.utils import require_fields, unique_name


def project(
    collection: FeatureCollection,
    fields: Iterable[str],
    drop_geometry: bool = False,
) -> FeatureCollection | pd.DataFrame:
    """Keep only the named attributes.

    Geometry is always retained unless explicitly dropped.

    Args:
        collection: Input features
        fields: Attribute names to keep, in output order
        drop_geometry: Return a plain attribute DataFrame instead

    Returns:
        FeatureCollection with the selected fields, or a DataFrame when
        drop_geometry is True

    Raises:
        ValueError: If a field does not exist
    """
    fields = require_fields(collection, fields, "collection")
    if drop_geometry:
        return collection.attributes()[fields]

    gdf = collection.to_geodataframe()[[*fields, CONSTANTS.GEOMETRY_COLUMN]]
    return FeatureCollection(gdf, geometry_type=collection.geometry_type)


def _with_geometry(
    collection: FeatureCollection,
    geometries: Iterable[BaseGeometry],
    geometry_type: GeometryType | None,
) -> FeatureCollection:
    gdf = collection.to_geodataframe()
    gdf[CONSTANTS.GEOMETRY_COLUMN] = gpd.GeoSeries(list(geometries), index=gdf.index, crs=gdf.crs)
    return FeatureCollection(gdf, geometry_type=geometry_type)


def simplify(
    collection: FeatureCollection,
    tolerance: float,
    preserve_topology: bool = True,
) -> FeatureCollection:
    """Simplify every geometry (Douglas-Peucker, supplied by GEOS).

    Args:
        collection: Input features
        tolerance: Maximum allowed deviation, in CRS units
        preserve_topology: Avoid creating invalid geometries
    """
    if tolerance < 0:
        msg = f"tolerance must be non-negative, got {tolerance}"
        raise ValueError(msg)
    return _with_geometry(
        collection,
        (geometry.simplify(g, tolerance, preserve_topology) for g in collection.geometry),
        collection.geometry_type,
    )


def centroids(collection: FeatureCollection) -> FeatureCollection:
    """Replace every geometry with its centroid, keeping attributes."""
    return _with_geometry(
        collection,
        (geometry.centroid(g) for g in collection.geometry),
        GeometryType.POINT if not collection.is_empty else None,
    )


def buffer(collection: FeatureCollection, distance: float) -> FeatureCollection:
    """Buffer every geometry by a distance in CRS units.

    Positive distances turn points and lines into polygons. A negative
    distance can erode a polygon to an empty one.
    """
    if distance <= 0 and collection.geometry_type is not GeometryType.POLYGON:
        msg = "Only polygons can be buffered by a non-positive distance"
        raise ValueError(msg)
    return _with_geometry(
        collection,
        (geometry.buffer(g, distance) for g in collection.geometry),
        GeometryType.POLYGON if not collection.is_empty else None,
    )


def dissolve(collection: FeatureCollection) -> FeatureCollection:
    """Union every geometry into a single feature without attributes."""
    merged = geometry.union(collection.geometry)
    gdf = gpd.GeoDataFrame(geometry=[merged], crs=collection.crs)
    if merged.is_empty:
        gdf = gdf.iloc[0:0]
    return FeatureCollection(gdf, geometry_type=collection.geometry_type)


def make_valid(collection: FeatureCollection) -> FeatureCollection:
    """Repair invalid geometries using Shapely's make_valid.

    Fixes self-intersections, unclosed rings, etc. Only runs on explicit
    request; no other operation repairs geometry.

    Raises:
        ValueError: If a repair changes the geometry family (e.g. a polygon
            collapsing to a line)
    """
    return _with_geometry(
        collection,
        (g if g.is_valid else shapely_make_valid(g) for g in collection.geometry),
        collection.geometry_type,
    )


def distance_to(
    collection: FeatureCollection,
    other: BaseGeometry,
    field: str = "distance",
) -> FeatureCollection:
    """Add the planar distance from every feature to a reference geometry.

    A field whose name already exists is suffixed with ``_to``.
    """
    gdf = collection.to_geodataframe()
    name = unique_name(field, gdf.columns, "to")
    values = [geometry.distance(g, other) for g in gdf.geometry]
    gdf[name] = pd.Series(values, index=gdf.index, dtype=float)

    ordered = [c for c in gdf.columns if c != CONSTANTS.GEOMETRY_COLUMN]
    gdf = gdf[[*ordered, CONSTANTS.GEOMETRY_COLUMN]]
    return FeatureCollection(gdf, geometry_type=collection.geometry_type)

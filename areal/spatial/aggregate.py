"""Aggregation of features into groups.

Two flavours:
- aggregate_by: group by an attribute or key function and dissolve member
  geometries into one geometry per group
- aggregate_by_containment: group points by the zone polygon containing
  them and keep each zone's own geometry and attributes
"""

import logging
from collections.abc import Callable, Hashable, Mapping

import geopandas as gpd
import numpy as np
import pandas as pd

from areal.config import CONSTANTS, DEFAULT_CONFIG, SpatialConfig
from areal.models import Feature, FeatureCollection, GeometryType, Predicate, Reduction
from areal.spatial.parallel import chunked_query_pairs
from areal.spatial.utils import (
    ensure_same_crs,
    require_fields,
    require_geometry_type,
    unique_name,
)

logger = logging.getLogger(__name__)

_GROUP_COLUMN = "__group__"

# Reductions whose value over an empty group is zero rather than missing
_ZERO_WHEN_EMPTY = {Reduction.SUM, Reduction.COUNT}


def _normalize_reductions(
    collection: FeatureCollection,
    reduce: Mapping[str, Reduction | str],
    name: str,
) -> dict[str, Reduction]:
    reductions = {field: Reduction(r) for field, r in reduce.items()}
    require_fields(collection, reductions, name)
    numeric = [f for f, r in reductions.items() if r is not Reduction.COUNT]
    require_fields(collection, numeric, name, numeric=True)
    return reductions


def aggregate_by(
    source: FeatureCollection,
    key: str | Callable[[Feature], Hashable],
    reduce: Mapping[str, Reduction | str],
    key_field: str = "group",
) -> FeatureCollection:
    """Group features by key, dissolving geometries and reducing attributes.

    Args:
        source: Features to aggregate
        key: Attribute name, or function mapping a Feature to its group key.
            Features whose key is None are left out.
        reduce: Field name to reduction (e.g. {"population": Reduction.SUM})
        key_field: Output column holding the group key when key is a
            function (an attribute key keeps its own name)

    Returns:
        One feature per group in order of first appearance, with the
        dissolved union of member geometries, the key and reduced fields

    Raises:
        ValueError: If a field is missing, a non-count reduction targets a
            non-numeric field, or the key column collides with a reduced field

    Example:
        # Dissolve counties into states, summing population
        states = aggregate_by(counties, "state", {"population": Reduction.SUM})
    """
    reductions = _normalize_reductions(source, reduce, "source")

    if isinstance(key, str):
        require_fields(source, [key], "source")
        key_field = key
        keys = source.attributes()[key].tolist()
    else:
        keys = [key(feature) for feature in source]

    if key_field in reductions:
        msg = f"Key field '{key_field}' cannot also be a reduced field"
        raise ValueError(msg)

    output_columns = [key_field, *reductions]

    gdf = source.to_geodataframe()[[*reductions, CONSTANTS.GEOMETRY_COLUMN]].copy()
    gdf[_GROUP_COLUMN] = pd.Series(keys, index=gdf.index, dtype=object)

    dropped = int(gdf[_GROUP_COLUMN].isna().sum())
    if dropped > 0:
        logger.info(f"Leaving out {dropped} features without a group key")
        gdf = gdf[gdf[_GROUP_COLUMN].notna()]

    if gdf.empty:
        empty = gpd.GeoDataFrame(
            {c: [] for c in output_columns}, geometry=[], crs=source.crs
        )
        return FeatureCollection(empty, geometry_type=source.geometry_type)

    aggfunc = {f: r.value for f, r in reductions.items()} if reductions else "first"
    dissolved = gdf.dissolve(by=_GROUP_COLUMN, aggfunc=aggfunc, sort=False)
    dissolved = dissolved.reset_index().rename(columns={_GROUP_COLUMN: key_field})
    dissolved = dissolved[[*output_columns, CONSTANTS.GEOMETRY_COLUMN]]

    logger.debug(f"aggregate_by: {len(source)} features -> {len(dissolved)} groups")
    return FeatureCollection(dissolved, geometry_type=source.geometry_type)


def aggregate_by_containment(
    points: FeatureCollection,
    zones: FeatureCollection,
    reduce: Mapping[str, Reduction | str],
    keep_empty: bool = False,
    count_field: str | None = None,
    suffix: str | None = None,
    config: SpatialConfig = DEFAULT_CONFIG,
) -> FeatureCollection:
    """Reduce point attributes per containing zone polygon.

    A point on a shared boundary, or inside overlapping zones, is assigned
    to the first matching zone in zone input order. Points in no zone are
    ignored.

    Args:
        points: Point features holding the values
        zones: Zone polygons
        reduce: Field name to reduction (e.g. {"price": Reduction.MEAN})
        keep_empty: Also emit zones without any point (mean/min/max are
            missing, sum/count are zero)
        count_field: If given, add the number of member points under this name
        suffix: Suffix for reduced fields whose name exists on the zones
            (default: ``config.join_suffix``)
        config: Spatial configuration

    Returns:
        One feature per zone in zone input order, with the zone's own
        geometry and attributes followed by the reduced fields

    Raises:
        CrsMismatch: If points and zones CRS differ
        ValueError: If geometry families or fields do not fit
    """
    require_geometry_type(points, GeometryType.POINT, "points")
    require_geometry_type(zones, GeometryType.POLYGON, "zones")
    ensure_same_crs(points, zones)
    reductions = _normalize_reductions(points, reduce, "points")
    suffix = suffix or config.join_suffix

    point_idx, zone_idx = chunked_query_pairs(
        points.to_geodataframe(),
        zones.geometry,
        Predicate.INTERSECTS,
        None,
        config.parallel,
    )

    # Pairs are sorted by point then zone: the first pair per point is the first zone
    _, first = np.unique(point_idx, return_index=True)
    point_idx, zone_idx = point_idx[first], zone_idx[first]
    logger.debug(
        f"aggregate_by_containment: {len(point_idx)} of {len(points)} points fall in a zone"
    )

    members = points.attributes().iloc[point_idx][list(reductions)].reset_index(drop=True)
    members[_GROUP_COLUMN] = zone_idx
    grouped = members.groupby(_GROUP_COLUMN)

    if reductions:
        reduced = grouped.agg({f: r.value for f, r in reductions.items()})
    else:
        reduced = pd.DataFrame(index=pd.Index(np.unique(zone_idx), name=_GROUP_COLUMN))
    if count_field:
        reduced[count_field] = grouped.size()

    taken = {*zones.fields, CONSTANTS.GEOMETRY_COLUMN}
    renames = {}
    for name in reduced.columns:
        new_name = unique_name(name, taken, suffix)
        taken.add(new_name)
        if new_name != name:
            renames[name] = new_name
    reduced = reduced.rename(columns=renames)
    reduced.index.name = None

    zones_gdf = zones.to_geodataframe()
    result = zones_gdf.join(reduced, how="left" if keep_empty else "inner")

    if keep_empty:
        zero_fill = [renames.get(f, f) for f, r in reductions.items() if r in _ZERO_WHEN_EMPTY]
        if count_field:
            zero_fill.append(renames.get(count_field, count_field))
        for name in zero_fill:
            result[name] = result[name].fillna(0)

    ordered = [c for c in result.columns if c != CONSTANTS.GEOMETRY_COLUMN]
    result = result[[*ordered, CONSTANTS.GEOMETRY_COLUMN]]
    return FeatureCollection(result, geometry_type=zones.geometry_type)

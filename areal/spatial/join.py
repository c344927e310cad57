"""Spatial join.

Attach the attributes of matching right-hand features to each left-hand
feature. A left feature matching k right features yields k rows; this
row-count expansion is expected behaviour, not duplication.
"""

import logging

import geopandas as gpd
import numpy as np
import pandas as pd

from areal.config import CONSTANTS, DEFAULT_CONFIG, SpatialConfig
from areal.models import FeatureCollection, JoinMode, Predicate
from areal.spatial.parallel import chunked_query_pairs
from areal.spatial.utils import ensure_same_crs, unique_name

logger = logging.getLogger(__name__)


def spatial_join(
    left: FeatureCollection,
    right: FeatureCollection,
    predicate: Predicate | str = Predicate.INTERSECTS,
    mode: JoinMode | str = JoinMode.LEFT,
    distance: float | None = None,
    suffix: str | None = None,
    config: SpatialConfig = DEFAULT_CONFIG,
) -> FeatureCollection:
    """Join right-hand attributes onto left-hand features by spatial predicate.

    Rows are ordered by left input order, then by right input order within
    the matches of one left feature. Geometry always comes from ``left``.

    Args:
        left: Features to keep (their geometry becomes the row geometry)
        right: Features whose attributes are attached
        predicate: Spatial predicate, evaluated as ``predicate(left, right)``
        mode: LEFT keeps unmatched left features with missing right values,
            INNER drops them
        distance: Search distance, required for within_distance
        suffix: Suffix for right attributes whose name exists on the left
            (default: ``config.join_suffix``)
        config: Spatial configuration

    Returns:
        Joined collection with left geometry, left attributes, then right
        attributes

    Raises:
        CrsMismatch: If left and right CRS differ
        ValueError: If distance does not fit the predicate

    Example:
        # Attach the zone name to every site, one row per overlapping zone
        joined = spatial_join(sites, zones, Predicate.INTERSECTS, JoinMode.LEFT)
    """
    predicate = Predicate(predicate)
    mode = JoinMode(mode)
    suffix = suffix or config.join_suffix
    ensure_same_crs(left, right)

    left_idx, right_idx = chunked_query_pairs(
        left.to_geodataframe(),
        right.geometry,
        predicate,
        distance,
        config.parallel,
    )

    if mode is JoinMode.LEFT:
        unmatched = np.setdiff1d(np.arange(len(left)), left_idx)
        if len(unmatched) > 0:
            left_idx = np.concatenate([left_idx, unmatched])
            right_idx = np.concatenate([right_idx, np.full(len(unmatched), -1, dtype=np.intp)])
            # Unmatched features have no matched rows, so -1 never interleaves
            order = np.lexsort((right_idx, left_idx))
            left_idx, right_idx = left_idx[order], right_idx[order]

    left_gdf = left.to_geodataframe()
    right_attributes = right.attributes()

    taken = set(left_gdf.columns)
    renames = {}
    for name in right_attributes.columns:
        new_name = unique_name(name, taken, suffix)
        taken.add(new_name)
        if new_name != name:
            renames[name] = new_name
    if renames:
        logger.debug(f"Renaming colliding right-hand fields: {renames}")
        right_attributes = right_attributes.rename(columns=renames)

    left_rows = left_gdf.iloc[left_idx].reset_index(drop=True)
    # -1 is absent from the positional index, so reindex yields missing values
    right_rows = right_attributes.reindex(right_idx).reset_index(drop=True)

    joined = pd.concat(
        [left_rows.drop(columns=CONSTANTS.GEOMETRY_COLUMN), right_rows],
        axis=1,
    )
    result = gpd.GeoDataFrame(joined, geometry=left_rows.geometry.values, crs=left.crs)

    logger.debug(
        f"spatial_join({predicate.value}, {mode.value}): {len(left)} left x "
        f"{len(right)} right -> {len(result)} rows"
    )
    return FeatureCollection(result, geometry_type=left.geometry_type)

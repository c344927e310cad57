"""Predicate subsetting.

Select the features of one collection that stand in a spatial relationship
with any feature of a reference collection.
"""

import logging

import numpy as np

from areal.config import DEFAULT_CONFIG, SpatialConfig
from areal.errors import InvalidReference
from areal.models import FeatureCollection, Predicate
from areal.spatial.parallel import chunked_query_pairs
from areal.spatial.utils import ensure_same_crs

logger = logging.getLogger(__name__)


def subset(
    source: FeatureCollection,
    reference: FeatureCollection,
    predicate: Predicate | str = Predicate.INTERSECTS,
    distance: float | None = None,
    config: SpatialConfig = DEFAULT_CONFIG,
) -> FeatureCollection:
    """Select source features satisfying a predicate against any reference feature.

    ``disjoint`` is the complement mode: it keeps the source features that
    intersect no reference feature, so the intersects and disjoint subsets
    of one source always partition it.

    With an empty reference, ``disjoint`` returns every source feature and
    every other predicate returns an empty collection.

    Args:
        source: Features to filter
        reference: Features to compare against
        predicate: Spatial predicate, evaluated as ``predicate(source, reference)``
        distance: Search distance, required for within_distance
        config: Spatial configuration

    Returns:
        Matching source features in their original order, attributes and
        geometry unchanged

    Raises:
        CrsMismatch: If source and reference CRS differ
        InvalidReference: If the reference contains empty geometries
        ValueError: If distance does not fit the predicate

    Example:
        # Ponds within 250m of any development site
        nearby = subset(ponds, sites, Predicate.WITHIN_DISTANCE, distance=250)
    """
    predicate = Predicate(predicate)
    ensure_same_crs(source, reference)

    reference_geoms = reference.geometry
    empty_count = int(reference_geoms.is_empty.sum())
    if empty_count > 0:
        msg = f"Reference collection contains {empty_count} empty geometries"
        raise InvalidReference(msg)

    query_predicate = Predicate.INTERSECTS if predicate is Predicate.DISJOINT else predicate
    left_idx, _ = chunked_query_pairs(
        source.to_geodataframe(),
        reference_geoms,
        query_predicate,
        distance,
        config.parallel,
    )

    matched = np.zeros(len(source), dtype=bool)
    matched[left_idx] = True
    keep = ~matched if predicate is Predicate.DISJOINT else matched

    logger.debug(
        f"subset({predicate.value}) kept {int(keep.sum())} of {len(source)} features "
        f"against {len(reference)} reference features"
    )
    return source.take(np.flatnonzero(keep))

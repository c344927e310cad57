"""Geometry provider backed by Shapely (GEOS).

Scalar helpers for single geometries and pairs, plus the spatial-index
pair query that subsetting, joins and containment aggregation are built
on. No geometry algorithm is implemented here; everything is delegated to
Shapely.

The collection operations use ``centroid``, ``union``, ``simplify``,
``buffer`` and ``distance``. The scalar predicates, ``area``,
``intersection``, ``evaluate`` and ``PREDICATE_FUNCTIONS`` are public
helpers for callers testing one pair at a time; collection-level
predicates always go through ``query_pairs``, which answers the same
questions in bulk from the spatial index.
"""

from collections.abc import Callable, Iterable

import geopandas as gpd
import numpy as np
import shapely
from shapely.geometry.base import BaseGeometry

from areal.models.enums import Predicate


def area(geom: BaseGeometry) -> float:
    """Planar area (always non-negative; zero for points and lines)."""
    return float(geom.area)


def intersection(geom_a: BaseGeometry, geom_b: BaseGeometry) -> BaseGeometry:
    """Intersection of two geometries.

    Disjoint inputs yield an empty geometry (``is_empty`` is True), never None.
    """
    return geom_a.intersection(geom_b)


def intersects(geom_a: BaseGeometry, geom_b: BaseGeometry) -> bool:
    return bool(geom_a.intersects(geom_b))


def disjoint(geom_a: BaseGeometry, geom_b: BaseGeometry) -> bool:
    return bool(geom_a.disjoint(geom_b))


def touches(geom_a: BaseGeometry, geom_b: BaseGeometry) -> bool:
    return bool(geom_a.touches(geom_b))


def within(geom_a: BaseGeometry, geom_b: BaseGeometry) -> bool:
    return bool(geom_a.within(geom_b))


def contains(geom_a: BaseGeometry, geom_b: BaseGeometry) -> bool:
    return bool(geom_a.contains(geom_b))


def distance(geom_a: BaseGeometry, geom_b: BaseGeometry) -> float:
    return float(geom_a.distance(geom_b))


def within_distance(geom_a: BaseGeometry, geom_b: BaseGeometry, d: float) -> bool:
    return distance(geom_a, geom_b) <= d


def centroid(geom: BaseGeometry) -> BaseGeometry:
    return geom.centroid


def union(geometries: Iterable[BaseGeometry]) -> BaseGeometry:
    """Dissolve geometries into one (shared boundaries removed)."""
    return shapely.union_all(list(geometries))


def simplify(
    geom: BaseGeometry, tolerance: float, preserve_topology: bool = True
) -> BaseGeometry:
    """Douglas-Peucker simplification as provided by GEOS."""
    return geom.simplify(tolerance, preserve_topology=preserve_topology)


def buffer(geom: BaseGeometry, d: float) -> BaseGeometry:
    return geom.buffer(d)


PREDICATE_FUNCTIONS: dict[Predicate, Callable[[BaseGeometry, BaseGeometry], bool]] = {
    Predicate.INTERSECTS: intersects,
    Predicate.DISJOINT: disjoint,
    Predicate.TOUCHES: touches,
    Predicate.WITHIN: within,
    Predicate.CONTAINS: contains,
}

# Spatial index predicate names (geopandas sindex.query)
SINDEX_PREDICATES: dict[Predicate, str] = {
    Predicate.INTERSECTS: "intersects",
    Predicate.TOUCHES: "touches",
    Predicate.WITHIN: "within",
    Predicate.CONTAINS: "contains",
    Predicate.WITHIN_DISTANCE: "dwithin",
}


def check_distance(predicate: Predicate, d: float | None) -> None:
    """Validate the distance argument against the predicate.

    Raises:
        ValueError: If within_distance lacks a non-negative distance, or a
            distance is passed to any other predicate
    """
    if predicate is Predicate.WITHIN_DISTANCE:
        if d is None:
            msg = "within_distance requires an explicit distance"
            raise ValueError(msg)
        if d < 0:
            msg = f"distance must be non-negative, got {d}"
            raise ValueError(msg)
    elif d is not None:
        msg = f"distance only applies to within_distance, not {predicate.value}"
        raise ValueError(msg)


def evaluate(
    predicate: Predicate | str,
    geom_a: BaseGeometry,
    geom_b: BaseGeometry,
    d: float | None = None,
) -> bool:
    """Evaluate a predicate for one pair of geometries."""
    predicate = Predicate(predicate)
    check_distance(predicate, d)
    if predicate is Predicate.WITHIN_DISTANCE:
        return within_distance(geom_a, geom_b, d)
    return PREDICATE_FUNCTIONS[predicate](geom_a, geom_b)


def query_pairs(
    left: gpd.GeoSeries,
    right: gpd.GeoSeries,
    predicate: Predicate | str,
    d: float | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Find every (left, right) position pair satisfying ``predicate(left, right)``.

    Candidates come from the right-hand spatial index. ``disjoint`` pairs
    are the complement of the ``intersects`` pairs.

    Args:
        left: Left-hand geometries
        right: Right-hand geometries
        predicate: Spatial predicate
        d: Distance for within_distance

    Returns:
        Two integer arrays of positions, sorted by left then right position
    """
    predicate = Predicate(predicate)
    check_distance(predicate, d)

    empty = np.array([], dtype=np.intp)
    if len(left) == 0 or len(right) == 0:
        return empty, empty

    if predicate is Predicate.DISJOINT:
        left_idx, right_idx = query_pairs(left, right, Predicate.INTERSECTS)
        mask = np.ones((len(left), len(right)), dtype=bool)
        mask[left_idx, right_idx] = False
        left_idx, right_idx = np.nonzero(mask)
        return left_idx.astype(np.intp), right_idx.astype(np.intp)

    kwargs = {"distance": d} if predicate is Predicate.WITHIN_DISTANCE else {}
    left_idx, right_idx = right.sindex.query(
        left, predicate=SINDEX_PREDICATES[predicate], **kwargs
    )
    order = np.lexsort((right_idx, left_idx))
    return left_idx[order].astype(np.intp), right_idx[order].astype(np.intp)

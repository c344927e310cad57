"""Spatial operations over feature collections.

This package provides:
- Predicate subsetting (intersects, disjoint, touches, within, contains, within_distance)
- Spatial joins with left/inner semantics and one-to-many expansion
- Area-weighted interpolation between incongruent polygon layers
- Aggregation by key (with dissolve) and by zone containment
- Collection operations (project, simplify, centroids, buffer, dissolve, distance)
- General utilities (CRS checks, field checks)

Commonly used exports:
- subset: Features related to any reference feature
- spatial_join: Attach attributes of matching features
- area_interpolate: Transfer values onto target polygons by overlap area
- area_interpolate_mixed: Extensive and intensive fields in one pass
- transfer_table: Overlap weights between two polygon layers
- aggregate_by: Group, dissolve and reduce
- aggregate_by_containment: Reduce points per containing zone
- project: Select attributes, keeping geometry
- make_valid: Repair invalid geometries
- ensure_same_crs: CRS agreement check
"""

# Aggregation
from areal.spatial.aggregate import aggregate_by, aggregate_by_containment

# Interpolation
from areal.spatial.interpolate import (
    area_interpolate,
    area_interpolate_mixed,
    transfer_table,
)

# Joins and subsetting
from areal.spatial.join import spatial_join

# Collection operations
from areal.spatial.operations import (
    buffer,
    centroids,
    dissolve,
    distance_to,
    make_valid,
    project,
    simplify,
)
from areal.spatial.subset import subset

# General utilities
from areal.spatial.utils import ensure_same_crs

__all__ = [
    "subset",
    "spatial_join",
    "area_interpolate",
    "area_interpolate_mixed",
    "transfer_table",
    "aggregate_by",
    "aggregate_by_containment",
    "project",
    "simplify",
    "centroids",
    "buffer",
    "dissolve",
    "distance_to",
    "make_valid",
    "ensure_same_crs",
]

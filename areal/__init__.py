"""Vector spatial operations over in-memory feature collections.

Subsetting, spatial joins, area-weighted interpolation and aggregation,
built on GeoPandas and Shapely.
"""

from areal.errors import ArealError, CrsMismatch, DegenerateGeometry, InvalidReference
from areal.models import (
    Feature,
    FeatureCollection,
    GeometryType,
    JoinMode,
    Predicate,
    Reduction,
)
from areal.spatial import (
    aggregate_by,
    aggregate_by_containment,
    area_interpolate,
    area_interpolate_mixed,
    project,
    spatial_join,
    subset,
    transfer_table,
)

__all__ = [
    "ArealError",
    "CrsMismatch",
    "DegenerateGeometry",
    "InvalidReference",
    "Feature",
    "FeatureCollection",
    "GeometryType",
    "JoinMode",
    "Predicate",
    "Reduction",
    "subset",
    "spatial_join",
    "area_interpolate",
    "area_interpolate_mixed",
    "transfer_table",
    "aggregate_by",
    "aggregate_by_containment",
    "project",
]

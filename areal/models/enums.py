"""Enumerations used as operation parameters.

Predicates, join modes and reductions form small closed sets, so they are
passed around as string enums and dispatched through lookup tables.
"""

from enum import StrEnum


class GeometryType(StrEnum):
    """Geometry family shared by every feature of a collection."""

    POLYGON = "polygon"
    POINT = "point"
    LINE = "line"


class Predicate(StrEnum):
    """Binary spatial relationship between two geometries."""

    INTERSECTS = "intersects"
    DISJOINT = "disjoint"
    TOUCHES = "touches"
    WITHIN = "within"
    CONTAINS = "contains"
    WITHIN_DISTANCE = "within_distance"


class JoinMode(StrEnum):
    """Handling of left-hand features without a match."""

    LEFT = "left"  # keep unmatched features with missing right-hand values
    INNER = "inner"  # drop unmatched features


class Reduction(StrEnum):
    """Field-wise reduction applied when aggregating a group.

    Values are pandas aggregation names.
    """

    MEAN = "mean"
    SUM = "sum"
    MIN = "min"
    MAX = "max"
    COUNT = "count"

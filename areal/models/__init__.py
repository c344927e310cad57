"""Data models for features, collections and operation parameters."""

from areal.models.enums import GeometryType, JoinMode, Predicate, Reduction
from areal.models.feature import Feature, FeatureCollection, geometry_family

__all__ = [
    "Feature",
    "FeatureCollection",
    "GeometryType",
    "JoinMode",
    "Predicate",
    "Reduction",
    "geometry_family",
]

"""General spatial utilities.

This module provides the precondition checks shared by every operation:
- CRS agreement between collections (no silent reprojection)
- Geometry family checks
- Attribute field checks
"""

from collections.abc import Iterable

import pandas as pd

from areal.errors import CrsMismatch
from areal.models import FeatureCollection, GeometryType


def ensure_same_crs(left: FeatureCollection, right: FeatureCollection) -> None:
    """Ensure two collections share one coordinate reference system.

    Two collections without a CRS are treated as sharing the same
    unreferenced planar coordinates. A collection without a CRS never
    matches one that has a CRS.

    Raises:
        CrsMismatch: If the CRS differ
    """
    if left.crs is None and right.crs is None:
        return
    if left.crs is None or right.crs is None or left.crs != right.crs:
        raise CrsMismatch(left.crs, right.crs)


def require_geometry_type(
    collection: FeatureCollection, expected: GeometryType, name: str
) -> None:
    """Ensure a collection holds the expected geometry family.

    Empty, untyped collections pass.

    Raises:
        ValueError: If the collection holds another geometry family
    """
    if collection.geometry_type is not None and collection.geometry_type != expected:
        msg = (
            f"{name} must contain {expected.value} geometries, "
            f"got {collection.geometry_type.value}"
        )
        raise ValueError(msg)


def require_fields(
    collection: FeatureCollection,
    fields: Iterable[str],
    name: str,
    numeric: bool = False,
) -> list[str]:
    """Ensure fields exist on a collection (and optionally hold numbers).

    Returns:
        The fields as a list, in the order given

    Raises:
        ValueError: If a field is missing or not numeric
    """
    fields = list(fields)
    missing = [f for f in fields if f not in collection.fields]
    if missing:
        msg = f"Field(s) {missing} not found in {name}"
        raise ValueError(msg)

    if numeric:
        attributes = collection.attributes()
        non_numeric = [f for f in fields if not pd.api.types.is_numeric_dtype(attributes[f])]
        if non_numeric:
            msg = f"Field(s) {non_numeric} in {name} are not numeric"
            raise ValueError(msg)

    return fields


def unique_name(name: str, taken: Iterable[str], suffix: str) -> str:
    """Append ``_<suffix>`` to name until it no longer collides with taken."""
    taken = set(taken)
    candidate = name
    while candidate in taken:
        candidate = f"{candidate}_{suffix}"
    return candidate

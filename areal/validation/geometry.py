"""Geometry validation for feature collections."""

from pathlib import Path

from areal.config import DEFAULT_CONFIG, SpatialConfig
from areal.models import FeatureCollection, GeometryType
from areal.validation.errors import ValidationError


class CollectionValidator:
    """Validates feature collections before they enter spatial operations.

    Checks:
    - Defined CRS
    - Expected geometry family (when one is required)
    - No empty geometries
    - No invalid geometries (self-intersections, etc.)
    - No zero-area polygons (these cannot be interpolation sources)
    """

    def __init__(self, config: SpatialConfig = DEFAULT_CONFIG):
        self.config = config

    def validate(
        self,
        collection: FeatureCollection,
        expected_type: GeometryType | None = None,
    ) -> list[ValidationError]:
        """Validate a collection.

        Args:
            collection: Collection to check
            expected_type: Geometry family the caller requires, if any

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if collection.crs is None:
            errors.append(
                ValidationError(
                    message="Collection has no defined CRS",
                    field="crs",
                )
            )

        if (
            expected_type is not None
            and collection.geometry_type is not None
            and collection.geometry_type != expected_type
        ):
            errors.append(
                ValidationError(
                    message=f"Invalid geometry family: {collection.geometry_type.value}. "
                    f"Expected: {expected_type.value}",
                    field="geometry",
                )
            )

        geoms = collection.geometry

        empty_count = int(geoms.is_empty.sum())
        if empty_count > 0:
            errors.append(
                ValidationError(
                    message=f"Found {empty_count} empty geometries",
                    field="geometry",
                )
            )

        invalid_count = int((~geoms.is_valid).sum())
        if invalid_count > 0:
            errors.append(
                ValidationError(
                    message=f"Found {invalid_count} invalid geometries (self-intersections, etc.)",
                    field="geometry",
                )
            )

        if collection.geometry_type is GeometryType.POLYGON:
            degenerate = (~geoms.is_empty) & (
                geoms.area <= self.config.degenerate_area_tolerance
            )
            degenerate_count = int(degenerate.sum())
            if degenerate_count > 0:
                errors.append(
                    ValidationError(
                        message=f"Found {degenerate_count} zero-area polygons",
                        field="geometry",
                    )
                )

        return errors

    def validate_file(
        self,
        path: Path,
        expected_type: GeometryType | None = None,
    ) -> list[ValidationError]:
        """Read a vector file and validate its contents.

        Args:
            path: Path to a GeoPackage, GeoJSON or shapefile

        Returns:
            List of validation errors (empty if valid)
        """
        try:
            collection = FeatureCollection.from_file(path)
        except Exception as e:
            return [
                ValidationError(
                    message=f"Cannot read {path.name}: {e}",
                    field="file",
                )
            ]

        return self.validate(collection, expected_type)

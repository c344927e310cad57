"""Unit tests for collection-level geometry operations."""

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import Point, Polygon, box

from areal.models import FeatureCollection, GeometryType
from areal.spatial.operations import (
    buffer,
    centroids,
    dissolve,
    distance_to,
    make_valid,
    project,
    simplify,
)


@pytest.fixture
def parcels():
    return FeatureCollection(
        gpd.GeoDataFrame(
            {"parcel_id": [1, 2], "owner": ["Ada", "Grace"], "area_ha": [1.0, 1.0]},
            geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1)],
            crs="EPSG:27700",
        )
    )


@pytest.fixture
def wells():
    return FeatureCollection(
        gpd.GeoDataFrame({"well_id": ["w1"]}, geometry=[Point(3, 4)], crs="EPSG:27700")
    )


def test_project_keeps_geometry(parcels):
    result = project(parcels, ["owner"])

    assert result.fields == ("owner",)
    assert result.geometry.geom_equals(parcels.geometry).all()


def test_project_drop_geometry_returns_table(parcels):
    result = project(parcels, ["owner", "parcel_id"], drop_geometry=True)

    assert isinstance(result, pd.DataFrame)
    assert list(result.columns) == ["owner", "parcel_id"]


def test_project_rejects_missing_field(parcels):
    with pytest.raises(ValueError, match="not found"):
        project(parcels, ["tenure"])


def test_simplify_reduces_vertex_count():
    circle = Point(0, 0).buffer(100)
    collection = FeatureCollection(
        gpd.GeoDataFrame({"id": [1]}, geometry=[circle], crs="EPSG:27700")
    )

    result = simplify(collection, tolerance=5)

    simplified = result.geometry.iloc[0]
    assert len(simplified.exterior.coords) < len(circle.exterior.coords)
    assert simplified.is_valid
    assert result.attributes()["id"].tolist() == [1]


def test_simplify_rejects_negative_tolerance(parcels):
    with pytest.raises(ValueError, match="non-negative"):
        simplify(parcels, tolerance=-1)


def test_centroids(parcels):
    result = centroids(parcels)

    assert result.geometry_type is GeometryType.POINT
    assert result.geometry.iloc[0].equals(Point(0.5, 0.5))
    assert result.fields == parcels.fields


def test_buffer_points_become_polygons(wells):
    result = buffer(wells, 1.0)

    assert result.geometry_type is GeometryType.POLYGON
    assert result.geometry.iloc[0].area == pytest.approx(3.14, rel=0.01)


def test_buffer_rejects_negative_distance_for_points(wells):
    with pytest.raises(ValueError, match="Only polygons"):
        buffer(wells, -1.0)


def test_negative_buffer_shrinks_polygons(parcels):
    result = buffer(parcels, -0.25)

    assert result.geometry.iloc[0].area == pytest.approx(0.25)


def test_dissolve_merges_into_one_feature(parcels):
    result = dissolve(parcels)

    assert len(result) == 1
    assert result.fields == ()
    assert result.geometry.iloc[0].area == pytest.approx(2.0)


def test_dissolve_empty_collection():
    empty = FeatureCollection(gpd.GeoDataFrame(geometry=[], crs="EPSG:27700"))

    assert dissolve(empty).is_empty


def test_distance_to(wells, parcels):
    result = distance_to(wells, Point(0, 0))

    assert result.attributes()["distance"].tolist() == pytest.approx([5.0])

    # Inside the polygon the distance is zero
    inside = distance_to(centroids(parcels), parcels.geometry.iloc[0])
    assert inside.attributes()["distance"].tolist() == pytest.approx([0.0, 0.5])


def test_distance_to_renames_existing_field(wells):
    measured = distance_to(wells, Point(0, 0))

    result = distance_to(measured, Point(3, 0))

    assert result.fields == ("well_id", "distance", "distance_to")
    assert result.attributes()["distance_to"].tolist() == pytest.approx([4.0])


def test_make_valid_repairs_invalid():
    """Test a self-intersecting bowtie is repaired."""
    bowtie = Polygon([(0, 0), (10, 10), (10, 0), (0, 10), (0, 0)])
    collection = FeatureCollection(
        gpd.GeoDataFrame({"id": [1]}, geometry=[bowtie], crs="EPSG:27700")
    )

    result = make_valid(collection)

    assert result.geometry.iloc[0].is_valid
    assert result.geometry.iloc[0].area == pytest.approx(50.0)
    assert not collection.geometry.iloc[0].is_valid


def test_make_valid_preserves_valid(parcels):
    result = make_valid(parcels)

    assert result.geometry.geom_equals(parcels.geometry).all()

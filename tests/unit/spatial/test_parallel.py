"""Unit tests for chunked parallel execution."""

from concurrent.futures import ThreadPoolExecutor

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import Polygon

from areal.config import ParallelConfig, SpatialConfig
from areal.geometry import query_pairs
from areal.models import FeatureCollection, JoinMode, Predicate
from areal.spatial.join import spatial_join
from areal.spatial.operations import buffer
from areal.spatial.parallel import chunked_query_pairs, map_chunks, partition_by_bounds
from areal.spatial.subset import subset


@pytest.fixture
def strip():
    """120 unit squares along the x axis."""
    return gpd.GeoDataFrame(
        {
            "id": list(range(120)),
            "geometry": [Polygon([(i, 0), (i + 1, 0), (i + 1, 1), (i, 1)]) for i in range(120)],
        },
        crs="EPSG:27700",
    )


@pytest.fixture
def block():
    return gpd.GeoSeries(
        [Polygon([(40, -1), (80, -1), (80, 2), (40, 2)])],
        crs="EPSG:27700",
    )


def _count_rows(chunk):
    return len(chunk)


def test_partition_by_bounds_no_duplicate_rows_on_chunk_boundary():
    """Test chunk partitioning does not duplicate features on boundaries."""
    input_gdf = gpd.GeoDataFrame(
        {"site_id": list(range(100))},
        geometry=[Polygon([(i, 0), (i + 1, 0), (i + 1, 1), (i, 1)]) for i in range(100)],
        crs="EPSG:27700",
    )

    chunks = partition_by_bounds(input_gdf, n_chunks=2)
    assert len(chunks) == 2

    # Every original row should appear exactly once across chunks
    combined_ids = pd.concat([chunk["site_id"] for chunk in chunks], ignore_index=True)
    assert len(combined_ids) == len(input_gdf)
    assert combined_ids.nunique() == len(input_gdf)


def test_partition_by_bounds_keeps_positional_index(strip):
    chunks = partition_by_bounds(strip, n_chunks=3)

    for chunk in chunks:
        assert chunk.index.tolist() == chunk["id"].tolist()


def test_map_chunks_below_threshold_runs_once(strip):
    config = ParallelConfig(threshold=1000, max_workers=4)

    assert map_chunks(_count_rows, strip, config=config, label="count") == [120]


def test_map_chunks_splits_above_threshold(monkeypatch, strip):
    monkeypatch.setattr("areal.spatial.parallel.ProcessPoolExecutor", ThreadPoolExecutor)
    config = ParallelConfig(threshold=10, max_workers=4)

    results = map_chunks(_count_rows, strip, config=config, label="count")

    assert len(results) == 4
    assert sum(results) == 120


def test_map_chunks_falls_back_when_pool_unavailable(monkeypatch, strip):
    """Parallel mode falls back to sequential if process pools are unavailable."""

    def _raise_permission_error(*_args, **_kwargs):
        raise PermissionError("blocked in test")

    monkeypatch.setattr("areal.spatial.parallel.ProcessPoolExecutor", _raise_permission_error)
    config = ParallelConfig(threshold=10, max_workers=2)

    assert map_chunks(_count_rows, strip, config=config, label="count") == [120]


def test_chunked_query_matches_full_query(monkeypatch, strip, block):
    monkeypatch.setattr("areal.spatial.parallel.ProcessPoolExecutor", ThreadPoolExecutor)
    config = ParallelConfig(threshold=10, max_workers=3)

    chunked = chunked_query_pairs(strip, block, Predicate.INTERSECTS, None, config)
    full = query_pairs(strip.geometry, block, Predicate.INTERSECTS)

    assert chunked[0].tolist() == full[0].tolist()
    assert chunked[1].tolist() == full[1].tolist()
    # Squares 39 and 80 touch the block edges
    assert chunked[0].tolist() == list(range(39, 81))


def test_subset_parallel_fallback(monkeypatch, strip, block):
    """Subsetting gives the same result whether or not a pool can be created."""

    def _raise_permission_error(*_args, **_kwargs):
        raise PermissionError("blocked in test")

    monkeypatch.setattr("areal.spatial.parallel.ProcessPoolExecutor", _raise_permission_error)
    source = FeatureCollection(strip)
    reference = FeatureCollection(gpd.GeoDataFrame(geometry=block))
    parallel_config = SpatialConfig(parallel=ParallelConfig(threshold=10, max_workers=2))
    sequential_config = SpatialConfig(parallel=ParallelConfig(enabled=False))

    result_parallel = subset(source, reference, Predicate.DISJOINT, config=parallel_config)
    result_sequential = subset(source, reference, Predicate.DISJOINT, config=sequential_config)

    assert result_parallel.attributes()["id"].tolist() == (
        result_sequential.attributes()["id"].tolist()
    )
    assert len(result_parallel) == 120 - 42


def test_partition_by_bounds_places_empty_geometries(strip):
    """Empty geometries have no centroid but still land in exactly one chunk."""
    strip.loc[5, "geometry"] = Polygon()

    chunks = partition_by_bounds(strip, n_chunks=4)

    combined_ids = pd.concat([chunk["id"] for chunk in chunks], ignore_index=True)
    assert sorted(combined_ids.tolist()) == list(range(120))
    assert 5 in chunks[-1]["id"].tolist()


def test_partition_by_bounds_all_empty_geometries():
    gdf = gpd.GeoDataFrame({"id": [0, 1]}, geometry=[Polygon(), Polygon()], crs="EPSG:27700")

    chunks = partition_by_bounds(gdf, n_chunks=4)

    assert len(chunks) == 1
    assert chunks[0]["id"].tolist() == [0, 1]


@pytest.mark.parametrize("mode", [JoinMode.INNER, JoinMode.LEFT])
def test_disjoint_join_with_empty_geometry_matches_sequential(monkeypatch, mode):
    """A polygon shrunk to nothing is disjoint from every zone in both run modes."""
    monkeypatch.setattr("areal.spatial.parallel.ProcessPoolExecutor", ThreadPoolExecutor)
    parcels = FeatureCollection(
        gpd.GeoDataFrame(
            {"parcel_id": list(range(41))},
            geometry=[Polygon([(i, 0), (i + 1, 0), (i + 1, 1), (i, 1)]) for i in range(40)]
            + [Polygon([(50, 0), (50.2, 0), (50.2, 0.2), (50, 0.2)])],
            crs="EPSG:27700",
        )
    )
    shrunk = buffer(parcels, -0.3)
    assert shrunk.geometry.iloc[40].is_empty
    zones = FeatureCollection(
        gpd.GeoDataFrame(
            {"zone": ["west", "east"]},
            geometry=[
                Polygon([(0, -1), (20, -1), (20, 2), (0, 2)]),
                Polygon([(20, -1), (40, -1), (40, 2), (20, 2)]),
            ],
            crs="EPSG:27700",
        )
    )
    parallel_config = SpatialConfig(parallel=ParallelConfig(threshold=10, max_workers=4))
    sequential_config = SpatialConfig(parallel=ParallelConfig(enabled=False))

    result_parallel = spatial_join(
        shrunk, zones, Predicate.DISJOINT, mode, config=parallel_config
    ).attributes()
    result_sequential = spatial_join(
        shrunk, zones, Predicate.DISJOINT, mode, config=sequential_config
    ).attributes()

    pd.testing.assert_frame_equal(result_parallel, result_sequential)
    empty_rows = result_parallel[result_parallel["parcel_id"] == 40]
    assert empty_rows["zone"].tolist() == ["west", "east"]

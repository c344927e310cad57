"""Chunked parallel execution for per-feature spatial work.

Features are partitioned into non-overlapping spatial strips by centroid
and each chunk is processed in a separate worker process. Chunks keep the
positional index of the full GeoDataFrame, so results can be placed back in
input order regardless of completion order.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ProcessPoolExecutor
from typing import Any

import geopandas as gpd
import numpy as np

from areal.config import ParallelConfig
from areal.geometry import query_pairs
from areal.models.enums import Predicate

logger = logging.getLogger(__name__)


def partition_by_bounds(gdf: gpd.GeoDataFrame, n_chunks: int) -> list[gpd.GeoDataFrame]:
    """Partition GeoDataFrame into non-overlapping spatial strips.

    Strips run across the longer axis (x or y) of the total bounds and each
    feature goes to the strip holding its centroid. Empty geometries have
    no centroid and are placed in the last strip, so every row lands in
    exactly one chunk.
    """
    if len(gdf) == 0 or n_chunks <= 1:
        return [gdf]

    minx, miny, maxx, maxy = gdf.total_bounds
    centroids = gdf.geometry.centroid
    if maxx - minx >= maxy - miny:
        coords, low, high = centroids.x.to_numpy(), minx, maxx
    else:
        coords, low, high = centroids.y.to_numpy(), miny, maxy

    strips = np.full(len(gdf), n_chunks - 1, dtype=np.intp)
    located = ~np.isnan(coords)
    if high > low:
        step = (high - low) / n_chunks
        offsets = (coords[located] - low) // step
        strips[located] = np.clip(offsets, 0, n_chunks - 1).astype(np.intp)

    chunks = [gdf[strips == i] for i in range(n_chunks) if (strips == i).any()]
    return chunks if chunks else [gdf]


def map_chunks(
    func: Callable[..., Any],
    gdf: gpd.GeoDataFrame,
    *args: Any,
    config: ParallelConfig,
    label: str,
) -> list[Any]:
    """Apply ``func(chunk, *args)`` to spatial chunks of gdf.

    Runs a single sequential ``func(gdf, *args)`` call when parallelism is
    disabled, the input is below the configured threshold, or a process
    pool cannot be created.

    Args:
        func: Module-level (picklable) function taking a chunk first
        gdf: Features to partition; its index must be positional
        *args: Extra arguments passed unchanged to every call
        config: Parallel execution configuration
        label: Operation name for log messages

    Returns:
        One result per chunk, in chunk order
    """
    if not config.should_parallelize(len(gdf)):
        return [func(gdf, *args)]

    max_workers = config.worker_count
    chunks = partition_by_bounds(gdf, max_workers)
    if len(chunks) <= 1:
        return [func(gdf, *args)]

    logger.debug(f"Running {label} over {len(chunks)} chunks with {max_workers} workers")
    try:
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(func, chunk, *args) for chunk in chunks]
            return [f.result() for f in futures]
    except (NotImplementedError, PermissionError, OSError) as exc:
        logger.warning(f"Parallel {label} unavailable ({exc}); falling back to sequential")
        return [func(gdf, *args)]


def _query_chunk(
    left_chunk: gpd.GeoDataFrame,
    right: gpd.GeoSeries,
    predicate: Predicate,
    d: float | None,
) -> tuple[np.ndarray, np.ndarray]:
    """Run a pair query for one left-side chunk, reporting full-frame positions."""
    left_idx, right_idx = query_pairs(left_chunk.geometry, right, predicate, d)
    return left_chunk.index.to_numpy()[left_idx], right_idx


def chunked_query_pairs(
    left: gpd.GeoDataFrame,
    right: gpd.GeoSeries,
    predicate: Predicate,
    d: float | None,
    config: ParallelConfig,
) -> tuple[np.ndarray, np.ndarray]:
    """Pair query over left chunks; same result as ``query_pairs`` on the full frame.

    Returns:
        Left and right position arrays sorted by left then right position
    """
    results = map_chunks(
        _query_chunk, left, right, predicate, d, config=config, label=f"{predicate.value} query"
    )
    left_idx = np.concatenate([r[0] for r in results]).astype(np.intp)
    right_idx = np.concatenate([r[1] for r in results]).astype(np.intp)
    order = np.lexsort((right_idx, left_idx))
    return left_idx[order], right_idx[order]

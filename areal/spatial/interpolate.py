"""Area-weighted spatial interpolation.

Transfers attribute values from a source polygon layer onto an incongruent
target polygon layer using the area of overlap between each source and
target polygon.

- Extensive fields (counts such as population) are assumed to be spread
  uniformly over each source polygon. Each target receives the share of
  every source value proportional to the fraction of the source area it
  covers, so totals are preserved where the layers cover each other.
- Intensive fields (densities, rates) are averaged over the overlapping
  sources, weighted by overlap area.

Results are modeled estimates: the uniform-distribution assumption rarely
holds exactly.
"""

import logging
from collections.abc import Iterable

import geopandas as gpd
import numpy as np
import pandas as pd

from areal.config import CONSTANTS, DEFAULT_CONFIG, DebugConfig, SpatialConfig
from areal.debug import save_debug_frame
from areal.errors import DegenerateGeometry, InvalidReference
from areal.models import FeatureCollection, GeometryType
from areal.spatial.parallel import map_chunks
from areal.spatial.utils import ensure_same_crs, require_fields, require_geometry_type

logger = logging.getLogger(__name__)

TRANSFER_COLUMNS = ["source_index", "target_index", "overlap_area", "weight"]


def _check_inputs(
    source: FeatureCollection,
    target: FeatureCollection,
    config: SpatialConfig,
) -> np.ndarray:
    """Validate collections and return source polygon areas."""
    require_geometry_type(source, GeometryType.POLYGON, "source")
    require_geometry_type(target, GeometryType.POLYGON, "target")
    ensure_same_crs(source, target)

    if source.is_empty:
        msg = "Source collection is empty; nothing to interpolate from"
        raise InvalidReference(msg)

    source_areas = source.geometry.area.to_numpy()
    degenerate = np.flatnonzero(source_areas <= config.degenerate_area_tolerance)
    if len(degenerate) > 0:
        raise DegenerateGeometry(degenerate.tolist())

    return source_areas


def _overlap_chunk(
    target_chunk: gpd.GeoDataFrame,
    source_geoms: gpd.GeoSeries,
) -> pd.DataFrame:
    """Compute overlap areas between one chunk of targets and all sources.

    Target positions are taken from the chunk index, which is positional in
    the full target frame.
    """
    target_geoms = target_chunk.geometry
    target_pos, source_pos = source_geoms.sindex.query(target_geoms, predicate="intersects")

    pieces = source_geoms.iloc[source_pos].reset_index(drop=True).intersection(
        target_geoms.iloc[target_pos].reset_index(drop=True)
    )
    overlap = pieces.area.to_numpy()

    table = pd.DataFrame(
        {
            "source_index": source_pos.astype(np.int64),
            "target_index": target_chunk.index.to_numpy()[target_pos].astype(np.int64),
            "overlap_area": overlap,
        }
    )
    # Boundary-only contact intersects but contributes nothing
    return table[table["overlap_area"] > 0]


def _build_transfer_table(
    source: FeatureCollection,
    target: FeatureCollection,
    source_areas: np.ndarray,
    config: SpatialConfig,
) -> pd.DataFrame:
    empty = pd.DataFrame(
        {
            "source_index": pd.Series(dtype=np.int64),
            "target_index": pd.Series(dtype=np.int64),
            "overlap_area": pd.Series(dtype=float),
        }
    )
    if target.is_empty:
        chunks = [empty]
    else:
        chunks = map_chunks(
            _overlap_chunk,
            target.to_geodataframe(),
            source.geometry,
            config=config.parallel,
            label="area interpolation",
        )

    table = pd.concat([empty, *chunks], ignore_index=True)
    table["weight"] = table["overlap_area"] / source_areas[table["source_index"].to_numpy()]
    return table.sort_values(["target_index", "source_index"], ignore_index=True)[
        TRANSFER_COLUMNS
    ]


def transfer_table(
    source: FeatureCollection,
    target: FeatureCollection,
    config: SpatialConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """Compute the overlap weights between two polygon layers.

    Only pairs with a positive overlap area are listed. ``weight`` is the
    fraction of the source polygon's area falling inside the target polygon.

    Args:
        source: Source polygons
        target: Target polygons
        config: Spatial configuration

    Returns:
        DataFrame with columns source_index, target_index, overlap_area,
        weight (positions into source and target), sorted by target then
        source position

    Raises:
        CrsMismatch: If source and target CRS differ
        InvalidReference: If source is empty
        DegenerateGeometry: If a source polygon has (near) zero area
        ValueError: If either collection is not a polygon collection
    """
    source_areas = _check_inputs(source, target, config)
    return _build_transfer_table(source, target, source_areas, config)


def _extensive_values(table: pd.DataFrame, values: np.ndarray, n_targets: int) -> np.ndarray:
    contributions = values[table["source_index"].to_numpy()] * table["weight"].to_numpy()
    result = np.zeros(n_targets, dtype=float)
    # Missing source values contribute nothing
    np.add.at(
        result,
        table["target_index"].to_numpy(),
        np.nan_to_num(contributions, nan=0.0),
    )
    return result


def _intensive_values(table: pd.DataFrame, values: np.ndarray, n_targets: int) -> np.ndarray:
    source_values = values[table["source_index"].to_numpy()]
    present = ~np.isnan(source_values)
    target_idx = table["target_index"].to_numpy()[present]
    overlap = table["overlap_area"].to_numpy()[present]

    numerator = np.zeros(n_targets, dtype=float)
    denominator = np.zeros(n_targets, dtype=float)
    np.add.at(numerator, target_idx, source_values[present] * overlap)
    np.add.at(denominator, target_idx, overlap)

    result = np.full(n_targets, np.nan)
    covered = denominator > 0
    result[covered] = numerator[covered] / denominator[covered]
    return result


def _assemble(
    target: FeatureCollection,
    columns: dict[str, np.ndarray],
) -> FeatureCollection:
    result = target.to_geodataframe()
    for field, values in columns.items():
        result[field] = values

    # Keep geometry as the last column
    ordered = [c for c in result.columns if c != CONSTANTS.GEOMETRY_COLUMN]
    result = result[[*ordered, CONSTANTS.GEOMETRY_COLUMN]]
    return FeatureCollection(result, geometry_type=target.geometry_type)


def area_interpolate_mixed(
    source: FeatureCollection,
    target: FeatureCollection,
    extensive: Iterable[str] = (),
    intensive: Iterable[str] = (),
    config: SpatialConfig = DEFAULT_CONFIG,
    debug_config: DebugConfig | None = None,
) -> FeatureCollection:
    """Interpolate extensive and intensive fields over one shared transfer table.

    Args:
        source: Source polygons holding the values
        target: Target polygons receiving the values
        extensive: Sum-preserving fields (e.g. population counts)
        intensive: Mean-preserving fields (e.g. densities)
        config: Spatial configuration
        debug_config: Optional debug output of the transfer table

    Returns:
        Target features with one interpolated column per field. Extensive
        values default to 0.0 and intensive values to NaN for targets that
        overlap no source.

    Raises:
        CrsMismatch: If source and target CRS differ
        InvalidReference: If source is empty
        DegenerateGeometry: If a source polygon has (near) zero area
        ValueError: If fields are missing, non-numeric, listed in both modes,
            or a collection is not a polygon collection
    """
    extensive = list(extensive)
    intensive = list(intensive)
    both = sorted(set(extensive) & set(intensive))
    if both:
        msg = f"Field(s) {both} cannot be both extensive and intensive"
        raise ValueError(msg)

    source_areas = _check_inputs(source, target, config)
    require_fields(source, [*extensive, *intensive], "source", numeric=True)

    logger.info(
        f"Area-weighted interpolation of {len(source)} source onto {len(target)} target "
        f"polygons (extensive={extensive}, intensive={intensive}); "
        f"values are estimates assuming uniform distribution within each source polygon"
    )

    table = _build_transfer_table(source, target, source_areas, config)
    logger.debug(f"Transfer table has {len(table)} overlapping pairs")
    if debug_config is not None:
        save_debug_frame(table, "transfer_table", debug_config)

    attributes = source.attributes()
    n_targets = len(target)
    columns = {}
    for field in extensive:
        values = attributes[field].to_numpy(dtype=float, na_value=np.nan)
        columns[field] = _extensive_values(table, values, n_targets)
    for field in intensive:
        values = attributes[field].to_numpy(dtype=float, na_value=np.nan)
        columns[field] = _intensive_values(table, values, n_targets)

    uncovered = n_targets - table["target_index"].nunique()
    if uncovered > 0:
        logger.warning(f"{uncovered} of {n_targets} target polygons overlap no source polygon")

    return _assemble(target, columns)


def area_interpolate(
    source: FeatureCollection,
    target: FeatureCollection,
    fields: Iterable[str],
    extensive: bool = True,
    config: SpatialConfig = DEFAULT_CONFIG,
    debug_config: DebugConfig | None = None,
) -> FeatureCollection:
    """Transfer source values onto target polygons by overlap-area weighting.

    For each target ``t`` and each source ``s`` overlapping it:

        extensive:  t.v = sum(s.v * area(s & t) / area(s))
        intensive:  t.v = sum(s.v * area(s & t)) / sum(area(s & t))

    Example:
        # Census tract population onto a hexagon grid
        hexes = area_interpolate(tracts, grid, ["population"], extensive=True)
    """
    fields = list(fields)
    if extensive:
        return area_interpolate_mixed(
            source, target, extensive=fields, config=config, debug_config=debug_config
        )
    return area_interpolate_mixed(
        source, target, intensive=fields, config=config, debug_config=debug_config
    )

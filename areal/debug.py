"""Debug output helpers for inspecting intermediate tables.

WARNING: For local development and debugging only.
"""

import logging
from datetime import UTC, datetime

import geopandas as gpd
import pandas as pd

from areal.config import DebugConfig

logger = logging.getLogger(__name__)


def save_debug_frame(
    frame: pd.DataFrame | gpd.GeoDataFrame,
    name: str,
    config: DebugConfig,
) -> None:
    """Save an intermediate table for debugging if debug output is enabled.

    GeoDataFrames are written as GeoPackage, plain DataFrames as CSV.

    Args:
        frame: Table to save
        name: Descriptive name (e.g., "transfer_table", "joined")
        config: Debug configuration
    """
    if not config.enabled:
        return

    config.output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now(UTC).strftime("%H%M%S")
    is_spatial = isinstance(frame, gpd.GeoDataFrame)
    output_path = config.output_dir / f"{timestamp}_{name}.{'gpkg' if is_spatial else 'csv'}"

    try:
        if is_spatial:
            frame.to_file(output_path, driver="GPKG")
        else:
            frame.to_csv(output_path, index=False)
        logger.debug(f"Saved debug output: {output_path} ({len(frame)} rows)")
    except Exception as e:
        logger.warning(f"Failed to save debug output {name}: {e}")

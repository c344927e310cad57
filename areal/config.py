"""Configuration and constants for areal.

This module defines the tunable behaviour of the spatial operations:
- Degenerate-geometry tolerance and column collision suffix (SpatialConfig with AREAL_ prefix)
- Chunked process-pool execution (ParallelConfig with AREAL_PARALLEL_ prefix)
- Debug output of intermediate tables (DebugConfig)

Configuration can be overridden via:
1. Environment variables (e.g., AREAL_JOIN_SUFFIX=zone, AREAL_PARALLEL_MAX_WORKERS=4)
2. .env file in the current directory
3. Default values in code
"""

import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class Constants:
    """Fixed values shared across the library.

    These are NOT configurable.
    """

    GEOMETRY_COLUMN: str = "geometry"

    # Share of available CPUs used by default for process pools
    CPU_FRACTION: float = 0.8


# Module-level singleton for constants
CONSTANTS = Constants()


class ParallelConfig(BaseSettings):
    """Chunked parallel execution settings.

    Can be overridden via environment variables with AREAL_PARALLEL_ prefix:
    - AREAL_PARALLEL_ENABLED
    - AREAL_PARALLEL_THRESHOLD
    - AREAL_PARALLEL_MAX_WORKERS

    Attributes:
        enabled: Allow operations to fan out over a process pool
        threshold: Minimum number of features before a pool is used
        max_workers: Number of worker processes (None = 80% of cpu_count)
    """

    model_config = SettingsConfigDict(
        env_prefix="AREAL_PARALLEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    enabled: bool = Field(default=True, description="Enable parallel spatial operations")
    threshold: int = Field(
        default=100, ge=1, description="Minimum feature count before using a process pool"
    )
    max_workers: int | None = Field(
        default=None, ge=1, description="Worker processes (None = auto-detect)"
    )

    @property
    def worker_count(self) -> int:
        """Resolve the number of worker processes to start."""
        if self.max_workers is not None:
            return self.max_workers
        return max(1, int((os.cpu_count() or 4) * CONSTANTS.CPU_FRACTION))

    def should_parallelize(self, n_features: int) -> bool:
        return self.enabled and n_features >= self.threshold and self.worker_count > 1


class SpatialConfig(BaseSettings):
    """Main configuration for subsetting, joins, interpolation and aggregation.

    Can be overridden via environment variables with AREAL_ prefix:
    - AREAL_DEGENERATE_AREA_TOLERANCE
    - AREAL_JOIN_SUFFIX
    - AREAL_PARALLEL_* variables for nested parallel configuration

    Attributes:
        degenerate_area_tolerance: Source polygons with area at or below this
            value cannot be used for interpolation
        join_suffix: Suffix appended to right-hand attributes whose name
            already exists on the left-hand side
        parallel: Parallel execution configuration
    """

    model_config = SettingsConfigDict(
        env_prefix="AREAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    degenerate_area_tolerance: float = Field(
        default=1e-12, ge=0, description="Area at or below which a polygon is degenerate"
    )
    join_suffix: str = Field(
        default="right", description="Suffix for colliding right-hand attribute names"
    )
    parallel: ParallelConfig = Field(
        default_factory=ParallelConfig, description="Parallel execution configuration"
    )

    @field_validator("join_suffix")
    @classmethod
    def must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            msg = "join_suffix cannot be empty"
            raise ValueError(msg)
        return v.strip()


DEFAULT_CONFIG = SpatialConfig()


class DebugConfig:
    """Debug output configuration.

    WARNING: For local development only.
    - Adds disk I/O overhead
    - Consumes storage space
    """

    def __init__(
        self,
        enabled: bool = False,
        output_dir: Path = Path("/tmp/areal-debug"),
    ):
        self.enabled = enabled
        self.output_dir = output_dir

    @classmethod
    def from_env(cls) -> "DebugConfig":
        return cls(
            enabled=os.environ.get("AREAL_DEBUG_OUTPUT", "false").lower() == "true",
            output_dir=Path(os.environ.get("AREAL_DEBUG_OUTPUT_DIR", "/tmp/areal-debug")),
        )

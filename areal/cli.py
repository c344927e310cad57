"""Command-line interface for running spatial operations on vector files.

Usage:
    areal interpolate tracts.gpkg hexes.gpkg out.gpkg -e population -i density
    areal subset ponds.gpkg sites.gpkg out.gpkg --predicate within_distance --distance 250
    areal join sites.gpkg zones.gpkg out.gpkg --mode inner
    areal aggregate counties.gpkg out.gpkg --by state --reduce population=sum
    areal aggregate-points sales.gpkg zones.gpkg out.gpkg --reduce price=mean --count-field n
    areal validate tracts.gpkg --type polygon
    areal --help

Input and output formats are inferred from file extensions (.gpkg, .geojson, .shp).
"""

import logging
from pathlib import Path
from typing import NoReturn

import typer

from areal.common.log_utils import configure_logging
from areal.config import DEFAULT_CONFIG, DebugConfig
from areal.errors import ArealError
from areal.models import FeatureCollection, GeometryType, JoinMode, Predicate, Reduction
from areal.spatial import (
    aggregate_by,
    aggregate_by_containment,
    area_interpolate_mixed,
    spatial_join,
    subset,
)
from areal.validation import CollectionValidator

logger = logging.getLogger(__name__)

app = typer.Typer(help="Vector spatial operations: subsetting, joins, interpolation, aggregation")


def parse_reductions(values: list[str] | None) -> dict[str, Reduction]:
    """Parse ``field=reduction`` pairs (e.g. ``population=sum``)."""
    reductions = {}
    for value in values or []:
        field, sep, name = value.partition("=")
        if not sep or not field:
            msg = f"Expected FIELD=REDUCTION, got '{value}'"
            raise typer.BadParameter(msg)
        try:
            reductions[field] = Reduction(name.strip().lower())
        except ValueError:
            choices = ", ".join(r.value for r in Reduction)
            msg = f"Unknown reduction '{name}' (choose from {choices})"
            raise typer.BadParameter(msg) from None
    return reductions


def _read(path: Path) -> FeatureCollection:
    logger.info(f"Reading {path}")
    return FeatureCollection.from_file(path)


def _write(collection: FeatureCollection, path: Path) -> None:
    collection.to_file(path)
    logger.info(f"Wrote {len(collection)} features to {path}")


def _fail(exc: Exception) -> NoReturn:
    if isinstance(exc, ArealError):
        logger.error(f"{exc.code}: {exc.message}")
    else:
        logger.error(str(exc))
    raise typer.Exit(1)


@app.callback()
def main(
    log_level: str = typer.Option("INFO", "--log-level", help="Log level (DEBUG, INFO, ...)"),
):
    """Configure logging before running a command."""
    configure_logging(log_level)


@app.command()
def interpolate(
    source_file: Path = typer.Argument(..., help="Source polygons holding the values", exists=True),
    target_file: Path = typer.Argument(..., help="Target polygons receiving the values", exists=True),
    output_file: Path = typer.Argument(..., help="Output file"),
    extensive: list[str] | None = typer.Option(
        None, "--extensive", "-e", help="Sum-preserving field (repeatable)"
    ),
    intensive: list[str] | None = typer.Option(
        None, "--intensive", "-i", help="Mean-preserving field (repeatable)"
    ),
):
    """Area-weighted interpolation of source fields onto target polygons."""
    if not extensive and not intensive:
        logger.error("Give at least one --extensive or --intensive field")
        raise typer.Exit(1)

    try:
        result = area_interpolate_mixed(
            _read(source_file),
            _read(target_file),
            extensive=extensive or [],
            intensive=intensive or [],
            config=DEFAULT_CONFIG,
            debug_config=DebugConfig.from_env(),
        )
    except (ArealError, ValueError) as e:
        _fail(e)
    _write(result, output_file)


@app.command(name="subset")
def subset_command(
    source_file: Path = typer.Argument(..., help="Features to filter", exists=True),
    reference_file: Path = typer.Argument(..., help="Reference features", exists=True),
    output_file: Path = typer.Argument(..., help="Output file"),
    predicate: Predicate = typer.Option(Predicate.INTERSECTS, "--predicate", "-p"),
    distance: float | None = typer.Option(
        None, "--distance", "-d", help="Search distance for within_distance"
    ),
):
    """Keep source features related to any reference feature."""
    try:
        result = subset(
            _read(source_file), _read(reference_file), predicate, distance, DEFAULT_CONFIG
        )
    except (ArealError, ValueError) as e:
        _fail(e)
    _write(result, output_file)


@app.command()
def join(
    left_file: Path = typer.Argument(..., help="Features to keep", exists=True),
    right_file: Path = typer.Argument(..., help="Features whose attributes are attached", exists=True),
    output_file: Path = typer.Argument(..., help="Output file"),
    predicate: Predicate = typer.Option(Predicate.INTERSECTS, "--predicate", "-p"),
    mode: JoinMode = typer.Option(JoinMode.LEFT, "--mode", "-m"),
    distance: float | None = typer.Option(
        None, "--distance", "-d", help="Search distance for within_distance"
    ),
):
    """Spatial join of right-hand attributes onto left-hand features."""
    try:
        result = spatial_join(
            _read(left_file),
            _read(right_file),
            predicate=predicate,
            mode=mode,
            distance=distance,
            config=DEFAULT_CONFIG,
        )
    except (ArealError, ValueError) as e:
        _fail(e)
    _write(result, output_file)


@app.command()
def aggregate(
    source_file: Path = typer.Argument(..., help="Features to aggregate", exists=True),
    output_file: Path = typer.Argument(..., help="Output file"),
    by: str = typer.Option(..., "--by", "-b", help="Attribute to group by"),
    reduce: list[str] | None = typer.Option(
        None, "--reduce", "-r", help="FIELD=REDUCTION, e.g. population=sum (repeatable)"
    ),
):
    """Group features by attribute, dissolving geometries."""
    reductions = parse_reductions(reduce)
    try:
        result = aggregate_by(_read(source_file), by, reductions)
    except (ArealError, ValueError) as e:
        _fail(e)
    _write(result, output_file)


@app.command(name="aggregate-points")
def aggregate_points(
    points_file: Path = typer.Argument(..., help="Point features holding values", exists=True),
    zones_file: Path = typer.Argument(..., help="Zone polygons", exists=True),
    output_file: Path = typer.Argument(..., help="Output file"),
    reduce: list[str] | None = typer.Option(
        None, "--reduce", "-r", help="FIELD=REDUCTION, e.g. price=mean (repeatable)"
    ),
    count_field: str | None = typer.Option(
        None, "--count-field", help="Add the number of points per zone under this name"
    ),
    keep_empty: bool = typer.Option(False, "--keep-empty", help="Also emit zones without points"),
):
    """Reduce point attributes per containing zone."""
    reductions = parse_reductions(reduce)
    try:
        result = aggregate_by_containment(
            _read(points_file),
            _read(zones_file),
            reductions,
            keep_empty=keep_empty,
            count_field=count_field,
            config=DEFAULT_CONFIG,
        )
    except (ArealError, ValueError) as e:
        _fail(e)
    _write(result, output_file)


@app.command()
def validate(
    geometry_file: Path = typer.Argument(..., help="Vector file to check", exists=True),
    geometry_type: GeometryType | None = typer.Option(
        None, "--type", "-t", help="Required geometry family"
    ),
):
    """Report CRS, geometry validity and degenerate polygons."""
    errors = CollectionValidator().validate_file(geometry_file, geometry_type)
    if errors:
        for error in errors:
            logger.error(f"[{error.field}] {error.message}")
        raise typer.Exit(1)
    logger.info(f"{geometry_file} is valid")


if __name__ == "__main__":
    app()

"""Unit tests for the command-line interface."""

import geopandas as gpd
import pytest
import typer
from shapely.geometry import Point, box
from typer.testing import CliRunner

from areal.cli import app, parse_reductions
from areal.models import Reduction

runner = CliRunner()


@pytest.fixture(autouse=True)
def _keep_test_logging(monkeypatch):
    """Leave pytest's log handlers in place."""
    monkeypatch.setattr("areal.cli.configure_logging", lambda level: None)


@pytest.fixture
def tracts_file(tmp_path):
    path = tmp_path / "tracts.gpkg"
    gpd.GeoDataFrame(
        {"tract": ["t1", "t2"], "population": [10.0, 20.0], "density": [1.0, 3.0]},
        geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1)],
        crs="EPSG:27700",
    ).to_file(path)
    return path


@pytest.fixture
def hexes_file(tmp_path):
    path = tmp_path / "hexes.gpkg"
    gpd.GeoDataFrame(
        {"hex_id": ["h1"]}, geometry=[box(0.5, 0, 1.5, 1)], crs="EPSG:27700"
    ).to_file(path)
    return path


@pytest.fixture
def sales_file(tmp_path):
    path = tmp_path / "sales.gpkg"
    gpd.GeoDataFrame(
        {"price": [1.0, 2.0, 6.0, 10.0, 20.0]},
        geometry=[Point(0.1, 0.1), Point(0.2, 0.2), Point(0.3, 0.3), Point(1.5, 0.5), Point(5, 5)],
        crs="EPSG:27700",
    ).to_file(path)
    return path


def test_interpolate_command(tracts_file, hexes_file, tmp_path):
    output = tmp_path / "out.gpkg"

    result = runner.invoke(
        app,
        [
            "interpolate",
            str(tracts_file),
            str(hexes_file),
            str(output),
            "-e",
            "population",
            "-i",
            "density",
        ],
    )

    assert result.exit_code == 0, result.output
    written = gpd.read_file(output)
    assert written["population"].tolist() == pytest.approx([15.0])
    assert written["density"].tolist() == pytest.approx([2.0])


def test_interpolate_requires_a_field(tracts_file, hexes_file, tmp_path):
    result = runner.invoke(
        app, ["interpolate", str(tracts_file), str(hexes_file), str(tmp_path / "out.gpkg")]
    )

    assert result.exit_code == 1


def test_interpolate_reports_missing_field(tracts_file, hexes_file, tmp_path):
    output = tmp_path / "out.gpkg"

    result = runner.invoke(
        app, ["interpolate", str(tracts_file), str(hexes_file), str(output), "-e", "households"]
    )

    assert result.exit_code == 1
    assert not output.exists()


def test_subset_command(sales_file, hexes_file, tmp_path):
    output = tmp_path / "out.gpkg"

    result = runner.invoke(
        app, ["subset", str(sales_file), str(hexes_file), str(output), "--predicate", "disjoint"]
    )

    assert result.exit_code == 0, result.output
    assert gpd.read_file(output)["price"].tolist() == [1.0, 2.0, 6.0, 20.0]


def test_join_command(sales_file, tracts_file, tmp_path):
    output = tmp_path / "out.gpkg"

    result = runner.invoke(
        app, ["join", str(sales_file), str(tracts_file), str(output), "--mode", "inner"]
    )

    assert result.exit_code == 0, result.output
    assert gpd.read_file(output)["tract"].tolist() == ["t1", "t1", "t1", "t2"]


def test_aggregate_command(tracts_file, tmp_path):
    output = tmp_path / "out.gpkg"

    result = runner.invoke(
        app, ["aggregate", str(tracts_file), str(output), "--by", "tract", "-r", "population=sum"]
    )

    assert result.exit_code == 0, result.output
    assert gpd.read_file(output)["population"].tolist() == [10.0, 20.0]


def test_aggregate_points_command(sales_file, tracts_file, tmp_path):
    output = tmp_path / "out.gpkg"

    result = runner.invoke(
        app,
        [
            "aggregate-points",
            str(sales_file),
            str(tracts_file),
            str(output),
            "--reduce",
            "price=mean",
            "--count-field",
            "n_sales",
        ],
    )

    assert result.exit_code == 0, result.output
    written = gpd.read_file(output)
    assert written["tract"].tolist() == ["t1", "t2"]
    assert written["price"].tolist() == pytest.approx([3.0, 10.0])
    assert written["n_sales"].tolist() == [3, 1]


def test_validate_command(tracts_file):
    assert runner.invoke(app, ["validate", str(tracts_file), "--type", "polygon"]).exit_code == 0
    assert runner.invoke(app, ["validate", str(tracts_file), "--type", "point"]).exit_code == 1


def test_crs_mismatch_exits_with_error(tracts_file, tmp_path):
    wgs84 = tmp_path / "wgs84.gpkg"
    gpd.GeoDataFrame(
        {"hex_id": ["h1"]}, geometry=[box(-1, 51, 0, 52)], crs="EPSG:4326"
    ).to_file(wgs84)

    result = runner.invoke(
        app,
        ["interpolate", str(tracts_file), str(wgs84), str(tmp_path / "o.gpkg"), "-e", "population"],
    )

    assert result.exit_code == 1


def test_parse_reductions():
    assert parse_reductions(["price=MEAN", "n=count"]) == {
        "price": Reduction.MEAN,
        "n": Reduction.COUNT,
    }
    assert parse_reductions(None) == {}


@pytest.mark.parametrize("value", ["price", "=sum", "price=median"])
def test_parse_reductions_rejects_bad_values(value):
    with pytest.raises(typer.BadParameter):
        parse_reductions([value])

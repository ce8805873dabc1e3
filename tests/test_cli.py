from __future__ import annotations

import json
from pathlib import Path

import fiona
from shapely.geometry import mapping
from typer.testing import CliRunner

from track_router.cli.main import app

from track_fixtures import ISLAND


runner = CliRunner()


def _write_inputs(tmp_path: Path, coords, extra_tracks=None) -> tuple[Path, Path]:
    shp_path = tmp_path / "land.shp"
    schema = {"geometry": "Polygon", "properties": {"id": "int"}}
    with fiona.open(shp_path, mode="w", driver="ESRI Shapefile", crs="EPSG:3338", schema=schema) as dst:
        dst.write({"geometry": mapping(ISLAND), "properties": {"id": 1}})

    tracks = {"seal-1": coords, **(extra_tracks or {})}
    features = [
        {
            "type": "Feature",
            "properties": {"time": f"2021-06-01T12:{i:02d}:00+00:00", "deployment_id": deployment_id},
            "geometry": {"type": "Point", "coordinates": [x, y]},
        }
        for deployment_id, track_coords in tracks.items()
        for i, (x, y) in enumerate(track_coords)
    ]
    track_path = tmp_path / "tracks.geojson"
    track_path.write_text(json.dumps({"type": "FeatureCollection", "features": features}))
    return track_path, shp_path


def test_reroute_writes_corrected_tracks(tmp_path: Path) -> None:
    track_path, shp_path = _write_inputs(tmp_path, [(35.0, 2.0), (65.0, 2.0)])
    out_path = tmp_path / "corrected.geojson"

    result = runner.invoke(
        app,
        ["reroute", str(track_path), str(shp_path), "--output", str(out_path), "--buffer", "10"],
    )

    assert result.exit_code == 0, result.output
    data = json.loads(out_path.read_text())
    assert len(data["features"]) == 4
    assert '"segments_rerouted": 1' in result.output


def test_reroute_exit_code_on_failure(tmp_path: Path) -> None:
    track_path, shp_path = _write_inputs(tmp_path, [(50.0, 0.0), (80.0, 0.0)])
    result = runner.invoke(
        app,
        ["reroute", str(track_path), str(shp_path), "--buffer", "5", "--max-expansions", "1"],
    )
    assert result.exit_code == 1


def test_trim_option_removes_land_start(tmp_path: Path) -> None:
    track_path, shp_path = _write_inputs(tmp_path, [(50.0, 0.0), (80.0, 0.0), (90.0, 0.0)])
    out_path = tmp_path / "corrected.geojson"
    result = runner.invoke(
        app,
        ["reroute", str(track_path), str(shp_path), "--trim", "-o", str(out_path)],
    )
    assert result.exit_code == 0, result.output
    data = json.loads(out_path.read_text())
    assert [f["geometry"]["coordinates"] for f in data["features"]] == [[80.0, 0.0], [90.0, 0.0]]


def test_trim_keeps_other_tracks_when_one_is_on_land(tmp_path: Path) -> None:
    track_path, shp_path = _write_inputs(
        tmp_path,
        [(35.0, 2.0), (65.0, 2.0)],
        extra_tracks={"seal-2": [(50.0, 0.0), (55.0, 5.0)]},
    )
    out_path = tmp_path / "corrected.geojson"
    result = runner.invoke(
        app,
        ["reroute", str(track_path), str(shp_path), "--trim", "--buffer", "10", "-o", str(out_path)],
    )

    assert result.exit_code == 1
    assert '"precondition_violation": 1' in result.stdout
    assert '"segments_rerouted": 1' in result.stdout
    data = json.loads(out_path.read_text())
    by_track = {}
    for feature in data["features"]:
        by_track.setdefault(feature["properties"]["deployment_id"], []).append(feature)
    assert len(by_track["seal-1"]) == 4
    assert len(by_track["seal-2"]) == 2


def test_check_lists_crossings(tmp_path: Path) -> None:
    track_path, shp_path = _write_inputs(tmp_path, [(20.0, 2.0), (35.0, 2.0), (65.0, 2.0)])
    result = runner.invoke(app, ["check", str(track_path), str(shp_path)])
    assert result.exit_code == 1
    assert "seal-1: 1 crossing segments (1)" in result.output


def test_info_shows_parameters() -> None:
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 0
    assert "tie_break" in result.output

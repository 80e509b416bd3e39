"""Tests for the :mod:`fleet_report` command line entry point."""

from __future__ import annotations

import argparse
import json
from datetime import UTC, datetime

import pytest

from fleet_report import EXIT_INVALID, EXIT_OK, main, parse_args, parse_coordinates
from fleetgps.samples import Coordinates


@pytest.fixture
def seeded_db(tmp_path) -> str:
    db_path = str(tmp_path / "fleet.db")
    assert main(["--db", db_path, "seed", "--minutes", "60"]) == EXIT_OK
    return db_path


def test_parse_coordinates():
    assert parse_coordinates("-27.47, 153.02") == Coordinates(-27.47, 153.02)
    with pytest.raises(argparse.ArgumentTypeError):
        parse_coordinates("-27.47")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_coordinates("95,10")


def test_parse_args_collects_repeated_options():
    args = parse_args(
        ["route", "--from", "-27.47,153.02", "--to", "-27.5,153.1", "--to", "-27.4,153.0"]
    )
    assert args.cmd == "route"
    assert len(args.destinations) == 2

    window = parse_args(["speeding", "--start", "2024-05-01T00:00:00Z", "--vehicle", "a", "--vehicle", "b"])
    assert window.start == datetime(2024, 5, 1, tzinfo=UTC)
    assert window.vehicles == ["a", "b"]


def test_positions_report_as_json(seeded_db, capsys):
    assert main(["--db", seeded_db, "--json", "positions"]) == EXIT_OK
    records = json.loads(capsys.readouterr().out)
    assert {record["plate_number"] for record in records} == {"BNE-01", "BNE-02", "GC-03"}


def test_vehicle_report_for_unknown_vehicle_is_invalid(seeded_db, capsys):
    assert main(["--db", seeded_db, "vehicle", "ghost"]) == EXIT_INVALID
    assert "NOT_FOUND" in capsys.readouterr().err


def test_vehicle_report_json_includes_recent_track(seeded_db, capsys):
    assert main(["--db", seeded_db, "--json", "vehicle", "veh-bne-01"]) == EXIT_OK
    payload = json.loads(capsys.readouterr().out)
    assert payload["vehicle"]["vehicle_id"] == "veh-bne-01"
    assert len(payload["recent_track"]) == 10


def test_area_without_center_or_bounds_is_invalid(seeded_db, capsys):
    assert main(["--db", seeded_db, "area"]) == EXIT_INVALID
    assert "VALIDATION_ERROR" in capsys.readouterr().err


def test_idling_and_stats_reports(seeded_db, capsys):
    assert main(["--db", seeded_db, "--json", "idling"]) == EXIT_OK
    intervals = json.loads(capsys.readouterr().out)
    assert intervals
    assert all(record["duration_minutes"] <= 10 for record in intervals)

    assert main(["--db", seeded_db, "stats"]) == EXIT_OK
    assert "Samples" in capsys.readouterr().out


def test_route_report(tmp_path, capsys):
    db_path = str(tmp_path / "empty.db")
    assert main(["--db", db_path, "route", "--from", "0,0", "--to", "0,2", "--to", "0,1"]) == EXIT_OK
    out = capsys.readouterr().out
    assert out.startswith("Total ")


def test_empty_database_reports_gracefully(tmp_path, capsys):
    db_path = str(tmp_path / "empty.db")
    assert main(["--db", db_path, "speeding"]) == EXIT_OK
    assert "No speed violations." in capsys.readouterr().out


def test_default_database_path_comes_from_module_setting(tmp_path, monkeypatch, capsys):
    db_path = tmp_path / "configured.db"
    monkeypatch.setattr("fleet_report.DEFAULT_DB_PATH", str(db_path))
    assert main(["seed", "--minutes", "5"]) == EXIT_OK
    assert db_path.exists()
    assert str(db_path) in capsys.readouterr().out


def test_southern_hemisphere_coordinates_parse_as_values():
    args = parse_args(["area", "--center", "-27.47,153.02", "--radius", "5"])
    assert args.center == Coordinates(-27.47, 153.02)

    bounds = parse_args(
        ["area", "--north-east", "-27.0,153.5", "--south-west=-28.0,152.5"]
    )
    assert bounds.north_east == Coordinates(-27.0, 153.5)
    assert bounds.south_west == Coordinates(-28.0, 152.5)

    with pytest.raises(SystemExit):
        parse_args(["route", "--from", "-27.47"])


def test_area_report_around_brisbane_depot(seeded_db, capsys):
    code = main(["--db", seeded_db, "--json", "area", "--center", "-27.4698,153.0251", "--radius", "200"])
    assert code == EXIT_OK
    records = json.loads(capsys.readouterr().out)
    assert {record["plate_number"] for record in records} == {"BNE-01", "BNE-02", "GC-03"}


@pytest.mark.parametrize(
    "argv",
    [["heatmap", "--cell-km", "0"], ["tracks", "--simplify", "--stride", "0"]],
)
def test_zero_overrides_are_rejected_not_replaced(seeded_db, capsys, argv):
    assert main(["--db", seeded_db, *argv]) == EXIT_INVALID
    assert "VALIDATION_ERROR" in capsys.readouterr().err


def test_speeding_report_shows_plate_numbers(seeded_db, capsys):
    assert main(["--db", seeded_db, "--json", "speeding", "--limit", "5"]) == EXIT_OK
    records = json.loads(capsys.readouterr().out)
    assert records
    assert all(record["plate_number"] in {"BNE-01", "BNE-02", "GC-03"} for record in records)

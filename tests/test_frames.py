from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pandas as pd
import pytest

from analytics.charts import create_idle_bar_chart, create_speed_histogram
from analytics.frames import (
    area_to_frame,
    frequent_areas_to_frame,
    heatmap_to_frame,
    idle_intervals_to_frame,
    positions_to_frame,
    route_to_frame,
    samples_to_frame,
    statistics_to_frame,
    tracks_to_frame,
    violations_to_frame,
)
from fleetgps.grid import build_heatmap, find_frequent_areas
from fleetgps.positions import AreaResult, filter_snapshots_in_area, resolve_latest_positions
from fleetgps.route_optimizer import optimize_route
from fleetgps.samples import ActiveOperation, Coordinates, LocationSample, VehicleRef
from fleetgps.stats import compute_statistics
from fleetgps.trajectory import build_tracks
from fleetgps.violations import detect_idle_intervals, detect_speed_violations

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)


def _samples() -> list[LocationSample]:
    return [
        LocationSample("veh-1", -27.47, 153.02, T0, speed_kmh=0.0, sample_id="1"),
        LocationSample("veh-1", -27.47, 153.02, T0 + timedelta(minutes=3), speed_kmh=0.0, sample_id="2"),
        LocationSample("veh-1", -27.48, 153.03, T0 + timedelta(minutes=6), speed_kmh=92.0, sample_id="3"),
        LocationSample("veh-2", -27.60, 153.10, T0, speed_kmh=50.0, sample_id="4"),
    ]


def test_positions_frame_flattens_operation_and_keeps_unpositioned_rows():
    vehicles = [
        VehicleRef(
            "veh-1",
            "BNE-01",
            status="ACTIVE",
            active_operation=ActiveOperation("op-1", "IN_PROGRESS", driver_name="Alex"),
        ),
        VehicleRef("veh-3", "BNE-03"),
    ]
    frame = positions_to_frame(resolve_latest_positions(vehicles, _samples()))
    assert list(frame["vehicle_id"]) == ["veh-1", "veh-3"]
    assert frame.loc[0, "driver_name"] == "Alex"
    assert frame.loc[0, "speed_kmh"] == 92.0
    assert pd.isna(frame.loc[1, "lat"])


def test_empty_inputs_produce_empty_frames_with_columns():
    assert list(positions_to_frame([]).columns)[:3] == ["vehicle_id", "plate_number", "model"]
    assert heatmap_to_frame([]).empty
    assert list(heatmap_to_frame([]).columns) == ["lat", "lon", "intensity", "weight"]
    assert tracks_to_frame([]).empty
    assert violations_to_frame([]).empty
    assert idle_intervals_to_frame([]).empty
    assert samples_to_frame([]).empty
    assert frequent_areas_to_frame(find_frequent_areas([])).empty


def test_heatmap_frame_weight_is_normalised_intensity():
    frame = heatmap_to_frame(build_heatmap(_samples()))
    assert frame["weight"].max() == 1.0
    assert frame["intensity"].sum() == 4


def test_tracks_frame_paths_are_lon_lat_pairs():
    frame = tracks_to_frame(build_tracks(_samples()))
    row = frame.set_index("vehicle_id").loc["veh-1"]
    assert row["path"][0] == [153.02, -27.47]
    assert row["kept_points"] == 3


def test_violation_and_idle_frames():
    violations = violations_to_frame(detect_speed_violations(_samples(), 80.0))
    assert list(violations["severity"]) == ["MEDIUM"]
    assert violations.loc[0, "excess_kmh"] == pytest.approx(12.0)

    idle = idle_intervals_to_frame(detect_idle_intervals(_samples(), 10))
    assert idle.loc[0, "duration_minutes"] == pytest.approx(3.0)
    assert idle.loc[0, "fuel_waste_litres"] == pytest.approx(0.3)


def test_violation_and_idle_frames_show_plate_numbers():
    vehicles = {"veh-1": VehicleRef("veh-1", "BNE-01", model="Hino 300")}
    violations = violations_to_frame(
        detect_speed_violations(_samples(), 80.0, vehicles=vehicles)
    )
    assert violations.loc[0, "plate_number"] == "BNE-01"
    assert violations.loc[0, "vehicle_model"] == "Hino 300"

    idle = idle_intervals_to_frame(detect_idle_intervals(_samples(), 10, vehicles=vehicles))
    assert list(idle["plate_number"]) == ["BNE-01"]
    assert "plate_number" in violations_to_frame([]).columns


def test_area_frame_adds_distance_column():
    snapshots = resolve_latest_positions([VehicleRef("veh-1"), VehicleRef("veh-2")], _samples())
    center = Coordinates(-27.47, 153.02)
    result = AreaResult(
        center=center,
        radius_km=5.0,
        bounds=None,
        vehicles=filter_snapshots_in_area(snapshots, center=center, radius_km=5.0),
    )
    frame = area_to_frame(result)
    assert list(frame["vehicle_id"]) == ["veh-1"]
    assert frame.loc[0, "distance_km"] < 5.0


def test_route_frame_starts_at_origin():
    route = optimize_route((-27.47, 153.02), [(-27.60, 153.10), (-27.48, 153.03)])
    frame = route_to_frame(route)
    assert list(frame["stop"]) == [0, 1, 2]
    assert list(frame["destination_index"].iloc[1:]) == [1, 0]
    assert frame["cumulative_km"].iloc[-1] == pytest.approx(route.total_distance_km)


def test_statistics_frame_lists_metrics():
    frame = statistics_to_frame(compute_statistics(_samples()))
    values = dict(zip(frame["metric"], frame["value"]))
    assert values["Samples"] == 4
    assert values["Vehicles"] == 2
    assert values["Average speed (km/h)"] == pytest.approx(35.5)


def test_speed_histogram_handles_empty_and_populated_frames():
    empty = create_speed_histogram(samples_to_frame([]), 80.0)
    assert "No speed readings" in empty.layout.title.text
    figure = create_speed_histogram(samples_to_frame(_samples()), 80.0)
    assert len(figure.data) >= 1


def test_idle_bar_chart_totals_per_vehicle():
    frame = idle_intervals_to_frame(detect_idle_intervals(_samples(), 10))
    figure = create_idle_bar_chart(frame)
    assert list(figure.data[0].y) == pytest.approx([3.0])

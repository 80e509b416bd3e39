from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from fleetgps.positions import (
    build_vehicle_detail,
    filter_snapshots_in_area,
    latest_sample,
    resolve_latest_positions,
)
from fleetgps.samples import ActiveOperation, Bounds, Coordinates, LocationSample, VehicleRef

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)


def _sample(vehicle_id, minute, *, lat=-27.47, lon=153.02, sample_id=None):
    return LocationSample(
        vehicle_id, lat, lon, T0 + timedelta(minutes=minute), sample_id=sample_id
    )


def test_latest_sample_prefers_newest_then_greatest_id():
    older = _sample("veh-1", 0, sample_id="z")
    tied_low = _sample("veh-1", 5, sample_id="a")
    tied_high = _sample("veh-1", 5, sample_id="b")
    assert latest_sample([tied_high, older, tied_low]) is tied_high
    assert latest_sample([]) is None


def test_resolve_latest_positions_keeps_vehicles_without_samples():
    vehicles = [
        VehicleRef("veh-1", "BNE-01", active_operation=ActiveOperation("op-1", "IN_PROGRESS")),
        VehicleRef("veh-2", "ABC-02", updated_at=T0 - timedelta(days=1)),
    ]
    samples = [_sample("veh-1", 0), _sample("veh-1", 3), _sample("veh-9", 1)]
    snapshots = resolve_latest_positions(vehicles, samples)
    assert [s.vehicle_id for s in snapshots] == ["veh-1", "veh-2"]
    assert snapshots[0].last_update == T0 + timedelta(minutes=3)
    assert snapshots[0].active_operation.operation_id == "op-1"
    assert snapshots[1].position is None
    assert snapshots[1].last_update == T0 - timedelta(days=1)


def test_vehicle_detail_recent_track_is_newest_first():
    vehicle = VehicleRef("veh-1", "BNE-01")
    detail = build_vehicle_detail(vehicle, [_sample("veh-1", m) for m in (0, 2, 1)])
    assert [p.captured_at.minute for p in detail.recent_track] == [2, 1, 0]
    assert detail.position is detail.recent_track[0]
    assert detail.plate_number == "BNE-01"


def _snapshots():
    vehicles = [VehicleRef("near"), VehicleRef("far"), VehicleRef("middle"), VehicleRef("silent")]
    samples = [
        _sample("near", 0, lat=-27.471, lon=153.021),
        _sample("far", 0, lat=-28.0, lon=153.4),
        _sample("middle", 0, lat=-27.50, lon=153.05),
    ]
    return resolve_latest_positions(vehicles, samples)


def test_area_by_radius_sorted_nearest_first():
    matches = filter_snapshots_in_area(
        _snapshots(), center=Coordinates(-27.47, 153.02), radius_km=10.0
    )
    assert [m.snapshot.vehicle_id for m in matches] == ["near", "middle"]
    assert matches[0].distance_km < matches[1].distance_km <= 10.0


def test_area_by_bounds():
    bounds = Bounds(north_east=Coordinates(-27.4, 153.1), south_west=Coordinates(-27.6, 153.0))
    matches = filter_snapshots_in_area(_snapshots(), bounds=bounds)
    assert {m.snapshot.vehicle_id for m in matches} == {"near", "middle"}
    assert all(m.distance_km is None for m in matches)


def test_area_excludes_vehicles_without_position():
    matches = filter_snapshots_in_area(
        _snapshots(), center=Coordinates(-27.47, 153.02), radius_km=20000.0
    )
    assert "silent" not in {m.snapshot.vehicle_id for m in matches}
    assert len(matches) == 3
    assert matches[-1].snapshot.vehicle_id == "far"
    assert matches[-1].distance_km == pytest.approx(70.0, abs=5.0)

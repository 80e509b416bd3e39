from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from fleetgps.geometry import haversine_km
from fleetgps.samples import LocationSample
from fleetgps.stats import compute_statistics, track_distance_km

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)


def _sample(vehicle_id, lat, lon, minute, speed=None, accuracy=None):
    return LocationSample(
        vehicle_id,
        lat,
        lon,
        T0 + timedelta(minutes=minute),
        speed_kmh=speed,
        accuracy_m=accuracy,
    )


def test_empty_statistics_are_zeroed():
    stats = compute_statistics([], period_start=T0)
    assert stats.total_samples == 0
    assert stats.total_distance_km == 0.0
    assert stats.average_speed_kmh == 0.0
    assert stats.data_quality.speed_coverage == 0.0
    assert stats.period_start == T0


def test_average_speed_counts_only_samples_with_speed():
    samples = [
        _sample("veh-1", 0.0, 0.0, 0, speed=60.0),
        _sample("veh-1", 0.0, 0.0, 1, speed=80.0),
        _sample("veh-1", 0.0, 0.0, 2),
    ]
    stats = compute_statistics(samples)
    assert stats.average_speed_kmh == pytest.approx(70.0)
    assert stats.max_speed_kmh == 80.0
    assert stats.data_quality.samples_with_speed == 2
    assert stats.data_quality.speed_coverage == pytest.approx(2 / 3)


def test_zero_speed_is_a_valid_reading():
    samples = [_sample("veh-1", 0.0, 0.0, 0, speed=0.0), _sample("veh-1", 0.0, 0.0, 1, speed=60.0)]
    assert compute_statistics(samples).average_speed_kmh == pytest.approx(30.0)


def test_distance_is_never_summed_across_vehicles():
    samples = [
        _sample("veh-1", 0.0, 0.0, 0),
        _sample("veh-2", 10.0, 10.0, 1),
        _sample("veh-1", 0.0, 0.0, 2),
        _sample("veh-2", 10.0, 10.0, 3),
    ]
    stats = compute_statistics(samples)
    assert stats.unique_vehicles == 2
    assert stats.total_distance_km == 0.0


def test_distance_sums_each_track_in_time_order():
    samples = [
        _sample("veh-1", 1.0, 0.0, 1),
        _sample("veh-1", 0.0, 0.0, 0),
        _sample("veh-1", 2.0, 0.0, 2),
        _sample("veh-2", 0.0, 5.0, 0),
        _sample("veh-2", 0.0, 6.0, 1),
    ]
    expected = 2 * haversine_km((0.0, 0.0), (1.0, 0.0)) + haversine_km((0.0, 5.0), (0.0, 6.0))
    assert compute_statistics(samples).total_distance_km == pytest.approx(expected)


def test_max_segment_filter_skips_gps_jumps():
    points = [
        _sample("veh-1", 0.0, 0.0, 0),
        _sample("veh-1", 0.1, 0.0, 1),
        _sample("veh-1", 5.0, 0.0, 2),
    ]
    unfiltered = track_distance_km(points)
    filtered = track_distance_km(points, max_segment_km=50.0)
    assert filtered == pytest.approx(haversine_km((0.0, 0.0), (0.1, 0.0)))
    assert unfiltered > filtered


def test_accuracy_quality_metrics():
    samples = [
        _sample("veh-1", 0.0, 0.0, 0, accuracy=4.0),
        _sample("veh-1", 0.0, 0.0, 1, accuracy=8.0),
        _sample("veh-1", 0.0, 0.0, 2),
        _sample("veh-1", 0.0, 0.0, 3),
    ]
    quality = compute_statistics(samples).data_quality
    assert quality.samples_with_accuracy == 2
    assert quality.accuracy_coverage == pytest.approx(0.5)
    assert quality.average_accuracy_m == pytest.approx(6.0)

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from fleetgps.errors import ValidationError
from fleetgps.grid import bin_samples, build_heatmap, find_frequent_areas, km_to_degrees
from fleetgps.samples import LocationSample

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)


def _at(lat: float, lon: float, vehicle_id: str = "veh-1", minute: int = 0) -> LocationSample:
    return LocationSample(vehicle_id, lat, lon, T0 + timedelta(minutes=minute))


def test_km_to_degrees_uses_flat_conversion():
    assert km_to_degrees(1.11) == pytest.approx(0.01)
    with pytest.raises(ValidationError):
        km_to_degrees(0)


def test_bin_samples_counts_per_floor_cell():
    samples = [_at(0.001, 0.001), _at(0.002, 0.003), _at(0.012, 0.001), _at(-0.001, 0.001)]
    cells = bin_samples(samples, 0.01)
    assert [cell.sample_count for cell in cells] == [2, 1, 1]
    top = cells[0]
    assert top.cell_latitude == pytest.approx(0.0)
    assert top.center_latitude == pytest.approx(0.005)
    # Negative coordinates floor away from zero.
    assert cells[1].cell_latitude == pytest.approx(-0.01)


def test_heatmap_of_no_samples_is_empty():
    assert build_heatmap([]) == []


def test_heatmap_single_cell_is_fully_intense():
    points = build_heatmap([_at(-27.47, 153.02, minute=i) for i in range(4)], cell_size_km=1.0)
    assert len(points) == 1
    assert points[0].intensity == 4
    assert points[0].normalized_intensity == 1.0


def test_heatmap_normalises_against_busiest_cell():
    samples = [_at(-27.47, 153.02, minute=i) for i in range(4)] + [_at(-27.0, 153.5)]
    points = build_heatmap(samples, cell_size_km=1.0)
    assert [p.intensity for p in points] == [4, 1]
    assert [p.normalized_intensity for p in points] == [1.0, 0.25]
    assert all(0.0 < p.normalized_intensity <= 1.0 for p in points)
    assert sum(p.intensity for p in points) == len(samples)


def test_heatmap_rejects_non_positive_cell_size():
    with pytest.raises(ValidationError):
        build_heatmap([_at(0.0, 0.0)], cell_size_km=-1)


def test_frequent_areas_rank_and_percentages():
    samples = (
        [_at(-27.4705, 153.0255, "veh-1", i) for i in range(6)]
        + [_at(-27.5005, 153.0505, "veh-2", i) for i in range(3)]
        + [_at(-27.6005, 153.1005, "veh-2", 10)]
    )
    patterns = find_frequent_areas(samples)
    assert patterns.total_samples == 10
    assert patterns.unique_vehicles == 2
    assert [area.visit_count for area in patterns.top_areas] == [6, 3, 1]
    assert [area.percentage for area in patterns.top_areas] == pytest.approx([60.0, 30.0, 10.0])
    assert patterns.coverage_area_km2 == pytest.approx(3 * 1.11 ** 2)


def test_frequent_areas_truncate_to_top_k():
    samples = [_at(-27.0 - i * 0.05, 153.0) for i in range(30)]
    patterns = find_frequent_areas(samples, top_k=20)
    assert len(patterns.top_areas) == 20


def test_frequent_areas_empty_input():
    patterns = find_frequent_areas([])
    assert patterns.total_samples == 0
    assert patterns.top_areas == []
    assert patterns.coverage_area_km2 == 0.0

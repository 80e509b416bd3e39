"""Convert analytics results into pandas DataFrames for tables, charts and maps.

Each helper returns an empty frame with the expected columns when there is
nothing to show, so Streamlit widgets and pydeck layers can render without
special-casing empty periods.
"""
from __future__ import annotations

from typing import Iterable, Sequence

import pandas as pd

from fleetgps.grid import HeatmapPoint, MovementPatterns
from fleetgps.positions import AreaResult, PositionSnapshot
from fleetgps.route_optimizer import OptimizedRoute
from fleetgps.samples import LocationSample
from fleetgps.stats import FleetStatistics
from fleetgps.trajectory import VehicleTrack
from fleetgps.violations import IdleInterval, ViolationEvent

POSITION_COLUMNS = [
    "vehicle_id",
    "plate_number",
    "model",
    "status",
    "lat",
    "lon",
    "speed_kmh",
    "heading",
    "last_update",
    "operation_id",
    "driver_name",
]
HEATMAP_COLUMNS = ["lat", "lon", "intensity", "weight"]
SAMPLE_COLUMNS = [
    "vehicle_id",
    "recorded_at",
    "lat",
    "lon",
    "speed_kmh",
    "heading",
    "accuracy_m",
]
TRACK_COLUMNS = ["vehicle_id", "plate_number", "total_points", "kept_points", "path"]
VIOLATION_COLUMNS = [
    "vehicle_id",
    "plate_number",
    "vehicle_model",
    "timestamp",
    "speed_kmh",
    "threshold_kmh",
    "excess_kmh",
    "severity",
    "lat",
    "lon",
]
IDLE_COLUMNS = [
    "vehicle_id",
    "plate_number",
    "start_time",
    "end_time",
    "duration_minutes",
    "fuel_waste_litres",
    "lat",
    "lon",
]
AREA_COLUMNS = ["lat", "lon", "visit_count", "percentage"]
ROUTE_COLUMNS = ["stop", "destination_index", "lat", "lon", "leg_km", "cumulative_km"]


def positions_to_frame(snapshots: Iterable[PositionSnapshot]) -> pd.DataFrame:
    """Flatten position snapshots; vehicles without a fix keep NaN coordinates."""

    records = []
    for snapshot in snapshots:
        position = snapshot.position
        operation = snapshot.active_operation
        records.append(
            {
                "vehicle_id": snapshot.vehicle_id,
                "plate_number": snapshot.plate_number,
                "model": snapshot.vehicle_model,
                "status": snapshot.status,
                "lat": position.latitude if position else float("nan"),
                "lon": position.longitude if position else float("nan"),
                "speed_kmh": position.speed_kmh if position else None,
                "heading": position.heading_deg if position else None,
                "last_update": snapshot.last_update,
                "operation_id": operation.operation_id if operation else None,
                "driver_name": operation.driver_name if operation else None,
            }
        )
    if not records:
        return pd.DataFrame(columns=POSITION_COLUMNS)
    return pd.DataFrame.from_records(records, columns=POSITION_COLUMNS)


def area_to_frame(result: AreaResult) -> pd.DataFrame:
    frame = positions_to_frame(item.snapshot for item in result.vehicles)
    frame["distance_km"] = [item.distance_km for item in result.vehicles]
    return frame


def heatmap_to_frame(points: Sequence[HeatmapPoint]) -> pd.DataFrame:
    """Return heatmap cells with ``weight`` holding the normalised intensity."""

    if not points:
        return pd.DataFrame(columns=HEATMAP_COLUMNS)
    return pd.DataFrame(
        {
            "lat": [point.latitude for point in points],
            "lon": [point.longitude for point in points],
            "intensity": [point.intensity for point in points],
            "weight": [point.normalized_intensity for point in points],
        },
        columns=HEATMAP_COLUMNS,
    )


def samples_to_frame(samples: Iterable[LocationSample]) -> pd.DataFrame:
    records = [
        {
            "vehicle_id": sample.vehicle_id,
            "recorded_at": sample.captured_at,
            "lat": sample.latitude,
            "lon": sample.longitude,
            "speed_kmh": sample.speed_kmh,
            "heading": sample.heading_deg,
            "accuracy_m": sample.accuracy_m,
        }
        for sample in samples
    ]
    if not records:
        return pd.DataFrame(columns=SAMPLE_COLUMNS)
    return pd.DataFrame.from_records(records, columns=SAMPLE_COLUMNS)


def tracks_to_frame(tracks: Iterable[VehicleTrack]) -> pd.DataFrame:
    """One row per vehicle with ``path`` as ``[lon, lat]`` pairs for pydeck PathLayer."""

    records = [
        {
            "vehicle_id": track.vehicle_id,
            "plate_number": track.plate_number,
            "total_points": track.total_points,
            "kept_points": len(track.points),
            "path": [[point.longitude, point.latitude] for point in track.points],
        }
        for track in tracks
    ]
    if not records:
        return pd.DataFrame(columns=TRACK_COLUMNS)
    return pd.DataFrame.from_records(records, columns=TRACK_COLUMNS)


def violations_to_frame(events: Iterable[ViolationEvent]) -> pd.DataFrame:
    records = [
        {
            "vehicle_id": event.vehicle_id,
            "plate_number": event.plate_number,
            "vehicle_model": event.vehicle_model,
            "timestamp": event.timestamp,
            "speed_kmh": event.observed_value,
            "threshold_kmh": event.threshold,
            "excess_kmh": event.excess,
            "severity": event.severity.value,
            "lat": event.location.latitude,
            "lon": event.location.longitude,
        }
        for event in events
    ]
    if not records:
        return pd.DataFrame(columns=VIOLATION_COLUMNS)
    return pd.DataFrame.from_records(records, columns=VIOLATION_COLUMNS)


def idle_intervals_to_frame(intervals: Iterable[IdleInterval]) -> pd.DataFrame:
    records = [
        {
            "vehicle_id": interval.vehicle_id,
            "plate_number": interval.plate_number,
            "start_time": interval.start_time,
            "end_time": interval.end_time,
            "duration_minutes": interval.duration_minutes,
            "fuel_waste_litres": interval.estimated_fuel_waste_litres,
            "lat": interval.location.latitude,
            "lon": interval.location.longitude,
        }
        for interval in intervals
    ]
    if not records:
        return pd.DataFrame(columns=IDLE_COLUMNS)
    return pd.DataFrame.from_records(records, columns=IDLE_COLUMNS)


def frequent_areas_to_frame(patterns: MovementPatterns) -> pd.DataFrame:
    if not patterns.top_areas:
        return pd.DataFrame(columns=AREA_COLUMNS)
    return pd.DataFrame.from_records(
        [
            {
                "lat": area.latitude,
                "lon": area.longitude,
                "visit_count": area.visit_count,
                "percentage": area.percentage,
            }
            for area in patterns.top_areas
        ],
        columns=AREA_COLUMNS,
    )


def route_to_frame(route: OptimizedRoute) -> pd.DataFrame:
    """Stop-by-stop table starting at the origin (stop 0)."""

    records = [
        {
            "stop": 0,
            "destination_index": None,
            "lat": route.start_location.latitude,
            "lon": route.start_location.longitude,
            "leg_km": 0.0,
            "cumulative_km": 0.0,
        }
    ]
    for stop, (leg, point) in enumerate(zip(route.legs, route.route[1:]), start=1):
        records.append(
            {
                "stop": stop,
                "destination_index": leg.to_index,
                "lat": point.latitude,
                "lon": point.longitude,
                "leg_km": leg.distance_km,
                "cumulative_km": leg.cumulative_km,
            }
        )
    return pd.DataFrame.from_records(records, columns=ROUTE_COLUMNS)


def statistics_to_frame(stats: FleetStatistics) -> pd.DataFrame:
    """Return a two-column metric/value table."""

    quality = stats.data_quality
    rows = [
        ("Samples", stats.total_samples),
        ("Vehicles", stats.unique_vehicles),
        ("Distance (km)", round(stats.total_distance_km, 2)),
        ("Average speed (km/h)", round(stats.average_speed_kmh, 1)),
        ("Max speed (km/h)", round(stats.max_speed_kmh, 1)),
        ("Speed coverage (%)", round(quality.speed_coverage * 100.0, 1)),
        ("Accuracy coverage (%)", round(quality.accuracy_coverage * 100.0, 1)),
        ("Average accuracy (m)", round(quality.average_accuracy_m, 1)),
    ]
    return pd.DataFrame(rows, columns=["metric", "value"])


__all__ = [
    "area_to_frame",
    "frequent_areas_to_frame",
    "heatmap_to_frame",
    "idle_intervals_to_frame",
    "positions_to_frame",
    "route_to_frame",
    "samples_to_frame",
    "statistics_to_frame",
    "tracks_to_frame",
    "violations_to_frame",
]

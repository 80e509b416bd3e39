"""Movement and data-quality statistics over a set of samples."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from fleetgps.geometry import haversine_km
from fleetgps.samples import LocationSample
from fleetgps.trajectory import group_by_vehicle


@dataclass
class DataQuality:
    samples_with_speed: int = 0
    samples_with_accuracy: int = 0
    speed_coverage: float = 0.0
    accuracy_coverage: float = 0.0
    average_accuracy_m: float = 0.0


@dataclass
class FleetStatistics:
    total_samples: int = 0
    unique_vehicles: int = 0
    total_distance_km: float = 0.0
    average_speed_kmh: float = 0.0
    max_speed_kmh: float = 0.0
    data_quality: DataQuality = field(default_factory=DataQuality)
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None


def track_distance_km(
    points: Sequence[LocationSample], *, max_segment_km: Optional[float] = None
) -> float:
    """Sum consecutive-point distances along one vehicle's ordered track.

    Segments longer than *max_segment_km*, when given, are treated as GPS
    jumps and skipped.
    """

    total = 0.0
    for previous, current in zip(points, points[1:]):
        distance = haversine_km(previous.lat_lon, current.lat_lon)
        if max_segment_km is not None and distance >= max_segment_km:
            continue
        total += distance
    return total


def compute_statistics(
    samples: Sequence[LocationSample],
    *,
    period_start: Optional[datetime] = None,
    period_end: Optional[datetime] = None,
    max_segment_km: Optional[float] = None,
) -> FleetStatistics:
    total = len(samples)
    if total == 0:
        return FleetStatistics(period_start=period_start, period_end=period_end)

    grouped = group_by_vehicle(samples)
    distance = sum(
        track_distance_km(points, max_segment_km=max_segment_km) for points in grouped.values()
    )

    speeds: List[float] = [s.speed_kmh for s in samples if s.speed_kmh is not None]
    accuracies: List[float] = [s.accuracy_m for s in samples if s.accuracy_m is not None]

    quality = DataQuality(
        samples_with_speed=len(speeds),
        samples_with_accuracy=len(accuracies),
        speed_coverage=len(speeds) / total,
        accuracy_coverage=len(accuracies) / total,
        average_accuracy_m=sum(accuracies) / len(accuracies) if accuracies else 0.0,
    )
    return FleetStatistics(
        total_samples=total,
        unique_vehicles=len(grouped),
        total_distance_km=distance,
        average_speed_kmh=sum(speeds) / len(speeds) if speeds else 0.0,
        max_speed_kmh=max(speeds) if speeds else 0.0,
        data_quality=quality,
        period_start=period_start,
        period_end=period_end,
    )


__all__ = ["DataQuality", "FleetStatistics", "compute_statistics", "track_distance_km"]

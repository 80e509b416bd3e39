"""Latest-position resolution and area queries."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from fleetgps.geometry import haversine_km
from fleetgps.samples import (
    ActiveOperation,
    Bounds,
    Coordinates,
    LocationSample,
    VehicleRef,
)


@dataclass
class PositionSnapshot:
    vehicle_id: str
    plate_number: Optional[str]
    vehicle_model: Optional[str]
    status: Optional[str]
    position: Optional[LocationSample]
    active_operation: Optional[ActiveOperation]
    last_update: Optional[datetime]


@dataclass
class VehicleDetail(PositionSnapshot):
    recent_track: List[LocationSample] = field(default_factory=list)


@dataclass
class AreaVehicle:
    snapshot: PositionSnapshot
    distance_km: Optional[float] = None


@dataclass
class AreaResult:
    center: Optional[Coordinates]
    radius_km: Optional[float]
    bounds: Optional[Bounds]
    vehicles: List[AreaVehicle] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.vehicles)


def latest_sample(samples: Iterable[LocationSample]) -> Optional[LocationSample]:
    """Return the most recent sample.

    Samples sharing a ``captured_at`` are tie-broken by the greater
    ``sample_id``; a missing id sorts lowest.
    """

    return max(samples, key=LocationSample.sort_key, default=None)


def latest_by_vehicle(samples: Iterable[LocationSample]) -> Dict[str, LocationSample]:
    latest: Dict[str, LocationSample] = {}
    for sample in samples:
        current = latest.get(sample.vehicle_id)
        if current is None or sample.sort_key() > current.sort_key():
            latest[sample.vehicle_id] = sample
    return latest


def build_snapshot(vehicle: VehicleRef, position: Optional[LocationSample]) -> PositionSnapshot:
    return PositionSnapshot(
        vehicle_id=vehicle.vehicle_id,
        plate_number=vehicle.plate_number,
        vehicle_model=vehicle.model,
        status=vehicle.status,
        position=position,
        active_operation=vehicle.active_operation,
        last_update=position.captured_at if position else vehicle.updated_at,
    )


def resolve_latest_positions(
    vehicles: Sequence[VehicleRef], samples: Iterable[LocationSample]
) -> List[PositionSnapshot]:
    """Join each vehicle with its newest sample, one snapshot per vehicle."""

    latest = latest_by_vehicle(samples)
    return [build_snapshot(vehicle, latest.get(vehicle.vehicle_id)) for vehicle in vehicles]


def build_vehicle_detail(
    vehicle: VehicleRef, recent_samples: Iterable[LocationSample]
) -> VehicleDetail:
    recent = sorted(
        (s for s in recent_samples if s.vehicle_id == vehicle.vehicle_id),
        key=LocationSample.sort_key,
        reverse=True,
    )
    snapshot = build_snapshot(vehicle, recent[0] if recent else None)
    return VehicleDetail(**vars(snapshot), recent_track=recent)


def filter_snapshots_in_area(
    snapshots: Iterable[PositionSnapshot],
    *,
    center: Optional[Coordinates] = None,
    radius_km: Optional[float] = None,
    bounds: Optional[Bounds] = None,
) -> List[AreaVehicle]:
    """Keep positioned vehicles inside the circle and/or bounding box.

    Results are ordered nearest to *center* first when a centre is given.
    """

    matches: List[AreaVehicle] = []
    for snapshot in snapshots:
        position = snapshot.position
        if position is None:
            continue
        distance: Optional[float] = None
        if center is not None:
            distance = haversine_km(center.lat_lon, position.lat_lon)
            if radius_km is not None and distance > radius_km:
                continue
        if bounds is not None and not bounds.contains(position.latitude, position.longitude):
            continue
        matches.append(AreaVehicle(snapshot=snapshot, distance_km=distance))

    if center is not None:
        matches.sort(key=lambda item: (item.distance_km, item.snapshot.vehicle_id))
    return matches


__all__ = [
    "AreaResult",
    "AreaVehicle",
    "PositionSnapshot",
    "VehicleDetail",
    "build_snapshot",
    "build_vehicle_detail",
    "filter_snapshots_in_area",
    "latest_by_vehicle",
    "latest_sample",
    "resolve_latest_positions",
]

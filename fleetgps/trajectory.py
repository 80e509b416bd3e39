"""Per-vehicle trajectory construction and stride simplification."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from fleetgps.config import DEFAULT_SIMPLIFY_STRIDE
from fleetgps.errors import ValidationError
from fleetgps.samples import LocationSample


@dataclass
class VehicleTrack:
    vehicle_id: str
    points: List[LocationSample] = field(default_factory=list)
    plate_number: Optional[str] = None
    total_points: int = 0
    simplified: bool = False

    @property
    def start_time(self) -> Optional[datetime]:
        return self.points[0].captured_at if self.points else None

    @property
    def end_time(self) -> Optional[datetime]:
        return self.points[-1].captured_at if self.points else None


def group_by_vehicle(samples: Iterable[LocationSample]) -> Dict[str, List[LocationSample]]:
    """Return samples grouped per vehicle, each list ordered by capture time.

    Vehicles appear in order of first appearance in *samples*.
    """

    grouped: Dict[str, List[LocationSample]] = {}
    for sample in samples:
        grouped.setdefault(sample.vehicle_id, []).append(sample)
    for points in grouped.values():
        points.sort(key=LocationSample.sort_key)
    return grouped


def simplify_track(
    points: Sequence[LocationSample], stride: int = DEFAULT_SIMPLIFY_STRIDE
) -> List[LocationSample]:
    """Keep every *stride*-th point plus the first and last.

    This is plain decimation, not Douglas-Peucker: it bounds the payload size
    without any guarantee on geometric fidelity.
    """

    if stride < 1:
        raise ValidationError("Simplification stride must be at least 1")
    if len(points) < stride:
        return list(points)
    last = len(points) - 1
    return [point for index, point in enumerate(points) if index % stride == 0 or index == last]


def build_tracks(
    samples: Iterable[LocationSample],
    *,
    vehicle_ids: Optional[Sequence[str]] = None,
    plate_numbers: Optional[Dict[str, Optional[str]]] = None,
    simplify: bool = False,
    stride: int = DEFAULT_SIMPLIFY_STRIDE,
) -> List[VehicleTrack]:
    """Build one :class:`VehicleTrack` per vehicle.

    Vehicles listed in *vehicle_ids* always get a track, empty when they have
    no samples. Vehicles only present in *samples* are appended after them.
    """

    if stride < 1:
        raise ValidationError("Simplification stride must be at least 1")
    grouped = group_by_vehicle(samples)
    plates = plate_numbers or {}

    ordered_ids: List[str] = list(dict.fromkeys(vehicle_ids or []))
    ordered_ids.extend(vehicle_id for vehicle_id in grouped if vehicle_id not in ordered_ids)

    tracks: List[VehicleTrack] = []
    for vehicle_id in ordered_ids:
        points = grouped.get(vehicle_id, [])
        kept = simplify_track(points, stride) if simplify else list(points)
        tracks.append(
            VehicleTrack(
                vehicle_id=vehicle_id,
                points=kept,
                plate_number=plates.get(vehicle_id),
                total_points=len(points),
                simplified=simplify and len(kept) < len(points),
            )
        )
    return tracks


__all__ = ["VehicleTrack", "build_tracks", "group_by_vehicle", "simplify_track"]

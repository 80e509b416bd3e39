"""Speed, idle and geofence violation detectors."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Mapping, Optional, Protocol, Sequence

from fleetgps.config import (
    DEFAULT_IDLE_THRESHOLD_MINUTES,
    DEFAULT_SPEED_THRESHOLD_KMH,
    IDLE_FUEL_BURN_LITRES_PER_MINUTE,
    STATIONARY_SPEED_KMH,
)
from fleetgps.errors import ValidationError
from fleetgps.samples import Coordinates, LocationSample, SampleFilter, VehicleRef
from fleetgps.trajectory import group_by_vehicle

if TYPE_CHECKING:  # pragma: no cover - hints for type-checkers only
    from fleetgps.repo import SampleRepository

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ViolationType(str, Enum):
    SPEED = "SPEED"
    GEOFENCE = "GEOFENCE"


# (minimum excess, severity), highest band first. Lower bounds are inclusive.
SEVERITY_BANDS: Sequence[tuple[float, Severity]] = (
    (40.0, Severity.CRITICAL),
    (20.0, Severity.HIGH),
    (10.0, Severity.MEDIUM),
    (0.0, Severity.LOW),
)


@dataclass(frozen=True)
class ViolationEvent:
    vehicle_id: str
    observed_value: float
    threshold: float
    severity: Severity
    location: Coordinates
    timestamp: datetime
    violation_type: ViolationType = ViolationType.SPEED
    sample_id: Optional[str] = None
    plate_number: Optional[str] = None
    vehicle_model: Optional[str] = None

    @property
    def excess(self) -> float:
        return self.observed_value - self.threshold


@dataclass(frozen=True)
class IdleInterval:
    vehicle_id: str
    start_time: datetime
    end_time: datetime
    duration_minutes: float
    location: Coordinates
    estimated_fuel_waste_litres: float
    plate_number: Optional[str] = None


def _vehicle_ref(
    vehicles: Optional[Mapping[str, VehicleRef]], vehicle_id: str
) -> Optional[VehicleRef]:
    if not vehicles:
        return None
    return vehicles.get(vehicle_id)


def classify_speed_severity(speed_kmh: float, threshold_kmh: float) -> Severity:
    """Map how far *speed_kmh* exceeds *threshold_kmh* onto a severity band."""

    excess = speed_kmh - threshold_kmh
    for minimum, severity in SEVERITY_BANDS:
        if excess >= minimum:
            return severity
    return Severity.LOW


def detect_speed_violations(
    samples: Iterable[LocationSample],
    threshold_kmh: float = DEFAULT_SPEED_THRESHOLD_KMH,
    *,
    limit: Optional[int] = None,
    vehicles: Optional[Mapping[str, VehicleRef]] = None,
) -> List[ViolationEvent]:
    """Return one event per sample at or above *threshold_kmh*, fastest first.

    When *vehicles* is given, events carry the plate number and model of the
    matching vehicle.
    """

    if threshold_kmh is None or threshold_kmh < 0:
        raise ValidationError("Speed threshold must be zero or greater")
    if limit is not None and limit < 1:
        raise ValidationError("limit must be at least 1")

    events: List[ViolationEvent] = []
    for sample in samples:
        if sample.speed_kmh is None or sample.speed_kmh < threshold_kmh:
            continue
        vehicle = _vehicle_ref(vehicles, sample.vehicle_id)
        events.append(
            ViolationEvent(
                vehicle_id=sample.vehicle_id,
                observed_value=sample.speed_kmh,
                threshold=float(threshold_kmh),
                severity=classify_speed_severity(sample.speed_kmh, threshold_kmh),
                location=sample.coordinates,
                timestamp=sample.captured_at,
                violation_type=ViolationType.SPEED,
                sample_id=sample.sample_id,
                plate_number=vehicle.plate_number if vehicle else None,
                vehicle_model=vehicle.model if vehicle else None,
            )
        )
    events.sort(key=lambda event: (-event.observed_value, event.timestamp, event.sample_id or ""))
    if limit is not None:
        events = events[:limit]
    return events


def _make_interval(
    start: LocationSample, end: LocationSample, plate_number: Optional[str] = None
) -> IdleInterval:
    duration = (end.captured_at - start.captured_at).total_seconds() / 60.0
    return IdleInterval(
        vehicle_id=start.vehicle_id,
        start_time=start.captured_at,
        end_time=end.captured_at,
        duration_minutes=duration,
        location=start.coordinates,
        estimated_fuel_waste_litres=duration * IDLE_FUEL_BURN_LITRES_PER_MINUTE,
        plate_number=plate_number,
    )


def detect_idle_intervals(
    samples: Iterable[LocationSample],
    idle_threshold_minutes: float = DEFAULT_IDLE_THRESHOLD_MINUTES,
    *,
    stationary_speed_kmh: float = STATIONARY_SPEED_KMH,
    merge_runs: bool = False,
    vehicles: Optional[Mapping[str, VehicleRef]] = None,
) -> List[IdleInterval]:
    """Find idle spans between consecutive low-speed samples of one vehicle.

    Each adjacent pair of stationary samples whose gap is at most
    *idle_threshold_minutes* yields one interval. With ``merge_runs`` the
    qualifying pairs that share a sample are chained into a single interval.
    Pairs with identical timestamps are ignored.
    """

    if idle_threshold_minutes is None or idle_threshold_minutes < 0:
        raise ValidationError("Idle threshold must be zero or greater")

    stationary = [
        sample
        for sample in samples
        if sample.speed_kmh is not None and sample.speed_kmh <= stationary_speed_kmh
    ]
    intervals: List[IdleInterval] = []
    for vehicle_id, points in group_by_vehicle(stationary).items():
        vehicle = _vehicle_ref(vehicles, vehicle_id)
        plate_number = vehicle.plate_number if vehicle else None
        run_start: Optional[LocationSample] = None
        run_end: Optional[LocationSample] = None
        for previous, current in zip(points, points[1:]):
            gap_minutes = (current.captured_at - previous.captured_at).total_seconds() / 60.0
            qualifies = 0 < gap_minutes <= idle_threshold_minutes
            if not merge_runs:
                if qualifies:
                    intervals.append(_make_interval(previous, current, plate_number))
                continue
            if qualifies and run_end is previous:
                run_end = current
            elif qualifies:
                if run_start is not None and run_end is not None:
                    intervals.append(_make_interval(run_start, run_end, plate_number))
                run_start, run_end = previous, current
        if merge_runs and run_start is not None and run_end is not None:
            intervals.append(_make_interval(run_start, run_end, plate_number))
        logger.debug("Vehicle %s: %d stationary sample(s)", vehicle_id, len(points))

    intervals.sort(key=lambda interval: (interval.start_time, interval.vehicle_id))
    return intervals


class GeofenceEvaluator(Protocol):
    """Strategy for detecting geofence violations."""

    def detect(
        self, repository: "SampleRepository", sample_filter: SampleFilter
    ) -> List[ViolationEvent]:
        ...


class NullGeofenceEvaluator:
    """Default evaluator: no geofences are configured, so nothing is violated.

    It never reads from the repository.
    """

    def detect(
        self, repository: "SampleRepository", sample_filter: SampleFilter
    ) -> List[ViolationEvent]:
        return []


__all__ = [
    "GeofenceEvaluator",
    "IdleInterval",
    "NullGeofenceEvaluator",
    "SEVERITY_BANDS",
    "Severity",
    "ViolationEvent",
    "ViolationType",
    "classify_speed_severity",
    "detect_idle_intervals",
    "detect_speed_violations",
]

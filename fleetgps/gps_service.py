"""Analytic entry points exposed to controller and dashboard layers.

:class:`GpsAnalyticsService` holds only its injected repository and geofence
evaluator. Every call fetches what it needs and returns fresh result objects,
so one instance can be shared between requests.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from fleetgps.config import (
    DEFAULT_AREA_RADIUS_KM,
    DEFAULT_HEATMAP_CELL_SIZE_KM,
    DEFAULT_IDLE_THRESHOLD_MINUTES,
    DEFAULT_SIMPLIFY_STRIDE,
    DEFAULT_SPEED_THRESHOLD_KMH,
    RECENT_TRACK_LENGTH,
    STATIONARY_SPEED_KMH,
)
from fleetgps.errors import NotFoundError, ValidationError
from fleetgps.grid import HeatmapPoint, MovementPatterns, build_heatmap, find_frequent_areas
from fleetgps.positions import (
    AreaResult,
    PositionSnapshot,
    VehicleDetail,
    build_vehicle_detail,
    filter_snapshots_in_area,
    resolve_latest_positions,
)
from fleetgps.repo import SampleRepository
from fleetgps.route_optimizer import OptimizedRoute, optimize_route
from fleetgps.samples import Bounds, Coordinates, SampleFilter, VehicleRef
from fleetgps.stats import FleetStatistics, compute_statistics
from fleetgps.trajectory import VehicleTrack, build_tracks
from fleetgps.violations import (
    GeofenceEvaluator,
    IdleInterval,
    NullGeofenceEvaluator,
    ViolationEvent,
    detect_idle_intervals,
    detect_speed_violations,
)

logger = logging.getLogger(__name__)


def _optional_ids(vehicle_ids: Optional[Sequence[str]]) -> Optional[List[str]]:
    if vehicle_ids is None:
        return None
    return list(dict.fromkeys(str(vehicle_id) for vehicle_id in vehicle_ids))


class GpsAnalyticsService:
    """Facade over the geometry, grid, trajectory and violation helpers."""

    def __init__(
        self,
        repository: SampleRepository,
        *,
        geofence_evaluator: Optional[GeofenceEvaluator] = None,
    ):
        self.repository = repository
        self.geofence_evaluator = geofence_evaluator or NullGeofenceEvaluator()

    def _vehicles_by_id(self, vehicle_ids: Optional[Sequence[str]]) -> Dict[str, VehicleRef]:
        return {
            vehicle.vehicle_id: vehicle
            for vehicle in self.repository.fetch_vehicle_refs(vehicle_ids)
        }

    # Real-time positions -------------------------------------------------

    def get_all_vehicle_positions(
        self, vehicle_ids: Optional[Sequence[str]] = None
    ) -> List[PositionSnapshot]:
        ids = _optional_ids(vehicle_ids)
        vehicles = self.repository.fetch_vehicle_refs(ids)
        samples = self.repository.fetch_recent_samples(ids, per_vehicle=1)
        snapshots = resolve_latest_positions(vehicles, samples)
        logger.info(
            "Resolved positions for %d vehicle(s), %d with a fix",
            len(snapshots),
            sum(1 for snapshot in snapshots if snapshot.position is not None),
        )
        return snapshots

    def get_vehicle_details(self, vehicle_id: str) -> VehicleDetail:
        if not vehicle_id:
            raise ValidationError("A vehicle id is required")
        vehicles = self.repository.fetch_vehicle_refs([vehicle_id])
        if not vehicles:
            raise NotFoundError(f"Vehicle {vehicle_id} was not found")
        recent = self.repository.fetch_recent_samples(
            [vehicle_id], per_vehicle=RECENT_TRACK_LENGTH
        )
        logger.info("Loaded %d recent sample(s) for vehicle %s", len(recent), vehicle_id)
        return build_vehicle_detail(vehicles[0], recent)

    def get_vehicles_in_area(
        self,
        center: Any = None,
        radius_km: Optional[float] = None,
        bounds: Optional[Bounds] = None,
    ) -> AreaResult:
        if center is None and bounds is None:
            raise ValidationError("A center point (or bounds) is required")
        center_point = Coordinates.from_value(center) if center is not None else None
        radius: Optional[float] = None
        if center_point is not None:
            radius = DEFAULT_AREA_RADIUS_KM if radius_km is None else float(radius_km)
            if radius <= 0:
                raise ValidationError("radius_km must be greater than zero")

        snapshots = self.get_all_vehicle_positions()
        matches = filter_snapshots_in_area(
            snapshots, center=center_point, radius_km=radius, bounds=bounds
        )
        logger.info("Found %d vehicle(s) in the requested area", len(matches))
        return AreaResult(center=center_point, radius_km=radius, bounds=bounds, vehicles=matches)

    # Visualisation -------------------------------------------------------

    def generate_heatmap(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        vehicle_ids: Optional[Sequence[str]] = None,
        cell_size_km: float = DEFAULT_HEATMAP_CELL_SIZE_KM,
    ) -> List[HeatmapPoint]:
        if cell_size_km is None or not cell_size_km > 0:
            raise ValidationError("cell_size_km must be greater than zero")
        sample_filter = SampleFilter.build(
            vehicle_ids=_optional_ids(vehicle_ids), start_time=start_time, end_time=end_time
        )
        samples = self.repository.fetch_samples(sample_filter)
        points = build_heatmap(samples, cell_size_km)
        logger.info("Heatmap built from %d sample(s) into %d cell(s)", len(samples), len(points))
        return points

    def get_vehicle_tracks(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        vehicle_ids: Optional[Sequence[str]] = None,
        simplify: bool = False,
        stride: int = DEFAULT_SIMPLIFY_STRIDE,
    ) -> List[VehicleTrack]:
        if stride < 1:
            raise ValidationError("Simplification stride must be at least 1")
        ids = _optional_ids(vehicle_ids)
        sample_filter = SampleFilter.build(vehicle_ids=ids, start_time=start_time, end_time=end_time)
        vehicles = self.repository.fetch_vehicle_refs(ids)
        samples = self.repository.fetch_samples(sample_filter)
        tracks = build_tracks(
            samples,
            vehicle_ids=[vehicle.vehicle_id for vehicle in vehicles],
            plate_numbers={vehicle.vehicle_id: vehicle.plate_number for vehicle in vehicles},
            simplify=simplify,
            stride=stride,
        )
        logger.info("Built %d track(s) from %d sample(s)", len(tracks), len(samples))
        return tracks

    # Violations ----------------------------------------------------------

    def detect_speed_violations(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        vehicle_ids: Optional[Sequence[str]] = None,
        speed_threshold_kmh: float = DEFAULT_SPEED_THRESHOLD_KMH,
        limit: Optional[int] = None,
    ) -> List[ViolationEvent]:
        if speed_threshold_kmh is None or speed_threshold_kmh < 0:
            raise ValidationError("speed_threshold_kmh must be zero or greater")
        ids = _optional_ids(vehicle_ids)
        sample_filter = SampleFilter.build(
            vehicle_ids=ids,
            start_time=start_time,
            end_time=end_time,
            speed_at_least=speed_threshold_kmh,
        )
        samples = self.repository.fetch_samples(sample_filter)
        events = detect_speed_violations(
            samples, speed_threshold_kmh, limit=limit, vehicles=self._vehicles_by_id(ids)
        )
        logger.info("Detected %d speed violation(s) at %.1f km/h", len(events), speed_threshold_kmh)
        return events

    def analyze_idling(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        vehicle_ids: Optional[Sequence[str]] = None,
        idle_threshold_minutes: float = DEFAULT_IDLE_THRESHOLD_MINUTES,
        merge_runs: bool = False,
    ) -> List[IdleInterval]:
        if idle_threshold_minutes is None or idle_threshold_minutes < 0:
            raise ValidationError("idle_threshold_minutes must be zero or greater")
        ids = _optional_ids(vehicle_ids)
        sample_filter = SampleFilter.build(
            vehicle_ids=ids,
            start_time=start_time,
            end_time=end_time,
            speed_at_most=STATIONARY_SPEED_KMH,
        )
        samples = self.repository.fetch_samples(sample_filter)
        intervals = detect_idle_intervals(
            samples,
            idle_threshold_minutes,
            merge_runs=merge_runs,
            vehicles=self._vehicles_by_id(ids),
        )
        logger.info("Detected %d idle interval(s)", len(intervals))
        return intervals

    def detect_geofence_violations(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        vehicle_ids: Optional[Sequence[str]] = None,
    ) -> List[ViolationEvent]:
        ids = _optional_ids(vehicle_ids)
        sample_filter = SampleFilter.build(vehicle_ids=ids, start_time=start_time, end_time=end_time)
        events = self.geofence_evaluator.detect(self.repository, sample_filter)
        if not events:
            return events
        vehicles = self._vehicles_by_id(ids)
        return [
            replace(
                event,
                plate_number=vehicles[event.vehicle_id].plate_number,
                vehicle_model=vehicles[event.vehicle_id].model,
            )
            if event.plate_number is None and event.vehicle_id in vehicles
            else event
            for event in events
        ]

    # Analysis ------------------------------------------------------------

    def analyze_movement_patterns(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        vehicle_ids: Optional[Sequence[str]] = None,
    ) -> MovementPatterns:
        sample_filter = SampleFilter.build(
            vehicle_ids=_optional_ids(vehicle_ids), start_time=start_time, end_time=end_time
        )
        samples = self.repository.fetch_samples(sample_filter)
        logger.info("Analysing movement patterns over %d sample(s)", len(samples))
        return find_frequent_areas(
            samples,
            period_start=sample_filter.start_time,
            period_end=sample_filter.end_time,
        )

    def optimize_route(
        self,
        start_location: Any,
        destinations: Sequence[Any],
        vehicle_id: Optional[str] = None,
    ) -> OptimizedRoute:
        route = optimize_route(start_location, destinations, vehicle_id=vehicle_id)
        logger.info(
            "Ordered %d destination(s), %.2f km total",
            len(route.optimized_order),
            route.total_distance_km,
        )
        return route

    def get_statistics(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        vehicle_ids: Optional[Sequence[str]] = None,
        max_segment_km: Optional[float] = None,
    ) -> FleetStatistics:
        if max_segment_km is not None and not max_segment_km > 0:
            raise ValidationError("max_segment_km must be greater than zero")
        sample_filter = SampleFilter.build(
            vehicle_ids=_optional_ids(vehicle_ids), start_time=start_time, end_time=end_time
        )
        samples = self.repository.fetch_samples(sample_filter)
        logger.info("Computing statistics over %d sample(s)", len(samples))
        return compute_statistics(
            samples,
            period_start=sample_filter.start_time,
            period_end=sample_filter.end_time,
            max_segment_km=max_segment_km,
        )


__all__ = ["GpsAnalyticsService"]

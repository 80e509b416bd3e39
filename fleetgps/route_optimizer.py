"""Nearest-neighbour ordering for multi-stop routes.

The heuristic is greedy: it gives a reasonable visiting order quickly but the
total distance is not guaranteed to be the shortest possible.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from fleetgps.config import ROUTE_AVERAGE_SPEED_KMH
from fleetgps.errors import ValidationError
from fleetgps.geometry import haversine_km
from fleetgps.samples import Coordinates


@dataclass(frozen=True)
class RouteLeg:
    from_index: Optional[int]  # None for the start location
    to_index: int
    distance_km: float
    cumulative_km: float


@dataclass
class OptimizedRoute:
    start_location: Coordinates
    original_order: List[int]
    optimized_order: List[int]
    route: List[Coordinates]
    legs: List[RouteLeg] = field(default_factory=list)
    total_distance_km: float = 0.0
    estimated_time_minutes: float = 0.0
    vehicle_id: Optional[str] = None


def nearest_neighbour_order(
    start: Coordinates, destinations: Sequence[Coordinates]
) -> List[int]:
    """Return destination indices in greedy nearest-first visiting order.

    Equal distances resolve to the lowest input index.
    """

    remaining = list(range(len(destinations)))
    order: List[int] = []
    current = start
    while remaining:
        best_position = 0
        best_distance = math.inf
        for position, index in enumerate(remaining):
            distance = haversine_km(current.lat_lon, destinations[index].lat_lon)
            if distance < best_distance:
                best_distance = distance
                best_position = position
        chosen = remaining.pop(best_position)
        order.append(chosen)
        current = destinations[chosen]
    return order


def optimize_route(
    start_location: Any,
    destinations: Sequence[Any],
    *,
    vehicle_id: Optional[str] = None,
    average_speed_kmh: float = ROUTE_AVERAGE_SPEED_KMH,
) -> OptimizedRoute:
    """Order *destinations* from *start_location* with the nearest-neighbour heuristic."""

    if start_location is None:
        raise ValidationError("A start location is required")
    if not destinations:
        raise ValidationError("At least one destination is required", code="NO_DESTINATIONS")
    if not average_speed_kmh > 0:
        raise ValidationError("Average speed must be greater than zero")

    start = Coordinates.from_value(start_location)
    points = [Coordinates.from_value(destination) for destination in destinations]
    order = nearest_neighbour_order(start, points)

    legs: List[RouteLeg] = []
    cumulative = 0.0
    previous_index: Optional[int] = None
    previous_point = start
    for index in order:
        distance = haversine_km(previous_point.lat_lon, points[index].lat_lon)
        cumulative += distance
        legs.append(
            RouteLeg(
                from_index=previous_index,
                to_index=index,
                distance_km=distance,
                cumulative_km=cumulative,
            )
        )
        previous_index = index
        previous_point = points[index]

    return OptimizedRoute(
        start_location=start,
        original_order=list(range(len(points))),
        optimized_order=order,
        route=[start, *(points[index] for index in order)],
        legs=legs,
        total_distance_km=cumulative,
        estimated_time_minutes=cumulative / average_speed_kmh * 60.0,
        vehicle_id=vehicle_id,
    )


__all__ = ["OptimizedRoute", "RouteLeg", "nearest_neighbour_order", "optimize_route"]

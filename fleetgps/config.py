"""Default analytic parameters for the fleet GPS engine.

Units are fixed across the package: kilometres, km/h, minutes and decimal
degrees.
"""
from __future__ import annotations

from dataclasses import dataclass

DEFAULT_SPEED_THRESHOLD_KMH = 80.0
DEFAULT_IDLE_THRESHOLD_MINUTES = 10.0
DEFAULT_HEATMAP_CELL_SIZE_KM = 1.0
DEFAULT_SIMPLIFY_STRIDE = 10
DEFAULT_AREA_RADIUS_KM = 10.0

# Samples at or below this speed count as stationary for idle detection,
# independent of the caller's idle-duration threshold.
STATIONARY_SPEED_KMH = 5.0
IDLE_FUEL_BURN_LITRES_PER_MINUTE = 0.1

# Flat-Earth degree conversion used for every grid cell. Changing it shifts
# all heatmap and frequent-area outputs.
KM_PER_DEGREE = 111.0
PATTERN_CELL_SIZE_KM = 1.11
PATTERN_TOP_K = 20

ROUTE_AVERAGE_SPEED_KMH = 36.0
RECENT_TRACK_LENGTH = 10

EARTH_RADIUS_KM = 6371.0


@dataclass
class AnalyticsSettings:
    """Operator-tunable defaults used by the CLI and dashboard."""

    speed_threshold_kmh: float = DEFAULT_SPEED_THRESHOLD_KMH
    idle_threshold_minutes: float = DEFAULT_IDLE_THRESHOLD_MINUTES
    heatmap_cell_size_km: float = DEFAULT_HEATMAP_CELL_SIZE_KM
    simplify_stride: int = DEFAULT_SIMPLIFY_STRIDE


__all__ = [
    "AnalyticsSettings",
    "DEFAULT_AREA_RADIUS_KM",
    "DEFAULT_HEATMAP_CELL_SIZE_KM",
    "DEFAULT_IDLE_THRESHOLD_MINUTES",
    "DEFAULT_SIMPLIFY_STRIDE",
    "DEFAULT_SPEED_THRESHOLD_KMH",
    "EARTH_RADIUS_KM",
    "IDLE_FUEL_BURN_LITRES_PER_MINUTE",
    "KM_PER_DEGREE",
    "PATTERN_CELL_SIZE_KM",
    "PATTERN_TOP_K",
    "RECENT_TRACK_LENGTH",
    "ROUTE_AVERAGE_SPEED_KMH",
    "STATIONARY_SPEED_KMH",
]

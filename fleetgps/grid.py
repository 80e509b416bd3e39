"""Fixed-size latitude/longitude binning for heatmaps and frequent areas.

Cell sizes are given in kilometres and converted with ``km / 111``. That
flat-Earth conversion narrows cells east-west away from the equator.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

import numpy as np

from fleetgps.config import (
    DEFAULT_HEATMAP_CELL_SIZE_KM,
    KM_PER_DEGREE,
    PATTERN_CELL_SIZE_KM,
    PATTERN_TOP_K,
)
from fleetgps.errors import ValidationError
from fleetgps.samples import LocationSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridCell:
    cell_latitude: float
    cell_longitude: float
    sample_count: int
    cell_size_deg: float

    @property
    def center_latitude(self) -> float:
        return self.cell_latitude + self.cell_size_deg / 2

    @property
    def center_longitude(self) -> float:
        return self.cell_longitude + self.cell_size_deg / 2


@dataclass(frozen=True)
class HeatmapPoint:
    latitude: float
    longitude: float
    intensity: int
    normalized_intensity: float


@dataclass(frozen=True)
class FrequentArea:
    latitude: float
    longitude: float
    visit_count: int
    percentage: float


@dataclass
class MovementPatterns:
    total_samples: int
    unique_vehicles: int
    cell_size_km: float
    coverage_area_km2: float
    top_areas: List[FrequentArea] = field(default_factory=list)
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None


def km_to_degrees(cell_size_km: float) -> float:
    """Convert a cell edge in kilometres to its degree equivalent."""

    if cell_size_km is None or not cell_size_km > 0:
        raise ValidationError("Cell size must be greater than zero")
    return float(cell_size_km) / KM_PER_DEGREE


def bin_samples(samples: Sequence[LocationSample], cell_size_deg: float) -> List[GridCell]:
    """Count samples per ``floor(coord / cell) * cell`` bucket.

    Cells come back ordered by count descending, then by corner latitude and
    longitude so equal counts have a stable order.
    """

    if not cell_size_deg > 0:
        raise ValidationError("Cell size must be greater than zero")
    if not samples:
        return []

    coords = np.array([[s.latitude, s.longitude] for s in samples], dtype=float)
    indices = np.floor(coords / cell_size_deg).astype(np.int64)
    unique_indices, counts = np.unique(indices, axis=0, return_counts=True)

    cells = [
        GridCell(
            cell_latitude=float(lat_idx) * cell_size_deg,
            cell_longitude=float(lon_idx) * cell_size_deg,
            sample_count=int(count),
            cell_size_deg=cell_size_deg,
        )
        for (lat_idx, lon_idx), count in zip(unique_indices.tolist(), counts.tolist())
    ]
    cells.sort(key=lambda cell: (-cell.sample_count, cell.cell_latitude, cell.cell_longitude))
    logger.debug("Binned %d sample(s) into %d cell(s)", len(samples), len(cells))
    return cells


def build_heatmap(
    samples: Sequence[LocationSample],
    cell_size_km: float = DEFAULT_HEATMAP_CELL_SIZE_KM,
) -> List[HeatmapPoint]:
    """Return one heatmap point per non-empty cell, strongest first."""

    cell_size_deg = km_to_degrees(cell_size_km)
    cells = bin_samples(samples, cell_size_deg)
    max_count = max([cell.sample_count for cell in cells], default=0)
    max_count = max(max_count, 1)
    return [
        HeatmapPoint(
            latitude=cell.center_latitude,
            longitude=cell.center_longitude,
            intensity=cell.sample_count,
            normalized_intensity=cell.sample_count / max_count,
        )
        for cell in cells
    ]


def find_frequent_areas(
    samples: Sequence[LocationSample],
    *,
    top_k: int = PATTERN_TOP_K,
    cell_size_km: float = PATTERN_CELL_SIZE_KM,
    period_start: Optional[datetime] = None,
    period_end: Optional[datetime] = None,
) -> MovementPatterns:
    """Rank the most visited cells of a fine fixed grid."""

    if top_k < 1:
        raise ValidationError("top_k must be at least 1")
    cell_size_deg = km_to_degrees(cell_size_km)
    cells = bin_samples(samples, cell_size_deg)
    total = len(samples)

    top_areas = [
        FrequentArea(
            latitude=cell.center_latitude,
            longitude=cell.center_longitude,
            visit_count=cell.sample_count,
            percentage=cell.sample_count / total * 100.0,
        )
        for cell in cells[:top_k]
    ]
    return MovementPatterns(
        total_samples=total,
        unique_vehicles=len({sample.vehicle_id for sample in samples}),
        cell_size_km=float(cell_size_km),
        coverage_area_km2=len(cells) * float(cell_size_km) ** 2,
        top_areas=top_areas,
        period_start=period_start,
        period_end=period_end,
    )


__all__ = [
    "FrequentArea",
    "GridCell",
    "HeatmapPoint",
    "MovementPatterns",
    "bin_samples",
    "build_heatmap",
    "find_frequent_areas",
    "km_to_degrees",
]

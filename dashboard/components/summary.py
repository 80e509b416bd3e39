"""Summary metric components for the fleet dashboard."""
from __future__ import annotations

import math
from typing import Optional

import streamlit as st

from fleetgps.stats import FleetStatistics

__all__ = ["render_summary"]


def _format_value(
    value: Optional[float], *, suffix: str = "", percentage: bool = False
) -> str:
    """Format ``value`` for display in a Streamlit metric widget."""

    if value is None:
        return "n/a"
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return "n/a"
    if percentage:
        return f"{value * 100:.1f}%"
    return f"{value:,.1f}{suffix}"


def render_summary(stats: FleetStatistics, *, vehicles_with_fix: int = 0) -> None:
    """Render headline movement and data-quality metrics."""

    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Vehicles reporting", stats.unique_vehicles)
    col2.metric("GPS samples", f"{stats.total_samples:,}")
    col3.metric("Distance", _format_value(stats.total_distance_km, suffix=" km"))
    col4.metric("Average speed", _format_value(stats.average_speed_kmh, suffix=" km/h"))
    col5.metric("Max speed", _format_value(stats.max_speed_kmh, suffix=" km/h"))

    quality = stats.data_quality
    quality_cols = st.columns(4)
    quality_cols[0].metric("Vehicles with a live fix", vehicles_with_fix)
    quality_cols[1].metric(
        "Speed coverage", _format_value(quality.speed_coverage, percentage=True)
    )
    quality_cols[2].metric(
        "Accuracy coverage", _format_value(quality.accuracy_coverage, percentage=True)
    )
    quality_cols[3].metric(
        "Average accuracy",
        _format_value(quality.average_accuracy_m, suffix=" m")
        if quality.samples_with_accuracy
        else "n/a",
    )

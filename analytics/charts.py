"""Plotly figures for fleet speed and idle analysis."""
from __future__ import annotations

import math
from typing import Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go


def create_speed_histogram(
    samples: pd.DataFrame, threshold_kmh: float, bins: Optional[int] = None
) -> go.Figure:
    """Create a speed histogram with the violation threshold marked."""
    speeds = samples.dropna(subset=["speed_kmh"]) if not samples.empty else samples
    if speeds.empty:
        fig = go.Figure()
        fig.update_layout(
            title="No speed readings for the selected filters",
            xaxis_title="Speed (km/h)",
            yaxis_title="Samples",
        )
        return fig

    if bins is None:
        bins = min(60, max(10, int(math.sqrt(len(speeds)))))

    fig = px.histogram(
        speeds,
        x="speed_kmh",
        color="vehicle_id",
        nbins=bins,
        labels={"speed_kmh": "Speed (km/h)", "count": "Samples", "vehicle_id": "Vehicle"},
        title="Speed distribution",
        opacity=0.85,
        barmode="overlay",
    )
    fig.add_vline(
        x=threshold_kmh,
        line_width=2,
        line_dash="dash",
        line_color="#d62728",
        annotation_text=f"Limit {threshold_kmh:.0f} km/h",
        annotation_position="top",
    )
    return fig


def create_idle_bar_chart(intervals: pd.DataFrame) -> go.Figure:
    """Total idle minutes and estimated fuel waste per vehicle."""
    if intervals.empty:
        fig = go.Figure()
        fig.update_layout(title="No idle intervals detected", yaxis_title="Minutes")
        return fig

    totals = (
        intervals.groupby("vehicle_id", as_index=False)[["duration_minutes", "fuel_waste_litres"]]
        .sum()
        .sort_values("duration_minutes", ascending=False)
    )
    fig = px.bar(
        totals,
        x="vehicle_id",
        y="duration_minutes",
        hover_data={"fuel_waste_litres": ":.2f"},
        labels={"vehicle_id": "Vehicle", "duration_minutes": "Idle minutes"},
        title="Idle time by vehicle",
    )
    return fig


__all__ = ["create_idle_bar_chart", "create_speed_histogram"]

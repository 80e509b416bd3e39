"""pydeck map components for the fleet dashboard."""
from __future__ import annotations

from typing import Dict, List, Tuple

import pandas as pd
import pydeck as pdk
import streamlit as st

_BRISBANE_LAT_LON = (-27.4698, 153.0251)

STATUS_COLOURS: Dict[str, List[int]] = {
    "ACTIVE": [92, 184, 92],
    "MAINTENANCE": [240, 173, 78],
    "INACTIVE": [108, 117, 125],
}
SEVERITY_COLOURS: Dict[str, List[int]] = {
    "LOW": [255, 221, 87],
    "MEDIUM": [255, 159, 64],
    "HIGH": [232, 84, 60],
    "CRITICAL": [153, 0, 0],
}
_DEFAULT_COLOUR = [0, 123, 255]
_TRACK_PALETTE: Tuple[Tuple[int, int, int], ...] = (
    (31, 119, 180),
    (255, 127, 14),
    (44, 160, 44),
    (214, 39, 40),
    (148, 103, 189),
    (140, 86, 75),
)

_BASE_MAP_LAYER = dict(
    data="https://tile.openstreetmap.org/{z}/{x}/{y}.png",
    min_zoom=0,
    max_zoom=19,
    tile_size=256,
    attribution="© OpenStreetMap contributors",
)


def _base_map_layer() -> pdk.Layer:
    return pdk.Layer("TileLayer", **_BASE_MAP_LAYER)


def _initial_view_state(df: pd.DataFrame, *, zoom: float = 9.0) -> pdk.ViewState:
    if df.empty or "lat" not in df.columns or "lon" not in df.columns:
        return pdk.ViewState(latitude=_BRISBANE_LAT_LON[0], longitude=_BRISBANE_LAT_LON[1], zoom=zoom)
    lat = pd.to_numeric(df["lat"], errors="coerce").dropna()
    lon = pd.to_numeric(df["lon"], errors="coerce").dropna()
    if lat.empty or lon.empty:
        return pdk.ViewState(latitude=_BRISBANE_LAT_LON[0], longitude=_BRISBANE_LAT_LON[1], zoom=zoom)
    return pdk.ViewState(latitude=float(lat.mean()), longitude=float(lon.mean()), zoom=zoom)


def prepare_position_layer_data(positions: pd.DataFrame) -> pd.DataFrame:
    """Drop vehicles without a fix and attach colour and tooltip columns."""

    if positions.empty:
        return positions.assign(colour=[], tooltip=[])
    data = positions.dropna(subset=["lat", "lon"]).copy()
    data["colour"] = [
        STATUS_COLOURS.get(str(status).upper(), _DEFAULT_COLOUR) for status in data["status"]
    ]
    data["tooltip"] = [
        f"{plate or vehicle_id} · " + (f"{speed:.0f} km/h" if pd.notna(speed) else "no speed")
        for plate, vehicle_id, speed in zip(data["plate_number"], data["vehicle_id"], data["speed_kmh"])
    ]
    return data


def prepare_track_layer_data(tracks: pd.DataFrame) -> pd.DataFrame:
    """Keep tracks with at least two points and give each a palette colour."""

    if tracks.empty:
        return tracks.assign(colour=[])
    data = tracks[tracks["path"].map(len) >= 2].copy()
    data["colour"] = [
        list(_TRACK_PALETTE[index % len(_TRACK_PALETTE)]) for index in range(len(data))
    ]
    return data


def render_positions_map(positions: pd.DataFrame) -> None:
    data = prepare_position_layer_data(positions)
    if data.empty:
        st.info("No vehicles have reported a position yet.")
        return

    layers = [
        _base_map_layer(),
        pdk.Layer(
            "ScatterplotLayer",
            data=data,
            get_position="[lon, lat]",
            get_fill_color="colour",
            get_radius=250,
            pickable=True,
        ),
        pdk.Layer(
            "TextLayer",
            data=data,
            get_position="[lon, lat]",
            get_text="plate_number",
            get_size=12,
            get_alignment_baseline="bottom",
        ),
    ]
    st.pydeck_chart(
        pdk.Deck(
            layers=layers,
            initial_view_state=_initial_view_state(data),
            tooltip={"html": "<b>{tooltip}</b>", "style": {"color": "white"}},
            map_style=None,
        )
    )


def render_heatmap(heatmap: pd.DataFrame, *, key: str = "fleet_heatmap") -> None:
    if heatmap.empty:
        st.info("No GPS samples fall inside the selected window.")
        return

    radius_pixels = st.slider(
        "Heatmap radius",
        min_value=20,
        max_value=150,
        value=50,
        step=10,
        key=f"{key}_radius",
        help="Adjust how far each cell's influence spreads across the heatmap.",
    )
    heatmap_layer = pdk.Layer(
        "HeatmapLayer",
        data=heatmap,
        get_position="[lon, lat]",
        aggregation="SUM",
        get_weight="weight",
        radiusPixels=radius_pixels,
    )
    st.pydeck_chart(
        pdk.Deck(
            layers=[_base_map_layer(), heatmap_layer],
            initial_view_state=_initial_view_state(heatmap),
            tooltip=None,
            map_style=None,
        )
    )


def render_tracks_map(tracks: pd.DataFrame) -> None:
    data = prepare_track_layer_data(tracks)
    if data.empty:
        st.info("No vehicle has enough samples to draw a track.")
        return

    starts = pd.DataFrame(
        {
            "lat": [path[0][1] for path in data["path"]],
            "lon": [path[0][0] for path in data["path"]],
        }
    )
    path_layer = pdk.Layer(
        "PathLayer",
        data=data,
        get_path="path",
        get_color="colour",
        width_min_pixels=3,
        pickable=True,
    )
    st.pydeck_chart(
        pdk.Deck(
            layers=[_base_map_layer(), path_layer],
            initial_view_state=_initial_view_state(starts),
            tooltip={"html": "<b>{plate_number}</b> {kept_points}/{total_points} points"},
            map_style=None,
        )
    )


def render_violations_map(violations: pd.DataFrame) -> None:
    if violations.empty:
        return
    data = violations.copy()
    data["colour"] = [SEVERITY_COLOURS.get(severity, _DEFAULT_COLOUR) for severity in data["severity"]]
    data["label"] = [
        plate if isinstance(plate, str) and plate else vehicle_id
        for plate, vehicle_id in zip(data["plate_number"], data["vehicle_id"])
    ]
    data["timestamp"] = data["timestamp"].astype(str)
    layer = pdk.Layer(
        "ScatterplotLayer",
        data=data,
        get_position="[lon, lat]",
        get_fill_color="colour",
        get_radius=300,
        pickable=True,
    )
    st.pydeck_chart(
        pdk.Deck(
            layers=[_base_map_layer(), layer],
            initial_view_state=_initial_view_state(data),
            tooltip={"html": "<b>{label}</b> {speed_kmh} km/h ({severity})"},
            map_style=None,
        )
    )


__all__ = [
    "SEVERITY_COLOURS",
    "STATUS_COLOURS",
    "prepare_position_layer_data",
    "prepare_track_layer_data",
    "render_heatmap",
    "render_positions_map",
    "render_tracks_map",
    "render_violations_map",
]

"""Streamlit fleet tracking dashboard."""
from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from typing import List, Optional, Tuple

import streamlit as st

from analytics.charts import create_idle_bar_chart, create_speed_histogram
from analytics.db import DEFAULT_DB_PATH, connection_scope, ensure_tracking_tables, load_analytics_settings
from analytics.frames import (
    frequent_areas_to_frame,
    heatmap_to_frame,
    idle_intervals_to_frame,
    positions_to_frame,
    route_to_frame,
    samples_to_frame,
    statistics_to_frame,
    tracks_to_frame,
    violations_to_frame,
)
from analytics.mock_telemetry import seed_demo_fleet
from dashboard.components.maps import (
    render_heatmap,
    render_positions_map,
    render_tracks_map,
    render_violations_map,
)
from dashboard.components.summary import render_summary
from fleetgps.errors import FleetGpsError
from fleetgps.gps_service import GpsAnalyticsService
from fleetgps.repo import SqliteSampleRepository
from fleetgps.samples import Coordinates, SampleFilter

FLEET_DASHBOARD_TABS = [
    "Live positions",
    "Heatmap",
    "Tracks",
    "Speeding",
    "Idling",
    "Patterns",
    "Route planner",
]


def resolve_window(start: date, end: date) -> Tuple[datetime, datetime]:
    """Turn inclusive sidebar dates into a UTC ``[start, end]`` datetime window."""

    if start > end:
        start, end = end, start
    return (
        datetime.combine(start, time.min, tzinfo=UTC),
        datetime.combine(end, time.max, tzinfo=UTC),
    )


def parse_stop_lines(text: str) -> List[Coordinates]:
    """Parse one ``LAT,LON`` pair per non-blank line."""

    stops: List[Coordinates] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        parts = [part.strip() for part in line.split(",")]
        if len(parts) != 2:
            raise ValueError(f"Line {line_number}: expected LAT,LON")
        stops.append(Coordinates(float(parts[0]), float(parts[1])))
    return stops


def _render_sidebar(service: GpsAnalyticsService) -> Tuple[datetime, datetime, Optional[List[str]]]:
    today = datetime.now(UTC).date()
    with st.sidebar:
        st.header("Filters")
        start_date = st.date_input("From", value=today - timedelta(days=1))
        end_date = st.date_input("To", value=today)
        vehicles = service.get_all_vehicle_positions()
        labels = {snapshot.plate_number or snapshot.vehicle_id: snapshot.vehicle_id for snapshot in vehicles}
        selected = st.multiselect("Vehicles", options=list(labels), default=[])
    start, end = resolve_window(start_date, end_date)
    vehicle_ids = [labels[label] for label in selected] if selected else None
    return start, end, vehicle_ids


def render_fleet_dashboard(db_path: Optional[str] = None) -> None:
    """Render every dashboard tab against the SQLite database at *db_path*."""

    st.title("Fleet GPS tracking")
    st.caption("Live positions, trajectories, violations and movement patterns.")

    with connection_scope(db_path or DEFAULT_DB_PATH) as conn:
        ensure_tracking_tables(conn)
        settings = load_analytics_settings(conn)
        service = GpsAnalyticsService(SqliteSampleRepository(conn))

        if not service.get_all_vehicle_positions():
            st.info("The database has no vehicles yet.")
            if st.button("Load demo fleet"):
                seed_demo_fleet(conn, start=datetime.now(UTC) - timedelta(hours=2))
                st.rerun()
            return

        start, end, vehicle_ids = _render_sidebar(service)
        window = {"start_time": start, "end_time": end, "vehicle_ids": vehicle_ids}

        try:
            positions = service.get_all_vehicle_positions(vehicle_ids)
            stats = service.get_statistics(**window)
        except FleetGpsError as exc:
            st.error(str(exc))
            return
        render_summary(
            stats,
            vehicles_with_fix=sum(1 for snapshot in positions if snapshot.position is not None),
        )

        tabs = dict(zip(FLEET_DASHBOARD_TABS, st.tabs(FLEET_DASHBOARD_TABS)))

        with tabs["Live positions"]:
            positions_frame = positions_to_frame(positions)
            render_positions_map(positions_frame)
            st.dataframe(positions_frame, use_container_width=True, hide_index=True)

        with tabs["Heatmap"]:
            cell_size = st.number_input(
                "Cell size (km)",
                min_value=0.1,
                max_value=50.0,
                value=min(50.0, max(0.1, float(settings.heatmap_cell_size_km))),
                step=0.1,
            )
            render_heatmap(heatmap_to_frame(service.generate_heatmap(cell_size_km=cell_size, **window)))

        with tabs["Tracks"]:
            simplify = st.checkbox("Simplify tracks", value=True)
            tracks = service.get_vehicle_tracks(
                simplify=simplify, stride=settings.simplify_stride, **window
            )
            tracks_frame = tracks_to_frame(tracks)
            render_tracks_map(tracks_frame)
            st.dataframe(tracks_frame.drop(columns=["path"]), use_container_width=True, hide_index=True)

        with tabs["Speeding"]:
            threshold = st.slider(
                "Speed threshold (km/h)",
                min_value=20,
                max_value=160,
                value=min(160, max(20, int(settings.speed_threshold_kmh))),
                step=5,
            )
            events = violations_to_frame(
                service.detect_speed_violations(speed_threshold_kmh=float(threshold), **window)
            )
            all_samples = samples_to_frame(
                service.repository.fetch_samples(SampleFilter.build(**window))
            )
            st.plotly_chart(create_speed_histogram(all_samples, float(threshold)), use_container_width=True)
            if events.empty:
                st.success("No speed violations in the selected window.")
            else:
                render_violations_map(events)
                st.dataframe(events, use_container_width=True, hide_index=True)

        with tabs["Idling"]:
            idle_minutes = st.number_input(
                "Maximum gap between stationary samples (minutes)",
                min_value=1.0,
                max_value=240.0,
                value=min(240.0, max(1.0, float(settings.idle_threshold_minutes))),
            )
            merge = st.checkbox("Merge consecutive idle gaps", value=False)
            intervals = idle_intervals_to_frame(
                service.analyze_idling(
                    idle_threshold_minutes=idle_minutes, merge_runs=merge, **window
                )
            )
            st.plotly_chart(create_idle_bar_chart(intervals), use_container_width=True)
            st.dataframe(intervals, use_container_width=True, hide_index=True)

        with tabs["Patterns"]:
            patterns = service.analyze_movement_patterns(**window)
            st.metric("Coverage", f"{patterns.coverage_area_km2:,.1f} km²")
            areas = frequent_areas_to_frame(patterns)
            render_heatmap(areas.rename(columns={"percentage": "weight"}), key="patterns_heatmap")
            st.dataframe(areas, use_container_width=True, hide_index=True)
            st.dataframe(statistics_to_frame(stats), use_container_width=True, hide_index=True)

        with tabs["Route planner"]:
            start_text = st.text_input("Start (LAT,LON)", value="-27.4698,153.0251")
            stops_text = st.text_area("Stops, one LAT,LON per line")
            if st.button("Optimise route"):
                try:
                    origin = parse_stop_lines(start_text)
                    route = service.optimize_route(origin[0] if origin else None, parse_stop_lines(stops_text))
                except (ValueError, FleetGpsError) as exc:
                    st.error(str(exc))
                else:
                    st.metric(
                        "Total distance",
                        f"{route.total_distance_km:,.2f} km",
                        help=f"About {route.estimated_time_minutes:.0f} minutes at 36 km/h",
                    )
                    st.dataframe(route_to_frame(route), use_container_width=True, hide_index=True)


__all__ = ["FLEET_DASHBOARD_TABS", "parse_stop_lines", "render_fleet_dashboard", "resolve_window"]

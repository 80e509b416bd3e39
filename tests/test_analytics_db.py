from __future__ import annotations

import sqlite3

from analytics.db import (
    HEATMAP_CELL_SIZE_KEY,
    IDLE_THRESHOLD_KEY,
    SIMPLIFY_STRIDE_KEY,
    SPEED_THRESHOLD_KEY,
    bootstrap_parameters,
    connection_scope,
    ensure_tracking_tables,
    get_parameter_value,
    load_analytics_settings,
    set_parameter_value,
)
from fleetgps.config import AnalyticsSettings


def _tables(conn: sqlite3.Connection) -> set[str]:
    return {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}


def test_ensure_tracking_tables_creates_schema():
    conn = sqlite3.connect(":memory:")
    ensure_tracking_tables(conn)
    assert {"vehicles", "operations", "users", "gps_logs", "global_parameters"} <= _tables(conn)


def test_settings_default_when_no_overrides():
    conn = sqlite3.connect(":memory:")
    assert load_analytics_settings(conn) == AnalyticsSettings()


def test_settings_read_overrides():
    conn = sqlite3.connect(":memory:")
    ensure_tracking_tables(conn)
    set_parameter_value(conn, SPEED_THRESHOLD_KEY, 100, "Motorway fleet")
    set_parameter_value(conn, SIMPLIFY_STRIDE_KEY, 0)
    settings = load_analytics_settings(conn)
    assert settings.speed_threshold_kmh == 100.0
    assert settings.simplify_stride == 1
    assert settings.idle_threshold_minutes == AnalyticsSettings().idle_threshold_minutes


def test_bootstrap_parameters_keeps_existing_values():
    conn = sqlite3.connect(":memory:")
    ensure_tracking_tables(conn)
    set_parameter_value(conn, SPEED_THRESHOLD_KEY, 70)
    bootstrap_parameters(conn)
    assert get_parameter_value(conn, SPEED_THRESHOLD_KEY) == 70.0
    assert get_parameter_value(conn, SIMPLIFY_STRIDE_KEY) == 10.0


def test_connection_scope_uses_given_path(tmp_path):
    db_path = tmp_path / "fleet.db"
    with connection_scope(str(db_path)) as conn:
        ensure_tracking_tables(conn)
    assert db_path.exists()


def test_settings_fall_back_for_invalid_stored_values(caplog):
    conn = sqlite3.connect(":memory:")
    ensure_tracking_tables(conn)
    set_parameter_value(conn, HEATMAP_CELL_SIZE_KEY, 0)
    set_parameter_value(conn, IDLE_THRESHOLD_KEY, -5)
    set_parameter_value(conn, SPEED_THRESHOLD_KEY, 0)
    with caplog.at_level("WARNING"):
        settings = load_analytics_settings(conn)
    defaults = AnalyticsSettings()
    assert settings.heatmap_cell_size_km == defaults.heatmap_cell_size_km
    assert settings.idle_threshold_minutes == defaults.idle_threshold_minutes
    assert settings.speed_threshold_kmh == 0.0
    assert HEATMAP_CELL_SIZE_KEY in caplog.text

"""Database helpers for fleet analytics features."""
from __future__ import annotations

import logging
import math
import os
import sqlite3
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Iterable, Optional

from fleetgps.config import AnalyticsSettings
from fleetgps.schema import ensure_schema

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = os.environ.get("FLEETGPS_DB", "fleet.db")

SPEED_THRESHOLD_KEY = "speed_threshold_kmh"
IDLE_THRESHOLD_KEY = "idle_threshold_minutes"
HEATMAP_CELL_SIZE_KEY = "heatmap_cell_size_km"
SIMPLIFY_STRIDE_KEY = "simplify_stride"

DEFAULT_PARAMETERS = (
    (SPEED_THRESHOLD_KEY, AnalyticsSettings.speed_threshold_kmh, "Speed violation threshold (km/h)"),
    (IDLE_THRESHOLD_KEY, AnalyticsSettings.idle_threshold_minutes, "Idle gap threshold (minutes)"),
    (HEATMAP_CELL_SIZE_KEY, AnalyticsSettings.heatmap_cell_size_km, "Heatmap grid cell size (km)"),
    (SIMPLIFY_STRIDE_KEY, float(AnalyticsSettings.simplify_stride), "Track simplification stride"),
)


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """Return a SQLite connection using WAL mode for better concurrency."""
    path = db_path or DEFAULT_DB_PATH
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    return conn


@contextmanager
def connection_scope(db_path: Optional[str] = None):
    """Context manager that yields a SQLite connection and closes it afterwards."""
    conn = get_connection(db_path)
    try:
        yield conn
    finally:
        conn.close()


def ensure_global_parameters_table(conn: sqlite3.Connection) -> None:
    """Ensure the global_parameters table exists."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS global_parameters (
            key TEXT PRIMARY KEY,
            value_numeric REAL,
            value_text TEXT,
            description TEXT,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.commit()


def ensure_tracking_tables(conn: sqlite3.Connection) -> None:
    """Create the tracking tables so the CLI and UI can load before any ingest."""

    ensure_schema(conn)
    ensure_global_parameters_table(conn)


def get_parameter_value(
    conn: sqlite3.Connection,
    key: str,
    default: Optional[float] = None,
) -> Optional[float]:
    """Return the numeric value for *key* from global_parameters."""
    row = conn.execute(
        "SELECT value_numeric FROM global_parameters WHERE key = ?",
        (key,),
    ).fetchone()
    if row is None or row[0] is None:
        return default
    return row[0]


def set_parameter_value(
    conn: sqlite3.Connection,
    key: str,
    value: float,
    description: Optional[str] = None,
) -> None:
    """Insert or update a numeric parameter in global_parameters."""
    conn.execute(
        """
        INSERT INTO global_parameters (key, value_numeric, description, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(key) DO UPDATE SET
            value_numeric = excluded.value_numeric,
            description = COALESCE(excluded.description, global_parameters.description),
            updated_at = excluded.updated_at
        """,
        (key, float(value), description, datetime.now(UTC).isoformat()),
    )
    conn.commit()


def bootstrap_parameters(
    conn: sqlite3.Connection,
    defaults: Iterable[tuple[str, float, str]] = DEFAULT_PARAMETERS,
) -> None:
    """Ensure default parameter values exist."""
    ensure_global_parameters_table(conn)
    for key, value, description in defaults:
        current = get_parameter_value(conn, key)
        if current is None:
            set_parameter_value(conn, key, value, description)


def _checked_parameter(
    conn: sqlite3.Connection, key: str, default: float, *, allow_zero: bool
) -> float:
    value = float(get_parameter_value(conn, key, default))
    if math.isnan(value) or value < 0 or (value == 0 and not allow_zero):
        logger.warning("Ignoring invalid %s=%r; using default %r", key, value, default)
        return default
    return value


def load_analytics_settings(conn: sqlite3.Connection) -> AnalyticsSettings:
    """Read operator overrides from global_parameters, falling back to defaults.

    Negative thresholds and a non-positive cell size are replaced by the
    defaults. The simplification stride is clamped to at least 1.
    """

    ensure_global_parameters_table(conn)
    defaults = AnalyticsSettings()
    stride = get_parameter_value(conn, SIMPLIFY_STRIDE_KEY, defaults.simplify_stride)
    settings = AnalyticsSettings(
        speed_threshold_kmh=_checked_parameter(
            conn, SPEED_THRESHOLD_KEY, defaults.speed_threshold_kmh, allow_zero=True
        ),
        idle_threshold_minutes=_checked_parameter(
            conn, IDLE_THRESHOLD_KEY, defaults.idle_threshold_minutes, allow_zero=True
        ),
        heatmap_cell_size_km=_checked_parameter(
            conn, HEATMAP_CELL_SIZE_KEY, defaults.heatmap_cell_size_km, allow_zero=False
        ),
        simplify_stride=max(1, int(stride)),
    )
    logger.debug("Loaded analytics settings: %s", settings)
    return settings


__all__ = [
    "DEFAULT_DB_PATH",
    "DEFAULT_PARAMETERS",
    "bootstrap_parameters",
    "connection_scope",
    "ensure_global_parameters_table",
    "ensure_tracking_tables",
    "get_connection",
    "get_parameter_value",
    "load_analytics_settings",
    "set_parameter_value",
]

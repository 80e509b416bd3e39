"""SQLite schema read by the GPS sample repository."""
from __future__ import annotations

import sqlite3

ACTIVE_OPERATION_STATUS = "IN_PROGRESS"


def _create_tables(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'DRIVER'
        );

        CREATE TABLE IF NOT EXISTS vehicles (
            id TEXT PRIMARY KEY,
            plate_number TEXT NOT NULL UNIQUE,
            model TEXT,
            status TEXT NOT NULL DEFAULT 'ACTIVE',
            updated_at TEXT
        );

        CREATE TABLE IF NOT EXISTS operations (
            id TEXT PRIMARY KEY,
            vehicle_id TEXT NOT NULL,
            driver_id TEXT,
            status TEXT NOT NULL,
            started_at TEXT,
            ended_at TEXT,
            FOREIGN KEY(vehicle_id) REFERENCES vehicles(id),
            FOREIGN KEY(driver_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS gps_logs (
            id TEXT PRIMARY KEY,
            vehicle_id TEXT NOT NULL,
            operation_id TEXT,
            latitude REAL NOT NULL CHECK(latitude BETWEEN -90 AND 90),
            longitude REAL NOT NULL CHECK(longitude BETWEEN -180 AND 180),
            altitude REAL,
            speed_kmh REAL CHECK(speed_kmh IS NULL OR speed_kmh >= 0),
            heading REAL,
            accuracy_meters REAL CHECK(accuracy_meters IS NULL OR accuracy_meters >= 0),
            recorded_at TEXT NOT NULL,
            created_at TEXT,
            FOREIGN KEY(vehicle_id) REFERENCES vehicles(id),
            FOREIGN KEY(operation_id) REFERENCES operations(id)
        );

        CREATE INDEX IF NOT EXISTS idx_gps_logs_vehicle ON gps_logs(vehicle_id);
        CREATE INDEX IF NOT EXISTS idx_gps_logs_time ON gps_logs(recorded_at);
        CREATE INDEX IF NOT EXISTS idx_gps_logs_operation
            ON gps_logs(operation_id)
            WHERE operation_id IS NOT NULL;
        CREATE INDEX IF NOT EXISTS idx_operations_vehicle_status
            ON operations(vehicle_id, status);
        """
    )


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create the fleet tracking tables when they are missing."""

    _create_tables(conn)
    conn.commit()


__all__ = ["ACTIVE_OPERATION_STATUS", "ensure_schema"]

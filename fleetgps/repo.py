"""Sample repository contract and its SQLite / in-memory implementations.

The analytics engine only reads through :class:`SampleRepository`. Writing
helpers at the bottom of this module exist for ingestion tooling and tests.
"""
from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Sequence

from fleetgps.errors import RepositoryError, ValidationError
from fleetgps.samples import (
    ActiveOperation,
    LocationSample,
    SampleFilter,
    VehicleRef,
    ensure_utc,
    parse_timestamp,
    sample_from_record,
)
from fleetgps.schema import ACTIVE_OPERATION_STATUS

logger = logging.getLogger(__name__)


class SampleRepository(Protocol):
    """Read contract consumed by :class:`fleetgps.gps_service.GpsAnalyticsService`."""

    def fetch_samples(self, sample_filter: SampleFilter) -> List[LocationSample]:
        ...

    def fetch_vehicle_refs(
        self, vehicle_ids: Optional[Sequence[str]] = None
    ) -> List[VehicleRef]:
        ...

    def fetch_recent_samples(
        self,
        vehicle_ids: Optional[Sequence[str]] = None,
        per_vehicle: int = 1,
    ) -> List[LocationSample]:
        ...


def format_timestamp(dt: datetime) -> str:
    """Serialise *dt* in the fixed-width UTC form used for ``recorded_at``.

    A fixed width keeps lexical comparison in SQL equal to chronological order.
    """

    return ensure_utc(dt).isoformat(timespec="microseconds")


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        logger.error("GPS repository failure while %s: %s", action, exc)
        raise RepositoryError(f"Failed to {action}: {exc}") from exc


def _placeholders(values: Sequence[object]) -> str:
    return ",".join(["?"] * len(values))


def _rows_to_samples(rows: Iterable[sqlite3.Row]) -> List[LocationSample]:
    samples: List[LocationSample] = []
    for row in rows:
        record = dict(row)
        try:
            samples.append(sample_from_record(record))
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping malformed GPS log %s: %s", record.get("id"), exc)
    return samples


_SAMPLE_COLUMNS = """
    id, vehicle_id, operation_id, latitude, longitude, altitude,
    speed_kmh, heading, accuracy_meters, recorded_at
"""


class SqliteSampleRepository:
    """Read GPS samples and vehicle metadata from a SQLite connection."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def fetch_samples(self, sample_filter: SampleFilter) -> List[LocationSample]:
        clauses: List[str] = []
        params: List[object] = []
        if sample_filter.vehicle_ids is not None:
            if not sample_filter.vehicle_ids:
                return []
            clauses.append(f"vehicle_id IN ({_placeholders(sample_filter.vehicle_ids)})")
            params.extend(sample_filter.vehicle_ids)
        if sample_filter.start_time is not None:
            clauses.append("recorded_at >= ?")
            params.append(format_timestamp(sample_filter.start_time))
        if sample_filter.end_time is not None:
            clauses.append("recorded_at <= ?")
            params.append(format_timestamp(sample_filter.end_time))
        if sample_filter.speed_at_least is not None:
            clauses.append("speed_kmh >= ?")
            params.append(float(sample_filter.speed_at_least))
        if sample_filter.speed_at_most is not None:
            clauses.append("speed_kmh <= ?")
            params.append(float(sample_filter.speed_at_most))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        query = f"""
            SELECT {_SAMPLE_COLUMNS}
            FROM gps_logs
            {where}
            ORDER BY recorded_at ASC, id ASC
        """
        with _translate_errors("fetch GPS samples"):
            rows = self.conn.execute(query, params).fetchall()
        samples = _rows_to_samples(rows)
        logger.debug("Fetched %d GPS sample(s)", len(samples))
        return samples

    def fetch_recent_samples(
        self,
        vehicle_ids: Optional[Sequence[str]] = None,
        per_vehicle: int = 1,
    ) -> List[LocationSample]:
        if per_vehicle < 1:
            raise ValidationError("per_vehicle must be at least 1")
        params: List[object] = []
        where = ""
        if vehicle_ids is not None:
            if not vehicle_ids:
                return []
            where = f"WHERE vehicle_id IN ({_placeholders(vehicle_ids)})"
            params.extend(vehicle_ids)
        params.append(int(per_vehicle))
        query = f"""
            SELECT {_SAMPLE_COLUMNS}
            FROM (
                SELECT
                    gps_logs.*,
                    ROW_NUMBER() OVER (
                        PARTITION BY vehicle_id
                        ORDER BY recorded_at DESC, id DESC
                    ) AS recency_rank
                FROM gps_logs
                {where}
            )
            WHERE recency_rank <= ?
            ORDER BY vehicle_id ASC, recorded_at DESC, id DESC
        """
        with _translate_errors("fetch recent GPS samples"):
            rows = self.conn.execute(query, params).fetchall()
        return _rows_to_samples(rows)

    def fetch_vehicle_refs(
        self, vehicle_ids: Optional[Sequence[str]] = None
    ) -> List[VehicleRef]:
        params: List[object] = []
        vehicle_where = ""
        operation_where = ""
        if vehicle_ids is not None:
            if not vehicle_ids:
                return []
            vehicle_where = f"WHERE id IN ({_placeholders(vehicle_ids)})"
            operation_where = f"AND o.vehicle_id IN ({_placeholders(vehicle_ids)})"
            params.extend(vehicle_ids)

        with _translate_errors("fetch vehicles"):
            vehicle_rows = self.conn.execute(
                f"""
                SELECT id, plate_number, model, status, updated_at
                FROM vehicles
                {vehicle_where}
                ORDER BY plate_number ASC, id ASC
                """,
                params,
            ).fetchall()
            operation_rows = self.conn.execute(
                f"""
                SELECT o.id, o.vehicle_id, o.status, o.driver_id, u.name AS driver_name
                FROM operations AS o
                LEFT JOIN users AS u ON u.id = o.driver_id
                WHERE o.status = ? {operation_where}
                ORDER BY o.started_at DESC, o.id DESC
                """,
                [ACTIVE_OPERATION_STATUS, *params],
            ).fetchall()

        active: Dict[str, ActiveOperation] = {}
        for row in operation_rows:
            # Newest in-progress operation wins when a vehicle has several.
            active.setdefault(
                row["vehicle_id"],
                ActiveOperation(
                    operation_id=str(row["id"]),
                    status=row["status"],
                    driver_id=row["driver_id"],
                    driver_name=row["driver_name"],
                ),
            )

        refs: List[VehicleRef] = []
        for row in vehicle_rows:
            updated_at = None
            if row["updated_at"]:
                try:
                    updated_at = parse_timestamp(row["updated_at"])
                except ValueError:
                    updated_at = None
            refs.append(
                VehicleRef(
                    vehicle_id=str(row["id"]),
                    plate_number=row["plate_number"],
                    model=row["model"],
                    status=row["status"],
                    updated_at=updated_at,
                    active_operation=active.get(row["id"]),
                )
            )
        return refs


@dataclass
class InMemorySampleRepository:
    """Repository over plain Python collections, used by tests and demos."""

    samples: Sequence[LocationSample] = field(default_factory=list)
    vehicles: Sequence[VehicleRef] = field(default_factory=list)

    def fetch_samples(self, sample_filter: SampleFilter) -> List[LocationSample]:
        matched = [sample for sample in self.samples if sample_filter.matches(sample)]
        matched.sort(key=LocationSample.sort_key)
        return matched

    def fetch_recent_samples(
        self,
        vehicle_ids: Optional[Sequence[str]] = None,
        per_vehicle: int = 1,
    ) -> List[LocationSample]:
        if per_vehicle < 1:
            raise ValidationError("per_vehicle must be at least 1")
        wanted = set(vehicle_ids) if vehicle_ids is not None else None
        by_vehicle: Dict[str, List[LocationSample]] = {}
        for sample in self.samples:
            if wanted is not None and sample.vehicle_id not in wanted:
                continue
            by_vehicle.setdefault(sample.vehicle_id, []).append(sample)
        recent: List[LocationSample] = []
        for vehicle_id in sorted(by_vehicle):
            ordered = sorted(by_vehicle[vehicle_id], key=LocationSample.sort_key, reverse=True)
            recent.extend(ordered[:per_vehicle])
        return recent

    def fetch_vehicle_refs(
        self, vehicle_ids: Optional[Sequence[str]] = None
    ) -> List[VehicleRef]:
        if vehicle_ids is None:
            return list(self.vehicles)
        wanted = set(vehicle_ids)
        return [vehicle for vehicle in self.vehicles if vehicle.vehicle_id in wanted]


def insert_vehicle(
    conn: sqlite3.Connection,
    vehicle_id: str,
    plate_number: str,
    *,
    model: Optional[str] = None,
    status: str = "ACTIVE",
) -> None:
    conn.execute(
        """
        INSERT INTO vehicles (id, plate_number, model, status, updated_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            plate_number = excluded.plate_number,
            model = excluded.model,
            status = excluded.status,
            updated_at = excluded.updated_at
        """,
        (vehicle_id, plate_number, model, status, format_timestamp(datetime.now(UTC))),
    )
    conn.commit()


def insert_driver(conn: sqlite3.Connection, driver_id: str, name: str) -> None:
    conn.execute(
        "INSERT OR REPLACE INTO users (id, name, role) VALUES (?, ?, 'DRIVER')",
        (driver_id, name),
    )
    conn.commit()


def insert_operation(
    conn: sqlite3.Connection,
    operation_id: str,
    vehicle_id: str,
    *,
    driver_id: Optional[str] = None,
    status: str = ACTIVE_OPERATION_STATUS,
    started_at: Optional[datetime] = None,
) -> None:
    conn.execute(
        """
        INSERT OR REPLACE INTO operations (id, vehicle_id, driver_id, status, started_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (
            operation_id,
            vehicle_id,
            driver_id,
            status,
            format_timestamp(started_at) if started_at else None,
        ),
    )
    conn.commit()


def insert_samples(conn: sqlite3.Connection, samples: Iterable[LocationSample]) -> int:
    """Persist *samples* into ``gps_logs`` and return the number written."""

    now = format_timestamp(datetime.now(UTC))
    payload = [
        (
            sample.sample_id or uuid.uuid4().hex,
            sample.vehicle_id,
            sample.operation_id,
            sample.latitude,
            sample.longitude,
            sample.altitude_m,
            sample.speed_kmh,
            sample.heading_deg,
            sample.accuracy_m,
            format_timestamp(sample.captured_at),
            now,
        )
        for sample in samples
    ]
    if not payload:
        return 0
    conn.executemany(
        """
        INSERT OR REPLACE INTO gps_logs (
            id, vehicle_id, operation_id, latitude, longitude, altitude,
            speed_kmh, heading, accuracy_meters, recorded_at, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        payload,
    )
    conn.commit()
    return len(payload)


__all__ = [
    "InMemorySampleRepository",
    "SampleRepository",
    "SqliteSampleRepository",
    "format_timestamp",
    "insert_driver",
    "insert_operation",
    "insert_samples",
    "insert_vehicle",
]

"""Synthetic GPS telemetry for demos, local development and tests.

Vehicles drive back and forth along fixed depot corridors around Brisbane.
Each run includes a stationary stop and occasional bursts above the default
speed threshold so every analytics view has something to show.
"""
from __future__ import annotations

import logging
import random
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from analytics.db import ensure_tracking_tables
from fleetgps.geometry import bearing_degrees, haversine_km, interpolate
from fleetgps.repo import insert_driver, insert_operation, insert_samples, insert_vehicle
from fleetgps.samples import LocationSample, ensure_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DemoVehicle:
    vehicle_id: str
    plate_number: str
    model: str
    driver_id: str
    driver_name: str
    waypoints: Tuple[Tuple[float, float], ...]
    cruise_speed_kmh: float = 55.0


DEMO_FLEET: Tuple[DemoVehicle, ...] = (
    DemoVehicle(
        vehicle_id="veh-bne-01",
        plate_number="BNE-01",
        model="Isuzu NPR",
        driver_id="drv-01",
        driver_name="Alex Morgan",
        waypoints=((-27.4698, 153.0251), (-27.4200, 153.0600), (-27.3800, 153.1200)),
    ),
    DemoVehicle(
        vehicle_id="veh-bne-02",
        plate_number="BNE-02",
        model="Hino 300",
        driver_id="drv-02",
        driver_name="Sam Patel",
        waypoints=((-27.4698, 153.0251), (-27.5300, 152.9900), (-27.6100, 152.9600)),
        cruise_speed_kmh=65.0,
    ),
    DemoVehicle(
        vehicle_id="veh-gc-03",
        plate_number="GC-03",
        model="Fuso Canter",
        driver_id="drv-03",
        driver_name="Jordan Lee",
        waypoints=((-27.4698, 153.0251), (-27.7000, 153.2000), (-28.0167, 153.4000)),
        cruise_speed_kmh=75.0,
    ),
)


def _path_length_km(points: Sequence[Tuple[float, float]]) -> float:
    return sum(haversine_km(a, b) for a, b in zip(points, points[1:]))


def _position_along_path(
    points: Sequence[Tuple[float, float]], distance_km: float
) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """Return the point *distance_km* along *points* and the segment end it heads to."""

    if len(points) == 1:
        return points[0], points[0]
    traversed = 0.0
    for start, end in zip(points, points[1:]):
        segment = haversine_km(start, end)
        if segment <= 0:
            continue
        if traversed + segment >= distance_km:
            return interpolate(start, end, (distance_km - traversed) / segment), end
        traversed += segment
    return points[-1], points[-1]


def _vehicle_samples(
    vehicle: DemoVehicle,
    *,
    start: datetime,
    steps: int,
    interval_seconds: float,
    rng: random.Random,
) -> List[LocationSample]:
    forward = list(vehicle.waypoints)
    backward = list(reversed(forward))
    leg_length = _path_length_km(forward)
    stop_at = rng.randint(steps // 4, max(steps // 4, steps // 2))
    stop_length = rng.randint(4, 8)

    samples: List[LocationSample] = []
    travelled = 0.0
    outbound = True
    for step in range(steps):
        stationary = stop_at <= step < stop_at + stop_length
        if stationary:
            speed = rng.uniform(0.0, 2.0)
        elif rng.random() < 0.08:
            speed = rng.uniform(85.0, 130.0)
        else:
            speed = max(10.0, rng.gauss(vehicle.cruise_speed_kmh, 8.0))

        path = forward if outbound else backward
        (lat, lon), heading_to = _position_along_path(path, min(travelled, leg_length))
        heading = bearing_degrees((lat, lon), heading_to) if heading_to != (lat, lon) else None
        samples.append(
            LocationSample(
                vehicle_id=vehicle.vehicle_id,
                latitude=lat + rng.uniform(-0.00005, 0.00005),
                longitude=lon + rng.uniform(-0.00005, 0.00005),
                captured_at=start + timedelta(seconds=step * interval_seconds),
                altitude_m=round(rng.uniform(5.0, 60.0), 1),
                speed_kmh=round(speed, 1),
                heading_deg=round(heading, 1) % 360.0 if heading is not None else None,
                accuracy_m=round(rng.uniform(3.0, 15.0), 1),
                sample_id=f"{vehicle.vehicle_id}-{step:05d}",
                operation_id=f"op-{vehicle.vehicle_id}",
            )
        )

        if not stationary:
            travelled += speed * interval_seconds / 3600.0
        if travelled >= leg_length:
            travelled = 0.0
            outbound = not outbound
    return samples


def generate_demo_samples(
    *,
    vehicles: Sequence[DemoVehicle] = DEMO_FLEET,
    start: Optional[datetime] = None,
    duration_minutes: float = 120.0,
    interval_seconds: float = 60.0,
    seed: Optional[int] = 7,
) -> List[LocationSample]:
    """Return chronologically ordered samples for every vehicle in *vehicles*."""

    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be greater than zero")
    rng = random.Random(seed)
    start_time = ensure_utc(start) if start else datetime.now(UTC) - timedelta(
        minutes=duration_minutes
    )
    steps = max(1, int(duration_minutes * 60 // interval_seconds))

    samples: List[LocationSample] = []
    for vehicle in vehicles:
        samples.extend(
            _vehicle_samples(
                vehicle,
                start=start_time,
                steps=steps,
                interval_seconds=interval_seconds,
                rng=rng,
            )
        )
    samples.sort(key=LocationSample.sort_key)
    return samples


def seed_demo_fleet(
    conn: sqlite3.Connection,
    *,
    vehicles: Sequence[DemoVehicle] = DEMO_FLEET,
    start: Optional[datetime] = None,
    duration_minutes: float = 120.0,
    interval_seconds: float = 60.0,
    seed: Optional[int] = 7,
) -> int:
    """Create demo vehicles, drivers, operations and GPS logs. Returns samples written."""

    ensure_tracking_tables(conn)
    samples = generate_demo_samples(
        vehicles=vehicles,
        start=start,
        duration_minutes=duration_minutes,
        interval_seconds=interval_seconds,
        seed=seed,
    )
    first_seen = {}
    for sample in samples:
        first_seen.setdefault(sample.vehicle_id, sample.captured_at)

    for vehicle in vehicles:
        insert_vehicle(conn, vehicle.vehicle_id, vehicle.plate_number, model=vehicle.model)
        insert_driver(conn, vehicle.driver_id, vehicle.driver_name)
        insert_operation(
            conn,
            f"op-{vehicle.vehicle_id}",
            vehicle.vehicle_id,
            driver_id=vehicle.driver_id,
            started_at=first_seen.get(vehicle.vehicle_id),
        )
    written = insert_samples(conn, samples)
    logger.info("Seeded %d vehicle(s) with %d GPS sample(s)", len(vehicles), written)
    return written


__all__ = ["DEMO_FLEET", "DemoVehicle", "generate_demo_samples", "seed_demo_fleet"]

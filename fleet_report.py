"""Command line reports over the fleet GPS database.

Each subcommand maps onto one analytics entry point and prints a table (or
JSON records with ``--json``). ``seed`` fills an empty database with demo
telemetry so the other commands have data to work with.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from datetime import datetime

import pandas as pd

from analytics.db import DEFAULT_DB_PATH, connection_scope, ensure_tracking_tables, load_analytics_settings
from analytics.frames import (
    area_to_frame,
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
from fleetgps.errors import FleetGpsError, RepositoryError
from fleetgps.gps_service import GpsAnalyticsService
from fleetgps.repo import SqliteSampleRepository
from fleetgps.samples import Bounds, Coordinates, parse_timestamp

logger = logging.getLogger("fleet_report")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID = 2


def parse_coordinates(value: str) -> Coordinates:
    """Parse ``"LAT,LON"`` into :class:`Coordinates` for argparse."""

    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"Expected LAT,LON but got {value!r}")
    try:
        return Coordinates(float(parts[0]), float(parts[1]))
    except (ValueError, FleetGpsError) as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def parse_time(value: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid ISO timestamp {value!r}") from exc


def _add_window_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--start", type=parse_time, help="ISO start of the time window")
    parser.add_argument("--end", type=parse_time, help="ISO end of the time window")
    parser.add_argument(
        "--vehicle",
        action="append",
        dest="vehicles",
        help="Restrict to a vehicle id (repeatable)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fleet GPS analytics reports")
    parser.add_argument("--db", default=DEFAULT_DB_PATH, help="Path to the SQLite database")
    parser.add_argument("--json", action="store_true", help="Print JSON records instead of a table")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    positions = sub.add_parser("positions", help="Latest position of every vehicle")
    positions.add_argument("--vehicle", action="append", dest="vehicles")

    vehicle = sub.add_parser("vehicle", help="Details and recent track for one vehicle")
    vehicle.add_argument("vehicle_id")

    area = sub.add_parser("area", help="Vehicles inside a radius or bounding box")
    area.add_argument("--center", type=parse_coordinates, help="LAT,LON")
    area.add_argument("--radius", type=float, dest="radius_km", help="Radius in km")
    area.add_argument("--north-east", type=parse_coordinates, dest="north_east", help="LAT,LON")
    area.add_argument("--south-west", type=parse_coordinates, dest="south_west", help="LAT,LON")

    heatmap = sub.add_parser("heatmap", help="Sample density grid")
    _add_window_arguments(heatmap)
    heatmap.add_argument("--cell-km", type=float, dest="cell_size_km")

    tracks = sub.add_parser("tracks", help="Per-vehicle trajectories")
    _add_window_arguments(tracks)
    tracks.add_argument("--simplify", action="store_true")
    tracks.add_argument("--stride", type=int)

    speeding = sub.add_parser("speeding", help="Samples above the speed threshold")
    _add_window_arguments(speeding)
    speeding.add_argument("--threshold", type=float, dest="threshold_kmh")
    speeding.add_argument("--limit", type=int)

    idling = sub.add_parser("idling", help="Stationary intervals")
    _add_window_arguments(idling)
    idling.add_argument("--threshold", type=float, dest="threshold_minutes")
    idling.add_argument("--merge", action="store_true", help="Chain consecutive idle gaps")

    patterns = sub.add_parser("patterns", help="Most visited areas")
    _add_window_arguments(patterns)

    route = sub.add_parser("route", help="Nearest-neighbour stop ordering")
    route.add_argument("--from", type=parse_coordinates, dest="start", required=True)
    route.add_argument(
        "--to", type=parse_coordinates, dest="destinations", action="append", required=True
    )
    route.add_argument("--vehicle-id")

    stats = sub.add_parser("stats", help="Fleet movement statistics")
    _add_window_arguments(stats)
    stats.add_argument("--max-segment-km", type=float)

    seed = sub.add_parser("seed", help="Populate the database with demo telemetry")
    seed.add_argument("--minutes", type=float, default=120.0)
    seed.add_argument("--interval", type=float, default=60.0, help="Seconds between samples")
    seed.add_argument("--seed", type=int, default=7)
    return parser


COORDINATE_OPTIONS = ("--center", "--north-east", "--south-west", "--from", "--to")


def _attach_coordinate_values(argv: Sequence[str]) -> list[str]:
    """Rewrite ``--from -27.4,153.0`` as ``--from=-27.4,153.0``.

    argparse treats a separate value starting with ``-`` as an option unless
    it is a plain negative number, which ``LAT,LON`` pairs are not.
    """

    args = list(argv)
    joined: list[str] = []
    index = 0
    while index < len(args):
        arg = args[index]
        if (
            arg in COORDINATE_OPTIONS
            and index + 1 < len(args)
            and args[index + 1].startswith("-")
            and args[index + 1][1:2] in set("0123456789.")
        ):
            joined.append(f"{arg}={args[index + 1]}")
            index += 2
            continue
        joined.append(arg)
        index += 1
    return joined


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    if argv is None:
        argv = sys.argv[1:]
    return build_parser().parse_args(_attach_coordinate_values(argv))


def _emit(frame: pd.DataFrame, *, as_json: bool, empty_message: str) -> None:
    if as_json:
        print(frame.to_json(orient="records", date_format="iso"))
        return
    if frame.empty:
        print(empty_message)
        return
    print(frame.to_string(index=False))


def run_command(args: argparse.Namespace, service: GpsAnalyticsService, conn) -> int:
    settings = load_analytics_settings(conn)
    window = {
        "start_time": getattr(args, "start", None),
        "end_time": getattr(args, "end", None),
        "vehicle_ids": getattr(args, "vehicles", None),
    }

    if args.cmd == "positions":
        snapshots = service.get_all_vehicle_positions(args.vehicles)
        _emit(positions_to_frame(snapshots), as_json=args.json, empty_message="No vehicles found.")
    elif args.cmd == "vehicle":
        detail = service.get_vehicle_details(args.vehicle_id)
        if args.json:
            payload = {
                "vehicle": json.loads(
                    positions_to_frame([detail]).to_json(orient="records", date_format="iso")
                )[0],
                "recent_track": json.loads(
                    samples_to_frame(detail.recent_track).to_json(orient="records", date_format="iso")
                ),
            }
            print(json.dumps(payload))
        else:
            print(positions_to_frame([detail]).T.to_string(header=False))
            print()
            _emit(
                samples_to_frame(detail.recent_track),
                as_json=False,
                empty_message="No recent samples.",
            )
    elif args.cmd == "area":
        bounds = None
        if args.north_east is not None or args.south_west is not None:
            if args.north_east is None or args.south_west is None:
                print("Both --north-east and --south-west are required for bounds.", file=sys.stderr)
                return EXIT_INVALID
            bounds = Bounds(north_east=args.north_east, south_west=args.south_west)
        result = service.get_vehicles_in_area(args.center, args.radius_km, bounds)
        _emit(area_to_frame(result), as_json=args.json, empty_message="No vehicles in area.")
    elif args.cmd == "heatmap":
        cell_size = (
            args.cell_size_km if args.cell_size_km is not None else settings.heatmap_cell_size_km
        )
        points = service.generate_heatmap(cell_size_km=cell_size, **window)
        _emit(heatmap_to_frame(points), as_json=args.json, empty_message="No samples in window.")
    elif args.cmd == "tracks":
        stride = args.stride if args.stride is not None else settings.simplify_stride
        tracks = service.get_vehicle_tracks(simplify=args.simplify, stride=stride, **window)
        frame = tracks_to_frame(tracks)
        if not args.json:
            frame = frame.drop(columns=["path"])
        _emit(frame, as_json=args.json, empty_message="No tracks found.")
    elif args.cmd == "speeding":
        threshold = (
            args.threshold_kmh if args.threshold_kmh is not None else settings.speed_threshold_kmh
        )
        events = service.detect_speed_violations(
            speed_threshold_kmh=threshold, limit=args.limit, **window
        )
        _emit(violations_to_frame(events), as_json=args.json, empty_message="No speed violations.")
    elif args.cmd == "idling":
        threshold = (
            args.threshold_minutes
            if args.threshold_minutes is not None
            else settings.idle_threshold_minutes
        )
        intervals = service.analyze_idling(
            idle_threshold_minutes=threshold, merge_runs=args.merge, **window
        )
        _emit(
            idle_intervals_to_frame(intervals),
            as_json=args.json,
            empty_message="No idle intervals.",
        )
    elif args.cmd == "patterns":
        patterns = service.analyze_movement_patterns(**window)
        if not args.json:
            print(
                f"{patterns.total_samples} samples from {patterns.unique_vehicles} vehicle(s), "
                f"coverage {patterns.coverage_area_km2:.2f} km²"
            )
        _emit(frequent_areas_to_frame(patterns), as_json=args.json, empty_message="No samples in window.")
    elif args.cmd == "route":
        route = service.optimize_route(args.start, args.destinations, vehicle_id=args.vehicle_id)
        if not args.json:
            print(
                f"Total {route.total_distance_km:.2f} km, "
                f"about {route.estimated_time_minutes:.0f} min"
            )
        _emit(route_to_frame(route), as_json=args.json, empty_message="No stops.")
    elif args.cmd == "stats":
        stats = service.get_statistics(max_segment_km=args.max_segment_km, **window)
        _emit(statistics_to_frame(stats), as_json=args.json, empty_message="No samples in window.")
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    with connection_scope(args.db) as conn:
        ensure_tracking_tables(conn)
        if args.cmd == "seed":
            written = seed_demo_fleet(
                conn,
                duration_minutes=args.minutes,
                interval_seconds=args.interval,
                seed=args.seed,
            )
            print(f"Seeded {written} GPS samples into {args.db}")
            return EXIT_OK

        service = GpsAnalyticsService(SqliteSampleRepository(conn))
        try:
            return run_command(args, service, conn)
        except RepositoryError as exc:
            logger.error("Report failed: %s", exc)
            print(f"[ERR] {exc}", file=sys.stderr)
            return EXIT_FAILURE
        except FleetGpsError as exc:
            print(f"[{exc.code}] {exc}", file=sys.stderr)
            return EXIT_INVALID


if __name__ == "__main__":  # pragma: no cover - manual execution entry point
    raise SystemExit(main())

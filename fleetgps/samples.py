"""Data model for GPS samples, vehicles and fetch filters."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence, Tuple

from fleetgps.errors import ValidationError


def ensure_utc(dt: datetime) -> datetime:
    """Return *dt* as an aware UTC datetime; naive values are assumed UTC."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime."""

    if isinstance(value, datetime):
        return ensure_utc(value)
    if value is None:
        raise ValueError("Timestamp is missing")
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def to_float(value: Any) -> Optional[float]:
    """Convert stored numeric values (``Decimal``, text, numbers) to ``float``.

    ``None``, blanks and NaN become ``None`` so optional sample fields stay
    distinguishable from a recorded zero.
    """

    if value is None:
        return None
    if isinstance(value, Decimal):
        result = float(value)
    elif isinstance(value, str):
        if not value.strip():
            return None
        result = float(value)
    else:
        result = float(value)
    if math.isnan(result):
        return None
    return result


def _check_latitude(latitude: float) -> None:
    if not -90.0 <= latitude <= 90.0:
        raise ValidationError(f"Latitude {latitude} is outside [-90, 90]")


def _check_longitude(longitude: float) -> None:
    if not -180.0 <= longitude <= 180.0:
        raise ValidationError(f"Longitude {longitude} is outside [-180, 180]")


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        try:
            latitude = float(self.latitude)
            longitude = float(self.longitude)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Coordinates must be numeric") from exc
        if math.isnan(latitude) or math.isnan(longitude):
            raise ValidationError("Coordinates must not be NaN")
        _check_latitude(latitude)
        _check_longitude(longitude)
        object.__setattr__(self, "latitude", latitude)
        object.__setattr__(self, "longitude", longitude)

    @property
    def lat_lon(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    @classmethod
    def from_value(cls, value: Any) -> "Coordinates":
        """Build coordinates from a ``Coordinates``, ``(lat, lon)`` pair or mapping.

        Mappings may use ``latitude``/``longitude``, ``lat``/``lon`` or
        ``lat``/``lng`` keys.
        """

        if isinstance(value, Coordinates):
            return value
        if isinstance(value, Mapping):
            lat = value.get("latitude", value.get("lat"))
            lon = value.get("longitude", value.get("lon", value.get("lng")))
            if lat is None or lon is None:
                raise ValidationError("Coordinates require latitude and longitude")
            return cls(lat, lon)
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(value[0], value[1])
        raise ValidationError(f"Unsupported coordinate value: {value!r}")

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class Bounds:
    north_east: Coordinates
    south_west: Coordinates

    def __post_init__(self) -> None:
        if self.south_west.latitude > self.north_east.latitude:
            raise ValidationError("Bounds south-west corner lies north of the north-east corner")

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.south_west.latitude <= latitude <= self.north_east.latitude
            and self.south_west.longitude <= longitude <= self.north_east.longitude
        )


@dataclass(frozen=True)
class LocationSample:
    """One timestamped GPS observation for a vehicle."""

    vehicle_id: str
    latitude: float
    longitude: float
    captured_at: datetime
    altitude_m: Optional[float] = None
    speed_kmh: Optional[float] = None
    heading_deg: Optional[float] = None
    accuracy_m: Optional[float] = None
    sample_id: Optional[str] = None
    operation_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.captured_at, datetime):
            raise ValidationError(f"captured_at must be a datetime, got {self.captured_at!r}")
        coordinates = Coordinates(self.latitude, self.longitude)
        object.__setattr__(self, "latitude", coordinates.latitude)
        object.__setattr__(self, "longitude", coordinates.longitude)
        object.__setattr__(self, "captured_at", ensure_utc(self.captured_at))

    @property
    def lat_lon(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(self.latitude, self.longitude)

    def sort_key(self) -> Tuple[datetime, str]:
        """Chronological key with ``sample_id`` as the explicit tie-break."""

        return (self.captured_at, self.sample_id or "")


def sample_from_record(record: Mapping[str, Any]) -> LocationSample:
    """Convert a stored ``gps_logs``-style record into a :class:`LocationSample`.

    Raises ``ValueError`` (or :class:`ValidationError`) for records that break
    the sample invariants.
    """

    vehicle_id = record.get("vehicle_id")
    if vehicle_id in (None, ""):
        raise ValidationError("Sample is missing vehicle_id")
    latitude = to_float(record.get("latitude"))
    longitude = to_float(record.get("longitude"))
    if latitude is None or longitude is None:
        raise ValidationError("Sample is missing coordinates")
    _check_latitude(latitude)
    _check_longitude(longitude)

    speed = to_float(record.get("speed_kmh"))
    if speed is not None and speed < 0:
        raise ValidationError(f"Negative speed {speed}")
    accuracy = to_float(record.get("accuracy_meters", record.get("accuracy_m")))
    if accuracy is not None and accuracy < 0:
        raise ValidationError(f"Negative accuracy {accuracy}")
    heading = to_float(record.get("heading", record.get("heading_deg")))
    if heading is not None and not 0.0 <= heading <= 360.0:
        raise ValidationError(f"Heading {heading} is outside [0, 360]")

    sample_id = record.get("id", record.get("sample_id"))
    operation_id = record.get("operation_id")
    return LocationSample(
        vehicle_id=str(vehicle_id),
        latitude=latitude,
        longitude=longitude,
        captured_at=parse_timestamp(record.get("recorded_at", record.get("captured_at"))),
        altitude_m=to_float(record.get("altitude", record.get("altitude_m"))),
        speed_kmh=speed,
        heading_deg=heading,
        accuracy_m=accuracy,
        sample_id=str(sample_id) if sample_id is not None else None,
        operation_id=str(operation_id) if operation_id is not None else None,
    )


@dataclass(frozen=True)
class ActiveOperation:
    operation_id: str
    status: str
    driver_id: Optional[str] = None
    driver_name: Optional[str] = None


@dataclass(frozen=True)
class VehicleRef:
    vehicle_id: str
    plate_number: Optional[str] = None
    model: Optional[str] = None
    status: Optional[str] = None
    updated_at: Optional[datetime] = None
    active_operation: Optional[ActiveOperation] = None


@dataclass(frozen=True)
class SampleFilter:
    """Read filter passed to :meth:`SampleRepository.fetch_samples`."""

    vehicle_ids: Optional[Tuple[str, ...]] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    speed_at_least: Optional[float] = None
    speed_at_most: Optional[float] = None

    def __post_init__(self) -> None:
        if self.vehicle_ids is not None:
            object.__setattr__(self, "vehicle_ids", tuple(str(v) for v in self.vehicle_ids))
        if self.start_time is not None:
            object.__setattr__(self, "start_time", ensure_utc(self.start_time))
        if self.end_time is not None:
            object.__setattr__(self, "end_time", ensure_utc(self.end_time))
        if (
            self.start_time is not None
            and self.end_time is not None
            and self.start_time > self.end_time
        ):
            raise ValidationError("start_time must not be after end_time")
        if (
            self.speed_at_least is not None
            and self.speed_at_most is not None
            and self.speed_at_least > self.speed_at_most
        ):
            raise ValidationError("speed_at_least must not exceed speed_at_most")

    @classmethod
    def build(
        cls,
        *,
        vehicle_ids: Optional[Sequence[str]] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        speed_at_least: Optional[float] = None,
        speed_at_most: Optional[float] = None,
    ) -> "SampleFilter":
        return cls(
            vehicle_ids=tuple(vehicle_ids) if vehicle_ids is not None else None,
            start_time=start_time,
            end_time=end_time,
            speed_at_least=speed_at_least,
            speed_at_most=speed_at_most,
        )

    def matches(self, sample: LocationSample) -> bool:
        if self.vehicle_ids is not None and sample.vehicle_id not in self.vehicle_ids:
            return False
        if self.start_time is not None and sample.captured_at < self.start_time:
            return False
        if self.end_time is not None and sample.captured_at > self.end_time:
            return False
        if self.speed_at_least is not None:
            if sample.speed_kmh is None or sample.speed_kmh < self.speed_at_least:
                return False
        if self.speed_at_most is not None:
            if sample.speed_kmh is None or sample.speed_kmh > self.speed_at_most:
                return False
        return True


__all__ = [
    "ActiveOperation",
    "Bounds",
    "Coordinates",
    "LocationSample",
    "SampleFilter",
    "VehicleRef",
    "ensure_utc",
    "parse_timestamp",
    "sample_from_record",
    "to_float",
]

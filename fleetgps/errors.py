"""Error taxonomy shared by the GPS analytics entry points."""
from __future__ import annotations


class FleetGpsError(Exception):
    """Base class for errors surfaced to callers of :mod:`fleetgps`."""

    code = "FLEETGPS_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(FleetGpsError, ValueError):
    """Raised for malformed or missing request parameters."""

    code = "VALIDATION_ERROR"


class NotFoundError(FleetGpsError, LookupError):
    """Raised when a single, specifically requested vehicle does not exist."""

    code = "NOT_FOUND"


class RepositoryError(FleetGpsError, RuntimeError):
    """Raised when the sample repository cannot be read."""

    code = "REPOSITORY_ERROR"


__all__ = ["FleetGpsError", "ValidationError", "NotFoundError", "RepositoryError"]

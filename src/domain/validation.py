"""
Input validation for ride and booking commands.

Each check raises :class:`~src.domain.errors.ValidationError` naming the
offending field; callers run validation before opening a transaction so
a failure never leaves a partial write behind.
"""

from __future__ import annotations

from datetime import datetime

from .clock import ensure_utc
from .entities import RideDetails
from .errors import ValidationError

REQUIRED_MESSAGE = "All required fields must be filled"


def _require_positive(value, field: str, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{label} must be a number", field=field)
    if value <= 0:
        raise ValidationError(f"{label} must be positive", field=field)


def validate_trip_metrics(distance, duration) -> None:
    """Distance (km) and duration (whole minutes) must both be positive."""
    _require_positive(distance, "distance", "Distance")
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise ValidationError("Duration must be a whole number of minutes", field="duration")
    _require_positive(duration, "duration", "Duration")


def validate_ride_details(
    details: RideDetails, now: datetime, max_seats: int
) -> RideDetails:
    """Return a trimmed copy of *details*, or raise on the first bad field."""
    start = (details.start_location or "").strip()
    end = (details.end_location or "").strip()
    if not start:
        raise ValidationError(REQUIRED_MESSAGE, field="start_location")
    if not end:
        raise ValidationError(REQUIRED_MESSAGE, field="end_location")
    if details.departure_time is None:
        raise ValidationError(REQUIRED_MESSAGE, field="departure_time")

    seats = details.available_seats
    if isinstance(seats, bool) or not isinstance(seats, int):
        raise ValidationError("Available seats must be a whole number", field="available_seats")
    if seats < 1:
        raise ValidationError("Available seats must be at least 1", field="available_seats")
    if seats > max_seats:
        raise ValidationError(
            f"Available seats cannot exceed {max_seats}", field="available_seats"
        )

    validate_trip_metrics(details.distance, details.duration)

    departure = ensure_utc(details.departure_time)
    if departure <= now:
        raise ValidationError(
            "Departure time must be in the future", field="departure_time"
        )

    return RideDetails(
        start_location=start,
        end_location=end,
        departure_time=departure,
        available_seats=seats,
        distance=float(details.distance),
        duration=details.duration,
        notes=(details.notes or "").strip(),
    )


def validate_booking_request(
    number_of_seats: int, notes: str | None, max_notes_length: int
) -> str:
    """Check seat count and notes; return the trimmed notes."""
    if isinstance(number_of_seats, bool) or not isinstance(number_of_seats, int):
        raise ValidationError("Number of seats must be a whole number", field="number_of_seats")
    if number_of_seats < 1:
        raise ValidationError("At least 1 seat must be booked", field="number_of_seats")
    notes = notes or ""
    if len(notes) > max_notes_length:
        raise ValidationError(
            f"Notes cannot exceed {max_notes_length} characters", field="notes"
        )
    return notes.strip()

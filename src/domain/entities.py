"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** via ``Stateful``: enforces valid lifecycle transitions
  for rides, bookings and payments (tables live in ``enums``).
- ``SeatInventory.adjust_seats`` encapsulates the seat-count invariant
  ``0 <= available_seats <= total_seats``.

Both mixins are persistence-agnostic; the ORM models in
``src.infrastructure.models`` inherit them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from .enums import UserType
from .errors import CapacityError, StateError


# ── Behaviour mixins ──────────────────────────────────────────────────


class Stateful:
    """Adds ``transition_to`` driven by a class-level transition table."""

    TRANSITIONS = {}
    ENTITY_NAME = "Entity"

    def transition_to(self, new_status) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        current = type(new_status)(self.status)
        allowed = self.TRANSITIONS.get(current, set())
        if new_status not in allowed:
            raise StateError(
                f"Cannot change {self.ENTITY_NAME.lower()} from "
                f"{current.value} to {new_status.value}",
                entity=self.ENTITY_NAME,
                entity_id=self.id,
                current=current.value,
                attempted=new_status.value,
            )
        self.status = new_status


class SeatInventory:
    """Seat counter shared by every booking on a ride."""

    @property
    def booked_seats(self) -> int:
        return self.total_seats - self.available_seats

    def adjust_seats(self, delta: int) -> None:
        new_available = self.available_seats + delta
        if new_available < 0:
            raise CapacityError(
                f"Only {self.available_seats} seat(s) available",
                ride_id=self.id,
                requested=-delta,
                available=self.available_seats,
            )
        if new_available > self.total_seats:
            raise CapacityError(
                f"Cannot restore {delta} seat(s): ride only has "
                f"{self.total_seats} seat(s) in total",
                ride_id=self.id,
                requested=delta,
                available=self.available_seats,
            )
        self.available_seats = new_available


# ── Value objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class RideDetails:
    """Driver-supplied ride fields, shared by create and edit."""

    start_location: str
    end_location: str
    departure_time: Optional[datetime]
    available_seats: int
    distance: float
    duration: int
    notes: str = ""


@dataclass(frozen=True)
class RideSearch:
    from_location: Optional[str] = None
    to_location: Optional[str] = None
    on_date: Optional[date] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


@dataclass(frozen=True)
class BookingReceipt:
    booking: Any
    payment: Any


@dataclass(frozen=True)
class DriverSummary:
    active_rides: int
    total_earnings: float
    total_passengers: int


@dataclass(frozen=True)
class CurrentUser:
    id: str
    user_type: UserType
